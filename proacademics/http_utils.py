from fastapi import Response

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}


def set_no_cache(response: Response):
    """Admin dashboards must always see fresh data"""
    for key, value in NO_CACHE_HEADERS.items():
        response.headers[key] = value
