"""
Domain errors and the JSON error envelope

Every failed request renders as {"success": false, "error": "..."}.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class UserAlreadyExistsError(Exception):
    """Raised when creating a user whose email is taken"""


class BadgeError(Exception):
    """Raised when a badge cannot be awarded"""


class ZoomConfigError(Exception):
    """Raised when Zoom credentials are missing"""


class ImportRowError(ValueError):
    """Raised when a flat import row is missing required values"""


class LLMUnavailableError(Exception):
    """Raised when no LLM key is configured or the provider rejects it"""


class CsvImportError(Exception):
    """Raised when an uploaded CSV cannot be imported at all"""

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details


def error_body(detail) -> dict:
    if isinstance(detail, dict):
        body = {"success": False}
        body.update(detail)
        body.setdefault("error", "Request failed")
        return body
    return {"success": False, "error": str(detail)}


async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    messages = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", []) if part != "body")
        messages.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "; ".join(messages) or "Invalid request data"},
    )


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "error": "Internal server error"})


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
