import base64
import hashlib
import hmac
import logging
import re
import time
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from proacademics import config
from proacademics.errors import ZoomConfigError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/zoom", tags=["Zoom"])

MEETING_ID_PATTERNS = [
    re.compile(r"/j/(\d+)"),
    re.compile(r"/webinar/(\d+)"),
    re.compile(r"meeting_id=(\d+)"),
    re.compile(r"/(\d{9,11})(?:\?|$)"),
]

TIMESTAMP_SKEW_MS = 30000


class ZoomSignatureRequest(BaseModel):
    zoomUrl: Optional[str] = None
    role: int = 0


def extract_meeting_id(zoom_url: str) -> Optional[str]:
    for pattern in MEETING_ID_PATTERNS:
        match = pattern.search(zoom_url)
        if match:
            return match.group(1)
    return None


def generate_signature(meeting_number: str, role: int = 0, timestamp_ms: Optional[int] = None) -> str:
    """Web SDK meeting signature; raises ZoomConfigError without credentials"""
    if not config.ZOOM_API_KEY or not config.ZOOM_API_SECRET:
        raise ZoomConfigError("Zoom API credentials not configured")

    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000) - TIMESTAMP_SKEW_MS

    key = config.ZOOM_API_KEY
    msg = base64.b64encode(f"{key}{meeting_number}{timestamp_ms}{role}".encode("utf-8"))
    digest = hmac.new(config.ZOOM_API_SECRET.encode("utf-8"), msg, hashlib.sha256).digest()
    hash_b64 = base64.b64encode(digest).decode("utf-8")

    token = f"{key}.{meeting_number}.{timestamp_ms}.{role}.{hash_b64}"
    return base64.b64encode(token.encode("utf-8")).decode("utf-8")


@router.post("/signature")
async def zoom_signature(data: ZoomSignatureRequest):
    if not data.zoomUrl:
        raise HTTPException(status_code=400, detail="Zoom URL is required")

    meeting_id = extract_meeting_id(data.zoomUrl)
    if not meeting_id:
        raise HTTPException(status_code=400, detail="Invalid Zoom URL format")

    try:
        signature = generate_signature(meeting_id, data.role)
    except ZoomConfigError as e:
        logger.error("Error generating Zoom signature: %s", e)
        raise HTTPException(status_code=500, detail=str(e))

    return {
        "signature": signature,
        "meetingNumber": meeting_id,
        "apiKey": config.ZOOM_API_KEY,
        "role": data.role,
    }
