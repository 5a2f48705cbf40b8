import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics import config
from proacademics.automations.daily_tasks import run_daily_tasks
from proacademics.automations.weekly_tasks import run_weekly_tasks
from proacademics.database import get_db

logger = logging.getLogger(__name__)


def verify_cron_secret(authorization: str = Header(None)):
    """Open when CRON_SECRET is unset"""
    if config.CRON_SECRET and authorization != f"Bearer {config.CRON_SECRET}":
        raise HTTPException(status_code=401, detail="Unauthorized")


router = APIRouter(prefix="/cron", tags=["Cron"], dependencies=[Depends(verify_cron_secret)])


@router.post("/daily")
async def daily_cron(db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        await run_daily_tasks(db)
    except Exception as e:
        logger.exception("Daily cron job failed: %s", e)
        raise HTTPException(status_code=500, detail="Daily tasks failed")
    return {"success": True, "message": "Daily tasks completed"}


@router.post("/weekly")
async def weekly_cron(db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        await run_weekly_tasks(db)
    except Exception as e:
        logger.exception("Weekly cron job failed: %s", e)
        raise HTTPException(status_code=500, detail="Weekly tasks failed")
    return {"success": True, "message": "Weekly tasks completed"}
