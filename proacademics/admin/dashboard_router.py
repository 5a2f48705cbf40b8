import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel, validator

from proacademics import config
from proacademics.admin import dashboard_service as service
from proacademics.database import db_manager, get_db
from proacademics.http_utils import set_no_cache
from proacademics.users import user_service
from proacademics.users.user_schemas import password_within_limit

logger = logging.getLogger(__name__)

# mounted under /api/admin, admin only
router = APIRouter(tags=["Admin Dashboard"])

# mounted under /api/admin, guarded by the setup key instead of a session
setup_router = APIRouter(tags=["Admin Setup"])


class AdminSetupRequest(BaseModel):
    setupKey: Optional[str] = None
    adminName: Optional[str] = None
    adminEmail: Optional[str] = None
    adminPassword: Optional[str] = None

    @validator("adminPassword")
    def password_length(cls, v):
        return password_within_limit(v)


# ==================== DASHBOARD ====================

@router.get("/stats")
async def admin_stats(response: Response):
    """Zeroed stats with an error flag when the database is down"""
    try:
        stats = await service.get_admin_stats(db_manager.get_database())
    except Exception as e:
        logger.error("Error fetching admin stats: %s", e)
        stats = service.empty_stats()

    set_no_cache(response)
    return stats


@router.get("/top-performers")
async def top_performers(response: Response, limit: int = 5, db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        performers = await service.get_top_performers(db, limit)
    except Exception as e:
        logger.exception("Error fetching top performers: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch top performers")

    set_no_cache(response)
    return performers


@router.get("/activity")
async def recent_activity(response: Response, limit: int = 8, db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        activities = await service.get_recent_activity(db, limit)
    except Exception as e:
        logger.exception("Error fetching recent activity: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch recent activity")

    set_no_cache(response)
    return activities


# ==================== SETUP ====================

@setup_router.get("/setup")
async def setup_status(db: AsyncIOMotorDatabase = Depends(get_db)):
    admins = await user_service.get_admins(db)
    return {
        "adminExists": len(admins) > 0,
        "adminCount": len(admins),
        "admins": [{"email": a["email"], "name": a.get("name"), "createdAt": a.get("createdAt")} for a in admins],
    }


@setup_router.post("/setup")
async def setup_admin(data: AdminSetupRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Bootstrap the first admin account"""
    if not config.ADMIN_SETUP_KEY or data.setupKey != config.ADMIN_SETUP_KEY:
        raise HTTPException(status_code=401, detail="Invalid setup key")

    admins = await user_service.get_admins(db)
    if admins and config.is_production():
        return {
            "message": "Admin user already exists",
            "admins": [{"email": a["email"], "name": a.get("name")} for a in admins],
        }

    if not data.adminEmail or not data.adminPassword:
        raise HTTPException(status_code=400, detail="Admin email and password are required")
    if len(data.adminPassword) < config.PASSWORD_MIN_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {config.PASSWORD_MIN_LENGTH} characters",
        )

    try:
        admin = await user_service.create_production_admin(
            db, data.adminName or "Production Admin", data.adminEmail, data.adminPassword
        )
    except Exception as e:
        logger.exception("Error in admin setup: %s", e)
        raise HTTPException(status_code=500, detail="Failed to setup admin user")

    logger.info("Admin account ready for %s", admin["email"])
    return {
        "success": True,
        "message": "Admin user created successfully",
        "admin": {"email": admin["email"], "name": admin.get("name"), "role": admin.get("role")},
    }
