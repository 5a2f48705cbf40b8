import logging
from datetime import datetime

from fastapi import APIRouter
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from proacademics import config
from proacademics.database import db_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["System"])


async def run_health_checks() -> dict:
    """
    Configuration and database checks

    healthy: every check passes, degraded: some pass, unhealthy: none pass
    """
    health = {
        "timestamp": datetime.utcnow(),
        "environment": config.ENVIRONMENT,
        "status": "unknown",
        "checks": {
            "database": False,
            "mongodb_uri": False,
            "nextauth_secret": False,
            "admin_exists": False,
        },
        "errors": [],
    }
    checks = health["checks"]

    if config.MONGODB_URI:
        checks["mongodb_uri"] = True
    else:
        health["errors"].append("MONGODB_URI environment variable is missing")

    if config.NEXTAUTH_SECRET:
        checks["nextauth_secret"] = True
    else:
        health["errors"].append("NEXTAUTH_SECRET environment variable is missing")

    try:
        checks["database"] = await db_manager.ping()
        if not checks["database"]:
            health["errors"].append("Database connection failed: not connected")
    except Exception as e:
        health["errors"].append(f"Database connection failed: {e}")

    if checks["database"]:
        try:
            db = db_manager.get_database()
            checks["admin_exists"] = await db.users.count_documents({"role": "admin"}) > 0
            if not checks["admin_exists"]:
                health["errors"].append("No admin users found in database")
        except Exception as e:
            health["errors"].append(f"User service failed: {e}")

    results = list(checks.values())
    if all(results):
        health["status"] = "healthy"
    elif any(results):
        health["status"] = "degraded"
    else:
        health["status"] = "unhealthy"
    return health


@router.get("/health")
async def health_check():
    health = await run_health_checks()
    if health["errors"]:
        logger.warning("Health check %s: %s", health["status"], "; ".join(health["errors"]))
    return JSONResponse(
        content=jsonable_encoder(health),
        status_code=200 if health["status"] == "healthy" else 500,
    )
