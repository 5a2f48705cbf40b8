import logging

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from proacademics import config
from proacademics.admin.dashboard_router import router as dashboard_router, setup_router
from proacademics.ai.ai_router import router as ai_router
from proacademics.auth.auth_router import router as auth_router
from proacademics.auth.auth_utils import require_admin
from proacademics.automations.cron_router import router as cron_router
from proacademics.database import create_indexes, db_manager
from proacademics.errors import register_exception_handlers
from proacademics.homework.homework_router import public_router as homework_public_router, router as homework_router
from proacademics.lessons.lesson_router import public_router as lesson_public_router, router as lesson_router
from proacademics.pastpapers.pastpaper_router import router as pastpaper_router
from proacademics.progress.progress_router import router as progress_router
from proacademics.subjects.subject_router import router as subject_router
from proacademics.system.health_router import router as health_router
from proacademics.system.zoom_router import router as zoom_router
from proacademics.topic_vault.topic_vault_router import router as topic_vault_router
from proacademics.users import user_service
from proacademics.users.student_router import public_router as student_public_router, router as student_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="ProAcademics API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.on_event("startup")
async def startup_event():
    db_manager.connect()
    db = db_manager.get_database()
    await create_indexes(db)

    seeded = await user_service.seed_demo_users(db)
    if seeded:
        logger.info("Seeded %d demo users", seeded)


@app.on_event("shutdown")
async def shutdown_event():
    db_manager.disconnect()


# ==================== ROUTER REGISTRATION ====================
ADMIN_ONLY = [Depends(require_admin)]

app.include_router(dashboard_router, prefix="/api/admin", dependencies=ADMIN_ONLY)
app.include_router(student_router, prefix="/api/admin", dependencies=ADMIN_ONLY)
app.include_router(subject_router, prefix="/api/admin", dependencies=ADMIN_ONLY)
app.include_router(lesson_router, prefix="/api/admin", dependencies=ADMIN_ONLY)
app.include_router(homework_router, prefix="/api/admin", dependencies=ADMIN_ONLY)
app.include_router(topic_vault_router, prefix="/api/admin", dependencies=ADMIN_ONLY)
app.include_router(pastpaper_router, prefix="/api/admin", dependencies=ADMIN_ONLY)
app.include_router(setup_router, prefix="/api/admin")

app.include_router(auth_router, prefix="/api")
app.include_router(student_public_router, prefix="/api")
app.include_router(lesson_public_router, prefix="/api")
app.include_router(homework_public_router, prefix="/api")
app.include_router(progress_router, prefix="/api")
app.include_router(ai_router, prefix="/api")
app.include_router(cron_router, prefix="/api")
app.include_router(zoom_router, prefix="/api")
app.include_router(health_router, prefix="/api")
# ============================================================
