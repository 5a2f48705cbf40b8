import logging
import time
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics import config
from proacademics.auth.auth_utils import require_teacher
from proacademics.database import get_db
from proacademics.errors import UserAlreadyExistsError
from proacademics.http_utils import set_no_cache
from proacademics.users import student_service, user_service
from proacademics.users.user_schemas import StudentCreate

logger = logging.getLogger(__name__)

# mounted under /api/admin
router = APIRouter(tags=["Admin Students"])

# mounted under /api
public_router = APIRouter(tags=["Students"])


@router.get("/students")
async def admin_list_students(response: Response, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Students in the admin table shape"""
    try:
        students = await db.users.find({"role": "student"}).sort("createdAt", -1).to_list(length=None)
        now = datetime.utcnow()
        rows = [student_service.to_admin_row(s, now) for s in students]
    except Exception as e:
        logger.exception("Error fetching students: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch students")

    set_no_cache(response)
    return {
        "students": rows,
        "meta": {
            "count": len(rows),
            "timestamp": now.isoformat(),
            "environment": config.ENVIRONMENT,
        },
    }


@public_router.get("/students")
async def list_students(
    user: dict = Depends(require_teacher),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"students": await user_service.get_all_students(db)}


@public_router.post("/students", status_code=201)
async def create_student(
    data: StudentCreate,
    user: dict = Depends(require_teacher),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if not data.name or not data.email or not data.password:
        raise HTTPException(status_code=400, detail="Name, email and password are required")

    payload = {k: v for k, v in data.dict().items() if v is not None}
    payload["studentId"] = f"STU{int(time.time() * 1000)}"

    try:
        student = await student_service.create_student(db, payload)
    except UserAlreadyExistsError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("%s created student %s", user.get("email"), student["email"])
    return {"student": student}
