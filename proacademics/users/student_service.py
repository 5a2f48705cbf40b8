import logging
from datetime import datetime, timedelta
from typing import List, Optional

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics import config
from proacademics.progress.lex_algorithm import calculate_cwa, calculate_level
from proacademics.users.user_service import create_user, public_user

logger = logging.getLogger(__name__)


async def create_student(db: AsyncIOMotorDatabase, student_data: dict) -> dict:
    """Students are users with role student"""
    data = dict(student_data)
    data["role"] = "student"
    data.setdefault("lastLogin", datetime.utcnow())
    return await create_user(db, data)


async def get_student_by_id(db: AsyncIOMotorDatabase, student_id: str) -> Optional[dict]:
    return await db.users.find_one({"id": student_id, "role": "student"})


async def get_students_by_program(db: AsyncIOMotorDatabase, program: str) -> List[dict]:
    students = await db.users.find({"role": "student", "programs": program}).to_list(length=None)
    return [public_user(s) for s in students]


# ==================== PROGRESS COUNTERS ====================

async def update_student_xp(db: AsyncIOMotorDatabase, student_id: str, xp_amount: int) -> dict:
    """
    Add XP and recompute level
    Returns {"xp", "level", "leveledUp"}
    """
    student = await db.users.find_one({"id": student_id})
    if not student:
        raise HTTPException(status_code=404, detail="Student not found")

    new_xp = (student.get("xp") or 0) + xp_amount
    new_level = calculate_level(new_xp)

    await db.users.update_one(
        {"id": student_id},
        {"$set": {"xp": new_xp, "level": new_level, "updatedAt": datetime.utcnow()}}
    )
    return {
        "xp": new_xp,
        "level": new_level,
        "leveledUp": new_level > (student.get("level") or 1),
    }


async def update_student_cwa(db: AsyncIOMotorDatabase, student_id: str) -> Optional[float]:
    """CWA over the most recent attempts, None when there are none"""
    attempts = await db.questionAttempts.find({"studentId": student_id}) \
        .sort("attemptDate", -1) \
        .limit(config.CWA_WINDOW) \
        .to_list(length=config.CWA_WINDOW)

    if not attempts:
        return None

    cwa = calculate_cwa(attempts)
    await db.users.update_one(
        {"id": student_id},
        {"$set": {"currentWorkingAverage": cwa, "updatedAt": datetime.utcnow()}}
    )
    return cwa


async def update_study_streak(db: AsyncIOMotorDatabase, student_id: str, now: Optional[datetime] = None) -> int:
    """
    Activity today extends the streak. No activity today or yesterday breaks it.
    Activity means an xpLogs entry for the student.
    """
    now = now or datetime.utcnow()
    student = await db.users.find_one({"id": student_id})
    if not student:
        return 0

    streak = student.get("studyStreak") or 0
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    yesterday = today - timedelta(days=1)

    today_activity = await db.xpLogs.find_one({"studentId": student_id, "date": {"$gte": today}})
    if today_activity:
        streak += 1
        await db.users.update_one(
            {"id": student_id},
            {"$set": {"studyStreak": streak, "lastStudyDate": now, "updatedAt": now}}
        )
        return streak

    yesterday_activity = await db.xpLogs.find_one({
        "studentId": student_id,
        "date": {"$gte": yesterday, "$lt": today},
    })
    if not yesterday_activity and streak > 0:
        streak = 0
        await db.users.update_one(
            {"id": student_id},
            {"$set": {"studyStreak": 0, "updatedAt": now}}
        )
    return streak


# ==================== ADMIN VIEW ====================

def _date_only(value) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    return datetime.utcnow().date().isoformat()


def to_admin_row(student: dict, now: Optional[datetime] = None) -> dict:
    """Shape a student document for the admin students table"""
    now = now or datetime.utcnow()
    last_login = student.get("lastLogin")
    is_active = isinstance(last_login, datetime) and now - last_login < timedelta(days=7)

    return {
        "id": student.get("id"),
        "name": student.get("name"),
        "nickname": student.get("nickname") or "",
        "email": student.get("email"),
        "phone": student.get("phone") or "",
        "dateOfBirth": student.get("dateOfBirth") or "",
        "schoolName": student.get("schoolName") or "",
        "uniqueToken": student.get("uniqueToken") or "",
        "avatar": student.get("avatar") or "/placeholder.svg?height=40&width=40",
        "level": student.get("level") or 1,
        "xp": student.get("xp") or 0,
        "joinDate": _date_only(student.get("createdAt")),
        "lastActive": _date_only(last_login or student.get("updatedAt")),
        "status": "active" if is_active else "inactive",
        "grade": student.get("predictedGrade") or "N/A",
        "subjects": student.get("subjects") or [],
        "completionRate": student.get("currentWorkingAverage") or 0,
        "studyStreak": student.get("studyStreak") or 0,
        "role": student.get("role"),
        "timezone": student.get("timezone") or "",
        "userAgent": student.get("userAgent") or "",
        "deviceFingerprint": student.get("deviceFingerprint") or "",
    }
