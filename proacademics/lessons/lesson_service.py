import logging
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from proacademics import config
from proacademics.database import (
    build_list_query,
    distinct_values,
    generate_id,
    paginate,
    serialize_many,
    serialize_mongo,
)
from proacademics.progress.progress_service import log_xp

logger = logging.getLogger(__name__)

LESSON_SEARCH_FIELDS = ["title", "subject", "module", "instructor", "description"]
MAX_VIEW_HISTORY = 50


def _new_lesson(data: dict) -> dict:
    now = datetime.utcnow()
    return {
        "id": generate_id("lesson"),
        "title": data["title"],
        "topic": data["title"],
        "subject": data["subject"],
        "module": data.get("module") or "",
        "program": data.get("program") or "",
        "subtopic": data.get("subtopic") or "",
        "type": data.get("type") or "Lesson",
        "instructor": data.get("instructor") or "",
        "teacher": data.get("teacher") or data.get("instructor") or "",
        "duration": data.get("duration") or "",
        "description": data.get("description") or "",
        "videoUrl": data.get("videoUrl") or "",
        "zoomLink": data.get("zoomLink") or "",
        "scheduledDate": data.get("scheduledDate") or "",
        "week": data.get("week") or "",
        "grade": data.get("grade") or "",
        "status": data.get("status") or "draft",
        "xpValue": data.get("xpValue") or config.XP_REWARDS["LESSON_COMPLETION"],
        "createdAt": now,
        "updatedAt": now,
    }


# ==================== LESSON CRUD ====================

async def get_all_lessons(
    db: AsyncIOMotorDatabase,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    subject: Optional[str] = None,
    instructor: Optional[str] = None,
) -> dict:
    query = build_list_query(search, LESSON_SEARCH_FIELDS, {"subject": subject, "instructor": instructor})
    lessons, total, total_pages = await paginate(db.lessons, query, page, limit)
    return {
        "lessons": lessons,
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
    }


async def get_lesson_by_id(db: AsyncIOMotorDatabase, lesson_id: str) -> Optional[dict]:
    return serialize_mongo(await db.lessons.find_one({"id": lesson_id}))


async def create_lesson(db: AsyncIOMotorDatabase, data: dict) -> dict:
    lesson = _new_lesson(data)
    await db.lessons.insert_one(lesson)
    logger.info("Created lesson %s (%s)", lesson["id"], lesson["title"])
    return serialize_mongo(lesson)


async def create_many_lessons(db: AsyncIOMotorDatabase, rows: List[dict]) -> List[dict]:
    """
    Bulk insert from import rows
    Every row needs title and subject, otherwise 400 before anything is written
    """
    lessons = []
    for row in rows:
        title = row.get("title") or ""
        subject = row.get("subject") or ""
        if not title or not subject:
            raise HTTPException(
                status_code=400,
                detail=f'Missing required fields: title, subject. Found: title="{title}", subject="{subject}"'
            )
        lessons.append(_new_lesson(row))

    if lessons:
        await db.lessons.insert_many(lessons)
    return serialize_many(lessons)


async def update_lesson(db: AsyncIOMotorDatabase, lesson_id: str, data: dict) -> Optional[dict]:
    """Partial update, returns the lesson or None when it does not exist"""
    updates = {k: v for k, v in data.items() if v is not None}
    if "title" in updates:
        updates["topic"] = updates["title"]
    if "type" in updates and not updates["type"]:
        updates["type"] = "Lesson"
    if "status" in updates and not updates["status"]:
        updates["status"] = "draft"
    updates["updatedAt"] = datetime.utcnow()

    result = await db.lessons.find_one_and_update(
        {"id": lesson_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_mongo(result)


async def delete_lesson(db: AsyncIOMotorDatabase, lesson_id: str) -> bool:
    result = await db.lessons.delete_one({"id": lesson_id})
    return result.deleted_count > 0


async def delete_all_lessons(db: AsyncIOMotorDatabase) -> int:
    result = await db.lessons.delete_many({})
    logger.warning("Deleted all lessons (%d)", result.deleted_count)
    return result.deleted_count


# ==================== STATS & FILTERS ====================

async def get_lesson_stats(db: AsyncIOMotorDatabase) -> dict:
    total = await db.lessons.count_documents({})
    active = await db.lessons.count_documents({"status": {"$in": ["active", "published"]}})
    draft = await db.lessons.count_documents({"status": "draft"})
    instructors = await distinct_values(db.lessons, "instructor")

    return {
        "totalLessons": total,
        "activeLessons": active,
        "draftLessons": draft,
        "totalInstructors": len(instructors),
        "bySubject": await _count_by(db, "subject"),
        "byInstructor": await _count_by(db, "instructor"),
    }


async def _count_by(db: AsyncIOMotorDatabase, field: str) -> List[dict]:
    rows = await db.lessons.aggregate([
        {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
        {"$sort": {"count": -1}},
    ]).to_list(length=None)
    return [{field: row["_id"], "count": row["count"]} for row in rows if row["_id"]]


async def get_unique_instructors(db: AsyncIOMotorDatabase) -> List[str]:
    return await distinct_values(db.lessons, "instructor")


async def get_unique_subjects(db: AsyncIOMotorDatabase) -> List[str]:
    return await distinct_values(db.lessons, "subject")


async def get_unique_teachers(db: AsyncIOMotorDatabase) -> List[str]:
    return await distinct_values(db.lessons, "teacher")


async def get_upcoming_lessons(db: AsyncIOMotorDatabase, limit: int = 5, today: Optional[str] = None) -> List[dict]:
    """Lessons scheduled today or later, soonest first (scheduledDate is YYYY-MM-DD)"""
    today = today or datetime.utcnow().date().isoformat()
    docs = await db.lessons.find({"scheduledDate": {"$gte": today}}) \
        .sort("scheduledDate", 1).limit(limit).to_list(length=limit)
    return serialize_many(docs)


# ==================== COMPLETION ====================

async def mark_lesson_completed(db: AsyncIOMotorDatabase, lesson_id: str, student_id: str) -> dict:
    """Record completion and award the lesson's XP once"""
    lesson = await db.lessons.find_one({"id": lesson_id})
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")

    if await db.lessonCompletions.find_one({"lessonId": lesson_id, "studentId": student_id}):
        return {"alreadyCompleted": True, "xpEarned": 0}

    now = datetime.utcnow()
    await db.lessonCompletions.insert_one({
        "lessonId": lesson_id,
        "studentId": student_id,
        "subject": lesson.get("subject"),
        "completionDate": now,
        "createdAt": now,
    })

    xp = lesson.get("xpValue") or config.XP_REWARDS["LESSON_COMPLETION"]
    progress = await log_xp(db, student_id, "lesson_completed", xp, f"lesson_{lesson_id}")
    return {"alreadyCompleted": False, "xpEarned": xp, **progress}


# ==================== VIEW TRACKING ====================

async def track_lesson_view(
    db: AsyncIOMotorDatabase,
    lesson_id: str,
    action: str,
    timestamp: str,
    user_id: str = "anonymous",
    session_id: Optional[str] = None,
    user_agent: Optional[str] = None,
    ip: Optional[str] = None,
) -> dict:
    await db.lessonViews.insert_one({
        "lessonId": lesson_id,
        "userId": user_id,
        "sessionId": session_id or generate_id("session"),
        "action": action,
        "timestamp": timestamp,
        "userAgent": user_agent,
        "ip": ip or "unknown",
        "createdAt": datetime.utcnow(),
    })

    total = await db.lessonViews.count_documents({"lessonId": lesson_id})
    viewers = await db.lessonViews.distinct("userId", {"lessonId": lesson_id})
    return {"totalViews": total, "uniqueViewers": len(viewers), "timestamp": timestamp}


async def get_lesson_view_stats(db: AsyncIOMotorDatabase, lesson_id: Optional[str] = None) -> dict:
    if lesson_id:
        total = await db.lessonViews.count_documents({"lessonId": lesson_id})
        viewers = await db.lessonViews.distinct("userId", {"lessonId": lesson_id})
        history = await db.lessonViews.find({"lessonId": lesson_id}, {"_id": 0}) \
            .sort("createdAt", -1).limit(MAX_VIEW_HISTORY).to_list(length=MAX_VIEW_HISTORY)
        return {
            "lessonId": lesson_id,
            "totalViews": total,
            "uniqueViewers": len(viewers),
            "viewHistory": list(reversed(history)),
        }

    rows = await db.lessonViews.aggregate([
        {"$group": {
            "_id": "$lessonId",
            "totalViews": {"$sum": 1},
            "viewers": {"$addToSet": "$userId"},
            "lastViewed": {"$max": "$timestamp"},
        }},
        {"$sort": {"totalViews": -1}},
    ]).to_list(length=None)

    lessons = [
        {
            "lessonId": row["_id"],
            "totalViews": row["totalViews"],
            "uniqueViewers": len(row["viewers"]),
            "lastViewed": row.get("lastViewed"),
        }
        for row in rows
    ]
    return {
        "lessons": lessons,
        "totalLessonsViewed": len(lessons),
        "totalViewsAcrossAllLessons": sum(l["totalViews"] for l in lessons),
    }
