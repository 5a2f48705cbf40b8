import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics.auth.auth_utils import get_current_user, get_optional_user
from proacademics.database import get_db
from proacademics.http_utils import set_no_cache
from proacademics.lessons import lesson_service as service
from proacademics.lessons.lesson_schemas import (
    LessonCreate,
    LessonImportRequest,
    LessonUpdate,
    LessonViewEvent,
)

logger = logging.getLogger(__name__)

# mounted under /api/admin
router = APIRouter(tags=["Admin Lessons"])

# mounted under /api
public_router = APIRouter(tags=["Lessons"])


# ==================== ADMIN LESSONS ====================

@router.get("/lessons")
async def list_lessons(
    response: Response,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    subject: Optional[str] = None,
    instructor: Optional[str] = None,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        result = await service.get_all_lessons(db, page, limit, search, subject, instructor)
        set_no_cache(response)
        return result
    except Exception as e:
        logger.exception("Error fetching lessons: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch lessons")


@router.post("/lessons", status_code=201)
async def create_lesson(data: LessonCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Create lesson

    title, subject and module are required (400)
    """
    if not data.title or not data.subject or not data.module:
        raise HTTPException(status_code=400, detail="Title, subject, and module are required")

    lesson = await service.create_lesson(db, data.dict())
    return {"lesson": lesson}


@router.get("/lessons/stats")
async def lesson_stats(response: Response, db: AsyncIOMotorDatabase = Depends(get_db)):
    stats = await service.get_lesson_stats(db)
    set_no_cache(response)
    return stats


@router.get("/lessons/filters/instructors")
async def lesson_instructors(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"instructors": await service.get_unique_instructors(db)}


@router.get("/lessons/filters/subjects")
async def lesson_subjects(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"subjects": await service.get_unique_subjects(db)}


@router.get("/lessons/filters/teachers")
async def lesson_teachers(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"teachers": await service.get_unique_teachers(db)}


@router.post("/lessons/import", status_code=201)
async def import_lessons(data: LessonImportRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Bulk import {lessons: [...]}, all-or-nothing on validation"""
    if not data.lessons:
        raise HTTPException(status_code=400, detail="Lessons array is required and must not be empty")

    try:
        lessons = await service.create_many_lessons(db, data.lessons)
        return {
            "message": f"Successfully imported {len(lessons)} lessons",
            "lessons": lessons,
            "count": len(lessons),
        }
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error importing lessons: %s", e)
        raise HTTPException(status_code=500, detail="Failed to import lessons")


@router.delete("/lessons/delete-all")
async def delete_all_lessons(db: AsyncIOMotorDatabase = Depends(get_db)):
    deleted = await service.delete_all_lessons(db)
    return {"message": f"Successfully deleted {deleted} lessons", "deletedCount": deleted}


@router.get("/lessons/{lesson_id}")
async def get_lesson(lesson_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    lesson = await service.get_lesson_by_id(db, lesson_id)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return {"lesson": lesson}


@router.put("/lessons/{lesson_id}")
async def update_lesson(lesson_id: str, data: LessonUpdate, db: AsyncIOMotorDatabase = Depends(get_db)):
    updates = data.dict()
    lesson_name = updates.pop("lessonName", None)
    if lesson_name and not updates.get("title"):
        updates["title"] = lesson_name

    lesson = await service.update_lesson(db, lesson_id, updates)
    if not lesson:
        raise HTTPException(status_code=404, detail="Lesson not found")
    return {"lesson": lesson}


@router.delete("/lessons/{lesson_id}")
async def delete_lesson(lesson_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    if not await service.delete_lesson(db, lesson_id):
        raise HTTPException(status_code=404, detail="Lesson not found")
    return {"message": "Lesson deleted successfully"}


# ==================== STUDENT LESSONS ====================

@public_router.post("/lessons/track-view")
async def track_view(
    event: LessonViewEvent,
    request: Request,
    user: Optional[dict] = Depends(get_optional_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if not event.lessonId or not event.action or not event.timestamp:
        raise HTTPException(status_code=400, detail="Missing required fields")

    stats = await service.track_lesson_view(
        db,
        lesson_id=event.lessonId,
        action=event.action,
        timestamp=event.timestamp,
        user_id=(user or {}).get("sub") or "anonymous",
        session_id=request.headers.get("x-session-id"),
        user_agent=request.headers.get("user-agent"),
        ip=request.headers.get("x-forwarded-for") or (request.client.host if request.client else None),
    )
    return {"success": True, "message": "View tracked successfully", "data": stats}


@public_router.get("/lessons/track-view")
async def view_stats(lessonId: Optional[str] = None, db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "data": await service.get_lesson_view_stats(db, lessonId)}


@public_router.get("/lessons/upcoming")
async def upcoming_lessons(limit: int = 5, db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "lessons": await service.get_upcoming_lessons(db, limit)}


@public_router.post("/lessons/{lesson_id}/complete")
async def complete_lesson(
    lesson_id: str,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    result = await service.mark_lesson_completed(db, lesson_id, user["sub"])
    return {"success": True, **result}
