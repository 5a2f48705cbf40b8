import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, Response, UploadFile
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics.auth.auth_utils import get_current_user
from proacademics.database import get_db
from proacademics.errors import CsvImportError
from proacademics.homework import homework_service as service
from proacademics.homework.homework_import import parse_homework_csv
from proacademics.homework.homework_schemas import (
    HomeworkCreate,
    HomeworkProgressUpdate,
    HomeworkSubmission,
    HomeworkUpdate,
)
from proacademics.http_utils import set_no_cache

logger = logging.getLogger(__name__)

# mounted under /api/admin
router = APIRouter(tags=["Admin Homework"])

# mounted under /api
public_router = APIRouter(tags=["Homework"])


# ==================== ADMIN HOMEWORK ====================

@router.get("/homework")
async def list_homework(
    response: Response,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    subject: Optional[str] = "all",
    program: Optional[str] = "all",
    status: Optional[str] = "all",
    level: Optional[str] = "all",
    teacher: Optional[str] = "all",
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        data = await service.get_all_homework(db, page, limit, search, subject, program, status, level, teacher)
        set_no_cache(response)
        return {"success": True, "data": data}
    except Exception as e:
        logger.exception("Error fetching homework: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch homework")


@router.post("/homework")
async def create_homework(data: HomeworkCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    homework = await service.create_homework(db, data.dict())
    return {"success": True, "data": homework}


@router.get("/homework/stats")
async def homework_stats(response: Response, db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        stats = await service.get_homework_stats(db)
        set_no_cache(response)
        return {"success": True, "data": stats}
    except Exception as e:
        logger.exception("Error fetching homework stats: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch homework stats")


@router.get("/homework/filters/subjects")
async def homework_subjects(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "data": await service.get_unique_subjects(db)}


@router.get("/homework/filters/teachers")
async def homework_teachers(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "data": await service.get_unique_teachers(db)}


@router.get("/homework/filters/programs")
async def homework_programs(db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "data": await service.get_unique_programs(db)}


@router.post("/homework/import")
async def import_homework(file: UploadFile = File(None), db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Bulk import from CSV, one question per row

    Rows with the wrong column count or bad dates are reported, not fatal.
    """
    if file is None:
        raise HTTPException(status_code=400, detail="No file provided")

    raw = await file.read()
    try:
        parsed = parse_homework_csv(raw.decode("utf-8", errors="replace"))
    except CsvImportError as e:
        raise HTTPException(status_code=400, detail={"error": e.message, **e.details})

    try:
        inserted = await service.insert_many_homework(db, parsed["homework"])
    except Exception as e:
        logger.exception("Error importing homework: %s", e)
        raise HTTPException(status_code=500, detail="Failed to import homework")

    logger.info(
        "Imported %d homework from %s (%d valid rows, %d invalid)",
        inserted, file.filename, parsed["validRows"], len(parsed["invalidRows"]),
    )
    return {
        "success": True,
        "data": {
            "insertedCount": inserted,
            "validRows": parsed["validRows"],
            "invalidRows": parsed["invalidRows"],
            "totalHomework": len(parsed["homework"]),
            "errors": parsed["invalidRows"],
        },
    }


@router.get("/homework/{homework_id}")
async def get_homework(homework_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    homework = await service.get_homework_by_id(db, homework_id)
    if not homework:
        raise HTTPException(status_code=404, detail="Homework not found")
    return {"success": True, "data": homework}


@router.put("/homework/{homework_id}")
async def update_homework(homework_id: str, data: HomeworkUpdate, db: AsyncIOMotorDatabase = Depends(get_db)):
    homework = await service.update_homework(db, homework_id, data.dict())
    if not homework:
        raise HTTPException(status_code=404, detail="Homework not found")
    return {"success": True, "data": homework}


@router.delete("/homework/{homework_id}")
async def delete_homework(homework_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    if not await service.delete_homework(db, homework_id):
        raise HTTPException(status_code=404, detail="Homework not found")
    return {"success": True, "message": "Homework deleted successfully"}


# ==================== STUDENT HOMEWORK ====================

@public_router.get("/homework")
async def my_homework(
    limit: int = 10,
    status: Optional[str] = None,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    result = await service.get_student_homework(db, user["sub"], status, limit)
    return {
        **result,
        "user": {"id": user["sub"], "name": user.get("name"), "role": user.get("role")},
    }


@public_router.post("/homework")
async def update_my_homework(
    data: HomeworkProgressUpdate,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    homework = await service.update_homework_progress(db, user["sub"], data.homeworkId, data.progress, data.status)
    return {
        "success": True,
        "message": "Homework updated successfully",
        "data": {"progress": homework.get("progress"), "completionStatus": homework.get("completionStatus")},
    }


@public_router.post("/homework/submit")
async def submit_homework(
    data: HomeworkSubmission,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """Mark a whole homework for the signed-in student and award XP by score band"""
    if not data.homeworkId or data.answers is None:
        raise HTTPException(status_code=400, detail="Missing required fields")

    try:
        result = await service.submit_homework(db, user["sub"], data.homeworkId, data.answers)
        return {"success": True, "result": result, "message": "Homework marked successfully by AI"}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Homework submission error: %s", e)
        raise HTTPException(status_code=500, detail="Failed to process homework submission")


@public_router.post("/homework/{homework_id}/submit")
async def submit_answer(
    homework_id: str,
    payload: dict = Body(...),
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    """Save one answer while the student works through the homework"""
    question_index = payload.get("questionIndex")
    answer = payload.get("answer")
    time_spent = payload.get("timeSpent")

    if (
        not isinstance(question_index, int) or isinstance(question_index, bool)
        or not isinstance(answer, str)
        or not isinstance(time_spent, (int, float)) or isinstance(time_spent, bool)
    ):
        raise HTTPException(status_code=400, detail="Invalid request data")

    data = await service.submit_answer(
        db, homework_id, question_index, answer, time_spent, student_id=user.get("sub"),
    )
    return {"success": True, "message": "Answer submitted successfully", "data": data}
