import logging

from fastapi import APIRouter, Depends, HTTPException, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics.database import get_db
from proacademics.http_utils import set_no_cache
from proacademics.subjects import subject_service as service
from proacademics.subjects.subject_schemas import (
    ProgramCreate,
    ProgramUpdate,
    SubjectCreate,
    SubjectUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin Subjects"])


# ==================== SUBJECTS ====================

@router.get("/subjects")
async def list_subjects(response: Response, db: AsyncIOMotorDatabase = Depends(get_db)):
    """All subjects, each with its programs"""
    try:
        subjects = await service.get_all_subjects_with_programs(db)
        set_no_cache(response)
        return {"success": True, "subjects": subjects}
    except Exception as e:
        logger.exception("Error fetching subjects: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch subjects")


@router.post("/subjects")
async def create_subject(data: SubjectCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Create subject

    Server enforces:
    - name and color required (400)
    - unique name, case-insensitive (409)
    """
    if not data.name or not data.color:
        raise HTTPException(status_code=400, detail="Name and color are required")

    try:
        if await service.check_subject_name_exists(db, data.name):
            raise HTTPException(
                status_code=409,
                detail="A subject with this name already exists. Please choose a different name."
            )
        subject = await service.create_subject(db, data.dict())
        return {"success": True, "subject": subject}
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Error creating subject: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create subject")


@router.get("/subjects/programs-map")
async def subject_programs_map(response: Response, db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        subject_programs = await service.get_subject_programs_map(db)
        subject_colors = await service.get_subject_colors_map(db)
        set_no_cache(response)
        return {"success": True, "subjectPrograms": subject_programs, "subjectColors": subject_colors}
    except Exception as e:
        logger.exception("Error fetching subject programs map: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch subject programs map")


@router.get("/subjects/{subject_id}")
async def get_subject(subject_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    subject = await service.get_subject_by_id(db, subject_id)
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    return {"success": True, "subject": subject}


@router.put("/subjects/{subject_id}")
async def update_subject(subject_id: str, data: SubjectUpdate, db: AsyncIOMotorDatabase = Depends(get_db)):
    if not data.name or not data.color:
        raise HTTPException(status_code=400, detail="Name and color are required")

    if await service.check_subject_name_exists(db, data.name, exclude_id=subject_id):
        raise HTTPException(status_code=409, detail="A subject with this name already exists")

    subject = await service.update_subject(db, subject_id, data.dict())
    if not subject:
        raise HTTPException(status_code=404, detail="Subject not found")
    return {"success": True, "subject": subject}


@router.delete("/subjects/{subject_id}")
async def delete_subject(subject_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Delete subject and its programs"""
    if not await service.delete_subject(db, subject_id):
        raise HTTPException(status_code=404, detail="Subject not found")
    return {"success": True, "message": "Subject and associated programs deleted successfully"}


# ==================== PROGRAMS ====================

@router.get("/programs")
async def list_programs(response: Response, subjectId: str = None, db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        if subjectId:
            programs = await service.get_programs_by_subject_id(db, subjectId)
        else:
            programs = await service.get_all_programs(db)
        set_no_cache(response)
        return {"success": True, "programs": programs}
    except Exception as e:
        logger.exception("Error fetching programs: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch programs")


@router.post("/programs")
async def create_program(data: ProgramCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    """
    Create program

    Server enforces:
    - name, subjectId and color required (400)
    - unique name, case-insensitive (409)
    """
    if not data.name or not data.subjectId or not data.color:
        raise HTTPException(status_code=400, detail="Name, subjectId, and color are required")

    if await service.check_program_name_exists(db, data.name):
        raise HTTPException(
            status_code=409,
            detail="A program with this name already exists. Please choose a different name."
        )

    program = await service.create_program(db, data.dict())
    return {"success": True, "program": program}


@router.get("/programs/duplicates")
async def list_duplicate_programs(db: AsyncIOMotorDatabase = Depends(get_db)):
    duplicates = await service.find_duplicate_programs(db)
    total = sum(group["count"] for group in duplicates)
    return {
        "success": True,
        "duplicates": duplicates,
        "duplicateCount": len(duplicates),
        "totalDuplicatePrograms": total,
        "message": f"Found {len(duplicates)} duplicate program names" if duplicates else "No duplicate programs found",
    }


@router.delete("/programs/duplicates")
async def remove_duplicate_programs(db: AsyncIOMotorDatabase = Depends(get_db)):
    result = await service.delete_duplicate_programs(db)
    return {"success": True, **result}


@router.get("/programs/{program_id}")
async def get_program(program_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    program = await service.get_program_by_id(db, program_id)
    if not program:
        raise HTTPException(status_code=404, detail="Program not found")
    return {"success": True, "program": program}


@router.put("/programs/{program_id}")
async def update_program(program_id: str, data: ProgramUpdate, db: AsyncIOMotorDatabase = Depends(get_db)):
    if not data.name or not data.subjectId or not data.color:
        raise HTTPException(status_code=400, detail="Name, subjectId, and color are required")

    program = await service.update_program(db, program_id, data.dict())
    if not program:
        raise HTTPException(status_code=404, detail="Program not found")
    return {"success": True, "program": program}


@router.delete("/programs/{program_id}")
async def delete_program(program_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    if not await service.delete_program(db, program_id):
        raise HTTPException(status_code=404, detail="Program not found")
    return {"success": True, "message": "Program deleted successfully"}
