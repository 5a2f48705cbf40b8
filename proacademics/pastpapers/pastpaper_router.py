import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics.database import get_db
from proacademics.http_utils import set_no_cache
from proacademics.pastpapers import pastpaper_service as service
from proacademics.pastpapers.pastpaper_schemas import PastPaperCreate, QuestionCreate, QuestionUpdate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Admin Past Papers"])

PASTPAPER_REQUIRED_FIELDS = ["paperName", "board", "year", "subject", "program", "status"]


def _require_fields(data: dict):
    if not all(data.get(field) for field in PASTPAPER_REQUIRED_FIELDS):
        raise HTTPException(status_code=400, detail="Missing required fields")


# ==================== PAST PAPERS ====================

@router.get("/pastpapers")
async def list_pastpapers(
    response: Response,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    subject: Optional[str] = "all",
    board: Optional[str] = "all",
    year: Optional[str] = "all",
    status: Optional[str] = "all",
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    try:
        result = await service.get_all_pastpapers(db, page, limit, search, subject, board, year, status)
        set_no_cache(response)
        return result
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid year")
    except Exception as e:
        logger.exception("Error fetching past papers: %s", e)
        raise HTTPException(status_code=500, detail="Failed to fetch past papers")


@router.post("/pastpapers")
async def create_pastpaper(data: PastPaperCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    payload = data.dict()
    _require_fields(payload)

    try:
        past_paper = await service.create_pastpaper(db, payload)
        return {"success": True, "pastPaper": past_paper}
    except HTTPException:
        raise
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid year")
    except Exception as e:
        logger.exception("Error creating past paper: %s", e)
        raise HTTPException(status_code=500, detail="Failed to create past paper")


@router.delete("/pastpapers")
async def delete_all_pastpapers(db: AsyncIOMotorDatabase = Depends(get_db)):
    try:
        deleted = await service.delete_all_pastpapers(db)
        return {"success": True, "message": f"Deleted {deleted} past papers"}
    except Exception as e:
        logger.exception("Error deleting past papers: %s", e)
        raise HTTPException(status_code=500, detail="Failed to delete past papers")


@router.get("/pastpapers/{paper_id}")
async def get_pastpaper(paper_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    past_paper = await service.get_pastpaper_by_id(db, paper_id)
    if not past_paper:
        raise HTTPException(status_code=404, detail="Past paper not found")
    return {"success": True, "pastPaper": past_paper}


@router.put("/pastpapers/{paper_id}")
async def update_pastpaper(paper_id: str, data: PastPaperCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    payload = data.dict()
    _require_fields(payload)
    if payload.get("papers") is None:
        raise HTTPException(status_code=400, detail="Missing required fields")

    try:
        past_paper = await service.update_pastpaper(db, paper_id, payload)
    except HTTPException:
        raise
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid year")
    except Exception as e:
        logger.exception("Error updating past paper: %s", e)
        raise HTTPException(status_code=500, detail="Failed to update past paper")

    if not past_paper:
        raise HTTPException(status_code=404, detail="Past paper not found")
    return {"success": True, "pastPaper": past_paper}


@router.delete("/pastpapers/{paper_id}")
async def delete_pastpaper(paper_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    if not await service.delete_pastpaper(db, paper_id):
        raise HTTPException(status_code=404, detail="Past paper not found")
    return {"success": True, "message": "Past paper deleted successfully"}


# ==================== QUESTIONS ====================

@router.get("/pastpapers/{paper_id}/questions")
async def list_questions(paper_id: str, paper: int = 0, db: AsyncIOMotorDatabase = Depends(get_db)):
    questions = await service.get_questions(db, paper_id, paper)
    return {"success": True, "questions": questions}


@router.post("/pastpapers/{paper_id}/questions")
async def add_question(paper_id: str, data: QuestionCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    payload = data.dict()
    if data.paperIndex is None or not all(payload.get(field) for field in service.QUESTION_FIELDS):
        raise HTTPException(status_code=400, detail="All question fields and paper index are required")

    try:
        question = await service.add_question(db, paper_id, data.paperIndex, payload)
        return {"success": True, "question": question}
    except HTTPException:
        raise
    except ValueError:
        raise HTTPException(status_code=400, detail="Question number must be a number")
    except Exception as e:
        logger.exception("Error adding question: %s", e)
        raise HTTPException(status_code=500, detail="Failed to add question")


@router.put("/pastpapers/{paper_id}/questions")
async def update_question(paper_id: str, data: QuestionUpdate, db: AsyncIOMotorDatabase = Depends(get_db)):
    if not data.questionId or data.paperIndex is None:
        raise HTTPException(status_code=400, detail="Question ID and paper index are required")

    try:
        updated = await service.update_question(db, paper_id, data.paperIndex, data.questionId, data.dict())
    except HTTPException:
        raise
    except ValueError:
        raise HTTPException(status_code=400, detail="Question number must be a number")

    if not updated:
        raise HTTPException(status_code=404, detail="Question not found or failed to update")
    return {"success": True, "message": "Question updated successfully"}


@router.delete("/pastpapers/{paper_id}/questions")
async def delete_question(
    paper_id: str,
    questionId: Optional[str] = None,
    paper: int = 0,
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if not questionId:
        raise HTTPException(status_code=400, detail="Question ID is required")

    if not await service.delete_question(db, paper_id, paper, questionId):
        raise HTTPException(status_code=404, detail="Question not found or failed to delete")
    return {"success": True, "message": "Question deleted successfully"}
