import logging
import random
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics.auth.auth_utils import get_current_user
from proacademics.database import get_db
from proacademics.progress import progress_service as service
from proacademics.progress.progress_schemas import (
    AttemptCreate,
    LexCompleteRequest,
    LexNextRequest,
    RecommendationAction,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Progress"])


# ==================== ATTEMPTS ====================

@router.post("/progress/attempts")
async def record_attempt(
    data: AttemptCreate,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    result = await service.record_question_attempt(
        db, user["sub"], data.questionId, data.correct, data.timeTaken, data.watchedSolution
    )
    return {"success": True, "data": result}


@router.get("/progress/attempts")
async def my_attempts(
    limit: int = 50,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    return {"success": True, "attempts": await service.get_student_attempts(db, user["sub"], limit)}


@router.get("/progress/questions")
async def random_questions(
    count: int = 10,
    subject: Optional[str] = None,
    difficulty: Optional[str] = None,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if count < 1:
        raise HTTPException(status_code=400, detail="count must be positive")
    return {"success": True, "questions": await service.get_random_questions(db, count, subject, difficulty)}


# ==================== BADGES & LEADERBOARD ====================

@router.get("/progress/badges")
async def my_badges(user: dict = Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "badges": await service.get_student_badges(db, user["sub"])}


@router.get("/leaderboard")
async def leaderboard(limit: int = 10, db: AsyncIOMotorDatabase = Depends(get_db)):
    return {"success": True, "leaderboard": await service.get_current_leaderboard(db, limit)}


# ==================== LEX SESSIONS ====================

@router.post("/lex/session")
async def start_session(user: dict = Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    """Build a 20-question session from the student's history"""
    try:
        session = await service.start_lex_session(db, user["sub"])
    except Exception as e:
        logger.exception("Error starting Lex session: %s", e)
        raise HTTPException(status_code=500, detail="Failed to start session")
    return {"success": True, **session}


@router.post("/lex/session/next")
async def next_question(
    data: LexNextRequest,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    question = await service.next_lex_question(db, data.questionId, data.wasCorrect)
    return {"success": True, "question": question}


@router.post("/lex/session/{session_id}/complete")
async def complete_session(
    session_id: str,
    data: LexCompleteRequest,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    result = await service.complete_lex_session(db, session_id, user["sub"], [r.dict() for r in data.results])
    if not result:
        raise HTTPException(status_code=404, detail="Session not found")
    return {"success": True, **result}


# ==================== RECOMMENDATIONS ====================

@router.get("/lex/recommendations")
async def recommendations(user: dict = Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    student = await db.users.find_one({"id": user["sub"]}) or {}
    recs = service.build_recommendations(student)
    primary = next((r for r in recs if r["priority"] == "high"), recs[0] if recs else None)

    return {
        "success": True,
        "recommendation": primary,
        "alternativeRecommendations": [r for r in recs if r is not primary],
        "studentPerformance": {
            "currentCWA": student.get("currentWorkingAverage") or 0,
            "studyStreak": student.get("studyStreak") or 0,
            "weakAreasCount": len(student.get("weakTopics") or []),
            "strongAreasCount": len(student.get("strongTopics") or []),
        },
    }


@router.post("/lex/recommendations")
async def recommendation_action(
    data: RecommendationAction,
    user: dict = Depends(get_current_user),
    db: AsyncIOMotorDatabase = Depends(get_db),
):
    if data.action == "accept_recommendation":
        await db.lexLogs.insert_one({
            "studentId": user["sub"],
            "action": data.action,
            "topicName": data.topicName,
            "createdAt": datetime.utcnow(),
        })
        return {
            "success": True,
            "message": "Recommendation accepted",
            "nextAction": "redirect_to_lex_session",
        }

    if data.action == "refresh_recommendation":
        student = await db.users.find_one({"id": user["sub"]}) or {}
        recs = service.build_recommendations(student)
        return {"success": True, "recommendation": random.choice(recs) if recs else None}

    raise HTTPException(status_code=400, detail="Invalid action")
