"""
Learning progress service
Question attempts, XP logging, badges, weekly leaderboard, Lex sessions
"""

import logging
import random
from datetime import datetime, timedelta
from typing import List, Optional

from bson import ObjectId
from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics.database import serialize_many, serialize_mongo
from proacademics.errors import BadgeError
from proacademics.progress.lex_algorithm import LexAlgorithm, calculate_xp
from proacademics.users.student_service import (
    update_student_cwa,
    update_student_xp,
)

logger = logging.getLogger(__name__)

FAST_ATTEMPT_SECONDS = 30


# ==================== XP ====================

async def log_xp(
    db: AsyncIOMotorDatabase,
    student_id: str,
    action: str,
    xp_amount: int,
    trigger: str = "",
) -> dict:
    """Record an XP gain and apply it to the student"""
    now = datetime.utcnow()
    await db.xpLogs.insert_one({
        "studentId": student_id,
        "action": action,
        "xpAmount": xp_amount,
        "trigger": trigger,
        "date": now,
        "createdAt": now,
        "updatedAt": now,
    })
    return await update_student_xp(db, student_id, xp_amount)


# ==================== QUESTIONS & ATTEMPTS ====================

async def get_random_questions(
    db: AsyncIOMotorDatabase,
    count: int = 10,
    subject: Optional[str] = None,
    difficulty: Optional[str] = None,
) -> List[dict]:
    match = {}
    if subject:
        match["subject"] = subject
    if difficulty:
        match["difficulty"] = difficulty

    pipeline = [{"$match": match}, {"$sample": {"size": count}}]
    docs = await db.questions.aggregate(pipeline).to_list(length=count)
    return serialize_many(docs)


async def get_student_attempts(db: AsyncIOMotorDatabase, student_id: str, limit: Optional[int] = None) -> List[dict]:
    cursor = db.questionAttempts.find({"studentId": student_id}).sort("attemptDate", -1)
    if limit:
        cursor = cursor.limit(limit)
    return serialize_many(await cursor.to_list(length=limit))


async def record_question_attempt(
    db: AsyncIOMotorDatabase,
    student_id: str,
    question_id: str,
    correct: bool,
    time_taken: float,
    watched_solution: bool = False,
) -> dict:
    """
    Store an attempt, award XP for a correct answer and refresh CWA

    Answers under 30 seconds earn the time bonus.
    """
    question = await db.questions.find_one({"id": question_id})
    if not question:
        raise HTTPException(status_code=404, detail="Question not found")
    now = datetime.utcnow()

    attempt = {
        "studentId": student_id,
        "questionId": question_id,
        "subject": question.get("subject"),
        "topic": question.get("topic"),
        "correct": correct,
        "timeTaken": time_taken,
        "watchedSolution": watched_solution,
        "attemptDate": now,
        "createdAt": now,
    }
    result = await db.questionAttempts.insert_one(attempt)

    xp = calculate_xp(question.get("difficulty", ""), correct, time_bonus=time_taken < FAST_ATTEMPT_SECONDS)
    progress = None
    if xp:
        progress = await log_xp(db, student_id, "question_correct", xp, f"question_{question_id}")

    cwa = await update_student_cwa(db, student_id)

    return {
        "attemptId": str(result.inserted_id),
        "correct": correct,
        "xpEarned": xp,
        "currentWorkingAverage": cwa,
        "progress": progress,
    }


# ==================== BADGES ====================

async def get_student_badges(db: AsyncIOMotorDatabase, student_id: str) -> List[dict]:
    docs = await db.studentBadges.find({"studentId": student_id}).to_list(length=None)
    return serialize_many(docs)


async def award_badge(db: AsyncIOMotorDatabase, student_id: str, badge_id: str) -> dict:
    """Raises BadgeError for a duplicate or an unknown badge"""
    if await db.studentBadges.find_one({"studentId": student_id, "badgeId": badge_id}):
        raise BadgeError("Student already has this badge")

    badge = None
    if ObjectId.is_valid(badge_id):
        badge = await db.badges.find_one({"_id": ObjectId(badge_id)})
    if not badge:
        raise BadgeError("Badge not found")

    now = datetime.utcnow()
    record = {
        "studentId": student_id,
        "badgeId": badge_id,
        "title": badge.get("title"),
        "dateEarned": now,
        "createdAt": now,
        "updatedAt": now,
    }
    await db.studentBadges.insert_one(record)

    xp_reward = badge.get("xpReward") or 0
    if xp_reward:
        await log_xp(db, student_id, "badge_earned", xp_reward, f"badge_{badge_id}")

    logger.info("Awarded badge %s to %s", badge.get("title"), student_id)
    return serialize_mongo(record)


async def check_badge_eligibility(db: AsyncIOMotorDatabase, student_id: str) -> List[str]:
    """Badge ids the student now qualifies for but has not earned"""
    student = await db.users.find_one({"id": student_id})
    if not student:
        raise BadgeError("Student not found")

    earned = {b["badgeId"] for b in await db.studentBadges.find({"studentId": student_id}).to_list(length=None)}
    attempts = await db.questionAttempts.find({"studentId": student_id}).to_list(length=None)
    completions = await db.lessonCompletions.find({"studentId": student_id}).to_list(length=None)

    eligible = []
    for badge in await db.badges.find({}).to_list(length=None):
        badge_id = str(badge["_id"])
        if badge_id in earned:
            continue

        title = badge.get("title")
        if title == "Math Master":
            math_lessons = [c for c in completions if c.get("subject") == "Mathematics"]
            math_attempts = [a for a in attempts if a.get("subject") == "Mathematics"]
            accuracy = (
                sum(1 for a in math_attempts if a.get("correct")) / len(math_attempts) * 100
                if math_attempts else 0
            )
            if len(math_lessons) >= 15 and accuracy >= 90:
                eligible.append(badge_id)

        elif title == "Speed Demon":
            fast = [a for a in attempts if (a.get("timeTaken") or 0) < FAST_ATTEMPT_SECONDS]
            if len(fast) >= 10:
                eligible.append(badge_id)

        elif title == "Consistent Learner":
            if (student.get("studyStreak") or 0) >= 7:
                eligible.append(badge_id)

    return eligible


# ==================== LEADERBOARD ====================

async def weekly_xp_totals(db: AsyncIOMotorDatabase, since: datetime, limit: Optional[int] = None) -> List[dict]:
    pipeline = [
        {"$match": {"date": {"$gte": since}}},
        {"$group": {"_id": "$studentId", "weeklyXP": {"$sum": "$xpAmount"}, "activities": {"$sum": 1}}},
        {"$sort": {"weeklyXP": -1}},
    ]
    if limit:
        pipeline.append({"$limit": limit})
    return await db.xpLogs.aggregate(pipeline).to_list(length=limit)


async def update_weekly_leaderboard(db: AsyncIOMotorDatabase, limit: int = 100) -> List[dict]:
    """Rebuild the leaderboard from the last 7 days of XP, keeping previous ranks"""
    now = datetime.utcnow()
    totals = await weekly_xp_totals(db, now - timedelta(days=7), limit)

    previous = {
        entry["studentId"]: entry.get("rank")
        for entry in await db.leaderboard.find({}).to_list(length=None)
    }

    entries = []
    for rank, row in enumerate(totals, start=1):
        student = await db.users.find_one({"id": row["_id"]}) or {}
        entries.append({
            "studentId": row["_id"],
            "name": student.get("name", "Unknown"),
            "weeklyXP": row["weeklyXP"],
            "totalXP": student.get("xp") or 0,
            "level": student.get("level") or 1,
            "rank": rank,
            "previousRank": previous.get(row["_id"]),
            "weekStart": now - timedelta(days=7),
            "updatedAt": now,
        })

    await db.leaderboard.delete_many({})
    if entries:
        await db.leaderboard.insert_many(entries)

    logger.info("Leaderboard rebuilt with %d entries", len(entries))
    return serialize_many(entries)


async def get_current_leaderboard(db: AsyncIOMotorDatabase, limit: int = 10) -> List[dict]:
    docs = await db.leaderboard.find({}).sort("rank", 1).limit(limit).to_list(length=limit)
    return serialize_many(docs)


# ==================== LEX SESSIONS ====================

async def start_lex_session(db: AsyncIOMotorDatabase, student_id: str, rng: Optional[random.Random] = None) -> dict:
    student = await db.users.find_one({"id": student_id}) or {}
    bank = await db.questions.find({}).to_list(length=None)
    attempts = await db.questionAttempts.find({"studentId": student_id}).to_list(length=None)

    algorithm = LexAlgorithm(bank, attempts, rng=rng)
    questions = algorithm.generate_session_questions(student_id, student)

    session = {
        "studentId": student_id,
        "questionIds": [q["id"] for q in questions],
        "startedAt": datetime.utcnow(),
        "completedAt": None,
        "results": [],
    }
    result = await db.lexSessions.insert_one(session)

    return {
        "sessionId": str(result.inserted_id),
        "questions": serialize_many([dict(q) for q in questions]),
    }


async def next_lex_question(db: AsyncIOMotorDatabase, question_id: str, was_correct: bool) -> Optional[dict]:
    current = await db.questions.find_one({"id": question_id})
    if not current:
        return None
    bank = await db.questions.find({"topic": current.get("topic")}).to_list(length=None)
    return serialize_mongo(LexAlgorithm(bank, []).get_next_question(current, was_correct))


async def complete_lex_session(
    db: AsyncIOMotorDatabase,
    session_id: str,
    student_id: str,
    results: List[dict],
) -> Optional[dict]:
    """
    Store session results and refresh the student's weak/strong/recent topics
    results: [{"questionId", "correct", "timeTaken"}]

    A session completes once, for its own student. Results for questions
    outside the session are ignored.
    """
    if not ObjectId.is_valid(session_id):
        return None
    session = await db.lexSessions.find_one({"_id": ObjectId(session_id)})
    if not session:
        return None
    if session["studentId"] != student_id:
        raise HTTPException(status_code=403, detail="Access denied")
    if session.get("completedAt"):
        raise HTTPException(status_code=409, detail="Session already completed")

    session_ids = set(session["questionIds"])
    seen = set()
    accepted = []
    for item in results:
        question_id = item.get("questionId")
        if question_id in session_ids and question_id not in seen:
            seen.add(question_id)
            accepted.append(item)
    if len(accepted) < len(results):
        logger.warning("Dropped %d results outside Lex session %s", len(results) - len(accepted), session_id)
    results = accepted

    # claim before awarding XP
    claimed = await db.lexSessions.update_one(
        {"_id": session["_id"], "completedAt": None},
        {"$set": {"completedAt": datetime.utcnow()}},
    )
    if not claimed.modified_count:
        raise HTTPException(status_code=409, detail="Session already completed")

    questions = await db.questions.find({"id": {"$in": session["questionIds"]}}).to_list(length=None)

    xp_total = 0
    for item in results:
        outcome = await record_question_attempt(
            db, student_id, item["questionId"], bool(item.get("correct")), item.get("timeTaken") or 0
        )
        xp_total += outcome["xpEarned"]

    profile = LexAlgorithm.update_student_profile(questions, results)
    await db.users.update_one({"id": student_id}, {"$set": profile})
    await db.lexSessions.update_one(
        {"_id": session["_id"]},
        {"$set": {"results": results}}
    )

    return {"sessionId": session_id, "xpEarned": xp_total, "profile": profile}


# ==================== RECOMMENDATIONS ====================

def build_recommendations(profile: dict, rng: Optional[random.Random] = None) -> List[dict]:
    """Weak topic first, then strong, then a recent topic"""
    rng = rng or random.Random()
    recommendations = []

    weak = profile.get("weakTopics") or []
    strong = profile.get("strongTopics") or []
    recent = profile.get("recentTopics") or []

    if weak:
        topic = weak[0]
        recommendations.append({
            "topicName": f"{topic} - Foundation Review",
            "topic": topic,
            "reason": "Identified as a weak area needing attention",
            "description": f"Your performance in {topic} suggests you need to strengthen the fundamentals. Let's build a solid foundation.",
            "estimatedTime": "30-40 minutes",
            "xpPotential": 60,
            "difficulty": "easy",
            "priority": "high",
            "suggestedActions": ["Review basic concepts", "Practice simple problems", "Watch explanation videos"],
        })

    if strong:
        topic = strong[0]
        recommendations.append({
            "topicName": f"{topic} - Advanced Applications",
            "topic": topic,
            "reason": "Strong foundation detected, ready for advanced concepts",
            "description": f"You've mastered the basics of {topic}! Time to tackle more challenging problems and real-world applications.",
            "estimatedTime": "45-60 minutes",
            "xpPotential": 100,
            "difficulty": "hard",
            "priority": "medium",
            "suggestedActions": ["Solve complex problems", "Explore applications", "Challenge yourself"],
        })

    if recent:
        topic = rng.choice(recent)
        recommendations.append({
            "topicName": f"{topic} - Practice & Review",
            "topic": topic,
            "reason": "Recently studied, perfect for reinforcement",
            "description": f"You've been working on {topic} recently. Let's reinforce your learning with targeted practice.",
            "estimatedTime": "25-35 minutes",
            "xpPotential": 75,
            "difficulty": "medium",
            "priority": "medium",
            "suggestedActions": ["Practice problems", "Review mistakes", "Test understanding"],
        })

    return recommendations
