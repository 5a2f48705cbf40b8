"""
Weekly maintenance: level-ups, leaderboard, badges, overdue homework, parent reports
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics.errors import BadgeError
from proacademics.homework.homework_service import mark_overdue_homework
from proacademics.progress.lex_algorithm import calculate_level
from proacademics.progress.progress_service import (
    award_badge,
    check_badge_eligibility,
    update_weekly_leaderboard,
    weekly_xp_totals,
)

logger = logging.getLogger(__name__)

LEADERBOARD_SIZE = 100


async def calculate_weekly_xp(db: AsyncIOMotorDatabase, week_start: datetime) -> List[dict]:
    """Log students whose total XP has moved them past their stored level"""
    logger.info("Calculating weekly XP...")
    level_ups = []
    for row in await weekly_xp_totals(db, week_start):
        student = await db.users.find_one({"id": row["_id"]})
        if not student:
            continue
        new_level = calculate_level(student.get("xp") or 0)
        if new_level > (student.get("level") or 1):
            logger.info("Student %s leveled up to %d", student.get("name"), new_level)
            level_ups.append({"studentId": student["id"], "level": new_level})
    return level_ups


async def award_eligible_badges(db: AsyncIOMotorDatabase) -> int:
    logger.info("Checking badge eligibility...")
    awarded = 0
    students = await db.users.find({"role": "student"}, {"id": 1}).to_list(length=None)
    for student in students:
        for badge_id in await check_badge_eligibility(db, student["id"]):
            try:
                await award_badge(db, student["id"], badge_id)
                awarded += 1
            except BadgeError as e:
                logger.warning("Badge %s not awarded to %s: %s", badge_id, student["id"], e)
    return awarded


async def build_parent_report(db: AsyncIOMotorDatabase, student: dict, week_start: datetime, now: datetime) -> dict:
    student_id = student["id"]
    window = {"$gte": week_start, "$lte": now}

    xp_logs = await db.xpLogs.find({"studentId": student_id, "date": window}).to_list(length=None)
    attempts = await db.questionAttempts.find({"studentId": student_id, "attemptDate": window}).to_list(length=None)
    correct = sum(1 for a in attempts if a.get("correct"))

    return {
        "studentId": student_id,
        "parentId": student["parentId"],
        "studentName": student.get("name"),
        "weekStart": week_start,
        "weekEnd": now,
        "xpEarned": sum(log.get("xpAmount") or 0 for log in xp_logs),
        "questionsAttempted": len(attempts),
        "accuracy": round(correct / len(attempts) * 100, 1) if attempts else 0,
        "lessonsCompleted": await db.lessonCompletions.count_documents(
            {"studentId": student_id, "completionDate": window}
        ),
        "studyStreak": student.get("studyStreak") or 0,
        "currentWorkingAverage": student.get("currentWorkingAverage") or 0,
        "level": student.get("level") or 1,
        "createdAt": now,
    }


async def generate_weekly_reports(db: AsyncIOMotorDatabase, week_start: datetime, now: datetime) -> int:
    """One report per student that has a parent linked"""
    logger.info("Generating weekly reports...")
    students = await db.users.find({"role": "student", "parentId": {"$nin": [None, ""]}}).to_list(length=None)

    reports = [await build_parent_report(db, student, week_start, now) for student in students]
    if reports:
        await db.reports.insert_many(reports)
    logger.info("Generated %d weekly parent reports", len(reports))
    return len(reports)


async def run_weekly_tasks(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> dict:
    now = now or datetime.utcnow()
    week_start = now - timedelta(days=7)
    logger.info("Starting weekly tasks...")

    level_ups = await calculate_weekly_xp(db, week_start)
    leaderboard = await update_weekly_leaderboard(db, LEADERBOARD_SIZE)
    badges = await award_eligible_badges(db)
    overdue = await mark_overdue_homework(db, now)
    reports = await generate_weekly_reports(db, week_start, now)

    summary = {
        "task": "weekly",
        "runAt": now,
        "completedAt": datetime.utcnow(),
        "levelUps": level_ups,
        "leaderboardEntries": len(leaderboard),
        "badgesAwarded": badges,
        "overdueHomework": overdue,
        "reportsGenerated": reports,
    }
    await db.maintenanceLogs.insert_one(summary)
    logger.info("Weekly tasks completed successfully")
    return summary
