"""
Daily maintenance: study streaks, inactivity check, daily XP ranking
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics.users.student_service import update_study_streak

logger = logging.getLogger(__name__)

INACTIVE_AFTER_DAYS = 3
DAILY_LEADERBOARD_SIZE = 50


async def update_study_streaks(db: AsyncIOMotorDatabase, now: datetime) -> int:
    logger.info("Updating study streaks...")
    students = await db.users.find({"role": "student"}, {"id": 1}).to_list(length=None)
    for student in students:
        await update_study_streak(db, student["id"], now)
    return len(students)


async def find_inactive_students(db: AsyncIOMotorDatabase, now: datetime) -> List[dict]:
    """Students whose last login is more than three days old"""
    logger.info("Checking for inactive students...")
    cutoff = now - timedelta(days=INACTIVE_AFTER_DAYS)
    students = await db.users.find({"role": "student", "lastLogin": {"$lt": cutoff}}).to_list(length=None)

    inactive = []
    for student in students:
        days = (now - student["lastLogin"]).days
        logger.info("Student %s inactive for %d days", student.get("name"), days)
        inactive.append({"studentId": student["id"], "name": student.get("name"), "daysInactive": days})
    return inactive


async def daily_xp_ranking(db: AsyncIOMotorDatabase, now: datetime) -> List[dict]:
    logger.info("Updating daily leaderboard...")
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    rows = await db.xpLogs.aggregate([
        {"$match": {"date": {"$gte": today}}},
        {"$group": {"_id": "$studentId", "dailyXP": {"$sum": "$xpAmount"}}},
        {"$sort": {"dailyXP": -1}},
        {"$limit": DAILY_LEADERBOARD_SIZE},
    ]).to_list(length=DAILY_LEADERBOARD_SIZE)

    ranking = [
        {"studentId": row["_id"], "dailyXP": row["dailyXP"], "rank": rank}
        for rank, row in enumerate(rows, start=1)
    ]
    logger.info("Updated daily leaderboard with %d entries", len(ranking))
    return ranking


async def run_daily_tasks(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> dict:
    """Run every daily step and store a summary in maintenanceLogs"""
    now = now or datetime.utcnow()
    logger.info("Starting daily tasks...")

    streaks = await update_study_streaks(db, now)
    inactive = await find_inactive_students(db, now)
    ranking = await daily_xp_ranking(db, now)

    summary = {
        "task": "daily",
        "runAt": now,
        "completedAt": datetime.utcnow(),
        "studentsProcessed": streaks,
        "inactiveStudents": inactive,
        "dailyLeaderboard": ranking,
    }
    await db.maintenanceLogs.insert_one(summary)
    logger.info("Daily tasks completed successfully")
    return summary
