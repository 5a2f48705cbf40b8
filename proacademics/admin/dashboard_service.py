"""
Admin dashboard: platform counts, top performers and recent activity
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics.formatting import format_relative_time

logger = logging.getLogger(__name__)

SIGNUP_WINDOW = timedelta(hours=12)
LOGIN_WINDOW = timedelta(hours=6)


def empty_stats() -> Dict:
    """Stats shown when the database cannot be reached"""
    return {
        "totalUsers": 0,
        "totalStudents": 0,
        "activeStudents": 0,
        "totalTeachers": 0,
        "totalAdmins": 0,
        "totalParents": 0,
        "totalLessons": 0,
        "totalHomework": 0,
        "totalTopics": 0,
        "totalXP": 0,
        "averageLevel": 0,
        "growth": {"students": 0, "activeStudents": 0},
        "services": {"api": "warning", "database": "warning"},
        "error": "Database connection failed",
    }


async def get_admin_stats(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> Dict:
    now = now or datetime.utcnow()

    total_users = await db.users.count_documents({})
    total_students = await db.users.count_documents({"role": "student"})
    total_teachers = await db.users.count_documents({"role": "teacher"})
    total_admins = await db.users.count_documents({"role": "admin"})
    total_parents = await db.users.count_documents({"role": "parent"})

    active_students = await db.users.count_documents({
        "role": "student",
        "lastLogin": {"$gte": now - timedelta(hours=24)},
    })
    students_last_week = await db.users.count_documents({
        "role": "student",
        "createdAt": {"$gte": now - timedelta(days=7)},
    })

    xp_totals = await db.users.aggregate([
        {"$group": {"_id": None, "total": {"$sum": {"$ifNull": ["$xp", 0]}}}}
    ]).to_list(length=1)
    level_avg = await db.users.aggregate([
        {"$match": {"level": {"$gt": 0}}},
        {"$group": {"_id": None, "avg": {"$avg": "$level"}}},
    ]).to_list(length=1)

    # weekly growth is new students relative to the ones who were already here
    student_growth = (
        round(students_last_week / max(1, total_students - students_last_week) * 100)
        if students_last_week else 0
    )
    active_share = round(active_students / max(1, total_students) * 100) if active_students else 0

    return {
        "totalUsers": total_users,
        "totalStudents": total_students,
        "activeStudents": active_students,
        "totalTeachers": total_teachers,
        "totalAdmins": total_admins,
        "totalParents": total_parents,
        "totalLessons": await db.lessons.count_documents({}),
        "totalHomework": await db.homework.count_documents({}),
        "totalTopics": await db.topics.count_documents({}),
        "totalXP": xp_totals[0]["total"] if xp_totals else 0,
        "averageLevel": round(level_avg[0]["avg"]) if level_avg else 1,
        "growth": {"students": student_growth, "activeStudents": active_share},
        "services": {"api": "operational", "database": "healthy"},
    }


async def get_top_performers(db: AsyncIOMotorDatabase, limit: int = 5, now: Optional[datetime] = None) -> List[Dict]:
    now = now or datetime.utcnow()
    week_ago = now - timedelta(days=7)

    students = await db.users.find({"role": "student"}) \
        .sort([("xp", -1), ("level", -1), ("studyStreak", -1)]) \
        .limit(limit) \
        .to_list(length=limit)

    performers = []
    for student in students:
        weekly = await db.xpLogs.aggregate([
            {"$match": {"studentId": student["id"], "date": {"$gte": week_ago}}},
            {"$group": {"_id": None, "total": {"$sum": "$xpAmount"}}},
        ]).to_list(length=1)

        performers.append({
            "id": student["id"],
            "name": student.get("name"),
            "xp": student.get("xp") or 0,
            "level": student.get("level") or 1,
            "streak": student.get("studyStreak") or 0,
            "weeklyGrowth": weekly[0]["total"] if weekly else 0,
            "completedLessons": await db.lessonCompletions.count_documents({"studentId": student["id"]}),
            "currentWorkingAverage": student.get("currentWorkingAverage") or 0,
            "predictedGrade": student.get("predictedGrade") or "N/A",
        })
    return performers


async def get_recent_activity(db: AsyncIOMotorDatabase, limit: int = 8, now: Optional[datetime] = None) -> List[Dict]:
    """Signups, logins and XP gains, newest first"""
    now = now or datetime.utcnow()
    events = []

    signups = await db.users.find({"createdAt": {"$gte": now - SIGNUP_WINDOW}}).to_list(length=None)
    for user in signups:
        events.append((user["createdAt"], {
            "type": "student_signup" if user.get("role") == "student" else "user_signup",
            "user": user.get("name"),
            "role": user.get("role"),
        }))

    logins = await db.users.find({"lastLogin": {"$gte": now - LOGIN_WINDOW}}).to_list(length=None)
    for user in logins:
        events.append((user["lastLogin"], {
            "type": "user_login",
            "user": user.get("name"),
            "role": user.get("role"),
        }))

    xp_logs = await db.xpLogs.find({}).sort("date", -1).limit(limit).to_list(length=limit)
    names = {}
    for log in xp_logs:
        student_id = log.get("studentId")
        if student_id not in names:
            student = await db.users.find_one({"id": student_id}) or {}
            names[student_id] = student.get("name", "Unknown")
        events.append((log["date"], {
            "type": "xp_gained",
            "user": names[student_id],
            "xp": log.get("xpAmount") or 0,
            "action": log.get("action"),
        }))

    events.sort(key=lambda item: item[0], reverse=True)

    activities = []
    for index, (moment, event) in enumerate(events[:limit], start=1):
        event["id"] = index
        event["time"] = format_relative_time(moment, now)
        activities.append(event)
    return activities
