import logging
from datetime import datetime
from typing import List, Optional, Union

from bson import ObjectId
from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from proacademics import config
from proacademics.ai import ai_service
from proacademics.database import (
    build_list_query,
    distinct_values,
    generate_id,
    paginate,
    serialize_many,
    serialize_mongo,
    to_object_id,
)
from proacademics.progress.progress_service import log_xp

logger = logging.getLogger(__name__)

HOMEWORK_SEARCH_FIELDS = ["homeworkName", "topic", "subtopic", "teacher"]
REQUIRED_FIELDS = [
    "homeworkName", "subject", "program", "topic", "subtopic",
    "level", "teacher", "dateAssigned", "dueDate",
]
OPEN_STATUSES = ["not_started", "in_progress"]


def xp_for_score(score: int) -> int:
    if score >= 80:
        return 100
    if score >= 60:
        return 75
    if score >= 40:
        return 50
    return 25


def _with_question_ids(question_set: List[dict]) -> List[dict]:
    for question in question_set:
        if not question.get("questionId"):
            question["questionId"] = generate_id("q")
    return question_set


# ==================== ADMIN CRUD ====================

async def get_all_homework(
    db: AsyncIOMotorDatabase,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    subject: Optional[str] = None,
    program: Optional[str] = None,
    status: Optional[str] = None,
    level: Optional[str] = None,
    teacher: Optional[str] = None,
) -> dict:
    query = build_list_query(search, HOMEWORK_SEARCH_FIELDS, {
        "subject": subject,
        "program": program,
        "status": status,
        "level": level,
        "teacher": teacher,
    })
    homework, total, total_pages = await paginate(db.homework, query, page, limit)
    return {
        "homework": homework,
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
    }


async def create_homework(db: AsyncIOMotorDatabase, data: dict) -> dict:
    missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
    if missing:
        raise HTTPException(status_code=400, detail="Missing required fields")

    question_set = _with_question_ids(data.get("questionSet") or [])
    now = datetime.utcnow()
    homework = {
        "assignmentId": str(ObjectId()),
        "homeworkName": data["homeworkName"],
        "subject": data["subject"],
        "program": data["program"],
        "topic": data["topic"],
        "subtopic": data["subtopic"],
        "level": data["level"],
        "teacher": data["teacher"],
        "dateAssigned": data["dateAssigned"],
        "dueDate": data["dueDate"],
        "estimatedTime": data.get("estimatedTime") or 30,
        "xpAwarded": data.get("xpAwarded") or config.XP_REWARDS["ASSIGNMENT_COMPLETION"],
        "questionSet": question_set,
        "totalQuestions": len(question_set),
        "completedQuestions": 0,
        "completionStatus": "not_started",
        "xpEarned": 0,
        "studentId": data.get("studentId"),
        "status": data.get("status") or "draft",
        "createdAt": now,
        "updatedAt": now,
    }
    await db.homework.insert_one(homework)
    logger.info("Created homework %s (%s)", homework["assignmentId"], homework["homeworkName"])
    return serialize_mongo(homework)


async def insert_many_homework(db: AsyncIOMotorDatabase, homework: List[dict]) -> int:
    if not homework:
        return 0
    result = await db.homework.insert_many(homework)
    return len(result.inserted_ids)


async def get_homework_by_id(db: AsyncIOMotorDatabase, homework_id: str) -> Optional[dict]:
    return serialize_mongo(await db.homework.find_one({"_id": to_object_id(homework_id, "homework ID")}))


async def update_homework(db: AsyncIOMotorDatabase, homework_id: str, data: dict) -> Optional[dict]:
    oid = to_object_id(homework_id, "homework ID")
    updates = {k: v for k, v in data.items() if v is not None}
    if "questionSet" in updates:
        updates["questionSet"] = _with_question_ids(updates["questionSet"])
        updates["totalQuestions"] = len(updates["questionSet"])
    updates["updatedAt"] = datetime.utcnow()

    result = await db.homework.find_one_and_update(
        {"_id": oid},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_mongo(result)


async def delete_homework(db: AsyncIOMotorDatabase, homework_id: str) -> bool:
    result = await db.homework.delete_one({"_id": to_object_id(homework_id, "homework ID")})
    return result.deleted_count > 0


# ==================== STATS & FILTERS ====================

async def _count_by(db: AsyncIOMotorDatabase, field: str) -> List[dict]:
    return await db.homework.aggregate([
        {"$group": {"_id": f"${field}", "count": {"$sum": 1}}},
        {"$sort": {"count": -1}},
    ]).to_list(length=None)


async def get_homework_stats(db: AsyncIOMotorDatabase) -> dict:
    recent = await db.homework.find(
        {}, {"homeworkName": 1, "subject": 1, "createdAt": 1, "status": 1}
    ).sort("createdAt", -1).limit(5).to_list(length=5)

    return {
        "total": await db.homework.count_documents({}),
        "active": await db.homework.count_documents({"status": "active"}),
        "draft": await db.homework.count_documents({"status": "draft"}),
        "bySubject": await _count_by(db, "subject"),
        "byLevel": await _count_by(db, "level"),
        "recentActivity": serialize_many(recent),
    }


async def get_unique_subjects(db: AsyncIOMotorDatabase) -> List[str]:
    return await distinct_values(db.homework, "subject")


async def get_unique_teachers(db: AsyncIOMotorDatabase) -> List[str]:
    return await distinct_values(db.homework, "teacher")


async def get_unique_programs(db: AsyncIOMotorDatabase) -> List[str]:
    return await distinct_values(db.homework, "program")


# ==================== STUDENT HOMEWORK ====================
# Per-student progress lives in homeworkResults, keyed by (studentId, homeworkId).
# Shared homework (studentId None) is never written by a student action.

RESULT_FIELDS = ["progress", "completionStatus", "score", "xpEarned", "completedQuestions", "dateSubmitted"]


def _visible_query(student_id: str) -> dict:
    return {"$or": [
        {"studentId": student_id},
        {"studentId": None, "status": "active"},
    ]}


async def _homework_for_student(db: AsyncIOMotorDatabase, student_id: str, homework_id: str) -> dict:
    homework = await db.homework.find_one({"_id": to_object_id(homework_id, "homework ID")})
    if not homework:
        raise HTTPException(status_code=404, detail="Homework not found")
    if homework.get("studentId") not in (None, student_id):
        raise HTTPException(status_code=403, detail="Homework is not assigned to you")
    return homework


def _merge_result(homework: dict, result: Optional[dict]) -> dict:
    if homework.get("studentId") is None:
        # shared homework starts fresh for every student; only overdue carries over
        if homework.get("completionStatus") != "overdue":
            homework["completionStatus"] = "not_started"
        for field in RESULT_FIELDS:
            if field != "completionStatus":
                homework.pop(field, None)
    if result:
        for field in RESULT_FIELDS:
            if field in result:
                homework[field] = result[field]
    return homework


async def get_student_homework(
    db: AsyncIOMotorDatabase,
    student_id: str,
    status: Optional[str] = None,
    limit: int = 10,
) -> dict:
    """
    Homework visible to a student: assigned to them, or active and unassigned
    status filters on the student's own completionStatus
    """
    docs = await db.homework.find(_visible_query(student_id)).sort("dueDate", 1).to_list(length=None)
    results = {
        r["homeworkId"]: r
        for r in await db.homeworkResults.find({"studentId": student_id}).to_list(length=None)
    }

    merged = []
    for doc in docs:
        doc = _merge_result(doc, results.get(str(doc["_id"])))
        if status and status != "all" and doc.get("completionStatus") != status:
            continue
        for question in doc.get("questionSet") or []:
            question.pop("markScheme", None)
        merged.append(doc)

    return {"homework": serialize_many(merged[:limit]), "total": len(merged)}


async def _save_result(db: AsyncIOMotorDatabase, homework: dict, student_id: str, updates: dict) -> dict:
    now = datetime.utcnow()
    updates = dict(updates, updatedAt=now)
    result = await db.homeworkResults.find_one_and_update(
        {"studentId": student_id, "homeworkId": str(homework["_id"])},
        {"$set": updates, "$setOnInsert": {"createdAt": now}},
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    # an assignment owned by this student also carries its state on the homework itself
    if homework.get("studentId") == student_id:
        await db.homework.update_one({"_id": homework["_id"]}, {"$set": updates})
    return result


async def update_homework_progress(
    db: AsyncIOMotorDatabase,
    student_id: str,
    homework_id: str,
    progress: int,
    completion_status: str,
) -> dict:
    """Raises 404 for unknown homework and 403 for homework assigned to someone else"""
    homework = await _homework_for_student(db, student_id, homework_id)

    updates = {"progress": progress, "completionStatus": completion_status}
    if completion_status == "completed":
        updates["dateSubmitted"] = datetime.utcnow()

    result = await _save_result(db, homework, student_id, updates)
    return serialize_mongo(_merge_result(homework, result))


async def mark_overdue_homework(db: AsyncIOMotorDatabase, now: Optional[datetime] = None) -> int:
    now = now or datetime.utcnow()
    result = await db.homework.update_many(
        {"dueDate": {"$lt": now}, "completionStatus": {"$in": OPEN_STATUSES}},
        {"$set": {"completionStatus": "overdue", "updatedAt": now}},
    )

    past_due = await db.homework.find({"dueDate": {"$lt": now}}, {"_id": 1}).to_list(length=None)
    records = await db.homeworkResults.update_many(
        {"homeworkId": {"$in": [str(doc["_id"]) for doc in past_due]}, "completionStatus": {"$in": OPEN_STATUSES}},
        {"$set": {"completionStatus": "overdue", "updatedAt": now}},
    )

    logger.info(
        "Marked %d homework assignments and %d student records overdue",
        result.modified_count, records.modified_count,
    )
    return result.modified_count


# ==================== SUBMISSION ====================

def _answer_for(answers: Union[list, dict], index: int, question: dict) -> str:
    if isinstance(answers, list):
        value = answers[index] if index < len(answers) else ""
    else:
        value = answers.get(question.get("questionId") or "", answers.get(str(index), ""))
    return "" if value is None else str(value)


async def submit_homework(
    db: AsyncIOMotorDatabase,
    student_id: str,
    homework_id: str,
    answers: Union[list, dict],
) -> dict:
    """
    Mark every question and store the student's result
    XP is awarded on the first submission only.
    """
    homework = await _homework_for_student(db, student_id, homework_id)

    questions = homework.get("questionSet") or []
    feedback = []
    for index, question in enumerate(questions):
        feedback.append(await ai_service.mark_answer(question, _answer_for(answers, index, question)))

    total_marks = sum(item["maxMarks"] for item in feedback)
    earned = sum(item["marks"] for item in feedback)
    score = round(earned / total_marks * 100) if total_marks else 0

    previous = await db.homeworkResults.find_one({
        "studentId": student_id,
        "homeworkId": str(homework["_id"]),
        "xpEarned": {"$exists": True},
    })
    xp_earned = 0 if previous else xp_for_score(score)

    updates = {
        "score": score,
        "completedQuestions": len(questions),
        "completionStatus": "completed",
        "progress": 100,
        "dateSubmitted": datetime.utcnow(),
    }
    if not previous:
        updates["xpEarned"] = xp_earned
    await _save_result(db, homework, student_id, updates)

    if xp_earned:
        await log_xp(db, student_id, "homework_submitted", xp_earned, f"homework_{homework_id}")

    return {
        "score": score,
        "xpEarned": xp_earned,
        "alreadySubmitted": bool(previous),
        "feedback": feedback,
        "overallFeedback": ai_service.overall_feedback(score),
        "areasForImprovement": ai_service.improvement_areas(feedback),
        "strengths": ai_service.strengths(feedback),
    }


async def submit_answer(
    db: AsyncIOMotorDatabase,
    homework_id: str,
    question_index: int,
    answer: str,
    time_spent: float,
    student_id: Optional[str] = None,
) -> dict:
    """Store one in-progress answer"""
    now = datetime.utcnow()
    submission = {
        "submissionId": generate_id("sub"),
        "homeworkId": homework_id,
        "studentId": student_id,
        "questionIndex": question_index,
        "answer": answer,
        "timeSpent": time_spent,
        "submittedAt": now,
    }
    await db.homeworkSubmissions.insert_one(submission)
    return {
        "submissionId": submission["submissionId"],
        "questionIndex": question_index,
        "submittedAt": now.isoformat(),
    }
