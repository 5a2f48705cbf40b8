"""
Topic vault: topics holding a list of video subtopics
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from proacademics.database import (
    build_list_query,
    distinct_values,
    generate_id,
    paginate,
    serialize_many,
    serialize_mongo,
)
from proacademics.errors import ImportRowError

logger = logging.getLogger(__name__)

TOPIC_SEARCH_FIELDS = [
    "topicName", "subject", "program", "description",
    "subtopics.videoName", "subtopics.teacher",
]
IMPORT_REQUIRED_FIELDS = ["videoName", "topic", "subject", "program", "teacher", "videoEmbedLink"]


def _with_subtopic_ids(subtopics: List[dict]) -> List[dict]:
    for subtopic in subtopics:
        if not subtopic.get("id"):
            subtopic["id"] = generate_id("subtopic")
    return subtopics


# ==================== TOPIC CRUD ====================

async def get_all_topics(
    db: AsyncIOMotorDatabase,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    subject: Optional[str] = None,
    program: Optional[str] = None,
    status: Optional[str] = None,
    teacher: Optional[str] = None,
    type: Optional[str] = None,
) -> dict:
    query = build_list_query(search, TOPIC_SEARCH_FIELDS, {
        "subject": subject,
        "program": program,
        "status": status,
        "subtopics.teacher": teacher,
        "subtopics.type": type,
    })
    topics, total, total_pages = await paginate(db.topics, query, page, limit)
    return {
        "topics": topics,
        "total": total,
        "page": page,
        "limit": limit,
        "totalPages": total_pages,
    }


async def create_topic(db: AsyncIOMotorDatabase, data: dict) -> dict:
    now = datetime.utcnow()
    topic = {
        "id": generate_id("topic"),
        "topicName": data["topicName"],
        "subject": data["subject"],
        "program": data["program"],
        "description": data.get("description") or "",
        "status": data.get("status") or "draft",
        "subtopics": _with_subtopic_ids(data.get("subtopics") or []),
        "createdAt": now,
        "updatedAt": now,
    }
    await db.topics.insert_one(topic)
    logger.info("Created topic %s with %d subtopics", topic["topicName"], len(topic["subtopics"]))
    return serialize_mongo(topic)


async def get_topic_by_id(db: AsyncIOMotorDatabase, topic_id: str) -> Optional[dict]:
    return serialize_mongo(await db.topics.find_one({"id": topic_id}))


async def update_topic(db: AsyncIOMotorDatabase, topic_id: str, data: dict) -> Optional[dict]:
    updates = {k: v for k, v in data.items() if v is not None}
    if "subtopics" in updates:
        updates["subtopics"] = _with_subtopic_ids(updates["subtopics"])
    updates["updatedAt"] = datetime.utcnow()

    result = await db.topics.find_one_and_update(
        {"id": topic_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_mongo(result)


async def delete_topic(db: AsyncIOMotorDatabase, topic_id: str) -> bool:
    result = await db.topics.delete_one({"id": topic_id})
    return result.deleted_count > 0


async def delete_all_topics(db: AsyncIOMotorDatabase) -> dict:
    total = await db.topics.count_documents({})
    if total == 0:
        return {"message": "No topic vaults to delete", "deletedCount": 0}

    result = await db.topics.delete_many({})
    logger.warning("Deleted all topic vaults (%d)", result.deleted_count)
    return {
        "message": f"Successfully deleted {result.deleted_count} topic vaults",
        "deletedCount": result.deleted_count,
    }


# ==================== IMPORT ====================

def normalize_import_row(row: dict) -> dict:
    """Accept camelCase or snake_case column names"""
    return {
        "videoName": row.get("videoName") or row.get("video_name") or "",
        "topic": row.get("topic") or "",
        "subject": row.get("subject") or "",
        "program": row.get("program") or "",
        "type": row.get("type") or "Lesson",
        "duration": row.get("duration") or "",
        "teacher": row.get("teacher") or "",
        "description": row.get("description") or "",
        "zoomLink": row.get("zoomLink") or row.get("zoom_link") or "",
        "videoEmbedLink": (
            row.get("videoEmbedLink") or row.get("video_embed_link")
            or row.get("videoUrl") or row.get("video_url") or ""
        ),
        "status": row.get("status") or "draft",
    }


def group_import_rows(rows: List[dict]) -> Dict[Tuple[str, str, str], List[dict]]:
    """
    Validate rows and group them into subtopics by (topic, subject, program)

    Raises ImportRowError naming the values of the first incomplete row.
    """
    groups: Dict[Tuple[str, str, str], List[dict]] = {}
    for raw in rows:
        row = normalize_import_row(raw)
        if not all(row[field] for field in IMPORT_REQUIRED_FIELDS):
            found = ", ".join(f'{field}="{row[field]}"' for field in IMPORT_REQUIRED_FIELDS)
            raise ImportRowError(
                f"Missing required fields. Required: {', '.join(IMPORT_REQUIRED_FIELDS)}. Found: {found}"
            )

        key = (row["topic"], row["subject"], row["program"])
        groups.setdefault(key, []).append({
            "id": generate_id("subtopic"),
            "videoName": row["videoName"],
            "type": row["type"],
            "duration": row["duration"],
            "teacher": row["teacher"],
            "description": row["description"],
            "zoomLink": row["zoomLink"],
            "videoEmbedLink": row["videoEmbedLink"],
            "status": row["status"],
        })
    return groups


async def import_topic_vaults(db: AsyncIOMotorDatabase, rows: List[dict]) -> Tuple[List[dict], int]:
    """
    Import flat video rows; rows for an existing topic are appended to it

    Returns (touched topics, number of subtopics imported)
    """
    groups = group_import_rows(rows)
    topics = []
    count = 0

    for (topic_name, subject, program), subtopics in groups.items():
        count += len(subtopics)
        existing = await db.topics.find_one_and_update(
            {"topicName": topic_name, "subject": subject, "program": program},
            {"$push": {"subtopics": {"$each": subtopics}}, "$set": {"updatedAt": datetime.utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
        if existing:
            topics.append(serialize_mongo(existing))
        else:
            topics.append(await create_topic(db, {
                "topicName": topic_name,
                "subject": subject,
                "program": program,
                "subtopics": subtopics,
            }))

    logger.info("Imported %d subtopics into %d topics", count, len(topics))
    return topics, count


# ==================== STATS & FILTERS ====================

async def _subtopic_teachers(db: AsyncIOMotorDatabase) -> List[str]:
    teachers = set()
    topics = await db.topics.find({}, {"subtopics": 1}).to_list(length=None)
    for topic in topics:
        for subtopic in topic.get("subtopics") or []:
            teacher = subtopic.get("teacher")
            if teacher and teacher.strip():
                teachers.add(teacher)
    return sorted(teachers)


async def get_topic_vault_stats(db: AsyncIOMotorDatabase) -> dict:
    subjects = await db.topics.aggregate([
        {"$group": {"_id": "$subject", "count": {"$sum": 1}}},
        {"$sort": {"count": -1}},
    ]).to_list(length=None)

    types = await db.topics.aggregate([
        {"$unwind": "$subtopics"},
        {"$group": {"_id": "$subtopics.type", "count": {"$sum": 1}}},
        {"$sort": {"count": -1}},
    ]).to_list(length=None)

    return {
        "totalTopicVaults": await db.topics.count_documents({}),
        "activeTopicVaults": await db.topics.count_documents({"status": "active"}),
        "draftTopicVaults": await db.topics.count_documents({"status": "draft"}),
        "totalTeachers": len(await _subtopic_teachers(db)),
        "subjectBreakdown": [{"subject": row["_id"], "count": row["count"]} for row in subjects],
        "typeBreakdown": [{"type": row["_id"], "count": row["count"]} for row in types],
    }


async def get_unique_subjects(db: AsyncIOMotorDatabase) -> List[str]:
    return await distinct_values(db.topics, "subject")


async def get_unique_programs(db: AsyncIOMotorDatabase) -> List[str]:
    return await distinct_values(db.topics, "program")


async def get_unique_teachers(db: AsyncIOMotorDatabase) -> List[str]:
    return await _subtopic_teachers(db)


async def debug_summary(db: AsyncIOMotorDatabase) -> dict:
    topics = await db.topics.find({}).sort("createdAt", -1).to_list(length=None)
    return {
        "totalTopics": len(topics),
        "topics": [
            {
                "id": topic.get("id"),
                "topicName": topic.get("topicName"),
                "subject": topic.get("subject"),
                "program": topic.get("program"),
                "status": topic.get("status"),
                "subtopicsCount": len(topic.get("subtopics") or []),
                "subtopics": [
                    {
                        "id": sub.get("id"),
                        "videoName": sub.get("videoName"),
                        "status": sub.get("status"),
                        "teacher": sub.get("teacher"),
                        "videoEmbedLink": "YES" if sub.get("videoEmbedLink") else "NO",
                    }
                    for sub in topic.get("subtopics") or []
                ],
            }
            for topic in serialize_many(topics)
        ],
    }
