"""
MongoDB connection lifecycle and shared query helpers
"""

import logging
import math
import re
import secrets
from typing import Dict, List, Optional, Tuple

from bson import ObjectId
from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from proacademics import config

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages MongoDB connection lifecycle"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    def connect(self, uri: Optional[str] = None, db_name: Optional[str] = None):
        """Initialize MongoDB connection"""
        mongo_uri = uri or config.MONGODB_URI
        if not mongo_uri:
            raise RuntimeError("MONGODB_URI environment variable required")

        self.client = AsyncIOMotorClient(mongo_uri)
        self.db = self.client[db_name or config.DB_NAME]
        logger.info("MongoDB connected (database=%s)", self.db.name)

    def disconnect(self):
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB disconnected")

    def get_database(self) -> AsyncIOMotorDatabase:
        """Get database instance for dependency injection"""
        if self.db is None:
            raise RuntimeError("Database not initialized. Call connect() first.")
        return self.db

    async def ping(self) -> bool:
        if self.client is None:
            return False
        await self.client.admin.command("ping")
        return True


# Global database manager
db_manager = DatabaseManager()


async def get_db() -> AsyncIOMotorDatabase:
    """FastAPI dependency for database access"""
    try:
        return db_manager.get_database()
    except RuntimeError as e:
        logger.error("Database unavailable: %s", e)
        raise HTTPException(status_code=500, detail="Database connection failed")


async def create_indexes(db: AsyncIOMotorDatabase):
    """Create the lookup indexes used by the services"""
    await db.users.create_index("email", unique=True)
    await db.users.create_index("role")
    await db.subjects.create_index("id", unique=True)
    await db.programs.create_index("id", unique=True)
    await db.programs.create_index("subjectId")
    await db.lessons.create_index("id", unique=True)
    await db.lessons.create_index([("createdAt", -1)])
    await db.topics.create_index("id", unique=True)
    await db.homework.create_index([("createdAt", -1)])
    await db.homework.create_index("studentId")
    await db.homeworkResults.create_index([("studentId", 1), ("homeworkId", 1)], unique=True)
    await db.questionAttempts.create_index([("studentId", 1), ("attemptDate", -1)])
    await db.xpLogs.create_index([("date", -1)])
    await db.lessonViews.create_index("lessonId")
    logger.info("Indexes ensured")


# ==================== SERIALIZATION ====================

def serialize_mongo(doc: dict) -> dict:
    if doc and "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def serialize_many(docs: List[dict]) -> List[dict]:
    return [serialize_mongo(doc) for doc in docs]


def to_object_id(value: str, label: str = "ID") -> ObjectId:
    """Parse a path id, 400 when it is not a valid ObjectId"""
    if not ObjectId.is_valid(value):
        raise HTTPException(status_code=400, detail=f"Invalid {label}")
    return ObjectId(value)


def generate_id(prefix: str) -> str:
    """Generate unique string ID with prefix"""
    return f"{prefix}-{secrets.token_hex(6)}"


# ==================== LIST QUERIES ====================

def is_active_filter(value) -> bool:
    """A filter of "all" or an empty value means no filter"""
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != "" and value != "all"
    return True


def build_list_query(
    search: Optional[str] = None,
    search_fields: Optional[List[str]] = None,
    filters: Optional[Dict[str, object]] = None,
) -> dict:
    """
    Build a MongoDB filter from free-text search and equality filters

    search is matched case-insensitively as a substring of any search field.
    """
    query: dict = {}

    if search and search.strip() and search_fields:
        pattern = re.escape(search.strip())
        query["$or"] = [
            {field: {"$regex": pattern, "$options": "i"}} for field in search_fields
        ]

    for field, value in (filters or {}).items():
        if is_active_filter(value):
            query[field] = value

    return query


async def paginate(
    collection,
    query: dict,
    page: int = 1,
    limit: int = 10,
    sort: Optional[List[Tuple[str, int]]] = None,
    projection: Optional[dict] = None,
) -> Tuple[List[dict], int, int]:
    """Returns (documents, total, total_pages)"""
    page = max(page, 1)
    limit = max(limit, 1)

    total = await collection.count_documents(query)
    cursor = collection.find(query, projection)
    cursor = cursor.sort(sort or [("createdAt", -1)]).skip((page - 1) * limit).limit(limit)
    docs = await cursor.to_list(length=limit)

    return serialize_many(docs), total, math.ceil(total / limit)


async def distinct_values(collection, field: str, query: Optional[dict] = None) -> List[str]:
    """Distinct non-blank values of a field, sorted"""
    values = await collection.distinct(field, query or {})
    return sorted(v for v in values if isinstance(v, str) and v.strip())
