"""
Subjects and programs
String uuid ids, manual cascade from subject to its programs
"""

import logging
import re
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from proacademics.database import serialize_many, serialize_mongo

logger = logging.getLogger(__name__)


def _name_query(name: str, exclude_id: Optional[str] = None) -> dict:
    query = {"name": {"$regex": f"^{re.escape(name.strip())}$", "$options": "i"}}
    if exclude_id:
        query["id"] = {"$ne": exclude_id}
    return query


# ==================== SUBJECT CRUD ====================

async def check_subject_name_exists(db: AsyncIOMotorDatabase, name: str, exclude_id: Optional[str] = None) -> bool:
    return await db.subjects.find_one(_name_query(name, exclude_id)) is not None


async def create_subject(db: AsyncIOMotorDatabase, data: dict) -> dict:
    now = datetime.utcnow()
    subject = {
        "id": str(uuid.uuid4()),
        "name": data["name"],
        "color": data["color"],
        "description": data.get("description") or "",
        "isActive": data.get("isActive", True),
        "createdAt": now,
        "updatedAt": now,
    }
    await db.subjects.insert_one(subject)
    logger.info("Created subject %s", subject["name"])
    return serialize_mongo(subject)


async def get_all_subjects(db: AsyncIOMotorDatabase) -> List[dict]:
    docs = await db.subjects.find({}).sort("name", 1).to_list(length=None)
    return serialize_many(docs)


async def get_subject_by_id(db: AsyncIOMotorDatabase, subject_id: str) -> Optional[dict]:
    return serialize_mongo(await db.subjects.find_one({"id": subject_id}))


async def update_subject(db: AsyncIOMotorDatabase, subject_id: str, updates: dict) -> Optional[dict]:
    """Returns the updated subject, None when it does not exist"""
    updates = {k: v for k, v in updates.items() if v is not None}
    updates["updatedAt"] = datetime.utcnow()
    result = await db.subjects.find_one_and_update(
        {"id": subject_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_mongo(result)


async def delete_subject(db: AsyncIOMotorDatabase, subject_id: str) -> bool:
    """Delete subject and cascade to its programs"""
    result = await db.subjects.delete_one({"id": subject_id})
    if result.deleted_count == 0:
        return False

    cascaded = await db.programs.delete_many({"subjectId": subject_id})
    logger.info("Deleted subject %s and %d programs", subject_id, cascaded.deleted_count)
    return True


# ==================== PROGRAM CRUD ====================

async def check_program_name_exists(db: AsyncIOMotorDatabase, name: str, exclude_id: Optional[str] = None) -> bool:
    return await db.programs.find_one(_name_query(name, exclude_id)) is not None


async def create_program(db: AsyncIOMotorDatabase, data: dict) -> dict:
    now = datetime.utcnow()
    program = {
        "id": str(uuid.uuid4()),
        "name": data["name"],
        "subjectId": data["subjectId"],
        "color": data["color"],
        "description": data.get("description") or "",
        "isActive": data.get("isActive", True),
        "createdAt": now,
        "updatedAt": now,
    }
    await db.programs.insert_one(program)
    return serialize_mongo(program)


async def get_all_programs(db: AsyncIOMotorDatabase) -> List[dict]:
    docs = await db.programs.find({}).sort("name", 1).to_list(length=None)
    return serialize_many(docs)


async def get_programs_by_subject_id(db: AsyncIOMotorDatabase, subject_id: str) -> List[dict]:
    docs = await db.programs.find({"subjectId": subject_id}).sort("name", 1).to_list(length=None)
    return serialize_many(docs)


async def get_program_by_id(db: AsyncIOMotorDatabase, program_id: str) -> Optional[dict]:
    return serialize_mongo(await db.programs.find_one({"id": program_id}))


async def update_program(db: AsyncIOMotorDatabase, program_id: str, updates: dict) -> Optional[dict]:
    updates = {k: v for k, v in updates.items() if v is not None}
    updates["updatedAt"] = datetime.utcnow()
    result = await db.programs.find_one_and_update(
        {"id": program_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    return serialize_mongo(result)


async def delete_program(db: AsyncIOMotorDatabase, program_id: str) -> bool:
    result = await db.programs.delete_one({"id": program_id})
    return result.deleted_count > 0


# ==================== COMBINED VIEWS ====================

async def get_all_subjects_with_programs(db: AsyncIOMotorDatabase) -> List[dict]:
    subjects = await get_all_subjects(db)
    programs = await get_all_programs(db)

    by_subject: Dict[str, List[dict]] = {}
    for program in programs:
        by_subject.setdefault(program["subjectId"], []).append(program)

    for subject in subjects:
        subject["programs"] = by_subject.get(subject["id"], [])
    return subjects


async def get_subject_programs_map(db: AsyncIOMotorDatabase) -> Dict[str, List[str]]:
    """Active subject name -> active program names"""
    subjects = await db.subjects.find({"isActive": True}).sort("name", 1).to_list(length=None)
    mapping = {}
    for subject in subjects:
        programs = await db.programs.find({"subjectId": subject["id"], "isActive": True}) \
            .sort("name", 1).to_list(length=None)
        mapping[subject["name"]] = [p["name"] for p in programs]
    return mapping


async def get_subject_colors_map(db: AsyncIOMotorDatabase) -> Dict[str, str]:
    subjects = await db.subjects.find({}).to_list(length=None)
    return {s["name"]: s.get("color") for s in subjects}


# ==================== DUPLICATE PROGRAMS ====================

async def find_duplicate_programs(db: AsyncIOMotorDatabase) -> List[dict]:
    """Programs grouped by lower-cased name, only groups with more than one"""
    programs = await db.programs.find({}).sort("createdAt", 1).to_list(length=None)

    groups: Dict[str, List[dict]] = {}
    for program in programs:
        groups.setdefault(program["name"].strip().lower(), []).append(program)

    return [
        {"name": members[0]["name"], "count": len(members), "programs": serialize_many(members)}
        for members in groups.values() if len(members) > 1
    ]


async def delete_duplicate_programs(db: AsyncIOMotorDatabase) -> dict:
    """Keep the oldest program of each duplicate group, delete the rest"""
    duplicates = await find_duplicate_programs(db)

    to_delete = []
    for group in duplicates:
        to_delete.extend(p["id"] for p in group["programs"][1:])

    deleted = 0
    if to_delete:
        result = await db.programs.delete_many({"id": {"$in": to_delete}})
        deleted = result.deleted_count

    logger.info("Removed %d duplicate programs across %d groups", deleted, len(duplicates))
    return {
        "deletedCount": deleted,
        "keptCount": len(duplicates),
        "message": f"Deleted {deleted} duplicate programs, kept {len(duplicates)} originals",
    }
