import logging
from datetime import datetime
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from proacademics import config
from proacademics.auth.auth_utils import check_password, hash_password
from proacademics.database import generate_id
from proacademics.errors import UserAlreadyExistsError

logger = logging.getLogger(__name__)

USER_ROLES = ("student", "teacher", "parent", "admin")

DEMO_USERS = [
    {
        "id": "demo-student-1",
        "name": "Alex Johnson",
        "email": "alex@example.com",
        "password": "password123",
        "role": "student",
        "xp": 2450,
        "level": 12,
        "predictedGrade": "A*",
        "currentWorkingAverage": 87.5,
        "studyStreak": 7,
    },
    {
        "id": "demo-admin-1",
        "name": "Sarah Admin",
        "email": "admin@proacademics.com",
        "password": "password123",
        "role": "admin",
        "permissions": ["manage_users", "manage_content", "view_analytics", "manage_system"],
    },
    {
        "id": "demo-teacher-1",
        "name": "Dr. Emily Watson",
        "email": "emily@proacademics.com",
        "password": "password123",
        "role": "teacher",
        "subjects": ["Physics", "Mathematics"],
    },
]


def public_user(user: Optional[dict]) -> Optional[dict]:
    """Strip password and Mongo _id from a user document"""
    if not user:
        return None
    return {k: v for k, v in user.items() if k not in ("password", "_id")}


# ==================== USER CRUD ====================

async def create_user(db: AsyncIOMotorDatabase, user_data: dict) -> dict:
    """
    Create a user with a bcrypt-hashed password

    Raises UserAlreadyExistsError when the email is taken.
    """
    email = user_data["email"].strip().lower()
    if await db.users.find_one({"email": email}):
        raise UserAlreadyExistsError("User already exists with this email")

    now = datetime.utcnow()
    user = {
        **user_data,
        "id": user_data.get("id") or generate_id("user"),
        "email": email,
        "password": hash_password(user_data["password"]),
        "role": user_data.get("role") or "student",
        "xp": user_data.get("xp") or 0,
        "level": user_data.get("level") or 1,
        "studyStreak": user_data.get("studyStreak") or 0,
        "currentWorkingAverage": user_data.get("currentWorkingAverage") or 0,
        "isEmailVerified": False,
        "createdAt": now,
        "updatedAt": now,
    }

    await db.users.insert_one(user)
    logger.info("Created %s user %s", user["role"], email)
    return public_user(user)


async def find_user_by_email(db: AsyncIOMotorDatabase, email: str) -> Optional[dict]:
    return await db.users.find_one({"email": email.strip().lower()})


async def find_user_by_id(db: AsyncIOMotorDatabase, user_id: str) -> Optional[dict]:
    return await db.users.find_one({"id": user_id})


async def user_exists(db: AsyncIOMotorDatabase, email: str) -> bool:
    return await find_user_by_email(db, email) is not None


async def update_user(db: AsyncIOMotorDatabase, user_id: str, update_data: dict) -> Optional[dict]:
    """Partial update, returns the updated public user or None"""
    updates = {k: v for k, v in update_data.items() if k not in ("id", "_id", "email", "password")}
    if "password" in update_data:
        updates["password"] = hash_password(update_data["password"])
    updates["updatedAt"] = datetime.utcnow()

    result = await db.users.find_one_and_update(
        {"id": user_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    return public_user(result)


async def update_last_login(db: AsyncIOMotorDatabase, user_id: str):
    now = datetime.utcnow()
    await db.users.update_one({"id": user_id}, {"$set": {"lastLogin": now, "updatedAt": now}})


async def verify_password(db: AsyncIOMotorDatabase, email: str, password: str) -> Optional[dict]:
    """Return the user when the credentials match, else None"""
    user = await find_user_by_email(db, email)
    if not user or not check_password(password, user.get("password")):
        return None
    return user


async def get_all_users(db: AsyncIOMotorDatabase) -> List[dict]:
    users = await db.users.find({}).sort("createdAt", -1).to_list(length=None)
    return [public_user(u) for u in users]


async def get_all_students(db: AsyncIOMotorDatabase) -> List[dict]:
    students = await db.users.find({"role": "student"}).sort("createdAt", -1).to_list(length=None)
    return [public_user(s) for s in students]


async def get_admins(db: AsyncIOMotorDatabase) -> List[dict]:
    admins = await db.users.find({"role": "admin"}).to_list(length=None)
    return [public_user(a) for a in admins]


# ==================== SEEDING ====================

async def seed_demo_users(db: AsyncIOMotorDatabase) -> int:
    """Create the demo accounts in development. Returns how many were created."""
    if config.is_production():
        return 0

    created = 0
    for demo in DEMO_USERS:
        try:
            await create_user(db, dict(demo))
            created += 1
        except UserAlreadyExistsError:
            logger.debug("Demo user %s already exists", demo["email"])
    return created


async def create_production_admin(db: AsyncIOMotorDatabase, name: str, email: str, password: str) -> dict:
    """Create an admin, or promote the existing account with that email"""
    existing = await find_user_by_email(db, email)
    if existing:
        return await update_user(db, existing["id"], {"role": "admin", "name": name, "password": password})

    return await create_user(db, {
        "name": name,
        "email": email,
        "password": password,
        "role": "admin",
        "permissions": ["manage_users", "manage_content", "view_analytics", "manage_system"],
    })
