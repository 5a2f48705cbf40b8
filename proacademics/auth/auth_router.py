import logging

from fastapi import APIRouter, Depends, HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from proacademics import config
from proacademics.auth.auth_utils import create_access_token, get_current_user
from proacademics.database import get_db
from proacademics.errors import UserAlreadyExistsError
from proacademics.users import user_service
from proacademics.users.user_schemas import LoginRequest, SignupRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])

SIGNUP_REQUIRED_FIELDS = ["name", "email", "password", "dateOfBirth", "schoolName", "uniqueToken"]

# Self-service signup never grants staff roles
SIGNUP_ROLES = ("student", "parent")


@router.post("/signup", status_code=201)
async def signup(data: SignupRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    payload = data.dict()
    if not all(payload.get(field) for field in SIGNUP_REQUIRED_FIELDS):
        raise HTTPException(status_code=400, detail="Missing required fields")

    if len(data.password) < config.PASSWORD_MIN_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {config.PASSWORD_MIN_LENGTH} characters",
        )

    if await user_service.user_exists(db, data.email):
        raise HTTPException(status_code=400, detail="User already exists")

    payload["role"] = data.role if data.role in SIGNUP_ROLES else "student"
    user_data = {k: v for k, v in payload.items() if v is not None}

    try:
        user = await user_service.create_user(db, user_data)
    except UserAlreadyExistsError:
        raise HTTPException(status_code=400, detail="User already exists")

    return {"message": "User created successfully", "user": user}


@router.post("/login")
async def login(data: LoginRequest, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Exchange credentials for a session token"""
    user = await user_service.verify_password(db, data.email, data.password)
    if not user:
        logger.info("Failed login for %s", data.email)
        raise HTTPException(status_code=401, detail="Invalid email or password")

    await user_service.update_last_login(db, user["id"])
    return {
        "access_token": create_access_token(user),
        "token_type": "bearer",
        "user": user_service.public_user(user),
    }


@router.get("/me")
async def me(claims: dict = Depends(get_current_user), db: AsyncIOMotorDatabase = Depends(get_db)):
    user = await user_service.find_user_by_id(db, claims["sub"])
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return {"user": user_service.public_user(user)}
