"""
Password hashing, session tokens and role guards
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from fastapi import Depends, Header, HTTPException
from jose import ExpiredSignatureError, JWTError, jwt

from proacademics import config


def hash_password(password: str) -> str:
    """Hash password with bcrypt"""
    salt = bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def check_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def _secret() -> str:
    if not config.NEXTAUTH_SECRET:
        raise HTTPException(status_code=500, detail="Authentication system not initialized")
    return config.NEXTAUTH_SECRET


def create_access_token(user: dict) -> str:
    """
    Create a session JWT for a user document

    Claims: sub (user id), email, name, role, jti, iat, exp
    """
    now = datetime.utcnow()
    payload = {
        "sub": str(user.get("id") or user.get("_id")),
        "email": user.get("email"),
        "name": user.get("name"),
        "role": user.get("role", "student"),
        "jti": str(uuid.uuid4()),
        "iat": now,
        "exp": now + timedelta(days=config.SESSION_MAX_AGE_DAYS),
    }
    return jwt.encode(payload, _secret(), algorithm=config.JWT_ALGORITHM)


def decode_access_token(token: str) -> dict:
    try:
        return jwt.decode(token, _secret(), algorithms=[config.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Session expired")
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")


def get_current_user(authorization: str = Header(None)) -> dict:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = authorization.split(" ", 1)[1]
    return decode_access_token(token)


def get_optional_user(authorization: str = Header(None)) -> Optional[dict]:
    """Like get_current_user, but anonymous requests get None"""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return decode_access_token(authorization.split(" ", 1)[1])


def require_admin(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Access denied")
    return user


def require_teacher(user: dict = Depends(get_current_user)) -> dict:
    if user.get("role") not in ("teacher", "admin"):
        raise HTTPException(status_code=403, detail="Access denied")
    return user
