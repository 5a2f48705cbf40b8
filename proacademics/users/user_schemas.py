from pydantic import BaseModel, validator
from typing import Optional

from proacademics import config


def password_within_limit(password: Optional[str]) -> Optional[str]:
    if password and len(password.encode("utf-8")) > config.PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must be at most {config.PASSWORD_MAX_BYTES} bytes")
    return password


class SignupRequest(BaseModel):
    name: Optional[str] = None
    nickname: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    dateOfBirth: Optional[str] = None
    schoolName: Optional[str] = None
    uniqueToken: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = "student"
    deviceFingerprint: Optional[str] = None
    userAgent: Optional[str] = None
    timezone: Optional[str] = None

    @validator("email")
    def normalize_email(cls, v):
        return v.strip().lower() if v else v

    @validator("password")
    def password_length(cls, v):
        return password_within_limit(v)


class LoginRequest(BaseModel):
    email: str
    password: str


class StudentCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    programs: Optional[list] = None

    @validator("password")
    def password_length(cls, v):
        return password_within_limit(v)
