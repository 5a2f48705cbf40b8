from pydantic import BaseModel, validator
from typing import Optional

# ==================== REQUEST SCHEMAS ====================

class SubjectCreate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = ""
    isActive: bool = True

    @validator('name')
    def strip_name(cls, v):
        return v.strip() if v else v


class SubjectUpdate(BaseModel):
    name: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    isActive: Optional[bool] = None


class ProgramCreate(BaseModel):
    name: Optional[str] = None
    subjectId: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = ""
    isActive: bool = True

    @validator('name')
    def strip_name(cls, v):
        return v.strip() if v else v


class ProgramUpdate(BaseModel):
    """PUT replaces the required trio, other fields are optional"""
    name: Optional[str] = None
    subjectId: Optional[str] = None
    color: Optional[str] = None
    description: Optional[str] = None
    isActive: Optional[bool] = None
