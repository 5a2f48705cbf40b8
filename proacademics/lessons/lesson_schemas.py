from pydantic import BaseModel
from typing import Any, Dict, List, Optional

# ==================== REQUEST SCHEMAS ====================

class LessonCreate(BaseModel):
    title: Optional[str] = None
    subject: Optional[str] = None
    module: Optional[str] = None
    program: Optional[str] = ""
    instructor: Optional[str] = ""
    duration: Optional[str] = ""
    description: Optional[str] = ""
    videoUrl: Optional[str] = ""
    scheduledDate: Optional[str] = ""
    status: Optional[str] = "draft"
    xpValue: Optional[int] = None


class LessonUpdate(BaseModel):
    """
    Partial update
    title is stored as both title and topic
    """
    lessonName: Optional[str] = None
    title: Optional[str] = None
    subject: Optional[str] = None
    module: Optional[str] = None
    type: Optional[str] = None
    teacher: Optional[str] = None
    instructor: Optional[str] = None
    program: Optional[str] = None
    duration: Optional[str] = None
    description: Optional[str] = None
    videoUrl: Optional[str] = None
    zoomLink: Optional[str] = None
    scheduledDate: Optional[str] = None
    time: Optional[str] = None
    status: Optional[str] = None
    xpValue: Optional[int] = None


class LessonImportRequest(BaseModel):
    lessons: Optional[List[Dict[str, Any]]] = None


class LessonViewEvent(BaseModel):
    lessonId: Optional[str] = None
    action: Optional[str] = None
    timestamp: Optional[str] = None
