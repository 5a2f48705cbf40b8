from pydantic import BaseModel, validator
from typing import Any, Dict, List, Optional

SUBTOPIC_TYPES = ("Lesson", "Tutorial", "Workshop")


class SubtopicIn(BaseModel):
    id: Optional[str] = None
    videoName: str
    type: Optional[str] = "Lesson"
    duration: Optional[str] = ""
    teacher: Optional[str] = ""
    description: Optional[str] = ""
    zoomLink: Optional[str] = ""
    videoEmbedLink: Optional[str] = ""
    status: Optional[str] = "draft"

    @validator("type")
    def valid_type(cls, v):
        if v and v not in SUBTOPIC_TYPES:
            raise ValueError(f"type must be one of {', '.join(SUBTOPIC_TYPES)}")
        return v or "Lesson"


class TopicCreate(BaseModel):
    topicName: Optional[str] = None
    subject: Optional[str] = None
    program: Optional[str] = None
    description: Optional[str] = ""
    status: Optional[str] = "draft"
    subtopics: Optional[List[SubtopicIn]] = None


class TopicUpdate(BaseModel):
    topicName: Optional[str] = None
    subject: Optional[str] = None
    program: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    subtopics: Optional[List[SubtopicIn]] = None


class TopicVaultImport(BaseModel):
    """Flat rows, one video per row"""
    topicVaults: Optional[List[Dict[str, Any]]] = None
