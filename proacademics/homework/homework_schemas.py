from datetime import datetime
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Union

# ==================== ADMIN HOMEWORK ====================

class HomeworkQuestion(BaseModel):
    questionId: Optional[str] = None
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    level: Optional[str] = None
    question: Optional[str] = None
    markScheme: Optional[str] = None
    image: Optional[str] = None
    maxMarks: Optional[int] = 10


class HomeworkCreate(BaseModel):
    homeworkName: Optional[str] = None
    subject: Optional[str] = None
    program: Optional[str] = None
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    level: Optional[str] = None
    teacher: Optional[str] = None
    dateAssigned: Optional[datetime] = None
    dueDate: Optional[datetime] = None
    estimatedTime: Optional[int] = None
    xpAwarded: Optional[int] = None
    questionSet: Optional[List[HomeworkQuestion]] = None
    studentId: Optional[str] = None
    status: Optional[str] = "draft"


class HomeworkUpdate(BaseModel):
    homeworkName: Optional[str] = None
    subject: Optional[str] = None
    program: Optional[str] = None
    topic: Optional[str] = None
    subtopic: Optional[str] = None
    level: Optional[str] = None
    teacher: Optional[str] = None
    dateAssigned: Optional[datetime] = None
    dueDate: Optional[datetime] = None
    estimatedTime: Optional[int] = None
    xpAwarded: Optional[int] = None
    questionSet: Optional[List[HomeworkQuestion]] = None
    studentId: Optional[str] = None
    status: Optional[str] = None
    completionStatus: Optional[str] = None


# ==================== STUDENT HOMEWORK ====================

class HomeworkProgressUpdate(BaseModel):
    homeworkId: str = Field(..., min_length=1)
    progress: int = Field(..., ge=0, le=100)
    status: str


class HomeworkSubmission(BaseModel):
    """
    answers is either a list in question order
    or a mapping of questionId (or question index) to answer
    """
    homeworkId: Optional[str] = None
    answers: Optional[Union[List[Any], Dict[str, Any]]] = None
