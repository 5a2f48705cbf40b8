from pydantic import BaseModel
from typing import Any, Dict, List, Optional, Union


class PaperIn(BaseModel):
    name: Optional[str] = None
    questionPaperUrl: Optional[str] = None
    markSchemeUrl: Optional[str] = None
    questions: Optional[List[Dict[str, Any]]] = None


class PastPaperCreate(BaseModel):
    paperName: Optional[str] = None
    board: Optional[str] = None
    year: Optional[Union[int, str]] = None
    subject: Optional[str] = None
    program: Optional[str] = None
    status: Optional[str] = None
    papers: Optional[List[PaperIn]] = None


class QuestionCreate(BaseModel):
    paperIndex: Optional[int] = None
    questionNumber: Optional[Union[int, str]] = None
    topic: Optional[str] = None
    questionName: Optional[str] = None
    questionDescription: Optional[str] = None
    duration: Optional[str] = None
    teacher: Optional[str] = None
    videoEmbedLink: Optional[str] = None


class QuestionUpdate(QuestionCreate):
    questionId: Optional[str] = None
