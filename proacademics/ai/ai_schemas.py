from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class LexChatRequest(BaseModel):
    messages: Optional[List[Dict[str, Any]]] = None


class QuestionGenerationRequest(BaseModel):
    topics: Optional[List[str]] = None
    difficulty: Optional[str] = None
    count: int = 5


class EvaluateAnswerRequest(BaseModel):
    questionData: Optional[Dict[str, Any]] = None


class ChatRequest(BaseModel):
    message: Optional[str] = None
    context: Optional[Dict[str, Any]] = None


class ChatStreamRequest(BaseModel):
    messages: Optional[List[Dict[str, Any]]] = None
