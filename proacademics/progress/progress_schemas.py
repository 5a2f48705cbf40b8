from pydantic import BaseModel, Field
from typing import List, Optional


class AttemptCreate(BaseModel):
    questionId: str = Field(..., min_length=1)
    correct: bool
    timeTaken: float = Field(0, ge=0)
    watchedSolution: bool = False


class LexResult(BaseModel):
    questionId: str
    correct: bool = False
    timeTaken: Optional[float] = 0


class LexNextRequest(BaseModel):
    questionId: str
    wasCorrect: bool


class LexCompleteRequest(BaseModel):
    results: List[LexResult] = []


class RecommendationAction(BaseModel):
    action: Optional[str] = None
    topicName: Optional[str] = None
