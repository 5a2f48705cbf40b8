import logging

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse

from proacademics.ai import ai_service
from proacademics.ai.ai_schemas import (
    ChatRequest,
    ChatStreamRequest,
    EvaluateAnswerRequest,
    LexChatRequest,
    QuestionGenerationRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["AI Tutor"])


# ==================== LEX ====================

@router.post("/lex")
async def lex_chat(data: LexChatRequest):
    if not data.messages:
        raise HTTPException(status_code=400, detail="Invalid request. Messages array is required.")

    try:
        text, fallback = await ai_service.lex_reply(data.messages)
    except Exception as e:
        logger.exception("Error in Lex AI: %s", e)
        raise HTTPException(status_code=500, detail="Failed to generate response. Please try again.")

    if fallback:
        return {"response": text, "fallback": True}
    return {"response": text}


@router.post("/lex/questions")
async def lex_questions(data: QuestionGenerationRequest):
    """Multiple-choice practice questions for the given topics"""
    if data.topics is None:
        raise HTTPException(status_code=400, detail="Invalid request. Topics array is required.")

    questions, fallback = await ai_service.generate_questions(data.topics, data.difficulty, data.count)
    if fallback:
        return {"questions": questions, "fallback": True}
    return {"questions": questions}


# ==================== EVALUATION ====================

@router.post("/ai/evaluate-answer")
async def evaluate_answer(data: EvaluateAnswerRequest):
    question_data = data.questionData or {}
    if not question_data.get("question") or not question_data.get("userAnswer") or not question_data.get("markScheme"):
        raise HTTPException(status_code=400, detail="Missing required fields")

    try:
        evaluation, fallback = await ai_service.evaluate_answer(question_data)
    except Exception as e:
        logger.exception("Error in AI evaluation: %s", e)
        raise HTTPException(status_code=500, detail="Failed to evaluate answer")

    return {
        "success": True,
        "evaluation": evaluation,
        "fallback": fallback,
        "questionData": {
            "questionId": question_data.get("questionId"),
            "topic": question_data.get("topic"),
            "subtopic": question_data.get("subtopic"),
            "level": question_data.get("level"),
        },
    }


# ==================== CHAT ====================

@router.post("/chat")
async def chat(data: ChatRequest):
    if not data.message or not data.message.strip():
        raise HTTPException(status_code=400, detail="Message is required")

    try:
        text, fallback = await ai_service.chat_reply(data.message, data.context)
    except Exception as e:
        logger.exception("Error in chat: %s", e)
        raise HTTPException(status_code=500, detail="AI service temporarily unavailable")

    return {"success": True, "response": text, "fallback": fallback}


@router.post("/chat/stream")
async def chat_stream(data: ChatStreamRequest):
    """Plain-text stream of the tutor's reply"""
    messages = data.messages or []
    if not messages:
        raise HTTPException(status_code=400, detail="Messages array is required")

    last = messages[-1]
    if (last.get("role") or last.get("sender") or last.get("type")) != "user":
        raise HTTPException(status_code=400, detail="No user message found")

    return StreamingResponse(ai_service.stream_reply(messages), media_type="text/plain; charset=utf-8")
