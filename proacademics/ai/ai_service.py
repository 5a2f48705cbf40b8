"""
AI tutor: Lex chat, question generation, answer evaluation and homework marking

Every entry point works without an LLM key by falling back to canned or
heuristic content, flagged with fallback=True by the routers.
"""

import json
import logging
import re
from typing import AsyncIterator, List, Optional, Tuple

import httpx

from proacademics.ai import llm_client
from proacademics.ai.prompts import PROMPTS
from proacademics.errors import LLMUnavailableError

logger = logging.getLogger(__name__)

# ==================== LEX CHAT ====================

LEX_FALLBACK_RESPONSES = {
    "math": "I'd be happy to help with your math question! For quadratic equations, remember the standard form is ax² + bx + c = 0. You can solve by factoring, completing the square, or the quadratic formula: x = (-b ± √(b² - 4ac)) / 2a. What specific part would you like me to explain further?",
    "physics": "Great physics question! Physics is all about understanding how things move and interact. Whether it's forces, energy, waves or electricity, breaking problems down step by step is key. What specific physics topic are you working on?",
    "chemistry": "Chemistry is about understanding how atoms and molecules interact. Whether you're looking at reactions, bonding or molecular structures, I can help break down the concepts. What chemistry topic would you like to explore?",
    "biology": "Biology is the study of life and living organisms! From cells to ecosystems, genetics to anatomy, I'm here to help explain the concepts clearly. What biology topic interests you?",
    "general": "I'm Lex, your AI learning assistant! I'm here to help with any academic question, whether it's math, science or any other subject. What would you like to learn about today?",
}

LEX_DEGRADED_RESPONSE = (
    "I'm currently experiencing some technical difficulties, but I'm still here to help! "
    "While my AI capabilities are temporarily limited, I can still provide general guidance "
    "on your studies. What subject would you like to work on?"
)

TOPIC_KEYWORDS = [
    ("math", ["math", "equation", "algebra", "calculus"]),
    ("physics", ["physics", "force", "motion", "wave"]),
    ("chemistry", ["chemistry", "chemical", "reaction", "molecule"]),
    ("biology", ["biology", "cell", "organism", "dna"]),
]


def topic_from_message(message: str) -> str:
    lowered = (message or "").lower()
    for topic, keywords in TOPIC_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return topic
    return "general"


def to_chat_messages(messages: List[dict]) -> List[dict]:
    """Client messages carry sender/type/role; normalise to OpenAI roles"""
    converted = []
    for msg in messages:
        who = msg.get("role") or msg.get("sender") or msg.get("type")
        role = "user" if who == "user" else "assistant"
        converted.append({"role": role, "content": msg.get("content", "")})
    return converted


async def lex_reply(messages: List[dict]) -> Tuple[str, bool]:
    """Returns (reply, fallback)"""
    latest = messages[-1].get("content", "")

    if not llm_client.is_configured():
        logger.info("OpenAI API key not found, using fallback response")
        return LEX_FALLBACK_RESPONSES[topic_from_message(latest)], True

    try:
        text = await llm_client.chat_completion(
            to_chat_messages(messages),
            system=PROMPTS["lex"]["system"],
        )
        return text, False
    except LLMUnavailableError as e:
        logger.warning("Lex falling back: %s", e)
        return LEX_DEGRADED_RESPONSE, True


# ==================== QUESTION GENERATION ====================

FALLBACK_QUESTIONS = [
    {
        "id": "fallback-math-1",
        "text": "Solve for x: 3x + 7 = 22",
        "options": ["x = 5", "x = 6", "x = 7", "x = 8"],
        "correctAnswer": 0,
        "difficulty": "easy",
        "topic": "Algebra",
        "explanation": "Subtract 7 from both sides: 3x = 15. Then divide both sides by 3: x = 5.",
        "hint": "Isolate the variable by performing inverse operations.",
    },
    {
        "id": "fallback-math-2",
        "text": "What is the derivative of f(x) = x² + 3x?",
        "options": ["2x + 3", "x² + 3", "2x + 3x", "x + 3"],
        "correctAnswer": 0,
        "difficulty": "medium",
        "topic": "Calculus",
        "explanation": "By the power rule d/dx(x²) = 2x and d/dx(3x) = 3, so the derivative is 2x + 3.",
        "hint": "Apply the power rule: d/dx(xⁿ) = nxⁿ⁻¹",
    },
    {
        "id": "fallback-physics-1",
        "text": "What is the unit of force in the SI system?",
        "options": ["Joule", "Newton", "Watt", "Pascal"],
        "correctAnswer": 1,
        "difficulty": "easy",
        "topic": "Physics Fundamentals",
        "explanation": "The Newton (N) is the SI unit of force, defined as kg⋅m/s².",
        "hint": "Think about the scientist the laws of motion are named after.",
    },
    {
        "id": "fallback-chemistry-1",
        "text": "What is the chemical symbol for gold?",
        "options": ["Go", "Gd", "Au", "Ag"],
        "correctAnswer": 2,
        "difficulty": "easy",
        "topic": "Chemical Elements",
        "explanation": "Gold's symbol Au comes from its Latin name 'aurum'.",
        "hint": "The symbol comes from the Latin name for gold.",
    },
    {
        "id": "fallback-biology-1",
        "text": "What is the powerhouse of the cell?",
        "options": ["Nucleus", "Ribosome", "Mitochondria", "Endoplasmic Reticulum"],
        "correctAnswer": 2,
        "difficulty": "easy",
        "topic": "Cell Biology",
        "explanation": "Mitochondria produce ATP, the cell's main energy currency.",
        "hint": "Which organelle is responsible for energy production?",
    },
]


def fallback_questions(count: int) -> List[dict]:
    return FALLBACK_QUESTIONS[:max(0, min(count, len(FALLBACK_QUESTIONS)))]


def extract_json_array(raw: str) -> List[dict]:
    """Find the JSON array in a model reply, ignoring prose and ``` fences"""
    match = re.search(r'\[.*\]', raw or "", re.DOTALL)
    if not match:
        raise ValueError("No JSON array in model output")
    data = json.loads(match.group(0))
    if not isinstance(data, list):
        raise ValueError("Model output is not a list")
    return data


async def generate_questions(topics: List[str], difficulty: Optional[str] = None, count: int = 5) -> Tuple[List[dict], bool]:
    """Returns (questions, fallback); any failure yields the fallback set"""
    if not llm_client.is_configured():
        logger.info("OpenAI API key not found, using fallback questions")
        return fallback_questions(count), True

    prompt = PROMPTS["questions"]["standard"].format(
        count=count,
        topics=", ".join(topics),
        difficulty=difficulty or "mixed (include some easy, medium, and hard questions)",
    )
    try:
        raw = await llm_client.chat_completion(
            [{"role": "user", "content": prompt}],
            system=PROMPTS["questions"]["system"],
        )
        return extract_json_array(raw), False
    except Exception as e:
        logger.error("Question generation failed, using fallback: %s", e)
        return fallback_questions(count), True


# ==================== ANSWER EVALUATION ====================

def heuristic_score(answer: str, max_marks: int = 10) -> dict:
    """
    Rough content-based score used when no LLM is available

    digits +3, math symbols +3, longer than 10 chars +2, non-empty +2
    """
    answer = answer or ""
    has_numbers = bool(re.search(r"\d", answer))
    has_math_symbols = bool(re.search(r"[+\-*/=<>]", answer))
    is_detailed = len(answer) > 10

    score = 0
    if has_numbers:
        score += 3
    if has_math_symbols:
        score += 3
    if is_detailed:
        score += 2
    if answer:
        score += 2

    max_marks = max_marks or 10
    score = min(score, max_marks)
    percentage = round(score / max_marks * 100)
    return {
        "score": score,
        "maxMarks": max_marks,
        "percentage": percentage,
        "hasNumbers": has_numbers,
        "hasMathSymbols": has_math_symbols,
        "isDetailed": is_detailed,
        "isCorrect": percentage >= 70,
        "isPartiallyCorrect": 40 <= percentage < 70,
    }


def render_evaluation(question_data: dict, analysis: dict) -> str:
    if analysis["isCorrect"]:
        verdict = "**Excellent!** You got this right!"
    elif analysis["isPartiallyCorrect"]:
        verdict = "**Good effort!** You're on the right track!"
    else:
        verdict = "**Not quite right, but don't worry!** Let's learn together!"

    got_right = [
        "- You included numerical values" if analysis["hasNumbers"] else "- Try including more numbers in your answer",
        "- You used mathematical notation correctly" if analysis["hasMathSymbols"] else "- Consider using more mathematical symbols",
        "- You provided a detailed response" if analysis["isDetailed"] else "- Your answer could be more comprehensive",
    ]

    suggestions = []
    if not analysis["hasNumbers"]:
        suggestions.append("- Include numerical calculations in your answer")
    if not analysis["hasMathSymbols"]:
        suggestions.append("- Use mathematical symbols (+, -, ×, ÷, =) to show your work")
    if not analysis["isDetailed"]:
        suggestions.append("- Explain your reasoning step by step")
    suggestions.append("- Practice similar problems to build confidence")

    level = (question_data.get("level") or "").upper()
    return "\n".join([
        "Hi! I'm Lex, your AI tutor!",
        "",
        "## Evaluation Results",
        "",
        f"**Your Answer:** \"{question_data.get('userAnswer', '')}\"",
        f"**Expected Answer:** \"{question_data.get('markScheme', '')}\"",
        "",
        "### Score Breakdown",
        f"**Your Score:** {analysis['score']}/{analysis['maxMarks']} ({analysis['percentage']}%)",
        "",
        verdict,
        "",
        "### What You Got Right",
        *got_right,
        "",
        "### Key Learning Points",
        f"- **Topic:** {question_data.get('topic', '')} - {question_data.get('subtopic', '')}",
        f"- **Difficulty:** {level}",
        f"- **Question:** {question_data.get('question', '')}",
        "",
        "### Suggestions for Improvement",
        *suggestions,
        "",
        "### Keep Going!",
        "Every mistake is a learning opportunity. Keep practicing and you'll master this topic in no time!",
    ])


async def evaluate_answer(question_data: dict) -> Tuple[str, bool]:
    """Returns (markdown evaluation, fallback)"""
    max_marks = question_data.get("maxMarks") or 10

    if llm_client.is_configured():
        prompt = PROMPTS["evaluate"]["standard"].format(
            question=question_data.get("question", ""),
            markScheme=question_data.get("markScheme", ""),
            userAnswer=question_data.get("userAnswer", ""),
            topic=question_data.get("topic", ""),
            subtopic=question_data.get("subtopic", ""),
            level=question_data.get("level", ""),
            maxMarks=max_marks,
        )
        try:
            text = await llm_client.chat_completion(
                [{"role": "user", "content": prompt}],
                system=PROMPTS["evaluate"]["system"],
                temperature=0.3,
            )
            return text, False
        except LLMUnavailableError as e:
            logger.warning("Evaluation falling back: %s", e)

    analysis = heuristic_score(question_data.get("userAnswer", ""), max_marks)
    return render_evaluation(question_data, analysis), True


# ==================== HOMEWORK CHAT ====================

def homework_chat_reply(message: str, context: Optional[dict]) -> str:
    """Keyword-driven tutor reply; never reveals the answer"""
    context = context or {}
    question = context.get("currentQuestion")

    if context.get("type") != "homework" or not question:
        return (
            "Hello! I'm your AI study assistant. I can help you with:\n\n"
            "• Explaining mathematical concepts\n"
            "• Providing hints for homework problems\n"
            "• Guiding you through solution steps\n"
            "• Clarifying topics and subtopics\n\n"
            "What would you like help with today?"
        )

    lowered = message.lower()
    topic = question.get("topic", "")
    subtopic = question.get("subtopic", "")
    level = question.get("level", "")
    subject = question.get("subject") or context.get("subject", "")

    if "hint" in lowered:
        mark_scheme = (question.get("markScheme") or "")[:200]
        return (
            f"Here's a hint for this {level} level question:\n\n"
            f"Focus on the key concepts in {topic} - {subtopic}. The mark scheme suggests: {mark_scheme}..."
        )
    if "explain" in lowered or "how" in lowered:
        return (
            f"Let me explain this {subject} question:\n\n"
            f"Topic: {topic}\nSubtopic: {subtopic}\nDifficulty: {level}\n\n"
            f"The question is asking you to apply concepts from {topic}. Start by identifying what type "
            "of problem this is and what formulas or methods might be relevant."
        )
    if "solution" in lowered or "answer" in lowered:
        return (
            "I can't give you the direct answer, but I can guide you through the solution process:\n\n"
            "1. Read the question carefully\n"
            "2. Identify what's given and what you need to find\n"
            f"3. Apply the appropriate {topic} concepts\n"
            "4. Show your working step by step\n\n"
            "Try working through it step by step, and let me know if you get stuck!"
        )
    return (
        f"I'm here to help you with this {subject} homework question. I can provide hints, explain "
        "concepts, or guide you through the solution process. What specific aspect would you like help with?\n\n"
        f"Question context:\n- Topic: {topic}\n- Subtopic: {subtopic}\n- Level: {level}"
    )


def _chat_system_prompt(context: Optional[dict]) -> str:
    system = PROMPTS["chat"]["system"]
    question = (context or {}).get("currentQuestion")
    if (context or {}).get("type") == "homework" and question:
        system += PROMPTS["chat"]["homework"].format(
            subject=question.get("subject") or context.get("subject", ""),
            topic=question.get("topic", ""),
            subtopic=question.get("subtopic", ""),
            level=question.get("level", ""),
            question=question.get("question", ""),
        )
    return system


async def chat_reply(message: str, context: Optional[dict] = None) -> Tuple[str, bool]:
    if not llm_client.is_configured():
        return homework_chat_reply(message, context), True

    try:
        text = await llm_client.chat_completion(
            [{"role": "user", "content": message}],
            system=_chat_system_prompt(context),
            max_tokens=500,
        )
        return text or "I'm sorry, I couldn't generate a response.", False
    except LLMUnavailableError as e:
        logger.warning("Chat falling back: %s", e)
        return homework_chat_reply(message, context), True


async def stream_reply(messages: List[dict]) -> AsyncIterator[str]:
    """Text chunks of the assistant reply to the conversation"""
    if not llm_client.is_configured():
        reply = homework_chat_reply(messages[-1].get("content", ""), None)
        for word in reply.split(" "):
            yield word + " "
        return

    try:
        async for chunk in llm_client.stream_chat_completion(
            to_chat_messages(messages),
            system=PROMPTS["chat"]["system"],
        ):
            yield chunk
    except (LLMUnavailableError, httpx.HTTPError) as e:
        logger.error("Chat stream failed: %s", e)
        yield "Sorry, I am unable to respond at the moment. Please try again later."


# ==================== HOMEWORK MARKING ====================

IMPROVEMENT_AREAS = [
    "Review fundamental concepts",
    "Practice more problem-solving techniques",
    "Focus on step-by-step working",
    "Improve calculation accuracy",
    "Better time management during tests",
]

STRENGTHS = [
    "Clear mathematical reasoning",
    "Good problem identification",
    "Accurate calculations",
    "Well-organized solutions",
    "Strong conceptual understanding",
]


def _heuristic_mark(question: dict, answer: str) -> dict:
    max_marks = question.get("maxMarks") or 10
    analysis = heuristic_score(answer, max_marks)
    if analysis["isCorrect"]:
        feedback = "Excellent work! Your approach is correct."
    else:
        feedback = "Not quite right. Consider reviewing the key concepts and try again."
    return {
        "isCorrect": analysis["isCorrect"],
        "marks": analysis["score"],
        "maxMarks": max_marks,
        "feedback": feedback,
    }


async def mark_answer(question: dict, answer: str) -> dict:
    """Mark one homework answer, by LLM when configured"""
    result = None
    if llm_client.is_configured():
        max_marks = question.get("maxMarks") or 10
        prompt = PROMPTS["mark"]["standard"].format(
            question=question.get("question", ""),
            markScheme=question.get("markScheme", ""),
            answer=answer,
            maxMarks=max_marks,
        )
        try:
            raw = await llm_client.chat_completion(
                [{"role": "user", "content": prompt}],
                system=PROMPTS["mark"]["system"],
                temperature=0.2,
                max_tokens=300,
            )
            match = re.search(r'\{.*\}', raw, re.DOTALL)
            if not match:
                raise ValueError("No JSON object in model output")
            data = json.loads(match.group(0))
            marks = max(0, min(int(data.get("marks", 0)), max_marks))
            result = {
                "isCorrect": bool(data.get("isCorrect", marks >= max_marks * 0.7)),
                "marks": marks,
                "maxMarks": max_marks,
                "feedback": data.get("feedback") or "",
            }
        except (LLMUnavailableError, httpx.HTTPError, ValueError, TypeError) as e:
            logger.warning("LLM marking failed, using heuristic: %s", e)

    if result is None:
        result = _heuristic_mark(question, answer)

    return {
        "questionId": question.get("questionId") or question.get("id"),
        "studentAnswer": answer,
        **result,
    }


def overall_feedback(score: int) -> str:
    if score >= 90:
        return "Outstanding performance! You demonstrate excellent understanding of the concepts."
    if score >= 80:
        return "Great work! You have a solid grasp of most concepts with room for minor improvements."
    if score >= 70:
        return "Good effort! You understand the basics but could benefit from additional practice."
    if score >= 60:
        return "Fair attempt. Focus on strengthening your foundational understanding."
    return "This topic needs more attention. Consider reviewing the lesson materials and practicing more."


def improvement_areas(feedback: List[dict]) -> List[str]:
    wrong = sum(1 for item in feedback if not item["isCorrect"])
    return IMPROVEMENT_AREAS[:min(max(wrong, 1), 3)]


def strengths(feedback: List[dict]) -> List[str]:
    right = sum(1 for item in feedback if item["isCorrect"])
    return STRENGTHS[:min(right, 3)]
