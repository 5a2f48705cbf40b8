"""
Lex adaptive practice algorithm
Session composition, difficulty stepping, topic mastery and XP maths

Questions and attempts are plain Mongo documents:
    question: {"id", "topic", "subject", "gradeRating", "difficulty", ...}
    attempt:  {"questionId", "studentId", "attemptDate", "correct", "timeTaken", ...}
"""

import math
import random
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from proacademics import config

BASE_XP = {"easy": 10, "medium": 20, "hard": 30}
DEFAULT_XP = 15
TIME_BONUS_MULTIPLIER = 1.2

WEAK_ACCURACY = 0.7
STRONG_ACCURACY = 0.85

# Session mix out of 20 questions
RECENT_TOPIC_SHARE = 10
WEAK_TOPIC_SHARE = 8
UNSEEN_SHARE = 2


def calculate_xp(difficulty: str, correct: bool, time_bonus: bool = False) -> int:
    if not correct:
        return 0
    base = BASE_XP.get(difficulty, DEFAULT_XP)
    return math.floor(base * TIME_BONUS_MULTIPLIER) if time_bonus else base


def calculate_level(total_xp: int) -> int:
    return total_xp // config.XP_PER_LEVEL + 1


def calculate_cwa(attempts: List[dict]) -> float:
    """Percentage correct over the most recent attempts"""
    if not attempts:
        return 0

    recent = sorted(
        attempts,
        key=lambda a: a.get("attemptDate") or datetime.min,
        reverse=True,
    )[:config.CWA_WINDOW]
    correct = sum(1 for a in recent if a.get("correct"))
    return correct / len(recent) * 100


class LexAlgorithm:
    """Builds Lex sessions from a question bank and a student's attempt history"""

    def __init__(self, question_bank: List[dict], attempts: List[dict], rng: Optional[random.Random] = None):
        self.question_bank = question_bank
        self.attempts = attempts
        self.rng = rng or random.Random()
        self._by_id: Dict[str, dict] = {q["id"]: q for q in question_bank}

    def _topic_of(self, question_id: str) -> Optional[str]:
        question = self._by_id.get(question_id)
        return question.get("topic") if question else None

    def _select(self, questions: List[dict], count: int) -> List[dict]:
        if count <= 0 or not questions:
            return []
        return self.rng.sample(questions, min(count, len(questions)))

    # ==================== SESSION ====================

    def generate_session_questions(
        self,
        student_id: str,
        profile: dict,
        size: int = config.LEX_SESSION_SIZE,
        now: Optional[datetime] = None,
    ) -> List[dict]:
        """
        Compose a session:
        - half from topics attempted in the last 2 weeks
        - 40% from weak topics
        - 10% from questions unseen for 4 weeks
        then top up with wrong answers older than 4 weeks, then anything
        """
        now = now or datetime.utcnow()
        two_weeks_ago = now - timedelta(days=14)
        four_weeks_ago = now - timedelta(days=28)

        student_attempts = [a for a in self.attempts if a.get("studentId") == student_id]

        pools = [
            (self._recent_topic_questions(student_attempts, two_weeks_ago), RECENT_TOPIC_SHARE),
            (self._weak_topic_questions(student_attempts, profile.get("weakTopics") or []), WEAK_TOPIC_SHARE),
            (self._unseen_questions(student_attempts, four_weeks_ago), UNSEEN_SHARE),
        ]

        session: List[dict] = []
        chosen = set()

        def take(pool: List[dict], count: int):
            fresh = [q for q in pool if q["id"] not in chosen]
            for question in self._select(fresh, count):
                chosen.add(question["id"])
                session.append(question)

        for pool, share in pools:
            take(pool, round(share * size / config.LEX_SESSION_SIZE))

        if len(session) < size:
            take(self._reattempt_questions(student_attempts, four_weeks_ago), size - len(session))

        if len(session) < size:
            take(self.question_bank, size - len(session))

        return session[:size]

    def _recent_topic_questions(self, attempts: List[dict], since: datetime) -> List[dict]:
        recent = [a for a in attempts if a.get("attemptDate") and a["attemptDate"] >= since]
        seen_ids = {a["questionId"] for a in recent}
        topics = {self._topic_of(a["questionId"]) for a in recent} - {None}
        return [q for q in self.question_bank if q.get("topic") in topics and q["id"] not in seen_ids]

    def _weak_topic_questions(self, attempts: List[dict], weak_topics: List[str]) -> List[dict]:
        wrong_ids = {
            a["questionId"] for a in attempts
            if not a.get("correct") and self._topic_of(a["questionId"]) in weak_topics
        }
        return [q for q in self.question_bank if q.get("topic") in weak_topics and q["id"] not in wrong_ids]

    def _unseen_questions(self, attempts: List[dict], since: datetime) -> List[dict]:
        seen_ids = {a["questionId"] for a in attempts if a.get("attemptDate") and a["attemptDate"] >= since}
        return [q for q in self.question_bank if q["id"] not in seen_ids]

    def _reattempt_questions(self, attempts: List[dict], before: datetime) -> List[dict]:
        old_wrong = {
            a["questionId"] for a in attempts
            if not a.get("correct") and a.get("attemptDate") and a["attemptDate"] < before
        }
        return [q for q in self.question_bank if q["id"] in old_wrong]

    # ==================== ADAPTIVE STEP ====================

    def get_next_question(self, current: dict, was_correct: bool) -> Optional[dict]:
        """Correct -> harder question in the topic, incorrect -> easier or same level"""
        same_topic = [
            q for q in self.question_bank
            if q.get("topic") == current.get("topic") and q["id"] != current["id"]
        ]
        rating = current.get("gradeRating") or 0

        if was_correct:
            candidates = [q for q in same_topic if (q.get("gradeRating") or 0) > rating]
        else:
            candidates = [q for q in same_topic if (q.get("gradeRating") or 0) <= rating]

        pool = candidates or same_topic
        return self._select(pool, 1)[0] if pool else None

    # ==================== MASTERY ====================

    def calculate_topic_mastery(self, student_id: str, topic: str) -> float:
        topic_attempts = [
            a for a in self.attempts
            if a.get("studentId") == student_id and self._topic_of(a["questionId"]) == topic
        ]
        if not topic_attempts:
            return 0
        correct = sum(1 for a in topic_attempts if a.get("correct"))
        return correct / len(topic_attempts) * 100

    @staticmethod
    def update_student_profile(session_questions: List[dict], session_attempts: List[dict]) -> dict:
        """Classify the session's topics into weak / strong / recent"""
        topics_by_question = {q["id"]: q.get("topic") for q in session_questions}
        performance: Dict[str, Dict[str, int]] = {}

        for attempt in session_attempts:
            topic = topics_by_question.get(attempt.get("questionId"))
            if not topic:
                continue
            stats = performance.setdefault(topic, {"correct": 0, "total": 0})
            stats["total"] += 1
            if attempt.get("correct"):
                stats["correct"] += 1

        weak, strong, recent = [], [], []
        for topic, stats in performance.items():
            accuracy = stats["correct"] / stats["total"]
            recent.append(topic)
            if accuracy < WEAK_ACCURACY:
                weak.append(topic)
            elif accuracy > STRONG_ACCURACY:
                strong.append(topic)

        return {
            "weakTopics": weak,
            "strongTopics": strong,
            "recentTopics": recent,
            "lastStudyDate": datetime.utcnow(),
        }
