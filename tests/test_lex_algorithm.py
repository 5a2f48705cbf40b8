import random
from datetime import datetime, timedelta

from proacademics.progress.lex_algorithm import (
    LexAlgorithm,
    calculate_cwa,
    calculate_level,
    calculate_xp,
)

NOW = datetime(2024, 5, 1, 12, 0, 0)


def make_bank():
    bank = []
    for topic in ("Algebra", "Forces", "Waves"):
        for rating in range(1, 11):
            bank.append({"id": f"{topic}-{rating}", "topic": topic, "gradeRating": rating})
    return bank


def attempt(question_id, correct, days_ago, student_id="s1"):
    return {
        "questionId": question_id,
        "studentId": student_id,
        "correct": correct,
        "attemptDate": NOW - timedelta(days=days_ago),
    }


def test_calculate_xp():
    assert calculate_xp("easy", True) == 10
    assert calculate_xp("medium", True) == 20
    assert calculate_xp("hard", True, time_bonus=True) == 36
    assert calculate_xp("unknown", True) == 15
    assert calculate_xp("hard", False) == 0


def test_calculate_level():
    assert calculate_level(0) == 1
    assert calculate_level(199) == 1
    assert calculate_level(200) == 2
    assert calculate_level(2450) == 13


def test_calculate_cwa_uses_latest_fifty():
    old_wrong = [attempt("Algebra-1", False, 60 + i) for i in range(20)]
    recent_right = [attempt("Algebra-2", True, i) for i in range(50)]
    assert calculate_cwa(old_wrong + recent_right) == 100
    assert calculate_cwa([]) == 0


def test_session_has_requested_size_and_no_duplicates():
    lex = LexAlgorithm(make_bank(), [attempt("Forces-1", False, 2)], rng=random.Random(7))
    session = lex.generate_session_questions("s1", {"weakTopics": ["Waves"]}, now=NOW)

    ids = [q["id"] for q in session]
    assert len(ids) == 20
    assert len(set(ids)) == 20


def test_session_prefers_recent_topics():
    attempts = [attempt("Forces-1", True, 1), attempt("Forces-2", True, 3)]
    lex = LexAlgorithm(make_bank(), attempts, rng=random.Random(1))
    session = lex.generate_session_questions("s1", {}, now=NOW)

    forces = [q for q in session if q["topic"] == "Forces"]
    assert len(forces) >= 8
    assert "Forces-1" not in {q["id"] for q in session[:8]}


def test_session_with_small_bank():
    bank = make_bank()[:5]
    lex = LexAlgorithm(bank, [], rng=random.Random(3))
    assert len(lex.generate_session_questions("s1", {}, now=NOW)) == 5


def test_next_question_steps_difficulty():
    bank = make_bank()
    lex = LexAlgorithm(bank, [], rng=random.Random(5))
    current = {"id": "Algebra-5", "topic": "Algebra", "gradeRating": 5}

    harder = lex.get_next_question(current, True)
    easier = lex.get_next_question(current, False)

    assert harder["topic"] == "Algebra" and harder["gradeRating"] > 5
    assert easier["topic"] == "Algebra" and easier["gradeRating"] <= 5
    assert easier["id"] != "Algebra-5"


def test_next_question_falls_back_to_topic():
    lex = LexAlgorithm(make_bank(), [], rng=random.Random(5))
    top = {"id": "Waves-10", "topic": "Waves", "gradeRating": 10}
    assert lex.get_next_question(top, True)["topic"] == "Waves"
    assert lex.get_next_question({"id": "x", "topic": "Nothing"}, True) is None


def test_topic_mastery():
    attempts = [
        attempt("Algebra-1", True, 1),
        attempt("Algebra-2", False, 1),
        attempt("Algebra-3", True, 1),
        attempt("Algebra-4", True, 1),
        attempt("Algebra-5", True, 1, student_id="other"),
    ]
    lex = LexAlgorithm(make_bank(), attempts)
    assert lex.calculate_topic_mastery("s1", "Algebra") == 75
    assert lex.calculate_topic_mastery("s1", "Forces") == 0


def test_update_student_profile_classifies_topics():
    questions = [
        {"id": "a1", "topic": "Algebra"},
        {"id": "a2", "topic": "Algebra"},
        {"id": "f1", "topic": "Forces"},
        {"id": "w1", "topic": "Waves"},
        {"id": "w2", "topic": "Waves"},
        {"id": "w3", "topic": "Waves"},
        {"id": "w4", "topic": "Waves"},
    ]
    attempts = [
        {"questionId": "a1", "correct": False},
        {"questionId": "a2", "correct": True},
        {"questionId": "f1", "correct": True},
        {"questionId": "w1", "correct": True},
        {"questionId": "w2", "correct": True},
        {"questionId": "w3", "correct": True},
        {"questionId": "w4", "correct": False},
    ]
    profile = LexAlgorithm.update_student_profile(questions, attempts)

    assert profile["weakTopics"] == ["Algebra"]
    assert profile["strongTopics"] == ["Forces"]
    assert set(profile["recentTopics"]) == {"Algebra", "Forces", "Waves"}
