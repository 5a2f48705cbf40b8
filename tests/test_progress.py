import random
from datetime import datetime, timedelta

import pytest
from bson import ObjectId
from fastapi import HTTPException

from proacademics.errors import BadgeError
from proacademics.progress import progress_service
from proacademics.progress.progress_service import build_recommendations


@pytest.fixture
async def student(db):
    doc = {"id": "student-1", "name": "Student One", "role": "student", "xp": 0, "level": 1}
    await db.users.insert_one(doc)
    return doc


async def seed_questions(db, topics=("Algebra", "Forces"), per_topic=15):
    for topic in topics:
        for rating in range(1, per_topic + 1):
            await db.questions.insert_one({
                "id": f"{topic}-{rating}",
                "topic": topic,
                "subject": "Mathematics" if topic == "Algebra" else "Physics",
                "difficulty": "medium",
                "gradeRating": rating,
            })


# ==================== ATTEMPTS ====================

async def test_record_attempt_awards_xp_and_cwa(client, db, student, student_headers):
    await seed_questions(db)

    fast = client.post("/api/progress/attempts", json={"questionId": "Algebra-1", "correct": True, "timeTaken": 12},
                       headers=student_headers).json()["data"]
    assert fast["xpEarned"] == 24
    assert fast["currentWorkingAverage"] == 100

    wrong = client.post("/api/progress/attempts", json={"questionId": "Algebra-2", "correct": False, "timeTaken": 50},
                        headers=student_headers).json()["data"]
    assert wrong["xpEarned"] == 0
    assert wrong["progress"] is None
    assert wrong["currentWorkingAverage"] == 50

    attempts = client.get("/api/progress/attempts", headers=student_headers).json()["attempts"]
    assert len(attempts) == 2
    stored = await db.users.find_one({"id": "student-1"})
    assert stored["xp"] == 24


def test_progress_requires_login(client):
    assert client.get("/api/progress/attempts").status_code == 401


async def test_random_questions_filter_by_subject(client, db, student_headers):
    await seed_questions(db)

    questions = await progress_service.get_random_questions(db, 5, subject="Physics")
    assert len(questions) == 5
    assert {q["subject"] for q in questions} == {"Physics"}
    assert len({q["id"] for q in questions}) == 5

    body = client.get("/api/progress/questions?count=3&subject=Mathematics", headers=student_headers).json()
    assert len(body["questions"]) == 3
    assert all(q["topic"] == "Algebra" for q in body["questions"])
    assert client.get("/api/progress/questions?count=0", headers=student_headers).status_code == 400


# ==================== BADGES ====================

async def test_award_badge_once(db, student):
    badge_id = ObjectId()
    await db.badges.insert_one({"_id": badge_id, "title": "Consistent Learner", "xpReward": 40})

    record = await progress_service.award_badge(db, "student-1", str(badge_id))
    assert record["title"] == "Consistent Learner"
    assert (await db.users.find_one({"id": "student-1"}))["xp"] == 40

    with pytest.raises(BadgeError):
        await progress_service.award_badge(db, "student-1", str(badge_id))
    with pytest.raises(BadgeError):
        await progress_service.award_badge(db, "student-1", "unknown")


async def test_badge_eligibility(db, student):
    streak_badge, speed_badge = ObjectId(), ObjectId()
    await db.badges.insert_one({"_id": streak_badge, "title": "Consistent Learner"})
    await db.badges.insert_one({"_id": speed_badge, "title": "Speed Demon"})
    await db.users.update_one({"id": "student-1"}, {"$set": {"studyStreak": 8}})
    for index in range(10):
        await db.questionAttempts.insert_one({"studentId": "student-1", "questionId": f"q{index}", "timeTaken": 5})

    eligible = await progress_service.check_badge_eligibility(db, "student-1")
    assert set(eligible) == {str(streak_badge), str(speed_badge)}


# ==================== LEADERBOARD ====================

async def test_weekly_leaderboard(client, db):
    now = datetime.utcnow()
    await db.users.insert_many([
        {"id": "a", "name": "Ann", "xp": 500, "level": 3},
        {"id": "b", "name": "Ben", "xp": 900, "level": 5},
    ])
    await db.xpLogs.insert_many([
        {"studentId": "a", "xpAmount": 80, "date": now - timedelta(days=1)},
        {"studentId": "a", "xpAmount": 40, "date": now - timedelta(days=2)},
        {"studentId": "b", "xpAmount": 100, "date": now - timedelta(days=1)},
        {"studentId": "b", "xpAmount": 500, "date": now - timedelta(days=20)},
    ])
    await db.leaderboard.insert_one({"studentId": "b", "rank": 1})

    entries = await progress_service.update_weekly_leaderboard(db)
    assert [(e["studentId"], e["weeklyXP"], e["rank"]) for e in entries] == [("a", 120, 1), ("b", 100, 2)]
    assert entries[1]["previousRank"] == 1

    board = client.get("/api/leaderboard").json()["leaderboard"]
    assert [e["name"] for e in board] == ["Ann", "Ben"]


# ==================== LEX ====================

async def test_lex_session_round_trip(client, db, student, student_headers):
    await seed_questions(db)

    started = client.post("/api/lex/session", headers=student_headers).json()
    assert len(started["questions"]) == 20
    ids = [q["id"] for q in started["questions"]]

    results = [{"questionId": qid, "correct": qid.startswith("Forces"), "timeTaken": 45} for qid in ids]
    done = client.post(f"/api/lex/session/{started['sessionId']}/complete", json={"results": results},
                       headers=student_headers).json()

    correct = sum(1 for r in results if r["correct"])
    assert done["xpEarned"] == correct * 20
    profile = (await db.users.find_one({"id": "student-1"}))
    if any(qid.startswith("Algebra") for qid in ids):
        assert profile["weakTopics"] == ["Algebra"]
    assert await db.lexSessions.count_documents({"completedAt": {"$ne": None}}) == 1


def test_complete_unknown_session(client, db, student_headers):
    response = client.post(f"/api/lex/session/{ObjectId()}/complete", json={"results": []}, headers=student_headers)
    assert response.status_code == 404


def start_and_pick(client, headers):
    started = client.post("/api/lex/session", headers=headers).json()
    return started["sessionId"], started["questions"][0]["id"]


async def test_lex_session_completes_once(client, db, student, student_headers):
    await seed_questions(db)
    session_id, question_id = start_and_pick(client, student_headers)
    results = [{"questionId": question_id, "correct": True, "timeTaken": 10}]

    first = client.post(f"/api/lex/session/{session_id}/complete", json={"results": results},
                        headers=student_headers)
    assert first.status_code == 200
    assert first.json()["xpEarned"] == 24

    again = client.post(f"/api/lex/session/{session_id}/complete", json={"results": results},
                        headers=student_headers)
    assert again.status_code == 409
    assert again.json()["error"] == "Session already completed"

    assert await db.xpLogs.count_documents({"studentId": "student-1"}) == 1
    assert (await db.users.find_one({"id": "student-1"}))["xp"] == 24


async def test_lex_session_belongs_to_its_student(client, db, student, student_headers, other_student_headers):
    await seed_questions(db)
    session_id, question_id = start_and_pick(client, student_headers)

    response = client.post(
        f"/api/lex/session/{session_id}/complete",
        json={"results": [{"questionId": question_id, "correct": True, "timeTaken": 10}]},
        headers=other_student_headers,
    )
    assert response.status_code == 403
    assert await db.xpLogs.count_documents({}) == 0
    assert (await db.lexSessions.find_one({}))["completedAt"] is None


async def test_lex_session_ignores_foreign_questions(client, db, student, student_headers):
    await seed_questions(db)
    started = client.post("/api/lex/session", headers=student_headers).json()
    await seed_questions(db, topics=("Waves",), per_topic=5)
    outside = [f"Waves-{i}" for i in range(1, 6)]

    first = started["questions"][0]["id"]
    results = [{"questionId": first, "correct": True, "timeTaken": 10}]
    results += [{"questionId": qid, "correct": True, "timeTaken": 10} for qid in outside]
    results.append({"questionId": first, "correct": True, "timeTaken": 10})

    done = client.post(f"/api/lex/session/{started['sessionId']}/complete", json={"results": results},
                       headers=student_headers).json()
    assert done["xpEarned"] == 24
    assert await db.questionAttempts.count_documents({"studentId": "student-1"}) == 1


async def test_attempt_on_unknown_question(client, db, student, student_headers):
    with pytest.raises(HTTPException) as exc:
        await progress_service.record_question_attempt(db, "student-1", "does-not-exist", True, 10)
    assert exc.value.status_code == 404

    response = client.post("/api/progress/attempts", json={"questionId": "missing", "correct": True, "timeTaken": 5},
                           headers=student_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "Question not found"
    assert await db.xpLogs.count_documents({}) == 0
    assert await db.questionAttempts.count_documents({}) == 0


async def test_lex_next_question(client, db, student_headers):
    await seed_questions(db)
    response = client.post("/api/lex/session/next", json={"questionId": "Forces-5", "wasCorrect": True},
                           headers=student_headers)
    question = response.json()["question"]
    assert question["topic"] == "Forces"
    assert question["gradeRating"] > 5


# ==================== RECOMMENDATIONS ====================

def test_build_recommendations_order():
    recs = build_recommendations(
        {"weakTopics": ["Algebra"], "strongTopics": ["Forces"], "recentTopics": ["Waves"]},
        rng=random.Random(0),
    )
    assert [r["priority"] for r in recs] == ["high", "medium", "medium"]
    assert recs[0]["topicName"] == "Algebra - Foundation Review"
    assert recs[2]["topic"] == "Waves"
    assert build_recommendations({}) == []


async def test_recommendations_endpoint(client, db, student, student_headers):
    await db.users.update_one({"id": "student-1"}, {"$set": {
        "strongTopics": ["Forces"], "weakTopics": ["Algebra"], "currentWorkingAverage": 72,
    }})

    body = client.get("/api/lex/recommendations", headers=student_headers).json()
    assert body["recommendation"]["topic"] == "Algebra"
    assert [r["topic"] for r in body["alternativeRecommendations"]] == ["Forces"]
    assert body["studentPerformance"]["currentCWA"] == 72
    assert body["studentPerformance"]["weakAreasCount"] == 1


async def test_recommendation_actions(client, db, student_headers):
    accepted = client.post("/api/lex/recommendations",
                           json={"action": "accept_recommendation", "topicName": "Algebra - Foundation Review"},
                           headers=student_headers).json()
    assert accepted["nextAction"] == "redirect_to_lex_session"
    assert await db.lexLogs.count_documents({"studentId": "student-1"}) == 1

    refreshed = client.post("/api/lex/recommendations", json={"action": "refresh_recommendation"},
                            headers=student_headers).json()
    assert refreshed["recommendation"] is None

    invalid = client.post("/api/lex/recommendations", json={"action": "dance"}, headers=student_headers)
    assert invalid.status_code == 400
    assert invalid.json()["error"] == "Invalid action"
