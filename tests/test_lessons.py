def create_lesson(client, headers, **overrides):
    payload = {"title": "Newton's Laws", "subject": "Physics", "module": "Mechanics", "instructor": "Dr Watson"}
    payload.update(overrides)
    return client.post("/api/admin/lessons", json=payload, headers=headers)


def test_create_lesson_defaults(client, admin_headers):
    response = create_lesson(client, admin_headers)

    assert response.status_code == 201
    lesson = response.json()["lesson"]
    assert lesson["id"].startswith("lesson-")
    assert lesson["topic"] == "Newton's Laws"
    assert lesson["status"] == "draft"
    assert lesson["type"] == "Lesson"
    assert lesson["xpValue"] == 50


def test_create_lesson_requires_fields(client, admin_headers):
    response = client.post("/api/admin/lessons", json={"title": "No subject"}, headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Title, subject, and module are required"


def test_update_lesson_keeps_topic_in_sync(client, admin_headers):
    lesson = create_lesson(client, admin_headers).json()["lesson"]

    response = client.put(
        f"/api/admin/lessons/{lesson['id']}",
        json={"lessonName": "Momentum", "status": ""},
        headers=admin_headers,
    )
    updated = response.json()["lesson"]
    assert updated["title"] == "Momentum"
    assert updated["topic"] == "Momentum"
    assert updated["status"] == "draft"

    assert client.put("/api/admin/lessons/missing", json={"title": "x"}, headers=admin_headers).status_code == 404


def test_list_lessons_paginates_and_filters(client, admin_headers):
    for index in range(12):
        create_lesson(client, admin_headers, title=f"Lesson {index}")
    create_lesson(client, admin_headers, title="Organic", subject="Chemistry", instructor="Mr Stone")

    page = client.get("/api/admin/lessons?page=2&limit=5", headers=admin_headers).json()
    assert page["total"] == 13
    assert page["totalPages"] == 3
    assert len(page["lessons"]) == 5

    chemistry = client.get("/api/admin/lessons?subject=Chemistry", headers=admin_headers).json()
    assert [l["title"] for l in chemistry["lessons"]] == ["Organic"]

    everything = client.get("/api/admin/lessons?subject=all&search=organic", headers=admin_headers).json()
    assert everything["total"] == 1

    instructors = client.get("/api/admin/lessons/filters/instructors", headers=admin_headers).json()
    assert instructors["instructors"] == ["Dr Watson", "Mr Stone"]


def test_import_is_all_or_nothing(client, admin_headers):
    response = client.post(
        "/api/admin/lessons/import",
        json={"lessons": [{"title": "A", "subject": "Physics"}, {"title": "B"}]},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert client.get("/api/admin/lessons", headers=admin_headers).json()["total"] == 0

    response = client.post(
        "/api/admin/lessons/import",
        json={"lessons": [{"title": "A", "subject": "Physics"}, {"title": "B", "subject": "Maths"}]},
        headers=admin_headers,
    )
    assert response.status_code == 201
    assert response.json()["count"] == 2


def test_lesson_stats(client, admin_headers):
    create_lesson(client, admin_headers, status="published")
    create_lesson(client, admin_headers, title="Draft one")

    stats = client.get("/api/admin/lessons/stats", headers=admin_headers).json()
    assert stats["totalLessons"] == 2
    assert stats["activeLessons"] == 1
    assert stats["draftLessons"] == 1
    assert stats["bySubject"] == [{"subject": "Physics", "count": 2}]


def test_track_view_and_stats(client, admin_headers, student_headers):
    event = {"lessonId": "lesson-1", "action": "play", "timestamp": "2024-03-01T10:00:00Z"}

    client.post("/api/lessons/track-view", json=event)
    response = client.post("/api/lessons/track-view", json=event, headers=student_headers)

    assert response.status_code == 200
    assert response.json()["data"] == {
        "totalViews": 2,
        "uniqueViewers": 2,
        "timestamp": "2024-03-01T10:00:00Z",
    }

    stats = client.get("/api/lessons/track-view?lessonId=lesson-1").json()["data"]
    assert stats["totalViews"] == 2
    assert len(stats["viewHistory"]) == 2

    summary = client.get("/api/lessons/track-view").json()["data"]
    assert summary["totalLessonsViewed"] == 1


def test_track_view_requires_fields(client):
    response = client.post("/api/lessons/track-view", json={"lessonId": "lesson-1"})
    assert response.status_code == 400


async def test_complete_lesson_awards_xp_once(client, db, admin_headers, student_headers):
    await db.users.insert_one({"id": "student-1", "role": "student", "xp": 190, "level": 1})
    lesson = create_lesson(client, admin_headers).json()["lesson"]

    first = client.post(f"/api/lessons/{lesson['id']}/complete", headers=student_headers).json()
    assert first["xpEarned"] == 50
    assert first["level"] == 2
    assert first["leveledUp"] is True

    again = client.post(f"/api/lessons/{lesson['id']}/complete", headers=student_headers).json()
    assert again["alreadyCompleted"] is True
    assert await db.xpLogs.count_documents({"studentId": "student-1"}) == 1


async def test_complete_lesson_credits_signed_in_student(client, db, admin_headers, student_headers):
    await db.users.insert_one({"id": "student-1", "role": "student", "xp": 0, "level": 1})
    lesson = create_lesson(client, admin_headers).json()["lesson"]

    response = client.post(f"/api/lessons/{lesson['id']}/complete", json={"studentId": "someone-else"})
    assert response.status_code == 401

    client.post(f"/api/lessons/{lesson['id']}/complete", json={"studentId": "someone-else"}, headers=student_headers)
    completions = await db.lessonCompletions.find({}).to_list(length=None)
    assert [c["studentId"] for c in completions] == ["student-1"]
    assert await db.xpLogs.count_documents({"studentId": "someone-else"}) == 0


def test_upcoming_lessons(client, admin_headers):
    create_lesson(client, admin_headers, title="Past", scheduledDate="2000-01-01")
    create_lesson(client, admin_headers, title="Later", scheduledDate="2999-01-02")
    create_lesson(client, admin_headers, title="Soon", scheduledDate="2999-01-01")

    lessons = client.get("/api/lessons/upcoming").json()["lessons"]
    assert [l["title"] for l in lessons] == ["Soon", "Later"]
