from datetime import datetime

import pytest
from bson import ObjectId

from proacademics.errors import CsvImportError
from proacademics.homework import homework_service as service
from proacademics.homework.homework_import import (
    REQUIRED_HEADERS,
    normalize_header,
    parse_date,
    parse_homework_csv,
    parse_level,
)

HEADER = ",".join(REQUIRED_HEADERS)


def csv_row(homework="Forces HW", date_assigned="2024-03-01", level="Easy", question="What is F=ma?"):
    return ",".join([
        "Physics", "A Level", homework, date_assigned, "Dr Watson", "2024-03-08", "45", "120",
        "", "Forces", "Newton", level, f'"{question}"', "F equals m times a", "N",
    ])


# ==================== CSV PARSING ====================

def test_normalize_header():
    assert normalize_header("Homework Name") == "homework_name"
    assert normalize_header("Est.Time") == "est_time"
    assert normalize_header(" Date Due ") == "date_due"


def test_parse_level():
    assert parse_level("Easy") == "easy"
    assert parse_level("medium") == "medium"
    assert parse_level("Tricky") == "hard"
    assert parse_level(None) == "hard"


def test_parse_date_formats():
    assert parse_date("2024-03-01").day == 1
    assert parse_date("15/03/2024").month == 3
    with pytest.raises(ValueError):
        parse_date("yesterday")


def test_rows_group_into_homework():
    text = "\n".join([
        HEADER,
        csv_row(question="First, with a comma"),
        csv_row(question="Second"),
        csv_row(homework="Waves HW", level="medium"),
    ])
    result = parse_homework_csv(text)

    assert result["validRows"] == 3
    assert result["invalidRows"] == []
    by_name = {h["homeworkName"]: h for h in result["homework"]}
    forces = by_name["Forces HW"]
    assert forces["totalQuestions"] == 2
    assert forces["questionSet"][0]["question"] == "First, with a comma"
    assert forces["questionSet"][0]["level"] == "easy"
    assert forces["questionSet"][0]["image"] is None
    assert forces["questionSet"][0]["questionId"]
    assert forces["estimatedTime"] == 45
    assert forces["xpAwarded"] == 120
    assert forces["status"] == "draft"
    assert by_name["Waves HW"]["level"] == "medium"


def test_bad_rows_are_reported():
    text = "\n".join([
        HEADER,
        csv_row(),
        "Physics,A Level,too short",
        csv_row(homework="Other", date_assigned="not a date"),
    ])
    result = parse_homework_csv(text)

    assert result["validRows"] == 1
    assert result["invalidRows"][0] == "Row 3: Column count mismatch"
    assert result["invalidRows"][1].startswith("Row 4: Invalid date")


def test_missing_headers_rejected():
    with pytest.raises(CsvImportError) as exc:
        parse_homework_csv("Subject,Program\nPhysics,A Level")
    assert "Homework Name" in exc.value.message
    assert exc.value.details["foundHeaders"] == ["Subject", "Program"]


def test_header_only_rejected():
    with pytest.raises(CsvImportError):
        parse_homework_csv(HEADER)


# ==================== API ====================

def test_import_endpoint(client, db, admin_headers):
    text = "\n".join([HEADER, csv_row(), csv_row(question="Again")])
    response = client.post(
        "/api/admin/homework/import",
        files={"file": ("homework.csv", text.encode("utf-8"), "text/csv")},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["insertedCount"] == 1
    assert data["validRows"] == 2


def test_import_without_file(client, admin_headers):
    response = client.post("/api/admin/homework/import", headers=admin_headers)
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "No file provided"}


def test_import_bad_headers(client, admin_headers):
    response = client.post(
        "/api/admin/homework/import",
        files={"file": ("bad.csv", b"Subject\nPhysics", "text/csv")},
        headers=admin_headers,
    )
    assert response.status_code == 400
    assert response.json()["expectedHeaders"] == REQUIRED_HEADERS


# ==================== SUBMISSION ====================

async def shared_homework(db, **overrides):
    doc = {
        "_id": ObjectId(),
        "homeworkName": "Forces HW",
        "status": "active",
        "studentId": None,
        "completionStatus": "not_started",
        "dueDate": datetime(2024, 3, 8),
        "questionSet": [
            {"questionId": "q1", "question": "Solve for x", "markScheme": "x = 5"},
            {"questionId": "q2", "question": "Explain"},
        ],
    }
    doc.update(overrides)
    await db.homework.insert_one(doc)
    return str(doc["_id"])


@pytest.fixture
async def students(db):
    await db.users.insert_many([
        {"id": "student-1", "role": "student", "xp": 0, "level": 1},
        {"id": "student-2", "role": "student", "xp": 0, "level": 1},
    ])


async def test_submit_homework_marks_with_heuristic(client, db, students, student_headers):
    homework_id = await shared_homework(db)

    response = client.post("/api/homework/submit", json={
        "homeworkId": homework_id,
        "answers": ["x = 2 + 3 = 5", ""],
    }, headers=student_headers)

    assert response.status_code == 200
    result = response.json()["result"]
    assert result["score"] == 50
    assert result["xpEarned"] == 50
    assert result["feedback"][0]["isCorrect"] is True
    assert result["feedback"][1]["marks"] == 0

    record = await db.homeworkResults.find_one({"studentId": "student-1", "homeworkId": homework_id})
    assert record["completionStatus"] == "completed"
    assert record["score"] == 50
    student = await db.users.find_one({"id": "student-1"})
    assert student["xp"] == 50


async def test_submission_stays_with_the_submitter(client, db, students, student_headers, other_student_headers):
    homework_id = await shared_homework(db)
    answers = {"homeworkId": homework_id, "answers": ["x = 2 + 3 = 5", ""]}

    client.post("/api/homework/submit", json=answers, headers=student_headers)
    again = client.post("/api/homework/submit", json=answers, headers=student_headers).json()["result"]
    assert again["xpEarned"] == 0
    assert again["alreadySubmitted"] is True
    assert await db.xpLogs.count_documents({"studentId": "student-1"}) == 1

    stored = await db.homework.find_one({"_id": ObjectId(homework_id)})
    assert stored["completionStatus"] == "not_started"
    assert "score" not in stored

    mine = client.get("/api/homework", headers=student_headers).json()["homework"]
    assert mine[0]["completionStatus"] == "completed"
    assert "markScheme" not in mine[0]["questionSet"][0]

    theirs = client.get("/api/homework", headers=other_student_headers).json()["homework"]
    assert theirs[0]["completionStatus"] == "not_started"
    assert "score" not in theirs[0]

    assert await service.mark_overdue_homework(db, now=datetime(2024, 4, 1)) == 1
    theirs = client.get("/api/homework?status=overdue", headers=other_student_headers).json()
    assert theirs["total"] == 1
    mine = client.get("/api/homework?status=completed", headers=student_headers).json()
    assert mine["total"] == 1


async def test_submit_homework_assigned_to_someone_else(client, db, students, other_student_headers):
    homework_id = await shared_homework(db, studentId="student-1")

    response = client.post("/api/homework/submit", json={"homeworkId": homework_id, "answers": []},
                           headers=other_student_headers)
    assert response.status_code == 403
    assert await db.xpLogs.count_documents({}) == 0


def test_submit_homework_requires_login(client):
    response = client.post("/api/homework/submit", json={"homeworkId": str(ObjectId()), "answers": []})
    assert response.status_code == 401


def test_submit_homework_requires_fields(client, student_headers):
    response = client.post("/api/homework/submit", json={"answers": []}, headers=student_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required fields"


async def test_progress_update_is_per_student(client, db, students, student_headers, other_student_headers):
    homework_id = await shared_homework(db)

    response = client.post("/api/homework", json={"homeworkId": homework_id, "progress": 40, "status": "in_progress"},
                           headers=student_headers)
    assert response.status_code == 200
    assert response.json()["data"] == {"progress": 40, "completionStatus": "in_progress"}

    stored = await db.homework.find_one({"_id": ObjectId(homework_id)})
    assert stored["completionStatus"] == "not_started"
    theirs = client.get("/api/homework", headers=other_student_headers).json()["homework"]
    assert theirs[0]["completionStatus"] == "not_started"


async def test_progress_update_on_owned_assignment(client, db, students, student_headers, other_student_headers):
    homework_id = await shared_homework(db, studentId="student-1")

    denied = client.post("/api/homework", json={"homeworkId": homework_id, "progress": 100, "status": "completed"},
                         headers=other_student_headers)
    assert denied.status_code == 403

    client.post("/api/homework", json={"homeworkId": homework_id, "progress": 100, "status": "completed"},
                headers=student_headers)
    stored = await db.homework.find_one({"_id": ObjectId(homework_id)})
    assert stored["completionStatus"] == "completed"
    assert stored["dateSubmitted"] is not None

    missing = client.post("/api/homework", json={"homeworkId": str(ObjectId()), "progress": 10, "status": "in_progress"},
                          headers=student_headers)
    assert missing.status_code == 404


def test_submit_answer_validates_types(client, student_headers):
    response = client.post(
        "/api/homework/hw-1/submit",
        json={"questionIndex": "0", "answer": "42", "timeSpent": 10},
        headers=student_headers,
    )
    assert response.status_code == 400


async def test_submit_answer_is_stored(client, db, student_headers):
    response = client.post(
        "/api/homework/hw-1/submit",
        json={"questionIndex": 0, "answer": "42", "timeSpent": 12.5},
        headers=student_headers,
    )
    assert response.status_code == 200
    assert await db.homeworkSubmissions.count_documents({"homeworkId": "hw-1", "studentId": "student-1"}) == 1


# ==================== ADMIN CRUD ====================

def homework_payload(**overrides):
    payload = {
        "homeworkName": "Forces HW",
        "subject": "Physics",
        "program": "A Level",
        "topic": "Forces",
        "subtopic": "Newton",
        "level": "easy",
        "teacher": "Dr Watson",
        "dateAssigned": "2024-03-01T00:00:00",
        "dueDate": "2024-03-08T00:00:00",
        "questionSet": [{"question": "What is F=ma?"}, {"questionId": "q-given", "question": "Define mass"}],
    }
    payload.update(overrides)
    return payload


def create_homework(client, headers, **overrides):
    return client.post("/api/admin/homework", json=homework_payload(**overrides), headers=headers)


def test_admin_homework_requires_admin(client, student_headers):
    assert client.get("/api/admin/homework").status_code == 401
    assert client.get("/api/admin/homework", headers=student_headers).status_code == 403


def test_create_homework_defaults(client, admin_headers):
    response = create_homework(client, admin_headers)
    assert response.status_code == 200
    homework = response.json()["data"]

    assert homework["totalQuestions"] == 2
    assert homework["questionSet"][0]["questionId"].startswith("q-")
    assert homework["questionSet"][1]["questionId"] == "q-given"
    assert homework["estimatedTime"] == 30
    assert homework["xpAwarded"] == 100
    assert homework["status"] == "draft"
    assert homework["completionStatus"] == "not_started"
    assert ObjectId.is_valid(homework["assignmentId"])


def test_create_homework_missing_fields(client, admin_headers):
    response = create_homework(client, admin_headers, teacher=None)
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required fields"


def test_get_update_delete_homework(client, admin_headers):
    homework_id = create_homework(client, admin_headers).json()["data"]["_id"]

    fetched = client.get(f"/api/admin/homework/{homework_id}", headers=admin_headers).json()["data"]
    assert fetched["homeworkName"] == "Forces HW"

    updated = client.put(f"/api/admin/homework/{homework_id}", json={
        "status": "active",
        "questionSet": [{"question": "One"}, {"question": "Two"}, {"question": "Three"}],
    }, headers=admin_headers).json()["data"]
    assert updated["status"] == "active"
    assert updated["totalQuestions"] == 3
    assert updated["homeworkName"] == "Forces HW"

    assert client.delete(f"/api/admin/homework/{homework_id}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/admin/homework/{homework_id}", headers=admin_headers).status_code == 404
    assert client.delete(f"/api/admin/homework/{homework_id}", headers=admin_headers).status_code == 404
    missing = client.put(f"/api/admin/homework/{homework_id}", json={"status": "active"}, headers=admin_headers)
    assert missing.status_code == 404


def test_homework_invalid_id(client, admin_headers):
    response = client.get("/api/admin/homework/not-an-id", headers=admin_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid homework ID"
    assert client.delete("/api/admin/homework/not-an-id", headers=admin_headers).status_code == 400


def test_list_homework_filters_and_pages(client, admin_headers):
    create_homework(client, admin_headers, homeworkName="Forces HW")
    create_homework(client, admin_headers, homeworkName="Waves HW", topic="Waves", teacher="Ms Frizzle")
    create_homework(client, admin_headers, homeworkName="Algebra HW", subject="Mathematics", level="hard")

    response = client.get("/api/admin/homework?limit=2", headers=admin_headers)
    assert response.headers["Cache-Control"].startswith("no-store")
    data = response.json()["data"]
    assert data["total"] == 3
    assert data["totalPages"] == 2
    assert len(data["homework"]) == 2

    second = client.get("/api/admin/homework?limit=2&page=2", headers=admin_headers).json()["data"]
    assert len(second["homework"]) == 1
    names = {h["homeworkName"] for h in data["homework"] + second["homework"]}
    assert names == {"Forces HW", "Waves HW", "Algebra HW"}

    search = client.get("/api/admin/homework?search=frizz", headers=admin_headers).json()["data"]
    assert [h["homeworkName"] for h in search["homework"]] == ["Waves HW"]

    physics = client.get("/api/admin/homework?subject=Physics&level=all", headers=admin_headers).json()["data"]
    assert physics["total"] == 2
    hard = client.get("/api/admin/homework?level=hard", headers=admin_headers).json()["data"]
    assert [h["homeworkName"] for h in hard["homework"]] == ["Algebra HW"]


def test_homework_stats_and_filter_lists(client, admin_headers):
    create_homework(client, admin_headers, status="active")
    create_homework(client, admin_headers, homeworkName="Waves HW", teacher="Ms Frizzle")
    create_homework(client, admin_headers, homeworkName="Algebra HW", subject="Mathematics", program="GCSE")

    stats = client.get("/api/admin/homework/stats", headers=admin_headers).json()["data"]
    assert stats["total"] == 3
    assert stats["active"] == 1
    assert stats["draft"] == 2
    assert stats["bySubject"][0] == {"_id": "Physics", "count": 2}
    assert len(stats["recentActivity"]) == 3

    subjects = client.get("/api/admin/homework/filters/subjects", headers=admin_headers).json()["data"]
    assert subjects == ["Mathematics", "Physics"]
    teachers = client.get("/api/admin/homework/filters/teachers", headers=admin_headers).json()["data"]
    assert teachers == ["Dr Watson", "Ms Frizzle"]
    programs = client.get("/api/admin/homework/filters/programs", headers=admin_headers).json()["data"]
    assert programs == ["A Level", "GCSE"]
