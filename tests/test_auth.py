from proacademics.auth.auth_utils import check_password, decode_access_token, hash_password

SIGNUP = {
    "name": "Alex Johnson",
    "email": "Alex@Example.com ",
    "password": "secret123",
    "dateOfBirth": "2008-04-12",
    "schoolName": "Riverside High",
    "uniqueToken": "RS-2024-001",
}


def signup(client, **overrides):
    payload = dict(SIGNUP)
    payload.update(overrides)
    return client.post("/api/auth/signup", json=payload)


def test_password_hashing(settings):
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert check_password("secret123", hashed)
    assert not check_password("wrong", hashed)
    assert not check_password("secret123", None)


def test_signup_creates_student(client):
    response = signup(client)

    assert response.status_code == 201
    user = response.json()["user"]
    assert user["email"] == "alex@example.com"
    assert user["role"] == "student"
    assert user["xp"] == 0 and user["level"] == 1
    assert "password" not in user and "_id" not in user


def test_signup_cannot_grant_admin(client):
    assert signup(client, role="admin").json()["user"]["role"] == "student"
    assert signup(client, email="mum@example.com", role="parent").json()["user"]["role"] == "parent"


def test_signup_validation(client):
    assert signup(client, schoolName="").json()["error"] == "Missing required fields"
    assert signup(client, password="123").json()["error"] == "Password must be at least 6 characters"

    signup(client)
    duplicate = signup(client, email="ALEX@example.com")
    assert duplicate.status_code == 400
    assert duplicate.json()["error"] == "User already exists"


def test_signup_rejects_overlong_password(client, db):
    response = signup(client, password="\u00e9" * 40)
    assert response.status_code == 400
    assert "at most 72 bytes" in response.json()["error"]

    assert signup(client, password="a" * 72).status_code == 201


def test_login_and_me(client):
    signup(client)

    bad = client.post("/api/auth/login", json={"email": "alex@example.com", "password": "nope"})
    assert bad.status_code == 401
    assert bad.json() == {"success": False, "error": "Invalid email or password"}

    login = client.post("/api/auth/login", json={"email": "ALEX@example.com", "password": "secret123"})
    assert login.status_code == 200
    body = login.json()
    assert body["token_type"] == "bearer"

    claims = decode_access_token(body["access_token"])
    assert claims["sub"] == body["user"]["id"]
    assert claims["role"] == "student"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.json()["user"]["email"] == "alex@example.com"
    assert me.json()["user"]["lastLogin"]


def test_me_requires_token(client):
    assert client.get("/api/auth/me").status_code == 401
    response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid or Expired Token"


def test_me_unknown_user(client, student_headers):
    assert client.get("/api/auth/me", headers=student_headers).status_code == 404


# ==================== STUDENTS ====================

def test_teacher_creates_and_lists_students(client, teacher_headers, student_headers):
    payload = {"name": "Sam Lee", "email": "sam@example.com", "password": "secret123", "programs": ["A Level"]}

    assert client.post("/api/students", json=payload, headers=student_headers).status_code == 403

    created = client.post("/api/students", json=payload, headers=teacher_headers)
    assert created.status_code == 201
    student = created.json()["student"]
    assert student["role"] == "student"
    assert student["studentId"].startswith("STU")

    duplicate = client.post("/api/students", json=payload, headers=teacher_headers)
    assert duplicate.status_code == 400

    listed = client.get("/api/students", headers=teacher_headers).json()["students"]
    assert [s["email"] for s in listed] == ["sam@example.com"]


def test_create_student_requires_fields(client, teacher_headers):
    response = client.post("/api/students", json={"name": "Sam"}, headers=teacher_headers)
    assert response.json()["error"] == "Name, email and password are required"


def test_create_student_rejects_overlong_password(client, teacher_headers):
    payload = {"name": "Sam Lee", "email": "sam@example.com", "password": "x" * 73}
    response = client.post("/api/students", json=payload, headers=teacher_headers)
    assert response.status_code == 400
    assert "at most 72 bytes" in response.json()["error"]


def test_admin_student_table(client, admin_headers):
    signup(client)

    body = client.get("/api/admin/students", headers=admin_headers).json()
    assert body["meta"]["count"] == 1
    row = body["students"][0]
    assert row["schoolName"] == "Riverside High"
    assert row["status"] == "inactive"
    assert row["grade"] == "N/A"
