"""
Shared fixtures: an in-memory Mongo database behind Motor's awaitable API,
a TestClient that skips the startup hooks, and signed session headers
"""

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from proacademics import config
from proacademics.auth.auth_utils import create_access_token
from proacademics.database import db_manager


@pytest.fixture
def db():
    fake = AsyncMongoMockClient()["proacademics_test"]
    db_manager.db = fake
    yield fake
    db_manager.db = None


@pytest.fixture
def settings(monkeypatch):
    monkeypatch.setattr(config, "NEXTAUTH_SECRET", "test-secret")
    monkeypatch.setattr(config, "OPENAI_API_KEY", "")
    monkeypatch.setattr(config, "CRON_SECRET", "")
    monkeypatch.setattr(config, "ADMIN_SETUP_KEY", "")
    monkeypatch.setattr(config, "ENVIRONMENT", "development")
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 4)
    return config


@pytest.fixture
def client(db, settings):
    from proacademics.main import app

    # no context manager: startup would connect to a real server
    return TestClient(app)


def auth_header(user_id, role="student", name="Test User", email=None):
    token = create_access_token({
        "id": user_id,
        "email": email or f"{user_id}@example.com",
        "name": name,
        "role": role,
    })
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(settings):
    return auth_header("admin-1", role="admin", name="Admin")


@pytest.fixture
def teacher_headers(settings):
    return auth_header("teacher-1", role="teacher", name="Teacher")


@pytest.fixture
def student_headers(settings):
    return auth_header("student-1", role="student", name="Student One")


@pytest.fixture
def other_student_headers(settings):
    return auth_header("student-2", role="student", name="Student Two")
