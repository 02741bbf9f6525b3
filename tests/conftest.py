"""
Shared fixtures: a fresh in-memory database per test, signed-in users for each
role and a stand-in Redis for token revocation.
"""

import os

os.environ["ENVIRONMENT"] = "testing"
os.environ.pop("DATABASE_URL", None)
os.environ.pop("REDIS_URL", None)

import pytest
from fastapi.testclient import TestClient

from quiz_portal.config import get_settings

get_settings.cache_clear()

from quiz_portal.backend.database.connection import (  # noqa: E402
    close_database_connections,
    get_async_session,
    init_database
)
from quiz_portal.backend.repositories import Repositories  # noqa: E402
from quiz_portal.backend.schemas import QuizRecord  # noqa: E402
from quiz_portal.main import create_main_app  # noqa: E402

ADMIN_EMAIL = "admin@quiz.com"
ADMIN_PASSWORD = "admin123"


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def make_questions(correct=("a", "b", "c")):
    """One question per entry in ``correct``, each with answers a to d"""
    return [
        {
            "id": f"q{i}",
            "text": f"Question {i}",
            "answers": [{"id": key, "text": key.upper()} for key in "abcd"],
            "correctAnswerId": answer
        }
        for i, answer in enumerate(correct, start=1)
    ]


class FakeRedis:
    def __init__(self):
        self.store = {}
        self.ttls = {}

    async def ping(self):
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        self.ttls[key] = ttl

    async def get(self, key):
        return self.store.get(key)

    async def aclose(self):
        pass


# Database-level fixtures

@pytest.fixture
def question_factory():
    return make_questions


@pytest.fixture
async def repos():
    await init_database()
    try:
        async with get_async_session() as session:
            yield Repositories(session)
    finally:
        await close_database_connections()


@pytest.fixture
def sample_quiz():
    return QuizRecord.model_validate({
        "id": "quiz-1",
        "title": "Fractions",
        "targetGrade": "9",
        "timeLimit": 10,
        "teacherId": "teacher-1",
        "questions": make_questions()
    })


# API fixtures

@pytest.fixture
def client():
    with TestClient(create_main_app()) as test_client:
        yield test_client


@pytest.fixture
def login(client):
    def _login(email, password, role=None):
        payload = {"email": email, "password": password}
        if role:
            payload["role"] = role
        response = client.post("/api/auth/login", json=payload)
        assert response.status_code == 200, response.text
        return response.json()

    return _login


@pytest.fixture
def admin_headers(login):
    return bearer(login(ADMIN_EMAIL, ADMIN_PASSWORD, role="admin")["access_token"])


@pytest.fixture
def create_teacher(client, admin_headers, login):
    def _create(email="teacher@quiz.com", name="Terry Teacher", password="teacher123"):
        response = client.post(
            "/api/admin/teachers",
            json={"name": name, "email": email, "password": password},
            headers=admin_headers
        )
        assert response.status_code == 201, response.text
        tokens = login(email, password, role="teacher")
        return bearer(tokens["access_token"]), response.json()

    return _create


@pytest.fixture
def create_student(client, monkeypatch):
    def fake_verify(id_token):
        subject, email, name = id_token.split("|")
        return {
            "sub": subject,
            "email": email,
            "name": name,
            "iss": "https://accounts.google.com"
        }

    monkeypatch.setattr("quiz_portal.backend.api.auth.verify_federated_id_token", fake_verify)

    def _create(name="Sam Student", grade="9", email=None, complete=True):
        email = email or f"{name.split()[0].lower()}@school.org"
        response = client.post(
            "/api/auth/federated",
            json={"id_token": f"sub-{email}|{email}|{name}"}
        )
        assert response.status_code == 200, response.text
        headers = bearer(response.json()["access_token"])
        user = response.json()["user"]

        if complete:
            response = client.put(
                "/api/students/profile",
                json={"name": name, "grade": grade},
                headers=headers
            )
            assert response.status_code == 200, response.text
            user = response.json()
        return headers, user

    return _create


@pytest.fixture
def create_quiz(client):
    def _create(headers, title="Fractions", grade="9", time_limit=10, correct=("a", "b", "c")):
        response = client.post(
            "/api/quizzes",
            json={
                "title": title,
                "description": f"{title} practice",
                "targetGrade": grade,
                "timeLimit": time_limit,
                "questions": make_questions(correct)
            },
            headers=headers
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _create


@pytest.fixture
def fake_redis(monkeypatch):
    fake = FakeRedis()

    async def get_fake_client():
        return fake

    monkeypatch.setattr("quiz_portal.backend.dependencies.get_redis_client", get_fake_client)
    return fake
