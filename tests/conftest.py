"""
Pytest configuration and fixtures.

Every test gets its own in-memory SQLite database wired into the app
through a ``get_db`` override.
"""

import os

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_REFRESH_SECRET_KEY", "test-refresh-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from auth.security import create_access_token, hash_password
from db.database import get_db
from db.init_db import init_db
from db.models.users import User
from main import app


# =============================================================================
# Database
# =============================================================================

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# =============================================================================
# Users
# =============================================================================

@pytest.fixture
def make_user(db_session):
    def _make_user(username, role="student", password="secret123", email=None, **extra):
        user = User(
            username=username,
            password_hash=hash_password(password),
            role=role,
            email=email or f"{username}@example.com",
            **extra,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make_user


def auth_headers(user):
    token = create_access_token({"sub": user.id, "role": user.role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin(make_user):
    return make_user("admin", role="admin", first_name="Ada", last_name="Admin")


@pytest.fixture
def teacher(make_user):
    return make_user("teacher", role="teacher", first_name="Tom", last_name="Teacher")


@pytest.fixture
def other_teacher(make_user):
    return make_user("teacher2", role="teacher")


@pytest.fixture
def student(make_user):
    return make_user("student", role="student", first_name="Sam", last_name="Student")


@pytest.fixture
def other_student(make_user):
    return make_user("student2", role="student")


@pytest.fixture
def admin_headers(admin):
    return auth_headers(admin)


@pytest.fixture
def teacher_headers(teacher):
    return auth_headers(teacher)


@pytest.fixture
def student_headers(student):
    return auth_headers(student)


# =============================================================================
# Quizzes
# =============================================================================

def build_quiz_payload(**overrides):
    payload = {
        "quiz_title": "General Aptitude",
        "description": "Warm-up quiz",
        "duration": 30,
        "max_attempts": 2,
        "status": "published",
        "questions": [
            {
                "question": "2 + 2 = ?",
                "question_type": "single",
                "section": "qa",
                "marks": 1,
                "options": [
                    {"text": "3"},
                    {"text": "4", "is_correct": True},
                ],
            },
            {
                "question": "Pick the primes",
                "question_type": "multiple",
                "section": "qa",
                "marks": 2,
                "explanation": "2 and 3 are prime; 4 is not.",
                "options": [
                    {"text": "2", "is_correct": True},
                    {"text": "3", "is_correct": True},
                    {"text": "4"},
                ],
            },
            {
                "question": "Capital of Norway",
                "question_type": "single",
                "section": "gk",
                "marks": 2,
                "options": [
                    {"text": "Oslo", "is_correct": True},
                    {"text": "Bergen"},
                ],
            },
        ],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def quiz_payload():
    return build_quiz_payload()


@pytest.fixture
def create_quiz(client, teacher_headers):
    def _create_quiz(headers=None, **overrides):
        res = client.post("/quizzes", json=build_quiz_payload(**overrides), headers=headers or teacher_headers)
        assert res.status_code == 201, res.text
        return res.json()["quiz"]

    return _create_quiz


@pytest.fixture
def quiz(create_quiz):
    return create_quiz()


def question_ids(quiz):
    """Question ids in authoring order."""
    return [q["id"] for q in quiz["questions"]]
