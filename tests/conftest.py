# =============================================================================
# tests/conftest.py - Pytest Configuration
# =============================================================================
# Sets test environment variables before the app is imported, runs every
# test against a fresh in-memory SQLite database and provides account
# fixtures with ready-made Authorization headers.
# =============================================================================

import os

# config.settings is built at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-0123456789")
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DEBUG", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from db import get_session
from main import app
from models import Animal, User
from security import create_token, hash_password


# =============================================================================
# Database / client
# =============================================================================

@pytest.fixture(name="session")
def session_fixture():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    engine.dispose()


@pytest.fixture(name="client")
def client_fixture(session: Session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


# =============================================================================
# Accounts
# =============================================================================

@pytest.fixture
def make_user(session: Session):
    """Factory creating a persisted account."""

    def _make_user(
        email: str = "ana@mail.com",
        role: str = "user",
        firstname: str = "Ana",
        lastname: str = "Lopez",
        password: str = "secret123",
    ) -> User:
        user = User(
            firstname=firstname,
            lastname=lastname,
            email=email,
            password_hash=hash_password(password),
            role=role,
        )
        session.add(user)
        session.commit()
        session.refresh(user)
        return user

    return _make_user


@pytest.fixture
def headers_for():
    def _headers_for(user: User) -> dict[str, str]:
        token = create_token(user.id, user.email, user.role)
        return {"Authorization": f"Bearer {token}"}

    return _headers_for


@pytest.fixture
def user(make_user) -> User:
    return make_user()


@pytest.fixture
def admin(make_user) -> User:
    return make_user(email="boss@refuge.fr", role="admin", firstname="Bea", lastname="Boss")


@pytest.fixture
def user_headers(user, headers_for) -> dict[str, str]:
    return headers_for(user)


@pytest.fixture
def admin_headers(admin, headers_for) -> dict[str, str]:
    return headers_for(admin)


# =============================================================================
# Animals
# =============================================================================

@pytest.fixture
def make_animal(session: Session):
    """Factory creating a persisted animal (available unless told otherwise)."""

    def _make_animal(**overrides) -> Animal:
        values = {
            "type": "chien",
            "name": "Rex",
            "city": "Lyon",
            "age": 3,
            "breed": "Labrador",
            "status": "available",
        }
        values.update(overrides)
        animal = Animal(**values)
        session.add(animal)
        session.commit()
        session.refresh(animal)
        return animal

    return _make_animal


@pytest.fixture
def animal(make_animal) -> Animal:
    return make_animal()
