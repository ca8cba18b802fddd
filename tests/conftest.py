"""Shared fixtures: in-memory SQLite database, API client and user factories."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("TIMEZONE", "UTC")
os.environ.setdefault("DEBUG", "false")

import pytest
from fastapi.testclient import TestClient
from freezegun import freeze_time
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import secureshift.models  # noqa: F401
from secureshift.core.security import create_access_token
from secureshift.db.base import Base
from secureshift.db.session import get_db
from secureshift.main import app
from secureshift.models.branch import Branch
from secureshift.models.user import User

NOW = "2026-03-02 08:00:00"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def frozen():
    with freeze_time(NOW, real_asyncio=True) as frozen_time:
        yield frozen_time


@pytest.fixture()
def client(db):
    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(role: str, branch_id=None, **kwargs) -> User:
        counter["n"] += 1
        user = User(
            email=kwargs.pop("email", f"{role}{counter['n']}@example.com"),
            full_name=kwargs.pop("full_name", f"{role.title()} {counter['n']}"),
            role=role,
            branch_id=branch_id,
            **kwargs,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_branch(db):
    def _make(code: str, name: str = None) -> Branch:
        branch = Branch(name=name or code, code=code)
        db.add(branch)
        db.commit()
        db.refresh(branch)
        return branch

    return _make


@pytest.fixture()
def auth():
    """Bearer header factory for a user."""
    def _headers(user) -> dict:
        token = create_access_token({"sub": str(user.id), "role": user.role})
        return {"Authorization": f"Bearer {token}"}

    return _headers
