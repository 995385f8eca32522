"""Shared fixtures: in-memory snapshot store and an API client bound to it."""

from __future__ import annotations

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from observador_app.main import app  # noqa: E402
from observador_app.modules.snapshot_tracker import NodeSnapshotTracker  # noqa: E402
from observador_app.persistence.database import get_db  # noqa: E402
from observador_app.persistence.models import Base  # noqa: E402
from observador_app.persistence.repository import NodeSnapshotRepository  # noqa: E402


@pytest.fixture
def db_session():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def repo(db_session):
    return NodeSnapshotRepository(db_session)


@pytest.fixture
def tracker(repo):
    return NodeSnapshotTracker(repo)


@pytest.fixture
def client(db_session):
    def _override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
