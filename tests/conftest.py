from __future__ import annotations

import os
from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from erec.db.base import Base
from erec.db.models import Protocol, Reviewer

TODAY = date(2025, 5, 1)


@pytest.fixture()
def db_session():
    """In-memory SQLite session with all tables created."""
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture()
def client(db_session: Session, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    """TestClient with get_db and get_today overridden."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")

    from erec.core.settings import get_settings

    get_settings.cache_clear()

    from erec.api.deps import get_db, get_today
    from erec.api.main import app

    def _override_db():
        yield db_session
        db_session.flush()

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_today] = lambda: TODAY
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()
    get_settings.cache_clear()
    os.environ.pop("DATABASE_URL", None)


def _make_protocol(
    db_session: Session,
    *,
    name: str = "Sleep Quality of Nursing Students",
    rec_code: str = "SPUP_2025_0101_SR_JD",
    month: str = "April",
    week: str = "week-1",
    due_date: str | None = "2025-05-10",
    release_period: str = "April 1st Week",
    reviewers: list[dict] | None = None,
    reviewer: str | None = None,
    status: str = "In Progress",
    document_type: str | None = "Form 06B1 PRA",
) -> Protocol:
    protocol = Protocol(
        month=month,
        week=week,
        rec_code=rec_code,
        protocol_name=name,
        release_period=release_period,
        academic_level="Undergraduate",
        document_type=document_type,
        due_date=due_date,
        status=status,
        reviewer=reviewer,
        reviewers=reviewers if reviewers is not None else [],
        reassignment_history=[],
    )
    db_session.add(protocol)
    db_session.flush()
    return protocol


def _add_reviewer(db_session: Session, reviewer_id: str, name: str, email: str | None = None) -> Reviewer:
    reviewer = Reviewer(id=reviewer_id, name=name, email=email)
    db_session.add(reviewer)
    db_session.flush()
    return reviewer


@pytest.fixture()
def make_protocol(db_session: Session):
    """Factory: ``make_protocol(name=..., reviewers=[...])`` flushes a Protocol."""

    def _factory(**kwargs) -> Protocol:
        return _make_protocol(db_session, **kwargs)

    return _factory


@pytest.fixture()
def add_reviewer(db_session: Session):
    def _factory(reviewer_id: str, name: str, email: str | None = None) -> Reviewer:
        return _add_reviewer(db_session, reviewer_id, name, email)

    return _factory
