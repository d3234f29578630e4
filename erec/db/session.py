"""Engine and session factory, built lazily from ``DATABASE_URL``."""
from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from erec.core.settings import get_settings


def engine_options(database_url: str) -> dict:
    if database_url.startswith("sqlite"):
        # one connection shared across the threadpool FastAPI runs sync routes in
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    url = get_settings().database_url
    return create_engine(url, **engine_options(url))


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=get_engine(), autocommit=False, autoflush=False)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Session for scripts and scheduled jobs: commit on exit, rollback on error."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
