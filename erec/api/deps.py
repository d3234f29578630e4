"""FastAPI dependency injection: database sessions and service factories."""
from __future__ import annotations

from collections.abc import Generator
from datetime import date

from fastapi import Depends
from sqlalchemy.orm import Session

from erec.core.settings import Settings, get_settings
from erec.db.session import get_session_factory
from erec.notices.service import NoticeService
from erec.notification.email_sender import DigestSender
from erec.review.completion import ReviewManager
from erec.review.reassignment import ReassignmentService
from erec.reviewers.lookup import roster_map


def get_db() -> Generator[Session, None, None]:
    """Yield a SQLAlchemy session; commit on success, rollback on error."""
    db = get_session_factory()()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_today() -> date:
    """Calendar date used for due-date arithmetic in this request."""
    return date.today()


def get_review_manager(db: Session = Depends(get_db)) -> ReviewManager:
    return ReviewManager(db)


def get_reassignment_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> ReassignmentService:
    """Return a ReassignmentService bound to the roster stored in the DB."""
    return ReassignmentService(db, roster_map(db), settings.reassignment_extension_days)


def get_notice_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> NoticeService:
    return NoticeService(db, settings.notice_default_expiry_days)


def get_digest_sender(settings: Settings = Depends(get_settings)) -> DigestSender:
    return DigestSender(settings.smtp_host, settings.smtp_port, settings.mail_from)
