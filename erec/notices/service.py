"""Committee notices and chair announcements.

Notices are short posts reviewers can like.  A notice without ``expires_at``
never expires.  System notices always carry an expiry and are shown until it
passes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from erec.audit.audit_log import record_event
from erec.audit.events import EVENT_NOTICE_PUBLISHED
from erec.core.constants import PRIORITY_ORDER, VALID_PRIORITIES
from erec.db.models import Notice, SystemNotice
from erec.db.repositories import NoticeRepository, SystemNoticeRepository

logger = logging.getLogger(__name__)

_FAR_FUTURE = datetime.max.replace(tzinfo=timezone.utc)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_active(notice: Notice, now: datetime) -> bool:
    expires = _aware(notice.expires_at)
    return expires is None or expires > now


# ---------------------------------------------------------------------------
# Pure views
# ---------------------------------------------------------------------------


def active_notices(notices: list[Notice], now: datetime) -> list[Notice]:
    """Unexpired notices, highest priority first, soonest expiry first within a priority."""
    live = [n for n in notices if is_active(n, now)]
    return sorted(
        live,
        key=lambda n: (PRIORITY_ORDER.get(n.priority, len(PRIORITY_ORDER)), _aware(n.expires_at) or _FAR_FUTURE),
    )


def recent_notice_count(notices: list[Notice], now: datetime, days: int = 7) -> int:
    cutoff = now - timedelta(days=days)
    return sum(
        1 for n in notices
        if is_active(n, now) and n.created_at is not None and _aware(n.created_at) >= cutoff
    )


@dataclass
class NoticeStats:
    total: int
    active: int
    total_likes: int
    high_priority: int
    most_liked: Notice | None
    average_likes: float


def notice_stats(notices: list[Notice], now: datetime) -> NoticeStats:
    total_likes = 0
    most_liked: Notice | None = None
    for notice in notices:
        count = len(notice.likes or [])
        total_likes += count
        if count > 0 and (most_liked is None or count > len(most_liked.likes or [])):
            most_liked = notice

    total = len(notices)
    return NoticeStats(
        total=total,
        active=sum(1 for n in notices if is_active(n, now)),
        total_likes=total_likes,
        high_priority=sum(1 for n in notices if n.priority == "high"),
        most_liked=most_liked,
        average_likes=round(total_likes / total, 1) if total else 0.0,
    )


def toggle_like(notice: Notice, reviewer_id: str) -> bool:
    """Add or remove *reviewer_id* from the likes; returns True when now liked."""
    if not reviewer_id:
        raise ValueError("reviewer_id is required")
    likes = list(notice.likes or [])
    if reviewer_id in likes:
        likes.remove(reviewer_id)
        liked = False
    else:
        likes.append(reviewer_id)
        liked = True
    notice.likes = likes
    return liked


def active_system_notices(notices: list[SystemNotice], now: datetime) -> list[SystemNotice]:
    return sorted((n for n in notices if _aware(n.expires_at) > now), key=lambda n: _aware(n.expires_at))


# ---------------------------------------------------------------------------
# ORM-bound service
# ---------------------------------------------------------------------------


class NoticeService:
    """Create, edit and remove notices; flushes, never commits."""

    def __init__(self, db: Session, default_expiry_days: int = 30) -> None:
        self._db = db
        self._notices = NoticeRepository(db)
        self._system = SystemNoticeRepository(db)
        self._default_expiry_days = default_expiry_days

    @staticmethod
    def _validate(title: str, content: str, priority: str) -> None:
        if not title or not title.strip():
            raise ValueError("title is required")
        if not content or not content.strip():
            raise ValueError("content is required")
        if priority not in VALID_PRIORITIES:
            raise ValueError(f"Invalid priority {priority!r}; must be one of {sorted(VALID_PRIORITIES)}")

    def list_notices(self) -> list[Notice]:
        return self._notices.list_all()

    def get(self, notice_id) -> Notice:
        notice = self._notices.get(notice_id)
        if notice is None:
            raise KeyError(f"Notice {notice_id} not found")
        return notice

    def create(
        self,
        title: str,
        content: str,
        priority: str = "medium",
        expires_at: datetime | None = None,
        actor: str = "admin",
        now: datetime | None = None,
    ) -> Notice:
        self._validate(title, content, priority)
        now = now or datetime.now(timezone.utc)
        if expires_at is None:
            expires_at = now + timedelta(days=self._default_expiry_days)
        notice = self._notices.create(
            title=title.strip(),
            content=content.strip(),
            priority=priority,
            expires_at=expires_at,
            likes=[],
        )
        record_event(self._db, EVENT_NOTICE_PUBLISHED, actor, decision=priority)
        logger.info("Published notice %s (priority=%s)", notice.id, priority)
        return notice

    def update(
        self,
        notice_id,
        title: str,
        content: str,
        priority: str,
        expires_at: datetime | None,
    ) -> Notice:
        """Replace the editable fields; ``created_at`` and ``likes`` are kept."""
        self._validate(title, content, priority)
        notice = self.get(notice_id)
        return self._notices.update(
            notice,
            title=title.strip(),
            content=content.strip(),
            priority=priority,
            expires_at=expires_at,
        )

    def delete(self, notice_id) -> None:
        self._notices.delete(self.get(notice_id))
        logger.info("Deleted notice %s", notice_id)

    def like(self, notice_id, reviewer_id: str) -> Notice:
        notice = self.get(notice_id)
        toggle_like(notice, reviewer_id)
        self._db.flush()
        return notice

    def list_system_notices(self) -> list[SystemNotice]:
        return self._system.list_all()

    def create_system_notice(
        self,
        title: str,
        message: str,
        expires_at: datetime,
        subtitle: str | None = None,
        key_points: list[str] | None = None,
        action_text: str | None = None,
        action_href: str | None = None,
        notice_number: int = 1,
    ) -> SystemNotice:
        if not title or not message:
            raise ValueError("title and message are required")
        if expires_at is None:
            raise ValueError("system notices require expires_at")
        return self._system.create(
            title=title,
            subtitle=subtitle,
            message=message,
            key_points=list(key_points or []),
            action_text=action_text,
            action_href=action_href,
            notice_number=notice_number,
            expires_at=expires_at,
        )
