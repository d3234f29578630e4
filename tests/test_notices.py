"""Tests for erec/notices/service.py."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from erec.audit.audit_log import get_events_by_type
from erec.audit.events import EVENT_NOTICE_PUBLISHED
from erec.db.models import Notice, SystemNotice
from erec.notices.service import (
    NoticeService,
    active_notices,
    active_system_notices,
    is_active,
    notice_stats,
    recent_notice_count,
    toggle_like,
)

NOW = datetime(2025, 5, 1, 8, 0, tzinfo=timezone.utc)


def _notice(title="Notice", priority="medium", expires_in=None, created_ago=0, likes=None):
    return Notice(
        title=title,
        content="Body",
        priority=priority,
        created_at=NOW - timedelta(days=created_ago),
        expires_at=(NOW + timedelta(days=expires_in)) if expires_in is not None else None,
        likes=likes or [],
    )


# ===========================================================================
# Pure views
# ===========================================================================


class TestActiveNotices:
    def test_is_active(self):
        assert is_active(_notice(expires_in=1), NOW)
        assert is_active(_notice(expires_in=None), NOW)
        assert not is_active(_notice(expires_in=-1), NOW)

    def test_naive_datetimes_are_utc(self):
        notice = _notice()
        notice.expires_at = datetime(2025, 5, 2)
        assert is_active(notice, NOW)

    def test_ordering(self):
        notices = [
            _notice("low", priority="low", expires_in=1),
            _notice("medium-late", priority="medium", expires_in=10),
            _notice("high-forever", priority="high"),
            _notice("medium-soon", priority="medium", expires_in=2),
            _notice("high-soon", priority="high", expires_in=3),
            _notice("expired", priority="high", expires_in=-1),
        ]
        assert [n.title for n in active_notices(notices, NOW)] == [
            "high-soon", "high-forever", "medium-soon", "medium-late", "low",
        ]

    def test_recent_count(self):
        notices = [
            _notice(created_ago=1),
            _notice(created_ago=6, expires_in=5),
            _notice(created_ago=8),
            _notice(created_ago=2, expires_in=-1),
        ]
        assert recent_notice_count(notices, NOW) == 2
        assert recent_notice_count(notices, NOW, days=10) == 3


class TestNoticeStats:
    def test_stats(self):
        notices = [
            _notice("a", priority="high", likes=["R1", "R2", "R3"]),
            _notice("b", likes=["R1"]),
            _notice("c", priority="high", expires_in=-1),
        ]
        stats = notice_stats(notices, NOW)
        assert stats.total == 3
        assert stats.active == 2
        assert stats.total_likes == 4
        assert stats.high_priority == 2
        assert stats.most_liked.title == "a"
        assert stats.average_likes == 1.3

    def test_empty(self):
        stats = notice_stats([], NOW)
        assert stats.most_liked is None
        assert stats.average_likes == 0.0


class TestToggleLike:
    def test_like_and_unlike(self):
        notice = _notice(likes=["R1"])
        assert toggle_like(notice, "R2") is True
        assert notice.likes == ["R1", "R2"]
        assert toggle_like(notice, "R1") is False
        assert notice.likes == ["R2"]

    def test_reviewer_required(self):
        with pytest.raises(ValueError):
            toggle_like(_notice(), "")


def test_active_system_notices():
    notices = [
        SystemNotice(title="later", message="m", expires_at=NOW + timedelta(days=5)),
        SystemNotice(title="gone", message="m", expires_at=NOW - timedelta(days=1)),
        SystemNotice(title="sooner", message="m", expires_at=NOW + timedelta(days=1)),
    ]
    assert [n.title for n in active_system_notices(notices, NOW)] == ["sooner", "later"]


# ===========================================================================
# NoticeService
# ===========================================================================


class TestNoticeService:
    def test_create_defaults_expiry(self, db_session):
        notice = NoticeService(db_session, default_expiry_days=30).create(
            " Meeting ", " Committee meets Friday ", now=NOW,
        )
        assert notice.title == "Meeting"
        assert notice.content == "Committee meets Friday"
        assert notice.priority == "medium"
        assert notice.expires_at == NOW + timedelta(days=30)
        assert notice.likes == []

    def test_create_records_event(self, db_session):
        NoticeService(db_session).create("Meeting", "Body", priority="high", actor="chair")
        events = get_events_by_type(db_session, EVENT_NOTICE_PUBLISHED)
        assert [(e.actor, e.decision) for e in events] == [("chair", "high")]

    @pytest.mark.parametrize(
        "title,content,priority",
        [("", "Body", "medium"), ("Title", "  ", "medium"), ("Title", "Body", "urgent")],
    )
    def test_create_validation(self, db_session, title, content, priority):
        with pytest.raises(ValueError):
            NoticeService(db_session).create(title, content, priority)

    def test_update_keeps_likes(self, db_session):
        service = NoticeService(db_session)
        notice = service.create("Meeting", "Body")
        service.like(notice.id, "R1")

        updated = service.update(notice.id, "Meeting moved", "New body", "low", None)

        assert updated.title == "Meeting moved"
        assert updated.priority == "low"
        assert updated.expires_at is None
        assert updated.likes == ["R1"]

    def test_like_toggles(self, db_session):
        service = NoticeService(db_session)
        notice = service.create("Meeting", "Body")
        service.like(notice.id, "R1")
        service.like(notice.id, "R2")
        service.like(notice.id, "R1")
        assert service.get(notice.id).likes == ["R2"]

    def test_delete(self, db_session):
        service = NoticeService(db_session)
        notice = service.create("Meeting", "Body")
        service.delete(notice.id)
        assert service.list_notices() == []
        with pytest.raises(KeyError):
            service.get(notice.id)

    def test_system_notice(self, db_session):
        service = NoticeService(db_session)
        created = service.create_system_notice(
            "Deadline extended",
            "All reviews due next Friday",
            NOW + timedelta(days=7),
            key_points=["Applies to April releases"],
        )
        assert created.key_points == ["Applies to April releases"]
        assert service.list_system_notices() == [created]

    def test_system_notice_requires_expiry(self, db_session):
        with pytest.raises(ValueError):
            NoticeService(db_session).create_system_notice("Title", "Message", None)
