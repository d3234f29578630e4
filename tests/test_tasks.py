"""Tests for erec/tasks/scheduled.py."""
from __future__ import annotations

from datetime import date
from unittest.mock import patch

import pytest

from erec.core.settings import Settings
from erec.notification.settings import update_notification_settings
from erec.tasks.scheduled import is_sending_day, notify, snapshot_exports

THURSDAY = date(2025, 5, 1)
FRIDAY = date(2025, 5, 2)
MONDAY = date(2025, 5, 5)


class TestSendingDays:
    @pytest.mark.parametrize(
        "frequency,today,expected",
        [
            ("daily", FRIDAY, True),
            ("weekly", MONDAY, True),
            ("weekly", THURSDAY, False),
            ("twice-weekly", THURSDAY, True),
            ("twice-weekly", FRIDAY, False),
        ],
    )
    def test_schedule(self, frequency, today, expected):
        assert is_sending_day(frequency, today) is expected


class TestNotify:
    def test_off_schedule_skips(self, db_session):
        update_notification_settings(db_session, enabled=True, frequency="weekly")

        result = notify(db_session, Settings(), THURSDAY)

        assert result.ran is False

    def test_sends_overdue_digest(self, db_session, make_protocol, add_reviewer):
        add_reviewer("DRAPL-001", "Dr. Allan", "allan@spup.edu.ph")
        make_protocol(
            due_date="2025-04-20",
            reviewers=[{"id": "DRAPL-001", "name": "Dr. Allan", "status": "In Progress", "due_date": "2025-04-20"}],
        )
        update_notification_settings(db_session, enabled=True, frequency="daily")

        with patch("erec.notification.email_sender.smtplib.SMTP") as mock_smtp:
            result = notify(db_session, Settings(), FRIDAY)

        assert result.ran is True
        assert result.sent == 1
        mock_smtp.assert_called_once()


class TestSnapshotExports:
    def test_writes_every_collection(self, db_session, add_reviewer, tmp_path):
        add_reviewer("DRAPL-001", "Dr. Allan")

        paths = snapshot_exports(db_session, tmp_path / "exports", THURSDAY)

        assert [p.name for p in paths] == [
            "notices_export_2025-05-01.csv",
            "protocols_export_2025-05-01.csv",
            "reviewers_export_2025-05-01.csv",
        ]
        assert "DRAPL-001" in paths[2].read_text(encoding="utf-8")
