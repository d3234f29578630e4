"""Jobs run outside the request cycle (cron or ``scripts/run_daily.py``).

``notify`` sends the due-date digests when the stored frequency says today
is a sending day.  ``snapshot_exports`` writes every exportable collection
to ``EXPORT_DIR`` for the committee's records.
"""
from __future__ import annotations

import logging
from datetime import date
from pathlib import Path

from sqlalchemy.orm import Session

from erec.core.settings import Settings
from erec.export.exporter import EXPORTABLE_COLLECTIONS, CollectionExporter
from erec.notification.email_sender import DigestSender
from erec.notification.runner import NotificationRunResult, run_notifications
from erec.notification.settings import get_notification_settings

logger = logging.getLogger(__name__)

# Monday=0; twice-weekly digests go out Monday and Thursday
_SEND_WEEKDAYS = {
    "daily": frozenset(range(7)),
    "twice-weekly": frozenset({0, 3}),
    "weekly": frozenset({0}),
}


def is_sending_day(frequency: str, today: date) -> bool:
    return today.weekday() in _SEND_WEEKDAYS.get(frequency, _SEND_WEEKDAYS["daily"])


def notify(db: Session, settings: Settings, today: date, force: bool = False) -> NotificationRunResult:
    row = get_notification_settings(db)
    if not force and not is_sending_day(row.frequency, today):
        logger.info("Skipping %s digests on %s", row.frequency, today.isoformat())
        return NotificationRunResult(ran=False)

    sender = DigestSender(settings.smtp_host, settings.smtp_port, settings.mail_from)
    return run_notifications(db, sender, today, settings.portal_url, actor="scheduler", force=force)


def snapshot_exports(db: Session, output_dir: str | Path, today: date, fmt: str = "csv") -> list[Path]:
    exporter = CollectionExporter(db)
    written = [exporter.write(name, fmt, Path(output_dir), today) for name in sorted(EXPORTABLE_COLLECTIONS)]
    logger.info("Wrote %d export files to %s", len(written), output_dir)
    return written
