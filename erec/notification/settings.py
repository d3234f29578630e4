"""Stored notification preferences (single row, id=1)."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from erec.core.constants import VALID_FREQUENCIES
from erec.db.models import NotificationSetting

logger = logging.getLogger(__name__)

SETTINGS_ID = 1

DEFAULTS: dict[str, object] = {
    "enabled": False,
    "frequency": "daily",
    "send_to_reviewers": True,
    "send_to_admins": True,
    "admin_emails": [],
    "overdue_threshold": 1,
    "due_soon_threshold": 3,
}

_EDITABLE = frozenset(DEFAULTS)


def get_notification_settings(db: Session) -> NotificationSetting:
    """Return the settings row, creating it with defaults on first read."""
    row = db.get(NotificationSetting, SETTINGS_ID)
    if row is None:
        row = NotificationSetting(id=SETTINGS_ID, **{k: (list(v) if isinstance(v, list) else v) for k, v in DEFAULTS.items()})
        db.add(row)
        db.flush()
        logger.info("Created default notification settings")
    return row


def update_notification_settings(db: Session, **changes) -> NotificationSetting:
    unknown = set(changes) - _EDITABLE
    if unknown:
        raise ValueError(f"Unknown notification settings: {sorted(unknown)}")

    if "frequency" in changes and changes["frequency"] not in VALID_FREQUENCIES:
        raise ValueError(
            f"Invalid frequency {changes['frequency']!r}; must be one of {sorted(VALID_FREQUENCIES)}"
        )
    for key in ("overdue_threshold", "due_soon_threshold"):
        if key in changes and int(changes[key]) < 0:
            raise ValueError(f"{key} must be >= 0")
    if "admin_emails" in changes:
        emails = [e.strip() for e in changes["admin_emails"] or [] if e and e.strip()]
        if any("@" not in e for e in emails):
            raise ValueError("admin_emails must contain e-mail addresses")
        # keep first occurrence order
        changes["admin_emails"] = list(dict.fromkeys(emails))

    row = get_notification_settings(db)
    for key, value in changes.items():
        setattr(row, key, value)
    db.flush()
    return row
