"""Due-date and status rules.

All functions take ``today`` explicitly so callers (and tests) control the
clock.  Due dates are compared as ``YYYY-MM-DD`` calendar dates; time of day
is ignored.
"""
from __future__ import annotations

import logging
import re
from datetime import date, datetime

import pandas as pd

from erec.core.constants import (
    STATUS_COMPLETED,
    STATUS_DUE_SOON,
    STATUS_IN_PROGRESS,
    STATUS_OVERDUE,
)

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def is_iso_date(value: str | None) -> bool:
    return bool(value) and bool(_ISO_DATE_RE.match(value))


def normalize_due_date(value: object) -> str:
    """Coerce *value* to ``YYYY-MM-DD``; unparseable or empty input gives ``""``."""
    if value is None or value == "":
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return ""
        if _ISO_DATE_RE.match(text):
            return text
        parsed = pd.to_datetime(text, errors="coerce")
        if not pd.isna(parsed):
            return parsed.date().isoformat()
    logger.warning("Could not parse due date %r", value)
    return ""


def _as_date(due: object) -> date | None:
    normalized = normalize_due_date(due)
    if not normalized:
        return None
    return date.fromisoformat(normalized)


def days_until(due: object, today: date) -> int | None:
    parsed = _as_date(due)
    if parsed is None:
        return None
    return (parsed - today).days


def is_overdue(due: object, today: date) -> bool:
    remaining = days_until(due, today)
    return remaining is not None and remaining < 0


def is_due_soon(due: object, today: date, days: int = 3) -> bool:
    remaining = days_until(due, today)
    return remaining is not None and 0 <= remaining <= days


def protocol_status_label(status: str | None, due: object, today: date, days: int = 3) -> str:
    if status == STATUS_COMPLETED:
        return STATUS_COMPLETED
    if is_overdue(due, today):
        return STATUS_OVERDUE
    if is_due_soon(due, today, days):
        return STATUS_DUE_SOON
    return STATUS_IN_PROGRESS


def effective_due_date(protocol, today: date) -> str:
    """Pick the due date that matters for *protocol* right now.

    With no reviewers: the protocol's own date.  When every reviewer is done:
    the latest reviewer date.  Otherwise the earliest upcoming active date,
    then the most recent overdue active date, then the protocol's date.
    """
    reviewers = protocol.reviewers or []
    fallback = normalize_due_date(protocol.due_date)
    if not reviewers:
        return fallback

    today_iso = today.isoformat()
    active = [r for r in reviewers if r.get("status") != STATUS_COMPLETED]

    if not active:
        dates = sorted(
            (d for d in (normalize_due_date(r.get("due_date")) for r in reviewers) if d),
            reverse=True,
        )
        return dates[0] if dates else fallback

    active_dates = [d for d in (normalize_due_date(r.get("due_date")) for r in active) if d]
    upcoming = sorted(d for d in active_dates if d >= today_iso)
    if upcoming:
        return upcoming[0]
    overdue = sorted((d for d in active_dates if d < today_iso), reverse=True)
    if overdue:
        return overdue[0]
    return fallback
