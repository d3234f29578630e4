"""Release-period detection from an upload's file name.

Two naming schemes are in use:

``first-release_undergraduate.csv``
    Numbered releases (first to fourth).  The academic level is read from the
    name; no due date can be derived.

``april_1stweek.csv``
    Monthly weekly releases.  The due date is the n-th Saturday of the month
    (current year) plus the standard review window.
"""
from __future__ import annotations

import calendar
import re
from dataclasses import dataclass
from datetime import date, timedelta

from erec.core.constants import MONTH_NAMES, RELEASE_ORDINALS

REVIEW_WINDOW_DAYS = 14

_WEEKLY_RE = re.compile(r"[a-z]+_[1-4][a-z]+week")
_MONTH_RE = re.compile(r"([a-z]+)_")
_WEEK_RE = re.compile(r"_([1-4])[a-z]+week")


@dataclass(frozen=True)
class ReleaseInfo:
    release_period: str = ""
    academic_level: str | None = None
    due_date: str | None = None
    month: str | None = None
    week: str | None = None


def ordinal_suffix(number: int) -> str:
    if number % 10 == 1 and number % 100 != 11:
        return "st"
    if number % 10 == 2 and number % 100 != 12:
        return "nd"
    if number % 10 == 3 and number % 100 != 13:
        return "rd"
    return "th"


def saturday_of_week(year: int, month: int, week_number: int) -> date | None:
    """Return the *week_number*-th Saturday of the month, or None if it spills over."""
    first = date(year, month, 1)
    first_saturday = first + timedelta(days=(calendar.SATURDAY - first.weekday()) % 7)
    target = first_saturday + timedelta(weeks=week_number - 1)
    if target.month != month:
        return None
    return target


def process_release_info(file_name: str, today: date | None = None) -> ReleaseInfo:
    today = today or date.today()
    lower = (file_name or "").lower()

    for ordinal in RELEASE_ORDINALS:
        slug = f"{ordinal}-release"
        if slug in lower:
            level = "Undergraduate" if "undergraduate" in lower else "Graduate"
            return ReleaseInfo(
                release_period=f"{ordinal.capitalize()} Release",
                academic_level=level,
                month=slug,
                week="week-1",
            )

    if not _WEEKLY_RE.search(lower):
        return ReleaseInfo()

    month_match = _MONTH_RE.search(lower)
    week_match = _WEEK_RE.search(lower)
    if not month_match or not week_match:
        return ReleaseInfo()

    month_name = month_match.group(1).capitalize()
    week_number = int(week_match.group(1))
    period = f"{month_name} {week_number}{ordinal_suffix(week_number)} Week"

    due_date = None
    if month_name in MONTH_NAMES:
        saturday = saturday_of_week(today.year, MONTH_NAMES.index(month_name) + 1, week_number)
        if saturday is not None:
            due_date = (saturday + timedelta(days=REVIEW_WINDOW_DAYS)).isoformat()

    return ReleaseInfo(
        release_period=period,
        due_date=due_date,
        month=month_name,
        week=f"week-{week_number}",
    )
