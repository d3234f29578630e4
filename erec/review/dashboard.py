"""Dashboard aggregation over protocol records.

The same logical protocol can be stored as several records (older uploads
wrote one record per reviewer), so admin views group records by protocol
name before counting.  Everything here is pure: callers pass the records and
``today``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any

from erec.core.constants import (
    RELEASE_ORDINALS,
    STATUS_COMPLETED,
    STATUS_IN_PROGRESS,
    STATUS_PARTIALLY_COMPLETED,
)
from erec.review.completion import reviewer_status
from erec.review.forms import reviewer_form
from erec.review.matching import find_reviewer_index, is_assigned
from erec.review.status import (
    is_due_soon,
    is_overdue,
    normalize_due_date,
    protocol_status_label,
)

TOP_N = 5
TOP_REVIEWERS = 10

_ORDINAL_RE = re.compile(r"first|second|third|fourth", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class ProtocolGroup:
    name: str
    base: Any
    items: list = field(default_factory=list)
    status: str = STATUS_IN_PROGRESS
    reviewer_count: int = 0
    completed_count: int = 0

    @property
    def due_date(self) -> str:
        return normalize_due_date(self.base.due_date)

    @property
    def created_at(self) -> datetime | None:
        return self.base.created_at


@dataclass
class ReviewerStat:
    reviewer_id: str
    name: str
    assigned: int = 0
    completed: int = 0
    overdue: int = 0


@dataclass
class DashboardSummary:
    total_protocols: int
    total_reviews: int
    completed_count: int
    in_progress_count: int
    overdue_count: int
    due_soon_count: int
    overdue: list[ProtocolGroup]
    upcoming: list[ProtocolGroup]
    recent: list[ProtocolGroup]
    reviewer_stats: list[ReviewerStat]


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


def group_by_name(protocols: list) -> dict[str, list]:
    groups: dict[str, list] = {}
    for protocol in protocols:
        groups.setdefault(protocol.protocol_name, []).append(protocol)
    return groups


def summarize_group(name: str, items: list) -> ProtocolGroup:
    reviewer_count = 0
    completed_count = 0
    for item in items:
        if item.reviewers:
            reviewer_count += len(item.reviewers)
            completed_count += sum(1 for r in item.reviewers if r.get("status") == STATUS_COMPLETED)
        elif item.reviewer:
            reviewer_count += 1
            if item.status == STATUS_COMPLETED:
                completed_count += 1

    if reviewer_count > 0 and completed_count == reviewer_count:
        status = STATUS_COMPLETED
    elif completed_count > 0:
        status = STATUS_PARTIALLY_COMPLETED
    else:
        status = STATUS_IN_PROGRESS

    return ProtocolGroup(
        name=name,
        base=items[0],
        items=list(items),
        status=status,
        reviewer_count=reviewer_count,
        completed_count=completed_count,
    )


def _reviewer_stats(protocols: list, today_iso: str) -> list[ReviewerStat]:
    stats: dict[str, ReviewerStat] = {}

    def _bump(key: str, name: str, completed: bool, due: str) -> None:
        stat = stats.setdefault(key, ReviewerStat(reviewer_id=key, name=name))
        stat.assigned += 1
        if completed:
            stat.completed += 1
        elif due and due < today_iso:
            stat.overdue += 1

    for protocol in protocols:
        due = normalize_due_date(protocol.due_date)
        if protocol.reviewers:
            for entry in protocol.reviewers:
                key = entry.get("id") or entry.get("name") or ""
                _bump(key, entry.get("name") or key, entry.get("status") == STATUS_COMPLETED, due)
        elif protocol.reviewer:
            _bump(protocol.reviewer, protocol.reviewer, protocol.status == STATUS_COMPLETED, due)

    ordered = sorted(stats.values(), key=lambda s: s.assigned, reverse=True)
    return ordered[:TOP_REVIEWERS]


def build_dashboard(protocols: list, today: date, window_days: int = 7) -> DashboardSummary:
    groups = [summarize_group(name, items) for name, items in group_by_name(protocols).items()]
    today_iso = today.isoformat()
    horizon = (today + timedelta(days=window_days)).isoformat()

    open_groups = [g for g in groups if g.status != STATUS_COMPLETED and g.due_date]
    overdue = sorted((g for g in open_groups if g.due_date < today_iso), key=lambda g: g.due_date)
    upcoming = sorted(
        (g for g in open_groups if today_iso <= g.due_date <= horizon),
        key=lambda g: g.due_date,
    )
    recent = sorted(
        groups,
        key=lambda g: g.created_at.timestamp() if g.created_at else 0.0,
        reverse=True,
    )[:TOP_N]

    completed = sum(1 for g in groups if g.status == STATUS_COMPLETED)
    return DashboardSummary(
        total_protocols=len(groups),
        total_reviews=len(protocols),
        completed_count=completed,
        in_progress_count=len(groups) - completed,
        overdue_count=len(overdue),
        due_soon_count=len(upcoming),
        overdue=overdue[:TOP_N],
        upcoming=upcoming[:TOP_N],
        recent=recent,
        reviewer_stats=_reviewer_stats(protocols, today_iso),
    )


# ---------------------------------------------------------------------------
# Due-date monitor
# ---------------------------------------------------------------------------


def _matches_search(protocol, term: str) -> bool:
    if term in (protocol.protocol_name or "").lower():
        return True
    if protocol.reviewer and term in protocol.reviewer.lower():
        return True
    return any(term in (entry.get("name") or "").lower() for entry in protocol.reviewers or [])


def filter_protocols(
    protocols: list,
    today: date,
    status_filter: str = "all",
    search: str = "",
    release: str = "all",
    due_soon_days: int = 3,
    require_due_date: bool = True,
) -> list:
    """Due-date monitor filter; undated protocols are dropped unless *require_due_date* is off."""
    if status_filter not in {"all", "overdue", "due-soon"}:
        raise ValueError(f"Invalid status filter {status_filter!r}")

    term = search.strip().lower()
    selected = []
    for protocol in protocols:
        due = normalize_due_date(protocol.due_date)
        if not due and require_due_date:
            continue
        open_ = protocol.status != STATUS_COMPLETED
        if status_filter == "overdue" and not (open_ and is_overdue(due, today)):
            continue
        if status_filter == "due-soon" and not (open_ and is_due_soon(due, today, due_soon_days)):
            continue
        if term and not _matches_search(protocol, term):
            continue
        if release != "all" and protocol.release_period != release:
            continue
        selected.append(protocol)
    return selected


def due_date_counts(protocols: list, today: date, due_soon_days: int = 3) -> dict[str, int]:
    dated = [p for p in protocols if normalize_due_date(p.due_date)]
    open_ = [p for p in dated if p.status != STATUS_COMPLETED]
    return {
        "total": len(dated),
        "overdue": sum(1 for p in open_ if is_overdue(p.due_date, today)),
        "due_soon": sum(1 for p in open_ if is_due_soon(p.due_date, today, due_soon_days)),
        "completed": sum(1 for p in dated if p.status == STATUS_COMPLETED),
    }


def sort_release_periods(periods) -> list[str]:
    """Numbered releases first (First to Fourth), then the rest alphabetically."""

    def _key(period: str):
        if _ORDINAL_RE.search(period):
            first_word = period.lower().split(" ")[0]
            return (0, RELEASE_ORDINALS.get(first_word, 99), period)
        return (1, 0, period)

    return sorted(set(periods), key=_key)


# ---------------------------------------------------------------------------
# Reviewer dashboard
# ---------------------------------------------------------------------------


def _reviewer_due_date(protocol, reviewer_id: str, reviewer_name: str) -> str:
    reviewers = protocol.reviewers or []
    index = find_reviewer_index(reviewers, reviewer_id, reviewer_name)
    if index != -1:
        own = normalize_due_date(reviewers[index].get("due_date"))
        if own:
            return own
    return normalize_due_date(protocol.due_date)


def reviewer_dashboard(
    protocols: list,
    reviewer_id: str,
    reviewer_name: str,
    today: date,
    due_soon_days: int = 3,
) -> dict:
    """Assignments of one reviewer, grouped by release period and sorted by urgency."""
    rows = []
    for protocol in protocols:
        if not is_assigned(protocol, reviewer_id, reviewer_name):
            continue
        status = reviewer_status(protocol, reviewer_id, reviewer_name)
        due = _reviewer_due_date(protocol, reviewer_id, reviewer_name)
        open_ = status != STATUS_COMPLETED
        rows.append({
            "protocol": protocol,
            "reviewer_status": status,
            "due_date": due,
            "label": protocol_status_label(status, due, today, due_soon_days),
            "overdue": open_ and is_overdue(due, today),
            "due_soon": open_ and is_due_soon(due, today, due_soon_days),
            "form": reviewer_form(protocol, reviewer_id, reviewer_name),
        })

    rows.sort(key=lambda row: (
        0 if row["overdue"] else 1 if row["due_soon"] else 2,
        row["due_date"] or "9999-12-31",
    ))

    by_release: dict[str, list] = {}
    for row in rows:
        by_release.setdefault(row["protocol"].release_period or "Unknown", []).append(row)

    counts = {
        "total": len(rows),
        "completed": sum(1 for r in rows if r["reviewer_status"] == STATUS_COMPLETED),
        "in_progress": sum(1 for r in rows if r["reviewer_status"] == STATUS_IN_PROGRESS),
        "overdue": sum(1 for r in rows if r["overdue"]),
        "due_soon": sum(1 for r in rows if r["due_soon"]),
    }
    return {
        "counts": counts,
        "rows": rows,
        "releases": {period: by_release[period] for period in sort_release_periods(by_release)},
    }
