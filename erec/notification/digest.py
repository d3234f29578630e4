"""Overdue and due-soon digests.

Pure logic: selection, grouping and HTML rendering take protocol records and
``today`` and never touch the database or network.
"""
from __future__ import annotations

import html
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from pathlib import Path
from string import Template

from erec.core.constants import STATUS_COMPLETED
from erec.review.dashboard import DashboardSummary
from erec.review.status import days_until, normalize_due_date

TEMPLATE_DIR = Path(__file__).parent / "templates"

_ROW = (
    "  <tr>\n"
    "    <td>$protocol</td>\n"
    '    <td style="color: $color; font-weight: bold;">$due_date</td>\n'
    "    <td>$release_period</td>\n"
    "    <td>$form_type</td>\n"
    "  </tr>"
)


@dataclass
class DueProtocols:
    overdue: list
    due_soon: list


@dataclass
class Assignment:
    """One open reviewer assignment on a protocol."""

    protocol: object
    reviewer_key: str
    reviewer_name: str
    document_type: str


@lru_cache(maxsize=None)
def load_template(name: str) -> Template:
    return Template((TEMPLATE_DIR / name).read_text(encoding="utf-8"))


def check_due_protocols(
    protocols: list,
    today: date,
    due_soon_days: int = 3,
    overdue_threshold: int = 1,
) -> DueProtocols:
    """Split open protocols into overdue and due-soon lists.

    A protocol is overdue once it is at least ``overdue_threshold`` days past
    its due date (never less than one day).
    """
    min_late = max(1, overdue_threshold)
    overdue, due_soon = [], []
    for protocol in protocols:
        if protocol.status == STATUS_COMPLETED:
            continue
        remaining = days_until(protocol.due_date, today)
        if remaining is None:
            continue
        if remaining <= -min_late:
            overdue.append(protocol)
        elif 0 <= remaining <= due_soon_days:
            due_soon.append(protocol)
    return DueProtocols(overdue=overdue, due_soon=due_soon)


def group_by_reviewer(protocols: list) -> dict[str, list[Assignment]]:
    """Open assignments keyed by reviewer id (or name when the id is missing)."""
    groups: dict[str, list[Assignment]] = {}
    for protocol in protocols:
        if protocol.reviewers:
            for entry in protocol.reviewers:
                if entry.get("status") == STATUS_COMPLETED:
                    continue
                key = entry.get("id") or entry.get("name")
                if not key:
                    continue
                groups.setdefault(key, []).append(Assignment(
                    protocol=protocol,
                    reviewer_key=key,
                    reviewer_name=entry.get("name") or key,
                    document_type=entry.get("document_type") or protocol.document_type or "",
                ))
        elif protocol.reviewer:
            groups.setdefault(protocol.reviewer, []).append(Assignment(
                protocol=protocol,
                reviewer_key=protocol.reviewer,
                reviewer_name=protocol.reviewer,
                document_type=protocol.document_type or "",
            ))
    return groups


def _display_date(value) -> str:
    normalized = normalize_due_date(value)
    if not normalized:
        return "Not set"
    return date.fromisoformat(normalized).strftime("%m/%d/%Y")


def _render_sections(groups: dict[str, list[Assignment]], color: str) -> str:
    section = load_template("reviewer_section.html")
    row = Template(_ROW)
    parts = []
    for reviewer, assignments in groups.items():
        rows = "\n".join(
            row.substitute(
                protocol=html.escape(a.protocol.protocol_name or ""),
                color=color,
                due_date=_display_date(a.protocol.due_date),
                release_period=html.escape(a.protocol.release_period or "Not specified"),
                form_type=html.escape(a.document_type or "Not specified"),
            )
            for a in assignments
        )
        parts.append(section.substitute(reviewer=html.escape(reviewer), rows=rows))
    return "\n".join(parts)


def render_overdue_digest(
    protocols: list,
    portal_url: str,
    groups: dict[str, list[Assignment]] | None = None,
) -> str:
    """Overdue digest; *groups* limits the sections to pre-grouped assignments."""
    if not protocols:
        return ""
    return load_template("overdue_digest.html").substitute(
        sections=_render_sections(groups if groups is not None else group_by_reviewer(protocols), "red"),
        portal_url=portal_url,
    )


def render_due_soon_digest(
    protocols: list,
    portal_url: str,
    days: int = 3,
    groups: dict[str, list[Assignment]] | None = None,
) -> str:
    if not protocols:
        return ""
    return load_template("due_soon_digest.html").substitute(
        sections=_render_sections(groups if groups is not None else group_by_reviewer(protocols), "orange"),
        portal_url=portal_url,
        days=days,
    )


def render_admin_summary(summary: DashboardSummary, portal_url: str) -> str:
    return load_template("admin_summary.html").substitute(
        total_protocols=summary.total_protocols,
        total_reviews=summary.total_reviews,
        completed_count=summary.completed_count,
        in_progress_count=summary.in_progress_count,
        overdue_count=summary.overdue_count,
        due_soon_count=summary.due_soon_count,
        portal_url=portal_url.rstrip("/"),
    )
