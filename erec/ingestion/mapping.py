"""Map spreadsheet rows onto protocol drafts.

Uploads list one row per (protocol, reviewer) assignment.  Rows are grouped
by protocol name in first-seen order and each group becomes one draft with
a ``reviewers`` array.  Nothing here touches the database.
"""
from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta

from erec.core.constants import COLUMN_ALIASES, REQUIRED_COLUMNS, STATUS_IN_PROGRESS
from erec.ingestion.release import ReleaseInfo

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class ProtocolDraft:
    protocol_name: str
    rec_code: str
    release_period: str = "Unknown"
    academic_level: str = "Unknown"
    reviewer: str = ""
    protocol_file: str = ""
    document_type: str = ""
    due_date: str = ""
    status: str = STATUS_IN_PROGRESS
    research_title: str | None = None
    principal_investigator: str | None = None
    adviser: str | None = None
    course_program: str | None = None
    reviewers: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class MappingResult:
    drafts: list[ProtocolDraft]
    warnings: list[str]
    reviewer_counts: dict[str, int]


def slugify(value: str) -> str:
    return _SLUG_RE.sub("-", value.lower()).strip("-")


def pick(row: dict[str, str], canonical: str) -> str:
    """Return the first non-empty value among *canonical*'s column aliases."""
    for column in COLUMN_ALIASES.get(canonical, [canonical]):
        value = row.get(column)
        if value:
            return value.strip()
    return ""


def missing_columns(headers: list[str]) -> list[str]:
    present = set(headers)
    missing = []
    for column, canonical in REQUIRED_COLUMNS.items():
        if not present.intersection(COLUMN_ALIASES[canonical]):
            missing.append(column)
    return missing


def resolve_due_date(
    override: str | None,
    release: ReleaseInfo | None,
    today: date,
    default_days: int = 14,
) -> str:
    if override:
        return override
    if release is not None and release.due_date:
        return release.due_date
    return (today + timedelta(days=default_days)).isoformat()


def map_rows(
    rows: list[dict[str, str]],
    headers: list[str],
    *,
    release: ReleaseInfo | None = None,
    due_date: str | None = None,
    known_reviewers: dict[str, str] | None = None,
    today: date | None = None,
    default_days: int = 14,
) -> MappingResult:
    today = today or date.today()
    known_reviewers = known_reviewers or {}
    warnings: list[str] = []

    missing = missing_columns(headers)
    if missing:
        warnings.append(f"Missing required columns: {', '.join(missing)}")

    groups: dict[str, list[dict[str, str]]] = {}
    skipped = 0
    for row in rows:
        name = pick(row, "protocol_name")
        reviewer = pick(row, "reviewer")
        if not name or not reviewer:
            skipped += 1
            continue
        groups.setdefault(name, []).append(row)

    if skipped:
        warnings.append(f"Skipped {skipped} row(s) without a protocol name or reviewer")

    resolved_due = resolve_due_date(due_date, release, today, default_days)
    counts: Counter[str] = Counter()
    drafts: list[ProtocolDraft] = []

    for name, items in groups.items():
        first = items[0]
        draft = ProtocolDraft(
            protocol_name=name,
            rec_code=pick(first, "rec_code") or slugify(name),
            release_period=(release.release_period if release and release.release_period else "Unknown"),
            academic_level=(release.academic_level if release and release.academic_level else "Unknown"),
            reviewer=pick(first, "reviewer"),
            protocol_file=pick(first, "protocol_file"),
            document_type=pick(first, "document_type"),
            due_date=resolved_due,
            research_title=first.get("Research Title") or None,
            principal_investigator=pick(first, "principal_investigator") or None,
            adviser=pick(first, "adviser") or None,
            course_program=pick(first, "course_program") or None,
        )
        for item in items:
            code = pick(item, "reviewer")
            counts[code] += 1
            draft.reviewers.append({
                "id": code,
                "name": known_reviewers.get(code, code),
                "status": STATUS_IN_PROGRESS,
                "document_type": pick(item, "document_type"),
                "due_date": resolved_due,
            })
        drafts.append(draft)

    logger.info("Mapped %d rows into %d protocol drafts", len(rows) - skipped, len(drafts))
    return MappingResult(drafts=drafts, warnings=warnings, reviewer_counts=dict(counts))
