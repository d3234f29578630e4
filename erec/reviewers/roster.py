"""Reviewer roster loader.

The committee roster lives in ``config/reviewers.yaml``::

    reviewers:
      DRAPL-001:
        name: Dr. Allan Paulo L. Blaquera
        email: optional@example.edu

``import_roster`` upserts the file into the ``reviewers`` table.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

import yaml
from sqlalchemy.orm import Session

from erec.db.repositories import ReviewerRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RosterEntry:
    reviewer_id: str
    name: str
    email: str | None = None


def parse_roster(data: object, source: str = "<roster>") -> list[RosterEntry]:
    if not isinstance(data, dict) or not isinstance(data.get("reviewers"), dict):
        raise ValueError(f"{source}: expected a 'reviewers' mapping")

    entries: list[RosterEntry] = []
    for code, body in data["reviewers"].items():
        body = body or {}
        if not isinstance(body, dict):
            raise ValueError(f"{source}: entry {code!r} must be a mapping")
        name = str(body.get("name") or "").strip()
        if not name:
            raise ValueError(f"{source}: reviewer {code!r} has no name")
        entries.append(RosterEntry(reviewer_id=str(code).strip(), name=name, email=body.get("email")))
    return entries


def load_roster(path: str | Path) -> list[RosterEntry]:
    """Load roster entries from a YAML file.

    Raises
    ------
    ValueError
        If the document is not a ``reviewers`` mapping or an entry lacks a name.
    """
    path = Path(path)
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return parse_roster(data, str(path))


def import_roster(db: Session, entries: list[RosterEntry]) -> dict[str, int]:
    """Upsert *entries* into the ``reviewers`` table; flushes, never commits."""
    repo = ReviewerRepository(db)
    created = updated = 0
    for entry in entries:
        _, was_created = repo.upsert(entry.reviewer_id, entry.name, entry.email)
        if was_created:
            created += 1
        else:
            updated += 1
    logger.info("Roster import: created=%d updated=%d", created, updated)
    return {"created": created, "updated": updated}
