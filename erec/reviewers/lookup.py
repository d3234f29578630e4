"""Resolve a reviewer from what they typed at sign-in."""
from __future__ import annotations

from sqlalchemy.orm import Session

from erec.db.repositories import ProtocolRepository, ReviewerRepository


def _loose_match(candidate: str, query: str) -> bool:
    a, b = candidate.lower(), query.lower()
    return a == b or b in a or a in b


def match_reviewer(protocols: list, roster: dict[str, str], query: str) -> tuple[str, str] | None:
    """Find ``(reviewer_id, name)`` for *query*.

    Reviewer entries on protocols are searched first (their ids and names),
    then the legacy ``reviewer`` field, then the roster.
    """
    query = (query or "").strip()
    if not query:
        raise ValueError("reviewer id or name is required")

    for protocol in protocols:
        for entry in protocol.reviewers or []:
            reviewer_id = entry.get("id") or entry.get("name") or ""
            name = entry.get("name") or entry.get("id") or ""
            if not reviewer_id:
                continue
            if reviewer_id.lower() == query.lower() or _loose_match(name, query):
                return reviewer_id, name
        legacy = protocol.reviewer or ""
        if legacy and _loose_match(legacy, query):
            return legacy, legacy

    for reviewer_id, name in roster.items():
        if reviewer_id.lower() == query.lower() or (name and _loose_match(name, query)):
            return reviewer_id, name or reviewer_id

    return None


def known_reviewers(protocols: list, roster: dict[str, str]) -> dict[str, str]:
    """``{id: name}`` from the roster, plus reviewers only seen on protocols."""
    merged = dict(roster)
    for protocol in protocols:
        for entry in protocol.reviewers or []:
            if entry.get("id") and entry.get("name"):
                merged.setdefault(entry["id"], entry["name"])
        if protocol.reviewer:
            merged.setdefault(protocol.reviewer, protocol.reviewer)
    return merged


def roster_map(db: Session) -> dict[str, str]:
    return {reviewer.id: reviewer.name for reviewer in ReviewerRepository(db).list_all()}


def lookup_reviewer(db: Session, query: str) -> tuple[str, str] | None:
    return match_reviewer(ProtocolRepository(db).list_all(), roster_map(db), query)
