"""Reviewer identity matching.

Reviewer entries on older protocols carry inconsistent names (with or
without honorifics, codes stored as names), so a match is any of:

- equal ids
- equal names
- either name contained in the other, ignoring case
"""
from __future__ import annotations


def reviewer_matches(entry: dict, reviewer_id: str | None, reviewer_name: str | None) -> bool:
    entry_id = entry.get("id")
    entry_name = entry.get("name") or ""

    if reviewer_id and entry_id == reviewer_id:
        return True
    if reviewer_name and entry_name == reviewer_name:
        return True
    if entry_name and reviewer_name:
        a, b = entry_name.lower(), reviewer_name.lower()
        return a in b or b in a
    return False


def find_reviewer_index(
    reviewers: list[dict],
    reviewer_id: str | None,
    reviewer_name: str | None = None,
) -> int:
    """Index of the entry for the reviewer, preferring an id match; -1 when absent."""
    if reviewer_id:
        for index, entry in enumerate(reviewers):
            if entry.get("id") == reviewer_id:
                return index
    for index, entry in enumerate(reviewers):
        if reviewer_matches(entry, None, reviewer_name):
            return index
    return -1


def _contains_either_way(a: str, b: str) -> bool:
    a, b = a.lower(), b.lower()
    return a in b or b in a


def is_assigned(protocol, reviewer_id: str | None, reviewer_name: str | None) -> bool:
    """True when the reviewer is on *protocol*, including the legacy single-reviewer field."""
    if any(reviewer_matches(entry, reviewer_id, reviewer_name) for entry in protocol.reviewers or []):
        return True
    legacy = protocol.reviewer or ""
    if not legacy:
        return False
    return any(_contains_either_way(legacy, value) for value in (reviewer_id, reviewer_name) if value)
