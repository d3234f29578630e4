"""Reviewer reassignment.

A reassignment swaps one reviewer entry for another in place (the entry keeps
its position and ``document_type``) and appends a record to the protocol's
``reassignment_history``::

    {"from": "Dr. A", "to": "Dr. B", "from_id": "DRA-001", "to_id": "DRB-002",
     "date": "2025-05-01T08:00:00+00:00", "reason": "...", "status": "In Progress"}

Bulk reassignment replaces every reviewer that has not completed yet.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone

from sqlalchemy.orm import Session

from erec.audit.audit_log import record_event
from erec.audit.events import EVENT_BULK_REASSIGNMENT, EVENT_REASSIGNMENT
from erec.core.constants import STATUS_COMPLETED, STATUS_IN_PROGRESS, VALID_REVIEWER_STATUSES
from erec.db.models import Protocol
from erec.review.matching import find_reviewer_index
from erec.review.status import is_iso_date, normalize_due_date

logger = logging.getLogger(__name__)


def extend_due_date(original: str | None, days: int = 14) -> str:
    """*original* plus *days*, or ``""`` when *original* is not a valid date."""
    normalized = normalize_due_date(original)
    if not normalized:
        return ""
    return (date.fromisoformat(normalized) + timedelta(days=days)).isoformat()


class ReassignmentService:
    """Move protocol assignments between reviewers on the roster.

    *roster* maps reviewer codes to display names.
    """

    def __init__(self, db: Session, roster: dict[str, str], extension_days: int = 14) -> None:
        self._db = db
        self._roster = roster
        self._extension_days = extension_days

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve_new_reviewer(self, reviewer_id: str) -> dict:
        name = self._roster.get(reviewer_id)
        if not reviewer_id or not name:
            raise ValueError(f"Reviewer {reviewer_id!r} is not on the roster")
        return {"id": reviewer_id, "name": name}

    @staticmethod
    def _history_entry(old: dict, new: dict, reason: str, status: str, when: datetime) -> dict:
        return {
            "from": old.get("name") or old.get("id") or "",
            "to": new["name"],
            "from_id": old.get("id") or "",
            "to_id": new["id"],
            "date": when.isoformat(),
            "reason": reason,
            "status": status,
        }

    # ------------------------------------------------------------------
    # Single reassignment
    # ------------------------------------------------------------------

    def reassign(
        self,
        protocol: Protocol,
        current_reviewer_id: str,
        new_reviewer_id: str,
        *,
        reason: str,
        actor: str,
        new_due_date: str | None = None,
        status: str = STATUS_IN_PROGRESS,
        current_reviewer_name: str | None = None,
        now: datetime | None = None,
    ) -> Protocol:
        if not reason or not reason.strip():
            raise ValueError("A reason is required for reassignment")
        if status not in VALID_REVIEWER_STATUSES:
            raise ValueError(f"Invalid status {status!r}")

        new = self._resolve_new_reviewer(new_reviewer_id)
        now = now or datetime.now(timezone.utc)
        reviewers = [dict(entry) for entry in protocol.reviewers or []]

        if reviewers:
            index = find_reviewer_index(reviewers, current_reviewer_id, current_reviewer_name)
            if index == -1:
                raise KeyError(f"Reviewer {current_reviewer_id} is not assigned to {protocol.path}")
            old = reviewers[index]
        elif protocol.reviewer and protocol.reviewer in (current_reviewer_id, current_reviewer_name):
            index = -1
            old = {"id": protocol.reviewer, "name": protocol.reviewer, "document_type": protocol.document_type}
        else:
            raise KeyError(f"Reviewer {current_reviewer_id} is not assigned to {protocol.path}")

        if any(entry.get("id") == new["id"] for i, entry in enumerate(reviewers) if i != index):
            raise ValueError(f"Reviewer {new['id']} is already assigned to {protocol.path}")

        if status == STATUS_IN_PROGRESS:
            due = new_due_date or extend_due_date(
                old.get("due_date") or protocol.due_date, self._extension_days
            )
            if not is_iso_date(due):
                raise ValueError("Due date (YYYY-MM-DD) is required for In Progress status")
        else:
            due = ""

        replacement = {
            **old,
            "id": new["id"],
            "name": new["name"],
            "status": status,
            "due_date": due,
            "completed_at": now.isoformat() if status == STATUS_COMPLETED else None,
        }

        if index == -1:
            protocol.reviewers = [replacement]
            protocol.reviewer = new["id"]
            if due:
                protocol.due_date = due
        else:
            reviewers[index] = replacement
            protocol.reviewers = reviewers

        history = list(protocol.reassignment_history or [])
        history.append(self._history_entry(old, new, reason.strip(), status, now))
        protocol.reassignment_history = history

        self._db.flush()
        record_event(
            self._db,
            EVENT_REASSIGNMENT,
            actor,
            protocol_id=str(protocol.id),
            reviewer_id=new["id"],
            decision=status,
            rationale=reason.strip(),
        )
        logger.info("Reassigned %s from %s to %s", protocol.path, old.get("id"), new["id"])
        return protocol

    # ------------------------------------------------------------------
    # Bulk reassignment
    # ------------------------------------------------------------------

    def bulk_reassign(
        self,
        protocols: list[Protocol],
        new_reviewer_id: str,
        actor: str,
        reason: str = "Bulk reassignment",
        now: datetime | None = None,
    ) -> int:
        """Hand every unfinished assignment on *protocols* to one reviewer.

        Each replaced entry keeps its own due date (the protocol's when it has
        none).  Returns the number of protocols changed.
        """
        new = self._resolve_new_reviewer(new_reviewer_id)
        now = now or datetime.now(timezone.utc)
        changed = 0

        for protocol in protocols:
            history = list(protocol.reassignment_history or [])
            reviewers: list[dict] = []
            replaced = False

            if protocol.reviewers:
                for entry in protocol.reviewers:
                    if entry.get("status") == STATUS_COMPLETED:
                        reviewers.append(dict(entry))
                        continue
                    reviewers.append({
                        "id": new["id"],
                        "name": new["name"],
                        "status": STATUS_IN_PROGRESS,
                        "document_type": entry.get("document_type"),
                        "due_date": normalize_due_date(entry.get("due_date")) or protocol.due_date or "",
                        "completed_at": None,
                    })
                    history.append(self._history_entry(entry, new, reason, STATUS_IN_PROGRESS, now))
                    replaced = True
            elif protocol.reviewer:
                old = {"id": protocol.reviewer, "name": protocol.reviewer}
                reviewers.append({
                    "id": new["id"],
                    "name": new["name"],
                    "status": STATUS_IN_PROGRESS,
                    "document_type": protocol.document_type,
                    "due_date": protocol.due_date or "",
                    "completed_at": None,
                })
                history.append(self._history_entry(old, new, reason, STATUS_IN_PROGRESS, now))
                replaced = True

            if not replaced:
                logger.warning("Bulk reassignment skipped %s: no open assignments", protocol.path)
                continue

            protocol.reviewers = reviewers
            protocol.reviewer = None
            protocol.reassignment_history = history
            changed += 1

        self._db.flush()
        if changed:
            record_event(
                self._db,
                EVENT_BULK_REASSIGNMENT,
                actor,
                reviewer_id=new["id"],
                decision=f"{changed} protocols",
                rationale=reason,
            )
        logger.info("Bulk reassigned %d protocols to %s", changed, new["id"])
        return changed

    def available_reviewers(self, protocol: Protocol) -> list[dict]:
        assigned = {entry.get("id") for entry in protocol.reviewers or []}
        if protocol.reviewer:
            assigned.add(protocol.reviewer)
        return [
            {"id": reviewer_id, "name": name}
            for reviewer_id, name in sorted(self._roster.items())
            if reviewer_id not in assigned
        ]
