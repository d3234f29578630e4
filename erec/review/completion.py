"""Reviewer completion state on protocols.

``ReviewManager`` flips a single reviewer entry between ``In Progress`` and
``Completed`` and keeps the protocol-level status in step: a protocol is
``Completed`` only when every reviewer entry is.

The reviewer array is always copied and reassigned, never mutated in place,
so the JSON column is written back on flush.
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from erec.audit.audit_log import record_event
from erec.audit.events import EVENT_REVIEW_COMPLETED, EVENT_REVIEW_REOPENED
from erec.core.constants import STATUS_COMPLETED, STATUS_IN_PROGRESS
from erec.db.models import Protocol
from erec.review.matching import find_reviewer_index, is_assigned

logger = logging.getLogger(__name__)


def _copy_reviewers(protocol: Protocol) -> list[dict]:
    return [dict(entry) for entry in protocol.reviewers or []]


def reviewer_status(protocol: Protocol, reviewer_id: str | None, reviewer_name: str | None) -> str:
    """Status of one reviewer on *protocol*, falling back to the protocol status."""
    reviewers = protocol.reviewers or []
    index = find_reviewer_index(reviewers, reviewer_id, reviewer_name)
    if index != -1:
        return reviewers[index].get("status") or STATUS_IN_PROGRESS
    return protocol.status or STATUS_IN_PROGRESS


class ReviewManager:
    """Mark reviewer assignments completed or back in progress."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def _set_status(
        self,
        protocol: Protocol,
        reviewer_id: str,
        reviewer_name: str,
        status: str,
        completed_at: datetime | None,
    ) -> list[dict]:
        stamp = completed_at.isoformat() if completed_at else None
        reviewers = _copy_reviewers(protocol)

        index = find_reviewer_index(reviewers, reviewer_id, reviewer_name)
        if index == -1 and reviewers:
            reviewers.append({
                "id": reviewer_id,
                "name": reviewer_name,
                "status": status,
                "document_type": protocol.document_type,
                "due_date": protocol.due_date or "",
                "completed_at": stamp,
            })
            logger.info("Added reviewer %s to protocol %s", reviewer_id, protocol.path)
        elif index == -1:
            # legacy single-reviewer protocol, or one uploaded without reviewers
            reviewers = [{
                "id": reviewer_id,
                "name": reviewer_name,
                "status": status,
                "document_type": protocol.document_type,
                "due_date": protocol.due_date or "",
                "completed_at": stamp,
            }]
        else:
            reviewers[index] = {**reviewers[index], "status": status, "completed_at": stamp}

        protocol.reviewers = reviewers
        return reviewers

    def mark_completed(
        self,
        protocol: Protocol,
        reviewer_id: str,
        reviewer_name: str,
        actor: str,
        now: datetime | None = None,
    ) -> Protocol:
        if not reviewer_id or not reviewer_name:
            raise ValueError("reviewer_id and reviewer_name are required")
        now = now or datetime.now(timezone.utc)

        reviewers = self._set_status(protocol, reviewer_id, reviewer_name, STATUS_COMPLETED, now)
        if all(entry.get("status") == STATUS_COMPLETED for entry in reviewers):
            protocol.status = STATUS_COMPLETED
            protocol.completed_at = now

        self._db.flush()
        record_event(
            self._db,
            EVENT_REVIEW_COMPLETED,
            actor,
            protocol_id=str(protocol.id),
            reviewer_id=reviewer_id,
            decision=protocol.status,
        )
        logger.info("Reviewer %s completed protocol %s", reviewer_id, protocol.path)
        return protocol

    def mark_in_progress(
        self,
        protocol: Protocol,
        reviewer_id: str,
        reviewer_name: str,
        actor: str,
    ) -> Protocol:
        if not reviewer_id or not reviewer_name:
            raise ValueError("reviewer_id and reviewer_name are required")

        self._set_status(protocol, reviewer_id, reviewer_name, STATUS_IN_PROGRESS, None)
        protocol.status = STATUS_IN_PROGRESS
        protocol.completed_at = None

        self._db.flush()
        record_event(
            self._db,
            EVENT_REVIEW_REOPENED,
            actor,
            protocol_id=str(protocol.id),
            reviewer_id=reviewer_id,
            decision=STATUS_IN_PROGRESS,
        )
        logger.info("Reviewer %s reopened protocol %s", reviewer_id, protocol.path)
        return protocol

    def mark_all_completed(
        self,
        protocols: list[Protocol],
        reviewer_id: str,
        reviewer_name: str,
        actor: str,
        now: datetime | None = None,
    ) -> int:
        """Complete every protocol the reviewer has not finished yet; returns the count."""
        now = now or datetime.now(timezone.utc)
        updated = 0
        for protocol in protocols:
            if not is_assigned(protocol, reviewer_id, reviewer_name):
                continue
            if reviewer_status(protocol, reviewer_id, reviewer_name) == STATUS_COMPLETED:
                continue
            self.mark_completed(protocol, reviewer_id, reviewer_name, actor, now=now)
            updated += 1
        return updated
