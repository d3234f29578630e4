"""Append-only audit trail of review activity.

Every completion, reopen, reassignment, upload, notice and notification run
leaves one ``AuditEvent`` row.  Rows are inserted and never updated.

Only ``event_type`` and ``actor`` reach the application log; rationale text
often quotes a reviewer's leave request and stays in the table.
"""
from __future__ import annotations

import logging

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from erec.audit.events import RATIONALE_REQUIRED, VALID_EVENT_TYPES
from erec.db.models import AuditEvent

logger = logging.getLogger(__name__)


def _require_known_type(event_type: str) -> None:
    if event_type not in VALID_EVENT_TYPES:
        raise ValueError(f"Unknown audit event type {event_type!r}; expected one of {sorted(VALID_EVENT_TYPES)}")


def record_event(
    db_session: Session,
    event_type: str,
    actor: str,
    protocol_id: str | None = None,
    reviewer_id: str | None = None,
    decision: str | None = None,
    rationale: str | None = None,
) -> AuditEvent:
    """Append one event and flush it.

    The caller owns the transaction.  Raises ``ValueError`` for an unknown
    event type, a blank actor, or a missing rationale on reassignments.
    """
    _require_known_type(event_type)
    actor = (actor or "").strip()
    if not actor:
        raise ValueError("actor must be a non-empty string")
    if event_type in RATIONALE_REQUIRED and not (rationale or "").strip():
        raise ValueError(f"rationale is required for {event_type} events")

    event = AuditEvent(
        event_type=event_type,
        actor=actor,
        protocol_id=protocol_id,
        reviewer_id=reviewer_id,
        decision=decision,
        rationale=rationale,
        immutable=True,
    )
    db_session.add(event)
    db_session.flush()
    logger.info("Audit %s by %s", event_type, actor)
    return event


def _oldest_first(stmt: Select) -> Select:
    return stmt.order_by(AuditEvent.timestamp.asc(), AuditEvent.audit_event_id)


def get_protocol_history(db_session: Session, protocol_id: str) -> list[AuditEvent]:
    stmt = _oldest_first(select(AuditEvent).where(AuditEvent.protocol_id == protocol_id))
    return list(db_session.scalars(stmt))


def get_reviewer_history(db_session: Session, reviewer_id: str) -> list[AuditEvent]:
    """Events that name *reviewer_id*, whether as actor or as the affected reviewer."""
    stmt = _oldest_first(
        select(AuditEvent).where((AuditEvent.reviewer_id == reviewer_id) | (AuditEvent.actor == reviewer_id))
    )
    return list(db_session.scalars(stmt))


def get_events_by_type(db_session: Session, event_type: str) -> list[AuditEvent]:
    _require_known_type(event_type)
    stmt = _oldest_first(select(AuditEvent).where(AuditEvent.event_type == event_type))
    return list(db_session.scalars(stmt))


def get_recent_events(db_session: Session, limit: int = 50) -> list[AuditEvent]:
    """Newest *limit* events, newest first."""
    stmt = select(AuditEvent).order_by(AuditEvent.timestamp.desc()).limit(limit)
    return list(db_session.scalars(stmt))
