"""Protocol routes.

GET    /protocols                                        list with filters
GET    /protocols/months                                 distinct storage months
GET    /protocols/releases                               release periods in display order
POST   /protocols/bulk-reassign                          hand open assignments to one reviewer
GET    /protocols/{id}                                   detail
PATCH  /protocols/{id}                                   edit identifying fields
POST   /protocols/{id}/reviewers/{reviewer_id}/complete  mark a review completed
POST   /protocols/{id}/reviewers/{reviewer_id}/reopen    put a review back in progress
POST   /protocols/{id}/reassign                          swap one reviewer
GET    /protocols/{id}/available-reviewers               roster minus assigned reviewers
GET    /protocols/{id}/history                           reassignments and audit trail
"""
from __future__ import annotations

import logging
from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from erec.api.deps import get_db, get_reassignment_service, get_review_manager, get_today
from erec.api.serializers import serialize_event, serialize_protocol
from erec.audit.audit_log import get_protocol_history, record_event
from erec.audit.events import EVENT_PROTOCOL_UPDATED
from erec.core.constants import STATUS_IN_PROGRESS, VALID_REVIEWER_STATUSES
from erec.core.settings import Settings, get_settings
from erec.db.models import Protocol
from erec.db.repositories import ProtocolRepository
from erec.review.completion import ReviewManager
from erec.review.dashboard import filter_protocols, sort_release_periods
from erec.review.reassignment import ReassignmentService
from erec.review.status import is_iso_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/protocols", tags=["protocols"])


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class UpdateProtocolBody(BaseModel):
    actor: str = "admin"
    protocol_name: str | None = None
    research_title: str | None = None
    principal_investigator: str | None = None
    adviser: str | None = None
    course_program: str | None = None
    release_period: str | None = None
    protocol_file: str | None = None
    document_type: str | None = None
    due_date: str | None = None
    status: str | None = None


class ReviewerActionBody(BaseModel):
    reviewer_name: str
    actor: str | None = None


class ReassignBody(BaseModel):
    current_reviewer_id: str
    current_reviewer_name: str | None = None
    new_reviewer_id: str
    reason: str
    new_due_date: str | None = None
    status: str = STATUS_IN_PROGRESS
    actor: str = "admin"


class BulkReassignBody(BaseModel):
    protocol_ids: list[UUID]
    new_reviewer_id: str
    reason: str = "Bulk reassignment"
    actor: str = "admin"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_protocol(db: Session, protocol_id: UUID) -> Protocol:
    protocol = ProtocolRepository(db).get(protocol_id)
    if protocol is None:
        raise HTTPException(status_code=404, detail=f"Protocol {protocol_id} not found")
    return protocol


# ---------------------------------------------------------------------------
# Collection routes
# ---------------------------------------------------------------------------

@router.get("", summary="List protocols")
def list_protocols(
    status: str = "all",
    search: str = "",
    release: str = "all",
    month: str | None = None,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    repo = ProtocolRepository(db)
    protocols = repo.list_by_month(month) if month else repo.list_all()
    try:
        selected = filter_protocols(
            protocols,
            today,
            status_filter=status,
            search=search,
            release=release,
            due_soon_days=settings.due_soon_days,
            require_due_date=False,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return [serialize_protocol(p, today) for p in selected]


@router.get("/months", summary="Distinct storage months")
def list_months(db: Session = Depends(get_db)):
    return ProtocolRepository(db).list_months()


@router.get("/releases", summary="Release periods in display order")
def list_releases(db: Session = Depends(get_db)):
    periods = [p.release_period for p in ProtocolRepository(db).list_all() if p.release_period]
    return sort_release_periods(periods)


@router.post("/bulk-reassign", summary="Reassign all open reviews on several protocols")
def bulk_reassign(
    body: BulkReassignBody,
    db: Session = Depends(get_db),
    service: ReassignmentService = Depends(get_reassignment_service),
):
    repo = ProtocolRepository(db)
    protocols, missing = [], []
    for protocol_id in body.protocol_ids:
        protocol = repo.get(protocol_id)
        if protocol is None:
            missing.append(str(protocol_id))
        else:
            protocols.append(protocol)

    if missing:
        logger.warning("Bulk reassignment: %d protocol ids not found", len(missing))

    try:
        changed = service.bulk_reassign(protocols, body.new_reviewer_id, body.actor, reason=body.reason)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {"reassigned": changed, "not_found": missing}


# ---------------------------------------------------------------------------
# Single protocol routes
# ---------------------------------------------------------------------------

@router.get("/{protocol_id}", summary="Protocol detail")
def get_protocol(protocol_id: UUID, db: Session = Depends(get_db), today: date = Depends(get_today)):
    return serialize_protocol(_get_protocol(db, protocol_id), today)


@router.patch("/{protocol_id}", summary="Update protocol fields")
def update_protocol(
    protocol_id: UUID,
    body: UpdateProtocolBody,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    protocol = _get_protocol(db, protocol_id)
    changes = body.model_dump(exclude_unset=True, exclude={"actor"})

    if changes.get("due_date") and not is_iso_date(changes["due_date"]):
        raise HTTPException(status_code=400, detail="due_date must be YYYY-MM-DD")
    if "status" in changes and changes["status"] not in VALID_REVIEWER_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {changes['status']!r}")
    if "protocol_name" in changes and not (changes["protocol_name"] or "").strip():
        raise HTTPException(status_code=400, detail="protocol_name cannot be empty")

    ProtocolRepository(db).update(protocol, **changes)
    if changes:
        record_event(
            db,
            EVENT_PROTOCOL_UPDATED,
            body.actor,
            protocol_id=str(protocol.id),
            decision=",".join(sorted(changes)),
        )
    return serialize_protocol(protocol, today)


@router.post("/{protocol_id}/reviewers/{reviewer_id}/complete", summary="Mark a review completed")
def complete_review(
    protocol_id: UUID,
    reviewer_id: str,
    body: ReviewerActionBody,
    db: Session = Depends(get_db),
    manager: ReviewManager = Depends(get_review_manager),
    today: date = Depends(get_today),
):
    protocol = _get_protocol(db, protocol_id)
    try:
        manager.mark_completed(protocol, reviewer_id, body.reviewer_name, body.actor or reviewer_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return serialize_protocol(protocol, today)


@router.post("/{protocol_id}/reviewers/{reviewer_id}/reopen", summary="Put a review back in progress")
def reopen_review(
    protocol_id: UUID,
    reviewer_id: str,
    body: ReviewerActionBody,
    db: Session = Depends(get_db),
    manager: ReviewManager = Depends(get_review_manager),
    today: date = Depends(get_today),
):
    protocol = _get_protocol(db, protocol_id)
    try:
        manager.mark_in_progress(protocol, reviewer_id, body.reviewer_name, body.actor or reviewer_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return serialize_protocol(protocol, today)


@router.post("/{protocol_id}/reassign", summary="Reassign one reviewer")
def reassign_reviewer(
    protocol_id: UUID,
    body: ReassignBody,
    db: Session = Depends(get_db),
    service: ReassignmentService = Depends(get_reassignment_service),
    today: date = Depends(get_today),
):
    protocol = _get_protocol(db, protocol_id)
    try:
        service.reassign(
            protocol,
            body.current_reviewer_id,
            body.new_reviewer_id,
            reason=body.reason,
            actor=body.actor,
            new_due_date=body.new_due_date,
            status=body.status,
            current_reviewer_name=body.current_reviewer_name,
        )
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=exc.args[0] if exc.args else "Reviewer not found")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return serialize_protocol(protocol, today)


@router.get("/{protocol_id}/available-reviewers", summary="Reviewers who can take over")
def available_reviewers(
    protocol_id: UUID,
    db: Session = Depends(get_db),
    service: ReassignmentService = Depends(get_reassignment_service),
):
    return service.available_reviewers(_get_protocol(db, protocol_id))


@router.get("/{protocol_id}/history", summary="Reassignment history and audit trail")
def protocol_history(protocol_id: UUID, db: Session = Depends(get_db)):
    protocol = _get_protocol(db, protocol_id)
    return {
        "reassignment_history": list(protocol.reassignment_history or []),
        "events": [serialize_event(ev) for ev in get_protocol_history(db, str(protocol.id))],
    }
