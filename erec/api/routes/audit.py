"""Audit trail routes.

GET /audit/recent                   newest events first
GET /audit/protocols/{protocol_id}  one protocol's trail, oldest first
GET /audit/reviewers/{reviewer_id}  events by or about one reviewer
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from erec.api.deps import get_db
from erec.api.serializers import serialize_event
from erec.audit.audit_log import get_protocol_history, get_recent_events, get_reviewer_history

router = APIRouter(prefix="/audit", tags=["audit"])


@router.get("/recent", summary="Latest audit events")
def recent_events(limit: int = Query(10, ge=1, le=500), db: Session = Depends(get_db)):
    return [serialize_event(ev) for ev in get_recent_events(db, limit)]


@router.get("/protocols/{protocol_id}", summary="Audit trail of a protocol")
def protocol_trail(protocol_id: str, db: Session = Depends(get_db)):
    events = get_protocol_history(db, protocol_id)
    if not events:
        raise HTTPException(status_code=404, detail=f"No audit history for protocol {protocol_id}")
    return [serialize_event(ev) for ev in events]


@router.get("/reviewers/{reviewer_id}", summary="Audit events for a reviewer")
def reviewer_trail(reviewer_id: str, db: Session = Depends(get_db)):
    return [serialize_event(ev) for ev in get_reviewer_history(db, reviewer_id)]
