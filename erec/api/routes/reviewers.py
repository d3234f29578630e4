"""Reviewer routes.

GET  /reviewers                     roster merged with reviewers seen on protocols
POST /reviewers/import              load the YAML roster into the reviewers table
GET  /reviewers/lookup?q=           resolve a sign-in id or name
GET  /reviewers/{id}/dashboard      one reviewer's assignments
POST /reviewers/{id}/complete-all   complete every open assignment
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from erec.api.deps import get_db, get_review_manager, get_today
from erec.api.serializers import serialize_protocol
from erec.core.settings import Settings, get_settings
from erec.db.repositories import ProtocolRepository
from erec.review.completion import ReviewManager
from erec.review.dashboard import reviewer_dashboard
from erec.reviewers.lookup import known_reviewers, lookup_reviewer, roster_map
from erec.reviewers.roster import import_roster, load_roster

router = APIRouter(prefix="/reviewers", tags=["reviewers"])


class CompleteAllBody(BaseModel):
    reviewer_name: str | None = None
    release_period: str | None = None


def _resolve_name(db: Session, reviewer_id: str, name: str | None) -> str:
    if name:
        return name
    return roster_map(db).get(reviewer_id, reviewer_id)


@router.get("", summary="Known reviewers")
def list_reviewers(db: Session = Depends(get_db)):
    merged = known_reviewers(ProtocolRepository(db).list_all(), roster_map(db))
    return [{"id": reviewer_id, "name": name} for reviewer_id, name in sorted(merged.items())]


@router.post("/import", summary="Load the reviewer roster file")
def import_reviewers(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)):
    try:
        entries = load_roster(settings.reviewer_roster_path)
    except FileNotFoundError:
        raise HTTPException(status_code=404, detail="Roster file not found")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return import_roster(db, entries)


@router.get("/lookup", summary="Resolve a reviewer id or name")
def lookup(q: str = "", db: Session = Depends(get_db)):
    try:
        match = lookup_reviewer(db, q)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    if match is None:
        raise HTTPException(status_code=404, detail="Reviewer ID or name not found")
    reviewer_id, name = match
    return {"id": reviewer_id, "name": name}


@router.get("/{reviewer_id}/dashboard", summary="Assignments for one reviewer")
def get_reviewer_dashboard(
    reviewer_id: str,
    name: str | None = None,
    release: str = "all",
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    reviewer_name = _resolve_name(db, reviewer_id, name)
    protocols = ProtocolRepository(db).list_all()
    if release != "all":
        protocols = [p for p in protocols if p.release_period == release]
    view = reviewer_dashboard(protocols, reviewer_id, reviewer_name, today, settings.due_soon_days)

    def _row(row: dict) -> dict:
        return {
            **serialize_protocol(row["protocol"], today),
            "reviewer_status": row["reviewer_status"],
            "reviewer_due_date": row["due_date"],
            "reviewer_label": row["label"],
            "form_type": row["form"].form_type,
            "form_name": row["form"].form_name,
            "form_url": row["form"].form_url,
        }

    return {
        "reviewer": {"id": reviewer_id, "name": reviewer_name},
        "counts": view["counts"],
        "releases": {period: [_row(r) for r in rows] for period, rows in view["releases"].items()},
    }


@router.post("/{reviewer_id}/complete-all", summary="Complete all open assignments")
def complete_all(
    reviewer_id: str,
    body: CompleteAllBody,
    db: Session = Depends(get_db),
    manager: ReviewManager = Depends(get_review_manager),
):
    reviewer_name = _resolve_name(db, reviewer_id, body.reviewer_name)
    protocols = ProtocolRepository(db).list_all()
    if body.release_period:
        protocols = [p for p in protocols if p.release_period == body.release_period]
    updated = manager.mark_all_completed(protocols, reviewer_id, reviewer_name, actor=reviewer_id)
    return {"updated": updated}
