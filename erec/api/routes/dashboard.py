"""Admin dashboard routes.

GET /dashboard            headline counts, top overdue/upcoming/recent, reviewer load
GET /dashboard/due-dates  due-date monitor with filters
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from erec.api.deps import get_db, get_today
from erec.api.serializers import serialize_group, serialize_protocol, serialize_reviewer_stat
from erec.core.settings import Settings, get_settings
from erec.db.repositories import ProtocolRepository
from erec.review.dashboard import build_dashboard, due_date_counts, filter_protocols, sort_release_periods

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("", summary="Admin dashboard summary")
def get_dashboard(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    summary = build_dashboard(ProtocolRepository(db).list_all(), today, settings.upcoming_window_days)
    return {
        "stats": {
            "total_protocols": summary.total_protocols,
            "total_reviews": summary.total_reviews,
            "completed": summary.completed_count,
            "in_progress": summary.in_progress_count,
            "overdue": summary.overdue_count,
            "due_soon": summary.due_soon_count,
        },
        "overdue": [serialize_group(g) for g in summary.overdue],
        "upcoming": [serialize_group(g) for g in summary.upcoming],
        "recent": [serialize_group(g) for g in summary.recent],
        "reviewer_stats": [serialize_reviewer_stat(s) for s in summary.reviewer_stats],
    }


@router.get("/due-dates", summary="Due-date monitor")
def get_due_dates(
    status: str = "all",
    search: str = "",
    release: str = "all",
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    protocols = ProtocolRepository(db).list_all()
    try:
        selected = filter_protocols(
            protocols, today, status_filter=status, search=search, release=release,
            due_soon_days=settings.due_soon_days,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return {
        "counts": due_date_counts(protocols, today, settings.due_soon_days),
        "releases": sort_release_periods(p.release_period for p in protocols if p.release_period),
        "protocols": [serialize_protocol(p, today) for p in selected],
    }
