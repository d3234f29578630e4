"""GET /health: liveness plus a database round trip."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from erec.api.deps import get_db
from erec.core.settings import Settings, get_settings
from erec.db.models import Protocol, Reviewer

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health", summary="Service and database status")
def health_check(db: Session = Depends(get_db), settings: Settings = Depends(get_settings)) -> dict:
    body = {
        "status": "ok",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.app_env,
    }
    try:
        body["protocols"] = db.scalar(select(func.count()).select_from(Protocol))
        body["reviewers"] = db.scalar(select(func.count()).select_from(Reviewer))
        body["database"] = "ok"
    except SQLAlchemyError:
        logger.exception("Health check could not reach the database")
        body["status"] = "degraded"
        body["database"] = "unavailable"
    return body
