"""Due-date notification routes.

GET /notifications/settings   stored preferences (defaults on first read)
PUT /notifications/settings   update preferences
GET /notifications/preview    digests as they would be sent today
POST /notifications/run       send today's digests
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from erec.api.deps import get_db, get_digest_sender, get_today
from erec.core.settings import Settings, get_settings
from erec.db.models import NotificationSetting
from erec.notification.email_sender import DigestSender
from erec.notification.runner import build_preview, run_notifications
from erec.notification.settings import get_notification_settings, update_notification_settings

router = APIRouter(prefix="/notifications", tags=["notifications"])


class SettingsBody(BaseModel):
    enabled: bool | None = None
    frequency: str | None = None
    send_to_reviewers: bool | None = None
    send_to_admins: bool | None = None
    admin_emails: list[str] | None = None
    overdue_threshold: int | None = None
    due_soon_threshold: int | None = None


class RunBody(BaseModel):
    force: bool = False
    actor: str = "admin"


def _serialize_settings(row: NotificationSetting) -> dict:
    return {
        "enabled": row.enabled,
        "frequency": row.frequency,
        "send_to_reviewers": row.send_to_reviewers,
        "send_to_admins": row.send_to_admins,
        "admin_emails": list(row.admin_emails or []),
        "overdue_threshold": row.overdue_threshold,
        "due_soon_threshold": row.due_soon_threshold,
        "last_run": row.last_run.isoformat() if row.last_run else None,
    }


@router.get("/settings", summary="Notification settings")
def read_settings(db: Session = Depends(get_db)):
    return _serialize_settings(get_notification_settings(db))


@router.put("/settings", summary="Update notification settings")
def write_settings(body: SettingsBody, db: Session = Depends(get_db)):
    changes = body.model_dump(exclude_none=True)
    try:
        row = update_notification_settings(db, **changes)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return _serialize_settings(row)


@router.get("/preview", summary="Preview today's digests")
def preview(
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    result = build_preview(db, today, settings.portal_url)
    return {
        "overdue_count": len(result.overdue),
        "due_soon_count": len(result.due_soon),
        "overdue_html": result.overdue_html,
        "due_soon_html": result.due_soon_html,
        "summary_html": result.summary_html,
    }


@router.post("/run", summary="Send today's digests")
def run(
    body: RunBody,
    db: Session = Depends(get_db),
    sender: DigestSender = Depends(get_digest_sender),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    result = run_notifications(db, sender, today, settings.portal_url, actor=body.actor, force=body.force)
    return {
        "ran": result.ran,
        "overdue_count": result.overdue_count,
        "due_soon_count": result.due_soon_count,
        "sent": result.sent,
        "failed": result.failed,
        "deliveries": [
            {"recipient": r.recipient, "subject": r.subject, "status": r.status, "attempts": r.attempt_count}
            for r in result.receipts
        ],
    }
