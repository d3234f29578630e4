"""Notice board routes.

GET    /notices                 all notices, newest first
POST   /notices                 publish
GET    /notices/active          unexpired, by priority
GET    /notices/recent-count    unexpired notices from the last week
GET    /notices/stats           engagement summary
PATCH  /notices/{id}            edit (likes and created_at kept)
DELETE /notices/{id}            remove
POST   /notices/{id}/like       toggle a reviewer's like
GET    /system-notices          unexpired chair announcements
POST   /system-notices          publish an announcement
"""
from __future__ import annotations

from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from erec.api.deps import get_notice_service
from erec.api.serializers import serialize_notice, serialize_system_notice
from erec.core.settings import Settings, get_settings
from erec.notices.service import (
    NoticeService,
    active_notices,
    active_system_notices,
    notice_stats,
    recent_notice_count,
)

router = APIRouter(tags=["notices"])


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class NoticeBody(BaseModel):
    title: str
    content: str
    priority: str = "medium"
    expires_at: datetime | None = None
    actor: str = "admin"


class LikeBody(BaseModel):
    reviewer_id: str


class SystemNoticeBody(BaseModel):
    title: str
    message: str
    expires_at: datetime
    subtitle: str | None = None
    key_points: list[str] = []
    action_text: str | None = None
    action_href: str | None = None
    notice_number: int = 1


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Notices
# ---------------------------------------------------------------------------

@router.get("/notices", summary="List all notices")
def list_notices(service: NoticeService = Depends(get_notice_service)):
    return [serialize_notice(n) for n in service.list_notices()]


@router.post("/notices", summary="Publish a notice")
def create_notice(body: NoticeBody, service: NoticeService = Depends(get_notice_service)):
    try:
        notice = service.create(body.title, body.content, body.priority, body.expires_at, actor=body.actor)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return serialize_notice(notice)


@router.get("/notices/active", summary="Unexpired notices by priority")
def list_active(service: NoticeService = Depends(get_notice_service)):
    return [serialize_notice(n) for n in active_notices(service.list_notices(), _now())]


@router.get("/notices/recent-count", summary="Count of new notices this week")
def recent_count(
    service: NoticeService = Depends(get_notice_service),
    settings: Settings = Depends(get_settings),
):
    return {"count": recent_notice_count(service.list_notices(), _now(), settings.notice_recent_days)}


@router.get("/notices/stats", summary="Notice engagement summary")
def get_stats(service: NoticeService = Depends(get_notice_service)):
    stats = notice_stats(service.list_notices(), _now())
    return {
        "total": stats.total,
        "active": stats.active,
        "total_likes": stats.total_likes,
        "high_priority": stats.high_priority,
        "most_liked": serialize_notice(stats.most_liked) if stats.most_liked else None,
        "average_likes": stats.average_likes,
    }


@router.patch("/notices/{notice_id}", summary="Edit a notice")
def update_notice(notice_id: UUID, body: NoticeBody, service: NoticeService = Depends(get_notice_service)):
    try:
        notice = service.update(notice_id, body.title, body.content, body.priority, body.expires_at)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Notice {notice_id} not found")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return serialize_notice(notice)


@router.delete("/notices/{notice_id}", summary="Delete a notice")
def delete_notice(notice_id: UUID, service: NoticeService = Depends(get_notice_service)):
    try:
        service.delete(notice_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Notice {notice_id} not found")
    return {"deleted": str(notice_id)}


@router.post("/notices/{notice_id}/like", summary="Toggle a like")
def like_notice(notice_id: UUID, body: LikeBody, service: NoticeService = Depends(get_notice_service)):
    try:
        notice = service.like(notice_id, body.reviewer_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Notice {notice_id} not found")
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return serialize_notice(notice)


# ---------------------------------------------------------------------------
# System notices
# ---------------------------------------------------------------------------

@router.get("/system-notices", summary="Unexpired chair announcements")
def list_system_notices(service: NoticeService = Depends(get_notice_service)):
    return [serialize_system_notice(n) for n in active_system_notices(service.list_system_notices(), _now())]


@router.post("/system-notices", summary="Publish a chair announcement")
def create_system_notice(body: SystemNoticeBody, service: NoticeService = Depends(get_notice_service)):
    try:
        notice = service.create_system_notice(
            body.title,
            body.message,
            body.expires_at,
            subtitle=body.subtitle,
            key_points=body.key_points,
            action_text=body.action_text,
            action_href=body.action_href,
            notice_number=body.notice_number,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return serialize_system_notice(notice)
