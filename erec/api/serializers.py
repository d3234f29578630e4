"""JSON shapes shared by several routers."""
from __future__ import annotations

from datetime import date

from erec.db.models import AuditEvent, Notice, Protocol, SystemNotice
from erec.review.dashboard import ProtocolGroup, ReviewerStat
from erec.review.status import effective_due_date, protocol_status_label


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def serialize_protocol(protocol: Protocol, today: date) -> dict:
    due = effective_due_date(protocol, today)
    return {
        "id": str(protocol.id),
        "path": protocol.path,
        "month": protocol.month,
        "week": protocol.week,
        "rec_code": protocol.rec_code,
        "protocol_name": protocol.protocol_name,
        "research_title": protocol.research_title,
        "principal_investigator": protocol.principal_investigator,
        "adviser": protocol.adviser,
        "course_program": protocol.course_program,
        "academic_level": protocol.academic_level,
        "release_period": protocol.release_period,
        "protocol_file": protocol.protocol_file,
        "document_type": protocol.document_type,
        "reviewer": protocol.reviewer,
        "due_date": protocol.due_date,
        "effective_due_date": due,
        "status": protocol.status,
        "status_label": protocol_status_label(protocol.status, due, today),
        "reviewers": list(protocol.reviewers or []),
        "reassignment_history": list(protocol.reassignment_history or []),
        "completed_at": _iso(protocol.completed_at),
        "created_at": _iso(protocol.created_at),
    }


def serialize_group(group: ProtocolGroup) -> dict:
    return {
        "id": str(group.base.id),
        "protocol_name": group.name,
        "release_period": group.base.release_period,
        "due_date": group.due_date,
        "status": group.status,
        "reviewer_count": group.reviewer_count,
        "completed_count": group.completed_count,
        "created_at": _iso(group.created_at),
    }


def serialize_reviewer_stat(stat: ReviewerStat) -> dict:
    return {
        "reviewer_id": stat.reviewer_id,
        "name": stat.name,
        "assigned": stat.assigned,
        "completed": stat.completed,
        "overdue": stat.overdue,
    }


def serialize_notice(notice: Notice) -> dict:
    return {
        "id": str(notice.id),
        "title": notice.title,
        "content": notice.content,
        "priority": notice.priority,
        "created_at": _iso(notice.created_at),
        "expires_at": _iso(notice.expires_at),
        "likes": list(notice.likes or []),
        "like_count": len(notice.likes or []),
    }


def serialize_system_notice(notice: SystemNotice) -> dict:
    return {
        "id": str(notice.id),
        "title": notice.title,
        "subtitle": notice.subtitle,
        "message": notice.message,
        "key_points": list(notice.key_points or []),
        "action_text": notice.action_text,
        "action_href": notice.action_href,
        "notice_number": notice.notice_number,
        "created_at": _iso(notice.created_at),
        "expires_at": _iso(notice.expires_at),
    }


def serialize_event(ev: AuditEvent) -> dict:
    return {
        "event_type": ev.event_type,
        "actor": ev.actor,
        "protocol_id": ev.protocol_id,
        "reviewer_id": ev.reviewer_id,
        "decision": ev.decision,
        "rationale": ev.rationale,
        "timestamp": _iso(ev.timestamp),
    }
