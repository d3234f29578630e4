"""Scheduled notification run.

Reads the stored settings, builds the digests for today and hands them to a
``DigestSender``.  Reviewers get a digest covering only their own
assignments; admins get the full digests plus the daily summary.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from sqlalchemy.orm import Session

from erec.audit.audit_log import record_event
from erec.audit.events import EVENT_NOTIFICATION_SENT
from erec.db.repositories import ProtocolRepository, ReviewerRepository
from erec.notification.digest import (
    DueProtocols,
    check_due_protocols,
    group_by_reviewer,
    render_admin_summary,
    render_due_soon_digest,
    render_overdue_digest,
)
from erec.notification.email_sender import DeliveryReceipt, DigestSender
from erec.notification.settings import get_notification_settings
from erec.review.dashboard import build_dashboard

logger = logging.getLogger(__name__)

OVERDUE_SUBJECT = "e-REC: Overdue protocol reviews"
DUE_SOON_SUBJECT = "e-REC: Upcoming protocol review deadlines"
SUMMARY_SUBJECT = "e-REC: Daily protocol review summary"


@dataclass
class NotificationPreview:
    overdue: list
    due_soon: list
    overdue_html: str
    due_soon_html: str
    summary_html: str


@dataclass
class NotificationRunResult:
    ran: bool
    overdue_count: int = 0
    due_soon_count: int = 0
    receipts: list[DeliveryReceipt] = field(default_factory=list)

    @property
    def sent(self) -> int:
        return sum(1 for r in self.receipts if r.status == "SENT")

    @property
    def failed(self) -> int:
        return sum(1 for r in self.receipts if r.status == "FAILED")


def build_preview(db: Session, today: date, portal_url: str) -> NotificationPreview:
    row = get_notification_settings(db)
    protocols = ProtocolRepository(db).list_all()
    due = check_due_protocols(protocols, today, row.due_soon_threshold, row.overdue_threshold)
    return NotificationPreview(
        overdue=due.overdue,
        due_soon=due.due_soon,
        overdue_html=render_overdue_digest(due.overdue, portal_url),
        due_soon_html=render_due_soon_digest(due.due_soon, portal_url, row.due_soon_threshold),
        summary_html=render_admin_summary(build_dashboard(protocols, today), portal_url),
    )


def _reviewer_receipts(
    db: Session,
    due: DueProtocols,
    sender: DigestSender,
    portal_url: str,
    days: int,
) -> list[DeliveryReceipt]:
    emails = {r.id: r.email for r in ReviewerRepository(db).list_all()}
    overdue_by_reviewer = group_by_reviewer(due.overdue)
    due_soon_by_reviewer = group_by_reviewer(due.due_soon)

    receipts = []
    for key in dict.fromkeys([*overdue_by_reviewer, *due_soon_by_reviewer]):
        email = emails.get(key)
        # only this reviewer's own assignments, not co-reviewers on the same protocol
        overdue = overdue_by_reviewer.get(key, [])
        due_soon = due_soon_by_reviewer.get(key, [])
        if overdue:
            body = render_overdue_digest(
                [a.protocol for a in overdue], portal_url, groups={key: overdue}
            )
            receipts.append(sender.send(key, email, OVERDUE_SUBJECT, body))
        if due_soon:
            body = render_due_soon_digest(
                [a.protocol for a in due_soon], portal_url, days, groups={key: due_soon}
            )
            receipts.append(sender.send(key, email, DUE_SOON_SUBJECT, body))
    return receipts


def run_notifications(
    db: Session,
    sender: DigestSender,
    today: date,
    portal_url: str,
    actor: str = "scheduler",
    force: bool = False,
) -> NotificationRunResult:
    """Send today's digests according to the stored settings.

    Disabled settings short-circuit unless *force* is set.  Flushes; the
    caller commits.
    """
    row = get_notification_settings(db)
    if not row.enabled and not force:
        logger.info("Notifications disabled, nothing sent")
        return NotificationRunResult(ran=False)

    protocols = ProtocolRepository(db).list_all()
    due = check_due_protocols(protocols, today, row.due_soon_threshold, row.overdue_threshold)
    result = NotificationRunResult(
        ran=True,
        overdue_count=len(due.overdue),
        due_soon_count=len(due.due_soon),
    )

    if row.send_to_reviewers:
        result.receipts.extend(_reviewer_receipts(db, due, sender, portal_url, row.due_soon_threshold))

    if row.send_to_admins and row.admin_emails:
        overdue_html = render_overdue_digest(due.overdue, portal_url)
        due_soon_html = render_due_soon_digest(due.due_soon, portal_url, row.due_soon_threshold)
        summary_html = render_admin_summary(build_dashboard(protocols, today), portal_url)
        for email in row.admin_emails:
            if overdue_html:
                result.receipts.append(sender.send("admin", email, OVERDUE_SUBJECT, overdue_html))
            if due_soon_html:
                result.receipts.append(sender.send("admin", email, DUE_SOON_SUBJECT, due_soon_html))
            result.receipts.append(sender.send("admin", email, SUMMARY_SUBJECT, summary_html))

    if result.failed:
        logger.warning("%d notification deliveries failed", result.failed)

    row.last_run = datetime.now(timezone.utc)
    db.flush()
    record_event(
        db,
        EVENT_NOTIFICATION_SENT,
        actor,
        decision=f"sent={result.sent} failed={result.failed}",
        rationale=f"overdue={result.overdue_count} due_soon={result.due_soon_count}",
    )
    return result
