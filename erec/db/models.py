from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlalchemy import Boolean, DateTime, Integer, JSON, String, Text, UniqueConstraint, func, text as sql_text
from sqlalchemy.orm import Mapped, mapped_column

from erec.db.base import Base


class Protocol(Base):
    """One research protocol under review.

    Stored under the release path ``{month}/{week}/{rec_code}``, which is
    unique.  ``reviewers`` and ``reassignment_history`` are JSON arrays and
    are always rewritten as a whole (never mutated in place) so the ORM
    detects the change.

    Reviewer entry shape::

        {"id": "DRAPL-001", "name": "Dr. ...", "status": "In Progress",
         "document_type": "PRA", "due_date": "2025-05-10",
         "completed_at": None}
    """

    __tablename__ = "protocols"
    __table_args__ = (UniqueConstraint("month", "week", "rec_code", name="uq_protocols_path"),)

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    month: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    week: Mapped[str] = mapped_column(String(32), nullable=False)
    rec_code: Mapped[str] = mapped_column(String(256), nullable=False)
    protocol_name: Mapped[str] = mapped_column(String(1024), nullable=False)
    research_title: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    principal_investigator: Mapped[str | None] = mapped_column(String(256), nullable=True)
    adviser: Mapped[str | None] = mapped_column(String(256), nullable=True)
    course_program: Mapped[str | None] = mapped_column(String(256), nullable=True)
    academic_level: Mapped[str | None] = mapped_column(String(64), nullable=True)
    release_period: Mapped[str | None] = mapped_column(String(128), nullable=True)
    protocol_file: Mapped[str | None] = mapped_column(String(2048), nullable=True)
    document_type: Mapped[str | None] = mapped_column(String(128), nullable=True)
    reviewer: Mapped[str | None] = mapped_column(String(256), nullable=True)
    due_date: Mapped[str | None] = mapped_column(String(10), nullable=True, index=True)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default="In Progress", server_default=sql_text("'In Progress'"),
    )
    reviewers: Mapped[list | None] = mapped_column(JSON, nullable=True)
    reassignment_history: Mapped[list | None] = mapped_column(JSON, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now()
    )

    @property
    def path(self) -> str:
        return f"{self.month}/{self.week}/{self.rec_code}"


class Reviewer(Base):
    """Committee member who can be assigned protocol forms."""

    __tablename__ = "reviewers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(256), nullable=False)
    email: Mapped[str | None] = mapped_column(String(256), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Notice(Base):
    __tablename__ = "notices"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[str] = mapped_column(
        String(16), nullable=False, default="medium", server_default=sql_text("'medium'"),
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    likes: Mapped[list | None] = mapped_column(JSON, nullable=True)


class SystemNotice(Base):
    """Announcement from the REC chair shown above every reviewer page."""

    __tablename__ = "system_notices"

    id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(256), nullable=False)
    subtitle: Mapped[str | None] = mapped_column(String(256), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    key_points: Mapped[list | None] = mapped_column(JSON, nullable=True)
    action_text: Mapped[str | None] = mapped_column(String(128), nullable=True)
    action_href: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    notice_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=sql_text("1"))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class NotificationSetting(Base):
    """Singleton row holding due-date notification preferences."""

    __tablename__ = "notification_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, default=1)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=sql_text("false"))
    frequency: Mapped[str] = mapped_column(
        String(16), nullable=False, default="daily", server_default=sql_text("'daily'"),
    )
    send_to_reviewers: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sql_text("true"),
    )
    send_to_admins: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sql_text("true"),
    )
    admin_emails: Mapped[list | None] = mapped_column(JSON, nullable=True)
    overdue_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default=sql_text("1"))
    due_soon_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=3, server_default=sql_text("3"))
    last_run: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class AuditEvent(Base):
    """Append-only audit log of review activity. Rows are never updated."""

    __tablename__ = "audit_events"

    audit_event_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    actor: Mapped[str] = mapped_column(
        String(128), nullable=False, default="system", server_default=sql_text("'system'"),
    )
    protocol_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    reviewer_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    decision: Mapped[str | None] = mapped_column(String(32), nullable=True)
    rationale: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now(),
    )
    immutable: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=sql_text("true"),
    )
