"""Initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "protocols",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("month", sa.String(length=64), nullable=False),
        sa.Column("week", sa.String(length=32), nullable=False),
        sa.Column("rec_code", sa.String(length=256), nullable=False),
        sa.Column("protocol_name", sa.String(length=1024), nullable=False),
        sa.Column("research_title", sa.String(length=1024), nullable=True),
        sa.Column("principal_investigator", sa.String(length=256), nullable=True),
        sa.Column("adviser", sa.String(length=256), nullable=True),
        sa.Column("course_program", sa.String(length=256), nullable=True),
        sa.Column("academic_level", sa.String(length=64), nullable=True),
        sa.Column("release_period", sa.String(length=128), nullable=True),
        sa.Column("protocol_file", sa.String(length=2048), nullable=True),
        sa.Column("document_type", sa.String(length=128), nullable=True),
        sa.Column("reviewer", sa.String(length=256), nullable=True),
        sa.Column("due_date", sa.String(length=10), nullable=True),
        sa.Column("status", sa.String(length=32), server_default=sa.text("'In Progress'"), nullable=False),
        sa.Column("reviewers", sa.JSON(), nullable=True),
        sa.Column("reassignment_history", sa.JSON(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("month", "week", "rec_code", name="uq_protocols_path"),
    )
    op.create_index("ix_protocols_month", "protocols", ["month"])
    op.create_index("ix_protocols_due_date", "protocols", ["due_date"])

    op.create_table(
        "reviewers",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=256), nullable=False),
        sa.Column("email", sa.String(length=256), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "notices",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("priority", sa.String(length=16), server_default=sa.text("'medium'"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("likes", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "system_notices",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("title", sa.String(length=256), nullable=False),
        sa.Column("subtitle", sa.String(length=256), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("key_points", sa.JSON(), nullable=True),
        sa.Column("action_text", sa.String(length=128), nullable=True),
        sa.Column("action_href", sa.String(length=1024), nullable=True),
        sa.Column("notice_number", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "notification_settings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("enabled", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("frequency", sa.String(length=16), server_default=sa.text("'daily'"), nullable=False),
        sa.Column("send_to_reviewers", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("send_to_admins", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("admin_emails", sa.JSON(), nullable=True),
        sa.Column("overdue_threshold", sa.Integer(), server_default=sa.text("1"), nullable=False),
        sa.Column("due_soon_threshold", sa.Integer(), server_default=sa.text("3"), nullable=False),
        sa.Column("last_run", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "audit_events",
        sa.Column("audit_event_id", sa.Uuid(), nullable=False),
        sa.Column("event_type", sa.String(length=64), nullable=False),
        sa.Column("actor", sa.String(length=128), server_default=sa.text("'system'"), nullable=False),
        sa.Column("protocol_id", sa.String(length=64), nullable=True),
        sa.Column("reviewer_id", sa.String(length=64), nullable=True),
        sa.Column("decision", sa.String(length=32), nullable=True),
        sa.Column("rationale", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("immutable", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.PrimaryKeyConstraint("audit_event_id"),
    )
    op.create_index("ix_audit_events_protocol_id", "audit_events", ["protocol_id"])


def downgrade() -> None:
    op.drop_index("ix_audit_events_protocol_id", table_name="audit_events")
    op.drop_index("ix_protocols_due_date", table_name="protocols")
    op.drop_index("ix_protocols_month", table_name="protocols")

    op.drop_table("audit_events")
    op.drop_table("notification_settings")
    op.drop_table("system_notices")
    op.drop_table("notices")
    op.drop_table("reviewers")
    op.drop_table("protocols")
