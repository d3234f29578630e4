"""Event type constants for the append-only audit trail."""
from __future__ import annotations

EVENT_REASSIGNMENT = "reassignment"
EVENT_BULK_REASSIGNMENT = "bulk_reassignment"
EVENT_REVIEW_COMPLETED = "review_completed"
EVENT_REVIEW_REOPENED = "review_reopened"
EVENT_PROTOCOL_IMPORTED = "protocol_imported"
EVENT_PROTOCOL_UPDATED = "protocol_updated"
EVENT_NOTICE_PUBLISHED = "notice_published"
EVENT_NOTIFICATION_SENT = "notification_sent"

VALID_EVENT_TYPES: frozenset[str] = frozenset({
    EVENT_REASSIGNMENT,
    EVENT_BULK_REASSIGNMENT,
    EVENT_REVIEW_COMPLETED,
    EVENT_REVIEW_REOPENED,
    EVENT_PROTOCOL_IMPORTED,
    EVENT_PROTOCOL_UPDATED,
    EVENT_NOTICE_PUBLISHED,
    EVENT_NOTIFICATION_SENT,
})

#: Event types that must carry a rationale.
RATIONALE_REQUIRED: frozenset[str] = frozenset({
    EVENT_REASSIGNMENT,
    EVENT_BULK_REASSIGNMENT,
})
