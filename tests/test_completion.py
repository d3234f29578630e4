"""Tests for erec/review/completion.py."""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from erec.audit.audit_log import get_protocol_history
from erec.review.completion import ReviewManager, reviewer_status

NOW = datetime(2025, 5, 1, 8, 0, tzinfo=timezone.utc)


def _entry(reviewer_id, name, status="In Progress"):
    return {"id": reviewer_id, "name": name, "status": status, "document_type": "PRA", "due_date": "2025-05-10"}


@pytest.fixture()
def two_reviewers(make_protocol):
    return make_protocol(reviewers=[_entry("DRAPL-001", "Dr. Allan"), _entry("DRNRD-002", "Dr. Nora")])


class TestMarkCompleted:
    def test_partial_completion_keeps_protocol_open(self, db_session, two_reviewers):
        ReviewManager(db_session).mark_completed(two_reviewers, "DRAPL-001", "Dr. Allan", "DRAPL-001", now=NOW)

        assert two_reviewers.reviewers[0]["status"] == "Completed"
        assert two_reviewers.reviewers[0]["completed_at"] == NOW.isoformat()
        assert two_reviewers.reviewers[1]["status"] == "In Progress"
        assert two_reviewers.status == "In Progress"
        assert two_reviewers.completed_at is None

    def test_last_reviewer_completes_protocol(self, db_session, two_reviewers):
        manager = ReviewManager(db_session)
        manager.mark_completed(two_reviewers, "DRAPL-001", "Dr. Allan", "DRAPL-001", now=NOW)
        manager.mark_completed(two_reviewers, "DRNRD-002", "Dr. Nora", "DRNRD-002", now=NOW)

        assert two_reviewers.status == "Completed"
        assert two_reviewers.completed_at == NOW

    def test_records_audit_event(self, db_session, two_reviewers):
        ReviewManager(db_session).mark_completed(two_reviewers, "DRAPL-001", "Dr. Allan", "DRAPL-001", now=NOW)

        events = get_protocol_history(db_session, str(two_reviewers.id))
        assert [(e.event_type, e.reviewer_id, e.decision) for e in events] == [
            ("review_completed", "DRAPL-001", "In Progress"),
        ]

    def test_matches_reviewer_by_name(self, db_session, two_reviewers):
        ReviewManager(db_session).mark_completed(two_reviewers, "OTHER-ID", "Nora", "admin", now=NOW)
        assert two_reviewers.reviewers[1]["status"] == "Completed"
        assert len(two_reviewers.reviewers) == 2

    def test_unknown_reviewer_is_added(self, db_session, two_reviewers):
        ReviewManager(db_session).mark_completed(two_reviewers, "DRCUG-003", "Dr. Cora", "admin", now=NOW)
        assert len(two_reviewers.reviewers) == 3
        assert two_reviewers.reviewers[2]["id"] == "DRCUG-003"
        assert two_reviewers.status == "In Progress"

    def test_legacy_single_reviewer(self, db_session, make_protocol):
        protocol = make_protocol(reviewers=[], reviewer="DRAPL-001")
        ReviewManager(db_session).mark_completed(protocol, "DRAPL-001", "Dr. Allan", "DRAPL-001", now=NOW)

        assert protocol.reviewers == [{
            "id": "DRAPL-001",
            "name": "Dr. Allan",
            "status": "Completed",
            "document_type": "Form 06B1 PRA",
            "due_date": "2025-05-10",
            "completed_at": NOW.isoformat(),
        }]
        assert protocol.status == "Completed"

    def test_protocol_without_reviewers_gets_single_entry(self, db_session, make_protocol):
        protocol = make_protocol(reviewers=[], reviewer=None)
        ReviewManager(db_session).mark_completed(protocol, "DRAPL-001", "Dr. Allan", "admin", now=NOW)

        assert [(r["id"], r["status"]) for r in protocol.reviewers] == [("DRAPL-001", "Completed")]
        assert protocol.status == "Completed"
        assert protocol.completed_at == NOW

    def test_reviewer_identity_required(self, db_session, two_reviewers):
        with pytest.raises(ValueError):
            ReviewManager(db_session).mark_completed(two_reviewers, "", "Dr. Allan", "admin")


class TestMarkInProgress:
    def test_reopens_protocol(self, db_session, two_reviewers):
        manager = ReviewManager(db_session)
        manager.mark_completed(two_reviewers, "DRAPL-001", "Dr. Allan", "DRAPL-001", now=NOW)
        manager.mark_completed(two_reviewers, "DRNRD-002", "Dr. Nora", "DRNRD-002", now=NOW)

        manager.mark_in_progress(two_reviewers, "DRNRD-002", "Dr. Nora", "DRNRD-002")

        assert two_reviewers.status == "In Progress"
        assert two_reviewers.completed_at is None
        assert two_reviewers.reviewers[1]["status"] == "In Progress"
        assert two_reviewers.reviewers[1]["completed_at"] is None
        assert two_reviewers.reviewers[0]["status"] == "Completed"

        events = get_protocol_history(db_session, str(two_reviewers.id))
        assert [e.event_type for e in events].count("review_reopened") == 1


class TestMarkAllCompleted:
    def test_completes_only_open_assignments(self, db_session, make_protocol):
        open_one = make_protocol(rec_code="A", name="Study A", reviewers=[_entry("DRAPL-001", "Dr. Allan")])
        done = make_protocol(
            rec_code="B", name="Study B", reviewers=[_entry("DRAPL-001", "Dr. Allan", status="Completed")],
        )
        legacy = make_protocol(rec_code="C", name="Study C", reviewers=[], reviewer="DRAPL-001")
        other = make_protocol(rec_code="D", name="Study D", reviewers=[_entry("DRNRD-002", "Dr. Nora")])

        updated = ReviewManager(db_session).mark_all_completed(
            [open_one, done, legacy, other], "DRAPL-001", "Dr. Allan", "DRAPL-001", now=NOW,
        )

        assert updated == 2
        assert open_one.status == "Completed"
        assert legacy.status == "Completed"
        assert other.status == "In Progress"


def test_reviewer_status_falls_back_to_protocol(make_protocol):
    protocol = make_protocol(reviewers=[_entry("DRAPL-001", "Dr. Allan", status="Completed")])
    assert reviewer_status(protocol, "DRAPL-001", "Dr. Allan") == "Completed"
    assert reviewer_status(protocol, "DRNRD-002", "Dr. Nora") == "In Progress"
