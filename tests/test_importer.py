"""Tests for erec/ingestion/importer.py."""
from __future__ import annotations

import pytest

from erec.audit.audit_log import get_events_by_type
from erec.audit.events import EVENT_PROTOCOL_IMPORTED
from erec.db.repositories import ProtocolRepository
from erec.ingestion.importer import ProtocolImporter
from erec.ingestion.mapping import ProtocolDraft


def _draft(name: str, code: str, reviewer: str = "DRAPL-001", due: str = "2025-05-10") -> ProtocolDraft:
    return ProtocolDraft(
        protocol_name=name,
        rec_code=code,
        release_period="April 1st Week",
        reviewer=reviewer,
        document_type="Form 06B1 PRA",
        due_date=due,
        reviewers=[{
            "id": reviewer,
            "name": reviewer,
            "status": "In Progress",
            "document_type": "Form 06B1 PRA",
            "due_date": due,
        }],
    )


class TestProtocolImporter:
    def test_creates_protocols_under_path(self, db_session):
        result = ProtocolImporter(db_session).run(
            [_draft("Study A", "SPUP_0101"), _draft("Study B", "SPUP_0102")], "April", "week-1",
        )

        assert (result.created, result.updated, result.skipped) == (2, 0, 0)
        assert result.paths == ["April/week-1/SPUP_0101", "April/week-1/SPUP_0102"]

        stored = ProtocolRepository(db_session).get_by_path("April", "week-1", "SPUP_0101")
        assert stored.protocol_name == "Study A"
        assert stored.status == "In Progress"
        assert stored.reviewers[0]["id"] == "DRAPL-001"
        assert stored.reassignment_history == []

    def test_records_import_event(self, db_session):
        ProtocolImporter(db_session).run([_draft("Study A", "SPUP_0101")], "April", "week-1", actor="admin-1")
        events = get_events_by_type(db_session, EVENT_PROTOCOL_IMPORTED)
        assert len(events) == 1
        assert events[0].actor == "admin-1"
        assert events[0].decision == "April/week-1"
        assert events[0].rationale == "created=1 updated=0 skipped=0"

    def test_existing_path_skipped_without_overwrite(self, db_session):
        importer = ProtocolImporter(db_session)
        importer.run([_draft("Study A", "SPUP_0101")], "April", "week-1")

        result = importer.run([_draft("Study A renamed", "SPUP_0101")], "April", "week-1")

        assert result.skipped == 1
        assert result.warnings == ["Protocol already exists at April/week-1/SPUP_0101"]
        stored = ProtocolRepository(db_session).get_by_path("April", "week-1", "SPUP_0101")
        assert stored.protocol_name == "Study A"

    def test_overwrite_replaces_fields_and_keeps_history(self, db_session):
        importer = ProtocolImporter(db_session)
        importer.run([_draft("Study A", "SPUP_0101")], "April", "week-1")
        stored = ProtocolRepository(db_session).get_by_path("April", "week-1", "SPUP_0101")
        stored.reassignment_history = [{"from": "DRAPL-001", "to": "DRNRD-002", "reason": "leave"}]
        stored.status = "Completed"
        db_session.flush()

        result = importer.run(
            [_draft("Study A v2", "SPUP_0101", reviewer="DRCUG-003", due="2025-06-01")],
            "April", "week-1", overwrite=True,
        )

        assert result.updated == 1
        assert stored.protocol_name == "Study A v2"
        assert stored.due_date == "2025-06-01"
        assert stored.status == "In Progress"
        assert [r["id"] for r in stored.reviewers] == ["DRCUG-003"]
        assert stored.reassignment_history == [{"from": "DRAPL-001", "to": "DRNRD-002", "reason": "leave"}]

    def test_same_code_in_other_week_is_separate(self, db_session):
        importer = ProtocolImporter(db_session)
        importer.run([_draft("Study A", "SPUP_0101")], "April", "week-1")
        result = importer.run([_draft("Study A", "SPUP_0101")], "April", "week-2")
        assert result.created == 1
        assert len(ProtocolRepository(db_session).list_all()) == 2

    def test_duplicate_code_within_upload(self, db_session):
        result = ProtocolImporter(db_session).run(
            [_draft("Study A", "SPUP_0101"), _draft("Study A copy", "SPUP_0101")], "April", "week-1",
        )
        assert (result.created, result.skipped) == (1, 1)
        assert result.warnings == ["Duplicate REC code in upload: SPUP_0101"]

    def test_small_batches(self, db_session):
        drafts = [_draft(f"Study {i}", f"SPUP_{i:04d}") for i in range(5)]
        result = ProtocolImporter(db_session, batch_size=2).run(drafts, "May", "week-3")
        assert result.created == 5
        assert ProtocolRepository(db_session).list_months() == ["May"]

    def test_month_and_week_required(self, db_session):
        with pytest.raises(ValueError, match="month and week"):
            ProtocolImporter(db_session).run([_draft("Study A", "SPUP_0101")], "", "week-1")

    def test_invalid_batch_size(self, db_session):
        with pytest.raises(ValueError):
            ProtocolImporter(db_session, batch_size=0)
