"""Write protocol drafts into the ``protocols`` table.

Each draft lands at ``(month, week, rec_code)``.  Existing paths are left
alone unless ``overwrite`` is set; an overwrite replaces the identifying
fields and the reviewer array but keeps ``reassignment_history``.

Flushes once per batch and never commits.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from erec.audit.audit_log import record_event
from erec.audit.events import EVENT_PROTOCOL_IMPORTED
from erec.db.models import Protocol
from erec.db.repositories import ProtocolRepository
from erec.ingestion.mapping import ProtocolDraft

logger = logging.getLogger(__name__)

_OVERWRITE_FIELDS = (
    "protocol_name",
    "research_title",
    "principal_investigator",
    "adviser",
    "course_program",
    "academic_level",
    "release_period",
    "protocol_file",
    "document_type",
    "reviewer",
    "due_date",
    "status",
)


@dataclass
class ImportResult:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    warnings: list[str] = field(default_factory=list)
    paths: list[str] = field(default_factory=list)


class ProtocolImporter:
    def __init__(self, db: Session, batch_size: int = 50) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._db = db
        self._repo = ProtocolRepository(db)
        self._batch_size = batch_size

    def run(
        self,
        drafts: list[ProtocolDraft],
        month: str,
        week: str,
        overwrite: bool = False,
        actor: str = "system",
    ) -> ImportResult:
        if not month or not week:
            raise ValueError("month and week are required to store protocols")

        result = ImportResult()
        seen: set[str] = set()

        for start in range(0, len(drafts), self._batch_size):
            batch = drafts[start:start + self._batch_size]
            for draft in batch:
                if draft.rec_code in seen:
                    result.skipped += 1
                    result.warnings.append(f"Duplicate REC code in upload: {draft.rec_code}")
                    continue
                seen.add(draft.rec_code)
                self._write(draft, month, week, overwrite, result)
            self._db.flush()
            logger.debug("Flushed import batch %d-%d", start, start + len(batch))

        record_event(
            self._db,
            EVENT_PROTOCOL_IMPORTED,
            actor,
            decision=f"{month}/{week}",
            rationale=f"created={result.created} updated={result.updated} skipped={result.skipped}",
        )
        logger.info(
            "Import into %s/%s finished: created=%d updated=%d skipped=%d",
            month, week, result.created, result.updated, result.skipped,
        )
        return result

    def _write(
        self,
        draft: ProtocolDraft,
        month: str,
        week: str,
        overwrite: bool,
        result: ImportResult,
    ) -> None:
        existing = self._repo.get_by_path(month, week, draft.rec_code)
        values = {name: getattr(draft, name) for name in _OVERWRITE_FIELDS}
        reviewers = [dict(entry) for entry in draft.reviewers]

        if existing is None:
            protocol = Protocol(
                month=month,
                week=week,
                rec_code=draft.rec_code,
                reviewers=reviewers,
                reassignment_history=[],
                **values,
            )
            self._db.add(protocol)
            result.created += 1
            result.paths.append(protocol.path)
            return

        if not overwrite:
            result.skipped += 1
            result.warnings.append(f"Protocol already exists at {existing.path}")
            return

        for name, value in values.items():
            setattr(existing, name, value)
        existing.reviewers = reviewers
        existing.completed_at = None
        result.updated += 1
        result.paths.append(existing.path)
