"""CSV / JSON export of stored collections.

Rows are flattened before writing: lists and dicts become compact JSON,
datetimes become ISO-8601 and ``None`` becomes an empty string.  The CSV
header is the union of keys across all rows in first-seen order.

Pure logic is separated from ORM so it can be unit-tested without a database.
"""
from __future__ import annotations

import csv
import io
import json
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from sqlalchemy import inspect
from sqlalchemy.orm import Session

from erec.db.repositories import NoticeRepository, ProtocolRepository, ReviewerRepository

logger = logging.getLogger(__name__)

EXPORTABLE_COLLECTIONS: frozenset[str] = frozenset({"protocols", "reviewers", "notices"})
EXPORT_FORMATS: frozenset[str] = frozenset({"csv", "json"})


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


def _format_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, (list, dict)):
        return json.dumps(value, separators=(",", ":"), default=str)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    return value


def export_rows(records: list[dict]) -> tuple[list[dict], list[str]]:
    """Flatten *records*; returns ``(rows, header)``."""
    header: list[str] = []
    seen: set[str] = set()
    rows = []
    for record in records:
        for key in record:
            if key not in seen:
                seen.add(key)
                header.append(key)
        rows.append({key: _format_value(value) for key, value in record.items()})
    return rows, header


def build_csv_content(rows: list[dict], header: list[str]) -> str:
    """Build CSV content as a string.  Pure function, no DB or IO."""
    if not rows:
        return ""
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=header, restval="", lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buf.getvalue()


def build_json_content(rows: list[dict]) -> str:
    return json.dumps(rows, indent=2, default=str)


def export_file_name(collection: str, ext: str, today: date) -> str:
    return f"{collection}_export_{today.isoformat()}.{ext}"


def model_to_dict(entity) -> dict:
    return {attr.key: getattr(entity, attr.key) for attr in inspect(entity).mapper.column_attrs}


# ---------------------------------------------------------------------------
# ORM-integrated exporter
# ---------------------------------------------------------------------------


class CollectionExporter:
    """Fetch one collection and render it for download.

    Usage::

        exporter = CollectionExporter(db_session)
        name, content = exporter.render("protocols", "csv", today, month="April")
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def fetch(self, collection: str, month: str | None = None) -> list[dict]:
        if collection not in EXPORTABLE_COLLECTIONS:
            raise ValueError(
                f"Unknown collection {collection!r}; must be one of {sorted(EXPORTABLE_COLLECTIONS)}"
            )
        if collection == "protocols":
            repo = ProtocolRepository(self._db)
            entities = repo.list_by_month(month) if month else repo.list_all()
        elif collection == "reviewers":
            entities = ReviewerRepository(self._db).list_all()
        else:
            entities = NoticeRepository(self._db).list_all()
        return [model_to_dict(e) for e in entities]

    def render(
        self,
        collection: str,
        fmt: str,
        today: date,
        month: str | None = None,
    ) -> tuple[str, str]:
        """Return ``(file_name, content)``."""
        if fmt not in EXPORT_FORMATS:
            raise ValueError(f"Unknown export format {fmt!r}")
        rows, header = export_rows(self.fetch(collection, month))
        content = build_csv_content(rows, header) if fmt == "csv" else build_json_content(rows)
        logger.info("Exported %d %s rows as %s", len(rows), collection, fmt)
        return export_file_name(collection, fmt, today), content

    def write(
        self,
        collection: str,
        fmt: str,
        output_dir: Path,
        today: date,
        month: str | None = None,
    ) -> Path:
        file_name, content = self.render(collection, fmt, today, month)
        output_dir.mkdir(parents=True, exist_ok=True)
        file_path = output_dir / file_name
        file_path.write_text(content, encoding="utf-8")
        return file_path
