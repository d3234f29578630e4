"""Protocol upload routes.

POST /imports/preview  parse an upload and return the drafts without writing
POST /imports          parse an upload and write it under protocols/{month}/{week}

Both accept a multipart ``file`` (CSV or XLSX) or pasted spreadsheet
``text``.  The file name drives release-period detection.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from datetime import date

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from erec.api.deps import get_db, get_today
from erec.core.settings import Settings, get_settings
from erec.db.repositories import ProtocolRepository
from erec.ingestion.importer import ProtocolImporter
from erec.ingestion.mapping import MappingResult, map_rows
from erec.ingestion.reader import IngestionError, read_table
from erec.ingestion.release import ReleaseInfo, process_release_info
from erec.review.status import is_iso_date
from erec.reviewers.lookup import known_reviewers, roster_map

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/imports", tags=["imports"])


@dataclass
class _Parsed:
    release: ReleaseInfo
    mapping: MappingResult


async def _parse_upload(
    db: Session,
    settings: Settings,
    today: date,
    file: UploadFile | None,
    text: str | None,
    file_name: str,
    due_date: str | None,
) -> _Parsed:
    if due_date and not is_iso_date(due_date):
        raise HTTPException(status_code=400, detail="due_date must be YYYY-MM-DD")

    if file is not None:
        source: bytes | str = await file.read()
        file_name = file_name or file.filename or ""
    elif text:
        source = text
    else:
        raise HTTPException(status_code=400, detail="Provide a file or pasted text")

    try:
        rows, headers = read_table(source, file_name=file_name)
    except IngestionError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    release = process_release_info(file_name, today)
    names = known_reviewers(ProtocolRepository(db).list_all(), roster_map(db))
    mapping = map_rows(
        rows,
        headers,
        release=release,
        due_date=due_date,
        known_reviewers=names,
        today=today,
        default_days=settings.default_review_days,
    )
    return _Parsed(release=release, mapping=mapping)


@router.post("/preview", summary="Parse an upload without writing")
async def preview_import(
    file: UploadFile | None = File(None),
    text: str | None = Form(None),
    file_name: str = Form(""),
    due_date: str | None = Form(None),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    parsed = await _parse_upload(db, settings, today, file, text, file_name, due_date)
    return {
        "release": asdict(parsed.release),
        "warnings": parsed.mapping.warnings,
        "reviewer_counts": parsed.mapping.reviewer_counts,
        "protocols": [d.to_dict() for d in parsed.mapping.drafts],
    }


@router.post("", summary="Import protocols from an upload")
async def run_import(
    file: UploadFile | None = File(None),
    text: str | None = Form(None),
    file_name: str = Form(""),
    month: str | None = Form(None),
    week: str | None = Form(None),
    due_date: str | None = Form(None),
    overwrite: bool = Form(False),
    actor: str = Form("admin"),
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
    settings: Settings = Depends(get_settings),
):
    parsed = await _parse_upload(db, settings, today, file, text, file_name, due_date)
    month = month or parsed.release.month
    week = week or parsed.release.week
    if not month or not week:
        raise HTTPException(
            status_code=400,
            detail="Could not determine month/week from the file name; pass them explicitly",
        )
    if not parsed.mapping.drafts:
        raise HTTPException(status_code=400, detail="No protocols found in upload")

    importer = ProtocolImporter(db, batch_size=settings.import_batch_size)
    result = importer.run(parsed.mapping.drafts, month, week, overwrite=overwrite, actor=actor)
    return {
        "month": month,
        "week": week,
        "created": result.created,
        "updated": result.updated,
        "skipped": result.skipped,
        "paths": result.paths,
        "warnings": parsed.mapping.warnings + result.warnings,
    }
