"""Export routes.

GET /exports/{collection}.{fmt}   download protocols, reviewers or notices as CSV or JSON
"""
from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from sqlalchemy.orm import Session

from erec.api.deps import get_db, get_today
from erec.export.exporter import CollectionExporter

router = APIRouter(prefix="/exports", tags=["exports"])

_MEDIA_TYPES = {"csv": "text/csv", "json": "application/json"}


@router.get("/{collection}.{fmt}", summary="Download a collection export")
def download_export(
    collection: str,
    fmt: str,
    month: str | None = None,
    db: Session = Depends(get_db),
    today: date = Depends(get_today),
):
    if fmt not in _MEDIA_TYPES:
        raise HTTPException(status_code=400, detail=f"Unsupported format: {fmt!r}")
    try:
        file_name, content = CollectionExporter(db).render(collection, fmt, today, month=month)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return Response(
        content=content,
        media_type=_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
