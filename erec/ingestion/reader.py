"""Spreadsheet reader for protocol uploads.

Accepts the three shapes the admin upload screen produces:

- a ``.csv`` file (comma separated, first row is the header)
- an ``.xlsx`` workbook (first visible sheet, read through openpyxl)
- text pasted straight from a spreadsheet (tab separated)

Every cell is read as ``str`` with ``keep_default_na=False`` so codes such as
``NA`` or ``001`` survive untouched.  Rows whose cells are all blank are
dropped.
"""
from __future__ import annotations

import io
import logging
from pathlib import Path

import pandas as pd

logger = logging.getLogger(__name__)


class IngestionError(ValueError):
    """Raised when an upload cannot be read as a table."""


def _detect_separator(text: str, file_name: str) -> str:
    if file_name.lower().endswith((".tsv", ".txt")):
        return "\t"
    first_line = text.lstrip().splitlines()[0] if text.strip() else ""
    if "\t" in first_line and first_line.count("\t") >= first_line.count(","):
        return "\t"
    return ","


def _to_text(source: bytes | str) -> str:
    if isinstance(source, bytes):
        # utf-8-sig drops the BOM Excel writes on "CSV UTF-8" exports
        return source.decode("utf-8-sig")
    return source


def read_table(
    source: bytes | str | Path,
    *,
    file_name: str = "",
) -> tuple[list[dict[str, str]], list[str]]:
    """Return ``(rows, headers)`` for *source*.

    Raises ``IngestionError`` when the input is empty or cannot be parsed.
    """
    if isinstance(source, Path):
        file_name = file_name or source.name
        source = source.read_bytes()

    try:
        if file_name.lower().endswith((".xlsx", ".xlsm")):
            if isinstance(source, str):
                raise IngestionError("xlsx uploads must be sent as binary")
            frame = pd.read_excel(
                io.BytesIO(source),
                engine="openpyxl",
                dtype=str,
                keep_default_na=False,
            )
        else:
            text = _to_text(source)
            if not text.strip():
                raise IngestionError("no rows")
            frame = pd.read_csv(
                io.StringIO(text),
                sep=_detect_separator(text, file_name),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
            )
    except IngestionError:
        raise
    except (ValueError, UnicodeDecodeError, pd.errors.ParserError) as exc:
        raise IngestionError(f"could not parse {file_name or 'upload'}: {exc}") from exc

    headers = [str(col).strip() for col in frame.columns]
    frame.columns = headers

    rows: list[dict[str, str]] = []
    for record in frame.to_dict(orient="records"):
        cleaned = {key: ("" if value is None else str(value).strip()) for key, value in record.items()}
        if not any(cleaned.values()):
            continue
        rows.append(cleaned)

    if not rows:
        raise IngestionError("no rows")

    logger.info("Read %d rows (%d columns) from %s", len(rows), len(headers), file_name or "paste")
    return rows, headers
