#!/usr/bin/env python3
"""Seed demo data: the reviewer roster, one weekly release of protocols,
a welcome notice and the notification settings row.

Usage:
    python scripts/seed_demo.py          # uses DATABASE_URL from env / .env
    DATABASE_URL=... python scripts/seed_demo.py
"""
from __future__ import annotations

import sys
from datetime import date

from sqlalchemy.orm import Session

# Ensure project root is on sys.path
sys.path.insert(0, ".")

from erec.core.settings import get_settings
from erec.db.base import Base
from erec.db.session import get_engine, session_scope
from erec.ingestion.importer import ProtocolImporter
from erec.ingestion.mapping import map_rows
from erec.ingestion.release import process_release_info
from erec.notices.service import NoticeService
from erec.notification.settings import get_notification_settings
from erec.reviewers.lookup import roster_map
from erec.reviewers.roster import import_roster, load_roster

DEMO_FILE_NAME = "april_1stweek.csv"

DEMO_ROWS = [
    # (Main Folder, SPUP REC Code, Reviewer, Document)
    ("Sleep Quality of Nursing Students", "SPUP_2025_0101_SR_JD", "DRAPL-001", "Form 06B1 PRA"),
    ("Sleep Quality of Nursing Students", "SPUP_2025_0101_SR_JD", "DRNRD-002", "Form 06C ICA"),
    ("Microplastics in Cagayan River Fish", "SPUP_2025_0102_SR_MR", "DRNRD-002", "Form 06B1 PRA"),
    ("Microplastics in Cagayan River Fish", "SPUP_2025_0102_SR_MR", "DRMKL-004", "Form 06B2 PRA-EX"),
    ("Teacher Burnout After Modular Learning", "SPUP_2025_0103_SR_AL", "DRMKL-004", "Form 06B1 PRA"),
    ("Teacher Burnout After Modular Learning", "SPUP_2025_0103_SR_AL", "DRAPL-001", "Form 06C ICA"),
]


def seed(session: Session, roster_path: str, today: date) -> None:
    """Insert the roster, one release of demo protocols and a notice."""
    counts = import_roster(session, load_roster(roster_path))

    headers = ["Main Folder", "SPUP REC Code", "Reviewer", "Document", "Link"]
    rows = [
        {"Main Folder": name, "SPUP REC Code": code, "Reviewer": reviewer, "Document": form, "Link": ""}
        for name, code, reviewer, form in DEMO_ROWS
    ]
    release = process_release_info(DEMO_FILE_NAME, today)
    mapped = map_rows(rows, headers, release=release, known_reviewers=roster_map(session), today=today)
    result = ProtocolImporter(session).run(mapped.drafts, release.month, release.week, actor="demo-seed")

    NoticeService(session).create(
        "Welcome to the e-REC portal",
        "Your assigned protocols and their due dates are listed on your dashboard.",
        priority="high",
        actor="demo-seed",
    )
    get_notification_settings(session)
    session.flush()

    print(
        f"Seeded {counts['created']} reviewers, {result.created} protocols "
        f"({release.release_period}), 1 notice."
    )


def main() -> None:
    settings = get_settings()
    Base.metadata.create_all(get_engine())

    with session_scope() as session:
        seed(session, settings.reviewer_roster_path, date.today())


if __name__ == "__main__":
    main()
