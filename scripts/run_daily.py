#!/usr/bin/env python3
"""Daily maintenance: due-date digests and an export snapshot.

Usage:
    python scripts/run_daily.py                 # digests (if today is a sending day) + exports
    python scripts/run_daily.py --notify        # digests only
    python scripts/run_daily.py --export --format json
    python scripts/run_daily.py --notify --force
"""
from __future__ import annotations

import argparse
import sys
from datetime import date

# Ensure project root is on sys.path
sys.path.insert(0, ".")

from erec.core.logging import setup_logging
from erec.core.settings import get_settings
from erec.db.session import session_scope
from erec.tasks.scheduled import notify, snapshot_exports


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--notify", action="store_true", help="send due-date digests")
    parser.add_argument("--export", action="store_true", help="write collection exports")
    parser.add_argument("--force", action="store_true", help="send even when disabled or off-schedule")
    parser.add_argument("--format", choices=("csv", "json"), default="csv")
    args = parser.parse_args(argv)

    run_all = not (args.notify or args.export)
    settings = get_settings()
    setup_logging()
    today = date.today()

    with session_scope() as session:
        if args.notify or run_all:
            result = notify(session, settings, today, force=args.force)
            print(f"Digests: ran={result.ran} sent={result.sent} failed={result.failed}")
        if args.export or run_all:
            paths = snapshot_exports(session, settings.export_dir, today, args.format)
            print(f"Exports: {', '.join(str(p) for p in paths)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
