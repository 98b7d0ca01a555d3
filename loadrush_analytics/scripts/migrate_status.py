#!/usr/bin/env python3
"""
Status Label Migration

Rewrites every load's status to its canonical LoadStatus value
('Completed' -> 'delivered', 'Available' -> 'posted', ...). Loads already
canonical are skipped, unknown labels are reported and left alone.

Usage:
    loadrush-migrate-status [--database-url URL] [--dry-run]
"""

import argparse
import sys
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone

from loadrush_analytics.core.config import Config
from loadrush_analytics.core.logging import get_logger
from loadrush_analytics.store.base import RecordStore, StoreError
from loadrush_analytics.store.records import normalize_status
from loadrush_analytics.store.sql import open_store

log = get_logger("scripts.migrate_status", labels={"component": "migrate-status"})


@dataclass
class MigrationReport:
    migrated: int = 0
    skipped: int = 0
    unknown: int = 0
    failed: int = 0
    by_label: Counter = field(default_factory=Counter)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0


def migrate(store: RecordStore, dry_run: bool = False) -> MigrationReport:
    report = MigrationReport()

    for doc in store.documents("loads"):
        raw = doc.data.get("status")
        status = normalize_status(raw)

        if status is None:
            log.warning(f"{doc.id}: unknown status {raw!r}", extra={"labels": {"load_id": doc.id}})
            report.unknown += 1
            continue
        if raw == status.value:
            report.skipped += 1
            continue

        report.by_label[raw] += 1
        if dry_run:
            report.migrated += 1
            continue

        try:
            store.update("loads", doc.id, {"status": status.value, "updatedAt": datetime.now(timezone.utc)})
        except StoreError as e:
            log.error(f"{doc.id}: migration failed: {e}", extra={"labels": {"load_id": doc.id}})
            report.failed += 1
            continue
        report.migrated += 1

    log.info(
        f"Migration summary: migrated={report.migrated} skipped={report.skipped} "
        f"unknown={report.unknown} failed={report.failed}",
        extra={"labels": {"by_label": dict(report.by_label)}},
    )
    return report


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Normalize load status labels")
    parser.add_argument("--database-url", default=Config.DATABASE_URL)
    parser.add_argument("--dry-run", action="store_true")
    args = parser.parse_args(argv)

    try:
        report = migrate(open_store(args.database_url), dry_run=args.dry_run)
    except StoreError:
        log.exception("Status migration failed")
        return 1
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
