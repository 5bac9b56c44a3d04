#!/usr/bin/env python3
"""Delete expired files from temporary buckets.

Usage:
  .venv/bin/python -m scripts.sweep_expired --dry-run
  .venv/bin/python -m scripts.sweep_expired --verbose

Retention comes from TEMP_BUCKETS (``bucket=hours,...``). Use --dry-run to
preview what would be deleted.
"""

from __future__ import annotations

import argparse

from locals3.app.services.expiry_service import ExpiryService, SweepReport
from locals3.common.config import Settings, get_settings
from locals3.infra.storage.layout import StorageLayout


def sweep_expired(
    settings: Settings | None = None, *, dry_run: bool = False
) -> SweepReport:
    settings = settings or get_settings()
    layout = StorageLayout(settings.STORAGE_ROOT)
    return ExpiryService(layout, settings.TEMP_BUCKETS).sweep(dry_run=dry_run)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Sweep expired files from temporary buckets")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report files that would be deleted",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print one line per deleted file",
    )
    args = parser.parse_args(argv)
    report = sweep_expired(dry_run=args.dry_run)
    prefix = "[DRY-RUN] " if args.dry_run else ""
    print(f"{prefix}Cleanup Completed.")
    print(f"Scanned: {report.scanned}")
    print(f"Deleted: {report.deleted}")
    if args.verbose and report.details:
        print("Details:")
        for line in report.detail_lines():
            print(line)


if __name__ == "__main__":
    main()
