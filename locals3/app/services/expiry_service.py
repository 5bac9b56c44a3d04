"""Expiry sweep for temporary buckets.

Each configured bucket has a retention window in hours; files older than the
window are deleted. Sweeps keep no state between runs and may run while
requests are being served, so files that disappear mid-sweep are expected.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Mapping

from locals3.common.errors import InvalidBucketName
from locals3.infra.storage.layout import StorageLayout

logger = logging.getLogger("sweeper")

SECONDS_PER_HOUR = 3600


@dataclass(frozen=True, slots=True)
class SweptFile:
    bucket: str
    key: str
    age_seconds: float

    @property
    def age_hours(self) -> float:
        return self.age_seconds / SECONDS_PER_HOUR

    def describe(self) -> str:
        return f"Deleted: {self.bucket}/{self.key} (Age: {self.age_hours:.1f}h)"


@dataclass
class SweepReport:
    scanned: int = 0
    deleted: int = 0
    dry_run: bool = False
    details: list[SweptFile] = field(default_factory=list)

    def detail_lines(self) -> list[str]:
        return [item.describe() for item in self.details]


class ExpiryService:
    """Deletes aged files from the buckets named in ``policy``.

    ``policy`` maps bucket name to retention hours. Buckets outside the
    policy are never touched.
    """

    def __init__(
        self,
        layout: StorageLayout,
        policy: Mapping[str, float],
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._layout = layout
        self._policy = dict(policy)
        self._clock = clock

    def sweep(self, *, dry_run: bool = False) -> SweepReport:
        report = SweepReport(dry_run=dry_run)
        now = self._clock()
        for bucket, hours in self._policy.items():
            try:
                bucket_dir = self._layout.bucket_path(bucket)
            except InvalidBucketName:
                logger.warning("sweep_skipped_invalid_bucket bucket=%s", bucket)
                continue
            if not bucket_dir.is_dir():
                continue
            self._sweep_bucket(
                bucket,
                bucket_dir,
                retention_seconds=hours * SECONDS_PER_HOUR,
                now=now,
                report=report,
            )

        logger.info(
            "sweep_completed scanned=%s deleted=%s dry_run=%s",
            report.scanned,
            report.deleted,
            dry_run,
            extra={
                "extra": {
                    "scanned": report.scanned,
                    "deleted": report.deleted,
                    "dry_run": dry_run,
                }
            },
        )
        return report

    def _sweep_bucket(
        self,
        bucket: str,
        bucket_dir: Path,
        *,
        retention_seconds: float,
        now: float,
        report: SweepReport,
    ) -> None:
        for dirpath, _dirnames, filenames in os.walk(bucket_dir, topdown=False):
            directory = Path(dirpath)
            for filename in filenames:
                path = directory / filename
                try:
                    modified = path.stat().st_mtime
                except FileNotFoundError:
                    continue
                report.scanned += 1
                age = now - modified
                if age <= retention_seconds:
                    continue
                if not report.dry_run:
                    try:
                        path.unlink()
                    except FileNotFoundError:
                        # Already gone; the outcome is the same.
                        pass
                report.deleted += 1
                report.details.append(
                    SweptFile(
                        bucket=bucket,
                        key=self._layout.object_key(bucket_dir, path),
                        age_seconds=age,
                    )
                )
                logger.debug("sweep_deleted bucket=%s path=%s age_seconds=%.0f", bucket, path, age)

            if not report.dry_run and directory != bucket_dir:
                self._remove_if_empty(directory)

    def _remove_if_empty(self, directory: Path) -> None:
        try:
            directory.rmdir()
        except FileNotFoundError:
            return
        except OSError:
            # Still holds files, or a writer just created one.
            logger.debug("sweep_directory_kept path=%s", directory)
