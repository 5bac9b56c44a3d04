"""Bucket operations: create, existence probe, and listings."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from locals3.app.services.base import BaseService
from locals3.common.errors import InternalError
from locals3.infra.storage.files import file_md5_sync

logger = logging.getLogger("storage")


@dataclass(frozen=True, slots=True)
class BucketInfo:
    name: str
    created_at: datetime


@dataclass(frozen=True, slots=True)
class ObjectEntry:
    key: str
    size: int
    last_modified: datetime
    etag: str


@dataclass(frozen=True, slots=True)
class ObjectListing:
    bucket: str
    prefix: str
    entries: list[ObjectEntry]


def _from_timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class BucketService(BaseService):
    """Buckets are directories directly under the storage root.

    Listing methods walk the filesystem and hash files, so callers on the
    event loop should run them in a worker thread.
    """

    def create_bucket(self, bucket: str) -> str:
        """Create the bucket directory if needed and return its location."""
        path = self.layout.bucket_path(bucket)
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("bucket_create_failed bucket=%s error=%s", bucket, exc)
            raise InternalError("Failed to create bucket", resource=bucket) from exc
        logger.debug("bucket_created bucket=%s", bucket)
        return f"/{bucket}"

    def list_buckets(self) -> list[BucketInfo]:
        buckets: list[BucketInfo] = []
        with os.scandir(self.layout.root) as entries:
            for entry in entries:
                if self.layout.is_hidden(entry.name) or not entry.is_dir():
                    continue
                try:
                    created = entry.stat().st_mtime
                except FileNotFoundError:
                    continue
                buckets.append(BucketInfo(name=entry.name, created_at=_from_timestamp(created)))
        return buckets

    def list_objects(self, bucket: str, *, prefix: str = "") -> ObjectListing:
        bucket_dir = self._require_bucket(bucket)
        entries: list[ObjectEntry] = []
        for dirpath, _dirnames, filenames in os.walk(bucket_dir):
            for filename in filenames:
                path = bucket_dir.joinpath(dirpath, filename)
                key = self.layout.object_key(bucket_dir, path)
                if prefix and not key.startswith(prefix):
                    continue
                # Objects deleted while the walk is in progress are skipped.
                try:
                    stat = path.stat()
                    etag = file_md5_sync(path)
                except FileNotFoundError:
                    continue
                entries.append(
                    ObjectEntry(
                        key=key,
                        size=stat.st_size,
                        last_modified=_from_timestamp(stat.st_mtime),
                        etag=etag,
                    )
                )
        entries.sort(key=lambda entry: entry.key)
        return ObjectListing(bucket=bucket, prefix=prefix, entries=entries)
