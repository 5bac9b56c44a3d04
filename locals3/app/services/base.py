from __future__ import annotations

from pathlib import Path

from locals3.common.errors import InvalidBucketName, NoSuchBucket
from locals3.infra.storage.layout import StorageLayout


class BaseService:
    """Provides the storage layout and guard rails shared by services."""

    def __init__(self, layout: StorageLayout):
        self._layout = layout

    @property
    def layout(self) -> StorageLayout:
        return self._layout

    def bucket_exists(self, bucket: str) -> bool:
        try:
            path = self._layout.bucket_path(bucket)
        except InvalidBucketName:
            return False
        return path.is_dir()

    def _require_bucket(self, bucket: str) -> Path:
        path = self._layout.bucket_path(bucket)
        if not path.is_dir():
            raise NoSuchBucket(resource=bucket)
        return path
