"""Filesystem layout of the storage root.

Visible objects live at ``root/{bucket}/{key...}``. In-progress multipart
uploads live at ``root/.staging/{bucket}/{upload_id}/`` and temporary files
for atomic writes at ``root/.staging/.tmp/``. Every resolved path is checked
against the directory it must stay inside before it is handed out.
"""

from __future__ import annotations

import re
from pathlib import Path, PurePosixPath

from locals3.common.errors import InvalidArgument, InvalidBucketName, NoSuchUpload

STAGING_DIR_NAME = ".staging"
TMP_DIR_NAME = ".tmp"
UPLOAD_KEY_SIDECAR = "key"
PART_SUFFIX = ".part"

_UPLOAD_ID_RE = re.compile(r"^[0-9a-f]{32}$")


def split_key(key: str) -> list[str]:
    """Split an object key into path segments, dropping empty ones."""
    segments = [segment for segment in key.split("/") if segment]
    for segment in segments:
        if segment in (".", "..") or "\x00" in segment:
            raise InvalidArgument(
                "Object key contains an invalid path segment", resource=key
            )
    return segments


def normalize_key(key: str) -> str:
    return "/".join(split_key(key))


def validate_bucket_name(bucket: str) -> str:
    if (
        not bucket
        or bucket in (".", "..")
        or bucket.startswith((".", "_"))
        or "/" in bucket
        or "\\" in bucket
        or "\x00" in bucket
    ):
        raise InvalidBucketName(resource=bucket)
    return bucket


def is_valid_upload_id(upload_id: str | None) -> bool:
    return bool(upload_id) and _UPLOAD_ID_RE.match(upload_id) is not None


def _ensure_within(path: Path, base: Path, *, resource: str) -> Path:
    resolved = path.resolve()
    if resolved != base and base not in resolved.parents:
        raise InvalidArgument("Resolved path escapes the storage root", resource=resource)
    return resolved


class StorageLayout:
    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()

    @property
    def staging_root(self) -> Path:
        return self.root / STAGING_DIR_NAME

    @property
    def tmp_dir(self) -> Path:
        return self.staging_root / TMP_DIR_NAME

    def ensure(self) -> None:
        self.tmp_dir.mkdir(parents=True, exist_ok=True)

    def is_hidden(self, name: str) -> bool:
        return name.startswith(".")

    def bucket_path(self, bucket: str) -> Path:
        validate_bucket_name(bucket)
        return _ensure_within(self.root / bucket, self.root, resource=bucket)

    def object_path(self, bucket: str, key: str) -> Path:
        bucket_dir = self.bucket_path(bucket)
        segments = split_key(key)
        if not segments:
            raise InvalidArgument("Object key must not be empty", resource=key)
        path = _ensure_within(bucket_dir.joinpath(*segments), bucket_dir, resource=key)
        if path == bucket_dir:
            raise InvalidArgument("Object key must not be empty", resource=key)
        return path

    def object_key(self, bucket_dir: Path, path: Path) -> str:
        return PurePosixPath(*path.relative_to(bucket_dir).parts).as_posix()

    def upload_dir(self, bucket: str, upload_id: str | None) -> Path:
        validate_bucket_name(bucket)
        if not is_valid_upload_id(upload_id):
            raise NoSuchUpload(resource=upload_id or "")
        return self.staging_root / bucket / upload_id

    def part_path(self, bucket: str, upload_id: str, part_number: int) -> Path:
        return self.upload_dir(bucket, upload_id) / f"{part_number}{PART_SUFFIX}"

    def upload_key_path(self, bucket: str, upload_id: str) -> Path:
        return self.upload_dir(bucket, upload_id) / UPLOAD_KEY_SIDECAR
