"""Multipart upload lifecycle.

An upload exists exactly as long as its staging directory
``root/.staging/{bucket}/{upload_id}`` does. Parts are stored as
``{part_number}.part`` next to a ``key`` sidecar holding the target key
recorded at initiation.
"""

from __future__ import annotations

import logging
import secrets
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import AsyncIterable, AsyncIterator, Sequence

import aiofiles

from locals3.app.services.base import BaseService
from locals3.common.config import DEFAULT_MAX_PART_NUMBER
from locals3.common.errors import InternalError, InvalidArgument, NoSuchUpload
from locals3.infra.storage.files import iter_file, write_stream_atomic
from locals3.infra.storage.layout import StorageLayout, is_valid_upload_id, normalize_key

logger = logging.getLogger("storage")


@dataclass(frozen=True, slots=True)
class MultipartUpload:
    """Result of initiating a multipart upload."""

    upload_id: str
    bucket: str
    object_key: str


@dataclass(frozen=True, slots=True)
class CompletedUpload:
    """Result of assembling a multipart upload into its object."""

    bucket: str
    object_key: str
    etag: str
    size: int
    assembled_parts: tuple[int, ...] = field(default_factory=tuple)
    missing_parts: tuple[int, ...] = field(default_factory=tuple)


class MultipartService(BaseService):
    """Initiate, upload parts to, complete, and abort multipart uploads."""

    def __init__(
        self,
        layout: StorageLayout,
        *,
        max_part_number: int = DEFAULT_MAX_PART_NUMBER,
    ) -> None:
        super().__init__(layout)
        self._max_part_number = max_part_number

    def parse_part_number(self, raw: str | None) -> int:
        """Validate a ``partNumber`` query value.

        A ``max_part_number`` of zero leaves the upper bound open.
        """
        try:
            part_number = int(raw or "")
        except ValueError as exc:
            raise InvalidArgument(
                "Part number must be an integer", resource=str(raw)
            ) from exc
        if part_number < 1:
            raise InvalidArgument("Part number must be positive", resource=str(raw))
        if self._max_part_number and part_number > self._max_part_number:
            raise InvalidArgument(
                f"Part number must be an integer between 1 and {self._max_part_number}",
                resource=str(raw),
            )
        return part_number

    def ensure_upload(self, bucket: str, upload_id: str | None) -> Path:
        """Return the staging directory, or raise NoSuchUpload."""
        upload_dir = self.layout.upload_dir(bucket, upload_id)
        if not upload_dir.is_dir():
            raise NoSuchUpload(resource=upload_id or "")
        return upload_dir

    async def initiate(self, bucket: str, key: str) -> MultipartUpload:
        self._require_bucket(bucket)
        # Validates the key against the bucket before anything is created.
        self.layout.object_path(bucket, key)
        object_key = normalize_key(key)

        upload_id = secrets.token_hex(16)
        upload_dir = self.layout.upload_dir(bucket, upload_id)
        try:
            upload_dir.mkdir(parents=True, exist_ok=False)
            async with aiofiles.open(
                self.layout.upload_key_path(bucket, upload_id), "w", encoding="utf-8"
            ) as handle:
                await handle.write(object_key)
        except OSError as exc:
            logger.error(
                "multipart_initiate_failed bucket=%s key=%s error=%s", bucket, key, exc
            )
            raise InternalError("Failed to initiate upload", resource=key) from exc

        logger.debug(
            "multipart_initiated bucket=%s key=%s upload_id=%s",
            bucket,
            object_key,
            upload_id,
        )
        return MultipartUpload(upload_id=upload_id, bucket=bucket, object_key=object_key)

    async def upload_part(
        self,
        bucket: str,
        upload_id: str,
        part_number: int,
        chunks: AsyncIterable[bytes],
    ) -> str:
        """Store one part, replacing an earlier upload of the same number.

        Returns the part's ETag.
        """
        self.ensure_upload(bucket, upload_id)
        part_path = self.layout.part_path(bucket, upload_id, part_number)
        try:
            written = await write_stream_atomic(
                chunks,
                part_path,
                tmp_dir=self.layout.tmp_dir,
                make_parents=False,
            )
        except FileNotFoundError as exc:
            # The upload was completed or aborted while this part streamed in.
            raise NoSuchUpload(resource=upload_id) from exc
        except OSError as exc:
            logger.error(
                "multipart_part_write_failed upload_id=%s part=%s error=%s",
                upload_id,
                part_number,
                exc,
            )
            raise InternalError("Failed to write part", resource=upload_id) from exc

        logger.debug(
            "multipart_part_written upload_id=%s part=%s size=%s",
            upload_id,
            part_number,
            written.size,
        )
        return written.etag

    async def read_target_key(self, bucket: str, upload_id: str) -> str | None:
        try:
            async with aiofiles.open(
                self.layout.upload_key_path(bucket, upload_id), "r", encoding="utf-8"
            ) as handle:
                stored = (await handle.read()).strip()
        except FileNotFoundError:
            return None
        return stored or None

    async def complete(
        self,
        bucket: str,
        upload_id: str,
        part_numbers: Sequence[int],
        *,
        fallback_key: str = "",
    ) -> CompletedUpload:
        """Concatenate the listed parts, in the order given, into the object.

        Listed parts with no file are skipped and reported in
        ``missing_parts``. The staging directory is removed afterwards.
        """
        upload_dir = self.ensure_upload(bucket, upload_id)
        object_key = await self.read_target_key(bucket, upload_id) or normalize_key(
            fallback_key
        )
        object_path = self.layout.object_path(bucket, object_key)

        assembled: list[int] = []
        missing: list[int] = []

        async def part_chunks() -> AsyncIterator[bytes]:
            for part_number in part_numbers:
                part_path = self.layout.part_path(bucket, upload_id, part_number)
                if not part_path.is_file():
                    missing.append(part_number)
                    logger.warning(
                        "multipart_part_missing upload_id=%s part=%s",
                        upload_id,
                        part_number,
                    )
                    continue
                async for chunk in iter_file(part_path):
                    yield chunk
                assembled.append(part_number)

        try:
            written = await write_stream_atomic(
                part_chunks(), object_path, tmp_dir=self.layout.tmp_dir
            )
        except OSError as exc:
            logger.error(
                "multipart_complete_failed upload_id=%s key=%s error=%s",
                upload_id,
                object_key,
                exc,
            )
            raise InternalError("Could not write final file", resource=object_key) from exc

        self._remove_upload_dir(upload_dir)
        logger.debug(
            "multipart_completed upload_id=%s key=%s parts=%s missing=%s",
            upload_id,
            object_key,
            assembled,
            missing,
        )
        return CompletedUpload(
            bucket=bucket,
            object_key=object_key,
            etag=written.etag,
            size=written.size,
            assembled_parts=tuple(assembled),
            missing_parts=tuple(missing),
        )

    def abort(self, bucket: str, upload_id: str | None) -> None:
        """Discard the upload; aborting an unknown upload is a no-op."""
        if not is_valid_upload_id(upload_id):
            return
        upload_dir = self.layout.upload_dir(bucket, upload_id)
        self._remove_upload_dir(upload_dir)
        logger.debug("multipart_aborted bucket=%s upload_id=%s", bucket, upload_id)

    def _remove_upload_dir(self, upload_dir: Path) -> None:
        try:
            shutil.rmtree(upload_dir)
        except FileNotFoundError:
            return
