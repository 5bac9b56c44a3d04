"""Object service for reading and writing individual objects.

Objects are plain files at ``root/{bucket}/{key}``. ETags are the MD5 of the
current bytes and are computed on demand rather than stored.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from stat import S_ISREG
from typing import AsyncIterable, AsyncIterator

from locals3.app.services.base import BaseService
from locals3.app.services.range_streamer import (
    ByteRange,
    RangeStreamer,
    parse_range_header,
)
from locals3.common.errors import InternalError, NoSuchKey
from locals3.infra.storage.content_types import ContentTypeResolver
from locals3.infra.storage.files import (
    WrittenFile,
    handle_md5,
    iter_handle,
    open_snapshot,
    write_stream_atomic,
)
from locals3.infra.storage.layout import StorageLayout

logger = logging.getLogger("storage")


@dataclass(frozen=True, slots=True)
class ObjectHead:
    """Metadata reported by HEAD and GET."""

    key: str
    size: int
    last_modified: datetime
    etag: str
    content_type: str


@dataclass(frozen=True, slots=True)
class ObjectRead:
    """An object body ready to be streamed, with an optional byte range."""

    head: ObjectHead
    body: AsyncIterator[bytes]
    byte_range: ByteRange | None = None

    @property
    def content_length(self) -> int:
        if self.byte_range is not None:
            return self.byte_range.length
        return self.head.size


class ObjectService(BaseService):
    """Application service for object put/get/head/delete."""

    def __init__(
        self,
        layout: StorageLayout,
        *,
        content_types: ContentTypeResolver | None = None,
        range_streamer: RangeStreamer | None = None,
    ) -> None:
        super().__init__(layout)
        self._content_types = content_types or ContentTypeResolver()
        self._range_streamer = range_streamer or RangeStreamer()

    async def put_object(
        self, bucket: str, key: str, chunks: AsyncIterable[bytes]
    ) -> WrittenFile:
        """Write ``chunks`` to the object, replacing any previous content.

        Raises:
            NoSuchBucket: If the bucket directory is missing.
            InvalidArgument: If the key escapes the bucket.
            InternalError: If the file cannot be written.
        """
        self._require_bucket(bucket)
        path = self.layout.object_path(bucket, key)
        try:
            written = await write_stream_atomic(chunks, path, tmp_dir=self.layout.tmp_dir)
        except OSError as exc:
            logger.error("object_write_failed bucket=%s key=%s error=%s", bucket, key, exc)
            raise InternalError("Failed to write file", resource=key) from exc
        logger.debug(
            "object_written bucket=%s key=%s size=%s etag=%s",
            bucket,
            key,
            written.size,
            written.etag,
        )
        return written

    async def head_object(self, bucket: str, key: str) -> ObjectHead:
        path = self.layout.object_path(bucket, key)
        handle, head = await self._open(path, key)
        await handle.close()
        return head

    async def get_object(
        self, bucket: str, key: str, *, range_header: str | None = None
    ) -> ObjectRead:
        """Open an object for streaming.

        A recognized ``Range`` header yields a partial read; anything the
        range parser does not recognize falls back to the full object. The
        body streams from the handle the metadata was taken from.
        """
        path = self.layout.object_path(bucket, key)
        handle, head = await self._open(path, key)
        try:
            byte_range = parse_range_header(range_header, head.size, resource=key)
        except BaseException:
            await handle.close()
            raise
        if byte_range is not None:
            return ObjectRead(
                head=head,
                body=self._range_streamer.stream(handle, byte_range),
                byte_range=byte_range,
            )
        return ObjectRead(head=head, body=iter_handle(handle))

    def delete_object(self, bucket: str, key: str) -> None:
        """Remove the object; deleting a missing key is not an error."""
        path = self.layout.object_path(bucket, key)
        try:
            path.unlink()
        except (FileNotFoundError, NotADirectoryError):
            # A parent segment may be an object itself; the key is still absent.
            logger.debug("object_delete_absent bucket=%s key=%s", bucket, key)
            return
        except IsADirectoryError:
            # A key naming a "directory" of other objects is not an object.
            return
        except OSError as exc:
            raise InternalError("Failed to delete file", resource=key) from exc
        logger.debug("object_deleted bucket=%s key=%s", bucket, key)

    async def _open(self, path: Path, key: str):
        try:
            handle, stat = await open_snapshot(path)
        except (FileNotFoundError, NotADirectoryError, IsADirectoryError) as exc:
            raise NoSuchKey(resource=key) from exc
        try:
            if not S_ISREG(stat.st_mode):
                raise NoSuchKey(resource=key)
            etag = await handle_md5(handle)
        except BaseException:
            await handle.close()
            raise
        head = ObjectHead(
            key=key,
            size=stat.st_size,
            last_modified=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            etag=etag,
            content_type=self._content_types.resolve(path.name),
        )
        return handle, head
