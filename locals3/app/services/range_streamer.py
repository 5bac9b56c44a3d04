"""Partial-content reads.

Only a single ``bytes=`` range is recognized: ``start-end``, ``start-`` or
the suffix form ``-length``. Unrecognized headers are ignored so the caller
serves the whole object; recognized but unsatisfiable ranges raise
``InvalidRange``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import AsyncIterator

from locals3.common.errors import InvalidRange
from locals3.infra.storage.files import RANGE_CHUNK_SIZE, iter_handle

_RANGE_RE = re.compile(r"^bytes=(\d*)-(\d*)$")


@dataclass(frozen=True, slots=True)
class ByteRange:
    """Inclusive byte span of an object."""

    start: int
    end: int
    total: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def content_range(self) -> str:
        return f"bytes {self.start}-{self.end}/{self.total}"


def parse_range_header(
    header: str | None, size: int, *, resource: str = ""
) -> ByteRange | None:
    if not header:
        return None
    match = _RANGE_RE.match(header.strip())
    if match is None:
        return None
    start_text, end_text = match.groups()
    if not start_text and not end_text:
        return None

    if not start_text:
        suffix_length = int(end_text)
        if suffix_length == 0 or size == 0:
            raise InvalidRange(resource=resource, object_size=size)
        return ByteRange(start=max(size - suffix_length, 0), end=size - 1, total=size)

    start = int(start_text)
    end = int(end_text) if end_text else size - 1
    if start >= size or end < start:
        raise InvalidRange(resource=resource, object_size=size)
    return ByteRange(start=start, end=min(end, size - 1), total=size)


class RangeStreamer:
    def __init__(self, chunk_size: int = RANGE_CHUNK_SIZE):
        if not 0 < chunk_size <= RANGE_CHUNK_SIZE:
            raise ValueError(f"chunk_size must be between 1 and {RANGE_CHUNK_SIZE}")
        self._chunk_size = chunk_size

    def stream(self, handle, byte_range: ByteRange) -> AsyncIterator[bytes]:
        """Stream the span from an open handle, closing it when done."""
        return iter_handle(
            handle,
            start=byte_range.start,
            length=byte_range.length,
            chunk_size=self._chunk_size,
        )
