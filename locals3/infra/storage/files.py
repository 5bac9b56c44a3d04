"""Bounded-memory file helpers built on aiofiles.

Writes land in a temporary file first and are moved into place with
``os.replace`` so readers never observe a partially written object.
"""

from __future__ import annotations

import contextlib
import hashlib
import os
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterable, AsyncIterator

import aiofiles

# Range reads are served in chunks no larger than this.
RANGE_CHUNK_SIZE = 8 * 1024
COPY_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True, slots=True)
class WrittenFile:
    """Outcome of a streamed write."""

    etag: str
    size: int


def new_tmp_path(tmp_dir: Path) -> Path:
    return tmp_dir / f"{secrets.token_hex(16)}.tmp"


async def write_stream_atomic(
    chunks: AsyncIterable[bytes],
    destination: Path,
    *,
    tmp_dir: Path,
    make_parents: bool = True,
) -> WrittenFile:
    """Stream ``chunks`` into ``destination``, hashing while copying.

    With ``make_parents`` off, a missing parent directory surfaces as
    ``FileNotFoundError`` when the temporary file is moved into place.
    """
    tmp_dir.mkdir(parents=True, exist_ok=True)
    if make_parents:
        destination.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = new_tmp_path(tmp_dir)
    digest = hashlib.md5()
    size = 0
    try:
        async with aiofiles.open(tmp_path, "wb") as handle:
            async for chunk in chunks:
                if not chunk:
                    continue
                await handle.write(chunk)
                digest.update(chunk)
                size += len(chunk)
        os.replace(tmp_path, destination)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            tmp_path.unlink()
        raise
    return WrittenFile(etag=digest.hexdigest(), size=size)


async def open_snapshot(path: Path):
    """Open ``path`` for reading and return ``(handle, stat)`` of that inode.

    A later ``os.replace`` of the path does not affect the open handle, so
    metadata and body taken from it always describe the same bytes.
    """
    handle = await aiofiles.open(path, "rb")
    try:
        stat = os.fstat(handle.fileno())
    except BaseException:
        await handle.close()
        raise
    return handle, stat


async def iter_handle(
    handle,
    *,
    start: int = 0,
    length: int | None = None,
    chunk_size: int = COPY_CHUNK_SIZE,
    close: bool = True,
) -> AsyncIterator[bytes]:
    """Yield ``length`` bytes of an open file from ``start`` (to EOF when None)."""
    remaining = length
    try:
        await handle.seek(start)
        while remaining is None or remaining > 0:
            size = chunk_size if remaining is None else min(chunk_size, remaining)
            chunk = await handle.read(size)
            if not chunk:
                break
            if remaining is not None:
                remaining -= len(chunk)
            yield chunk
    finally:
        if close:
            await handle.close()


async def iter_file(
    path: Path,
    *,
    start: int = 0,
    length: int | None = None,
    chunk_size: int = COPY_CHUNK_SIZE,
) -> AsyncIterator[bytes]:
    async with aiofiles.open(path, "rb") as handle:
        async for chunk in iter_handle(
            handle, start=start, length=length, chunk_size=chunk_size, close=False
        ):
            yield chunk


async def handle_md5(handle) -> str:
    digest = hashlib.md5()
    async for chunk in iter_handle(handle, close=False):
        digest.update(chunk)
    return digest.hexdigest()


def file_md5_sync(path: Path) -> str:
    digest = hashlib.md5()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(COPY_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()
