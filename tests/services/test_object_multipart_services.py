from __future__ import annotations

import asyncio
import hashlib

import pytest

from locals3.app.services.bucket_service import BucketService
from locals3.app.services.multipart_service import MultipartService
from locals3.app.services.object_service import ObjectService
from locals3.common.errors import (
    InvalidArgument,
    InvalidRange,
    NoSuchBucket,
    NoSuchKey,
    NoSuchUpload,
)


async def chunks(*parts: bytes):
    for part in parts:
        yield part


async def collect(body) -> bytes:
    return b"".join([chunk async for chunk in body])


async def read_object(service, bucket, key, **kwargs):
    read = await service.get_object(bucket, key, **kwargs)
    return read, await collect(read.body)


@pytest.fixture
def buckets(layout) -> BucketService:
    service = BucketService(layout)
    service.create_bucket("media")
    return service


class TestObjectService:
    def test_put_then_get_round_trip(self, layout, buckets) -> None:
        service = ObjectService(layout)
        written = asyncio.run(service.put_object("media", "a/b.txt", chunks(b"ab", b"cd")))
        assert written.etag == hashlib.md5(b"abcd").hexdigest()
        assert written.size == 4

        read, body = asyncio.run(read_object(service, "media", "a/b.txt"))
        assert read.byte_range is None
        assert read.content_length == 4
        assert read.head.content_type == "text/plain"
        assert body == b"abcd"

    def test_put_requires_bucket(self, layout) -> None:
        service = ObjectService(layout)
        with pytest.raises(NoSuchBucket):
            asyncio.run(service.put_object("nowhere", "x", chunks(b"x")))

    def test_put_leaves_no_temporary_files(self, layout, buckets) -> None:
        service = ObjectService(layout)
        asyncio.run(service.put_object("media", "x.bin", chunks(b"x" * 100_000)))
        assert list(layout.tmp_dir.iterdir()) == []

    def test_failed_stream_keeps_previous_object(self, layout, buckets) -> None:
        service = ObjectService(layout)
        asyncio.run(service.put_object("media", "x.bin", chunks(b"original")))

        async def broken():
            yield b"partial"
            raise RuntimeError("client went away")

        with pytest.raises(RuntimeError):
            asyncio.run(service.put_object("media", "x.bin", broken()))
        assert (layout.root / "media" / "x.bin").read_bytes() == b"original"
        assert list(layout.tmp_dir.iterdir()) == []

    def test_ranged_get(self, layout, buckets) -> None:
        service = ObjectService(layout)
        asyncio.run(service.put_object("media", "d.txt", chunks(b"0123456789")))
        read, body = asyncio.run(
            read_object(service, "media", "d.txt", range_header="bytes=3-4")
        )
        assert read.byte_range is not None
        assert read.byte_range.content_range == "bytes 3-4/10"
        assert body == b"34"

        with pytest.raises(InvalidRange) as excinfo:
            asyncio.run(service.get_object("media", "d.txt", range_header="bytes=99-"))
        assert excinfo.value.object_size == 10

    def test_head_of_directory_is_no_such_key(self, layout, buckets) -> None:
        service = ObjectService(layout)
        asyncio.run(service.put_object("media", "dir/inner.txt", chunks(b"i")))
        with pytest.raises(NoSuchKey):
            asyncio.run(service.head_object("media", "dir"))

    def test_delete_is_idempotent(self, layout, buckets) -> None:
        service = ObjectService(layout)
        asyncio.run(service.put_object("media", "gone.txt", chunks(b"g")))
        service.delete_object("media", "gone.txt")
        service.delete_object("media", "gone.txt")
        with pytest.raises(NoSuchKey):
            asyncio.run(service.head_object("media", "gone.txt"))

    def test_read_keeps_snapshot_across_overwrite(self, layout, buckets) -> None:
        service = ObjectService(layout)
        asyncio.run(service.put_object("media", "v.txt", chunks(b"first version")))

        async def read_during_overwrite():
            read = await service.get_object("media", "v.txt")
            await service.put_object("media", "v.txt", chunks(b"v2"))
            return read, await collect(read.body)

        read, body = asyncio.run(read_during_overwrite())
        assert body == b"first version"
        assert read.content_length == len(body)
        assert read.head.etag == hashlib.md5(body).hexdigest()
        assert (layout.root / "media" / "v.txt").read_bytes() == b"v2"

    def test_delete_below_existing_object_is_noop(self, layout, buckets) -> None:
        service = ObjectService(layout)
        asyncio.run(service.put_object("media", "a", chunks(b"file")))
        service.delete_object("media", "a/b")
        assert (layout.root / "media" / "a").read_bytes() == b"file"

    def test_traversal_key_is_rejected(self, layout, buckets) -> None:
        service = ObjectService(layout)
        with pytest.raises(InvalidArgument):
            asyncio.run(service.put_object("media", "../escape.txt", chunks(b"x")))
        assert not (layout.root / "escape.txt").exists()


class TestMultipartService:
    def test_lifecycle(self, layout, buckets) -> None:
        service = MultipartService(layout)
        upload = asyncio.run(service.initiate("media", "/movie//clip.mp4"))
        assert upload.object_key == "movie/clip.mp4"

        for number, body in ((2, b"world"), (1, b"hello ")):
            etag = asyncio.run(
                service.upload_part("media", upload.upload_id, number, chunks(body))
            )
            assert etag == hashlib.md5(body).hexdigest()

        completed = asyncio.run(service.complete("media", upload.upload_id, [1, 2, 5]))
        assert completed.object_key == "movie/clip.mp4"
        assert completed.assembled_parts == (1, 2)
        assert completed.missing_parts == (5,)
        assert completed.size == 11
        assert completed.etag == hashlib.md5(b"hello world").hexdigest()
        assert (layout.root / "media" / "movie" / "clip.mp4").read_bytes() == b"hello world"

        with pytest.raises(NoSuchUpload):
            service.ensure_upload("media", upload.upload_id)

    def test_upload_ids_are_unique_hex(self, layout, buckets) -> None:
        service = MultipartService(layout)
        ids = {asyncio.run(service.initiate("media", "k")).upload_id for _ in range(5)}
        assert len(ids) == 5
        assert all(len(value) == 32 and int(value, 16) >= 0 for value in ids)

    def test_initiate_requires_bucket(self, layout) -> None:
        with pytest.raises(NoSuchBucket):
            asyncio.run(MultipartService(layout).initiate("nowhere", "k"))

    def test_abort_unknown_upload_is_noop(self, layout, buckets) -> None:
        service = MultipartService(layout)
        service.abort("media", "f" * 32)
        service.abort("media", "not-an-id")
        service.abort("media", None)

    def test_part_after_abort_is_rejected(self, layout, buckets) -> None:
        service = MultipartService(layout)
        upload = asyncio.run(service.initiate("media", "k"))
        service.abort("media", upload.upload_id)
        with pytest.raises(NoSuchUpload):
            asyncio.run(service.upload_part("media", upload.upload_id, 1, chunks(b"x")))
        assert not layout.upload_dir("media", upload.upload_id).exists()

    def test_part_number_bounds(self, layout) -> None:
        service = MultipartService(layout, max_part_number=3)
        assert service.parse_part_number("3") == 3
        for raw in ("4", "0", "", None, "1.5"):
            with pytest.raises(InvalidArgument):
                service.parse_part_number(raw)

    def test_unbounded_part_numbers(self, layout) -> None:
        service = MultipartService(layout, max_part_number=0)
        assert service.parse_part_number("123456") == 123456
