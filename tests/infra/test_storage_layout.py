from __future__ import annotations

import asyncio
import hashlib
import os

import pytest

from locals3.common.errors import InvalidArgument, InvalidBucketName, NoSuchUpload
from locals3.infra.storage.content_types import ContentTypeResolver
from locals3.infra.storage.files import file_md5_sync, iter_file, write_stream_atomic
from locals3.infra.storage.layout import (
    StorageLayout,
    is_valid_upload_id,
    normalize_key,
    split_key,
)


class TestLayout:
    def test_paths(self, layout) -> None:
        assert layout.object_path("b", "x/y.txt") == layout.root / "b" / "x" / "y.txt"
        upload_id = "a" * 32
        assert layout.part_path("b", upload_id, 7) == (
            layout.root / ".staging" / "b" / upload_id / "7.part"
        )
        assert layout.tmp_dir == layout.root / ".staging" / ".tmp"

    @pytest.mark.parametrize("key", ["../x", "a/../../x", "./x", "a/./b", "nul\x00byte"])
    def test_key_traversal_rejected(self, layout, key) -> None:
        with pytest.raises(InvalidArgument):
            layout.object_path("b", key)

    @pytest.mark.parametrize("key", ["", "/", "//"])
    def test_empty_key_rejected(self, layout, key) -> None:
        with pytest.raises(InvalidArgument):
            layout.object_path("b", key)

    @pytest.mark.parametrize("bucket", ["", ".", "..", ".staging", "_admin", "a/b", "a\\b"])
    def test_bucket_names_rejected(self, layout, bucket) -> None:
        with pytest.raises(InvalidBucketName):
            layout.bucket_path(bucket)

    def test_symlink_escape_rejected(self, layout, tmp_path) -> None:
        outside = tmp_path / "outside"
        outside.mkdir()
        (layout.root / "b").mkdir()
        os.symlink(outside, layout.root / "b" / "link")
        with pytest.raises(InvalidArgument):
            layout.object_path("b", "link/secret.txt")

    def test_upload_id_validation(self, layout) -> None:
        assert is_valid_upload_id("0123456789abcdef" * 2)
        for value in (None, "", "ABCDEF" * 6, "a" * 31, "../" + "a" * 29):
            assert not is_valid_upload_id(value)
        with pytest.raises(NoSuchUpload):
            layout.upload_dir("b", "../../etc")

    def test_key_helpers(self) -> None:
        assert split_key("/a//b/c/") == ["a", "b", "c"]
        assert normalize_key("a//b") == "a/b"

    def test_hidden_names(self) -> None:
        layout = StorageLayout("/srv/data")
        assert layout.is_hidden(".staging")
        assert not layout.is_hidden("photos")


class TestFiles:
    def test_atomic_write_and_read_back(self, layout) -> None:
        async def source():
            for _ in range(10):
                yield b"z" * 10_000

        destination = layout.root / "b" / "deep" / "file.bin"
        written = asyncio.run(
            write_stream_atomic(source(), destination, tmp_dir=layout.tmp_dir)
        )
        expected = b"z" * 100_000
        assert written.size == len(expected)
        assert written.etag == hashlib.md5(expected).hexdigest()
        assert file_md5_sync(destination) == written.etag

        async def read_slice():
            return b"".join(
                [chunk async for chunk in iter_file(destination, start=5, length=20, chunk_size=7)]
            )

        assert asyncio.run(read_slice()) == expected[5:25]

    def test_missing_parent_without_make_parents(self, layout) -> None:
        async def source():
            yield b"data"

        with pytest.raises(FileNotFoundError):
            asyncio.run(
                write_stream_atomic(
                    source(),
                    layout.root / "nope" / "file.bin",
                    tmp_dir=layout.tmp_dir,
                    make_parents=False,
                )
            )
        assert list(layout.tmp_dir.iterdir()) == []


class TestContentTypes:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("photo.JPG", "image/jpeg"),
            ("notes.txt", "text/plain"),
            ("data.json", "application/json"),
            ("no-extension", "application/octet-stream"),
        ],
    )
    def test_resolve(self, name, expected) -> None:
        assert ContentTypeResolver().resolve(name) == expected

    def test_custom_table_takes_precedence(self) -> None:
        resolver = ContentTypeResolver({"txt": "text/x-custom"})
        assert resolver.resolve("a.txt") == "text/x-custom"
