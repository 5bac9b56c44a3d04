"""Local filesystem storage primitives.

Path layout and traversal checks, streaming file helpers, and the
content-type lookup used by the object services.
"""

from .content_types import ContentTypeResolver
from .files import (
    WrittenFile,
    handle_md5,
    iter_file,
    iter_handle,
    open_snapshot,
    write_stream_atomic,
)
from .layout import StorageLayout

__all__ = [
    "ContentTypeResolver",
    "StorageLayout",
    "WrittenFile",
    "handle_md5",
    "iter_file",
    "iter_handle",
    "open_snapshot",
    "write_stream_atomic",
]
