from __future__ import annotations

import mimetypes
from pathlib import PurePath
from typing import Mapping

FALLBACK_CONTENT_TYPE = "application/octet-stream"

# Checked before the platform's mimetypes database.
DEFAULT_CONTENT_TYPES: Mapping[str, str] = {
    "mp4": "video/mp4",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "m4a": "audio/mp4",
    "aac": "audio/aac",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "pdf": "application/pdf",
    "txt": "text/plain",
    "xml": "application/xml",
    "json": "application/json",
    "html": "text/html",
    "css": "text/css",
    "js": "application/javascript",
}


class ContentTypeResolver:
    """Maps an object name to a content type.

    Lookup order: the extension table, then ``mimetypes``, then
    ``application/octet-stream``.
    """

    def __init__(self, table: Mapping[str, str] | None = None):
        source = DEFAULT_CONTENT_TYPES if table is None else table
        self._table = {ext.lower().lstrip("."): value for ext, value in source.items()}

    def resolve(self, name: str | PurePath) -> str:
        filename = PurePath(name).name
        extension = PurePath(filename).suffix.lower().lstrip(".")
        if extension and extension in self._table:
            return self._table[extension]
        guessed, _ = mimetypes.guess_type(filename)
        return guessed or FALLBACK_CONTENT_TYPE
