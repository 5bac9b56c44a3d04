from __future__ import annotations

from email.utils import formatdate
from urllib.parse import quote

from fastapi import Request, Response
from fastapi.responses import StreamingResponse

from locals3.api.s3.documents import quote_etag
from locals3.api.s3.routing import S3Request
from locals3.app.services.bundle import ServiceBundle
from locals3.app.services.object_service import ObjectHead


def content_disposition(key: str) -> str:
    """Build an inline Content-Disposition for the key's last segment."""
    filename = key.rsplit("/", 1)[-1]
    if filename.isascii() and '"' not in filename and "\\" not in filename:
        return f'inline; filename="{filename}"'
    return f"inline; filename*=UTF-8''{quote(filename, safe='')}"


def object_headers(head: ObjectHead) -> dict[str, str]:
    return {
        "Content-Type": head.content_type,
        "Content-Length": str(head.size),
        "ETag": quote_etag(head.etag),
        "Last-Modified": formatdate(head.last_modified.timestamp(), usegmt=True),
        "Accept-Ranges": "bytes",
    }


async def put_object(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    written = await services.object().put_object(
        target.bucket, target.key, request.stream()
    )
    return Response(status_code=200, headers={"ETag": quote_etag(written.etag)})


async def get_object(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    read = await services.object().get_object(
        target.bucket, target.key, range_header=request.headers.get("range")
    )
    headers = object_headers(read.head)
    headers["Content-Length"] = str(read.content_length)
    headers["Content-Disposition"] = content_disposition(target.key)
    status_code = 200
    if read.byte_range is not None:
        status_code = 206
        headers["Content-Range"] = read.byte_range.content_range
    return StreamingResponse(read.body, status_code=status_code, headers=headers)


async def head_object(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    head = await services.object().head_object(target.bucket, target.key)
    return Response(status_code=200, headers=object_headers(head))


async def delete_object(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    services.object().delete_object(target.bucket, target.key)
    return Response(status_code=204)
