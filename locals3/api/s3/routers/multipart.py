from __future__ import annotations

from urllib.parse import quote

from fastapi import Request, Response

from locals3.api.s3.documents import (
    parse_complete_multipart,
    quote_etag,
    render_complete_multipart,
    render_initiate_multipart,
    xml_response,
)
from locals3.api.s3.routing import S3Request
from locals3.app.services.bundle import ServiceBundle


def object_location(request: Request, bucket: str, key: str) -> str:
    base = str(request.base_url).rstrip("/")
    return f"{base}/{quote(bucket)}/{quote(key)}"


async def initiate_multipart(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    upload = await services.multipart().initiate(target.bucket, target.key)
    return xml_response(render_initiate_multipart(upload))


async def upload_part(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    multipart = services.multipart()
    part_number = multipart.parse_part_number(target.part_number)
    etag = await multipart.upload_part(
        target.bucket, target.upload_id or "", part_number, request.stream()
    )
    return Response(status_code=200, headers={"ETag": quote_etag(etag)})


async def complete_multipart(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    multipart = services.multipart()
    # An unknown upload is reported before the body is looked at.
    multipart.ensure_upload(target.bucket, target.upload_id)
    part_numbers = parse_complete_multipart(
        await request.body(), resource=target.resource
    )
    completed = await multipart.complete(
        target.bucket,
        target.upload_id or "",
        part_numbers,
        fallback_key=target.key,
    )
    location = object_location(request, completed.bucket, completed.object_key)
    return xml_response(render_complete_multipart(completed, location))


async def abort_multipart(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    services.multipart().abort(target.bucket, target.upload_id)
    return Response(status_code=204)
