from __future__ import annotations

from fastapi import Request, Response
from fastapi.concurrency import run_in_threadpool

from locals3.api.s3.documents import render_list_buckets, render_list_objects, xml_response
from locals3.api.s3.routing import S3Request
from locals3.app.services.bundle import ServiceBundle


async def list_buckets(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    buckets = await run_in_threadpool(services.bucket().list_buckets)
    return xml_response(render_list_buckets(buckets))


async def create_bucket(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    location = services.bucket().create_bucket(target.bucket)
    return Response(status_code=200, headers={"Location": location})


async def head_bucket(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    # Existence is reported through the status code alone.
    if services.bucket().bucket_exists(target.bucket):
        return Response(status_code=200)
    return Response(status_code=404)


async def list_objects(
    request: Request, target: S3Request, services: ServiceBundle
) -> Response:
    prefix = target.query.get("prefix", "")
    listing = await run_in_threadpool(
        services.bucket().list_objects, target.bucket, prefix=prefix
    )
    return xml_response(
        render_list_objects(listing, list_type=target.query.get("list-type"))
    )
