"""Single entry point for every S3 request.

FastAPI routes on path shape alone, while S3 selects an operation from the
method, the path and the query together, so all S3 traffic lands on one
catch-all route and is dispatched from there.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from fastapi import APIRouter, Depends, Request, Response

from locals3.api.s3.deps import get_credential_guard, get_services
from locals3.api.s3.routing import (
    S3_METHODS,
    Operation,
    S3Request,
    parse_request,
    requires_auth,
    resolve_operation,
)
from locals3.api.s3.routers import buckets, multipart, objects
from locals3.app.services.bundle import ServiceBundle
from locals3.common.auth import CredentialGuard
from locals3.common.errors import AccessDenied, NoSuchBucket

logger = logging.getLogger("http")

Handler = Callable[[Request, S3Request, ServiceBundle], Awaitable[Response]]

HANDLERS: dict[Operation, Handler] = {
    Operation.LIST_BUCKETS: buckets.list_buckets,
    Operation.CREATE_BUCKET: buckets.create_bucket,
    Operation.HEAD_BUCKET: buckets.head_bucket,
    Operation.LIST_OBJECTS: buckets.list_objects,
    Operation.INITIATE_MULTIPART: multipart.initiate_multipart,
    Operation.UPLOAD_PART: multipart.upload_part,
    Operation.COMPLETE_MULTIPART: multipart.complete_multipart,
    Operation.ABORT_MULTIPART: multipart.abort_multipart,
    Operation.PUT_OBJECT: objects.put_object,
    Operation.GET_OBJECT: objects.get_object,
    Operation.HEAD_OBJECT: objects.head_object,
    Operation.DELETE_OBJECT: objects.delete_object,
}

router = APIRouter()


@router.api_route("/{path:path}", methods=S3_METHODS, include_in_schema=False)
async def dispatch(
    request: Request,
    path: str,
    services: ServiceBundle = Depends(get_services),
    guard: CredentialGuard = Depends(get_credential_guard),
) -> Response:
    # Plain OPTIONS requests; CORS preflights are answered by the middleware.
    if request.method == "OPTIONS":
        return Response(status_code=200)

    target = parse_request(request.method, path, request.query_params)
    if target.key and not services.bucket().bucket_exists(target.bucket):
        raise NoSuchBucket(resource=target.bucket)

    operation = resolve_operation(target)
    request.state.operation = operation.value

    if requires_auth(operation) and not guard.is_authorized(request.headers):
        logger.warning(
            "access_denied operation=%s resource=%s",
            operation.value,
            target.resource or "/",
        )
        raise AccessDenied(resource=target.key or target.bucket or "/")

    logger.debug(
        "s3_dispatch operation=%s bucket=%s key=%s",
        operation.value,
        target.bucket,
        target.key,
    )
    return await HANDLERS[operation](request, target, services)
