import logging

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from locals3.api.maintenance import MaintenanceModeMiddleware
from locals3.api.s3.documents import render_error, xml_response
from locals3.api.s3.routers.admin import router as admin_router
from locals3.api.s3.routers.s3 import router as s3_router
from locals3.app.services.bundle import get_service_bundle
from locals3.common.auth import build_credential_guard
from locals3.common.config import Settings, get_settings
from locals3.common.errors import InternalError, InvalidRange, S3Error
from locals3.common.logging import setup_logging
from locals3.infra.observability.metrics import render_metrics
from locals3.infra.observability.middleware import (
    ObservabilityMiddleware,
    get_request_id,
    request_id_headers,
)
from locals3.infra.storage.layout import StorageLayout

ERROR_CODE_BY_STATUS = {
    400: "InvalidRequest",
    403: "AccessDenied",
    404: "NotFound",
    405: "MethodNotAllowed",
    411: "MissingContentLength",
    413: "EntityTooLarge",
    416: "InvalidRange",
    500: "InternalError",
    501: "NotImplemented",
    503: "ServiceUnavailable",
}

EXPOSED_HEADERS = ["ETag", "Content-Range", "Accept-Ranges", "x-amz-request-id"]


def _resolve_error_code(status_code: int) -> str:
    if status_code >= 500:
        return ERROR_CODE_BY_STATUS.get(status_code, "InternalError")
    return ERROR_CODE_BY_STATUS.get(status_code, "InvalidRequest")


def _error_response(
    request: Request,
    *,
    code: str,
    message: str,
    resource: str,
    status_code: int,
    headers: dict[str, str] | None = None,
) -> Response:
    request_id = get_request_id(request)
    response_headers = request_id_headers(request_id)
    response_headers.update(headers or {})
    # HEAD responses carry the status only.
    if request.method == "HEAD":
        return Response(status_code=status_code, headers=response_headers)
    return xml_response(
        render_error(code, message, resource, request_id),
        status_code=status_code,
        headers=response_headers,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings)
    layout = StorageLayout(settings.STORAGE_ROOT)
    layout.ensure()

    # Buckets own the path namespace, so the interactive docs stay disabled.
    app = FastAPI(
        title="locals3",
        version="1.0.0",
        description="S3-compatible object storage on a local filesystem",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.settings = settings
    app.state.services = get_service_bundle(settings, layout=layout)
    app.state.credential_guard = build_credential_guard(settings)

    app.add_middleware(MaintenanceModeMiddleware, enabled=settings.MAINTENANCE_MODE)

    # Optional CORS
    if settings.CORS_ENABLED:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.CORS_ORIGINS or ["*"],
            allow_methods=["*"],
            allow_headers=["*"],
            expose_headers=EXPOSED_HEADERS,
        )

    app.add_middleware(ObservabilityMiddleware, enable_metrics=settings.ENABLE_METRICS)

    # Fixed routes must precede the S3 catch-all.
    app.include_router(admin_router, tags=["admin"])
    if settings.ENABLE_METRICS:

        @app.get("/_admin/metrics", include_in_schema=False)
        async def metrics() -> Response:
            payload, content_type = render_metrics()
            return Response(content=payload, media_type=content_type)

    app.include_router(s3_router)

    @app.exception_handler(S3Error)
    async def s3_error_handler(request: Request, exc: S3Error):
        logger = logging.getLogger("http")
        logger.log(
            logging.WARNING if exc.status_code < 500 else logging.ERROR,
            "s3_error code=%s status=%s resource=%s method=%s path=%s",
            exc.code,
            exc.status_code,
            exc.resource,
            request.method,
            request.url.path,
            extra={
                "extra": {
                    "code": exc.code,
                    "status": exc.status_code,
                    "resource": exc.resource,
                    "method": request.method,
                    "path": request.url.path,
                    "request_id": get_request_id(request),
                }
            },
        )
        headers: dict[str, str] = {}
        if isinstance(exc, InvalidRange):
            headers["Content-Range"] = f"bytes */{exc.object_size}"
        return _error_response(
            request,
            code=exc.code,
            message=exc.message,
            resource=exc.resource,
            status_code=exc.status_code,
            headers=headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        logger = logging.getLogger("http")
        logger.log(
            logging.WARNING if exc.status_code < 500 else logging.ERROR,
            "http_exception status=%s detail=%s method=%s path=%s",
            exc.status_code,
            exc.detail,
            request.method,
            request.url.path,
            extra={
                "extra": {
                    "status": exc.status_code,
                    "detail": exc.detail,
                    "method": request.method,
                    "path": request.url.path,
                }
            },
        )
        return _error_response(
            request,
            code=_resolve_error_code(exc.status_code),
            message=str(exc.detail),
            resource=request.url.path,
            status_code=exc.status_code,
            headers=dict(exc.headers or {}),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_exception_handler(
        request: Request, exc: RequestValidationError
    ):
        return _error_response(
            request,
            code="InvalidArgument",
            message="Invalid request parameters",
            resource=request.url.path,
            status_code=400,
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        # Internal details stay in the log; the client sees a generic error.
        error = InternalError()
        return _error_response(
            request,
            code=error.code,
            message=error.message,
            resource=request.url.path,
            status_code=error.status_code,
        )

    startup_logger = logging.getLogger("locals3.startup")
    startup_logger.info(
        "storage gateway ready root=%s temp_buckets=%s maintenance=%s metrics=%s",
        layout.root,
        ",".join(sorted(settings.TEMP_BUCKETS)) or "-",
        settings.MAINTENANCE_MODE,
        settings.ENABLE_METRICS,
    )
    return app


def main() -> None:
    uvicorn.run("locals3.main:create_app", factory=True, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
