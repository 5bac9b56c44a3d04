import logging
import secrets
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from locals3.infra.observability.metrics import LATENCY, REQUESTS

REQUEST_ID_HEADERS = ("x-amz-request-id", "X-Request-Id")
UNMATCHED_OPERATION = "unmatched"


def new_request_id() -> str:
    return secrets.token_hex(8).upper()


def get_request_id(request: Request) -> str:
    """Return the id assigned by the middleware, creating one if it never ran."""
    request_id = getattr(request.state, "request_id", None)
    if not request_id:
        request_id = request.headers.get("X-Request-Id") or new_request_id()
        request.state.request_id = request_id
    return request_id


def request_id_headers(request_id: str) -> dict[str, str]:
    return {name: request_id for name in REQUEST_ID_HEADERS}


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """Assigns request ids, writes the access log and records metrics."""

    # Query parameters that carry credentials; their values never reach the log.
    SENSITIVE_KEYS = {
        "secret_key",
        "x-amz-credential",
        "x-amz-signature",
        "x-amz-security-token",
        "awsaccesskeyid",
        "signature",
    }

    def __init__(self, app, enable_metrics: bool = True):
        super().__init__(app)
        self.enable_metrics = enable_metrics

    def _mask_query(self, request: Request) -> dict[str, str]:
        masked: dict[str, str] = {}
        for key, value in request.query_params.multi_items():
            masked[key] = "***" if key.lower() in self.SENSITIVE_KEYS else value
        return masked

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        request_id = request.headers.get("X-Request-Id") or new_request_id()
        request.state.request_id = request_id
        client_ip = request.headers.get("X-Forwarded-For")
        if client_ip:
            client_ip = client_ip.split(",")[0].strip()
        elif request.client:
            client_ip = request.client.host

        try:
            response = await call_next(request)
        except Exception as exc:
            elapsed = time.perf_counter() - start
            logger = logging.getLogger("http")
            logger.exception(
                "request_error method=%s path=%s status=%s duration_ms=%.3f request_id=%s",
                request.method,
                request.url.path,
                500,
                round(elapsed * 1000, 3),
                request_id,
                extra={
                    "extra": {
                        "method": request.method,
                        "path": request.url.path,
                        "status": 500,
                        "duration_ms": round(elapsed * 1000, 3),
                        "request_id": request_id,
                        "client_ip": client_ip,
                        "exception": repr(exc),
                    }
                },
            )
            raise

        elapsed = time.perf_counter() - start
        status_code = response.status_code
        operation = getattr(request.state, "operation", None) or UNMATCHED_OPERATION

        if self.enable_metrics:
            REQUESTS.labels(request.method, operation, str(status_code)).inc()
            LATENCY.labels(request.method, operation).observe(elapsed)

        for name, value in request_id_headers(request_id).items():
            if name not in response.headers:
                response.headers[name] = value

        logger = logging.getLogger("http")
        level = logging.INFO
        if status_code >= 500:
            level = logging.ERROR
        elif status_code >= 400:
            level = logging.WARNING

        duration_ms = round(elapsed * 1000, 3)
        logger.log(
            level,
            "request method=%s path=%s operation=%s status=%s duration_ms=%.3f "
            "request_id=%s client_ip=%s user_agent=%s",
            request.method,
            request.url.path,
            operation,
            status_code,
            duration_ms,
            request_id,
            client_ip or "-",
            request.headers.get("User-Agent") or "-",
            extra={
                "extra": {
                    "method": request.method,
                    "path": request.url.path,
                    "query": self._mask_query(request),
                    "operation": operation,
                    "status": status_code,
                    "duration_ms": duration_ms,
                    "request_id": request_id,
                    "client_ip": client_ip,
                    "user_agent": request.headers.get("User-Agent"),
                }
            },
        )
        return response
