from __future__ import annotations

import logging
import secrets

from fastapi import Query, Request

from locals3.app.services.bundle import ServiceBundle
from locals3.common.auth import CredentialGuard
from locals3.common.config import Settings
from locals3.common.errors import AccessDenied, ServiceUnavailable

logger = logging.getLogger("http")


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_services(request: Request) -> ServiceBundle:
    return request.app.state.services


def get_credential_guard(request: Request) -> CredentialGuard:
    return request.app.state.credential_guard


def require_cron_secret(
    request: Request, secret_key: str | None = Query(default=None)
) -> None:
    expected = get_app_settings(request).CRON_SECRET_KEY
    if not expected:
        raise ServiceUnavailable("Sweep endpoint is disabled", resource="sweep")
    if not secret_key or not secrets.compare_digest(
        secret_key.encode("utf-8"), expected.encode("utf-8")
    ):
        logger.warning(
            "cron_secret_mismatch provided=%s",
            bool(secret_key),
            extra={
                "extra": {
                    "path": request.url.path,
                    "client": request.client.host if request.client else None,
                }
            },
        )
        raise AccessDenied("Not Allowed", resource="sweep")
