from __future__ import annotations

import logging
from typing import Mapping, Protocol

from locals3.common.config import Settings

logger = logging.getLogger("auth")

CREDENTIAL_MARKER = "Credential="


class CredentialGuard(Protocol):
    """Decides whether a request carries an authorized identity.

    ``headers`` must be a case-insensitive mapping (Starlette ``Headers``).
    """

    def is_authorized(self, headers: Mapping[str, str]) -> bool: ...


class AccessKeyCredentialGuard:
    """Accepts any request whose Authorization header names the access key.

    The header is only searched for ``Credential=<access key>``; the request
    signature is not verified. A blank access key authorizes nobody.
    """

    def __init__(self, access_key: str):
        self._access_key = access_key

    def is_authorized(self, headers: Mapping[str, str]) -> bool:
        authorization = headers.get("authorization")
        if not authorization:
            return False
        if not self._access_key:
            logger.debug("auth_rejected reason=access_key_not_configured")
            return False
        if f"{CREDENTIAL_MARKER}{self._access_key}" not in authorization:
            logger.debug("auth_rejected reason=credential_mismatch")
            return False
        return True


def build_credential_guard(settings: Settings) -> CredentialGuard:
    return AccessKeyCredentialGuard(settings.ACCESS_KEY)
