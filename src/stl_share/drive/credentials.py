"""Service-identity credential provisioning for the share gateway."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

import google.auth
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request

if TYPE_CHECKING:
    from stl_share.config import AppConfig

logger = logging.getLogger(__name__)


class ServiceCredentialError(Exception):
    """Raised when the gateway cannot obtain a service access token."""


class ServiceCredentials:
    """Exchanges the gateway's application default credentials for Drive access tokens.

    The underlying credentials object is loaded lazily and reused; it is
    refreshed only when google-auth reports it as no longer valid.
    """

    def __init__(self, scopes: Iterable[str]) -> None:
        self._scopes = list(scopes)
        self._credentials: Any = None

    def access_token(self) -> str:
        """Return a currently valid service access token.

        Raises:
            ServiceCredentialError: If credentials cannot be loaded or refreshed.
        """
        try:
            if self._credentials is None:
                self._credentials, project = google.auth.default(scopes=self._scopes)
                logger.info("[access_token] loaded service credentials; project:%s", project)
            if not self._credentials.valid:
                self._credentials.refresh(Request())
        except GoogleAuthError as exc:
            logger.error("[access_token] service credential acquisition failed", exc_info=True)
            raise ServiceCredentialError("Failed to get service account access token") from exc

        token = self._credentials.token
        if not token:
            raise ServiceCredentialError("Service credentials returned no access token")
        return str(token)


def service_credentials_from_config(config: AppConfig) -> ServiceCredentials:
    """Construct ServiceCredentials from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured ServiceCredentials instance.
    """
    return ServiceCredentials(scopes=config.service_scopes)
