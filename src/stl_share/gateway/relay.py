"""Generic Drive relay for the signed-in owner, used to avoid browser CORS limits."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from urllib import request as urllib_request
from urllib.error import HTTPError, URLError
from urllib.parse import urlsplit

from stl_share.drive.client import DEFAULT_TIMEOUT
from stl_share.drive.models import MIME_IMAGE_PREFIX, MIME_OCTET_STREAM, MIME_STL

if TYPE_CHECKING:
    from stl_share.config import AppConfig

logger = logging.getLogger(__name__)

BINARY_CONTENT_TYPES = (MIME_OCTET_STREAM, MIME_IMAGE_PREFIX, MIME_STL)
ALLOWED_METHODS = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"})


class RelayRequestError(Exception):
    """Raised when a relay request is rejected or cannot reach Drive."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


@dataclass(frozen=True)
class RelayResponse:
    """Upstream status and content, ready to send back to the caller."""

    status_code: int
    body: bytes
    content_type: str | None


def is_binary_content_type(content_type: str | None) -> bool:
    if not content_type:
        return False
    return any(marker in content_type for marker in BINARY_CONTENT_TYPES)


class DriveRelay:
    """Forwards owner-authenticated requests to Drive and relays the answer verbatim."""

    def __init__(self, allowed_base_url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        """Initialise the relay.

        Args:
            allowed_base_url: Only URLs on this scheme and host are forwarded.
            timeout: Socket timeout in seconds for the upstream call.
        """
        parts = urlsplit(allowed_base_url)
        self._allowed_origin = (parts.scheme, parts.netloc)
        self._timeout = timeout

    def _check_target(self, url: str) -> None:
        parts = urlsplit(url)
        if (parts.scheme, parts.netloc) != self._allowed_origin:
            logger.warning("[_check_target] refusing relay target; host:%s", parts.netloc)
            raise RelayRequestError(400, "URL is not a Drive API URL")

    def forward(
        self,
        url: str | None,
        authorization: str | None,
        method: str | None = None,
        headers: dict[str, Any] | None = None,
    ) -> RelayResponse:
        """Send the request upstream with the caller's Authorization header.

        Args:
            url: Absolute Drive API URL.
            authorization: The caller's Authorization header value.
            method: HTTP method, GET when omitted.
            headers: Extra headers to send; they may override Authorization.

        Returns:
            RelayResponse with Drive's status, body and content type. Binary
            content is passed through untouched; anything else must be JSON.

        Raises:
            RelayRequestError: 401 without Authorization, 400 for a missing or
                foreign URL or bad method/headers, 502 when Drive is unreachable
                or returns non-JSON text.
        """
        if not authorization:
            raise RelayRequestError(401, "Missing authorization header")
        if not url or not isinstance(url, str):
            raise RelayRequestError(400, "Missing URL parameter")
        self._check_target(url)
        if method is not None and not isinstance(method, str):
            raise RelayRequestError(400, "method must be a string")
        verb = (method or "GET").upper()
        if verb not in ALLOWED_METHODS:
            raise RelayRequestError(400, f"Unsupported method: {verb}")
        if headers is not None and not isinstance(headers, dict):
            raise RelayRequestError(400, "headers must be an object")

        forwarded = {"Authorization": authorization}
        forwarded.update({str(k): str(v) for k, v in (headers or {}).items()})
        req = urllib_request.Request(
            url,
            headers=forwarded,
            method=verb,
        )
        try:
            with urllib_request.urlopen(req, timeout=self._timeout) as resp:
                status, body = resp.status, resp.read()
                content_type = resp.headers.get("Content-Type")
        except HTTPError as exc:
            status, body = exc.code, exc.read()
            content_type = exc.headers.get("Content-Type") if exc.headers else None
        except (URLError, TimeoutError) as exc:
            logger.error("[forward] relay upstream unreachable; error:%s", exc)
            raise RelayRequestError(502, "Failed to reach Drive") from exc

        logger.info("[forward] relayed request; method:%s;status:%d", verb, status)
        if is_binary_content_type(content_type):
            return RelayResponse(status, body, content_type)
        if not body:
            return RelayResponse(status, b"", content_type)
        try:
            parsed = json.loads(body)
        except ValueError as exc:
            raise RelayRequestError(502, "Drive returned a non-JSON response") from exc
        return RelayResponse(status, json.dumps(parsed).encode("utf-8"), "application/json")


def drive_relay_from_config(config: AppConfig) -> DriveRelay:
    """Construct a DriveRelay from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured DriveRelay instance.
    """
    return DriveRelay(allowed_base_url=config.drive_api_base, timeout=config.request_timeout)
