"""Content access abstraction: one browsing interface over two credential modes.

Direct access talks to the Drive API with the owner's bearer token. Proxied
access holds a share token and goes through the gateway's token-scoped
endpoints, which can only list the one shared subtree.
"""

from __future__ import annotations

import abc
import base64
import json
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any
from urllib import request as urllib_request
from urllib.error import HTTPError
from urllib.parse import quote, urlencode

from stl_share.access.context import AccessContext, OwnerCredential, PreviewToken
from stl_share.drive.client import DEFAULT_TIMEOUT, DriveClient
from stl_share.drive.models import DriveEntry, FolderContents
from stl_share.gateway.routes import (
    PARAM_FILE_ID,
    PARAM_FOLDER_ID,
    PARAM_TOKEN,
    ROUTE_SHARED_FILE,
    ROUTE_SHARED_FOLDER,
    ROUTE_SHARED_FOLDER_FILE,
    ROUTE_VALIDATE_TOKEN,
)
from stl_share.tokens.models import FIELD_RESOURCE_ID, FIELD_RESOURCE_TYPE, ResourceType

if TYPE_CHECKING:
    from stl_share.config import AppConfig

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Raised when a gateway endpoint returns a non-2xx response."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ShareExpiredError(GatewayError):
    """Raised when the gateway reports the share token as expired."""


class DriveAccess(abc.ABC):
    """Capabilities the navigation layer needs from either access mode."""

    @abc.abstractmethod
    def get_file_url(self, file_id: str) -> str:
        """Return a URL the viewer can fetch the file's content from."""

    @abc.abstractmethod
    def get_thumbnail_url(self, file_id: str) -> str:
        """Return a URL suitable for displaying an image thumbnail."""

    @abc.abstractmethod
    def list_folder_contents(self, folder_id: str | None) -> list[DriveEntry]:
        """List a folder's children (folders, images and STL files at least)."""

    @abc.abstractmethod
    def can_search_files(self) -> bool:
        """Whether supplementary queries (e.g. preview image search) are allowed."""


class DirectDriveAccess(DriveAccess):
    """Owner access straight to the Drive API."""

    def __init__(self, client: DriveClient) -> None:
        self._client = client

    @property
    def client(self) -> DriveClient:
        return self._client

    def get_file_url(self, file_id: str) -> str:
        return self._client.file_url(file_id)

    def get_thumbnail_url(self, file_id: str) -> str:
        """Download the image and return it as a self-contained ``data:`` URL."""
        content = self._client.get_content(file_id)
        encoded = base64.b64encode(content.data).decode("ascii")
        return f"data:{content.content_type};base64,{encoded}"

    def list_folder_contents(self, folder_id: str | None) -> list[DriveEntry]:
        if not folder_id:
            raise ValueError("Direct access requires a folder ID")
        return self._client.list_children(folder_id)

    def can_search_files(self) -> bool:
        return True


class ProxiedDriveAccess(DriveAccess):
    """Anonymous access through the gateway's token-scoped endpoints.

    File URLs point at the folder-scoped file endpoint, since browsing only
    happens inside shared folders. A single shared file is fetched through
    ``get_shared_file_url``.
    """

    def __init__(self, token: str, gateway_url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        if not gateway_url:
            raise ValueError("Gateway URL is not configured")
        self._token = token
        self._gateway_url = gateway_url.rstrip("/")
        self._timeout = timeout

    def _endpoint(self, route: str, **params: str | None) -> str:
        query = {PARAM_TOKEN: self._token}
        query.update({k: v for k, v in params.items() if v})
        return f"{self._gateway_url}/{route}?{urlencode(query, quote_via=quote)}"

    def get_file_url(self, file_id: str) -> str:
        return self._endpoint(ROUTE_SHARED_FOLDER_FILE, **{PARAM_FILE_ID: file_id})

    def get_shared_file_url(self) -> str:
        return self._endpoint(ROUTE_SHARED_FILE)

    def get_thumbnail_url(self, file_id: str) -> str:
        return self.get_file_url(file_id)

    def list_folder_contents(self, folder_id: str | None) -> list[DriveEntry]:
        """List a folder inside the share; ``None`` means the shared root folder."""
        body = self._request(self._endpoint(ROUTE_SHARED_FOLDER, **{PARAM_FOLDER_ID: folder_id}))
        return FolderContents.from_api(body).entries()

    def validate(self) -> tuple[str, ResourceType]:
        """Ask the gateway whether the token is valid.

        Returns:
            Tuple of (resource ID, resource type) the token grants access to.
        """
        body = self._request(
            f"{self._gateway_url}/{ROUTE_VALIDATE_TOKEN}",
            data=json.dumps({PARAM_TOKEN: self._token}).encode("utf-8"),
        )
        return body[FIELD_RESOURCE_ID], ResourceType.parse(body[FIELD_RESOURCE_TYPE])

    def can_search_files(self) -> bool:
        return False

    def _request(self, url: str, data: bytes | None = None) -> dict[str, Any]:
        headers = {"Accept": "application/json"}
        if data is not None:
            headers["Content-Type"] = "application/json"
        req = urllib_request.Request(
            url, data=data, headers=headers, method="POST" if data is not None else "GET"
        )
        try:
            with urllib_request.urlopen(req, timeout=self._timeout) as resp:
                return json.loads(resp.read())  # type: ignore[no-any-return]
        except HTTPError as exc:
            raise self._gateway_error(exc) from exc

    @staticmethod
    def _gateway_error(exc: HTTPError) -> GatewayError:
        try:
            body = json.loads(exc.read())
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        message = str(body.get("error") or exc.reason or "Gateway request failed")
        if body.get("expired"):
            logger.info("[_gateway_error] share token expired")
            return ShareExpiredError(exc.code, message)
        return GatewayError(exc.code, message)


def drive_access_for(
    context: AccessContext,
    config: AppConfig,
    token_refresher: Callable[[], str] | None = None,
) -> DriveAccess:
    """Build the access client for a session's credential.

    Args:
        context: The session's access context.
        config: Application configuration instance.
        token_refresher: Supplies a fresh owner token after a 401 (Direct only).

    Returns:
        DirectDriveAccess for an owner credential, ProxiedDriveAccess for a share token.
    """
    if isinstance(context, PreviewToken):
        return ProxiedDriveAccess(
            context.token, gateway_url=config.gateway_url, timeout=config.request_timeout
        )
    if isinstance(context, OwnerCredential):
        client = DriveClient(
            context.bearer,
            token_refresher=token_refresher,
            base_url=config.drive_api_base,
            timeout=config.request_timeout,
        )
        return DirectDriveAccess(client)
    raise TypeError(f"Unsupported access context: {type(context).__name__}")
