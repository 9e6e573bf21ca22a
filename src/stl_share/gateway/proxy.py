"""Token-scoped Drive access for anonymous share-link visitors."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from stl_share.drive.client import DEFAULT_TIMEOUT, DriveClient, DriveContent
from stl_share.drive.credentials import ServiceCredentials, service_credentials_from_config
from stl_share.drive.models import FolderContents
from stl_share.tokens.models import ResourceType, SharePayload

if TYPE_CHECKING:
    from stl_share.config import AppConfig

logger = logging.getLogger(__name__)

DEFAULT_MAX_SHARE_DEPTH = 32


class ShareScopeError(Exception):
    """Raised when a valid token is used outside what it grants."""

    status_code = 403


class ResourceTypeMismatchError(ShareScopeError):
    """Raised when a file token hits a folder endpoint or vice versa."""

    status_code = 400


class OutsideShareError(ShareScopeError):
    """Raised when a requested item is not the shared file or inside the shared folder."""


class ShareProxy:
    """Serves Drive content for validated share tokens using the service identity.

    Each call obtains a service access token and issues its own Drive
    requests; nothing is retried here.
    """

    def __init__(
        self,
        credentials: ServiceCredentials,
        drive_api_base: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_share_depth: int = DEFAULT_MAX_SHARE_DEPTH,
    ) -> None:
        """Initialise the share proxy.

        Args:
            credentials: Service identity credential provider.
            drive_api_base: Drive API base URL.
            timeout: Socket timeout in seconds for Drive calls.
            max_share_depth: How many parent levels to walk when checking that
                an item lies inside a shared folder.
        """
        self._credentials = credentials
        self._drive_api_base = drive_api_base
        self._timeout = timeout
        self._max_share_depth = max_share_depth

    def _client(self) -> DriveClient:
        return DriveClient(
            self._credentials.access_token(),
            base_url=self._drive_api_base,
            timeout=self._timeout,
        )

    @staticmethod
    def _require(payload: SharePayload, expected: ResourceType) -> None:
        if payload.resource_type is not expected:
            logger.warning(
                "[_require] token used against wrong endpoint; resource_id:%s;"
                "token_type:%s;expected:%s",
                payload.resource_id,
                payload.resource_type.value,
                expected.value,
            )
            raise ResourceTypeMismatchError(f"Token is not for a {expected.value}")

    def _ensure_within_share(self, client: DriveClient, root_id: str, item_id: str) -> None:
        """Walk parent links upward until the shared folder is reached.

        Raises:
            OutsideShareError: If the shared folder is not an ancestor within
                ``max_share_depth`` levels.
        """
        frontier = [item_id]
        seen = {item_id}
        for _ in range(self._max_share_depth):
            next_frontier: list[str] = []
            for current in frontier:
                for parent in client.get_metadata(current, fields="id,parents").parents:
                    if parent == root_id:
                        return
                    if parent not in seen:
                        seen.add(parent)
                        next_frontier.append(parent)
            if not next_frontier:
                break
            frontier = next_frontier
        logger.warning(
            "[_ensure_within_share] item outside shared folder; root_id:%s;item_id:%s",
            root_id,
            item_id,
        )
        raise OutsideShareError("Requested item is outside the shared folder")

    def fetch_file(self, payload: SharePayload, resource_id: str | None = None) -> DriveContent:
        """Download the shared file.

        Args:
            payload: Validated payload of a file token.
            resource_id: Optional explicit file ID; must equal the token's resource.

        Raises:
            ResourceTypeMismatchError: If the token is for a folder.
            OutsideShareError: If ``resource_id`` names a different file.
        """
        self._require(payload, ResourceType.FILE)
        if resource_id and resource_id != payload.resource_id:
            raise OutsideShareError("Token does not grant access to this file")
        content = self._client().get_content(payload.resource_id)
        logger.info(
            "[fetch_file] relayed shared file; resource_id:%s;bytes:%d",
            payload.resource_id,
            len(content.data),
        )
        return content

    def fetch_folder_file(self, payload: SharePayload, file_id: str) -> DriveContent:
        """Download a file that lives somewhere inside the shared folder.

        Raises:
            ResourceTypeMismatchError: If the token is for a file.
            OutsideShareError: If the file is not inside the shared folder.
        """
        self._require(payload, ResourceType.FOLDER)
        client = self._client()
        self._ensure_within_share(client, payload.resource_id, file_id)
        content = client.get_content(file_id)
        logger.info(
            "[fetch_folder_file] relayed file from shared folder; root_id:%s;file_id:%s;bytes:%d",
            payload.resource_id,
            file_id,
            len(content.data),
        )
        return content

    def list_folder(self, payload: SharePayload, folder_id: str | None = None) -> FolderContents:
        """List the shared folder, or a sub-folder of it, partitioned for display.

        Raises:
            ResourceTypeMismatchError: If the token is for a file.
            OutsideShareError: If ``folder_id`` is not inside the shared folder.
        """
        self._require(payload, ResourceType.FOLDER)
        client = self._client()
        target = folder_id or payload.resource_id
        if target != payload.resource_id:
            self._ensure_within_share(client, payload.resource_id, target)
        return FolderContents.partition(client.list_children(target))


def share_proxy_from_config(config: AppConfig) -> ShareProxy:
    """Construct a ShareProxy from application configuration.

    Args:
        config: Application configuration instance.

    Returns:
        Configured ShareProxy instance.
    """
    return ShareProxy(
        credentials=service_credentials_from_config(config),
        drive_api_base=config.drive_api_base,
        timeout=config.request_timeout,
        max_share_depth=config.max_share_depth,
    )
