"""Owner-side share link creation: public Drive links and tokenized preview links."""

from __future__ import annotations

import logging

from stl_share.drive.client import DriveClient
from stl_share.tokens.models import ResourceType
from stl_share.tokens.service import TokenService

logger = logging.getLogger(__name__)

DRIVE_WEB_BASE = "https://drive.google.com"
PREVIEW_PATH = "preview"


def public_link(resource_id: str, resource_type: ResourceType | str) -> str:
    """Return the public Drive URL for a file or folder."""
    kind = (
        resource_type
        if isinstance(resource_type, ResourceType)
        else ResourceType.parse(resource_type)
    )
    if kind is ResourceType.FOLDER:
        return f"{DRIVE_WEB_BASE}/drive/folders/{resource_id}"
    return f"{DRIVE_WEB_BASE}/uc?id={resource_id}"


def make_public(client: DriveClient, resource_id: str, resource_type: ResourceType | str) -> str:
    """Grant anyone-with-the-link read access and return the public URL.

    Args:
        client: DriveClient holding the owner's credential.
        resource_id: Drive object ID.
        resource_type: File or folder.

    Returns:
        Public Drive URL for the resource.
    """
    client.create_permission(resource_id, role="reader", grantee_type="anyone")
    return public_link(resource_id, resource_type)


def preview_link(app_base_url: str, token: str) -> str:
    """Return the browsing UI URL that opens a share token."""
    return f"{app_base_url.rstrip('/')}/{PREVIEW_PATH}/{token}"


def create_preview_link(
    tokens: TokenService,
    app_base_url: str,
    resource_id: str,
    resource_type: ResourceType | str,
    ttl_minutes: float,
) -> str:
    """Issue a share token and wrap it in a preview URL.

    Raises:
        ValueError: If the token arguments are invalid or no base URL is configured.
    """
    if not app_base_url:
        raise ValueError("App base URL is not configured")
    token = tokens.issue(resource_id, resource_type, ttl_minutes)
    logger.info("[create_preview_link] created preview link; resource_id:%s", resource_id)
    return preview_link(app_base_url, token)
