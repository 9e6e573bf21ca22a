"""User-facing messages for browsing and sharing failures."""

from __future__ import annotations

from urllib.error import URLError

from stl_share.access.clients import GatewayError, ShareExpiredError
from stl_share.drive.client import DriveApiError, DriveAuthError
from stl_share.tokens.service import InvalidTokenError, TokenExpiredError

NO_ACCESS_TOKEN = "No access token available. Please sign in again."
FOLDER_NOT_FOUND = (
    "Could not find the selected folder. Please choose a different root folder in Settings."
)
DRIVE_API_ERROR = "Failed to access Google Drive. Please check your permissions."
AUTH_ERROR = "Authentication failed. Please try signing in again."
NETWORK_ERROR = "Network error. Please check your internet connection."
LINK_EXPIRED = "This share link has expired. Please request a new link."
LINK_INVALID = "This share link is invalid."
UNEXPECTED_ERROR = "An unexpected error occurred"


def friendly_error_message(exc: BaseException) -> str:
    """Map an exception from the browsing stack to a message for display."""
    if isinstance(exc, (ShareExpiredError, TokenExpiredError)):
        return LINK_EXPIRED
    if isinstance(exc, InvalidTokenError):
        return LINK_INVALID
    if isinstance(exc, GatewayError):
        return LINK_INVALID if exc.status_code == 401 else exc.message
    if isinstance(exc, DriveAuthError):
        return AUTH_ERROR
    if isinstance(exc, DriveApiError):
        if exc.status_code in (401, 403):
            return AUTH_ERROR
        if exc.status_code == 404:
            return FOLDER_NOT_FOUND
        return DRIVE_API_ERROR
    if isinstance(exc, (URLError, TimeoutError, ConnectionError)):
        return NETWORK_ERROR
    return str(exc) or UNEXPECTED_ERROR
