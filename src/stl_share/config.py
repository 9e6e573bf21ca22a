"""Application configuration loaded from environment variables."""

import os
from dataclasses import dataclass, field

DEFAULT_DRIVE_API_BASE = "https://www.googleapis.com/drive/v3"
DEFAULT_SERVICE_SCOPES = ("https://www.googleapis.com/auth/drive.readonly",)


@dataclass(frozen=True)
class AppConfig:
    """Centralized application configuration.

    Required fields have no defaults and will cause a KeyError at startup
    if the corresponding environment variable is missing. Domain constants
    have sensible defaults but can be overridden via environment variables.
    """

    # Required, no default
    token_secret: str

    # Overridable via environment
    drive_api_base: str = DEFAULT_DRIVE_API_BASE
    gateway_url: str = ""
    app_base_url: str = ""
    preview_prefix: str = "preview:"
    share_cache_max_age: int = 300
    request_timeout: float = 30.0
    max_image_search_depth: int = 5
    max_share_depth: int = 32
    service_scopes: tuple[str, ...] = field(default=DEFAULT_SERVICE_SCOPES)


def _split_scopes(raw: str) -> tuple[str, ...]:
    return tuple(scope.strip() for scope in raw.split(",") if scope.strip())


def load_config() -> AppConfig:
    """Construct an AppConfig from environment variables.

    Required environment variables:
        SS_TOKEN_SECRET: HMAC secret used to sign and verify share tokens.

    Optional environment variables (with defaults):
        SS_DRIVE_API_BASE: Drive REST API base URL.
        SS_GATEWAY_URL: Public base URL of this gateway (used for proxied links).
        SS_APP_BASE_URL: Base URL of the browsing UI (used for preview links).
        SS_PREVIEW_PREFIX: Marker that flags a credential as a preview token (default: preview:).
        SS_SHARE_CACHE_MAX_AGE: Cache-Control max-age for shared file content (default: 300).
        SS_REQUEST_TIMEOUT: Timeout in seconds for outbound Drive calls (default: 30).
        SS_MAX_IMAGE_SEARCH_DEPTH: Depth limit for folder preview image search (default: 5).
        SS_MAX_SHARE_DEPTH: Depth limit when checking an item lies inside a share (default: 32).
        SS_SERVICE_SCOPES: Comma-separated OAuth scopes for the service identity.

    Returns:
        Configured AppConfig instance.
    """
    scopes = os.environ.get("SS_SERVICE_SCOPES")
    return AppConfig(
        token_secret=os.environ["SS_TOKEN_SECRET"],
        drive_api_base=os.environ.get("SS_DRIVE_API_BASE", DEFAULT_DRIVE_API_BASE),
        gateway_url=os.environ.get("SS_GATEWAY_URL", ""),
        app_base_url=os.environ.get("SS_APP_BASE_URL", ""),
        preview_prefix=os.environ.get("SS_PREVIEW_PREFIX", "preview:"),
        share_cache_max_age=int(os.environ.get("SS_SHARE_CACHE_MAX_AGE", "300")),
        request_timeout=float(os.environ.get("SS_REQUEST_TIMEOUT", "30")),
        max_image_search_depth=int(os.environ.get("SS_MAX_IMAGE_SEARCH_DEPTH", "5")),
        max_share_depth=int(os.environ.get("SS_MAX_SHARE_DEPTH", "32")),
        service_scopes=_split_scopes(scopes) if scopes else DEFAULT_SERVICE_SCOPES,
    )
