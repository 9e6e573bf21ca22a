"""Google Drive REST API client with single-retry credential refresh."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib import request as urllib_request
from urllib.error import HTTPError
from urllib.parse import quote, urlencode

from stl_share.config import DEFAULT_DRIVE_API_BASE
from stl_share.drive.models import (
    FIELD_FILES,
    FIELD_NEXT_PAGE_TOKEN,
    MIME_FOLDER,
    MIME_IMAGE_PREFIX,
    MIME_OCTET_STREAM,
    DriveEntry,
)

logger = logging.getLogger(__name__)

ENTRY_FIELDS = "id,name,mimeType,modifiedTime,size,parents,iconLink,thumbnailLink"
LIST_FIELDS = f"nextPageToken,files({ENTRY_FIELDS})"
DEFAULT_ORDER_BY = "folder,name"
DEFAULT_TIMEOUT = 30.0

AUTH_EXPIRED_MESSAGE = "Authentication expired. Please sign in again."


class DriveApiError(Exception):
    """Raised when the Drive API returns a non-2xx response."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"Drive API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class DriveAuthError(Exception):
    """Raised when the owner credential is still rejected after one refresh."""


@dataclass(frozen=True)
class DriveContent:
    """Raw media bytes downloaded from Drive."""

    data: bytes
    content_type: str


def quote_query_value(value: str) -> str:
    """Escape a value for use inside a single-quoted Drive query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def children_query(folder_id: str) -> str:
    return f"'{quote_query_value(folder_id)}' in parents and trashed = false"


class DriveClient:
    """Bearer-authenticated client for the Drive v3 REST API.

    When a ``token_refresher`` is supplied, a 401 response triggers exactly
    one refresh of the access token and one replay of the same request; a
    second 401 raises DriveAuthError.
    """

    def __init__(
        self,
        access_token: str,
        token_refresher: Callable[[], str] | None = None,
        base_url: str = DEFAULT_DRIVE_API_BASE,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialise the client.

        Args:
            access_token: OAuth bearer token (owner or service identity).
            token_refresher: Returns a fresh access token after a 401.
            base_url: Drive API base URL.
            timeout: Socket timeout in seconds for every request.
        """
        self._access_token = access_token
        self._token_refresher = token_refresher
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def access_token(self) -> str:
        return self._access_token

    @property
    def base_url(self) -> str:
        return self._base_url

    def url(self, path: str, params: dict[str, str] | None = None) -> str:
        """Build an absolute API URL from a path relative to the base URL."""
        url = f"{self._base_url}{path}"
        if params:
            url = f"{url}?{urlencode(params, quote_via=quote)}"
        return url

    def file_url(self, file_id: str) -> str:
        """Return the media download URL for a file."""
        return self.url(f"/files/{quote(file_id, safe='')}", {"alt": "media"})

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _open(
        self, url: str, method: str, data: bytes | None, headers: dict[str, str]
    ) -> tuple[bytes, str]:
        req = urllib_request.Request(
            url,
            data=data,
            headers={**headers, "Authorization": f"Bearer {self._access_token}"},
            method=method,
        )
        with urllib_request.urlopen(req, timeout=self._timeout) as resp:
            content_type = resp.headers.get("Content-Type", MIME_OCTET_STREAM)
            return resp.read(), content_type

    def _send(
        self,
        url: str,
        method: str = "GET",
        data: bytes | None = None,
        headers: dict[str, str] | None = None,
    ) -> tuple[bytes, str]:
        """Send a request, refreshing the credential once on a 401.

        Returns:
            Tuple of (body bytes, response content type).

        Raises:
            DriveAuthError: If the refreshed credential is rejected too, or the
                refresh itself fails.
            DriveApiError: For any other non-2xx response.
        """
        headers = headers or {}
        refreshed = False
        while True:
            try:
                return self._open(url, method, data, headers)
            except HTTPError as exc:
                if exc.code == 401 and self._token_refresher is not None:
                    if refreshed:
                        logger.warning("[_send] refreshed access token rejected; giving up")
                        raise DriveAuthError(AUTH_EXPIRED_MESSAGE) from exc
                    logger.info("[_send] access token rejected; refreshing once")
                    self._access_token = self._refresh(self._token_refresher)
                    refreshed = True
                    continue
                raise self._api_error(exc) from exc

    @staticmethod
    def _refresh(token_refresher: Callable[[], str]) -> str:
        try:
            token = token_refresher()
        except Exception as exc:
            logger.error("[_refresh] access token refresh failed", exc_info=True)
            raise DriveAuthError(AUTH_EXPIRED_MESSAGE) from exc
        if not token:
            raise DriveAuthError(AUTH_EXPIRED_MESSAGE)
        return token

    @staticmethod
    def _api_error(exc: HTTPError) -> DriveApiError:
        raw = exc.read()
        try:
            detail = json.loads(raw).get("error", {}).get("message", exc.reason)
        except Exception:
            detail = exc.reason
        return DriveApiError(exc.code, str(detail))

    # ------------------------------------------------------------------
    # API calls
    # ------------------------------------------------------------------

    def get(self, path: str, params: dict[str, str] | None = None) -> dict[str, Any]:
        """Perform an authenticated GET request and parse the JSON body.

        Args:
            path: URL path relative to the base URL (must start with '/').
            params: Optional query parameters.

        Returns:
            Parsed JSON response body as a dict.
        """
        body, _ = self._send(self.url(path, params), headers={"Accept": "application/json"})
        return json.loads(body)  # type: ignore[no-any-return]

    def post_json(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Perform an authenticated POST with a JSON body."""
        body, _ = self._send(
            self.url(path),
            method="POST",
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json", "Accept": "application/json"},
        )
        return json.loads(body) if body else {}

    def get_content(self, file_id: str) -> DriveContent:
        """Download a file's media bytes.

        Args:
            file_id: Drive file ID.

        Returns:
            DriveContent with the bytes and Drive's reported content type.
        """
        data, content_type = self._send(self.file_url(file_id))
        return DriveContent(data=data, content_type=content_type)

    def get_metadata(self, file_id: str, fields: str = ENTRY_FIELDS) -> DriveEntry:
        raw = self.get(f"/files/{quote(file_id, safe='')}", {"fields": fields})
        return DriveEntry.from_api(raw)

    def search(
        self,
        query: str,
        fields: str = LIST_FIELDS,
        order_by: str | None = None,
    ) -> list[DriveEntry]:
        """Run a files.list query, following nextPageToken until exhausted.

        Args:
            query: Drive search query (``q`` parameter).
            fields: Partial response selector; must include nextPageToken.
            order_by: Optional ``orderBy`` value.

        Returns:
            All matching entries across every page.
        """
        entries: list[DriveEntry] = []
        page_token: str | None = None
        while True:
            params = {"q": query, "fields": fields}
            if order_by:
                params["orderBy"] = order_by
            if page_token:
                params["pageToken"] = page_token
            response = self.get("/files", params)
            entries.extend(DriveEntry.from_api(raw) for raw in response.get(FIELD_FILES, []))
            page_token = response.get(FIELD_NEXT_PAGE_TOKEN)
            if not page_token:
                return entries

    def list_children(self, folder_id: str, order_by: str = DEFAULT_ORDER_BY) -> list[DriveEntry]:
        """List the non-trashed children of a folder."""
        entries = self.search(children_query(folder_id), order_by=order_by)
        logger.info(
            "[list_children] listed folder; folder_id:%s;entry_count:%d", folder_id, len(entries)
        )
        return entries

    def search_in_folder(
        self, folder_id: str, mime_type_prefix: str = MIME_IMAGE_PREFIX
    ) -> list[DriveEntry]:
        """List the children of a folder whose MIME type contains a prefix."""
        query = (
            f"{children_query(folder_id)} and "
            f"mimeType contains '{quote_query_value(mime_type_prefix)}'"
        )
        return self.search(query, fields="nextPageToken,files(id,name,mimeType,parents)")

    def find_folder_by_name(self, name: str) -> DriveEntry | None:
        """Return the first non-trashed folder with exactly this name, if any."""
        query = (
            f"name = '{quote_query_value(name)}' and mimeType = '{MIME_FOLDER}' "
            "and trashed = false"
        )
        matches = self.search(query, fields="nextPageToken,files(id,name,mimeType)")
        return matches[0] if matches else None

    def create_permission(
        self, file_id: str, role: str = "reader", grantee_type: str = "anyone"
    ) -> dict[str, Any]:
        """Grant a permission on a file or folder."""
        result = self.post_json(
            f"/files/{quote(file_id, safe='')}/permissions",
            {"role": role, "type": grantee_type},
        )
        logger.info(
            "[create_permission] granted permission; file_id:%s;role:%s;type:%s",
            file_id,
            role,
            grantee_type,
        )
        return result


ROOT_FOLDER_NAME = "Clean STL"
ALTERNATIVE_ROOT_FOLDER_NAMES = ("STL Files", "STL Collection", "3D Models")


def find_root_folder(
    client: DriveClient,
    primary_name: str = ROOT_FOLDER_NAME,
    alternatives: tuple[str, ...] = ALTERNATIVE_ROOT_FOLDER_NAMES,
) -> DriveEntry | None:
    """Locate the owner's model library folder by name.

    Tries ``primary_name`` first, then each alternative in order.

    Returns:
        The first matching folder, or None if no candidate name exists.
    """
    for name in (primary_name, *alternatives):
        folder = client.find_folder_by_name(name)
        if folder is not None:
            logger.info(
                "[find_root_folder] found root folder; name:%s;folder_id:%s", name, folder.id
            )
            return folder
    logger.info("[find_root_folder] no root folder found; tried:%d", 1 + len(alternatives))
    return None
