"""Folder navigation state machine with a breadcrumb stack."""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable
from typing import TYPE_CHECKING

from stl_share.access.clients import DriveAccess, drive_access_for
from stl_share.access.context import access_context_from_credential
from stl_share.access.search import DEFAULT_MAX_DEPTH, PreviewImageFinder
from stl_share.drive.models import DriveEntry, FolderContents
from stl_share.errors import friendly_error_message
from stl_share.navigation.cache import PreviewCache
from stl_share.navigation.paths import Breadcrumb, breadcrumb_display, current_folder

if TYPE_CHECKING:
    from stl_share.config import AppConfig

logger = logging.getLogger(__name__)


class LoadState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    LOADING = "loading"
    READY = "ready"
    ERRORED = "errored"


class FolderNavigator:
    """Owns one browsing session: the breadcrumb stack and the current folder's contents.

    Every navigation action loads the target folder through the session's
    DriveAccess. The stack is only changed once the load succeeds, so a
    failed action can be retried by calling it again. A failure leaves the
    previous contents in place and moves to ERRORED with a message.
    """

    def __init__(
        self,
        access: DriveAccess,
        cache: PreviewCache | None = None,
        image_search_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        """Initialise the navigator.

        Args:
            access: Direct or proxied access for this session.
            cache: Preview cache for this session; a fresh one if omitted.
            image_search_depth: Depth limit for folder preview image search.
        """
        self._access = access
        self._cache = cache if cache is not None else PreviewCache()
        self._finder = PreviewImageFinder(access, self._cache, max_depth=image_search_depth)
        self._stack: list[Breadcrumb] = []
        self._contents = FolderContents()
        self._state = LoadState.UNINITIALIZED
        self._error: str | None = None
        self._last_exception: Exception | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state is LoadState.LOADING

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def friendly_error(self) -> str | None:
        if self._last_exception is None:
            return None
        return friendly_error_message(self._last_exception)

    @property
    def breadcrumbs(self) -> tuple[Breadcrumb, ...]:
        return tuple(self._stack)

    @property
    def current_folder(self) -> Breadcrumb | None:
        return current_folder(self._stack)

    @property
    def path_display(self) -> str:
        return breadcrumb_display(self._stack)

    @property
    def contents(self) -> FolderContents:
        return self._contents

    @property
    def cache(self) -> PreviewCache:
        return self._cache

    @property
    def access(self) -> DriveAccess:
        return self._access

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def initialize(self, root_id: str, root_name: str) -> bool:
        """Start a session at a root folder, discarding any previous session state."""
        self._stack = [Breadcrumb(root_id, root_name)]
        self._contents = FolderContents()
        self._cache.clear()
        return self._load(root_id) is not None

    def navigate_to(self, folder_id: str, folder_name: str) -> bool:
        """Descend into a folder and push it onto the breadcrumb stack."""
        if self._load(folder_id) is None:
            return False
        self._stack.append(Breadcrumb(folder_id, folder_name))
        return True

    def go_back_to(self, index: int) -> bool:
        """Return to a breadcrumb, dropping everything after it.

        An index outside the stack is ignored and leaves all state unchanged.
        """
        if index < 0 or index >= len(self._stack):
            logger.info("[go_back_to] ignoring out-of-range index; index:%d", index)
            return False
        target = self._stack[index]
        if self._load(target.id) is None:
            return False
        del self._stack[index + 1 :]
        return True

    def refresh(self) -> bool:
        """Reload the current folder without touching the stack."""
        folder = self.current_folder
        if folder is None:
            return False
        return self._load(folder.id) is not None

    def _load(self, folder_id: str) -> FolderContents | None:
        self._state = LoadState.LOADING
        self._error = None
        self._last_exception = None
        try:
            entries = self._access.list_folder_contents(folder_id)
        except Exception as exc:
            logger.warning(
                "[_load] folder load failed; folder_id:%s;error:%s", folder_id, exc, exc_info=True
            )
            self._state = LoadState.ERRORED
            self._error = str(exc) or type(exc).__name__
            self._last_exception = exc
            return None

        for entry in entries:
            self._cache.put_metadata(entry)
        self._contents = FolderContents.partition(entries)
        self._state = LoadState.READY
        logger.info(
            "[_load] folder loaded; folder_id:%s;folders:%d;images:%d;stl_files:%d",
            folder_id,
            len(self._contents.folders),
            len(self._contents.images),
            len(self._contents.stl_files),
        )
        return self._contents

    # ------------------------------------------------------------------
    # Previews
    # ------------------------------------------------------------------

    def thumbnail_url(self, file_id: str) -> str:
        """Return a cached thumbnail URL, fetching it on first use."""
        cached = self._cache.get_thumbnail(file_id)
        if cached is not None:
            return cached
        url = self._access.get_thumbnail_url(file_id)
        self._cache.put_thumbnail(file_id, url)
        return url

    def file_url(self, file_id: str) -> str:
        return self._access.get_file_url(file_id)

    def folder_preview_image(
        self, folder: DriveEntry, cancel: threading.Event | None = None
    ) -> str | None:
        """Find an image representing a child folder of the current folder."""
        parent = self.current_folder
        return self._finder.folder_preview_image(
            folder.id, folder.name, parent.id if parent else None, cancel
        )

    def stl_preview_image(self, stl_file: DriveEntry) -> str | None:
        """Find an image named after an STL file in the current folder."""
        parent = self.current_folder
        if parent is None:
            return None
        return self._finder.stl_preview_image(stl_file, parent.id)


def folder_navigator_from_config(
    config: AppConfig,
    credential: str,
    token_refresher: Callable[[], str] | None = None,
) -> FolderNavigator:
    """Start a browsing session for a credential string.

    The credential is classified once using ``config.preview_prefix``: a
    prefixed value browses through the gateway with a share token, anything
    else browses Drive directly as the owner.

    Args:
        config: Application configuration instance.
        credential: Owner bearer token, or a share token carrying the preview prefix.
        token_refresher: Supplies a fresh owner token after a 401 (owner sessions only).

    Returns:
        A FolderNavigator with its own empty preview cache.

    Raises:
        ValueError: If the credential is empty or carries no token after the prefix.
    """
    context = access_context_from_credential(credential, config.preview_prefix)
    access = drive_access_for(context, config, token_refresher=token_refresher)
    return FolderNavigator(access, image_search_depth=config.max_image_search_depth)
