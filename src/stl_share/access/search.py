"""Preview image discovery for folders and STL models."""

from __future__ import annotations

import logging
import threading
from collections import deque
from typing import TYPE_CHECKING

from stl_share.access.clients import DriveAccess
from stl_share.drive.models import DriveEntry, EntryKind, FolderContents

if TYPE_CHECKING:
    from stl_share.navigation.cache import PreviewCache

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 5

# Suffixes appended to an STL file's base name, in order of preference.
STL_PREVIEW_SUFFIXES = (
    ".png",
    ".jpg",
    ".jpeg",
    "_preview.png",
    "_preview.jpg",
    "_thumbnail.png",
    "_thumbnail.jpg",
)


class SearchCancelledError(Exception):
    """Raised when a preview image search is cancelled before it finishes."""


def _stem(name: str) -> str:
    base, dot, _ = name.rpartition(".")
    return base if dot else name


class PreviewImageFinder:
    """Finds representative images using supplementary Drive queries.

    Only runs when the access mode allows searching; otherwise every lookup
    returns ``None`` without touching the network.
    """

    def __init__(
        self,
        access: DriveAccess,
        cache: PreviewCache,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._access = access
        self._cache = cache
        self._max_depth = max_depth

    def _images_in(self, folder_id: str) -> list[DriveEntry]:
        return FolderContents.partition(self._access.list_folder_contents(folder_id)).images

    def find_first_image(
        self, folder_id: str, cancel: threading.Event | None = None
    ) -> DriveEntry | None:
        """Breadth-first search for the shallowest image under a folder.

        Folders deeper than ``max_depth`` levels below ``folder_id`` are not
        listed. Each folder is listed at most once.

        Raises:
            SearchCancelledError: If ``cancel`` is set between folder listings.
        """
        queue: deque[tuple[str, int]] = deque([(folder_id, 0)])
        visited = {folder_id}
        while queue:
            if cancel is not None and cancel.is_set():
                logger.info("[find_first_image] search cancelled; folder_id:%s", folder_id)
                raise SearchCancelledError(f"Image search under {folder_id} cancelled")
            current, depth = queue.popleft()
            contents = FolderContents.partition(self._access.list_folder_contents(current))
            if contents.images:
                return contents.images[0]
            if depth >= self._max_depth:
                continue
            for sub in contents.folders:
                if sub.id not in visited:
                    visited.add(sub.id)
                    queue.append((sub.id, depth + 1))
        return None

    def folder_preview_image(
        self,
        folder_id: str,
        folder_name: str,
        parent_folder_id: str | None = None,
        cancel: threading.Event | None = None,
    ) -> str | None:
        """Return the ID of an image representing a folder, or None.

        Looks first for an image in the parent folder named after the folder
        (``Creator.jpg`` for folder ``Creator``), then searches inside the
        folder. Results, including "no image", are cached per folder.
        """
        if not self._access.can_search_files():
            return None
        if self._cache.has_folder_image(folder_id):
            return self._cache.get_folder_image(folder_id)

        if parent_folder_id:
            wanted = folder_name.lower()
            for image in self._images_in(parent_folder_id):
                if _stem(image.name).lower() == wanted:
                    self._cache.put_folder_image(folder_id, image.id)
                    return image.id

        found = self.find_first_image(folder_id, cancel)
        image_id = found.id if found is not None else None
        self._cache.put_folder_image(folder_id, image_id)
        logger.info(
            "[folder_preview_image] resolved preview; folder_id:%s;found:%s",
            folder_id,
            image_id is not None,
        )
        return image_id

    def stl_preview_image(self, stl_file: DriveEntry, parent_folder_id: str) -> str | None:
        """Return the ID of an image in the same folder named after an STL file."""
        if not self._access.can_search_files() or stl_file.kind is not EntryKind.STL:
            return None
        base = stl_file.name[: -len(".stl")]
        by_name: dict[str, DriveEntry] = {}
        for image in self._images_in(parent_folder_id):
            by_name.setdefault(image.name.lower(), image)
        for suffix in STL_PREVIEW_SUFFIXES:
            match = by_name.get(f"{base}{suffix}".lower())
            if match is not None:
                return match.id
        return None
