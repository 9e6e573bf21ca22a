"""In-memory preview cache scoped to one browsing session."""

from __future__ import annotations

import logging

from stl_share.drive.models import DriveEntry

logger = logging.getLogger(__name__)


class PreviewCache:
    """Best-effort cache of thumbnails, entry metadata and folder preview images.

    Keyed by Drive object ID. Entries never expire; they are only dropped by
    ``clear()``. A folder preview image of ``None`` records that the folder
    has no image, so the search is not repeated.
    """

    def __init__(self) -> None:
        self._thumbnails: dict[str, str] = {}
        self._metadata: dict[str, DriveEntry] = {}
        self._folder_images: dict[str, str | None] = {}

    # Thumbnails

    def get_thumbnail(self, file_id: str) -> str | None:
        return self._thumbnails.get(file_id)

    def has_thumbnail(self, file_id: str) -> bool:
        return file_id in self._thumbnails

    def put_thumbnail(self, file_id: str, url: str) -> None:
        self._thumbnails[file_id] = url

    # Metadata

    def get_metadata(self, file_id: str) -> DriveEntry | None:
        return self._metadata.get(file_id)

    def has_metadata(self, file_id: str) -> bool:
        return file_id in self._metadata

    def put_metadata(self, entry: DriveEntry) -> None:
        self._metadata[entry.id] = entry

    # Folder preview images

    def get_folder_image(self, folder_id: str) -> str | None:
        return self._folder_images.get(folder_id)

    def has_folder_image(self, folder_id: str) -> bool:
        return folder_id in self._folder_images

    def put_folder_image(self, folder_id: str, image_id: str | None) -> None:
        self._folder_images[folder_id] = image_id

    def clear(self) -> None:
        """Drop every cached entry."""
        logger.info(
            "[preview_cache] cleared; thumbnails:%d;metadata:%d;folder_images:%d",
            len(self._thumbnails),
            len(self._metadata),
            len(self._folder_images),
        )
        self._thumbnails.clear()
        self._metadata.clear()
        self._folder_images.clear()
