"""Data models and classification rules for Google Drive entries."""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

# Drive API JSON field names
FIELD_ID = "id"
FIELD_NAME = "name"
FIELD_MIME_TYPE = "mimeType"
FIELD_MODIFIED_TIME = "modifiedTime"
FIELD_SIZE = "size"
FIELD_PARENTS = "parents"
FIELD_THUMBNAIL_LINK = "thumbnailLink"
FIELD_FILES = "files"
FIELD_NEXT_PAGE_TOKEN = "nextPageToken"

# MIME types
MIME_FOLDER = "application/vnd.google-apps.folder"
MIME_IMAGE_PREFIX = "image/"
MIME_STL = "application/sla"
MIME_OCTET_STREAM = "application/octet-stream"

STL_SUFFIX = ".stl"
IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})

# Keys of the partitioned folder listing on the wire
KEY_FOLDERS = "folders"
KEY_IMAGES = "images"
KEY_STL_FILES = "stlFiles"


class EntryKind(enum.Enum):
    """Category a Drive entry is displayed as."""

    FOLDER = "folder"
    IMAGE = "image"
    STL = "stl"
    OTHER = "other"


class SortOrder(str, enum.Enum):
    ALPHABETICAL = "alphabetical"
    MODIFIED = "modified"
    SIZE = "size"


@dataclass(frozen=True)
class DriveEntry:
    """Read-only projection of a Drive file or folder."""

    id: str
    name: str
    mime_type: str
    modified_time: str | None = None
    size: int | None = None
    parents: tuple[str, ...] = ()
    thumbnail_link: str | None = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> DriveEntry:
        """Map a raw Drive API file resource to a DriveEntry."""
        size = raw.get(FIELD_SIZE)
        return cls(
            id=str(raw.get(FIELD_ID, "")),
            name=raw.get(FIELD_NAME) or "",
            mime_type=raw.get(FIELD_MIME_TYPE) or "",
            modified_time=raw.get(FIELD_MODIFIED_TIME),
            size=int(size) if size is not None else None,
            parents=tuple(raw.get(FIELD_PARENTS) or ()),
            thumbnail_link=raw.get(FIELD_THUMBNAIL_LINK),
        )

    def to_api(self) -> dict[str, Any]:
        """Serialize back to the Drive API field names, omitting empty optionals."""
        data: dict[str, Any] = {
            FIELD_ID: self.id,
            FIELD_NAME: self.name,
            FIELD_MIME_TYPE: self.mime_type,
        }
        if self.modified_time is not None:
            data[FIELD_MODIFIED_TIME] = self.modified_time
        if self.size is not None:
            # Drive reports sizes as decimal strings (int64).
            data[FIELD_SIZE] = str(self.size)
        if self.parents:
            data[FIELD_PARENTS] = list(self.parents)
        if self.thumbnail_link is not None:
            data[FIELD_THUMBNAIL_LINK] = self.thumbnail_link
        return data

    @property
    def kind(self) -> EntryKind:
        return classify(self.mime_type, self.name)


def is_folder(mime_type: str | None) -> bool:
    return mime_type == MIME_FOLDER


def is_image(mime_type: str | None) -> bool:
    return mime_type is not None and mime_type.startswith(MIME_IMAGE_PREFIX)


def is_stl(filename: str | None) -> bool:
    return filename is not None and filename.lower().endswith(STL_SUFFIX)


def file_extension(filename: str) -> str:
    """Return the lowercased extension without the dot, or "" if there is none."""
    _, dot, ext = filename.rpartition(".")
    return ext.lower() if dot else ""


def is_image_filename(filename: str) -> bool:
    return file_extension(filename) in IMAGE_EXTENSIONS


def classify(mime_type: str | None, name: str | None) -> EntryKind:
    """Classify an entry: folder MIME, then image MIME prefix, then ``.stl`` suffix."""
    if is_folder(mime_type):
        return EntryKind.FOLDER
    if is_image(mime_type):
        return EntryKind.IMAGE
    if is_stl(name):
        return EntryKind.STL
    return EntryKind.OTHER


@dataclass
class FolderContents:
    """Children of one folder, partitioned for display. Other files are dropped."""

    folders: list[DriveEntry] = field(default_factory=list)
    images: list[DriveEntry] = field(default_factory=list)
    stl_files: list[DriveEntry] = field(default_factory=list)

    @classmethod
    def partition(cls, entries: Iterable[DriveEntry]) -> FolderContents:
        contents = cls()
        for entry in entries:
            kind = entry.kind
            if kind is EntryKind.FOLDER:
                contents.folders.append(entry)
            elif kind is EntryKind.IMAGE:
                contents.images.append(entry)
            elif kind is EntryKind.STL:
                contents.stl_files.append(entry)
        return contents

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> FolderContents:
        """Parse the gateway's ``{folders, images, stlFiles}`` body."""
        return cls(
            folders=[DriveEntry.from_api(f) for f in raw.get(KEY_FOLDERS) or []],
            images=[DriveEntry.from_api(f) for f in raw.get(KEY_IMAGES) or []],
            stl_files=[DriveEntry.from_api(f) for f in raw.get(KEY_STL_FILES) or []],
        )

    def to_api(self) -> dict[str, list[dict[str, Any]]]:
        return {
            KEY_FOLDERS: [e.to_api() for e in self.folders],
            KEY_IMAGES: [e.to_api() for e in self.images],
            KEY_STL_FILES: [e.to_api() for e in self.stl_files],
        }

    def entries(self) -> list[DriveEntry]:
        return [*self.folders, *self.images, *self.stl_files]


# ---------------------------------------------------------------------------
# Listing helpers
# ---------------------------------------------------------------------------


def filter_hidden(entries: Iterable[DriveEntry], show_hidden: bool = False) -> list[DriveEntry]:
    """Drop entries whose name starts with a dot unless ``show_hidden`` is set."""
    if show_hidden:
        return list(entries)
    return [e for e in entries if not e.name.startswith(".")]


def _natural_key(name: str) -> list[Any]:
    return [int(part) if part.isdigit() else part.lower() for part in re.split(r"(\d+)", name)]


def sort_entries(
    entries: Iterable[DriveEntry], order: SortOrder = SortOrder.ALPHABETICAL
) -> list[DriveEntry]:
    """Sort entries by natural name, newest modification, or largest size."""
    if order is SortOrder.MODIFIED:
        return sorted(entries, key=lambda e: e.modified_time or "", reverse=True)
    if order is SortOrder.SIZE:
        return sorted(entries, key=lambda e: e.size or 0, reverse=True)
    return sorted(entries, key=lambda e: _natural_key(e.name))


_SIZE_UNITS = ("B", "KB", "MB", "GB")


def format_file_size(size: int | None) -> str:
    """Render a byte count as e.g. ``1.5 MB``."""
    if not size:
        return "0 B"
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{round(value, 2):g} {_SIZE_UNITS[unit]}"
