"""Data models for share token payloads."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

# Token payload JSON field names
FIELD_RESOURCE_ID = "resourceId"
FIELD_RESOURCE_TYPE = "resourceType"
FIELD_EXPIRES = "exp"
FIELD_ISSUED = "iat"

# Legacy item types that describe a file by its content category.
_FILE_ALIASES = frozenset({"image", "stl"})


class ResourceType(str, enum.Enum):
    """Kind of Drive object a share token grants access to.

    Images and STL models are both plain files; that distinction is made
    after listing, from the MIME type and filename.
    """

    FILE = "file"
    FOLDER = "folder"

    @classmethod
    def parse(cls, value: str) -> ResourceType:
        """Map a wire value (including legacy ``image``/``stl``) to a ResourceType.

        Raises:
            ValueError: If the value names no known resource type.
        """
        normalized = value.strip().lower() if isinstance(value, str) else ""
        if normalized in _FILE_ALIASES:
            return cls.FILE
        return cls(normalized)


@dataclass(frozen=True)
class SharePayload:
    """Claims carried inside a share token.

    Attributes:
        resource_id: Drive object ID the token grants access to.
        resource_type: Whether the object is a file or a folder.
        expires_at: Expiry in milliseconds since epoch.
        issued_at: Issue time in milliseconds since epoch.
    """

    resource_id: str
    resource_type: ResourceType
    expires_at: int
    issued_at: int

    def to_dict(self) -> dict[str, Any]:
        return {
            FIELD_RESOURCE_ID: self.resource_id,
            FIELD_RESOURCE_TYPE: self.resource_type.value,
            FIELD_EXPIRES: self.expires_at,
            FIELD_ISSUED: self.issued_at,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> SharePayload:
        """Build a payload from decoded token JSON.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If a field has the wrong type or an unknown resource type.
        """
        resource_id = raw[FIELD_RESOURCE_ID]
        expires_at = raw[FIELD_EXPIRES]
        issued_at = raw.get(FIELD_ISSUED, 0)
        if not isinstance(resource_id, str) or not resource_id:
            raise ValueError("resourceId must be a non-empty string")
        for name, value in ((FIELD_EXPIRES, expires_at), (FIELD_ISSUED, issued_at)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer timestamp")
        return cls(
            resource_id=resource_id,
            resource_type=ResourceType.parse(raw[FIELD_RESOURCE_TYPE]),
            expires_at=expires_at,
            issued_at=issued_at,
        )
