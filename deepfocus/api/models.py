"""Google Drive v3 response dataclasses.

WHY: The Drive files endpoints return loosely-typed JSON with optional
fields depending on the ``fields`` mask. Typed dataclasses make the
subset we use explicit and keep dict-key typos out of the exporter.

HOW: Each dataclass maps to a Drive JSON object; from_dict() tolerates
absent optional fields. to_dict() returns Drive's camelCase keys for the
proxy endpoints, omitting fields Drive did not send.

RULES:
- id and name are always requested and always present
- size arrives as a decimal string from Drive and is kept as a string
- next_page_token is None on the last page
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from deepfocus.config import DRIVE_FOLDER_MIME_TYPE

FILE_FIELDS = (
    "id, name, mimeType, size, modifiedTime, iconLink, "
    "webViewLink, thumbnailLink, parents"
)
"""Field mask for list/search results."""

_CAMEL_KEYS = {
    "mime_type": "mimeType",
    "size": "size",
    "modified_time": "modifiedTime",
    "icon_link": "iconLink",
    "web_view_link": "webViewLink",
    "web_content_link": "webContentLink",
    "thumbnail_link": "thumbnailLink",
    "parents": "parents",
}


@dataclass
class DriveFile:
    """A Drive file or folder resource."""

    id: str
    name: str
    mime_type: Optional[str] = None
    size: Optional[str] = None
    modified_time: Optional[str] = None
    icon_link: Optional[str] = None
    web_view_link: Optional[str] = None
    web_content_link: Optional[str] = None
    thumbnail_link: Optional[str] = None
    parents: Optional[List[str]] = None

    @property
    def is_folder(self) -> bool:
        return self.mime_type == DRIVE_FOLDER_MIME_TYPE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DriveFile:
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=data.get("mimeType"),
            size=data.get("size"),
            modified_time=data.get("modifiedTime"),
            icon_link=data.get("iconLink"),
            web_view_link=data.get("webViewLink"),
            web_content_link=data.get("webContentLink"),
            thumbnail_link=data.get("thumbnailLink"),
            parents=data.get("parents"),
        )

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"id": self.id, "name": self.name}
        for attr, key in _CAMEL_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                out[key] = value
        return out


@dataclass
class DriveFileList:
    """One page of a files.list response."""

    files: List[DriveFile] = field(default_factory=list)
    next_page_token: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> DriveFileList:
        return cls(
            files=[DriveFile.from_dict(f) for f in data.get("files", [])],
            next_page_token=data.get("nextPageToken"),
        )
