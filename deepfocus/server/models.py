"""Pydantic request/response models for the HTTP API.

WHY: The endpoints need typed schemas for request validation, response
serialization, and OpenAPI documentation. The browser client speaks
camelCase JSON, so models expose camelCase aliases while Python code
uses snake_case attributes.

HOW: Each endpoint has its own request and/or response model. Aliases
are used on the wire; populate_by_name lets Python code construct models
with field names.

RULES:
- All models use Field(description=...) for OpenAPI documentation
- Wire names are camelCase aliases (videoId, timestampSeconds, ...)
- videoId defaults to "" on requests so handlers can answer 400 with a
  clear message instead of a 422 validation dump
- Python 3.9+ compatible (no PEP 604 unions, use Optional from typing)
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

_ALIASED = {"populate_by_name": True}


# ---------------------------------------------------------------------------
# Watch history
# ---------------------------------------------------------------------------


class WatchProgressRequest(BaseModel):
    """Progress report sent by the watch session every ~10s of playback."""

    model_config = _ALIASED

    video_id: str = Field(default="", alias="videoId", description="YouTube video id.")
    video_title: Optional[str] = Field(
        default=None, alias="videoTitle", description="Video title for the history list."
    )
    thumbnail: Optional[str] = Field(default=None, description="Thumbnail URL.")
    channel_name: Optional[str] = Field(
        default=None, alias="channelName", description="Channel display name."
    )
    progress: float = Field(default=0, ge=0, description="Playback position in seconds.")
    duration: float = Field(default=0, ge=0, description="Video duration in seconds.")


class WatchHistoryEntry(BaseModel):
    """One stored watch-progress record."""

    model_config = _ALIASED

    user_id: str = Field(alias="userId", description="Owner's user id.")
    video_id: str = Field(alias="videoId", description="YouTube video id.")
    video_title: Optional[str] = Field(default=None, alias="videoTitle", description="Video title.")
    thumbnail: Optional[str] = Field(default=None, description="Thumbnail URL.")
    channel_name: Optional[str] = Field(default=None, alias="channelName", description="Channel name.")
    progress: int = Field(description="Last reported position in whole seconds.")
    duration: int = Field(description="Duration in whole seconds (0 if unknown).")
    completed: bool = Field(description="True once 90% of the duration has been watched.")
    last_watched: datetime = Field(alias="lastWatched", description="Time of the last save (UTC).")
    created_at: datetime = Field(alias="createdAt", description="Time of the first save (UTC).")


class SuccessResponse(BaseModel):
    success: bool = Field(description="Whether the operation succeeded.")


class DeletedCountResponse(BaseModel):
    success: bool = Field(description="Whether the operation succeeded.")
    deleted: int = Field(description="Number of history records removed.")


# ---------------------------------------------------------------------------
# Drive
# ---------------------------------------------------------------------------


class NoteInput(BaseModel):
    """A captured note as sent by the watch session."""

    model_config = _ALIASED

    timestamp: str = Field(description="Display timestamp, e.g. '03:07'.")
    timestamp_seconds: float = Field(
        default=0, alias="timestampSeconds", description="Position in seconds."
    )
    text: str = Field(description="Note text.")


class SaveNotesRequest(BaseModel):
    """Notes to write into the user's DeepFocus Notes folder."""

    model_config = _ALIASED

    video_id: str = Field(default="", alias="videoId", description="YouTube video id.")
    notes: List[NoteInput] = Field(default_factory=list, description="Notes in capture order.")
    video_title: Optional[str] = Field(
        default=None, alias="videoTitle", description="Used for the document title."
    )


class SaveNotesResponse(BaseModel):
    model_config = _ALIASED

    success: bool = Field(description="Always true on 200.")
    file_id: str = Field(alias="fileId", description="Drive id of the created or updated file.")
    message: str = Field(description="Human-readable confirmation.")


class DriveFolderListing(BaseModel):
    """Contents of one Drive folder, folders first."""

    model_config = _ALIASED

    folders: List[Dict[str, Any]] = Field(description="Sub-folders (Drive file resources).")
    files: List[Dict[str, Any]] = Field(description="Non-folder files (Drive file resources).")
    next_page_token: Optional[str] = Field(
        default=None, alias="nextPageToken", description="Token for the next page."
    )


class DriveSearchResults(BaseModel):
    model_config = _ALIASED

    files: List[Dict[str, Any]] = Field(description="Matching Drive file resources.")
    next_page_token: Optional[str] = Field(
        default=None, alias="nextPageToken", description="Token for the next page."
    )


# ---------------------------------------------------------------------------
# Misc
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error response body."""

    detail: str = Field(description="Human-readable error description.")


class HealthResponse(BaseModel):
    status: str = Field(description="Service health status.", json_schema_extra={"example": "ok"})
    version: str = Field(description="API version string.", json_schema_extra={"example": "0.1.0"})
