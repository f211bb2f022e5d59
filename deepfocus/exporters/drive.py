"""Google Drive exporter — one markdown file per video in "DeepFocus Notes".

WHY: Drive keeps notes available on every device and next to the user's
course material. Exporting the same video twice should refresh the
existing file instead of piling up copies.

HOW: build_document() renders the markdown. export() opens a
GoogleDriveClient, finds or creates the DRIVE_FOLDER_NAME folder, looks
for a file in that folder whose name contains the video id (or that
carries the video id in its appProperties), and either updates that
file's content or creates "<title> - <YYYY-MM-DD>.md" tagged with the id.

RULES:
- Title falls back to "Video <videoId>" when no video title is given
- The existence check is a substring match on the video id within the
  folder, regardless of date: a later export overwrites the first file
- Created files carry appProperties {videoId: <id>} so titled files
  (whose names do not contain the id) are still found on re-export
- The folder lookup precedes the existence check, which precedes create
- Drive failures propagate as DriveAPIError / httpx.HTTPError
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Optional, Sequence

from deepfocus.api.drive import GoogleDriveClient, quote_query_value
from deepfocus.config import DRIVE_FOLDER_NAME, MARKDOWN_MIME_TYPE, YOUTUBE_WATCH_URL
from deepfocus.exporters.base import (
    BaseExporter,
    ExportDocument,
    ExportedNote,
    require_notes,
    utc_today,
)

logger = logging.getLogger(__name__)

VIDEO_ID_PROPERTY = "videoId"


@dataclass(frozen=True)
class DriveExportResult:
    """Where the notes ended up."""

    file_id: str
    filename: str
    created: bool


class DriveNotesExporter(BaseExporter):
    """Creates or updates the per-video notes file in Drive.

    Args:
        client_factory: Builds a GoogleDriveClient for an access token.
            Tests pass a factory that injects an httpx.MockTransport.
        folder_name: Target folder, created on first export.
    """

    def __init__(
        self,
        client_factory: Callable[[str], GoogleDriveClient] = GoogleDriveClient,
        folder_name: str = DRIVE_FOLDER_NAME,
    ) -> None:
        self._client_factory = client_factory
        self._folder_name = folder_name

    @property
    def name(self) -> str:
        return "Google Drive"

    def build_document(
        self,
        notes: Sequence[ExportedNote],
        video_id: Optional[str],
        video_title: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ExportDocument:
        require_notes(notes)
        if not video_id:
            raise ValueError("A video id is required for Drive export")
        date_str = (today or utc_today()).isoformat()
        title = video_title or "Video {}".format(video_id)
        bullets = "\n".join(note.to_markdown() for note in notes)

        content = (
            "# {title}\n"
            "\n"
            "**Video ID:** {video_id}\n"
            "**Date:** {date}\n"
            "**YouTube Link:** {link}\n"
            "\n"
            "---\n"
            "\n"
            "## Notes\n"
            "\n"
            "{bullets}\n"
            "\n"
            "---\n"
            "*Notes captured with DeepFocus*\n"
        ).format(
            title=title,
            video_id=video_id,
            date=date_str,
            link=YOUTUBE_WATCH_URL.format(video_id=video_id),
            bullets=bullets,
        )
        return ExportDocument(
            title=title,
            filename="{} - {}.md".format(title, date_str),
            content=content,
            media_type=MARKDOWN_MIME_TYPE,
        )

    async def export(
        self,
        access_token: str,
        notes: Sequence[ExportedNote],
        video_id: str,
        video_title: Optional[str] = None,
        today: Optional[date] = None,
    ) -> DriveExportResult:
        """Write the notes to Drive and return the file id."""
        document = self.build_document(notes, video_id, video_title, today)

        async with self._client_factory(access_token) as drive:
            folder_id = await drive.ensure_folder(self._folder_name)

            existing = await drive.list_files(
                _existing_notes_query(video_id, folder_id), fields="id, name"
            )
            if existing.files:
                target = existing.files[0]
                await drive.update_file_content(target.id, document.content, document.media_type)
                logger.info("Updated Drive notes %s for video %s", target.id, video_id)
                return DriveExportResult(file_id=target.id, filename=target.name, created=False)

            created = await drive.create_file(
                document.filename,
                document.content,
                document.media_type,
                parents=[folder_id],
                app_properties={VIDEO_ID_PROPERTY: video_id},
            )
            logger.info("Created Drive notes %s for video %s", created.id, video_id)
            return DriveExportResult(file_id=created.id, filename=document.filename, created=True)


def _existing_notes_query(video_id: str, folder_id: str) -> str:
    vid = quote_query_value(video_id)
    return (
        "(name contains '{vid}' or appProperties has {{ key='{key}' and value='{vid}' }}) "
        "and '{folder}' in parents and trashed=false"
    ).format(vid=vid, key=VIDEO_ID_PROPERTY, folder=quote_query_value(folder_id))
