"""Watch session — one explicitly owned controller per watch-page visit.

WHY: Playback, note capture, progress saving and export all share the
same few facts (which video, who is signed in, where the player is).
Bundling them into one object with a clear create/close lifecycle keeps
that state out of module globals and lets two sessions for the same
video run side by side without sharing anything.

HOW: WatchSession builds (or accepts) a PlaybackDriver, a NoteCaptureLog
and a ProgressPersister, and subscribes the persister to driver ticks.
Export actions go through the DeepFocus API or the Obsidian exporter and
report an ActionResult, with a StatusTracker per action for the UI badge.

RULES:
- Create on page mount, close() on unmount; close() is idempotent
- Nothing here raises into the caller for network failures
- Unauthenticated sessions capture notes locally but never persist
- Notes are captured at the driver's current (last sampled or seeked) time
- Drive export requires an access token; Obsidian export does not
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

import httpx

from deepfocus.api.backend import DeepFocusAPIClient, DeepFocusAPIError, send_beacon
from deepfocus.config import (
    DRIVE_STATUS_RESET_S,
    OBSIDIAN_STATUS_RESET_S,
    YOUTUBE_THUMBNAIL_URL,
)
from deepfocus.core.notes import NoteCaptureLog
from deepfocus.core.player import PlaybackDriver, Player
from deepfocus.core.progress import ProgressPersister
from deepfocus.core.results import ActionResult, ErrorKind, StatusTracker
from deepfocus.core.scheduling import Scheduler, schedule_later
from deepfocus.exporters.base import ExportedNote
from deepfocus.exporters.obsidian import ObsidianExporter

logger = logging.getLogger(__name__)

NotesSender = Callable[[str, List[Dict[str, Any]], Optional[str]], Awaitable[Dict[str, Any]]]


@dataclass(frozen=True)
class VideoInfo:
    """The video a session is watching."""

    video_id: str
    title: str = "Video"
    channel_name: Optional[str] = None

    @property
    def thumbnail(self) -> str:
        return YOUTUBE_THUMBNAIL_URL.format(video_id=self.video_id)


@dataclass(frozen=True)
class AuthSession:
    """What the identity provider told us about the viewer."""

    user_id: Optional[str] = None
    access_token: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)


class WatchSession:
    """Coordinates playback, notes, progress and export for one visit.

    Args:
        video: The video being watched.
        auth: The viewer's session; an empty AuthSession means signed out.
        driver, notes: Injected components (built with defaults if omitted).
        progress_sender: Async callable posting a progress payload.
        notes_sender: Async callable posting (video_id, notes, title) to
            the Drive export endpoint.
        beacon: Non-blocking teardown sender.
        obsidian: Exporter used for the Obsidian deep link.
        schedule: Scheduler for status badge resets and highlight pulses.
    """

    def __init__(
        self,
        video: VideoInfo,
        auth: Optional[AuthSession] = None,
        driver: Optional[PlaybackDriver] = None,
        notes: Optional[NoteCaptureLog] = None,
        progress_sender: Optional[Callable[[Dict[str, Any]], Awaitable[Any]]] = None,
        notes_sender: Optional[NotesSender] = None,
        beacon: Optional[Callable[[Dict[str, Any]], bool]] = None,
        obsidian: Optional[ObsidianExporter] = None,
        schedule: Scheduler = schedule_later,
    ) -> None:
        self.video = video
        self.auth = auth or AuthSession()
        self.driver = driver or PlaybackDriver()
        self.notes = notes or NoteCaptureLog(schedule=schedule)
        self.persister = ProgressPersister(
            video_id=video.video_id,
            is_authenticated=lambda: self.auth.is_authenticated,
            sender=progress_sender or self._post_progress,
            beacon=beacon or self._send_beacon,
            video_title=video.title,
            thumbnail=video.thumbnail,
            channel_name=video.channel_name,
        )
        self.obsidian_status = StatusTracker("Obsidian export", OBSIDIAN_STATUS_RESET_S, schedule)
        self.drive_status = StatusTracker("Drive export", DRIVE_STATUS_RESET_S, schedule)
        self._notes_sender = notes_sender or self._post_notes
        self._obsidian = obsidian or ObsidianExporter()
        self._unsubscribe = [self.driver.subscribe_tick(self.persister.on_tick)]
        self._closed = False

    def __enter__(self) -> WatchSession:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        self.close()

    # ------------------------------------------------------------------
    # Player wiring
    # ------------------------------------------------------------------

    @property
    def current_time_s(self) -> float:
        return self.driver.state.current_time_s

    def on_player_ready(self, player: Player) -> None:
        self.driver.attach(player)

    def on_player_state_change(self, player_state: int) -> None:
        self.driver.handle_state_change(player_state)

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def capture_note(self, text: str) -> ActionResult:
        note = self.notes.capture(text, self.current_time_s)
        if note is None:
            return ActionResult.failure(ErrorKind.PRECONDITION, "Note text is empty")
        return ActionResult.ok(note)

    def jump_to_note(self, note_id: int) -> bool:
        """Pulse the note's badge and seek the player to its timestamp."""
        note = self.notes.get(note_id)
        if note is None:
            return False
        self.notes.activate_timestamp(note_id)
        return self.driver.seek_seconds(note.timestamp_s)

    def exported_notes(self) -> List[ExportedNote]:
        return [ExportedNote.from_note(note) for note in self.notes.snapshot()]

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_obsidian(self, today: Optional[date] = None) -> ActionResult:
        """Open the notes in Obsidian; value is the deep-link URI."""
        notes = self.exported_notes()
        if not notes:
            return ActionResult.failure(ErrorKind.PRECONDITION, "No notes to export")
        self.obsidian_status.begin()
        uri = self._obsidian.export(notes, self.video.video_id, today=today)
        return self.obsidian_status.finish(ActionResult.ok(uri, "Exported!"))

    async def export_drive(self) -> ActionResult:
        """Save the notes to Drive via the API; value is the Drive file id."""
        if not len(self.notes):
            return ActionResult.failure(ErrorKind.PRECONDITION, "No notes to export")
        if not self.auth.access_token:
            return ActionResult.failure(ErrorKind.UNAUTHENTICATED, "Sign in to save to Drive")
        if self.drive_status.is_pending:
            return ActionResult.failure(ErrorKind.PRECONDITION, "Drive export already in progress")

        self.drive_status.begin()
        wire_notes = [note.to_dict() for note in self.notes.snapshot()]
        try:
            response = await self._notes_sender(self.video.video_id, wire_notes, self.video.title)
        except DeepFocusAPIError as exc:
            logger.warning("Drive export for %s rejected: %s", self.video.video_id, exc)
            return self.drive_status.finish(ActionResult.failure(ErrorKind.API, str(exc)))
        except httpx.HTTPError as exc:
            logger.warning("Drive export for %s failed: %s", self.video.video_id, exc)
            return self.drive_status.finish(ActionResult.failure(ErrorKind.NETWORK, str(exc)))
        return self.drive_status.finish(ActionResult.ok(response.get("fileId"), "Saved!"))

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def close(self) -> Optional[ActionResult]:
        """Release the tick loop and send the final progress beacon."""
        if self._closed:
            return None
        self._closed = True
        for unsubscribe in self._unsubscribe:
            unsubscribe()
        self._unsubscribe.clear()
        state = self.driver.state
        self.driver.close()
        return self.persister.flush(state.current_time_s, state.duration_s)

    # ------------------------------------------------------------------
    # Default network senders
    # ------------------------------------------------------------------

    async def _post_progress(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        async with DeepFocusAPIClient(self.auth.access_token or "") as client:
            return await client.save_progress(payload)

    async def _post_notes(
        self,
        video_id: str,
        notes: List[Dict[str, Any]],
        video_title: Optional[str],
    ) -> Dict[str, Any]:
        async with DeepFocusAPIClient(self.auth.access_token or "") as client:
            return await client.save_notes(video_id, notes, video_title)

    def _send_beacon(self, payload: Dict[str, Any]) -> bool:
        return send_beacon(payload, self.auth.access_token or "")
