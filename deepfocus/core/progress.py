"""Progress persister — throttled, fire-and-forget watch-progress saves.

WHY: The history page shows "continue watching" with a progress bar, so
the server needs to know roughly where the viewer is. Saving on every
one-second tick would flood the API; saving only on exit would lose
progress when the tab crashes.

HOW: on_tick() compares the current time with the last saved time and
fires a save once playback has advanced PROGRESS_SAVE_INTERVAL_S. Saves
run as independent asyncio tasks; their failures are logged and dropped.
flush() sends one final save through the beacon sender at teardown,
because a normal async request started during unload may never finish.

RULES:
- last_saved_s starts at 0; a save fires when time - last_saved_s >= interval
- Nothing is sent when the session is not authenticated
- Progress and duration are floored to whole seconds in the payload
- No retries, no ordering guarantees; the store's upsert resolves races
- In-flight saves are never cancelled, not even by close()
- is_completed() is the single completion rule for client and server
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

import httpx

from deepfocus.api.backend import DeepFocusAPIError
from deepfocus.config import COMPLETION_THRESHOLD, PROGRESS_SAVE_INTERVAL_S
from deepfocus.core.results import ActionResult, ErrorKind

logger = logging.getLogger(__name__)

ProgressSender = Callable[[Dict[str, Any]], Awaitable[Any]]
BeaconSender = Callable[[Dict[str, Any]], bool]


def is_completed(progress_s: float, duration_s: float) -> bool:
    """True iff the duration is known and at least 90% has been watched."""
    return duration_s > 0 and progress_s / duration_s >= COMPLETION_THRESHOLD


@dataclass(frozen=True)
class ProgressPayload:
    """Body of a POST /api/watch-history request."""

    video_id: str
    progress: int
    duration: int
    video_title: Optional[str] = None
    thumbnail: Optional[str] = None
    channel_name: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "videoId": self.video_id,
            "videoTitle": self.video_title,
            "thumbnail": self.thumbnail,
            "channelName": self.channel_name,
            "progress": self.progress,
            "duration": self.duration,
        }


class ProgressPersister:
    """Samples playback ticks and reports progress to the watch-history API.

    Args:
        video_id: The video being watched.
        is_authenticated: Callable consulted before every send.
        sender: Async callable that POSTs a payload dict.
        beacon: Non-blocking sender used at teardown (and when no event
            loop is running).
        video_title, thumbnail, channel_name: Optional display metadata.
        interval_s: Minimum playback advance between saves.
    """

    def __init__(
        self,
        video_id: str,
        is_authenticated: Callable[[], bool],
        sender: ProgressSender,
        beacon: BeaconSender,
        video_title: Optional[str] = None,
        thumbnail: Optional[str] = None,
        channel_name: Optional[str] = None,
        interval_s: float = PROGRESS_SAVE_INTERVAL_S,
    ) -> None:
        self.video_id = video_id
        self.video_title = video_title
        self.thumbnail = thumbnail
        self.channel_name = channel_name
        self.last_saved_s = 0.0
        self._is_authenticated = is_authenticated
        self._sender = sender
        self._beacon = beacon
        self._interval_s = interval_s
        self._in_flight: Set[asyncio.Task] = set()

    def build_payload(self, time_s: float, duration_s: float) -> ProgressPayload:
        return ProgressPayload(
            video_id=self.video_id,
            video_title=self.video_title,
            thumbnail=self.thumbnail,
            channel_name=self.channel_name,
            progress=math.floor(max(time_s, 0.0)),
            duration=math.floor(max(duration_s, 0.0)),
        )

    def on_tick(self, time_s: float, duration_s: float) -> bool:
        """Handle one playback tick; returns True when a save was fired."""
        if time_s - self.last_saved_s < self._interval_s:
            return False
        if not self._is_authenticated():
            return False
        payload = self.build_payload(time_s, duration_s).to_dict()
        self.last_saved_s = time_s
        self._dispatch(payload)
        return True

    def flush(self, time_s: float, duration_s: float) -> ActionResult:
        """Best-effort final save at session teardown."""
        if not self._is_authenticated():
            return ActionResult.failure(
                ErrorKind.UNAUTHENTICATED, "Not signed in; progress not saved"
            )
        if time_s <= 0:
            return ActionResult.failure(
                ErrorKind.PRECONDITION, "Nothing watched yet; progress not saved"
            )
        payload = self.build_payload(time_s, duration_s).to_dict()
        if not self._beacon(payload):
            logger.warning("Progress beacon for %s was not queued", self.video_id)
            return ActionResult.failure(ErrorKind.NETWORK, "Beacon not queued")
        return ActionResult.ok(payload)

    async def save(self, payload: Dict[str, Any]) -> ActionResult:
        """Send one payload and convert failures into an ActionResult."""
        try:
            record = await self._sender(payload)
        except DeepFocusAPIError as exc:
            logger.warning("Progress save for %s rejected: %s", self.video_id, exc)
            return ActionResult.failure(ErrorKind.API, str(exc))
        except httpx.HTTPError as exc:
            logger.warning("Progress save for %s failed: %s", self.video_id, exc)
            return ActionResult.failure(ErrorKind.NETWORK, str(exc))
        return ActionResult.ok(record)

    async def drain(self) -> None:
        """Wait for all in-flight saves (used by tests and graceful shutdown)."""
        if self._in_flight:
            await asyncio.gather(*list(self._in_flight), return_exceptions=True)

    def _dispatch(self, payload: Dict[str, Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._beacon(payload)
            return
        task = loop.create_task(self.save(payload))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
