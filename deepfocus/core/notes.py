"""Note capture log — the ordered stream of timestamped session notes.

WHY: While watching, the user types short notes that should be pinned to
the moment they were written. Clicking a note's timestamp badge jumps the
player back there, and the badge pulses to confirm the click.

HOW: NoteCaptureLog appends immutable Note records in call order. Ids
come from a per-log counter so they are unique and creation-ordered. The
highlight pulse is the only mutable part: activate_timestamp() swaps in a
highlighted copy and schedules the swap back.

RULES:
- Blank or whitespace-only text never creates a note
- Notes are appended in call order and never re-sorted by timestamp
- Note text and timestamp never change after capture
- The log does not seek; the caller asks the PlaybackDriver to do that
- Capturing at 0s or while paused is allowed
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Tuple

from deepfocus.config import HIGHLIGHT_DURATION_S
from deepfocus.core.scheduling import Scheduler, schedule_later
from deepfocus.core.timefmt import format_time

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Note:
    """A single captured note.

    RULES:
    - id: unique within its log, increasing in creation order
    - timestamp_s: playback position at capture time (unrounded)
    - display_timestamp: format_time(timestamp_s)
    - text: stripped, never empty
    - is_highlighted: transient UI pulse flag
    """

    id: int
    timestamp_s: float
    display_timestamp: str
    text: str
    is_highlighted: bool = False

    def to_dict(self) -> Dict[str, object]:
        """Wire shape used by the Drive export endpoint."""
        return {
            "timestamp": self.display_timestamp,
            "timestampSeconds": self.timestamp_s,
            "text": self.text,
        }


class NoteCaptureLog:
    """Append-only list of notes for one watch session."""

    def __init__(
        self,
        highlight_duration_s: float = HIGHLIGHT_DURATION_S,
        schedule: Scheduler = schedule_later,
    ) -> None:
        self._notes: List[Note] = []
        self._ids = itertools.count(1)
        self._highlight_duration_s = highlight_duration_s
        self._schedule = schedule

    def __len__(self) -> int:
        return len(self._notes)

    @property
    def notes(self) -> List[Note]:
        return list(self._notes)

    def snapshot(self) -> Tuple[Note, ...]:
        """Immutable view of the log for exporters."""
        return tuple(self._notes)

    def get(self, note_id: int) -> Optional[Note]:
        for note in self._notes:
            if note.id == note_id:
                return note
        return None

    def capture(self, text: str, current_time_s: float) -> Optional[Note]:
        """Append a note at ``current_time_s``; returns None for blank text."""
        text = text.strip()
        if not text:
            return None
        timestamp_s = max(0.0, current_time_s)
        note = Note(
            id=next(self._ids),
            timestamp_s=timestamp_s,
            display_timestamp=format_time(timestamp_s),
            text=text,
        )
        self._notes.append(note)
        logger.debug("Captured note %d at %s", note.id, note.display_timestamp)
        return note

    def activate_timestamp(self, note_id: int) -> bool:
        """Pulse the highlight on a note's timestamp badge."""
        if not self._set_highlight(note_id, True):
            return False
        self._schedule(self._highlight_duration_s, lambda: self.clear_highlight(note_id))
        return True

    def clear_highlight(self, note_id: int) -> None:
        self._set_highlight(note_id, False)

    def _set_highlight(self, note_id: int, value: bool) -> bool:
        for index, note in enumerate(self._notes):
            if note.id == note_id:
                if note.is_highlighted != value:
                    self._notes[index] = replace(note, is_highlighted=value)
                return True
        return False
