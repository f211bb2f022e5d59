"""In-memory watch-history store with per-(user, video) upserts.

WHY: Progress saves arrive every ten seconds of playback, possibly out of
order and from several tabs at once. The store must keep exactly one
record per (user, video) and let the last write win, while the history
page lists a user's recent videos.

HOW: Records live in a dict keyed by (user_id, video_id). All access goes
through a threading.Lock because FastAPI runs sync dependencies and
background work on a thread pool. upsert() computes ``completed`` with
the shared is_completed() rule and stamps last_watched.

RULES:
- At most one record per (user_id, video_id); upsert never duplicates
- progress and duration are floored to whole seconds
- On update, empty title/thumbnail/channel values keep the stored ones
- list_for_user() is newest last_watched first, completed rows opt-in
- Returned records are copies; callers cannot mutate store state
"""

from __future__ import annotations

import itertools
import logging
import math
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from deepfocus.core.progress import is_completed

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 20


@dataclass
class WatchProgressRecord:
    """One user's progress on one video."""

    user_id: str
    video_id: str
    progress: int
    duration: int
    completed: bool
    last_watched: datetime
    created_at: datetime
    video_title: Optional[str] = None
    thumbnail: Optional[str] = None
    channel_name: Optional[str] = None
    revision: int = 0


class WatchHistoryStore:
    """Thread-safe in-memory store for watch progress records."""

    def __init__(self) -> None:
        self._records: Dict[Tuple[str, str], WatchProgressRecord] = {}
        self._lock = threading.Lock()
        self._revisions = itertools.count(1)

    def upsert(
        self,
        user_id: str,
        video_id: str,
        progress: float,
        duration: float,
        video_title: Optional[str] = None,
        thumbnail: Optional[str] = None,
        channel_name: Optional[str] = None,
    ) -> WatchProgressRecord:
        """Create the record for (user, video) or overwrite its progress."""
        progress_s = math.floor(max(progress, 0))
        duration_s = math.floor(max(duration, 0))
        completed = is_completed(progress, duration)
        now = datetime.now(timezone.utc)
        key = (user_id, video_id)

        with self._lock:
            record = self._records.get(key)
            if record is None:
                record = WatchProgressRecord(
                    user_id=user_id,
                    video_id=video_id,
                    progress=progress_s,
                    duration=duration_s,
                    completed=completed,
                    last_watched=now,
                    created_at=now,
                    video_title=video_title,
                    thumbnail=thumbnail,
                    channel_name=channel_name,
                    revision=next(self._revisions),
                )
                self._records[key] = record
                logger.info("Started history for user %s video %s", user_id, video_id)
            else:
                record.progress = progress_s
                record.duration = duration_s
                record.completed = completed
                record.last_watched = now
                record.revision = next(self._revisions)
                if video_title:
                    record.video_title = video_title
                if thumbnail:
                    record.thumbnail = thumbnail
                if channel_name:
                    record.channel_name = channel_name
            return replace(record)

    def get(self, user_id: str, video_id: str) -> Optional[WatchProgressRecord]:
        with self._lock:
            record = self._records.get((user_id, video_id))
            return replace(record) if record is not None else None

    def list_for_user(
        self,
        user_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
        include_completed: bool = False,
    ) -> List[WatchProgressRecord]:
        with self._lock:
            rows = [
                replace(r)
                for (owner, _), r in self._records.items()
                if owner == user_id and (include_completed or not r.completed)
            ]
        rows.sort(key=lambda r: (r.last_watched, r.revision), reverse=True)
        return rows[: max(limit, 0)]

    def delete(self, user_id: str, video_id: str) -> bool:
        """Remove one record; returns False when it did not exist."""
        with self._lock:
            removed = self._records.pop((user_id, video_id), None)
        return removed is not None

    def delete_user(self, user_id: str) -> int:
        """Remove all of a user's records; returns how many were removed."""
        with self._lock:
            keys = [key for key in self._records if key[0] == user_id]
            for key in keys:
                del self._records[key]
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
