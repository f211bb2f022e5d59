"""Playback driver — a uniform control surface over an embeddable player.

WHY: The YouTube IFrame player exposes its own method names, reports
state changes as integer codes, and may not be ready when the user first
clicks. The rest of the session needs play/pause/seek/skip/mute controls
that are safe to call at any time, plus a steady time signal for note
labels and progress saves.

HOW: PlaybackDriver owns a PlaybackState and forwards commands to an
attached Player. While playing, an asyncio task samples the player once
per TICK_INTERVAL_S and notifies tick subscribers with (time, duration).
Consumers subscribe and receive an unsubscribe callable back.

RULES:
- Every control is a no-op (returns False) until attach() has been called
- Percentage seeks and skips are no-ops while the duration is unknown (0)
- Seeks update current_time_s optimistically, without waiting for the player
- Tick times are always read from the player, never accumulated
- At most one tick task exists; it is cancelled on any non-PLAYING state
- A failing subscriber is logged and does not stop the tick loop
- Captions only change player_vars(); the embed has no runtime toggle
"""

from __future__ import annotations

import asyncio
import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol

from deepfocus.config import TICK_INTERVAL_S

logger = logging.getLogger(__name__)

TickCallback = Callable[[float, float], None]
ReadyCallback = Callable[["PlaybackState"], None]


class PlayerState(enum.IntEnum):
    """State codes reported by the YouTube IFrame player."""

    UNSTARTED = -1
    ENDED = 0
    PLAYING = 1
    PAUSED = 2
    BUFFERING = 3
    CUED = 5


class Player(Protocol):
    """The subset of the embedded player API the driver relies on."""

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def seek(self, seconds: float) -> None: ...

    def mute(self) -> None: ...

    def unmute(self) -> None: ...

    def get_current_time(self) -> float: ...

    def get_duration(self) -> float: ...


@dataclass
class PlaybackState:
    """Session-scoped playback state, mutated only by PlaybackDriver."""

    current_time_s: float = 0.0
    duration_s: float = 0.0
    is_playing: bool = False
    is_muted: bool = False
    captions_enabled: bool = True
    is_ready: bool = False

    @property
    def progress_percent(self) -> float:
        if self.duration_s <= 0:
            return 0.0
        return self.current_time_s / self.duration_s * 100


class PlaybackDriver:
    """Adapts a Player to the session's control surface and time signal."""

    def __init__(self, tick_interval_s: float = TICK_INTERVAL_S) -> None:
        self.state = PlaybackState()
        self._player: Optional[Player] = None
        self._tick_interval_s = tick_interval_s
        self._tick_task: Optional[asyncio.Task] = None
        self._tick_subscribers: List[TickCallback] = []
        self._ready_subscribers: List[ReadyCallback] = []

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe_tick(self, callback: TickCallback) -> Callable[[], None]:
        """Register ``callback(time, duration)``; returns an unsubscribe function."""
        self._tick_subscribers.append(callback)
        return lambda: _remove(self._tick_subscribers, callback)

    def subscribe_ready(self, callback: ReadyCallback) -> Callable[[], None]:
        """Register ``callback(state)`` for the player-ready signal.

        Subscribing after the player is already ready calls back at once.
        """
        self._ready_subscribers.append(callback)
        if self.state.is_ready:
            callback(self.state)
        return lambda: _remove(self._ready_subscribers, callback)

    # ------------------------------------------------------------------
    # Player lifecycle
    # ------------------------------------------------------------------

    def attach(self, player: Player) -> None:
        """Handle the player's ready event."""
        self._player = player
        self.state.duration_s = _read_duration(player)
        self.state.is_ready = True
        logger.debug("Player ready (duration %.1fs)", self.state.duration_s)
        for callback in list(self._ready_subscribers):
            callback(self.state)

    def handle_state_change(self, player_state: int) -> None:
        """Handle a player state-change notification.

        Only PLAYING counts as playing; buffering, paused, ended, cued and
        unstarted all stop the tick loop.
        """
        playing = player_state == PlayerState.PLAYING
        self.state.is_playing = playing
        if playing:
            self._start_ticking()
        else:
            self._stop_ticking()

    def close(self) -> None:
        """Stop ticking and drop all subscribers."""
        self._stop_ticking()
        self._tick_subscribers.clear()
        self._ready_subscribers.clear()

    # ------------------------------------------------------------------
    # Controls
    # ------------------------------------------------------------------

    def toggle_play(self) -> bool:
        if self._player is None:
            return False
        if self.state.is_playing:
            self._player.pause()
        else:
            self._player.play()
        return True

    def seek_to(self, percent: float) -> bool:
        """Seek to ``percent`` (0–100) of the duration."""
        if self._player is None or not self.state.duration_s:
            return False
        percent = min(max(percent, 0.0), 100.0)
        return self._seek(self._player, percent / 100 * self.state.duration_s)

    def seek_seconds(self, seconds: float) -> bool:
        """Seek to an absolute position, e.g. a note's timestamp."""
        if self._player is None:
            return False
        seconds = max(0.0, seconds)
        if self.state.duration_s:
            seconds = min(seconds, self.state.duration_s)
        return self._seek(self._player, seconds)

    def skip(self, delta_s: float) -> bool:
        """Jump forward (positive) or back (negative) by ``delta_s``."""
        if self._player is None or not self.state.duration_s:
            return False
        target = min(max(self.state.current_time_s + delta_s, 0.0), self.state.duration_s)
        return self._seek(self._player, target)

    def toggle_mute(self) -> bool:
        if self._player is None:
            return False
        if self.state.is_muted:
            self._player.unmute()
        else:
            self._player.mute()
        self.state.is_muted = not self.state.is_muted
        return True

    def toggle_captions(self) -> bool:
        self.state.captions_enabled = not self.state.captions_enabled
        logger.info(
            "Captions %s; takes effect when the player is next initialized",
            "enabled" if self.state.captions_enabled else "disabled",
        )
        return self.state.captions_enabled

    def player_vars(self) -> Dict[str, Any]:
        """Embed parameters for (re)initializing the player."""
        return {
            "autoplay": 0,
            "controls": 0,
            "modestbranding": 1,
            "rel": 0,
            "iv_load_policy": 3,
            "disablekb": 1,
            "cc_load_policy": 1 if self.state.captions_enabled else 0,
            "cc_lang_pref": "en",
        }

    # ------------------------------------------------------------------
    # Ticking
    # ------------------------------------------------------------------

    @property
    def is_ticking(self) -> bool:
        return self._tick_task is not None and not self._tick_task.done()

    def tick(self) -> None:
        """Sample the player once and notify tick subscribers.

        A player that fails to report its position skips this tick; the
        loop samples again on the next one.
        """
        if self._player is None:
            return
        try:
            time_s = max(0.0, float(self._player.get_current_time()))
            duration_s = _read_duration(self._player)
        except Exception:
            logger.exception("Could not sample player position; skipping tick")
            return
        if duration_s:
            time_s = min(time_s, duration_s)
        self.state.current_time_s = time_s
        self.state.duration_s = duration_s
        for callback in list(self._tick_subscribers):
            try:
                callback(time_s, duration_s)
            except Exception:
                logger.exception("Tick subscriber %r failed", callback)

    def _start_ticking(self) -> None:
        if self.is_ticking:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; playback ticks are disabled")
            return
        self._tick_task = loop.create_task(self._tick_loop())

    def _stop_ticking(self) -> None:
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None

    async def _tick_loop(self) -> None:
        while self.state.is_playing:
            await asyncio.sleep(self._tick_interval_s)
            if not self.state.is_playing:
                break
            self.tick()

    def _seek(self, player: Player, seconds: float) -> bool:
        player.seek(seconds)
        self.state.current_time_s = seconds
        return True


def _read_duration(player: Player) -> float:
    duration = player.get_duration()
    return float(duration) if duration and duration > 0 else 0.0


def _remove(callbacks: list, callback: Any) -> None:
    if callback in callbacks:
        callbacks.remove(callback)
