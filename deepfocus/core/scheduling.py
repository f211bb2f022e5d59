"""Deferred callbacks for transient UI state (highlights, status badges).

WHY: A note's highlight pulse and an export button's "Saved!" badge both
clear themselves after a short delay. The session runs on an asyncio
event loop, but the same objects are also driven from plain synchronous
code (CLI, tests), where no loop is running.

HOW: schedule_later() uses the running loop's call_later when there is
one, and falls back to a daemon threading.Timer otherwise. Components take
a ``schedule`` callable so tests can capture callbacks and fire them by
hand.

RULES:
- The returned handle always has a cancel() method
- Callbacks run on the event loop thread when a loop is running
- The Timer fallback is for loop-less callers only (CLI, tests); its
  callback runs on the timer thread, so a WatchSession driven by a player
  must live on a running loop to keep state changes on one thread
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from typing import Any, Protocol


class Cancellable(Protocol):
    def cancel(self) -> Any: ...


Scheduler = Callable[[float, Callable[[], None]], Cancellable]


def schedule_later(delay_s: float, callback: Callable[[], None]) -> Cancellable:
    """Run ``callback`` once after ``delay_s`` seconds."""
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        timer = threading.Timer(delay_s, callback)
        timer.daemon = True
        timer.start()
        return timer
    return loop.call_later(delay_s, callback)
