"""Action results and per-action status tracking.

WHY: Progress saves and exports cross the network and can fail, but a
failure must never interrupt playback. Instead of raising or printing to
the console, each operation returns an ActionResult and the caller
decides whether to surface, log, or ignore it. Buttons that trigger an
action show a short-lived status badge driven by a StatusTracker.

HOW: ActionResult is a small frozen dataclass with ok()/failure()
constructors. StatusTracker walks idle → pending → success | error; a
success schedules its own reset to idle, an error stays until the next
attempt calls begin().

RULES:
- No retries anywhere: a failed result is final for that attempt
- success resets to idle after reset_delay_s; error never auto-resets
- begin() cancels any pending reset from a previous success
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Optional

from deepfocus.core.scheduling import Cancellable, Scheduler, schedule_later

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    """Why an action did not succeed."""

    PRECONDITION = "precondition"
    UNAUTHENTICATED = "unauthenticated"
    NETWORK = "network"
    API = "api"


@dataclass(frozen=True)
class ActionResult:
    """Outcome of a persistence or export action.

    RULES:
    - success=True implies error is None
    - value carries the payload (file id, URI, stored record) on success
    - message is human-readable and safe to show in the UI
    """

    success: bool
    value: Any = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def ok(cls, value: Any = None, message: str = "") -> ActionResult:
        return cls(success=True, value=value, message=message)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> ActionResult:
        return cls(success=False, error=error, message=message)


class ActionStatus(str, enum.Enum):
    """Display state of one user-triggered async action."""

    IDLE = "idle"
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class StatusTracker:
    """Status badge state for a single action (e.g. "Save to Drive").

    WHY: The UI needs "Saving...", "Saved!" and "Error" states that behave
    the same for every export button.

    HOW: begin() moves to PENDING, finish(result) moves to SUCCESS or
    ERROR. SUCCESS schedules a reset to IDLE through the injected
    scheduler.
    """

    def __init__(
        self,
        name: str,
        reset_delay_s: float,
        schedule: Scheduler = schedule_later,
    ) -> None:
        self.name = name
        self.status = ActionStatus.IDLE
        self.last_result: Optional[ActionResult] = None
        self._reset_delay_s = reset_delay_s
        self._schedule = schedule
        self._reset_handle: Optional[Cancellable] = None

    @property
    def is_pending(self) -> bool:
        return self.status is ActionStatus.PENDING

    def begin(self) -> None:
        self._cancel_reset()
        self.status = ActionStatus.PENDING

    def finish(self, result: ActionResult) -> ActionResult:
        self.last_result = result
        if result.success:
            self.status = ActionStatus.SUCCESS
            self._reset_handle = self._schedule(self._reset_delay_s, self.reset)
        else:
            self.status = ActionStatus.ERROR
            logger.info("%s failed (%s): %s", self.name, result.error, result.message)
        return result

    def reset(self) -> None:
        self._reset_handle = None
        if self.status is ActionStatus.SUCCESS:
            self.status = ActionStatus.IDLE

    def _cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None
