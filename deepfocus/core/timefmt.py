"""Playback time formatting for note timestamps and the player clock.

WHY: Notes show where in the video they were captured ("[03:07]"), and
exported markdown repeats those labels. One formatter keeps the badge,
the Obsidian export, and the Drive export consistent.

HOW: Seconds are floored, then split into hours/minutes/seconds.
Below one hour the label is zero-padded ``mm:ss``; from one hour on it
becomes ``h:mm:ss``.

RULES:
- Fractions of a second are floored, never rounded
- Negative input is treated as 0
- parse_time(format_time(s)) == floor(s) for every s >= 0
"""

from __future__ import annotations

import math


def format_time(seconds: float) -> str:
    """Render a playback position as ``mm:ss`` (or ``h:mm:ss``)."""
    total = max(0, math.floor(seconds))
    hours, rest = divmod(total, 3600)
    mins, secs = divmod(rest, 60)
    if hours:
        return "{}:{:02d}:{:02d}".format(hours, mins, secs)
    return "{:02d}:{:02d}".format(mins, secs)


def parse_time(label: str) -> int:
    """Parse a ``mm:ss`` or ``h:mm:ss`` label back to whole seconds.

    Raises:
        ValueError: If the label does not have two or three numeric parts.
    """
    parts = label.strip().split(":")
    if len(parts) not in (2, 3) or not all(p.isdigit() for p in parts):
        raise ValueError("Invalid time label: {!r}".format(label))
    total = 0
    for part in parts:
        total = total * 60 + int(part)
    return total
