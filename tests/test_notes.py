"""Tests for the note capture log.

WHY: Notes are the user's only artifact from a session. Order, ids,
timestamps and the highlight pulse must behave predictably.

RULES:
- Highlight resets are driven through ManualScheduler, never sleep()
"""

from __future__ import annotations

import dataclasses

import pytest

from conftest import ManualScheduler
from deepfocus.core.notes import NoteCaptureLog


@pytest.fixture
def log(scheduler):
    return NoteCaptureLog(highlight_duration_s=0.3, schedule=scheduler)


class TestCapture:
    def test_appends_with_display_timestamp(self, log):
        note = log.capture("  Big-O recap  ", 187.9)

        assert note is not None
        assert note.text == "Big-O recap"
        assert note.timestamp_s == 187.9
        assert note.display_timestamp == "03:07"
        assert log.notes == [note]

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text_is_ignored(self, log, text):
        assert log.capture(text, 10) is None
        assert len(log) == 0

    def test_ids_are_unique_and_increasing(self, log):
        ids = [log.capture("n{}".format(i), 1).id for i in range(5)]
        assert ids == sorted(set(ids))

    def test_call_order_kept_even_when_timestamps_go_backwards(self, log):
        log.capture("later", 300)
        log.capture("earlier", 20)
        assert [n.text for n in log.notes] == ["later", "earlier"]

    def test_capture_at_zero_and_negative_time(self, log):
        assert log.capture("start", 0).display_timestamp == "00:00"
        assert log.capture("clamped", -4).timestamp_s == 0.0

    def test_notes_are_immutable(self, log):
        note = log.capture("fixed", 12)
        with pytest.raises(dataclasses.FrozenInstanceError):
            note.text = "changed"

    def test_notes_property_is_a_copy(self, log):
        log.capture("one", 1)
        log.notes.clear()
        assert len(log) == 1

    def test_logs_are_independent(self):
        first = NoteCaptureLog(schedule=ManualScheduler())
        second = NoteCaptureLog(schedule=ManualScheduler())
        first.capture("only here", 5)
        assert len(second) == 0

    def test_to_dict_wire_shape(self, log):
        note = log.capture("hello", 65.5)
        assert note.to_dict() == {
            "timestamp": "01:05",
            "timestampSeconds": 65.5,
            "text": "hello",
        }


class TestHighlight:
    def test_activate_sets_and_schedules_clear(self, log, scheduler):
        note = log.capture("jump here", 42)

        assert log.activate_timestamp(note.id) is True
        assert log.get(note.id).is_highlighted is True
        assert scheduler.delays == [0.3]

        scheduler.fire_all()
        assert log.get(note.id).is_highlighted is False

    def test_highlight_does_not_change_content(self, log):
        note = log.capture("jump here", 42)
        log.activate_timestamp(note.id)
        highlighted = log.get(note.id)
        assert (highlighted.text, highlighted.timestamp_s) == (note.text, note.timestamp_s)

    def test_unknown_id(self, log, scheduler):
        assert log.activate_timestamp(999) is False
        assert scheduler.pending == []
