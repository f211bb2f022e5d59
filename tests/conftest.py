"""Shared test fixtures for the deepfocus test suite.

WHY: Driver, notes, session and export tests all need a controllable
stand-in for the embedded player and a way to fire delayed callbacks
(highlight pulses, status resets) without sleeping.

HOW: FakePlayer records every command and serves a settable clock.
ManualScheduler satisfies the Scheduler signature and keeps callbacks
until the test fires them. SAMPLE_NOTES is the notes list reused by the
exporter and API tests.

RULES:
- No test touches the network; HTTP goes through httpx.MockTransport
  or patched senders
- Scheduled callbacks run only when a test calls fire_all()
"""

from __future__ import annotations

import itertools
import json
import re
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx
import pytest

from deepfocus.api.drive import GoogleDriveClient
from deepfocus.exporters.base import ExportedNote


class FakePlayer:
    """In-memory Player that records calls."""

    def __init__(self, duration: float = 600.0, current: float = 0.0) -> None:
        self.duration = duration
        self.current = current
        self.calls: List[Tuple] = []

    def play(self) -> None:
        self.calls.append(("play",))

    def pause(self) -> None:
        self.calls.append(("pause",))

    def seek(self, seconds: float) -> None:
        self.calls.append(("seek", seconds))
        self.current = seconds

    def mute(self) -> None:
        self.calls.append(("mute",))

    def unmute(self) -> None:
        self.calls.append(("unmute",))

    def get_current_time(self) -> float:
        return self.current

    def get_duration(self) -> float:
        return self.duration


class _Handle:
    def __init__(self) -> None:
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Scheduler that queues callbacks until fire_all() is called."""

    def __init__(self) -> None:
        self.pending: List[Tuple[float, Callable[[], None], _Handle]] = []

    def __call__(self, delay_s: float, callback: Callable[[], None]) -> _Handle:
        handle = _Handle()
        self.pending.append((delay_s, callback, handle))
        return handle

    @property
    def delays(self) -> List[float]:
        return [delay for delay, _, handle in self.pending if not handle.cancelled]

    def fire_all(self) -> None:
        pending, self.pending = self.pending, []
        for _, callback, handle in pending:
            if not handle.cancelled:
                callback()


SAMPLE_NOTES = [
    ExportedNote(timestamp="00:05", timestamp_s=5.2, text="Intro to system design"),
    ExportedNote(timestamp="03:07", timestamp_s=187.9, text="Scaling the data layer"),
    ExportedNote(timestamp="1:02:03", timestamp_s=3723.0, text="Wrap-up"),
]


@pytest.fixture
def player():
    return FakePlayer()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def sample_notes():
    return list(SAMPLE_NOTES)


class FakeDrive:
    """Minimal in-memory Drive v3 behind an httpx.MockTransport.

    Understands exactly the calls GoogleDriveClient makes: files.list with
    the folder/name-contains/parents queries, files.get, metadata create
    (folders and files), and media update. Every request is recorded.
    """

    FOLDER = "application/vnd.google-apps.folder"

    def __init__(self) -> None:
        self.files: Dict[str, Dict[str, Any]] = {}
        self.contents: Dict[str, str] = {}
        self.requests: List[httpx.Request] = []
        self.fail_with: Optional[int] = None
        self._ids = itertools.count(1)

    def add(self, name: str, mime_type: str = "text/markdown", parents=None, **extra) -> str:
        file_id = "id{}".format(next(self._ids))
        self.files[file_id] = dict(
            id=file_id, name=name, mimeType=mime_type, parents=parents or ["root"], **extra
        )
        return file_id

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def client(self, access_token: str) -> GoogleDriveClient:
        return GoogleDriveClient(access_token, transport=self.transport())

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, text="drive unavailable")
        path = request.url.path
        if request.method == "GET" and path == "/drive/v3/files":
            return self._list(request.url.params.get("q", ""))
        if request.method == "GET" and path.startswith("/drive/v3/files/"):
            file = self.files.get(path.rsplit("/", 1)[1])
            if file is None:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, json=file)
        if request.method == "POST" and path == "/drive/v3/files":
            meta = json.loads(request.content)
            file_id = self.add(
                meta["name"],
                meta["mimeType"],
                meta.get("parents"),
                appProperties=meta.get("appProperties", {}),
            )
            return httpx.Response(200, json={"id": file_id})
        if request.method == "PATCH" and path.startswith("/upload/drive/v3/files/"):
            file_id = path.rsplit("/", 1)[1]
            self.contents[file_id] = request.content.decode()
            return httpx.Response(200, json=self.files[file_id])
        return httpx.Response(400, text="unexpected request")

    def _list(self, query: str) -> httpx.Response:
        matches = []
        for file in self.files.values():
            if "trashed=false" not in query:
                continue
            name_eq = re.search(r"name='((?:[^'\\]|\\.)*)'", query)
            name_has = re.search(r"name contains '((?:[^'\\]|\\.)*)'", query)
            app = re.search(r"appProperties has \{ key='(\w+)' and value='((?:[^'\\]|\\.)*)' \}", query)
            parent = re.search(r"'((?:[^'\\]|\\.)*)' in parents", query)
            mime = re.search(r"mimeType='([^']*)'", query)
            if name_eq and file["name"] != _unescape(name_eq.group(1)):
                continue
            by_name = bool(name_has) and _unescape(name_has.group(1)) in file["name"]
            by_app = bool(app) and (
                file.get("appProperties", {}).get(app.group(1)) == _unescape(app.group(2))
            )
            if (name_has or app) and not (by_name or by_app):
                continue
            if parent and _unescape(parent.group(1)) not in file.get("parents", []):
                continue
            if mime and file["mimeType"] != mime.group(1):
                continue
            matches.append(file)
        return httpx.Response(200, json={"files": matches})


def _unescape(value: str) -> str:
    return value.replace("\\'", "'").replace("\\\\", "\\")


@pytest.fixture
def fake_drive():
    return FakeDrive()
