"""Tests for the DeepFocus HTTP API.

WHY: Validates every endpoint: auth, watch-history upserts and listing,
Drive save/list/search/file proxies, and health. Uses FastAPI TestClient
for synchronous in-process testing.

HOW: require_session is replaced through app.dependency_overrides so
no test calls Google's tokeninfo. Drive calls are served by FakeDrive
by patching the GoogleDriveClient name inside the app module.

RULES:
- Google is never called (tokeninfo and Drive are mocked)
- The history store is cleared before each test
- Tests cover: happy paths, 400 bad request, 401, 404, 502
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import httpx
import pytest
from fastapi.testclient import TestClient

from deepfocus.api.tokeninfo import TokenInfoError
from deepfocus.core.session import AuthSession
from deepfocus.server.app import app, embed_url_for, history_store
from deepfocus.server.auth import parse_bearer, require_session

USER = AuthSession(user_id="user-1", access_token="tok")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_store():
    history_store.clear()
    yield
    history_store.clear()
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    app.dependency_overrides[require_session] = lambda: USER
    return TestClient(app)


@pytest.fixture
def drive_client(client, fake_drive):
    with patch("deepfocus.server.app.GoogleDriveClient", new=fake_drive.client):
        yield client


def _save(client, **body):
    payload = {"videoId": "v1", "progress": 10, "duration": 100}
    payload.update(body)
    return client.post("/api/watch-history", json=payload)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestAuth:
    def test_parse_bearer(self):
        assert parse_bearer("Bearer abc") == "abc"
        assert parse_bearer("bearer  abc ") == "abc"
        assert parse_bearer("Basic abc") is None
        assert parse_bearer(None) is None

    def test_missing_header_is_401(self):
        resp = TestClient(app).get("/api/watch-history")
        assert resp.status_code == 401
        assert resp.json() == {"detail": "Unauthorized"}

    def test_rejected_token_is_401(self):
        with patch(
            "deepfocus.server.auth.fetch_token_info",
            new=AsyncMock(side_effect=TokenInfoError(400, "invalid_token")),
        ):
            resp = TestClient(app).get(
                "/api/watch-history", headers={"Authorization": "Bearer nope"}
            )
        assert resp.status_code == 401

    def test_tokeninfo_outage_is_401(self):
        with patch(
            "deepfocus.server.auth.fetch_token_info",
            new=AsyncMock(side_effect=httpx.ConnectError("down")),
        ):
            resp = TestClient(app).get(
                "/api/watch-history", headers={"Authorization": "Bearer tok"}
            )
        assert resp.status_code == 401

    def test_valid_token_resolves_user(self):
        with patch(
            "deepfocus.server.auth.fetch_token_info",
            new=AsyncMock(return_value={"sub": "google-42", "expires_in": "3599"}),
        ):
            resp = TestClient(app).post(
                "/api/watch-history",
                json={"videoId": "v1", "progress": 5, "duration": 50},
                headers={"Authorization": "Bearer tok"},
            )
        assert resp.status_code == 200
        assert resp.json()["userId"] == "google-42"


# ---------------------------------------------------------------------------
# Watch history
# ---------------------------------------------------------------------------


class TestWatchHistory:
    def test_save_returns_camel_case_record(self, client):
        resp = _save(client, progress=12.7, duration=300.2, videoTitle="Intro", channelName="Ch")
        assert resp.status_code == 200
        body = resp.json()
        assert body["videoId"] == "v1"
        assert (body["progress"], body["duration"]) == (12, 300)
        assert body["videoTitle"] == "Intro"
        assert body["channelName"] == "Ch"
        assert body["completed"] is False
        assert "lastWatched" in body and "createdAt" in body

    def test_save_requires_video_id(self, client):
        resp = client.post("/api/watch-history", json={"progress": 10, "duration": 100})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "videoId is required"

    def test_completed_at_ninety_percent(self, client):
        assert _save(client, progress=95).json()["completed"] is True
        assert _save(client, videoId="v2", progress=89).json()["completed"] is False

    def test_list_excludes_completed_by_default(self, client):
        _save(client, videoId="done", progress=99)
        _save(client, videoId="todo", progress=10)

        default = client.get("/api/watch-history").json()
        everything = client.get("/api/watch-history?includeCompleted=true").json()

        assert [r["videoId"] for r in default] == ["todo"]
        assert {r["videoId"] for r in everything} == {"done", "todo"}

    def test_list_limit(self, client):
        for vid in ("a", "b", "c"):
            _save(client, videoId=vid)
        assert len(client.get("/api/watch-history?limit=2").json()) == 2

    def test_repeated_saves_keep_one_row(self, client):
        for progress in (10, 20, 30):
            _save(client, progress=progress)
        rows = client.get("/api/watch-history").json()
        assert len(rows) == 1
        assert rows[0]["progress"] == 30

    def test_delete(self, client):
        _save(client)
        resp = client.delete("/api/watch-history?videoId=v1")
        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert client.get("/api/watch-history").json() == []

    def test_delete_missing(self, client):
        assert client.delete("/api/watch-history").status_code == 400
        assert client.delete("/api/watch-history?videoId=nope").status_code == 404

    def test_delete_user_data(self, client):
        _save(client, videoId="a")
        _save(client, videoId="b")
        resp = client.delete("/api/user")
        assert resp.json() == {"success": True, "deleted": 2}


# ---------------------------------------------------------------------------
# Drive
# ---------------------------------------------------------------------------


NOTES = [
    {"timestamp": "00:05", "timestampSeconds": 5, "text": "Intro"},
    {"timestamp": "03:07", "timestampSeconds": 187, "text": "Scaling"},
]


class TestSaveNotes:
    def test_creates_then_updates(self, drive_client, fake_drive):
        body = {"videoId": "vid123", "notes": NOTES, "videoTitle": "Systems 101"}

        first = drive_client.post("/api/drive/save-notes", json=body)
        second = drive_client.post("/api/drive/save-notes", json=body)

        assert first.status_code == 200
        assert first.json()["success"] is True
        assert first.json()["fileId"] == second.json()["fileId"]
        markdown = [f for f in fake_drive.files.values() if f["mimeType"] == "text/markdown"]
        assert len(markdown) == 1
        assert "- **[03:07]** Scaling" in fake_drive.contents[first.json()["fileId"]]

    @pytest.mark.parametrize(
        "body",
        [
            {"notes": NOTES},
            {"videoId": "vid123", "notes": []},
            {"videoId": "vid123"},
        ],
    )
    def test_missing_fields(self, drive_client, fake_drive, body):
        resp = drive_client.post("/api/drive/save-notes", json=body)
        assert resp.status_code == 400
        assert fake_drive.requests == []

    def test_drive_failure_is_502(self, drive_client, fake_drive):
        fake_drive.fail_with = 500
        resp = drive_client.post("/api/drive/save-notes", json={"videoId": "v", "notes": NOTES})
        assert resp.status_code == 502


class TestDriveBrowse:
    def test_files_split_folders_and_files(self, drive_client, fake_drive):
        fake_drive.add("Lectures", fake_drive.FOLDER)
        fake_drive.add("syllabus.pdf", "application/pdf")
        fake_drive.add("elsewhere.pdf", "application/pdf", parents=["other"])

        resp = drive_client.get("/api/drive/files")

        body = resp.json()
        assert [f["name"] for f in body["folders"]] == ["Lectures"]
        assert [f["name"] for f in body["files"]] == ["syllabus.pdf"]
        assert body["nextPageToken"] is None
        params = fake_drive.requests[0].url.params
        assert params["orderBy"] == "folder, name"
        assert params["pageSize"] == "50"

    def test_files_mime_filter(self, drive_client, fake_drive):
        fake_drive.add("a.pdf", "application/pdf")
        fake_drive.add("b.png", "image/png")
        body = drive_client.get("/api/drive/files?mimeType=image/png").json()
        assert [f["name"] for f in body["files"]] == ["b.png"]

    def test_search_blank_query_skips_drive(self, drive_client, fake_drive):
        resp = drive_client.get("/api/drive/search?q=%20")
        assert resp.json() == {"files": [], "nextPageToken": None}
        assert fake_drive.requests == []

    def test_search_escapes_quotes(self, drive_client, fake_drive):
        fake_drive.add("Alice's notes.md")
        fake_drive.add("Bob.md")

        body = drive_client.get("/api/drive/search", params={"q": "Alice's"}).json()

        assert [f["name"] for f in body["files"]] == ["Alice's notes.md"]
        assert "name contains 'Alice\\'s'" in fake_drive.requests[0].url.params["q"]

    def test_file_metadata(self, drive_client, fake_drive):
        file_id = fake_drive.add("syllabus.pdf", "application/pdf")
        body = drive_client.get("/api/drive/file/{}".format(file_id)).json()
        assert body["name"] == "syllabus.pdf"
        assert "embedUrl" not in body

    def test_file_embed(self, drive_client, fake_drive):
        file_id = fake_drive.add("deck", "application/vnd.google-apps.presentation")
        body = drive_client.get("/api/drive/file/{}?action=embed".format(file_id)).json()
        assert body["embedUrl"] == "https://docs.google.com/presentation/d/{}/preview".format(
            file_id
        )

    def test_file_bad_action(self, drive_client):
        assert drive_client.get("/api/drive/file/x?action=download").status_code == 400

    def test_file_not_found(self, drive_client):
        assert drive_client.get("/api/drive/file/missing").status_code == 404


class TestEmbedUrl:
    @pytest.mark.parametrize(
        "mime,expected",
        [
            ("application/pdf", "https://drive.google.com/file/d/F/preview"),
            ("image/jpeg", "https://drive.google.com/uc?id=F"),
            ("application/vnd.google-apps.document", "https://docs.google.com/document/d/F/preview"),
            (
                "application/vnd.google-apps.spreadsheet",
                "https://docs.google.com/spreadsheets/d/F/preview",
            ),
            ("video/mp4", "https://drive.google.com/file/d/F/preview"),
            (None, "https://drive.google.com/file/d/F/preview"),
        ],
    )
    def test_mapping(self, mime, expected):
        assert embed_url_for("F", mime) == expected


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class TestHealth:
    def test_health(self):
        resp = TestClient(app).get("/health")
        assert resp.status_code == 200
        assert resp.json() == {"status": "ok", "version": "0.1.0"}
