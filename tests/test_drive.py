"""Tests for the Drive client and the Drive notes exporter.

WHY: Drive export is the only path that writes user data outside the app.
Folder reuse, the update-instead-of-duplicate rule, and query escaping
must hold against a Drive that behaves like the real files API.

HOW: FakeDrive (conftest) serves the Drive v3 endpoints through
httpx.MockTransport. Async calls run inside asyncio.run().
"""

from __future__ import annotations

import asyncio
import json
from datetime import date

import pytest

from deepfocus.api.drive import DriveAPIError, quote_query_value
from deepfocus.api.models import DriveFile
from deepfocus.exporters.drive import DriveNotesExporter

TODAY = date(2024, 3, 15)


def _export(fake_drive, notes, video_id="vid123", title="Systems 101", today=TODAY):
    exporter = DriveNotesExporter(client_factory=fake_drive.client)
    return asyncio.run(exporter.export("tok", notes, video_id, title, today=today))


class TestQueryEscaping:
    def test_quotes_and_backslashes(self):
        assert quote_query_value("it's") == "it\\'s"
        assert quote_query_value("a\\b") == "a\\\\b"


class TestDriveClient:
    def test_bearer_header_and_list(self, fake_drive):
        fake_drive.add("notes.md")

        async def scenario():
            async with fake_drive.client("tok") as drive:
                return await drive.list_files("'root' in parents and trashed=false", page_size=5)

        page = asyncio.run(scenario())
        request = fake_drive.requests[0]
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.url.params["pageSize"] == "5"
        assert request.url.params["fields"].startswith("nextPageToken, files(")
        assert [f.name for f in page.files] == ["notes.md"]

    def test_ensure_folder_creates_once(self, fake_drive):
        async def scenario():
            async with fake_drive.client("tok") as drive:
                return await drive.ensure_folder("DeepFocus Notes"), await drive.ensure_folder(
                    "DeepFocus Notes"
                )

        first, second = asyncio.run(scenario())
        assert first == second
        folders = [f for f in fake_drive.files.values() if f["mimeType"] == fake_drive.FOLDER]
        assert len(folders) == 1

    def test_create_file_sends_metadata_then_media(self, fake_drive):
        async def scenario():
            async with fake_drive.client("tok") as drive:
                return await drive.create_file(
                    "notes.md",
                    "# Notes\n\n- **[00:05]** Intro\n",
                    "text/markdown",
                    parents=["folder1"],
                    app_properties={"videoId": "vid123"},
                )

        created = asyncio.run(scenario())

        create, upload = fake_drive.requests
        assert (create.method, create.url.path) == ("POST", "/drive/v3/files")
        assert json.loads(create.content) == {
            "name": "notes.md",
            "mimeType": "text/markdown",
            "parents": ["folder1"],
            "appProperties": {"videoId": "vid123"},
        }
        assert (upload.method, upload.url.path) == ("PATCH", "/upload/drive/v3/files/" + created.id)
        assert upload.url.params["uploadType"] == "media"
        assert upload.headers["Content-Type"] == "text/markdown"
        assert fake_drive.contents[created.id] == "# Notes\n\n- **[00:05]** Intro\n"

    def test_create_file_metadata_failure_skips_upload(self, fake_drive):
        fake_drive.fail_with = 500

        async def scenario():
            async with fake_drive.client("tok") as drive:
                await drive.create_file("notes.md", "x", "text/markdown")

        with pytest.raises(DriveAPIError):
            asyncio.run(scenario())
        assert [r.method for r in fake_drive.requests] == ["POST"]

    def test_error_status_raises(self, fake_drive):
        fake_drive.fail_with = 403

        async def scenario():
            async with fake_drive.client("tok") as drive:
                await drive.get_file("id1", fields="id")

        with pytest.raises(DriveAPIError) as excinfo:
            asyncio.run(scenario())
        assert excinfo.value.status_code == 403

    def test_requires_context_manager(self, fake_drive):
        with pytest.raises(RuntimeError):
            asyncio.run(fake_drive.client("tok").get_file("id1", fields="id"))

    def test_drive_file_to_dict_omits_missing(self):
        data = {"id": "x", "name": "a.pdf", "mimeType": "application/pdf"}
        assert DriveFile.from_dict(data).to_dict() == data


class TestDriveDocument:
    def test_markdown_layout(self, sample_notes):
        doc = DriveNotesExporter().build_document(sample_notes, "vid123", "Systems 101", TODAY)

        assert doc.filename == "Systems 101 - 2024-03-15.md"
        assert doc.content.startswith(
            "# Systems 101\n\n"
            "**Video ID:** vid123\n"
            "**Date:** 2024-03-15\n"
            "**YouTube Link:** https://www.youtube.com/watch?v=vid123\n\n"
            "---\n\n"
            "## Notes\n\n"
            "- **[00:05]** Intro to system design\n"
        )
        assert doc.content.endswith("---\n*Notes captured with DeepFocus*\n")

    def test_title_falls_back_to_video_id(self, sample_notes):
        doc = DriveNotesExporter().build_document(sample_notes, "vid123", None, TODAY)
        assert doc.title == "Video vid123"
        assert doc.filename == "Video vid123 - 2024-03-15.md"

    def test_requires_video_id_and_notes(self, sample_notes):
        with pytest.raises(ValueError):
            DriveNotesExporter().build_document(sample_notes, "", None, TODAY)
        with pytest.raises(ValueError):
            DriveNotesExporter().build_document([], "vid123", None, TODAY)


class TestDriveExport:
    def test_first_export_creates_folder_and_file(self, fake_drive, sample_notes):
        result = _export(fake_drive, sample_notes)

        assert result.created is True
        assert result.filename == "Systems 101 - 2024-03-15.md"
        created = fake_drive.files[result.file_id]
        folder_id = created["parents"][0]
        assert fake_drive.files[folder_id]["name"] == "DeepFocus Notes"
        assert "## Notes" in fake_drive.contents[result.file_id]

    def test_second_export_updates_same_file(self, fake_drive, sample_notes):
        first = _export(fake_drive, sample_notes[:1])
        second = _export(fake_drive, sample_notes, today=date(2024, 3, 16))

        assert second.created is False
        assert second.file_id == first.file_id
        markdown = [f for f in fake_drive.files.values() if f["mimeType"] == "text/markdown"]
        assert len(markdown) == 1
        assert "Wrap-up" in fake_drive.contents[first.file_id]
        assert fake_drive.requests[-1].method == "PATCH"

    def test_titled_file_found_by_app_property(self, fake_drive, sample_notes):
        first = _export(fake_drive, sample_notes)
        assert "vid123" not in fake_drive.files[first.file_id]["name"]
        assert fake_drive.files[first.file_id]["appProperties"] == {"videoId": "vid123"}

    def test_substring_match_overwrites_other_video(self, fake_drive, sample_notes):
        # "Video abc - ..." contains "ab", so the "ab" export lands on it
        abc = _export(fake_drive, sample_notes, video_id="abc", title=None)
        ab = _export(fake_drive, sample_notes, video_id="ab", title=None)
        assert ab.file_id == abc.file_id
        assert ab.created is False

    def test_drive_failure_propagates(self, fake_drive, sample_notes):
        fake_drive.fail_with = 500
        with pytest.raises(DriveAPIError):
            _export(fake_drive, sample_notes)
