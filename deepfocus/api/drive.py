"""Async HTTP client for the Google Drive v3 REST API.

WHY: Notes are exported as markdown files into a "DeepFocus Notes" folder
in the user's Drive, and the Drive panel lists, searches and previews the
user's files. All of that is a handful of files.* calls made with the
user's OAuth access token.

HOW: GoogleDriveClient wraps httpx.AsyncClient with Bearer auth. Metadata
calls go to GOOGLE_DRIVE_API_URL; content goes to GOOGLE_DRIVE_UPLOAD_URL
as a media upload. Responses are parsed into the dataclasses in
api/models.py.

RULES:
- Always use the async context manager (async with GoogleDriveClient(token) as drive:)
- Non-2xx responses raise DriveAPIError with the status code and body
- Values interpolated into Drive queries go through quote_query_value()
- New files: metadata create (files.create), then a media upload of the content
- Existing files are updated with a media upload (content only, name kept)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from deepfocus.api.models import FILE_FIELDS, DriveFile, DriveFileList
from deepfocus.config import (
    DRIVE_FOLDER_MIME_TYPE,
    GOOGLE_DRIVE_API_URL,
    GOOGLE_DRIVE_UPLOAD_URL,
)

logger = logging.getLogger(__name__)


class DriveAPIError(Exception):
    """Raised when the Drive API returns an error response.

    RULES:
    - Always include status_code and message
    - message is the response body text
    """

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Drive API error {status_code}: {message}")


def quote_query_value(value: str) -> str:
    """Escape a value for use inside single quotes in a Drive ``q`` string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class GoogleDriveClient:
    """Async client for the subset of Drive v3 used by DeepFocus.

    RULES:
    - access_token is the user's OAuth token (drive.file scope is enough)
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        access_token: str,
        api_url: Optional[str] = None,
        upload_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._access_token = access_token
        self._api_url = (api_url or GOOGLE_DRIVE_API_URL).rstrip("/")
        self._upload_url = (upload_url or GOOGLE_DRIVE_UPLOAD_URL).rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> GoogleDriveClient:
        self._client = httpx.AsyncClient(
            headers={"Authorization": f"Bearer {self._access_token}"},
            timeout=httpx.Timeout(30.0, connect=10.0),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # noqa: ANN001
        if self._client:
            await self._client.aclose()
            self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "GoogleDriveClient must be used as an async context manager: "
                "async with GoogleDriveClient(token) as drive: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    async def list_files(
        self,
        query: str,
        fields: str = FILE_FIELDS,
        page_size: Optional[int] = None,
        page_token: Optional[str] = None,
        order_by: Optional[str] = None,
    ) -> DriveFileList:
        """Run files.list with a Drive query string."""
        client = self._ensure_client()
        params: Dict[str, Any] = {
            "q": query,
            "fields": "nextPageToken, files({})".format(fields),
        }
        if page_size is not None:
            params["pageSize"] = page_size
        if page_token:
            params["pageToken"] = page_token
        if order_by:
            params["orderBy"] = order_by

        resp = await client.get(f"{self._api_url}/files", params=params)
        if resp.status_code != 200:
            raise DriveAPIError(resp.status_code, resp.text)
        return DriveFileList.from_dict(resp.json())

    async def get_file(self, file_id: str, fields: str) -> DriveFile:
        client = self._ensure_client()
        resp = await client.get(
            f"{self._api_url}/files/{file_id}", params={"fields": fields}
        )
        if resp.status_code != 200:
            raise DriveAPIError(resp.status_code, resp.text)
        return DriveFile.from_dict(resp.json())

    async def find_folder(self, name: str) -> Optional[DriveFile]:
        """Return the first non-trashed folder with exactly this name."""
        query = "name='{}' and mimeType='{}' and trashed=false".format(
            quote_query_value(name), DRIVE_FOLDER_MIME_TYPE
        )
        result = await self.list_files(query, fields="id, name")
        return result.files[0] if result.files else None

    async def create_folder(self, name: str, parents: Optional[List[str]] = None) -> str:
        body: Dict[str, Any] = {"name": name, "mimeType": DRIVE_FOLDER_MIME_TYPE}
        if parents:
            body["parents"] = parents
        folder = await self._create_metadata(body, fields="id")
        logger.info("Created Drive folder %r (%s)", name, folder.id)
        return folder.id

    async def ensure_folder(self, name: str) -> str:
        """Find the named folder, creating it when absent; returns its id."""
        folder = await self.find_folder(name)
        if folder is not None:
            return folder.id
        return await self.create_folder(name)

    # ------------------------------------------------------------------
    # Content
    # ------------------------------------------------------------------

    async def create_file(
        self,
        name: str,
        content: str,
        mime_type: str,
        parents: Optional[List[str]] = None,
        app_properties: Optional[Dict[str, str]] = None,
    ) -> DriveFile:
        """Create a file's metadata, then upload its content.

        If the content upload fails the empty file stays behind; it carries
        its name and appProperties, so the next export finds and fills it.
        """
        metadata: Dict[str, Any] = {"name": name, "mimeType": mime_type}
        if parents:
            metadata["parents"] = parents
        if app_properties:
            metadata["appProperties"] = app_properties
        created = await self._create_metadata(metadata, fields="id")
        return await self.update_file_content(created.id, content, mime_type)

    async def update_file_content(self, file_id: str, content: str, mime_type: str) -> DriveFile:
        """Replace a file's content, keeping its name and parents."""
        client = self._ensure_client()
        resp = await client.patch(
            f"{self._upload_url}/files/{file_id}",
            params={"uploadType": "media", "fields": "id, name, webViewLink"},
            content=content.encode("utf-8"),
            headers={"Content-Type": mime_type},
        )
        if resp.status_code != 200:
            raise DriveAPIError(resp.status_code, resp.text)
        return DriveFile.from_dict(resp.json())

    async def _create_metadata(self, metadata: Dict[str, Any], fields: str) -> DriveFile:
        client = self._ensure_client()
        resp = await client.post(
            f"{self._api_url}/files", params={"fields": fields}, json=metadata
        )
        if resp.status_code not in (200, 201):
            raise DriveAPIError(resp.status_code, resp.text)
        return DriveFile.from_dict(resp.json())
