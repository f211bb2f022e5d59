"""HTTP client for the DeepFocus backend API (watch history, Drive notes).

WHY: The watch session persists progress and exports notes through the
DeepFocus server, never by talking to the store or Drive itself. It
needs an async client for periodic saves and exports, and a "beacon" for
the final progress save at teardown, when an ordinary request may be cut
off.

HOW: DeepFocusAPIClient wraps httpx.AsyncClient with Bearer auth, the
same way every outbound client in this package does. send_beacon() hands
a single synchronous httpx POST to a background thread and returns at
once: True means "queued", not "delivered". The thread is not a daemon,
so interpreter exit waits for the POST (bounded by BEACON_TIMEOUT_S)
instead of killing it mid-flight.

RULES:
- Always use the async context manager (async with DeepFocusAPIClient(...) as client:)
- Non-2xx responses raise DeepFocusAPIError
- send_beacon never raises; delivery failures are logged in the thread
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional

import httpx

from deepfocus.config import DEEPFOCUS_API_URL

logger = logging.getLogger(__name__)

WATCH_HISTORY_PATH = "/api/watch-history"
SAVE_NOTES_PATH = "/api/drive/save-notes"
BEACON_TIMEOUT_S = 5.0


class DeepFocusAPIError(Exception):
    """Raised when the DeepFocus API returns an error response."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"DeepFocus API error {status_code}: {message}")


class DeepFocusAPIClient:
    """Async client for the DeepFocus server.

    RULES:
    - access_token is the caller's Google OAuth token (the server resolves it)
    - base_url defaults to DEEPFOCUS_API_URL from config
    - transport is for tests (httpx.MockTransport)
    """

    def __init__(
        self,
        access_token: str,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._access_token = access_token
        self._base_url = (base_url or DEEPFOCUS_API_URL).rstrip("/")
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> DeepFocusAPIClient:
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._access_token}"},
            timeout=httpx.Timeout(30.0, connect=5.0),
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
                "DeepFocusAPIClient must be used as an async context manager: "
                "async with DeepFocusAPIClient(token) as client: ..."
            )
        return self._client

    # ------------------------------------------------------------------
    # Watch history
    # ------------------------------------------------------------------

    async def save_progress(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Upsert progress for one video; returns the stored record."""
        client = self._ensure_client()
        resp = await client.post(WATCH_HISTORY_PATH, json=payload)
        if resp.status_code != 200:
            raise DeepFocusAPIError(resp.status_code, resp.text)
        return resp.json()

    async def list_history(
        self,
        limit: int = 20,
        include_completed: bool = False,
    ) -> List[Dict[str, Any]]:
        client = self._ensure_client()
        resp = await client.get(
            WATCH_HISTORY_PATH,
            params={
                "limit": limit,
                "includeCompleted": "true" if include_completed else "false",
            },
        )
        if resp.status_code != 200:
            raise DeepFocusAPIError(resp.status_code, resp.text)
        return resp.json()

    async def delete_history(self, video_id: str) -> None:
        client = self._ensure_client()
        resp = await client.delete(WATCH_HISTORY_PATH, params={"videoId": video_id})
        if resp.status_code != 200:
            raise DeepFocusAPIError(resp.status_code, resp.text)

    # ------------------------------------------------------------------
    # Drive notes
    # ------------------------------------------------------------------

    async def save_notes(
        self,
        video_id: str,
        notes: List[Dict[str, Any]],
        video_title: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Create or update the video's notes file in Drive; returns {success, fileId}."""
        client = self._ensure_client()
        body: Dict[str, Any] = {"videoId": video_id, "notes": notes}
        if video_title:
            body["videoTitle"] = video_title
        resp = await client.post(SAVE_NOTES_PATH, json=body)
        if resp.status_code != 200:
            raise DeepFocusAPIError(resp.status_code, resp.text)
        return resp.json()


def send_beacon(
    payload: Dict[str, Any],
    access_token: str,
    base_url: Optional[str] = None,
) -> bool:
    """Queue a progress POST on a background thread and return immediately."""
    url = (base_url or DEEPFOCUS_API_URL).rstrip("/") + WATCH_HISTORY_PATH

    def _deliver() -> None:
        try:
            resp = httpx.post(
                url,
                json=payload,
                headers={"Authorization": f"Bearer {access_token}"},
                timeout=BEACON_TIMEOUT_S,
            )
            if resp.status_code != 200:
                logger.warning("Progress beacon rejected (%d): %s", resp.status_code, resp.text)
        except httpx.HTTPError as exc:
            logger.warning("Progress beacon failed: %s", exc)

    try:
        thread = threading.Thread(target=_deliver, name="progress-beacon")
        thread.start()
    except RuntimeError:
        logger.warning("Could not start progress beacon thread")
        return False
    return True
