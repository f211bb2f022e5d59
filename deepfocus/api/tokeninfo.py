"""Google OAuth token introspection.

WHY: The API server does not issue sessions; Google does. A request is
authenticated when its bearer token is a live Google access token, and
the token's ``sub`` claim is the user id that keys watch history.

HOW: One GET to Google's tokeninfo endpoint. A 200 response carries
``sub``, ``scope`` and ``expires_in``; anything else means the token is
invalid or expired.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from deepfocus.config import GOOGLE_TOKENINFO_URL


class TokenInfoError(Exception):
    """Raised when Google rejects an access token."""

    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"Token rejected ({status_code}): {message}")


async def fetch_token_info(
    access_token: str,
    url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Any]:
    """Return Google's tokeninfo payload for ``access_token``."""
    async with httpx.AsyncClient(timeout=10.0, transport=transport) as client:
        resp = await client.get(
            url or GOOGLE_TOKENINFO_URL, params={"access_token": access_token}
        )
    if resp.status_code != 200:
        raise TokenInfoError(resp.status_code, resp.text)
    return resp.json()
