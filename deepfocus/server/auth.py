"""Request authentication — bearer access token to AuthSession.

WHY: Every history and Drive endpoint acts on behalf of one Google user.
Sign-in itself is Google's job; the API only needs to know which user a
request belongs to and which token to forward to Drive.

HOW: The ``Authorization: Bearer <token>`` header is checked against
Google's tokeninfo endpoint. A valid token yields an AuthSession whose
user_id is the token's ``sub`` claim and whose access_token is the token
itself. FastAPI routes depend on require_session(); tests replace it via
app.dependency_overrides.

RULES:
- Missing header, wrong scheme, or a rejected token → 401 "Unauthorized"
- tokeninfo transport failures are logged and also answered with 401
- The access token is never logged
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx
from fastapi import Header, HTTPException

from deepfocus.api.tokeninfo import TokenInfoError, fetch_token_info
from deepfocus.core.session import AuthSession

logger = logging.getLogger(__name__)


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    """Extract the token from an Authorization header value."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def resolve_session(access_token: str) -> Optional[AuthSession]:
    """Ask Google who owns ``access_token``; None when the token is not valid."""
    try:
        info = await fetch_token_info(access_token)
    except TokenInfoError as exc:
        logger.info("Access token rejected by Google (%d)", exc.status_code)
        return None
    except httpx.HTTPError as exc:
        logger.warning("Token introspection failed: %s", exc)
        return None

    user_id = info.get("sub")
    if not user_id:
        return None
    return AuthSession(user_id=user_id, access_token=access_token)


async def require_session(
    authorization: Optional[str] = Header(default=None),
) -> AuthSession:
    """FastAPI dependency: the authenticated session or a 401."""
    token = parse_bearer(authorization)
    if token is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    session = await resolve_session(token)
    if session is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return session
