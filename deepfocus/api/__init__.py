"""Outbound HTTP clients — Google Drive, token info, and the DeepFocus API.

WHY: The session core and the server both talk to remote services. This
package keeps every httpx call behind a small async client class.

HOW: Uses httpx.AsyncClient for non-blocking HTTP. Response data is
parsed into typed dataclasses defined in models.py.

RULES:
- All outbound HTTP goes through these clients (no direct httpx usage elsewhere)
- Authentication is via Bearer token (the user's Google access token)
"""

from deepfocus.api.backend import DeepFocusAPIClient, DeepFocusAPIError, send_beacon
from deepfocus.api.drive import DriveAPIError, GoogleDriveClient
from deepfocus.api.models import DriveFile, DriveFileList
from deepfocus.api.tokeninfo import TokenInfoError, fetch_token_info

__all__ = [
    "DeepFocusAPIClient",
    "DeepFocusAPIError",
    "DriveAPIError",
    "DriveFile",
    "DriveFileList",
    "GoogleDriveClient",
    "TokenInfoError",
    "fetch_token_info",
    "send_beacon",
]
