"""Configuration constants, endpoint URLs, and .env loading.

WHY: Centralizes every tunable value of the watch session — tick cadence,
save throttle, completion threshold, status reset delays, the Obsidian
tag vocabulary, and the Google endpoints — so they are easy to find and
override without touching logic.

HOW: python-dotenv loads the .env file on import. Constants are plain
module-level values read from the environment with sensible defaults.
load_access_token() gives a clear error when the CLI has no token.

RULES:
- All defaults can be overridden via environment variables
- Access tokens are loaded from the environment, never hardcoded
- OBSIDIAN_TAG_VOCABULARY order is significant (first-match tag order)
"""

from __future__ import annotations

import os

from dotenv import load_dotenv

# Load .env from the project root (where the script is run from)
load_dotenv()

# ---------------------------------------------------------------------------
# Playback and progress cadence
# ---------------------------------------------------------------------------

TICK_INTERVAL_S = float(os.getenv("DEEPFOCUS_TICK_INTERVAL_S", "1.0"))
"""Seconds between player time samples while playing."""

PROGRESS_SAVE_INTERVAL_S = float(os.getenv("DEEPFOCUS_PROGRESS_SAVE_INTERVAL_S", "10"))
"""Minimum playback advance (seconds) between two progress saves."""

COMPLETION_THRESHOLD = float(os.getenv("DEEPFOCUS_COMPLETION_THRESHOLD", "0.9"))
"""Fraction of the duration at which a video counts as completed."""

HIGHLIGHT_DURATION_S = 0.3
"""How long a note's timestamp badge pulses after being clicked."""

OBSIDIAN_STATUS_RESET_S = 2.0
DRIVE_STATUS_RESET_S = 3.0

# ---------------------------------------------------------------------------
# Export settings
# ---------------------------------------------------------------------------

OBSIDIAN_TAG_VOCABULARY: tuple[str, ...] = (
    "concept",
    "architecture",
    "scaling",
    "system",
    "design",
    "algorithm",
    "data",
    "performance",
)
OBSIDIAN_MAX_TAGS = 5
OBSIDIAN_TITLE_PREVIEW_CHARS = 40

DRIVE_FOLDER_NAME = os.getenv("DEEPFOCUS_DRIVE_FOLDER_NAME", "DeepFocus Notes")
DRIVE_FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
MARKDOWN_MIME_TYPE = "text/markdown"

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"
YOUTUBE_THUMBNAIL_URL = "https://img.youtube.com/vi/{video_id}/mqdefault.jpg"

# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

DEEPFOCUS_API_URL = os.getenv("DEEPFOCUS_API_URL", "http://localhost:8000")
GOOGLE_DRIVE_API_URL = os.getenv(
    "GOOGLE_DRIVE_API_URL", "https://www.googleapis.com/drive/v3"
)
GOOGLE_DRIVE_UPLOAD_URL = os.getenv(
    "GOOGLE_DRIVE_UPLOAD_URL", "https://www.googleapis.com/upload/drive/v3"
)
GOOGLE_TOKENINFO_URL = os.getenv(
    "GOOGLE_TOKENINFO_URL", "https://oauth2.googleapis.com/tokeninfo"
)

API_HOST = os.getenv("DEEPFOCUS_API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("DEEPFOCUS_API_PORT", "8000"))


def load_access_token() -> str:
    """Load a Google OAuth access token from the environment.

    WHY: CLI commands that talk to Drive need a token. Reading it from the
    environment (via .env) keeps it out of shell history and source code.

    RULES:
    - Raises ValueError if the token is missing or empty
    - Never returns a default/placeholder value
    """
    token = os.getenv("GOOGLE_ACCESS_TOKEN", "").strip()
    if not token:
        raise ValueError(
            "Google access token not configured. "
            "Add GOOGLE_ACCESS_TOKEN to the .env file in the app folder."
        )
    return token
