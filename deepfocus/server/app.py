"""FastAPI application: watch history and Google Drive routes.

WHY: The watch session never touches storage or Drive directly. It posts
progress and notes to this API, which knows who the user is (from the
bearer token) and keeps one history record per (user, video). The Drive
panel uses the same API to browse, search and preview Drive files.

HOW: A single FastAPI app with endpoints grouped by tag. Every protected
route depends on require_session(). History lives in the module-level
WatchHistoryStore; Drive calls go through GoogleDriveClient opened with
the caller's own access token for the length of one request.

RULES:
- All endpoints have OpenAPI descriptions and declare their error responses
- Error responses use the consistent ErrorResponse schema ({"detail": ...})
- Missing/invalid bearer token → 401 "Unauthorized"
- Drive failures → 502 (404 when Drive says the file does not exist)
- The history store is a singleton created at import time
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, NoReturn, Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query

from deepfocus import __version__
from deepfocus.api.drive import DriveAPIError, GoogleDriveClient, quote_query_value
from deepfocus.api.models import FILE_FIELDS
from deepfocus.config import API_HOST, API_PORT
from deepfocus.core.session import AuthSession
from deepfocus.exporters.base import ExportedNote
from deepfocus.exporters.drive import DriveNotesExporter
from deepfocus.server.auth import require_session
from deepfocus.server.models import (
    DeletedCountResponse,
    DriveFolderListing,
    DriveSearchResults,
    ErrorResponse,
    HealthResponse,
    SaveNotesRequest,
    SaveNotesResponse,
    SuccessResponse,
    WatchHistoryEntry,
    WatchProgressRequest,
)
from deepfocus.server.store import (
    DEFAULT_HISTORY_LIMIT,
    WatchHistoryStore,
    WatchProgressRecord,
)

logger = logging.getLogger(__name__)

METADATA_FIELDS = (
    "id, name, mimeType, size, modifiedTime, iconLink, "
    "webViewLink, webContentLink, thumbnailLink, parents"
)
EMBED_FIELDS = "id, name, mimeType, webViewLink"

_UNAUTHORIZED = {401: {"model": ErrorResponse, "description": "Missing or invalid access token"}}
_DRIVE_FAILED = {502: {"model": ErrorResponse, "description": "Google Drive request failed"}}

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

history_store = WatchHistoryStore()

app = FastAPI(
    title="DeepFocus API",
    description=(
        "Backend for the DeepFocus distraction-free YouTube watch page. "
        "Stores per-user watch progress, saves captured notes to Google "
        "Drive, and proxies Drive browsing for the notes panel."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _record_to_entry(record: WatchProgressRecord) -> WatchHistoryEntry:
    """Convert an internal store record to the wire model."""
    return WatchHistoryEntry(
        user_id=record.user_id,
        video_id=record.video_id,
        video_title=record.video_title,
        thumbnail=record.thumbnail,
        channel_name=record.channel_name,
        progress=record.progress,
        duration=record.duration,
        completed=record.completed,
        last_watched=record.last_watched,
        created_at=record.created_at,
    )


def _raise_drive_failure(exc: Exception, action: str) -> NoReturn:
    """Translate a Drive/transport error into an HTTPException."""
    if isinstance(exc, DriveAPIError) and exc.status_code == 404:
        raise HTTPException(status_code=404, detail="File not found")
    logger.warning("Drive %s failed: %s", action, exc)
    raise HTTPException(status_code=502, detail="Failed to {}".format(action))


def embed_url_for(file_id: str, mime_type: Optional[str]) -> str:
    """Preview URL suitable for an iframe, chosen by MIME type.

    RULES:
    - PDFs and unknown types → drive.google.com/file/d/<id>/preview
    - Images → drive.google.com/uc?id=<id>
    - Google Docs/Sheets/Slides → their docs.google.com preview pages
    """
    mime_type = mime_type or ""
    if mime_type.startswith("image/"):
        return "https://drive.google.com/uc?id={}".format(file_id)
    docs_kinds = {
        "application/vnd.google-apps.document": "document",
        "application/vnd.google-apps.spreadsheet": "spreadsheets",
        "application/vnd.google-apps.presentation": "presentation",
    }
    if mime_type in docs_kinds:
        return "https://docs.google.com/{}/d/{}/preview".format(docs_kinds[mime_type], file_id)
    return "https://drive.google.com/file/d/{}/preview".format(file_id)


# ---------------------------------------------------------------------------
# Endpoints: Watch history
# ---------------------------------------------------------------------------


@app.get(
    "/api/watch-history",
    response_model=List[WatchHistoryEntry],
    tags=["watch-history"],
    summary="List the user's watch history",
    description=(
        "Returns the caller's history records, most recently watched first. "
        "Completed videos (watched 90% or more) are excluded unless "
        "includeCompleted=true."
    ),
    responses=_UNAUTHORIZED,
)
async def list_watch_history(
    limit: int = Query(
        default=DEFAULT_HISTORY_LIMIT, ge=1, le=100, description="Maximum rows to return."
    ),
    include_completed: bool = Query(
        default=False, alias="includeCompleted", description="Include completed videos."
    ),
    session: AuthSession = Depends(require_session),
) -> List[WatchHistoryEntry]:
    records = history_store.list_for_user(
        session.user_id, limit=limit, include_completed=include_completed
    )
    return [_record_to_entry(r) for r in records]


@app.post(
    "/api/watch-history",
    response_model=WatchHistoryEntry,
    tags=["watch-history"],
    summary="Save watch progress",
    description=(
        "Create or update the caller's record for one video. Progress and "
        "duration are floored to whole seconds; the record is marked "
        "completed once progress reaches 90% of a known duration."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "videoId missing"},
        **_UNAUTHORIZED,
    },
)
async def save_watch_progress(
    body: WatchProgressRequest,
    session: AuthSession = Depends(require_session),
) -> WatchHistoryEntry:
    if not body.video_id:
        raise HTTPException(status_code=400, detail="videoId is required")
    record = history_store.upsert(
        session.user_id,
        body.video_id,
        progress=body.progress,
        duration=body.duration,
        video_title=body.video_title,
        thumbnail=body.thumbnail,
        channel_name=body.channel_name,
    )
    return _record_to_entry(record)


@app.delete(
    "/api/watch-history",
    response_model=SuccessResponse,
    tags=["watch-history"],
    summary="Remove a video from watch history",
    responses={
        400: {"model": ErrorResponse, "description": "videoId missing"},
        404: {"model": ErrorResponse, "description": "No record for this video"},
        **_UNAUTHORIZED,
    },
)
async def delete_watch_history(
    video_id: Optional[str] = Query(
        default=None, alias="videoId", description="Video to remove."
    ),
    session: AuthSession = Depends(require_session),
) -> SuccessResponse:
    if not video_id:
        raise HTTPException(status_code=400, detail="videoId is required")
    if not history_store.delete(session.user_id, video_id):
        raise HTTPException(
            status_code=404, detail="No watch history for video {}".format(video_id)
        )
    return SuccessResponse(success=True)


# ---------------------------------------------------------------------------
# Endpoints: Account
# ---------------------------------------------------------------------------


@app.delete(
    "/api/user",
    response_model=DeletedCountResponse,
    tags=["account"],
    summary="Delete the user's stored data",
    description="Removes every watch-history record owned by the caller.",
    responses=_UNAUTHORIZED,
)
async def delete_user_data(
    session: AuthSession = Depends(require_session),
) -> DeletedCountResponse:
    deleted = history_store.delete_user(session.user_id)
    logger.info("Deleted %d history records for user %s", deleted, session.user_id)
    return DeletedCountResponse(success=True, deleted=deleted)


# ---------------------------------------------------------------------------
# Endpoints: Drive
# ---------------------------------------------------------------------------


@app.post(
    "/api/drive/save-notes",
    response_model=SaveNotesResponse,
    tags=["drive"],
    summary="Save notes to Google Drive",
    description=(
        "Writes the notes as markdown into the caller's 'DeepFocus Notes' "
        "folder (created on first use). A file whose name contains the "
        "video id is updated in place; otherwise a new file is created."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "videoId or notes missing"},
        **_UNAUTHORIZED,
        **_DRIVE_FAILED,
    },
)
async def save_notes_to_drive(
    body: SaveNotesRequest,
    session: AuthSession = Depends(require_session),
) -> SaveNotesResponse:
    if not body.video_id or not body.notes:
        raise HTTPException(status_code=400, detail="videoId and notes are required")

    notes = [
        ExportedNote(timestamp=n.timestamp, timestamp_s=n.timestamp_seconds, text=n.text)
        for n in body.notes
    ]
    exporter = DriveNotesExporter(client_factory=GoogleDriveClient)
    try:
        result = await exporter.export(
            session.access_token or "",
            notes,
            body.video_id,
            video_title=body.video_title,
        )
    except (DriveAPIError, httpx.HTTPError) as exc:
        _raise_drive_failure(exc, "save notes to Drive")

    return SaveNotesResponse(
        success=True,
        file_id=result.file_id,
        message="Notes saved to Google Drive",
    )


@app.get(
    "/api/drive/files",
    response_model=DriveFolderListing,
    tags=["drive"],
    summary="List a Drive folder",
    description=(
        "Lists the non-trashed children of a folder (default: My Drive root), "
        "ordered folders first then by name, split into folders and files."
    ),
    responses={**_UNAUTHORIZED, **_DRIVE_FAILED},
)
async def list_drive_files(
    folder_id: str = Query(default="root", alias="folderId", description="Parent folder id."),
    mime_type: Optional[str] = Query(
        default=None, alias="mimeType", description="Only return files of this MIME type."
    ),
    page_token: Optional[str] = Query(
        default=None, alias="pageToken", description="Token from a previous page."
    ),
    page_size: int = Query(default=50, ge=1, le=1000, alias="pageSize", description="Page size."),
    session: AuthSession = Depends(require_session),
) -> DriveFolderListing:
    query = "'{}' in parents and trashed=false".format(quote_query_value(folder_id))
    if mime_type:
        query += " and mimeType='{}'".format(quote_query_value(mime_type))

    try:
        async with GoogleDriveClient(session.access_token or "") as drive:
            page = await drive.list_files(
                query,
                fields=FILE_FIELDS,
                page_size=page_size,
                page_token=page_token,
                order_by="folder, name",
            )
    except (DriveAPIError, httpx.HTTPError) as exc:
        _raise_drive_failure(exc, "list Drive files")

    return DriveFolderListing(
        folders=[f.to_dict() for f in page.files if f.is_folder],
        files=[f.to_dict() for f in page.files if not f.is_folder],
        next_page_token=page.next_page_token,
    )


@app.get(
    "/api/drive/search",
    response_model=DriveSearchResults,
    tags=["drive"],
    summary="Search Drive by file name",
    description=(
        "Name-contains search across the caller's non-trashed files, most "
        "recently modified first. A blank query returns no results without "
        "calling Drive."
    ),
    responses={**_UNAUTHORIZED, **_DRIVE_FAILED},
)
async def search_drive_files(
    q: str = Query(default="", description="Text the file name must contain."),
    mime_type: Optional[str] = Query(
        default=None, alias="mimeType", description="Only return files of this MIME type."
    ),
    page_token: Optional[str] = Query(
        default=None, alias="pageToken", description="Token from a previous page."
    ),
    page_size: int = Query(default=30, ge=1, le=1000, alias="pageSize", description="Page size."),
    session: AuthSession = Depends(require_session),
) -> DriveSearchResults:
    if not q.strip():
        return DriveSearchResults(files=[], next_page_token=None)

    query = "name contains '{}' and trashed=false".format(quote_query_value(q))
    if mime_type:
        query += " and mimeType='{}'".format(quote_query_value(mime_type))

    try:
        async with GoogleDriveClient(session.access_token or "") as drive:
            page = await drive.list_files(
                query,
                fields=FILE_FIELDS,
                page_size=page_size,
                page_token=page_token,
                order_by="modifiedTime desc",
            )
    except (DriveAPIError, httpx.HTTPError) as exc:
        _raise_drive_failure(exc, "search Drive files")

    return DriveSearchResults(
        files=[f.to_dict() for f in page.files],
        next_page_token=page.next_page_token,
    )


@app.get(
    "/api/drive/file/{file_id}",
    response_model=Dict[str, Any],
    tags=["drive"],
    summary="Get Drive file metadata or an embed URL",
    description=(
        "action=metadata (default) returns the file resource. action=embed "
        "returns basic metadata plus an embedUrl for an in-page preview."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Unknown action"},
        404: {"model": ErrorResponse, "description": "File not found"},
        **_UNAUTHORIZED,
        **_DRIVE_FAILED,
    },
)
async def get_drive_file(
    file_id: str,
    action: str = Query(default="metadata", description="'metadata' or 'embed'."),
    session: AuthSession = Depends(require_session),
) -> Dict[str, Any]:
    if action not in ("metadata", "embed"):
        raise HTTPException(status_code=400, detail="Invalid action '{}'".format(action))

    fields = METADATA_FIELDS if action == "metadata" else EMBED_FIELDS
    try:
        async with GoogleDriveClient(session.access_token or "") as drive:
            file = await drive.get_file(file_id, fields=fields)
    except (DriveAPIError, httpx.HTTPError) as exc:
        _raise_drive_failure(exc, "get Drive file")

    out = file.to_dict()
    if action == "embed":
        out["embedUrl"] = embed_url_for(file.id, file.mime_type)
    return out


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
    description="Liveness check for load balancers and orchestrators.",
)
async def health_check() -> HealthResponse:
    return HealthResponse(status="ok", version=__version__)


def run_api(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Entry point for the deepfocus-api console script."""
    import uvicorn

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    uvicorn.run(app, host=host or API_HOST, port=port or API_PORT)

