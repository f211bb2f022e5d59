"""Command-line interface for DeepFocus.

WHY: The API server needs a launcher, and notes captured elsewhere (or
saved from a session as JSON) should be exportable from the terminal with
the same exporters the watch page uses.

HOW: argparse with one subcommand per task. ``serve`` runs uvicorn,
``obsidian-link`` prints (and optionally opens) an obsidian:// URI,
``save-drive`` writes the notes file to Drive with the token from .env,
and ``render`` prints the markdown any registered exporter would produce.

RULES:
- Notes files are JSON: a list of {timestamp, timestampSeconds, text}
  objects, or {"videoId", "videoTitle", "notes": [...]}
- Results go to stdout; status and errors go to stderr
- Exit status 1 on bad input or a failed export
- Python 3.9 compatible — no match/case, no X | Y unions
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import math
import sys
from pathlib import Path
from typing import Any, List, NoReturn, Optional, Tuple

import httpx

from deepfocus.api.drive import DriveAPIError
from deepfocus.config import API_HOST, API_PORT, load_access_token
from deepfocus.core.timefmt import format_time
from deepfocus.exporters import EXPORTERS
from deepfocus.exporters.base import ExportedNote
from deepfocus.exporters.drive import DriveNotesExporter
from deepfocus.exporters.obsidian import ObsidianExporter

logger = logging.getLogger(__name__)


def _status(msg: str) -> None:
    """Print a status message to stderr."""
    print(msg, file=sys.stderr, flush=True)


def _fail(msg: str) -> NoReturn:
    print("Error: {}".format(msg), file=sys.stderr)
    sys.exit(1)


def _note_from_json(item: Any) -> ExportedNote:
    if not isinstance(item, dict) or not str(item.get("text", "")).strip():
        raise ValueError("each note needs a non-empty 'text'")
    raw_seconds = item.get("timestampSeconds", 0) or 0
    bad_seconds = "timestampSeconds must be a non-negative number, got {!r}".format(raw_seconds)
    try:
        seconds = float(raw_seconds)
    except (TypeError, ValueError):
        raise ValueError(bad_seconds)
    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(bad_seconds)
    return ExportedNote(
        timestamp=item.get("timestamp") or format_time(seconds),
        timestamp_s=seconds,
        text=str(item["text"]).strip(),
    )


def load_notes_file(path: Path) -> Tuple[List[ExportedNote], Optional[str], Optional[str]]:
    """Read a notes JSON file; returns (notes, video_id, video_title).

    Raises:
        ValueError: Malformed JSON or an unexpected shape.
    """
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError("{} is not valid JSON: {}".format(path, exc))

    video_id = None
    video_title = None
    if isinstance(data, dict):
        video_id = data.get("videoId")
        video_title = data.get("videoTitle")
        data = data.get("notes", [])
    if not isinstance(data, list):
        raise ValueError("{} must hold a list of notes".format(path))
    return [_note_from_json(item) for item in data], video_id, video_title


def _load_or_exit(args: argparse.Namespace) -> Tuple[List[ExportedNote], Optional[str], Optional[str]]:
    path = Path(args.notes_file)
    if not path.is_file():
        _fail("File not found: {}".format(path))
    try:
        notes, video_id, video_title = load_notes_file(path)
    except ValueError as exc:
        _fail(str(exc))
    if not notes:
        _fail("No notes to export")
    video_id = getattr(args, "video_id", None) or video_id
    video_title = getattr(args, "title", None) or video_title
    return notes, video_id, video_title


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_serve(args: argparse.Namespace) -> None:
    from deepfocus.server.app import run_api

    run_api(host=args.host, port=args.port)


def cmd_obsidian_link(args: argparse.Namespace) -> None:
    notes, video_id, _ = _load_or_exit(args)
    launcher = None if args.open else (lambda uri: True)
    uri = ObsidianExporter(launcher=launcher).export(notes, video_id)
    print(uri)


def cmd_save_drive(args: argparse.Namespace) -> None:
    notes, video_id, video_title = _load_or_exit(args)
    if not video_id:
        _fail("A video id is required (--video-id or \"videoId\" in the file)")
    try:
        token = load_access_token()
    except ValueError as exc:
        _fail(str(exc))

    _status("Saving {} note(s) to Google Drive...".format(len(notes)))
    exporter = DriveNotesExporter()
    try:
        result = asyncio.run(exporter.export(token, notes, video_id, video_title))
    except (DriveAPIError, httpx.HTTPError) as exc:
        _fail(str(exc))

    _status("{} {}".format("Created" if result.created else "Updated", result.filename))
    print(result.file_id)


def cmd_render(args: argparse.Namespace) -> None:
    notes, video_id, video_title = _load_or_exit(args)
    exporter = EXPORTERS[args.target]()
    try:
        document = exporter.build_document(notes, video_id, video_title)
    except ValueError as exc:
        _fail(str(exc))
    sys.stdout.write(document.content)


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the CLI.

    RULES:
    - serve: --host, --port
    - obsidian-link: notes_file, --video-id, --open
    - save-drive: notes_file, --video-id, --title
    - render: notes_file, --target (EXPORTERS key), --video-id, --title
    """
    parser = argparse.ArgumentParser(
        prog="deepfocus",
        description="DeepFocus API server and note export tools.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the DeepFocus API server.")
    serve.add_argument("--host", default=API_HOST, help="Bind address (default: %(default)s).")
    serve.add_argument("--port", type=int, default=API_PORT, help="Port (default: %(default)s).")
    serve.set_defaults(func=cmd_serve)

    link = sub.add_parser("obsidian-link", help="Print the obsidian:// URI for a notes file.")
    link.add_argument("notes_file", help="Path to a notes JSON file.")
    link.add_argument("--video-id", default=None, help="YouTube video id for the front matter.")
    link.add_argument(
        "--open",
        action="store_true",
        help="Also open the URI (launches Obsidian when installed).",
    )
    link.set_defaults(func=cmd_obsidian_link)

    drive = sub.add_parser("save-drive", help="Save a notes file to Google Drive.")
    drive.add_argument("notes_file", help="Path to a notes JSON file.")
    drive.add_argument("--video-id", default=None, help="YouTube video id (used to find the file).")
    drive.add_argument("--title", default=None, help="Video title for the document heading.")
    drive.set_defaults(func=cmd_save_drive)

    render = sub.add_parser("render", help="Print the markdown an exporter would produce.")
    render.add_argument("notes_file", help="Path to a notes JSON file.")
    render.add_argument(
        "--target",
        choices=sorted(EXPORTERS.keys()),
        default="obsidian",
        help="Exporter to render with (default: %(default)s).",
    )
    render.add_argument("--video-id", default=None, help="YouTube video id.")
    render.add_argument("--title", default=None, help="Video title.")
    render.set_defaults(func=cmd_render)

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for ``deepfocus`` and ``python -m deepfocus``."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )
    parser = build_parser()
    args = parser.parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
