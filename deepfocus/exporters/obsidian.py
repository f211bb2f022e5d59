"""Obsidian exporter — markdown note opened through an obsidian:// deep link.

WHY: Many learners keep their notes in an Obsidian vault. Obsidian
registers the ``obsidian://new`` URI scheme, so a single link can create
a fully-formed note without any file access from the app.

HOW: Build a YAML front-matter header (title, date, tags, type, videoId)
and a bulleted timestamp list, percent-encode title and content the way
encodeURIComponent does, and hand the URI to the OS via webbrowser.

RULES:
- Title: "Lecture Notes - <YYYY-MM-DD> - <first 40 chars of the first note,
  only letters, digits and spaces kept>"
- Tags: OBSIDIAN_TAG_VOCABULARY terms found (case-insensitive substring)
  in any note, in vocabulary order, at most OBSIDIAN_MAX_TAGS
- videoId falls back to "unknown"
- Launching is fire-and-forget; there is no response channel
"""

from __future__ import annotations

import logging
import re
import webbrowser
from collections.abc import Callable
from datetime import date
from typing import List, Optional, Sequence
from urllib.parse import quote

from deepfocus.config import (
    OBSIDIAN_MAX_TAGS,
    OBSIDIAN_TAG_VOCABULARY,
    OBSIDIAN_TITLE_PREVIEW_CHARS,
)
from deepfocus.exporters.base import (
    BaseExporter,
    ExportDocument,
    ExportedNote,
    require_notes,
    utc_today,
)

logger = logging.getLogger(__name__)

# Characters encodeURIComponent leaves alone besides letters and digits
_URI_COMPONENT_SAFE = "-_.!~*'()"
_TITLE_STRIP = re.compile(r"[^a-zA-Z0-9 ]")


def derive_tags(
    notes: Sequence[ExportedNote],
    vocabulary: Sequence[str] = OBSIDIAN_TAG_VOCABULARY,
    max_tags: int = OBSIDIAN_MAX_TAGS,
) -> List[str]:
    """Pick vocabulary terms that occur anywhere in the note text."""
    lowered = [note.text.lower() for note in notes]
    tags = [term for term in vocabulary if any(term in text for text in lowered)]
    return tags[:max_tags]


def build_title(notes: Sequence[ExportedNote], today: date) -> str:
    preview = _TITLE_STRIP.sub("", notes[0].text[:OBSIDIAN_TITLE_PREVIEW_CHARS])
    return "Lecture Notes - {} - {}".format(today.isoformat(), preview)


def encode_uri_component(value: str) -> str:
    return quote(value, safe=_URI_COMPONENT_SAFE)


def build_obsidian_uri(document: ExportDocument) -> str:
    return "obsidian://new?name={}&content={}".format(
        encode_uri_component(document.filename),
        encode_uri_component(document.content),
    )


class ObsidianExporter(BaseExporter):
    """Builds Obsidian notes and opens them through the deep link."""

    def __init__(self, launcher: Optional[Callable[[str], bool]] = None) -> None:
        self._launcher = launcher or webbrowser.open

    @property
    def name(self) -> str:
        return "Obsidian"

    def build_document(
        self,
        notes: Sequence[ExportedNote],
        video_id: Optional[str],
        video_title: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ExportDocument:
        require_notes(notes)
        today = today or utc_today()
        title = build_title(notes, today)
        tags = ", ".join('"{}"'.format(tag) for tag in derive_tags(notes))

        frontmatter = (
            "---\n"
            'title: "{title}"\n'
            "date: {date}\n"
            "tags: [{tags}]\n"
            "type: lecture-notes\n"
            "videoId: {video_id}\n"
            "---\n\n"
        ).format(
            title=title,
            date=today.isoformat(),
            tags=tags,
            video_id=video_id or "unknown",
        )
        body = "# {}\n\n## Timestamps & Notes\n\n{}\n".format(
            title, "\n".join(note.to_markdown() for note in notes)
        )
        return ExportDocument(title=title, filename=title, content=frontmatter + body)

    def export(
        self,
        notes: Sequence[ExportedNote],
        video_id: Optional[str],
        today: Optional[date] = None,
    ) -> str:
        """Build the note, launch Obsidian, and return the URI that was opened."""
        document = self.build_document(notes, video_id, today=today)
        uri = build_obsidian_uri(document)
        if not self._launcher(uri):
            logger.info("No handler reported for obsidian:// (URI still built)")
        return uri
