"""Abstract base exporter and the exported document container.

WHY: Both export targets (Obsidian, Google Drive) turn the same note
snapshot into a markdown document and then deliver it somewhere. This
base class enforces a consistent "build the document" step so the
session, the CLI and the API can treat exporters generically.

HOW: ExportedNote is the delivery-neutral note shape (the session's Note
and the API's JSON note both convert to it). BaseExporter requires a
``name`` and build_document(); delivery is exporter-specific.

RULES:
- build_document() is pure: no I/O, date passed in by the caller
- Notes keep their capture order; exporters never re-sort
- An empty note list is a precondition failure (ValueError)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Optional, Sequence

from deepfocus.core.notes import Note


@dataclass(frozen=True)
class ExportedNote:
    """A note as it appears in an exported document."""

    timestamp: str
    timestamp_s: float
    text: str

    @classmethod
    def from_note(cls, note: Note) -> ExportedNote:
        return cls(
            timestamp=note.display_timestamp,
            timestamp_s=note.timestamp_s,
            text=note.text,
        )

    def to_markdown(self) -> str:
        return "- **[{}]** {}".format(self.timestamp, self.text)


@dataclass
class ExportDocument:
    """One document produced by an exporter.

    Attributes:
        title: Human-readable document title.
        filename: Name the target should store the document under.
        content: The markdown text.
        media_type: MIME type of the content.
    """

    title: str
    filename: str
    content: str
    media_type: str = "text/markdown"


class BaseExporter(ABC):
    """Abstract base for note exporters.

    To add a new export target:
    1. Create a new file in exporters/
    2. Subclass BaseExporter
    3. Implement name and build_document()
    4. Register in EXPORTERS in exporters/__init__.py
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable target name, e.g. 'Obsidian'."""

    @abstractmethod
    def build_document(
        self,
        notes: Sequence[ExportedNote],
        video_id: Optional[str],
        video_title: Optional[str] = None,
        today: Optional[date] = None,
    ) -> ExportDocument:
        """Render the notes into a document for this target."""


def require_notes(notes: Sequence[ExportedNote]) -> None:
    if not notes:
        raise ValueError("No notes to export")


def utc_today() -> date:
    return datetime.now(timezone.utc).date()
