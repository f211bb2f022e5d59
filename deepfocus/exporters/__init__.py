"""Note exporter registry.

WHY: The CLI needs a single lookup to find an export
target by name.

HOW: EXPORTERS maps string keys to exporter *classes* (not instances).
Callers instantiate as needed: ``exporter = EXPORTERS["obsidian"]()``.

RULES:
- Keys are snake_case identifiers (used in CLI flags)
- Values are BaseExporter subclasses (not instances)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from deepfocus.exporters.drive import DriveNotesExporter
from deepfocus.exporters.obsidian import ObsidianExporter

if TYPE_CHECKING:
    from deepfocus.exporters.base import BaseExporter

EXPORTERS: dict[str, type[BaseExporter]] = {
    "obsidian": ObsidianExporter,
    "drive": DriveNotesExporter,
}
