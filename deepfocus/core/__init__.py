"""Watch session core — playback driver, note log, progress persister.

WHY: These pieces hold all in-browser session state for one video visit.
They are kept free of HTTP framework code so they can be driven from a
UI bridge, the CLI, or tests alike.

RULES:
- Import submodules directly (deepfocus.core.session, ...); this package
  re-exports nothing so the exporters can depend on core.notes without
  import cycles
"""
