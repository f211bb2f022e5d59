"""DeepFocus — watch session controller for focused video learning.

WHY: Watching a lecture on YouTube is passive. DeepFocus wraps the
embedded player in a session that captures timestamped notes, remembers
where the viewer stopped, and exports the notes to Obsidian or Google
Drive so they outlive the browser tab.

HOW: Three layers — the session core (player driver, note log, progress
persister), the export adapters (Obsidian deep link, Drive markdown), and
the HTTP collaborators (watch-history API, Drive proxy) the core talks to.

RULES:
- The session core never blocks on the network
- Exporters consume an immutable note snapshot, never the live log
- Progress is upserted per (user, video); the server owns completion
"""

__version__ = "0.1.0"
