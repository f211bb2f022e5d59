"""Package entry point for ``python -m deepfocus``.

WHY: Users run the API server or build an Obsidian link with
``python -m deepfocus serve`` / ``python -m deepfocus obsidian-link``.

HOW: Delegates to the CLI's main() function.
"""

from deepfocus.cli import main

if __name__ == "__main__":
    main()
