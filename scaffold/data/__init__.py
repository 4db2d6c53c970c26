"""
Static data shipped with the installer.

``stage2/`` is copied verbatim into every generated project as
``.scaffold/`` so the project stays self-sufficient after installation.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_DATA_DIR = Path(__file__).parent

STAGE2_DIR = _DATA_DIR / "stage2"
SHORTCUTS_FILE = STAGE2_DIR / "shortcuts.json"


def load_shortcuts(path: Path | None = None) -> list[dict]:
    """Command-shortcut sections: ``[{"title", "commands": [{"command", "description"}]}]``."""
    path = path or SHORTCUTS_FILE
    if not path.exists():
        logger.warning("Shortcuts file not found: %s", path)
        return []
    with open(path, encoding="utf-8") as f:
        return json.load(f)
