"""
Atomic file writes.

Generated files (.env, PROJECT_INFO.md) are written to a temp file in the
same directory and renamed into place, so an interrupted write never
leaves a half-written file behind.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644


def atomic_write_text(path: Path, content: str, mode: int | None = None) -> Path:
    """Write ``content`` to ``path`` atomically.

    Args:
        path: Target file. Its parent directory must exist.
        content: Full file content.
        mode: Permission bits for the final file (e.g. 0o600). By default
            an existing file keeps its mode and a new one gets 0644.

    Returns:
        The written path.
    """
    fd, tmp_path = tempfile.mkstemp(
        dir=path.parent,
        prefix=f".{path.name}.",
        suffix=".tmp",
    )
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        tmp.chmod(_target_mode(path) if mode is None else mode)
        tmp.replace(path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    logger.debug("Wrote %s (%d bytes)", path, len(content))
    return path


def _target_mode(path: Path) -> int:
    # mkstemp creates 0600; replacing must not tighten what was there
    try:
        return stat.S_IMODE(path.stat().st_mode)
    except FileNotFoundError:
        return DEFAULT_FILE_MODE
