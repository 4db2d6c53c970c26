"""
Bounded subprocess runner for read-only queries.

Used for probes (port listings, container listings, preflight version
checks) where a missing tool or a hang must degrade into "no answer"
instead of blocking the interactive session. Mutating operations go
through the adapters instead.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

logger = logging.getLogger(__name__)


def run_command(
    args: list[str],
    cwd: Path | None = None,
    timeout: float = 5.0,
) -> subprocess.CompletedProcess[str] | None:
    """Run a command and return the result, or None if it could not complete.

    None means the command was not found, could not be started, or timed
    out. A non-zero exit is returned as-is; interpretation is up to the
    caller.
    """
    try:
        return subprocess.run(
            args,
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.debug("Timed out after %ss: %s", timeout, args[0])
        return None
    except (FileNotFoundError, PermissionError, OSError) as e:
        logger.debug("Cannot run %s: %s", args[0], e)
        return None
