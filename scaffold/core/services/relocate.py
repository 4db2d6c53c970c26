"""
Safe project relocation.

Copies a generated project to a new location (never a move, so a
failed copy cannot lose the original), then optionally removes the
old tree. Useful when the installer ran somewhere temporary.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from scaffold.core.errors import ScaffoldError

logger = logging.getLogger(__name__)


class RelocateError(ScaffoldError):
    """The project cannot be copied to the requested destination."""


def check_destination(source: Path, destination: Path) -> None:
    """Validate a copy of ``source`` to ``destination``.

    Raises:
        RelocateError: with a human-readable reason.
    """
    if not source.is_dir():
        raise RelocateError(f"Project directory not found: {source}")
    if destination.exists():
        raise RelocateError(
            f"Destination already exists: {destination}. "
            "Choose a different destination or remove the existing directory."
        )
    parent = destination.parent
    if not parent.is_dir():
        raise RelocateError(f"Parent directory '{parent}' does not exist.")
    if not os.access(parent, os.W_OK):
        raise RelocateError(f"No write permission for directory '{parent}'.")
    src, dst = source.resolve(), destination.resolve()
    if dst == src or src in dst.parents:
        raise RelocateError("Destination cannot be inside the project itself.")


def copy_project(source: Path, destination: Path) -> Path:
    """Copy the project tree, preserving symlinks and metadata."""
    check_destination(source, destination)
    try:
        shutil.copytree(source, destination, symlinks=True)
    except (OSError, shutil.Error) as e:
        shutil.rmtree(destination, ignore_errors=True)
        raise RelocateError(f"Failed to copy project: {e}") from e
    logger.info("Copied %s → %s", source, destination)
    return destination


def remove_old(source: Path) -> None:
    shutil.rmtree(source)
    logger.info("Removed old location %s", source)
