"""
ComposeFileSet — the ordered list of Compose files for one project.

Order matters: Compose merges later files over earlier ones, so the set
is an immutable tuple and is only ever built by a pure function.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict

# Separator understood by Compose in the COMPOSE_FILE variable on Linux/macOS/WSL
COMPOSE_PATH_SEPARATOR = ":"


class ComposeFileSet(BaseModel):
    """Ordered, de-duplicated Compose file names (relative to project root)."""

    model_config = ConfigDict(frozen=True)

    files: tuple[str, ...] = ()

    def args(self) -> list[str]:
        """``-f`` arguments for ``docker compose``."""
        out: list[str] = []
        for name in self.files:
            out.extend(["-f", name])
        return out

    def env_value(self) -> str:
        """Value for the ``COMPOSE_FILE`` variable."""
        return COMPOSE_PATH_SEPARATOR.join(self.files)

    def missing(self, root: Path) -> list[str]:
        """Files of this set that do not exist under ``root``."""
        return [name for name in self.files if not (root / name).is_file()]

    def __iter__(self):  # type: ignore[override]
        return iter(self.files)

    def __len__(self) -> int:
        return len(self.files)
