"""
Project Materializer — template repository → fresh project tree.

All work happens in a hidden sibling staging directory. Only a
complete, verified tree is renamed to the destination, so the
destination is either complete or absent.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable
from pathlib import Path

from scaffold.adapters.registry import AdapterRegistry
from scaffold.core.errors import MaterializeError, StepFailed
from scaffold.core.models.action import Action
from scaffold.core.models.compose import ComposeFileSet
from scaffold.data import STAGE2_DIR

logger = logging.getLogger(__name__)

STAGE2_TARGET = ".scaffold"


def staging_dir_for(dest_dir: Path) -> Path:
    return dest_dir.parent / f".{dest_dir.name}.scaffold-tmp"


class Materializer:
    """Clone, verify and move a template into place."""

    def __init__(
        self,
        registry: AdapterRegistry,
        ref: str = "",
        stage2_dir: Path = STAGE2_DIR,
        timeout: int = 300,
    ):
        self._registry = registry
        self._ref = ref
        self._stage2_dir = stage2_dir
        self._timeout = timeout

    def materialize(
        self,
        template_source: str,
        dest_dir: Path,
        required_files: Iterable[str] = (),
    ) -> Path:
        """Create ``dest_dir`` from ``template_source``.

        Raises:
            MaterializeError: destination exists or the template is incomplete.
            StepFailed: the clone command failed.
        """
        dest_dir = dest_dir.resolve()
        if dest_dir.exists():
            raise MaterializeError(f"Destination already exists: {dest_dir}")

        staging = staging_dir_for(dest_dir)
        if staging.exists():
            logger.warning("Removing leftover staging directory %s", staging)
            shutil.rmtree(staging)

        try:
            self._clone(template_source, staging)
            _strip_vcs(staging)
            self._verify(staging, required_files)
            self._install_stage2(staging)
            restore_sudo_ownership(staging)
            staging.rename(dest_dir)
        except BaseException:
            shutil.rmtree(staging, ignore_errors=True)
            raise

        logger.info("Materialized %s from %s", dest_dir, template_source)
        return dest_dir

    # ── Steps ───────────────────────────────────────────────────

    def _clone(self, source: str, staging: Path) -> None:
        params = {
            "operation": "clone",
            "source": source,
            "dest": str(staging),
            "depth": 1,
            "timeout": self._timeout,
        }
        if self._ref:
            params["ref"] = self._ref
        receipt = self._registry.execute_action(
            Action(id="clone-template", name="git clone", adapter="git", params=params),
            project_root=str(staging.parent),
        )
        if not receipt.ok:
            raise StepFailed(
                "clone template",
                command=receipt.command,
                return_code=receipt.return_code,
                detail=receipt.error or "",
            )
        if not staging.is_dir():
            raise MaterializeError(f"Clone reported success but {staging} does not exist")

    def _verify(self, staging: Path, required_files: Iterable[str]) -> None:
        missing = ComposeFileSet(files=tuple(dict.fromkeys(required_files))).missing(staging)
        if missing:
            raise MaterializeError(
                "Template is missing required file(s): " + ", ".join(missing)
            )

    def _install_stage2(self, staging: Path) -> None:
        if not self._stage2_dir.is_dir():
            raise MaterializeError(f"Second-stage assets not found: {self._stage2_dir}")
        target = staging / STAGE2_TARGET
        shutil.copytree(self._stage2_dir, target, dirs_exist_ok=True)
        # Package installs do not always keep the executable bit
        for script in target.glob("*.sh"):
            script.chmod(0o755)


def _strip_vcs(root: Path) -> None:
    git_dir = root / ".git"
    if git_dir.is_dir():
        shutil.rmtree(git_dir)
    elif git_dir.exists():
        git_dir.unlink()


def restore_sudo_ownership(root: Path) -> bool:
    """Hand the tree back to the invoking user when running under sudo.

    Returns True if ownership was changed.
    """
    uid = os.environ.get("SUDO_UID")
    gid = os.environ.get("SUDO_GID")
    if not uid or not gid or not hasattr(os, "geteuid") or os.geteuid() != 0:
        return False

    owner, group = int(uid), int(gid)
    os.chown(root, owner, group)
    for dirpath, dirnames, filenames in os.walk(root):
        for name in dirnames + filenames:
            os.chown(os.path.join(dirpath, name), owner, group, follow_symlinks=False)
    logger.info("Restored ownership of %s to %s:%s", root, owner, group)
    return True
