"""
Git adapter: fetches the project template.

Only two operations are needed. ``version`` backs the preflight check and
``clone`` makes a shallow copy of the template repository (a URL or a
local path) at an optional branch or tag.
"""

from __future__ import annotations

import shutil

from scaffold.adapters.base import CommandAdapter, ExecutionContext
from scaffold.core.models.action import Receipt

_CLONE_TIMEOUT = 300
_VERSION_TIMEOUT = 30


class GitAdapter(CommandAdapter):
    """Action params: ``operation`` (version|clone), ``source``, ``dest``,
    ``ref``, ``depth`` (default 1), ``timeout``."""

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return shutil.which("git") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        operation = params.get("operation")
        if operation == "version":
            return True, ""
        if operation != "clone":
            return False, f"Unsupported git operation: {operation!r}"
        missing = [key for key in ("source", "dest") if not params.get(key)]
        if missing:
            return False, f"clone needs {' and '.join(missing)}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        if params["operation"] == "clone":
            argv, timeout = self.clone_argv(params), params.get("timeout", _CLONE_TIMEOUT)
        else:
            argv, timeout = ["git", "--version"], params.get("timeout", _VERSION_TIMEOUT)
        return self.run_command(context, argv, timeout)

    @staticmethod
    def clone_argv(params: dict) -> list[str]:
        argv = ["git", "clone", "--quiet", "--depth", str(params.get("depth", 1))]
        if params.get("ref"):
            argv += ["--branch", params["ref"]]
        return argv + [params["source"], params["dest"]]
