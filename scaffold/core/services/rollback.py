"""
Cleanup/Rollback Handler — the install run state machine.

    running ──▶ finalizing ──▶ done
       │            │
       └────────────┴──▶ rolling_back ──▶ failed

Every transition is logged and shown to the operator as a banner.
Rollback happens at most once and only touches scopes owned by this
project; shared instances are reported and left running. The project
directory is only ever removed once this run has created it.
"""

from __future__ import annotations

import logging
import shutil
from enum import Enum
from pathlib import Path

from scaffold.core.errors import ScaffoldError
from scaffold.core.models.compose import ComposeFileSet
from scaffold.core.models.project import ProjectConfig
from scaffold.core.persistence.atomic import atomic_write_text
from scaffold.core.services.catalog import DATABASES, FEATURES
from scaffold.core.services.operator import Operator
from scaffold.core.services.resources import ResourceScope

logger = logging.getLogger(__name__)

PROJECT_INFO_FILE = "PROJECT_INFO.md"


class RunState(str, Enum):
    RUNNING = "running"
    FINALIZING = "finalizing"
    DONE = "done"
    ROLLING_BACK = "rolling_back"
    FAILED = "failed"


_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.RUNNING: frozenset({RunState.FINALIZING, RunState.ROLLING_BACK}),
    # A failure while finalizing still unwinds through rollback
    RunState.FINALIZING: frozenset({RunState.DONE, RunState.ROLLING_BACK}),
    RunState.ROLLING_BACK: frozenset({RunState.FAILED}),
    RunState.DONE: frozenset(),
    RunState.FAILED: frozenset(),
}


class IllegalTransition(ScaffoldError):
    """A state change the install run does not allow."""


class InstallRun:
    """Tracks one installation from materialization to done or failed."""

    def __init__(
        self,
        operator: Operator,
        project_dir: Path,
        remove_on_failure: bool = False,
        installer_only_paths: list[str] | tuple[str, ...] = (),
    ):
        self._operator = operator
        self.project_dir = project_dir
        self._remove_on_failure = remove_on_failure
        self._installer_only_paths = tuple(installer_only_paths)
        self._scopes: list[ResourceScope] = []
        self._materialized = False
        self._state = RunState.RUNNING
        self.history: list[RunState] = [RunState.RUNNING]
        logger.info("Install run started: %s", project_dir)

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def scopes(self) -> list[ResourceScope]:
        return list(self._scopes)

    def add_scope(self, scope: ResourceScope) -> None:
        self._scopes.append(scope)

    def mark_materialized(self) -> None:
        """Record that ``project_dir`` was created by this run."""
        self._materialized = True

    # ── Transitions ─────────────────────────────────────────────

    def _transition(self, new: RunState) -> None:
        if new not in _TRANSITIONS[self._state]:
            raise IllegalTransition(
                f"Illegal install state transition: {self._state.value} → {new.value}"
            )
        logger.info("Install run: %s → %s", self._state.value, new.value)
        self._state = new
        self.history.append(new)
        self._operator.banner(f"State: {new.value.replace('_', ' ').upper()}")

    def roll_back(self, error: BaseException) -> bool:
        """Tear down project-owned resources after ``error``.

        Returns False if the run was already rolled back (no-op).
        """
        if self._state in (RunState.ROLLING_BACK, RunState.FAILED):
            logger.debug("Rollback already performed; ignoring %r", error)
            return False

        self._transition(RunState.ROLLING_BACK)
        self._operator.error(str(error) or error.__class__.__name__)

        for scope in reversed(self._scopes):
            if not scope.owned_by_project:
                self._operator.info(f"Leaving {scope.name} untouched (not owned by this project).")
                continue
            self._operator.info(f"Tearing down {scope.name}...")
            try:
                scope.teardown()
            except ScaffoldError as e:
                logger.error("Teardown of %s failed: %s", scope.name, e)
                self._operator.error(f"Could not tear down {scope.name}: {e}")
            else:
                self._operator.success(f"{scope.name} stopped and removed.")

        self._dispose_project_dir()
        self._transition(RunState.FAILED)
        return True

    def finalize(self, config: ProjectConfig, file_set: ComposeFileSet) -> Path:
        """Strip installer-only files and write the project summary."""
        self._transition(RunState.FINALIZING)
        for relative in self._installer_only_paths:
            remove_inside(self.project_dir, relative)
        info = atomic_write_text(
            self.project_dir / PROJECT_INFO_FILE,
            render_project_info(config, file_set),
        )
        self._transition(RunState.DONE)
        return info

    # ── Helpers ─────────────────────────────────────────────────

    def _dispose_project_dir(self) -> None:
        if not self._materialized:
            # Whatever is at project_dir predates this run
            logger.debug("Run never materialized %s; leaving it alone", self.project_dir)
            return
        if not self.project_dir.exists():
            return
        if not self._remove_on_failure:
            self._operator.warning(
                f"Project directory left in place for inspection: {self.project_dir}"
            )
            return
        try:
            shutil.rmtree(self.project_dir)
        except OSError as e:
            logger.error("Could not remove %s: %s", self.project_dir, e)
            self._operator.error(f"Could not remove {self.project_dir}: {e}")
        else:
            self._operator.info(f"Removed {self.project_dir}.")


def remove_inside(root: Path, relative: str) -> bool:
    """Delete ``root/relative`` (file or tree) if it exists and stays inside root."""
    target = (root / relative).resolve()
    base = root.resolve()
    if target == base or base not in target.parents:
        logger.warning("Refusing to remove %s: outside %s", relative, root)
        return False
    if target.is_dir() and not target.is_symlink():
        shutil.rmtree(target)
    elif target.exists() or target.is_symlink():
        target.unlink()
    else:
        return False
    logger.debug("Removed installer-only path %s", relative)
    return True


def render_project_info(config: ProjectConfig, file_set: ComposeFileSet) -> str:
    """Markdown summary of what was installed."""
    lines = [
        f"# {config.name}",
        "",
        "Generated by symfony-docker-scaffold.",
        "",
        "## URLs",
        "",
    ]
    http = config.web_port("http")
    https = config.web_port("https")
    if https:
        lines.append(f"- Application: https://{config.server_name}:{https}")
    if http:
        lines.append(f"- Application (HTTP): http://{config.server_name}:{http}")

    lines += ["", "## Services", ""]
    db = config.database
    if db.enabled:
        spec = DATABASES[db.kind]
        port = db.port.port if db.port else spec.default_host_port
        lines.append(f"- Database: {spec.label} `{db.name}` (user `{db.user}`), host port {port}")
    else:
        lines.append("- Database: none")

    for spec in FEATURES:
        decision = config.feature(spec.key)
        if decision.is_local:
            ports = ", ".join(f"{n} {a.port}" for n, a in decision.ports.items())
            lines.append(f"- {spec.label}: project-local ({ports})")
        elif decision.is_shared and decision.endpoint is not None:
            ports = ", ".join(f"{n} {p}" for n, p in decision.endpoint.ports.items())
            lines.append(
                f"- {spec.label}: shared container `{decision.endpoint.container}` "
                f"via {decision.endpoint.host} ({ports})"
            )

    lines += [
        "",
        "## Compose files",
        "",
        *[f"- `{name}`" for name in file_set],
        "",
        "`COMPOSE_FILE` in `.env` selects these, so plain `docker compose` commands work.",
        "",
        "## Commands",
        "",
        "- `docker compose up -d` — start",
        "- `docker compose down` — stop",
        "- `docker compose exec php bin/console ...` — Symfony console",
        "- `.scaffold/reconfigure.sh` — change host ports, regenerate `.env` files",
        "- `scaffold project shortcuts` — more shortcuts",
        "",
    ]
    return "\n".join(lines)
