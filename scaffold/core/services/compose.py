"""
Compose Orchestrator — file-set assembly, build, start, readiness.

``build_compose_file_set`` is a pure function of the database kind and
the feature decisions. The orchestrator drives ``docker compose``
through the adapter registry; every failed receipt becomes a
StepFailed carrying the command line and exit code.
"""

from __future__ import annotations

import logging
import time
import urllib.error
import urllib.request
from collections.abc import Callable, Mapping
from pathlib import Path

from scaffold.adapters.registry import AdapterRegistry
from scaffold.core.errors import HealthCheckTimeout, StepFailed
from scaffold.core.models.action import Action, Receipt
from scaffold.core.models.compose import ComposeFileSet
from scaffold.core.models.project import (
    DatabaseConfig,
    DatabaseKind,
    FeatureDecision,
    ProjectConfig,
)
from scaffold.core.services.catalog import (
    BASE_COMPOSE_FILES,
    DATABASE_SERVICE,
    DATABASES,
    FEATURES,
    WEB_SERVICE,
)

logger = logging.getLogger(__name__)

# A readiness probe returns (ready, detail)
Probe = Callable[[], tuple[bool, str]]


# ═══════════════════════════════════════════════════════════════════
#  File set
# ═══════════════════════════════════════════════════════════════════


def build_compose_file_set(
    database_kind: DatabaseKind,
    decisions: Mapping[str, FeatureDecision],
) -> ComposeFileSet:
    """Ordered Compose files: base, override, database, local features.

    Features are layered in catalog order regardless of the order the
    decisions were made in, so identical input always gives the same list.
    """
    files: list[str] = list(BASE_COMPOSE_FILES)

    db = DATABASES.get(database_kind)
    if db is not None:
        files.append(db.compose_file)

    for spec in FEATURES:
        decision = decisions.get(spec.key)
        if decision is not None and decision.is_local:
            files.append(spec.compose_file)

    return ComposeFileSet(files=tuple(files))


def file_set_for(config: ProjectConfig) -> ComposeFileSet:
    return build_compose_file_set(config.database.kind, config.features)


# ═══════════════════════════════════════════════════════════════════
#  Orchestrator
# ═══════════════════════════════════════════════════════════════════


class ComposeOrchestrator:
    """Build, start, probe and stop one project's Compose stack."""

    def __init__(
        self,
        registry: AdapterRegistry,
        project_root: Path,
        file_set: ComposeFileSet,
        project_name: str,
        timeout: int = 600,
        build_timeout: int = 1800,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._registry = registry
        self.project_root = project_root
        self.file_set = file_set
        self.project_name = project_name
        self._timeout = timeout
        self._build_timeout = build_timeout
        self._sleep = sleep

    # ── Lifecycle ───────────────────────────────────────────────

    def build(self, no_cache: bool = False, pull: bool = True) -> Receipt:
        return self._execute(
            "build",
            {"pull": pull, "no_cache": no_cache},
            timeout=self._build_timeout,
        )

    def up(self) -> Receipt:
        return self._execute("up")

    def down(self, volumes: bool = True) -> Receipt:
        return self._execute("down", {"volumes": volumes})

    def exec(self, service: str, argv: list[str], step: str | None = None) -> Receipt:
        """Run ``argv`` inside ``service``; raises StepFailed on non-zero exit."""
        return self._execute(
            "exec",
            {"service": service, "argv": argv},
            step=step or f"exec {service}",
        )

    def try_exec(self, service: str, argv: list[str]) -> Receipt:
        """Like exec, but returns the failed receipt instead of raising."""
        return self._dispatch("exec", {"service": service, "argv": argv}, self._timeout)

    # ── Readiness ───────────────────────────────────────────────

    def wait_healthy(
        self,
        service: str,
        probe: Probe,
        attempts: int = 30,
        interval: float = 2.0,
    ) -> int:
        """Poll ``probe`` until it reports ready.

        Returns:
            The attempt number that succeeded.

        Raises:
            HealthCheckTimeout: after ``attempts`` failed probes.
        """
        last_detail = ""
        for attempt in range(1, attempts + 1):
            ready, last_detail = probe()
            if ready:
                logger.info("%s ready after %d attempt(s)", service, attempt)
                return attempt
            logger.debug("%s not ready (%d/%d): %s", service, attempt, attempts, last_detail)
            if attempt < attempts:
                self._sleep(interval)
        raise HealthCheckTimeout(service, attempts, last_detail)

    def database_probe(self, database: DatabaseConfig) -> Probe:
        """Engine-specific readiness command run inside the database service."""
        if database.kind == DatabaseKind.MYSQL:
            argv = ["mysqladmin", "ping", "-h", "127.0.0.1", "--silent"]
        elif database.kind in (DatabaseKind.POSTGRES, DatabaseKind.POSTGIS):
            argv = ["pg_isready", "-U", database.user, "-d", database.name]
        else:
            raise ValueError("No database selected")

        def _probe() -> tuple[bool, str]:
            receipt = self.try_exec(DATABASE_SERVICE, argv)
            return receipt.ok, receipt.error or ""

        return _probe

    # ── Internals ───────────────────────────────────────────────

    def _execute(
        self,
        operation: str,
        params: dict | None = None,
        timeout: int | None = None,
        step: str | None = None,
    ) -> Receipt:
        receipt = self._dispatch(operation, params or {}, timeout or self._timeout)
        if not receipt.ok:
            raise StepFailed(
                step or f"compose {operation}",
                command=receipt.command,
                return_code=receipt.return_code,
                detail=receipt.error or "",
            )
        return receipt

    def _dispatch(self, operation: str, params: dict, timeout: int) -> Receipt:
        action = Action(
            id=f"compose-{operation}",
            name=f"docker compose {operation}",
            adapter="docker",
            params={
                "operation": operation,
                "files": list(self.file_set),
                "project_name": self.project_name,
                "timeout": timeout,
                **params,
            },
        )
        logger.debug("compose %s (%s)", operation, self.project_name)
        return self._registry.execute_action(action, project_root=str(self.project_root))


def http_probe(url: str, timeout: float = 5.0) -> Probe:
    """Readiness probe: any HTTP response below 500 counts as ready."""

    def _probe() -> tuple[bool, str]:
        req = urllib.request.Request(
            url, method="GET",
            headers={"User-Agent": "symfony-docker-scaffold"},
        )
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                return resp.status < 500, f"HTTP {resp.status}"
        except urllib.error.HTTPError as e:
            return e.code < 500, f"HTTP {e.code}"
        except (urllib.error.URLError, OSError) as e:
            return False, str(e)

    return _probe


def web_health_url(config: ProjectConfig, path: str = "/") -> str:
    port = config.web_port("http") or 80
    if not path.startswith("/"):
        path = f"/{path}"
    return f"http://localhost:{port}{path}"


# ═══════════════════════════════════════════════════════════════════
#  Post-install
# ═══════════════════════════════════════════════════════════════════


def post_install_steps(config: ProjectConfig, project_root: Path) -> list[tuple[str, list[str]]]:
    """Commands run in the web service once the stack is healthy."""
    steps: list[tuple[str, list[str]]] = [
        (
            "composer install",
            ["composer", "install", "--no-interaction", "--prefer-dist", "--optimize-autoloader"],
        ),
    ]
    has_frontend = (project_root / "package.json").is_file()
    if has_frontend:
        steps.append(("yarn install", ["yarn", "install"]))
    if config.database.enabled:
        steps.append((
            "database migrations",
            [
                "php", "bin/console", "doctrine:migrations:migrate",
                "--no-interaction", "--allow-no-migration",
            ],
        ))
    if has_frontend:
        steps.append(("yarn build", ["yarn", "build"]))
    return steps


def run_post_install(
    orchestrator: ComposeOrchestrator,
    config: ProjectConfig,
    on_step: Callable[[str], None] | None = None,
) -> list[str]:
    """Run every post-install step; the first failure is fatal."""
    done: list[str] = []
    for step, argv in post_install_steps(config, orchestrator.project_root):
        if on_step:
            on_step(step)
        orchestrator.exec(WEB_SERVICE, argv, step=step)
        done.append(step)
    return done
