"""
Install use case — the whole installer pipeline, start to finish.

    preflight
      → questionnaire + feature selection (ports negotiated per service)
      → materialize → write environment (+ .scaffold/project.json)
      → build → up → wait healthy (database, web)
      → post-install → finalize

Strictly sequential. From materialization on, any error or Ctrl-C
unwinds to the rollback handler exactly once and surfaces as
InstallFailed. An interrupt during the questions creates nothing and
simply propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from scaffold.adapters.containers.docker import DockerAdapter
from scaffold.adapters.registry import AdapterRegistry
from scaffold.adapters.vcs.git import GitAdapter
from scaffold.core.config.loader import InstallerSettings
from scaffold.core.errors import InstallFailed
from scaffold.core.models.compose import ComposeFileSet
from scaffold.core.models.project import ProjectConfig, ProjectConfigDraft
from scaffold.core.persistence.project_file import save_project_config
from scaffold.core.services.catalog import DATABASES, FEATURES, TEMPLATE_REQUIRED_FILES
from scaffold.core.services.compose import (
    ComposeOrchestrator,
    Probe,
    file_set_for,
    http_probe,
    run_post_install,
    web_health_url,
)
from scaffold.core.services.env_writer import write_environment
from scaffold.core.services.features import FeatureSelector
from scaffold.core.services.materialize import Materializer
from scaffold.core.services.operator import Operator
from scaffold.core.services.ports.negotiator import PortNegotiator
from scaffold.core.services.ports.prober import PortProber
from scaffold.core.services.preflight import PreflightReport, run_preflight
from scaffold.core.services.questionnaire import Questionnaire
from scaffold.core.services.resources import ProjectScope, SharedScope
from scaffold.core.services.rollback import InstallRun

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Outcome of a successful installation."""

    config: ProjectConfig
    project_dir: Path
    file_set: ComposeFileSet
    env_files: list[Path] = field(default_factory=list)
    info_file: Path | None = None
    shared_created: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "project_name": self.config.name,
            "project_dir": str(self.project_dir),
            "compose_files": list(self.file_set),
            "env_files": [p.name for p in self.env_files],
            "shared_created": list(self.shared_created),
        }


def default_registry(compose_command: list[str] | None = None) -> AdapterRegistry:
    """Registry with the real docker and git adapters."""
    registry = AdapterRegistry()
    registry.register(DockerAdapter(compose_command))
    registry.register(GitAdapter())
    return registry


def run_install(
    settings: InstallerSettings,
    operator: Operator,
    registry: AdapterRegistry | None = None,
    prober: PortProber | None = None,
    workdir: Path | None = None,
    preflight: Callable[[], PreflightReport] | None = run_preflight,
    web_probe_factory: Callable[[str], Probe] | None = None,
) -> InstallResult:
    """Run the interactive installer.

    Args:
        settings: Installer tunables.
        operator: Prompt/echo surface.
        registry: Adapter registry. Default: docker + git, using the
            compose command found by preflight.
        prober: Port prober. Default: auto-detected checkers.
        workdir: Directory the project is created in. Default: cwd.
        preflight: Tool check; None skips it.
        web_probe_factory: Builds the web readiness probe from a URL.

    Raises:
        PreflightError: a required tool is missing (nothing created).
        InstallFailed: a step failed after materialization began; the
            run has been rolled back.
    """
    workdir = (workdir or Path.cwd()).resolve()

    # ── Preflight ───────────────────────────────────────────────
    operator.banner("Checking dependencies")
    report = preflight() if preflight is not None else None
    if report is not None:
        operator.success(f"Docker, {' '.join(report.compose_command)} and git found.")
        if report.compose_v1:
            operator.warning("Using docker-compose v1; Compose v2 is recommended.")
    if registry is None:
        registry = default_registry(report.compose_command if report else None)

    prober = prober or PortProber(timeout=settings.probe_timeout)
    if prober.wsl:
        operator.info("WSL detected: ports are also checked on the Windows host and in Docker.")

    # ── Questions ───────────────────────────────────────────────
    negotiator = PortNegotiator(
        operator,
        prober,
        scan_attempts=settings.scan_attempts,
        fallback_offset=settings.fallback_offset,
    )
    shared = SharedScope(registry, prefix=settings.shared_prefix)

    operator.banner("Project details")
    draft = Questionnaire(operator, negotiator, workdir).collect(ProjectConfigDraft())

    operator.banner("Optional services")
    for decision in FeatureSelector(operator, negotiator, shared).select_all():
        draft.decide(decision)
    config = draft.build()
    file_set = file_set_for(config)
    project_dir = workdir / config.name

    # ── Install ─────────────────────────────────────────────────
    run = InstallRun(
        operator,
        project_dir,
        remove_on_failure=settings.remove_on_failure,
        installer_only_paths=settings.installer_only_paths,
    )
    try:
        operator.banner(f"Creating {config.name} from {settings.template_repo}")
        Materializer(
            registry,
            ref=settings.template_ref,
            timeout=settings.command_timeout,
        ).materialize(
            settings.template_repo,
            project_dir,
            required_files=(*TEMPLATE_REQUIRED_FILES, *file_set),
        )
        run.mark_materialized()
        operator.success(f"Project materialized in {project_dir}")

        env_files = write_environment(config, project_dir, file_set)
        operator.success(f"Wrote {', '.join(p.name for p in env_files)}")
        save_project_config(config, project_dir)

        orchestrator = ComposeOrchestrator(
            registry,
            project_dir,
            file_set,
            config.name,
            timeout=settings.command_timeout,
            build_timeout=settings.build_timeout,
        )
        if any(config.feature(spec.key).is_shared for spec in FEATURES):
            run.add_scope(shared)
        run.add_scope(ProjectScope(orchestrator))

        operator.banner("Building images (this may take a few minutes)")
        orchestrator.build(no_cache=settings.build_no_cache)
        operator.success("Images built.")

        operator.banner("Starting containers")
        orchestrator.up()
        _wait_for_services(orchestrator, config, settings, operator, web_probe_factory)

        if settings.run_post_install:
            operator.banner("Installing project dependencies")
            run_post_install(
                orchestrator,
                config,
                on_step=lambda step: operator.info(f"Running {step}..."),
            )
            operator.success("Dependencies installed.")

        info_file = run.finalize(config, file_set)
    except (Exception, KeyboardInterrupt) as e:
        logger.debug("Install failed", exc_info=True)
        run.roll_back(e)
        raise InstallFailed(e, str(project_dir)) from e

    _print_summary(operator, config, project_dir)
    return InstallResult(
        config=config,
        project_dir=project_dir,
        file_set=file_set,
        env_files=env_files,
        info_file=info_file,
        shared_created=list(shared.created),
    )


def _wait_for_services(
    orchestrator: ComposeOrchestrator,
    config: ProjectConfig,
    settings: InstallerSettings,
    operator: Operator,
    web_probe_factory: Callable[[str], Probe] | None,
) -> None:
    if config.database.enabled:
        operator.info("Waiting for the database to become available...")
        orchestrator.wait_healthy(
            "database",
            orchestrator.database_probe(config.database),
            attempts=settings.health_attempts,
            interval=settings.health_interval,
        )
        operator.success("Database is ready.")

    url = web_health_url(config, settings.web_health_path)
    operator.info(f"Waiting for {url} ...")
    if web_probe_factory is not None:
        probe = web_probe_factory(url)
    else:
        probe = http_probe(url, timeout=settings.probe_timeout)
    orchestrator.wait_healthy(
        "web",
        probe,
        attempts=settings.health_attempts,
        interval=settings.health_interval,
    )
    operator.success("Web server is responding.")


def _print_summary(operator: Operator, config: ProjectConfig, project_dir: Path) -> None:
    operator.banner("SUCCESS: your development environment is ready")
    operator.info(f"  Project root:     {project_dir}")
    https = config.web_port("https")
    http = config.web_port("http")
    operator.info(f"  Application URL:  https://localhost:{https} (or http://localhost:{http})")
    if config.database.enabled and config.database.port is not None:
        label = DATABASES[config.database.kind].label
        operator.info(f"  {label} host port: {config.database.port.port}")
    mailer = config.feature("mailer")
    if mailer.is_local:
        operator.info(f"  Mailpit (e-mail): http://localhost:{mailer.ports['web'].port}")
    elif mailer.is_shared and mailer.endpoint is not None:
        operator.info(f"  Mailpit (e-mail): http://localhost:{mailer.endpoint.port('web') or 8025}")
    operator.info("")
    operator.info("  Stop:    docker compose down")
    operator.info("  Restart: docker compose up -d")
    operator.info(f"  Details: {project_dir / 'PROJECT_INFO.md'}")
