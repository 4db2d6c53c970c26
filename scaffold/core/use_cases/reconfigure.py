"""
Reconfigure use case — regenerate a project's environment after install.

    load .scaffold/project.json
      → re-ask host ports (optional; current ports kept unprobed)
      → write environment → update project.json and PROJECT_INFO.md
      → restart the stack (optional)

Nothing is cloned, built or rolled back: the project tree already
exists and only the generated files are rewritten.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from scaffold.adapters.registry import AdapterRegistry
from scaffold.core.config.loader import InstallerSettings
from scaffold.core.errors import MaterializeError
from scaffold.core.models.compose import ComposeFileSet
from scaffold.core.models.ports import PortAssignment
from scaffold.core.models.project import ProjectConfig
from scaffold.core.persistence.atomic import atomic_write_text
from scaffold.core.persistence.project_file import load_project_config, save_project_config
from scaffold.core.services.compose import ComposeOrchestrator, file_set_for
from scaffold.core.services.env_writer import write_environment
from scaffold.core.services.operator import Operator
from scaffold.core.services.ports.negotiator import PortNegotiator
from scaffold.core.services.ports.prober import PortProber
from scaffold.core.services.rollback import PROJECT_INFO_FILE, render_project_info
from scaffold.core.use_cases.install import default_registry

logger = logging.getLogger(__name__)


@dataclass
class ReconfigureResult:
    """Outcome of a reconfiguration."""

    config: ProjectConfig
    project_dir: Path
    file_set: ComposeFileSet
    env_files: list[Path] = field(default_factory=list)
    # label → (old port, new port)
    changed_ports: dict[str, tuple[int, int]] = field(default_factory=dict)
    restarted: bool = False

    def to_dict(self) -> dict:
        return {
            "project_name": self.config.name,
            "project_dir": str(self.project_dir),
            "compose_files": list(self.file_set),
            "env_files": [p.name for p in self.env_files],
            "changed_ports": {k: list(v) for k, v in self.changed_ports.items()},
            "restarted": self.restarted,
        }


def run_reconfigure(
    project_dir: Path,
    settings: InstallerSettings,
    operator: Operator,
    registry: AdapterRegistry | None = None,
    prober: PortProber | None = None,
    change_ports: bool = True,
    restart: bool = False,
) -> ReconfigureResult:
    """Rewrite ``.env``/``.env.dev.local`` from the stored project config.

    Args:
        project_dir: Root of a project this installer generated.
        settings: Installer tunables (timeouts, port scan limits).
        operator: Prompt/echo surface.
        registry: Adapter registry, only used with ``restart``.
            Default: docker + git.
        prober: Port prober. Default: auto-detected checkers.
        change_ports: Re-ask every host port.
        restart: ``docker compose down`` then ``up -d`` afterwards.

    Raises:
        ConfigError: No readable ``.scaffold/project.json``.
        MaterializeError: A Compose file of the set is missing.
        StepFailed: The restart failed.
    """
    project_dir = project_dir.resolve()
    config = load_project_config(project_dir)
    file_set = file_set_for(config)
    operator.banner(f"Reconfiguring {config.name}")

    missing = file_set.missing(project_dir)
    if missing:
        raise MaterializeError(f"Compose files missing from {project_dir}: {', '.join(missing)}")

    changed: dict[str, tuple[int, int]] = {}
    if change_ports:
        operator.info("Press enter to keep a port.")
        negotiator = PortNegotiator(
            operator,
            prober or PortProber(timeout=settings.probe_timeout),
            scan_attempts=settings.scan_attempts,
            fallback_offset=settings.fallback_offset,
        )
        updated = renegotiate_ports(config, negotiator)
        before, after = _ports_by_label(config), _ports_by_label(updated)
        changed = {
            label: (port, after[label])
            for label, port in before.items()
            if after.get(label) != port
        }
        config = updated

    env_files = write_environment(config, project_dir, file_set)
    operator.success(f"Wrote {', '.join(p.name for p in env_files)}")
    save_project_config(config, project_dir)
    atomic_write_text(project_dir / PROJECT_INFO_FILE, render_project_info(config, file_set))

    for label, (old, new) in changed.items():
        operator.info(f"  {label}: {old} → {new}")

    restarted = False
    if restart:
        if registry is None:
            registry = default_registry()
        orchestrator = ComposeOrchestrator(
            registry,
            project_dir,
            file_set,
            config.name,
            timeout=settings.command_timeout,
        )
        operator.banner("Restarting containers")
        orchestrator.down(volumes=False)
        orchestrator.up()
        restarted = True
        operator.success("Containers restarted.")
    elif changed:
        operator.info("Run `docker compose up -d` to apply the new ports.")

    logger.info("Reconfigured %s (%d port(s) changed)", config.name, len(changed))
    return ReconfigureResult(
        config=config,
        project_dir=project_dir,
        file_set=file_set,
        env_files=env_files,
        changed_ports=changed,
        restarted=restarted,
    )


def renegotiate_ports(config: ProjectConfig, negotiator: PortNegotiator) -> ProjectConfig:
    """``config`` with every project-owned host port asked again.

    Shared features keep their endpoints; their ports belong to the
    shared container.
    """
    web_ports = {
        name: negotiator.renegotiate(a.label, a.port)
        for name, a in config.web_ports.items()
    }

    database = config.database
    if database.port is not None:
        database = database.model_copy(
            update={"port": negotiator.renegotiate(database.port.label, database.port.port)},
        )

    features = {}
    for key, decision in config.features.items():
        if decision.is_local and decision.ports:
            ports = {
                name: negotiator.renegotiate(a.label, a.port)
                for name, a in decision.ports.items()
            }
            decision = decision.model_copy(update={"ports": ports})
        features[key] = decision

    return config.model_copy(
        update={"web_ports": web_ports, "database": database, "features": features},
    )


def _ports_by_label(config: ProjectConfig) -> dict[str, int]:
    assignments: list[PortAssignment] = list(config.web_ports.values())
    if config.database.port is not None:
        assignments.append(config.database.port)
    for decision in config.features.values():
        if decision.is_local:
            assignments.extend(decision.ports.values())
    return {a.label: a.port for a in assignments}
