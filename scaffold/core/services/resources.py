"""
Resource scopes — who owns what the installer creates.

Two scopes with one interface:

    ProjectScope   this project's Compose stack; rollback tears it down
    SharedScope    cluster-level registry of shared service containers;
                   queried and optionally extended, never torn down

Rollback walks the scopes it was given and only touches the ones that
report ``owned_by_project``.
"""

from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod

from scaffold.adapters.registry import AdapterRegistry
from scaffold.core.errors import ScaffoldError, StepFailed
from scaffold.core.models.action import Action, Receipt
from scaffold.core.models.project import SharedEndpoint
from scaffold.core.services.catalog import FeatureSpec
from scaffold.core.services.compose import ComposeOrchestrator

logger = logging.getLogger(__name__)


class ResourceScope(ABC):
    """A set of resources with a single owner."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @property
    @abstractmethod
    def owned_by_project(self) -> bool:
        """Whether this project's rollback may remove these resources."""

    @abstractmethod
    def teardown(self) -> None:
        """Remove every resource in this scope."""


class ProjectScope(ResourceScope):
    """Containers, networks and volumes of this project's Compose stack."""

    def __init__(self, orchestrator: ComposeOrchestrator):
        self._orchestrator = orchestrator

    @property
    def name(self) -> str:
        return f"project:{self._orchestrator.project_name}"

    @property
    def owned_by_project(self) -> bool:
        return True

    def teardown(self) -> None:
        self._orchestrator.down(volumes=True)


# host:port->container/tcp, with optional ranges on both sides
_PORT_MAP_RE = re.compile(r":(\d+)(?:-(\d+))?->(\d+)(?:-(\d+))?/tcp")


def parse_port_map(ports_column: str) -> dict[int, int]:
    """Container port → published host port, from a ``docker ps`` Ports column."""
    mapping: dict[int, int] = {}
    for match in _PORT_MAP_RE.finditer(ports_column):
        host_start = int(match.group(1))
        container_start = int(match.group(3))
        container_end = int(match.group(4)) if match.group(4) else container_start
        for offset in range(container_end - container_start + 1):
            mapping.setdefault(container_start + offset, host_start + offset)
    return mapping


class SharedScope(ResourceScope):
    """Cluster-level registry of shared service instances.

    Backed by the container engine itself: a shared instance is any
    running container of the feature's canonical image.
    """

    def __init__(self, registry: AdapterRegistry, prefix: str = "scaffold-shared", timeout: int = 60):
        self._registry = registry
        self._prefix = prefix
        self._timeout = timeout
        self.created: list[str] = []

    @property
    def name(self) -> str:
        return "shared"

    @property
    def owned_by_project(self) -> bool:
        return False

    def teardown(self) -> None:
        raise ScaffoldError(
            "Shared instances outlive individual projects and are never torn down by one"
        )

    def container_name(self, spec: FeatureSpec) -> str:
        return f"{self._prefix}-{spec.key}"

    # ── Query ───────────────────────────────────────────────────

    def find(self, spec: FeatureSpec) -> SharedEndpoint | None:
        """First running container of the feature's image, if any."""
        receipt = self._docker("list-containers", {"operation": "containers"})
        if not receipt.ok:
            logger.warning("Cannot list containers: %s", receipt.error)
            return None

        for line in receipt.output.splitlines():
            if not line.strip():
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("Skipping unparsable container row: %s", line[:80])
                continue
            if not spec.matches_image(row.get("Image", "")):
                continue

            container = row.get("Names", "").split(",")[0]
            port_map = parse_port_map(row.get("Ports", ""))
            ports = {
                port_name: port_map[container_port]
                for port_name, container_port in spec.ports.items()
                if container_port in port_map
            }
            logger.info("Found running %s container: %s", spec.label, container)
            return SharedEndpoint(
                container=container,
                image=row.get("Image", spec.image),
                ports=ports,
                credentials=self._read_credentials(container, spec),
            )
        return None

    def _read_credentials(self, container: str, spec: FeatureSpec) -> dict[str, str]:
        if not spec.credential_env:
            return {}
        receipt = self._docker(
            "inspect-env",
            {"operation": "inspect-env", "container": container},
        )
        if not receipt.ok:
            logger.warning("Cannot read environment of %s: %s", container, receipt.error)
            return {}
        try:
            env_list = json.loads(receipt.output or "[]")
        except json.JSONDecodeError:
            logger.warning("Unparsable environment for %s", container)
            return {}

        credentials: dict[str, str] = {}
        for item in env_list or []:
            key, _, value = str(item).partition("=")
            if key in spec.credential_env:
                credentials[key] = value
        return credentials

    # ── Create ──────────────────────────────────────────────────

    def create(
        self,
        spec: FeatureSpec,
        host_ports: dict[str, int],
        credentials: dict[str, str] | None = None,
    ) -> SharedEndpoint:
        """Start a long-lived ``--restart always`` instance outside any project.

        Raises:
            StepFailed: if the container could not be started (including
                when another run already created one with the same name).
        """
        name = self.container_name(spec)
        credentials = dict(credentials or {})
        receipt = self._docker(
            f"shared-{spec.key}",
            {
                "operation": "run",
                "name": name,
                "image": spec.image,
                "restart": "always",
                "ports": {
                    host_ports[port_name]: container_port
                    for port_name, container_port in spec.ports.items()
                },
                "env": {**spec.run_env, **credentials},
                "args": list(spec.run_args),
                "timeout": self._timeout,
            },
        )
        if not receipt.ok:
            raise StepFailed(
                f"create shared {spec.label}",
                command=receipt.command,
                return_code=receipt.return_code,
                detail=receipt.error or "",
            )

        self.created.append(name)
        logger.info("Created shared %s instance %s", spec.label, name)
        return SharedEndpoint(
            container=name,
            image=spec.image,
            ports=dict(host_ports),
            credentials=credentials,
        )

    def _docker(self, action_id: str, params: dict) -> Receipt:
        action = Action(id=action_id, adapter="docker", params={"timeout": self._timeout, **params})
        return self._registry.execute_action(action)
