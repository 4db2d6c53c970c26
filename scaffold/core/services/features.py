"""
Feature Selector — the absent / shared / local choice per optional service.

For each catalog feature, in catalog order:

    enable?  no  → absent
             yes → running instance detected?
                     yes → reuse it (shared) or project-local
                     no  → project-local or create a shared instance

Creating a shared instance is the only global mutation in the whole
pipeline and is announced with a ``[shared]`` banner.
"""

from __future__ import annotations

import logging
import secrets

from scaffold.core.models.project import FeatureDecision, FeatureMode, SharedEndpoint
from scaffold.core.models.ports import PortRequest
from scaffold.core.services.catalog import FEATURES, FeatureSpec
from scaffold.core.services.operator import Operator
from scaffold.core.services.ports.negotiator import PortNegotiator
from scaffold.core.services.resources import SharedScope

logger = logging.getLogger(__name__)

CHOICE_REUSE = "reuse"
CHOICE_LOCAL = "local"
CHOICE_SHARED = "shared"


def generate_credentials(spec: FeatureSpec) -> dict[str, str]:
    """Fresh secrets for a new instance of ``spec``."""
    if spec.key == "mercure":
        key = secrets.token_hex(32)
        return {"MERCURE_PUBLISHER_JWT_KEY": key, "MERCURE_SUBSCRIBER_JWT_KEY": key}
    if spec.key == "storage":
        return {
            "MINIO_ROOT_USER": f"minio_{secrets.token_hex(4)}",
            "MINIO_ROOT_PASSWORD": secrets.token_hex(16),
        }
    return {}


class FeatureSelector:
    """Interactive selection of optional services."""

    def __init__(
        self,
        operator: Operator,
        negotiator: PortNegotiator,
        shared: SharedScope,
    ):
        self._operator = operator
        self._negotiator = negotiator
        self._shared = shared

    def select_all(self) -> list[FeatureDecision]:
        """One decision per catalog feature, in catalog order."""
        return [self.select(spec) for spec in FEATURES]

    def select(self, spec: FeatureSpec) -> FeatureDecision:
        if not self._operator.confirm(f"Enable {spec.label} ({spec.description})?", default=False):
            return FeatureDecision.absent(spec.key)

        existing = self._shared.find(spec)
        if existing is not None:
            self._operator.info(
                f"Found running {spec.label} container '{existing.container}' ({existing.image})."
            )
            choice = self._operator.choose(
                f"Reuse it or run a project-local {spec.label}?",
                [CHOICE_REUSE, CHOICE_LOCAL],
                default=CHOICE_REUSE,
            )
            if choice == CHOICE_REUSE:
                return self._reuse(spec, existing)
            return self._local(spec)

        choice = self._operator.choose(
            f"No running {spec.label} found. Run it project-local or create a shared instance?",
            [CHOICE_LOCAL, CHOICE_SHARED],
            default=CHOICE_LOCAL,
        )
        if choice == CHOICE_SHARED:
            return self._create_shared(spec)
        return self._local(spec)

    # ── Branches ────────────────────────────────────────────────

    def _reuse(self, spec: FeatureSpec, endpoint: SharedEndpoint) -> FeatureDecision:
        missing = [name for name in spec.ports if endpoint.port(name) is None]
        if missing:
            self._operator.warning(
                f"'{endpoint.container}' does not publish the {', '.join(missing)} port(s); "
                "the project may not be able to reach it."
            )
        self._operator.success(f"Reusing shared {spec.label} at {endpoint.host}.")
        return FeatureDecision(feature=spec.key, mode=FeatureMode.SHARED, endpoint=endpoint)

    def _local(self, spec: FeatureSpec) -> FeatureDecision:
        ports = {
            port_name: self._negotiator.negotiate(
                PortRequest(label=f"{spec.label} {port_name}", default_port=container_port)
            )
            for port_name, container_port in spec.ports.items()
        }
        return FeatureDecision(
            feature=spec.key,
            mode=FeatureMode.LOCAL,
            ports=ports,
            credentials=generate_credentials(spec),
        )

    def _create_shared(self, spec: FeatureSpec) -> FeatureDecision:
        host_ports = {
            port_name: self._negotiator.negotiate(
                PortRequest(label=f"shared {spec.label} {port_name}", default_port=container_port)
            ).port
            for port_name, container_port in spec.ports.items()
        }
        name = self._shared.container_name(spec)
        self._operator.banner(
            f"[shared] Creating {spec.label} container '{name}' (outlives this project)",
            scope="shared",
        )
        endpoint = self._shared.create(spec, host_ports, generate_credentials(spec))
        self._operator.success(f"[shared] {spec.label} running as '{name}'.")
        return FeatureDecision(feature=spec.key, mode=FeatureMode.SHARED, endpoint=endpoint)
