"""
Project model — the answers collected during one installer run.

ProjectConfig is built incrementally through ProjectConfigDraft, where
every field can be answered exactly once, and is frozen afterwards.
It is consumed by the Environment Writer and the Compose Orchestrator,
and snapshotted into the project as ``.scaffold/project.json`` so the
environment can be regenerated later.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from scaffold.core.models.ports import PortAssignment

IDENTIFIER_PATTERN = r"^[a-z_][a-z0-9_]*$"
IDENTIFIER_RE = re.compile(IDENTIFIER_PATTERN)


class DatabaseKind(str, Enum):
    """Supported database engines."""

    NONE = "none"
    MYSQL = "mysql"
    POSTGRES = "postgres"
    POSTGIS = "postgis"


class DatabaseConfig(BaseModel):
    """Database selection and credentials.

    Only the fields relevant to ``kind`` may be set: ``root_password``
    belongs to MySQL alone, and ``none`` carries no credentials at all.
    """

    model_config = ConfigDict(frozen=True)

    kind: DatabaseKind = DatabaseKind.NONE
    name: str = ""
    user: str = ""
    password: str = ""
    root_password: str | None = None
    port: PortAssignment | None = None

    @model_validator(mode="after")
    def _check_kind_fields(self) -> DatabaseConfig:
        if self.kind == DatabaseKind.NONE:
            if self.name or self.user or self.password or self.root_password or self.port:
                raise ValueError("database kind 'none' takes no credentials or port")
            return self

        for field in ("name", "user"):
            value = getattr(self, field)
            if not IDENTIFIER_RE.match(value):
                raise ValueError(f"database {field} {value!r} is not a valid identifier")
        if not self.password:
            raise ValueError("database password cannot be empty")
        if self.port is None:
            raise ValueError("database host port is required")

        if self.kind == DatabaseKind.MYSQL:
            if not self.root_password:
                raise ValueError("mysql requires a root password")
        elif self.root_password is not None:
            raise ValueError(f"root password is not applicable to {self.kind.value}")
        return self

    @property
    def enabled(self) -> bool:
        return self.kind != DatabaseKind.NONE


class FeatureMode(str, Enum):
    """How an optional capability is materialized."""

    ABSENT = "absent"
    SHARED = "shared"
    LOCAL = "local"


class SharedEndpoint(BaseModel):
    """Externally reachable address of a shared service instance."""

    model_config = ConfigDict(frozen=True)

    container: str
    image: str = ""
    host: str = "host.docker.internal"
    ports: dict[str, int] = Field(default_factory=dict)
    credentials: dict[str, str] = Field(default_factory=dict)

    def port(self, name: str) -> int | None:
        return self.ports.get(name)


class FeatureDecision(BaseModel):
    """The three-way choice for one optional service."""

    model_config = ConfigDict(frozen=True)

    feature: str
    mode: FeatureMode = FeatureMode.ABSENT
    ports: dict[str, PortAssignment] = Field(default_factory=dict)
    endpoint: SharedEndpoint | None = None
    # Secrets generated for a local instance (shared ones live on the endpoint)
    credentials: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_mode(self) -> FeatureDecision:
        if self.mode == FeatureMode.ABSENT:
            if self.ports or self.endpoint or self.credentials:
                raise ValueError(f"{self.feature}: absent feature takes no ports or endpoint")
        elif self.mode == FeatureMode.SHARED:
            if self.endpoint is None:
                raise ValueError(f"{self.feature}: shared feature requires an endpoint")
            if self.ports or self.credentials:
                raise ValueError(f"{self.feature}: shared feature has no project-local ports")
        elif self.endpoint is not None:
            raise ValueError(f"{self.feature}: local feature cannot reference a shared endpoint")
        return self

    @classmethod
    def absent(cls, feature: str) -> FeatureDecision:
        return cls(feature=feature, mode=FeatureMode.ABSENT)

    @property
    def enabled(self) -> bool:
        return self.mode != FeatureMode.ABSENT

    @property
    def is_local(self) -> bool:
        return self.mode == FeatureMode.LOCAL

    @property
    def is_shared(self) -> bool:
        return self.mode == FeatureMode.SHARED


class ProjectConfig(BaseModel):
    """Everything the Environment Writer and Compose Orchestrator need."""

    model_config = ConfigDict(frozen=True)

    name: str
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    web_ports: dict[str, PortAssignment] = Field(default_factory=dict)
    features: dict[str, FeatureDecision] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def _check_name(cls, value: str) -> str:
        if not IDENTIFIER_RE.match(value):
            raise ValueError(f"project name {value!r} must match {IDENTIFIER_PATTERN}")
        return value

    @property
    def server_name(self) -> str:
        return "localhost"

    @property
    def enabled_features(self) -> list[str]:
        return [key for key, d in self.features.items() if d.enabled]

    def feature(self, key: str) -> FeatureDecision:
        """Decision for ``key``; features never asked about count as absent."""
        return self.features.get(key) or FeatureDecision.absent(key)

    def web_port(self, name: str) -> int | None:
        assignment = self.web_ports.get(name)
        return assignment.port if assignment else None


class ProjectConfigDraft:
    """Write-once accumulator for ProjectConfig answers.

    Each top-level field may be answered once; features are keyed and
    each feature may be decided once.
    """

    _FIELDS = ("name", "database", "web_ports")

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}
        self._features: dict[str, FeatureDecision] = {}

    def set(self, field: str, value: Any) -> None:
        if field not in self._FIELDS:
            raise KeyError(f"Unknown project field: {field}")
        if field in self._values:
            raise ValueError(f"Field '{field}' has already been answered")
        self._values[field] = value

    def get(self, field: str, default: Any = None) -> Any:
        return self._values.get(field, default)

    def decide(self, decision: FeatureDecision) -> None:
        if decision.feature in self._features:
            raise ValueError(f"Feature '{decision.feature}' has already been decided")
        self._features[decision.feature] = decision

    @property
    def features(self) -> dict[str, FeatureDecision]:
        return dict(self._features)

    def build(self) -> ProjectConfig:
        if "name" not in self._values:
            raise ValueError("Project name has not been answered")
        return ProjectConfig(features=dict(self._features), **self._values)
