"""
Domain models — Pydantic types for the installer.

All models are re-exported here for convenient access:

    from scaffold.core.models import ProjectConfig, PortAssignment, ComposeFileSet
"""

from scaffold.core.models.action import Action, Receipt
from scaffold.core.models.compose import ComposeFileSet
from scaffold.core.models.ports import (
    PortAssignment,
    PortCheck,
    PortProbeResult,
    PortRequest,
    PortSource,
    PortStatus,
)
from scaffold.core.models.project import (
    DatabaseConfig,
    DatabaseKind,
    FeatureDecision,
    FeatureMode,
    ProjectConfig,
    ProjectConfigDraft,
    SharedEndpoint,
)

__all__ = [
    # action.py
    "Action",
    # compose.py
    "ComposeFileSet",
    # project.py
    "DatabaseConfig",
    "DatabaseKind",
    "FeatureDecision",
    "FeatureMode",
    # ports.py
    "PortAssignment",
    "PortCheck",
    "PortProbeResult",
    "PortRequest",
    "PortSource",
    "PortStatus",
    "ProjectConfig",
    "ProjectConfigDraft",
    "Receipt",
    "SharedEndpoint",
]
