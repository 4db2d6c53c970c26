"""
Port models — probe results and negotiated assignments.

A PortRequest is what the installer asks for; a PortAssignment is what
negotiation settled on. Probe results keep each individual check so the
operator can see which tool (or which side of a WSL boundary) reported
a conflict.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

MIN_PORT = 1024
MAX_PORT = 65535


class PortStatus(str, Enum):
    """Outcome of a port check."""

    FREE = "free"
    IN_USE = "in_use"
    UNKNOWN = "unknown"


class PortSource(str, Enum):
    """Where the final port number came from."""

    USER_DEFAULT = "user-default"
    USER_CUSTOM = "user-custom"
    AUTO_SUGGESTED = "auto-suggested"


class PortCheck(BaseModel):
    """Result of a single checker for a single port."""

    checker: str
    status: PortStatus = PortStatus.UNKNOWN
    bound_by: str = ""
    detail: str = ""


class PortProbeResult(BaseModel):
    """Combined result across every check performed for one port."""

    port: int
    status: PortStatus = PortStatus.UNKNOWN
    bound_by: str = ""
    checks: list[PortCheck] = Field(default_factory=list)

    @property
    def free(self) -> bool:
        return self.status == PortStatus.FREE

    @property
    def in_use(self) -> bool:
        return self.status == PortStatus.IN_USE

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class PortRequest(BaseModel):
    """A (service label, default port) pair submitted to negotiation."""

    model_config = ConfigDict(frozen=True)

    label: str
    default_port: int


class PortAssignment(BaseModel):
    """A negotiated host port for one service.

    ``verified`` is False when no probe confirmed the port free: the
    last-resort fallback, or a port whose status was unknown.
    """

    model_config = ConfigDict(frozen=True)

    label: str
    port: int = Field(ge=MIN_PORT, le=MAX_PORT)
    source: PortSource = PortSource.USER_DEFAULT
    verified: bool = True


def is_valid_port(port: int) -> bool:
    """Whether ``port`` is in the registered/ephemeral-safe range."""
    return MIN_PORT <= port <= MAX_PORT
