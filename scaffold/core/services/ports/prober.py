"""
Port Prober — is a TCP port already bound?

Local checkers are tried in priority order and the first definite
answer is authoritative for the local namespace. Under WSL the Windows
host and the container engine's published ports are checked as well.

Combination rule across the performed checks:
    any in_use  → in_use (authoritative)
    all free    → free
    otherwise   → unknown  (never silently reported as free)
"""

from __future__ import annotations

import logging

from scaffold.core.models.ports import PortCheck, PortProbeResult, PortStatus
from scaffold.core.services.ports.checkers import (
    PortChecker,
    boundary_checkers,
    is_wsl,
    local_checkers,
)

logger = logging.getLogger(__name__)


class PortProber:
    """Read-only port probing across every namespace that matters."""

    def __init__(
        self,
        local: list[PortChecker] | None = None,
        boundary: list[PortChecker] | None = None,
        wsl: bool | None = None,
        timeout: float = 5.0,
    ):
        self._local = local if local is not None else local_checkers(timeout)
        self._wsl = is_wsl() if wsl is None else wsl
        if boundary is not None:
            self._boundary = boundary
        else:
            self._boundary = boundary_checkers(timeout) if self._wsl else []

    @property
    def wsl(self) -> bool:
        return self._wsl

    def probe(self, port: int) -> PortProbeResult:
        """Probe ``port`` and keep every individual check."""
        checks = [self._probe_local(port)]
        for checker in self._boundary:
            checks.append(self._run_checker(checker, port))

        result = combine(port, checks)
        logger.debug(
            "Port %d: %s%s",
            port,
            result.status.value,
            f" (bound by {result.bound_by})" if result.bound_by else "",
        )
        return result

    def is_port_free(self, port: int) -> tuple[PortStatus, str]:
        """Status and (if bound) what holds the port."""
        result = self.probe(port)
        return result.status, result.bound_by

    # ── Internals ───────────────────────────────────────────────

    def _probe_local(self, port: int) -> PortCheck:
        last: PortCheck | None = None
        for checker in self._local:
            check = self._run_checker(checker, port)
            if check.status != PortStatus.UNKNOWN:
                return check
            last = check
        if last is None:
            return PortCheck(checker="local", detail="No port-listing tool available")
        return PortCheck(
            checker="local",
            detail=f"No checker gave a definite answer (last: {last.checker}: {last.detail})",
        )

    @staticmethod
    def _run_checker(checker: PortChecker, port: int) -> PortCheck:
        if not checker.is_available():
            return PortCheck(checker=checker.name, detail=f"{checker.binary} not found")
        return checker.check(port)


def combine(port: int, checks: list[PortCheck]) -> PortProbeResult:
    """Combine independent checks into one probe result."""
    for check in checks:
        if check.status == PortStatus.IN_USE:
            return PortProbeResult(
                port=port,
                status=PortStatus.IN_USE,
                bound_by=check.bound_by,
                checks=checks,
            )
    if checks and all(c.status == PortStatus.FREE for c in checks):
        return PortProbeResult(port=port, status=PortStatus.FREE, checks=checks)
    return PortProbeResult(port=port, status=PortStatus.UNKNOWN, checks=checks)
