"""
Port Negotiator — turn a requested port into an accepted one.

Flow per request:

    ask ──▶ validate (1024–65535, re-prompt otherwise)
         ──▶ probe
              free     → assign
              unknown  → assume free, warn
              in use   → scan forward for a candidate
                         (or +offset fallback, unverified)
                         ──▶ operator accepts → re-probe candidate
                         ──▶ operator rejects → ask for a new port

Ports assigned earlier in the same session count as in use, so two
services of one project never end up on the same host port.

The port cannot be reserved between check and use; the accept-time
re-probe narrows that window but does not close it.
"""

from __future__ import annotations

import logging

from scaffold.core.models.ports import (
    MAX_PORT,
    MIN_PORT,
    PortAssignment,
    PortRequest,
    PortSource,
    PortStatus,
    is_valid_port,
)
from scaffold.core.services.operator import Operator
from scaffold.core.services.ports.prober import PortProber

logger = logging.getLogger(__name__)


class PortNegotiator:
    """Interactive port negotiation for one installer session."""

    def __init__(
        self,
        operator: Operator,
        prober: PortProber,
        scan_attempts: int = 100,
        fallback_offset: int = 1000,
    ):
        self._operator = operator
        self._prober = prober
        self._scan_attempts = scan_attempts
        self._fallback_offset = fallback_offset
        self._assigned: dict[int, str] = {}

    @property
    def assigned(self) -> dict[int, str]:
        """Ports assigned so far in this session (port → label)."""
        return dict(self._assigned)

    def negotiate(self, request: PortRequest) -> PortAssignment:
        """Ask for, probe and confirm a port for ``request.label``."""
        while True:
            port, source = self._ask(request)
            assignment = self._resolve(request.label, port, source)
            if assignment is not None:
                return self._record(assignment)

    def negotiate_port(self, label: str, requested_port: int) -> int:
        """Negotiate starting from an already-requested port.

        Invalid or rejected ports fall back to the interactive prompt.
        """
        request = PortRequest(label=label, default_port=requested_port)
        if is_valid_port(requested_port):
            assignment = self._resolve(label, requested_port, PortSource.USER_CUSTOM)
            if assignment is not None:
                return self._record(assignment).port
        else:
            self._operator.warning(_invalid_port_message(str(requested_port)))
        return self.negotiate(request).port

    def renegotiate(self, label: str, current: int) -> PortAssignment:
        """Ask again for a port the project already holds.

        Keeping ``current`` is accepted without probing: the project's own
        containers may be what is listening there. Any other answer goes
        through the normal probe-and-confirm flow.
        """
        request = PortRequest(label=label, default_port=current)
        while True:
            port, source = self._ask(request)
            if port == current and port not in self._assigned:
                kept = PortAssignment(label=label, port=port, source=PortSource.USER_DEFAULT)
                return self._record(kept)
            assignment = self._resolve(label, port, source)
            if assignment is not None:
                return self._record(assignment)

    # ── Steps ───────────────────────────────────────────────────

    def _ask(self, request: PortRequest) -> tuple[int, PortSource]:
        """Prompt until the operator gives a port in range."""
        while True:
            raw = self._operator.ask_text(
                f"Host port for {request.label} [{request.default_port}]",
                default="",
            ).strip()
            if not raw:
                return request.default_port, PortSource.USER_DEFAULT
            if not raw.isdigit() or not is_valid_port(int(raw)):
                self._operator.warning(_invalid_port_message(raw))
                continue
            port = int(raw)
            if port == request.default_port:
                return port, PortSource.USER_DEFAULT
            return port, PortSource.USER_CUSTOM

    def _resolve(self, label: str, port: int, source: PortSource) -> PortAssignment | None:
        """Probe ``port`` and settle it, or return None to ask again."""
        while True:
            status, bound_by = self._status(port)

            if status == PortStatus.FREE:
                return PortAssignment(label=label, port=port, source=source)

            if status == PortStatus.UNKNOWN:
                logger.warning("Port %d status unknown for %s; assuming free", port, label)
                self._operator.warning(
                    f"Could not determine whether port {port} is free "
                    "(no port-listing tool answered). Assuming it is free."
                )
                return PortAssignment(label=label, port=port, source=source, verified=False)

            self._operator.warning(f"Port {port} is already in use by {bound_by}.")
            candidate, candidate_status = self._find_candidate(port)
            verified = candidate_status is not None
            if candidate_status == PortStatus.FREE:
                self._operator.info(f"Port {candidate} looks free.")
            elif candidate_status == PortStatus.UNKNOWN:
                self._operator.warning(
                    f"Port {candidate} could not be checked; it may also be in use."
                )
            else:
                logger.warning(
                    "No free port within %d of %d; proposing unverified fallback %d",
                    self._scan_attempts, port, candidate,
                )
                self._operator.warning(
                    f"No free port found after {port}. Fallback {candidate} "
                    "has NOT been verified."
                )

            if not self._operator.confirm(f"Use port {candidate} for {label}?", default=True):
                return None

            if not verified:
                return PortAssignment(
                    label=label,
                    port=candidate,
                    source=PortSource.AUTO_SUGGESTED,
                    verified=False,
                )
            # Accepted: re-probe at accept time and continue from the candidate
            port, source = candidate, PortSource.AUTO_SUGGESTED

    def _find_candidate(self, port: int) -> tuple[int, PortStatus | None]:
        """First port after ``port`` not in use and its status.

        Status None marks the fallback port, which was never probed.
        """
        for offset in range(1, self._scan_attempts + 1):
            candidate = port + offset
            if candidate > MAX_PORT:
                break
            status, _ = self._status(candidate)
            if status != PortStatus.IN_USE:
                return candidate, status
        return fallback_port(port, self._fallback_offset), None

    def _status(self, port: int) -> tuple[PortStatus, str]:
        if port in self._assigned:
            return PortStatus.IN_USE, f"this project ({self._assigned[port]})"
        return self._prober.is_port_free(port)

    def _record(self, assignment: PortAssignment) -> PortAssignment:
        self._assigned[assignment.port] = assignment.label
        logger.info(
            "Assigned port %d to %s (%s%s)",
            assignment.port,
            assignment.label,
            assignment.source.value,
            "" if assignment.verified else ", unverified",
        )
        return assignment


def fallback_port(port: int, offset: int = 1000) -> int:
    """Last-resort port: ``port + offset``, or ``port - offset`` past the top of the range."""
    candidate = port + offset
    if candidate > MAX_PORT:
        candidate = port - offset
    return max(candidate, MIN_PORT)


def _invalid_port_message(raw: str) -> str:
    return f"Invalid port '{raw}'. Must be a number between {MIN_PORT} and {MAX_PORT}."
