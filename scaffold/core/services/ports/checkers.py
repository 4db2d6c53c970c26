"""
Port-checker strategies.

Each checker answers one question — is anything listening on TCP
``port`` in the namespace this checker can see? — with a PortCheck.
A checker that is missing, fails, times out, or produces output it
cannot interpret answers ``unknown`` and never raises.

Local checkers (lsof, ss, netstat) are interchangeable views of the
same namespace. When none of those tools gives an answer, binding the
port ourselves is the last local resort. The boundary checkers (Windows
host, container engine) see ports the local ones cannot under WSL.
"""

from __future__ import annotations

import errno
import json
import logging
import os
import platform
import re
import shutil
import socket
from abc import ABC, abstractmethod
from pathlib import Path

from scaffold.core.models.ports import PortCheck, PortStatus
from scaffold.core.services.process import run_command

logger = logging.getLogger(__name__)

_OSRELEASE = Path("/proc/sys/kernel/osrelease")


def is_wsl() -> bool:
    """Whether we run inside WSL, behind the Windows host's network stack."""
    if os.environ.get("WSL_DISTRO_NAME") or os.environ.get("WSL_INTEROP"):
        return True
    try:
        return "microsoft" in _OSRELEASE.read_text(encoding="utf-8").lower()
    except OSError:
        return False


class PortChecker(ABC):
    """One way of finding out whether a port is bound."""

    #: Executable the checker needs on PATH
    binary: str = ""

    def __init__(self, timeout: float = 5.0):
        self.timeout = timeout

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier shown in probe results."""

    def is_available(self) -> bool:
        return shutil.which(self.binary) is not None

    @abstractmethod
    def check(self, port: int) -> PortCheck:
        """Check a single port. Never raises."""

    # ── Result helpers ──────────────────────────────────────────

    def _free(self, detail: str = "") -> PortCheck:
        return PortCheck(checker=self.name, status=PortStatus.FREE, detail=detail)

    def _in_use(self, bound_by: str = "", detail: str = "") -> PortCheck:
        return PortCheck(
            checker=self.name,
            status=PortStatus.IN_USE,
            bound_by=bound_by or "unknown process",
            detail=detail,
        )

    def _unknown(self, detail: str) -> PortCheck:
        return PortCheck(checker=self.name, status=PortStatus.UNKNOWN, detail=detail)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


# ═══════════════════════════════════════════════════════════════════
#  Local namespace
# ═══════════════════════════════════════════════════════════════════


class LsofChecker(PortChecker):
    """``lsof -nP -iTCP:<port> -sTCP:LISTEN`` — exit 1 with no output means free."""

    binary = "lsof"

    @property
    def name(self) -> str:
        return "lsof"

    def check(self, port: int) -> PortCheck:
        result = run_command(
            ["lsof", "-nP", f"-iTCP:{port}", "-sTCP:LISTEN"],
            timeout=self.timeout,
        )
        if result is None:
            return self._unknown("lsof did not complete")

        rows = [line for line in result.stdout.splitlines()[1:] if line.strip()]
        if result.returncode == 0 and rows:
            fields = rows[0].split()
            bound_by = f"{fields[0]} (pid {fields[1]})" if len(fields) > 1 else fields[0]
            return self._in_use(bound_by)
        if result.returncode == 1 and not rows and not result.stderr.strip():
            return self._free()
        return self._unknown(result.stderr.strip() or f"lsof exit code {result.returncode}")


_SS_USERS_RE = re.compile(r'users:\(\("([^"]+)",pid=(\d+)')


class SsChecker(PortChecker):
    """``ss -H -ltnp sport = :<port>`` — any output row means bound."""

    binary = "ss"

    @property
    def name(self) -> str:
        return "ss"

    def check(self, port: int) -> PortCheck:
        result = run_command(
            ["ss", "-H", "-ltnp", "sport", "=", f":{port}"],
            timeout=self.timeout,
        )
        if result is None:
            return self._unknown("ss did not complete")
        if result.returncode != 0:
            return self._unknown(result.stderr.strip() or f"ss exit code {result.returncode}")

        rows = [line for line in result.stdout.splitlines() if line.strip()]
        if not rows:
            return self._free()

        match = _SS_USERS_RE.search(rows[0])
        bound_by = f"{match.group(1)} (pid {match.group(2)})" if match else ""
        return self._in_use(bound_by)


class NetstatChecker(PortChecker):
    """``netstat`` listing, filtered for a LISTEN socket on the port."""

    binary = "netstat"

    @property
    def name(self) -> str:
        return "netstat"

    def check(self, port: int) -> PortCheck:
        if platform.system() == "Darwin":
            args = ["netstat", "-an", "-p", "tcp"]
        else:
            args = ["netstat", "-ltnp"]
        result = run_command(args, timeout=self.timeout)
        if result is None:
            return self._unknown("netstat did not complete")
        if result.returncode != 0:
            return self._unknown(result.stderr.strip() or f"netstat exit code {result.returncode}")

        for line in result.stdout.splitlines():
            fields = line.split()
            if "LISTEN" not in fields or len(fields) < 4:
                continue
            local = fields[3]
            # Linux uses host:port, BSD uses host.port
            if local.endswith(f":{port}") or local.endswith(f".{port}"):
                owner = fields[-1] if "/" in fields[-1] else ""
                return self._in_use(owner.split("/", 1)[-1] if owner else "")
        return self._free()


# Loopback and wildcard: BSD stacks let a wildcard bind coexist with a
# loopback listener, so both are tried
_BIND_ADDRESSES = ("127.0.0.1", "0.0.0.0")


class SocketBindChecker(PortChecker):
    """Try to bind the port; EADDRINUSE means something already holds it.

    Needs no external tool, but cannot say which process owns the port.
    """

    @property
    def name(self) -> str:
        return "bind"

    def is_available(self) -> bool:
        return True

    def check(self, port: int) -> PortCheck:
        for address in _BIND_ADDRESSES:
            with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
                if os.name == "posix":
                    # Lingering TIME_WAIT connections are not listeners
                    sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                try:
                    sock.bind((address, port))
                except OSError as e:
                    if e.errno == errno.EADDRINUSE:
                        return self._in_use(detail=f"{address}:{port} already bound")
                    return self._unknown(f"bind {address}:{port} failed: {e.strerror or e}")
        return self._free()


# ═══════════════════════════════════════════════════════════════════
#  Across the virtualization boundary
# ═══════════════════════════════════════════════════════════════════


class WindowsHostChecker(PortChecker):
    """Query the Windows host through WSL interop (``powershell.exe``)."""

    binary = "powershell.exe"

    @property
    def name(self) -> str:
        return "windows-host"

    def check(self, port: int) -> PortCheck:
        script = (
            f"Get-NetTCPConnection -State Listen -LocalPort {port} "
            "-ErrorAction SilentlyContinue | "
            "Select-Object -First 1 -ExpandProperty OwningProcess; exit 0"
        )
        result = run_command(
            ["powershell.exe", "-NoProfile", "-NonInteractive", "-Command", script],
            timeout=self.timeout,
        )
        if result is None:
            return self._unknown("powershell.exe did not complete")
        if result.returncode != 0:
            return self._unknown(result.stderr.strip() or f"powershell exit code {result.returncode}")

        pid = result.stdout.strip()
        if pid.isdigit():
            return self._in_use(f"Windows process (pid {pid})")
        if not pid:
            return self._free()
        return self._unknown(f"Unexpected output: {pid[:80]}")


# "0.0.0.0:8000-8001->8000-8001/tcp", "[::]:8080->80/tcp"
_PUBLISHED_RE = re.compile(r":(\d+)(?:-(\d+))?->")


def published_ports(ports_column: str) -> set[int]:
    """Host ports published in a ``docker ps`` Ports column."""
    found: set[int] = set()
    for match in _PUBLISHED_RE.finditer(ports_column):
        start = int(match.group(1))
        end = int(match.group(2)) if match.group(2) else start
        found.update(range(start, end + 1))
    return found


class ContainerEngineChecker(PortChecker):
    """Inspect the container engine's published-port table."""

    binary = "docker"

    @property
    def name(self) -> str:
        return "docker"

    def check(self, port: int) -> PortCheck:
        result = run_command(
            ["docker", "ps", "--format", "{{json .}}"],
            timeout=self.timeout,
        )
        if result is None:
            return self._unknown("docker ps did not complete")
        if result.returncode != 0:
            return self._unknown(result.stderr.strip() or f"docker exit code {result.returncode}")

        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            try:
                row = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("Skipping unparsable docker ps row: %s", line[:80])
                continue
            if port in published_ports(row.get("Ports", "")):
                return self._in_use(f"container {row.get('Names', '?')}")
        return self._free()


def local_checkers(timeout: float = 5.0) -> list[PortChecker]:
    """Local checkers in priority order, the bind attempt last."""
    return [
        LsofChecker(timeout),
        SsChecker(timeout),
        NetstatChecker(timeout),
        SocketBindChecker(timeout),
    ]


def boundary_checkers(timeout: float = 5.0) -> list[PortChecker]:
    """Checkers that see across the WSL boundary."""
    return [WindowsHostChecker(timeout), ContainerEngineChecker(timeout)]
