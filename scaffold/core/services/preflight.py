"""
Preflight — required external tools.

Missing tools are fatal immediately, with a remediation hint and no
retry. Compose v2 (``docker compose``) is preferred; v1
(``docker-compose``) is accepted as a fallback.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field

from scaffold.core.errors import PreflightError
from scaffold.core.services.process import run_command

logger = logging.getLogger(__name__)

_DOCKER_HINT = "Install Docker Engine or Docker Desktop: https://docs.docker.com/get-docker/"
_COMPOSE_HINT = (
    "Install Docker Desktop (includes Docker Compose v2) "
    "or the docker-compose v1 binary."
)
_GIT_HINT = "Install git: https://git-scm.com/downloads"


@dataclass
class PreflightReport:
    """What preflight found."""

    compose_command: list[str] = field(default_factory=lambda: ["docker", "compose"])
    docker_version: str = ""
    compose_version: str = ""
    git_version: str = ""

    @property
    def compose_v1(self) -> bool:
        return self.compose_command == ["docker-compose"]


def detect_compose_command(timeout: float = 10.0) -> list[str] | None:
    """``docker compose`` if the v2 plugin works, else ``docker-compose``, else None."""
    if shutil.which("docker"):
        result = run_command(["docker", "compose", "version"], timeout=timeout)
        if result is not None and result.returncode == 0:
            return ["docker", "compose"]
    if shutil.which("docker-compose"):
        return ["docker-compose"]
    return None


def run_preflight(timeout: float = 10.0) -> PreflightReport:
    """Check docker, compose and git.

    Raises:
        PreflightError: for the first missing tool.
    """
    report = PreflightReport()

    if not shutil.which("docker"):
        raise PreflightError("'docker' command not found.", _DOCKER_HINT)
    report.docker_version = _version(["docker", "--version"], timeout)

    compose = detect_compose_command(timeout)
    if compose is None:
        raise PreflightError("Docker Compose command not found.", _COMPOSE_HINT)
    report.compose_command = compose
    report.compose_version = _version([*compose, "version"], timeout)

    if not shutil.which("git"):
        raise PreflightError("'git' command not found.", _GIT_HINT)
    report.git_version = _version(["git", "--version"], timeout)

    logger.info(
        "Preflight ok: %s | %s | %s",
        report.docker_version or "docker",
        " ".join(report.compose_command),
        report.git_version or "git",
    )
    return report


def _version(args: list[str], timeout: float) -> str:
    result = run_command(args, timeout=timeout)
    if result is None or result.returncode != 0:
        return ""
    return result.stdout.strip().splitlines()[0] if result.stdout.strip() else ""
