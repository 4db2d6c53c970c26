"""
Docker adapter: compose lifecycle and shared-instance containers.

Compose operations act on one project (``-p``) over an ordered list of
compose files. Engine operations list running containers, read a
container's environment and start the detached shared instances.

Compose v2 (``docker compose``) is the default; a v1 install is driven
by passing ``compose_command=["docker-compose"]``.
"""

from __future__ import annotations

import shutil

from scaffold.adapters.base import CommandAdapter, ExecutionContext
from scaffold.core.models.action import Receipt

_COMPOSE_OPS = frozenset({"build", "up", "down", "exec", "logs", "ps"})
_ENGINE_OPS = frozenset({"version", "compose-version", "containers", "inspect-env", "run"})

# operation -> params it cannot run without
_REQUIRED: dict[str, tuple[str, ...]] = {
    "exec": ("service", "argv"),
    "run": ("name", "image"),
    "inspect-env": ("container",),
}


class DockerAdapter(CommandAdapter):
    """Action params, by operation:

    - compose ops: ``files`` (merge order), ``project_name``; ``pull`` and
      ``no_cache`` for build; ``volumes`` (default True) for down;
      ``service`` and ``argv`` for exec; ``service`` for logs.
    - ``run``: ``name``, ``image``, ``ports`` {host: container}, ``env``,
      ``restart`` (default "always"), ``args``.
    - ``inspect-env``: ``container``.
    - any: ``timeout`` seconds (default 300).
    """

    def __init__(self, compose_command: list[str] | None = None):
        self._compose_command = list(compose_command or ["docker", "compose"])

    @property
    def name(self) -> str:
        return "docker"

    @property
    def compose_command(self) -> list[str]:
        return list(self._compose_command)

    def is_available(self) -> bool:
        return shutil.which("docker") is not None

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        params = context.action.params
        operation = params.get("operation")
        if operation not in _COMPOSE_OPS and operation not in _ENGINE_OPS:
            return False, f"Unsupported docker operation: {operation!r}"
        if operation in _COMPOSE_OPS and not params.get("files"):
            return False, f"{operation} needs at least one compose file"
        missing = [key for key in _REQUIRED.get(operation, ()) if not params.get(key)]
        if missing:
            return False, f"{operation} needs {', '.join(missing)}"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        try:
            argv = self.argv_for(params)
        except (KeyError, TypeError, ValueError) as e:
            return Receipt.failure(
                self.name, context.action.id,
                error=f"Docker error: invalid params ({e})",
            )
        return self.run_command(context, argv, params.get("timeout", 300))

    # ── Command builders ────────────────────────────────────────

    def argv_for(self, params: dict) -> list[str]:
        operation = params["operation"]
        if operation in _COMPOSE_OPS:
            return self.compose_argv(params)
        if operation == "run":
            return self.run_argv(params)
        if operation == "compose-version":
            return [*self._compose_command, "version"]
        if operation == "containers":
            return ["docker", "ps", "--format", "{{json .}}"]
        if operation == "inspect-env":
            return ["docker", "inspect", "--format", "{{json .Config.Env}}", params["container"]]
        return ["docker", "--version"]

    def compose_argv(self, params: dict) -> list[str]:
        argv = [*self._compose_command]
        if params.get("project_name"):
            argv += ["-p", params["project_name"]]
        for file_name in params["files"]:
            argv += ["-f", file_name]
        return argv + _compose_subcommand(params)

    @staticmethod
    def run_argv(params: dict) -> list[str]:
        """``docker run --detach`` for a long-lived shared instance."""
        argv = ["docker", "run", "--detach", "--name", params["name"]]
        restart = params.get("restart", "always")
        if restart:
            argv += ["--restart", restart]
        for host_port, container_port in params.get("ports", {}).items():
            argv += ["-p", f"{int(host_port)}:{int(container_port)}"]
        for key, value in params.get("env", {}).items():
            argv += ["-e", f"{key}={value}"]
        return argv + [params["image"], *params.get("args", [])]


def _compose_subcommand(params: dict) -> list[str]:
    operation = params["operation"]
    if operation == "build":
        flags = ["--pull"] if params.get("pull", True) else []
        if params.get("no_cache"):
            flags.append("--no-cache")
        return ["build", *flags]
    if operation == "up":
        return ["up", "--detach"]
    if operation == "down":
        return ["down", "--remove-orphans", *(["--volumes"] if params.get("volumes", True) else [])]
    if operation == "exec":
        return ["exec", "-T", params["service"], *params["argv"]]
    if operation == "logs":
        return ["logs", "--tail=50", "--no-color", *([params["service"]] if params.get("service") else [])]
    return ["ps", "--format", "json"]
