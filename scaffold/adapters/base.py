"""
Adapter contract plus the shared CLI runner for docker and git.

Nothing in the installer shells out for mutating work except through an
adapter, so a test can swap the whole toolchain for a MockAdapter and
read back exactly which commands an install would have issued.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field

from scaffold.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class ExecutionContext(BaseModel):
    """An action bound to the project it runs against."""

    action: Action
    project_root: str = "."
    params: dict[str, Any] = Field(default_factory=dict)

    @property
    def working_dir(self) -> str:
        # A ``cwd`` param wins over the project root
        return str(self.action.params.get("cwd") or self.project_root)


class Adapter(ABC):
    """A named binding to one external tool.

    ``execute`` answers every action with a Receipt; tool failures,
    timeouts and a missing binary are reported there, not raised.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Registry key, matched against ``Action.adapter``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the tool can be found on this machine."""

    @abstractmethod
    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        """Check action params before anything runs: ``(ok, reason)``."""

    @abstractmethod
    def execute(self, context: ExecutionContext) -> Receipt:
        """Carry out the action."""

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r}>"


class CommandAdapter(Adapter):
    """Adapter whose operations are single CLI invocations."""

    def run_command(self, ctx: ExecutionContext, argv: list[str], timeout: int) -> Receipt:
        """Run ``argv`` in the action's working directory, capturing output."""
        command = shlex.join(argv)
        action_id = ctx.action.id
        logger.debug("%s$ %s", ctx.working_dir, command)

        started = time.monotonic()
        try:
            result = subprocess.run(
                argv,
                cwd=ctx.working_dir,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                self.name, action_id,
                error=f"Command timed out after {timeout}s",
                command=command,
            )
        except OSError as e:
            return Receipt.failure(
                self.name, action_id,
                error=f"{self.name.capitalize()} error: {e}",
                command=command,
            )
        elapsed = int((time.monotonic() - started) * 1000)

        stdout, stderr = result.stdout.strip(), result.stderr.strip()
        if result.returncode != 0:
            return Receipt.failure(
                self.name, action_id,
                error=stderr or f"Exit code {result.returncode}",
                command=command,
                return_code=result.returncode,
                duration_ms=elapsed,
                metadata={"stdout": stdout},
            )
        return Receipt.success(
            self.name, action_id,
            output=stdout,
            command=command,
            return_code=0,
            duration_ms=elapsed,
            metadata={"stderr": stderr},
        )
