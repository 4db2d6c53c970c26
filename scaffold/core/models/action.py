"""
Action and Receipt — what the pipeline asks a tool to do, and what happened.

The orchestrator, materializer and shared-resource scope describe each
docker/git invocation as an Action. Adapters answer with a Receipt and
never raise; the caller decides whether a failed receipt is fatal and,
if so, turns its command line and exit code into a StepFailed.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ReceiptStatus = Literal["ok", "skipped", "failed"]


class Action(BaseModel):
    """One requested tool invocation, e.g. ``compose-up`` or ``clone-template``."""

    id: str
    adapter: str                    # "docker" or "git"
    name: str = ""
    params: dict[str, Any] = Field(default_factory=dict)


class Receipt(BaseModel):
    """Outcome of one Action."""

    adapter: str
    action_id: str
    status: ReceiptStatus = "ok"

    output: str = ""
    error: str | None = None

    # The exact command line and its exit code, when a process ran
    command: str = ""
    return_code: int | None = None
    duration_ms: int = 0

    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, adapter: str, action_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="ok", output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, action_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, action_id: str, reason: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, action_id=action_id, status="skipped", output=reason, **kwargs)
