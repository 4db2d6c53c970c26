"""
Scripted stand-in for the docker and git adapters.

Every call is recorded. Responses are looked up by action id: a queue
registered with ``queue`` is consumed first (so a readiness probe can
fail a few times before succeeding), then a fixed response from
``set_response``/``set_failure``, then a plain success.
"""

from __future__ import annotations

from collections import deque

from scaffold.adapters.base import Adapter, ExecutionContext
from scaffold.core.models.action import Receipt


class MockAdapter(Adapter):
    """Adapter double that never touches docker or git."""

    def __init__(
        self,
        adapter_name: str = "mock",
        available: bool = True,
        default_output: str = "",
    ):
        self._name = adapter_name
        self._tool_present = available
        self._stdout = default_output
        self._fixed: dict[str, Receipt] = {}
        self._queues: dict[str, deque[Receipt]] = {}
        self._calls: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        return self._calls

    @property
    def call_count(self) -> int:
        return len(self._calls)

    @property
    def action_ids(self) -> list[str]:
        """IDs of executed actions, in call order."""
        return [ctx.action.id for ctx in self._calls]

    def params(self, action_id: str) -> list[dict]:
        """Params of every call with ``action_id``."""
        return [ctx.action.params for ctx in self._calls if ctx.action.id == action_id]

    def is_available(self) -> bool:
        return self._tool_present

    # ── Scripting ───────────────────────────────────────────────

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        self._fixed[action_id] = receipt

    def set_failure(
        self,
        action_id: str,
        error: str = "Mock failure",
        return_code: int = 1,
        command: str = "",
    ) -> None:
        self._fixed[action_id] = self._failure(action_id, error, return_code, command)

    def queue(self, action_id: str, *outcomes: bool) -> None:
        """One-shot outcomes for the next calls of ``action_id`` (True = success)."""
        queue = self._queues.setdefault(action_id, deque())
        for ok in outcomes:
            queue.append(self._success(action_id) if ok else self._failure(action_id))

    def reset(self) -> None:
        self._calls.clear()
        self._fixed.clear()
        self._queues.clear()

    # ── Adapter protocol ────────────────────────────────────────

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._calls.append(context)
        action_id = context.action.id

        queued = self._queues.get(action_id)
        if queued:
            return queued.popleft()
        if action_id in self._fixed:
            return self._fixed[action_id]
        return self._success(action_id)

    def _success(self, action_id: str) -> Receipt:
        return Receipt.success(
            adapter=self._name,
            action_id=action_id,
            output=self._stdout,
            return_code=0,
            metadata={"mock": True},
        )

    def _failure(
        self,
        action_id: str,
        error: str = "Mock failure",
        return_code: int = 1,
        command: str = "",
    ) -> Receipt:
        return Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            command=command or f"mock {action_id}",
            return_code=return_code,
        )
