"""
Adapter registry: the one place docker and git actions are dispatched.

Services build an Action and call ``execute_action``. Whatever goes
wrong (no such adapter, bad params, an adapter bug) the caller gets a
Receipt back, never an exception, and decides for itself whether the
step is fatal.
"""

from __future__ import annotations

import logging
import time

from scaffold.adapters.base import Adapter, ExecutionContext
from scaffold.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Adapters by name."""

    def __init__(self) -> None:
        self._by_name: dict[str, Adapter] = {}

    def register(self, adapter: Adapter) -> None:
        if adapter.name in self._by_name:
            logger.warning("Replacing registered %s adapter", adapter.name)
        self._by_name[adapter.name] = adapter

    def get(self, name: str) -> Adapter | None:
        return self._by_name.get(name)

    def list_adapters(self) -> list[str]:
        return list(self._by_name)

    def execute_action(self, action: Action, project_root: str = ".") -> Receipt:
        started = time.monotonic()
        receipt = self._dispatch(action, project_root)
        receipt.duration_ms = receipt.duration_ms or int((time.monotonic() - started) * 1000)
        if receipt.failed:
            logger.info(
                "%s/%s failed (exit %s): %s",
                action.adapter, action.id, receipt.return_code, receipt.error,
            )
        return receipt

    def _dispatch(self, action: Action, project_root: str) -> Receipt:
        adapter = self._by_name.get(action.adapter)
        if adapter is None:
            return _failed(action, f"No adapter registered for '{action.adapter}'")

        context = ExecutionContext(action=action, project_root=project_root, params=action.params)
        try:
            valid, reason = adapter.validate(context)
            if not valid:
                return _failed(action, f"Invalid {action.adapter} action: {reason}")
            logger.debug("-> %s/%s", action.adapter, action.id)
            return adapter.execute(context)
        except Exception as e:
            # Adapters report failures in receipts; reaching here is an adapter bug
            logger.exception("%s adapter raised on %s", action.adapter, action.id)
            return _failed(action, f"{type(e).__name__}: {e}")


def _failed(action: Action, error: str) -> Receipt:
    return Receipt.failure(adapter=action.adapter, action_id=action.id, error=error)
