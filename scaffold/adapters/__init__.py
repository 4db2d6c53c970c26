"""Tool bindings: every docker and git invocation goes through here."""

from scaffold.adapters.base import Adapter, CommandAdapter, ExecutionContext
from scaffold.adapters.mock import MockAdapter
from scaffold.adapters.registry import AdapterRegistry

__all__ = [
    "Adapter",
    "AdapterRegistry",
    "CommandAdapter",
    "ExecutionContext",
    "MockAdapter",
]
