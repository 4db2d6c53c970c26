"""
Operator interface — the human on the other side of the prompts.

Services never call input() or print() directly. They talk to an
Operator, so the same pipeline runs behind click prompts in the CLI
and behind a scripted operator in tests.

Message levels map to the banners the operator sees:

    info     plain progress
    success  a completed step
    warning  a non-fatal policy choice (e.g. unverified port)
    error    fatal; the run is about to fail
    banner   a phase heading; ``scope`` distinguishes shared (global)
             actions from project-scoped ones
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence


class Operator(ABC):
    """Abstract prompt/echo surface used by every interactive service."""

    # ── Questions ───────────────────────────────────────────────

    @abstractmethod
    def ask_text(self, prompt: str, default: str | None = None) -> str:
        """Ask for a line of text. Returns ``default`` on empty input (if given)."""

    @abstractmethod
    def ask_secret(self, prompt: str) -> str:
        """Ask for hidden input (passwords). May return an empty string."""

    @abstractmethod
    def confirm(self, prompt: str, default: bool = True) -> bool:
        """Ask a yes/no question."""

    @abstractmethod
    def choose(self, prompt: str, choices: Sequence[str], default: str | None = None) -> str:
        """Ask the operator to pick one of ``choices``."""

    # ── Output ──────────────────────────────────────────────────

    @abstractmethod
    def info(self, message: str) -> None: ...

    @abstractmethod
    def success(self, message: str) -> None: ...

    @abstractmethod
    def warning(self, message: str) -> None: ...

    @abstractmethod
    def error(self, message: str) -> None: ...

    @abstractmethod
    def banner(self, title: str, scope: str = "project") -> None: ...
