"""
Test doubles shared across the suite.

No test touches real docker, git, port-listing tools or the network:
adapters are mocks, the template "clone" is a local directory copy,
and port status comes from FakeProber.
"""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from pathlib import Path

from scaffold.adapters.base import Adapter, ExecutionContext
from scaffold.core.models.action import Receipt
from scaffold.core.models.ports import PortStatus
from scaffold.core.services.operator import Operator

TEMPLATE_FILES = {
    "compose.yaml": "services:\n  php: {}\n",
    "compose.override.yaml": "services:\n  php: {}\n",
    "compose.mysql.yaml": "services:\n  database: {image: mysql}\n",
    "compose.postgres.yaml": "services:\n  database: {image: postgres}\n",
    "compose.postgis.yaml": "services:\n  database: {image: postgis/postgis}\n",
    "compose.mailpit.yaml": "services:\n  mailer: {image: axllent/mailpit}\n",
    "compose.mercure.yaml": "services:\n  mercure: {image: dunglas/mercure}\n",
    "compose.minio.yaml": "services:\n  minio: {image: minio/minio}\n",
    "Dockerfile": "FROM dunglas/frankenphp\n",
    "Makefile": "up:\n\tdocker compose up -d\n",
    "package.json": "{}\n",
    ".env": "###> symfony/framework-bundle ###\nAPP_ENV=dev\nAPP_SECRET=\n###< symfony/framework-bundle ###\n",
    "install.sh": "#!/bin/sh\n",
    "setup/setup.sh": "#!/bin/sh\n",
    "scripts/move-to.sh": "#!/bin/sh\n",
    ".git/HEAD": "ref: refs/heads/main\n",
}


class UnexpectedPrompt(AssertionError):
    pass


class ScriptedOperator(Operator):
    """Operator that answers prompts from a queue and records all output.

    ``None`` in the queue means "press enter" (take the default).
    """

    def __init__(self, answers: Sequence = ()):
        self.answers = list(answers)
        self.prompts: list[str] = []
        self.messages: list[tuple[str, str]] = []

    def _next(self, prompt: str):
        self.prompts.append(prompt)
        if not self.answers:
            raise UnexpectedPrompt(f"No scripted answer for prompt: {prompt!r}")
        return self.answers.pop(0)

    def ask_text(self, prompt: str, default: str | None = None) -> str:
        answer = self._next(prompt)
        if answer is None:
            return default or ""
        return str(answer)

    def ask_secret(self, prompt: str) -> str:
        answer = self._next(prompt)
        return "" if answer is None else str(answer)

    def confirm(self, prompt: str, default: bool = True) -> bool:
        answer = self._next(prompt)
        return default if answer is None else bool(answer)

    def choose(self, prompt: str, choices: Sequence[str], default: str | None = None) -> str:
        answer = self._next(prompt)
        if answer is None:
            answer = default
        assert answer in choices, f"{answer!r} not in {list(choices)}"
        return answer

    def info(self, message: str) -> None:
        self.messages.append(("info", message))

    def success(self, message: str) -> None:
        self.messages.append(("success", message))

    def warning(self, message: str) -> None:
        self.messages.append(("warning", message))

    def error(self, message: str) -> None:
        self.messages.append(("error", message))

    def banner(self, title: str, scope: str = "project") -> None:
        self.messages.append((f"banner:{scope}", title))

    def texts(self, level: str) -> list[str]:
        return [text for lvl, text in self.messages if lvl == level]


class FakeProber:
    """Port prober driven by a table of busy/unknown ports."""

    def __init__(
        self,
        busy: dict[int, str] | None = None,
        unknown: set[int] | None = None,
        wsl: bool = False,
    ):
        self.busy = dict(busy or {})
        self.unknown = set(unknown or ())
        self.wsl = wsl
        self.probed: list[int] = []

    def is_port_free(self, port: int) -> tuple[PortStatus, str]:
        self.probed.append(port)
        if port in self.busy:
            return PortStatus.IN_USE, self.busy[port]
        if port in self.unknown:
            return PortStatus.UNKNOWN, ""
        return PortStatus.FREE, ""


class TemplateGitAdapter(Adapter):
    """'git' adapter whose clone copies a local template directory."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.clones: list[dict] = []

    @property
    def name(self) -> str:
        return "git"

    def is_available(self) -> bool:
        return True

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        params = context.action.params
        self.clones.append(dict(params))
        if self.fail:
            return Receipt.failure(
                adapter="git",
                action_id=context.action.id,
                error="fatal: repository not found",
                command=f"git clone {params['source']}", return_code=128,
            )
        shutil.copytree(params["source"], params["dest"])
        return Receipt.success(
            adapter="git",
            action_id=context.action.id,
            command=f"git clone {params['source']}", return_code=0,
        )


def make_template(root: Path, files: dict[str, str] | None = None) -> Path:
    """Write a template tree under ``root`` and return it."""
    for relative, content in (files if files is not None else TEMPLATE_FILES).items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root
