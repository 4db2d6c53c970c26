"""
Click-backed operator — prompts on stdin, colored banners on stdout.

Errors go to stderr so a failed run can be told apart from its progress
output.
"""

from __future__ import annotations

from collections.abc import Sequence

import click

from scaffold.core.services.operator import Operator


class ClickOperator(Operator):
    """Interactive terminal operator."""

    def __init__(self, quiet: bool = False):
        self._quiet = quiet

    # ── Questions ───────────────────────────────────────────────

    def ask_text(self, prompt: str, default: str | None = None) -> str:
        if default == "":
            return click.prompt(prompt, default="", show_default=False)
        return click.prompt(prompt, default=default)

    def ask_secret(self, prompt: str) -> str:
        return click.prompt(prompt, default="", show_default=False, hide_input=True)

    def confirm(self, prompt: str, default: bool = True) -> bool:
        return click.confirm(prompt, default=default)

    def choose(self, prompt: str, choices: Sequence[str], default: str | None = None) -> str:
        return click.prompt(
            prompt,
            type=click.Choice(list(choices), case_sensitive=False),
            default=default,
        ).lower()

    # ── Output ──────────────────────────────────────────────────

    def info(self, message: str) -> None:
        if not self._quiet:
            click.echo(message)

    def success(self, message: str) -> None:
        click.secho(f"✔ {message}", fg="green")

    def warning(self, message: str) -> None:
        click.secho(f"⚠️  WARNING: {message}", fg="yellow")

    def error(self, message: str) -> None:
        click.secho(f"❌ ERROR: {message}", fg="red", err=True)

    def banner(self, title: str, scope: str = "project") -> None:
        color = "magenta" if scope == "shared" else "cyan"
        click.echo()
        click.secho(f"── {title} ──", fg=color, bold=True)
