"""
CLI commands for port checks.

Thin wrapper over ``scaffold.core.services.ports.prober``.
"""

from __future__ import annotations

import json
import sys

import click


@click.group()
def ports() -> None:
    """Host port diagnostics."""


@ports.command("check")
@click.argument("port", type=click.IntRange(1, 65535))
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.option("--timeout", type=float, default=5.0, show_default=True, help="Per-check timeout (s).")
def check(port: int, as_json: bool, timeout: float) -> None:
    """Check whether PORT is free (host, WSL boundary and Docker)."""
    from scaffold.core.models.ports import PortStatus
    from scaffold.core.services.ports.prober import PortProber

    prober = PortProber(timeout=timeout)
    result = prober.probe(port)

    if as_json:
        click.echo(json.dumps({**result.to_dict(), "wsl": prober.wsl}, indent=2))
    else:
        icon = {
            PortStatus.FREE: ("✅", "green"),
            PortStatus.IN_USE: ("❌", "red"),
            PortStatus.UNKNOWN: ("❓", "yellow"),
        }[result.status]
        click.secho(f"{icon[0]} Port {port}: {result.status.value}", fg=icon[1], bold=True)
        if result.bound_by:
            click.echo(f"   Bound by: {result.bound_by}")
        if prober.wsl:
            click.echo("   WSL detected: Windows host and Docker were checked too.")
        for c in result.checks:
            detail = f" — {c.detail}" if c.detail else ""
            owner = f" ({c.bound_by})" if c.bound_by else ""
            click.echo(f"   • {c.checker}: {c.status.value}{owner}{detail}")

    if result.in_use:
        sys.exit(1)
