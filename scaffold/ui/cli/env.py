"""
CLI commands for .env inspection.

Thin wrapper over ``scaffold.core.services.env_debug``.
"""

from __future__ import annotations

import json
from pathlib import Path

import click


@click.group()
def env() -> None:
    """Environment file diagnostics."""


@env.command("debug")
@click.argument("path", type=click.Path(file_okay=False, path_type=Path), default=".")
@click.option("--app-env", default="dev", show_default=True, help="Symfony APP_ENV.")
@click.option("--show-values", is_flag=True, help="Print values unredacted.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def debug(path: Path, app_env: str, show_values: bool, as_json: bool) -> None:
    """Show which .env file defines each variable, in Symfony precedence."""
    from scaffold.core.services.env_debug import inspect_env_files, redact_value

    result = inspect_env_files(path.resolve(), app_env=app_env)
    if not show_values:
        for var in result["variables"]:
            var["value"] = redact_value(var["value"])

    if as_json:
        click.echo(json.dumps(result, indent=2))
        return

    click.secho(f"🔍 Environment files in {path.resolve()} (APP_ENV={app_env})", fg="cyan", bold=True)
    click.echo("   Loaded in this order; later files override earlier ones:")
    for f in result["files"]:
        if f["exists"]:
            click.secho(f"   ✓ {f['priority']}. {f['name']}  ({f['var_count']} vars)", fg="green")
        else:
            click.secho(f"   ✗ {f['priority']}. {f['name']}  (missing)", fg="bright_black")
    click.echo(f"   Docker Compose reads only {result['compose_file']} (plus COMPOSE_FILE/-f).")

    if not result["variables"]:
        click.echo()
        click.secho("   No variables defined.", fg="yellow")
        return

    click.echo()
    width = max(len(v["key"]) for v in result["variables"])
    for var in result["variables"]:
        line = f"   {var['key']:<{width}}  {var['value']}  ← {var['source']}"
        if var["overrides"]:
            line += f"  (overrides {', '.join(var['overrides'])})"
        click.echo(line)
