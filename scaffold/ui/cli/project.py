"""
CLI commands for generated projects: relocation, reconfiguration and
shortcuts.
"""

from __future__ import annotations

import sys
from pathlib import Path

import click


@click.group()
def project() -> None:
    """Manage a generated project."""


@project.command("move")
@click.argument("destination", type=click.Path(path_type=Path))
@click.option(
    "--project",
    "project_dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    help="Project to copy (default: current directory).",
)
@click.option("--remove-old", is_flag=True, help="Remove the old location without asking.")
@click.option("--keep-old", is_flag=True, help="Keep the old location without asking.")
def move(destination: Path, project_dir: Path, remove_old: bool, keep_old: bool) -> None:
    """Copy the project to DESTINATION, then optionally remove the original."""
    from scaffold.core.services.relocate import RelocateError, copy_project
    from scaffold.core.services.relocate import remove_old as remove_tree

    source = project_dir.resolve()
    destination = destination.absolute()
    click.echo(f"From: {source}")
    click.echo(f"To:   {destination}")

    try:
        copy_project(source, destination)
    except RelocateError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    click.secho("✅ Project copied.", fg="green")
    click.echo(f"   Next: cd {destination} && make up")

    if keep_old:
        click.echo(f"   Old location preserved at: {source}")
        return
    if remove_old or click.confirm("Remove old location?", default=False):
        remove_tree(source)
        click.secho("✅ Old location removed.", fg="green")
    else:
        click.echo(f"   Old location preserved at: {source}")


@project.command("shortcuts")
def shortcuts() -> None:
    """Print the day-to-day command reference."""
    from scaffold.data import load_shortcuts

    sections = load_shortcuts()
    if not sections:
        click.secho("No shortcuts available.", fg="yellow")
        return

    width = max(len(c["command"]) for s in sections for c in s["commands"])
    for section in sections:
        click.secho(f"\n{section['title']}:", fg="cyan", bold=True)
        for cmd in section["commands"]:
            click.echo(f"  {cmd['command']:<{width}}  {cmd['description']}")
    click.echo()


@project.command("reconfigure")
@click.option(
    "--project",
    "project_dir",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="Project to reconfigure (default: current directory).",
)
@click.option("--keep-ports", is_flag=True, help="Do not ask for host ports again.")
@click.option("--restart", is_flag=True, help="Restart the containers afterwards.")
@click.pass_context
def reconfigure(ctx: click.Context, project_dir: Path, keep_ports: bool, restart: bool) -> None:
    """Regenerate .env files from the answers given at install time."""
    from scaffold.core.config.loader import load_settings
    from scaffold.core.errors import ScaffoldError
    from scaffold.core.use_cases.reconfigure import run_reconfigure
    from scaffold.ui.cli.operator import ClickOperator

    obj = ctx.obj or {}
    operator = ClickOperator(quiet=obj.get("quiet", False))
    try:
        settings = load_settings(obj.get("config_path"))
        run_reconfigure(
            project_dir,
            settings,
            operator,
            change_ports=not keep_ports,
            restart=restart,
        )
    except ScaffoldError as e:
        operator.error(str(e))
        sys.exit(1)
    except (KeyboardInterrupt, click.Abort):
        click.secho("\nAborted.", fg="yellow", err=True)
        sys.exit(1)
