"""
scaffold — create a Symfony project on the Docker template, interactively.

    scaffold                      # same as `scaffold new`
    scaffold new --template https://github.com/me/my-template --ref v2
    scaffold ports check 8080
    scaffold env debug ./my_app
    scaffold project move ~/code/my_app --project ./my_app
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from scaffold import __version__
from scaffold.core.observability.logging_config import setup_logging


def _console_level(debug: bool, verbose: bool, quiet: bool) -> str:
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    return os.environ.get("SCAFFOLD_LOG_LEVEL", "WARNING")


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="scaffold")
@click.option("--verbose", "-v", is_flag=True, help="Log progress to stderr.")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors; skip banners.")
@click.option("--debug", is_flag=True, help="Log every docker/git command.")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Installer settings file (default: $SCAFFOLD_CONFIG or ./scaffold.yml).",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, debug: bool, config_path: str | None) -> None:
    """Symfony Docker scaffold: create a new Symfony/Docker project interactively."""
    ctx.ensure_object(dict)
    ctx.obj.update(
        quiet=quiet,
        debug=debug,
        config_path=Path(config_path) if config_path else None,
    )

    setup_logging(
        level=_console_level(debug, verbose, quiet),
        log_file=os.environ.get("SCAFFOLD_LOG_FILE"),
        log_file_level=os.environ.get("SCAFFOLD_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )

    if ctx.invoked_subcommand is None:
        ctx.invoke(new)


@cli.command()
@click.option("--template", "template", default=None, help="Template repository URL or path.")
@click.option("--ref", default=None, help="Template branch or tag.")
@click.option(
    "--remove-on-failure",
    is_flag=True,
    default=None,
    help="Delete the project directory if installation fails.",
)
@click.option("--skip-post-install", is_flag=True, help="Skip composer/yarn/migrations.")
@click.pass_context
def new(
    ctx: click.Context,
    template: str | None,
    ref: str | None,
    remove_on_failure: bool | None,
    skip_post_install: bool,
) -> None:
    """Create a new project from the template (interactive)."""
    from scaffold.core.config.loader import ConfigError, load_settings
    from scaffold.core.errors import InstallFailed, ScaffoldError
    from scaffold.core.use_cases.install import run_install
    from scaffold.ui.cli.operator import ClickOperator

    try:
        settings = load_settings(ctx.obj.get("config_path"))
    except ConfigError as e:
        click.secho(f"❌ ERROR: {e}", fg="red", err=True)
        sys.exit(1)

    overrides: dict = {}
    if template:
        overrides["template_repo"] = template
    if ref:
        overrides["template_ref"] = ref
    if remove_on_failure:
        overrides["remove_on_failure"] = True
    if skip_post_install:
        overrides["run_post_install"] = False
    if overrides:
        settings = settings.model_copy(update=overrides)

    operator = ClickOperator(quiet=ctx.obj.get("quiet", False))
    try:
        run_install(settings, operator)
    except InstallFailed as e:
        operator.error(f"Installation failed: {e}")
        if e.project_dir and Path(e.project_dir).exists():
            click.echo(f"   Project directory: {e.project_dir}", err=True)
        sys.exit(1)
    except ScaffoldError as e:
        operator.error(str(e))
        sys.exit(1)
    except (KeyboardInterrupt, click.Abort):
        click.secho("\nAborted.", fg="yellow", err=True)
        sys.exit(1)


# ── Sub-command groups ──────────────────────────────────────────

from scaffold.ui.cli.env import env  # noqa: E402
from scaffold.ui.cli.ports import ports  # noqa: E402
from scaffold.ui.cli.project import project  # noqa: E402

cli.add_command(ports)
cli.add_command(env)
cli.add_command(project)


if __name__ == "__main__":
    cli()
