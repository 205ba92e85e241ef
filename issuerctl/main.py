"""
issuerctl — CLI entrypoint.

Usage:
    issuerctl --help
    issuerctl install
    issuerctl status
    issuerctl logs platform
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from issuerctl import __version__
from issuerctl.core.observability.logging_config import resolve_level, setup_logging


@click.group(invoke_without_command=True)
@click.version_option(version=__version__, prog_name="issuerctl")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to issuerctl.yml (default: $ISSUERCTL_CONFIG, else built-in defaults).",
)
@click.option(
    "--home",
    type=click.Path(exists=False),
    default=None,
    help="Installation home (default: $ISSUERCTL_HOME or ~/.issuer-node).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
    home: str | None,
) -> None:
    """Install and manage a self-hosted issuer node."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None
    ctx.obj["home"] = home

    # ── Logging setup (once, at process start) ──────────────────
    setup_logging(
        level=resolve_level(debug, verbose, quiet, os.environ.get("ISSUERCTL_LOG_LEVEL")),
        log_file=os.environ.get("ISSUERCTL_LOG_FILE"),
        log_file_level=os.environ.get("ISSUERCTL_LOG_FILE_LEVEL"),
        quiet_third_party=not debug,
    )

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command("help")
@click.pass_context
def help_command(ctx: click.Context) -> None:
    """Show this message."""
    click.echo(ctx.find_root().get_help())


# ── Register commands from issuerctl/ui/cli/ ──────────────────────

from issuerctl.ui.cli.admin import check_config, create_identity, import_key
from issuerctl.ui.cli.install import install, update
from issuerctl.ui.cli.lifecycle import logs, restart, start, status, stop

cli.add_command(install)
cli.add_command(update)
cli.add_command(status)
cli.add_command(start)
cli.add_command(stop)
cli.add_command(restart)
cli.add_command(logs)
cli.add_command(import_key)
cli.add_command(create_identity)
cli.add_command(check_config)


if __name__ == "__main__":
    cli()
