"""
CLI commands for the running units: status, start, stop, restart, logs.

Thin wrappers over ``issuerctl.core.use_cases.lifecycle``.
"""

from __future__ import annotations

import sys
import time

import click

from issuerctl.ui.cli.common import echo_json, get_registry, get_settings, report_failure


def _print_status(result) -> None:
    click.secho("📊 Issuer node status", fg="cyan", bold=True)
    for name, active in result.units.items():
        if active:
            click.secho(f"   ✓ {name}: active", fg="green")
        else:
            click.secho(f"   ✗ {name}: inactive", fg="red")

    if result.api_reachable:
        click.secho(f"   ✓ API reachable at {result.api_url}", fg="green")
    else:
        click.secho(f"   ✗ API unreachable at {result.api_url}", fg="red")
        if result.api_error:
            click.echo(f"     {result.api_error}")


def _print_lifecycle(result, verb: str) -> None:
    for name in result.units:
        click.secho(f"   ✓ {name} {verb}", fg="green")
    for name, error in result.failed.items():
        click.secho(f"   ✗ {name}: {error}", fg="red")


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def status(ctx: click.Context, as_json: bool) -> None:
    """Show unit activity and API liveness."""
    from issuerctl.core.use_cases.lifecycle import get_status

    result = get_status(get_settings(ctx), get_registry(ctx))

    if as_json:
        echo_json(result.to_dict())
        return

    _print_status(result)


@click.command()
@click.pass_context
def start(ctx: click.Context) -> None:
    """Start all issuer units."""
    from issuerctl.core.use_cases.lifecycle import get_status, start_services

    settings = get_settings(ctx)
    registry = get_registry(ctx)

    click.secho("▶ Starting issuer units…", fg="cyan")
    result = start_services(settings, registry)
    _print_lifecycle(result, "started")

    if settings.start_settle > 0:
        time.sleep(settings.start_settle)
    click.echo()
    _print_status(get_status(settings, registry))

    if not result.ok:
        sys.exit(1)


@click.command()
@click.pass_context
def stop(ctx: click.Context) -> None:
    """Stop all issuer units."""
    from issuerctl.core.use_cases.lifecycle import stop_services

    click.secho("■ Stopping issuer units…", fg="cyan")
    result = stop_services(get_settings(ctx), get_registry(ctx))
    _print_lifecycle(result, "stopped")

    if not result.ok:
        sys.exit(1)


@click.command()
@click.pass_context
def restart(ctx: click.Context) -> None:
    """Stop, pause, then start all issuer units."""
    from issuerctl.core.use_cases.lifecycle import get_status, restart_services

    settings = get_settings(ctx)
    registry = get_registry(ctx)

    click.secho("🔄 Restarting issuer units…", fg="cyan")
    result = restart_services(settings, registry)
    _print_lifecycle(result, "restarted")

    if settings.start_settle > 0:
        time.sleep(settings.start_settle)
    click.echo()
    _print_status(get_status(settings, registry))

    if not result.ok:
        sys.exit(1)


@click.command()
@click.argument("unit", required=False)
@click.pass_context
def logs(ctx: click.Context, unit: str | None) -> None:
    """Follow a unit's log (platform|notifications|publisher). Ctrl-C to stop."""
    from issuerctl.core.use_cases.lifecycle import stream_logs

    try:
        lines = stream_logs(get_settings(ctx), get_registry(ctx), unit)
    except ValueError as e:
        raise click.UsageError(str(e), ctx=ctx) from None

    try:
        for line in lines:
            click.echo(line)
    except KeyboardInterrupt:
        pass
    except OSError as e:
        report_failure("Cannot read unit logs", detail=str(e))
        sys.exit(1)
    finally:
        lines.close()
