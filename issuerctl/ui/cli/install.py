"""
CLI commands for provisioning: install and update.

Thin wrappers over ``issuerctl.core.use_cases.install``.
"""

from __future__ import annotations

import sys

import click

from issuerctl.ui.cli.common import echo_json, get_registry, get_settings, report_failure

_EVENT_STYLE = {
    "start": ("▶", "cyan"),
    "done": ("✓", "green"),
    "skipped": ("⊘", "bright_black"),
    "failed": ("✗", "red"),
}


def _progress(as_json: bool):
    if as_json:
        return None

    def listener(step: str, event: str) -> None:
        marker, color = _EVENT_STYLE.get(event, ("•", "white"))
        suffix = " (already done)" if event == "skipped" else ""
        click.secho(f"   {marker} {step}{suffix}", fg=color)

    return listener


def _finish(result, as_json: bool, verb: str) -> None:
    if as_json:
        echo_json(result.to_dict())
        sys.exit(0 if result.ok else 1)

    if not result.ok:
        step = result.report.failed_step if result.report else None
        where = f" at step '{step}'" if step else ""
        report_failure(f"{verb} failed{where}", result.error or "")
        sys.exit(1)

    click.echo()
    click.secho(f"✅ {verb} complete", fg="green", bold=True)
    click.echo(f"   Home: {result.home}")


@click.command()
@click.option("--fresh", is_flag=True, help="Ignore checkpoints and run every step.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def install(ctx: click.Context, fresh: bool, as_json: bool) -> None:
    """Provision the issuer node on this host (resumable)."""
    from issuerctl.core.use_cases.install import run_install

    settings = get_settings(ctx)
    if not as_json:
        click.secho(f"🚀 Installing issuer node into {settings.home}", fg="cyan", bold=True)

    result = run_install(
        settings,
        get_registry(ctx),
        fresh=fresh,
        listener=_progress(as_json),
    )
    _finish(result, as_json, "Install")

    if not as_json and not settings.activate_on_install:
        click.echo("   Start the units with: issuerctl start")


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def update(ctx: click.Context, as_json: bool) -> None:
    """Pull the pinned branch, rebuild, migrate and restart."""
    from issuerctl.core.use_cases.install import run_update

    settings = get_settings(ctx)
    if not as_json:
        click.secho(f"🔄 Updating issuer node in {settings.home}", fg="cyan", bold=True)

    result = run_update(settings, get_registry(ctx), listener=_progress(as_json))
    _finish(result, as_json, "Update")
