"""
CLI commands for administration: import-key, create-identity, check-config.

Thin wrappers over ``issuerctl.core.use_cases.admin``.
"""

from __future__ import annotations

import json
import sys

import click

from issuerctl.ui.cli.common import echo_json, get_registry, get_settings, report_failure


@click.command("import-key")
@click.argument("key", required=False)
@click.pass_context
def import_key(ctx: click.Context, key: str | None) -> None:
    """Prepare the local keystore for importing KEY."""
    from issuerctl.core.use_cases.admin import import_key as prepare_import

    if not key or not key.strip():
        raise click.UsageError("Missing private key. Usage: issuerctl import-key <key>", ctx=ctx)

    result = prepare_import(get_settings(ctx), key)

    if result.created:
        click.secho(f"🔑 Created keystore {result.keystore}", fg="green")
    else:
        click.echo(f"🔑 Keystore {result.keystore}")
    click.echo("   To import the key, run from the source tree:")
    click.echo(f"   cd {result.working_directory}")
    click.secho(f"   {result.command}", bold=True)


@click.command("create-identity")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def create_identity(ctx: click.Context, as_json: bool) -> None:
    """Create an identity through the running API."""
    from issuerctl.core.use_cases.admin import create_identity as create

    result = create(get_settings(ctx))

    if as_json:
        echo_json(result.to_dict())
        sys.exit(0 if result.ok else 1)

    if not result.ok:
        body = result.response.body if result.response else ""
        report_failure(result.error or "Identity creation failed", body)
        sys.exit(1)

    click.secho("✅ Identity created:", fg="green", bold=True)
    parsed = result.response.json()
    if parsed is not None:
        click.echo(json.dumps(parsed, indent=2))
    else:
        click.echo(result.response.body)


@click.command("check-config")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check_config(ctx: click.Context, as_json: bool) -> None:
    """Verify the environment file and probe database and cache."""
    from issuerctl.core.use_cases.admin import check_config as run_check

    result = run_check(get_settings(ctx), get_registry(ctx))

    if as_json:
        echo_json(result.to_dict())
        sys.exit(1 if result.error else 0)

    if result.error:
        report_failure(result.error)
        sys.exit(1)

    click.secho(f"✅ Configuration file found: {result.env_file}", fg="green")
    for component in result.health.components if result.health else []:
        label = "PostgreSQL" if component.name == "database" else "Redis"
        if component.healthy:
            click.secho(f"   ✓ {label} {component.message}", fg="green")
        else:
            click.secho(f"   ✗ {label} {component.message}", fg="red")
