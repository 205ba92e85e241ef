"""
Helpers shared by the CLI command modules.
"""

from __future__ import annotations

import json
import sys

import click

from issuerctl.adapters.registry import AdapterRegistry, default_registry
from issuerctl.core.config.loader import ConfigError, load_settings
from issuerctl.core.models.settings import Settings


def get_settings(ctx: click.Context) -> Settings:
    """Settings for this invocation, loaded once. Exits 1 on bad config."""
    obj = ctx.ensure_object(dict)
    if obj.get("settings") is None:
        try:
            obj["settings"] = load_settings(obj.get("config_path"), home=obj.get("home"))
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            sys.exit(1)
    return obj["settings"]


def get_registry(ctx: click.Context) -> AdapterRegistry:
    """The adapter registry; tests inject one through ``obj``."""
    obj = ctx.ensure_object(dict)
    if obj.get("registry") is None:
        obj["registry"] = default_registry()
    return obj["registry"]


def echo_json(data: dict) -> None:
    click.echo(json.dumps(data, indent=2, default=str))


def report_failure(message: str, detail: str = "") -> None:
    click.secho(f"❌ {message}", fg="red", err=True)
    if detail:
        for line in detail.splitlines():
            click.echo(f"   {line}", err=True)
