"""
Install and update use cases — the provisioning pipeline end to end.

Both hold the home lock for their whole run. Install resumes from its
checkpoints; update always re-syncs the source, rebuilds, migrates and
restarts the units.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from issuerctl.adapters.registry import AdapterRegistry
from issuerctl.core.engine.pipeline import (
    InstallPipeline,
    PipelineReport,
    PipelineStep,
    StepContext,
    StepListener,
)
from issuerctl.core.errors import RegistrationError
from issuerctl.core.models.settings import Settings
from issuerctl.core.persistence.lock import HomeLock, LockError
from issuerctl.core.services import build, config_render, database, units
from issuerctl.core.services.dependency_probe import DependencyProber, required_dependencies
from issuerctl.core.services.package_source import PackageSource
from issuerctl.core.services.supervisor import SystemdSupervisor
from issuerctl.core.services.workspace import ensure_workspace
from issuerctl.core.use_cases.lifecycle import restart_services

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Result of an install or update run."""

    report: PipelineReport | None = None
    home: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.report is not None and self.report.ok

    def to_dict(self) -> dict:
        result: dict = {"home": self.home, "ok": self.ok}
        if self.error:
            result["error"] = self.error
        if self.report:
            result["report"] = self.report.to_dict()
        return result


# ── Steps ───────────────────────────────────────────────────────


def _dependencies(ctx: StepContext) -> str:
    prober = DependencyProber(
        ctx.registry,
        PackageSource(ctx.registry, timeout=ctx.settings.package_timeout),
    )
    results = prober.ensure(required_dependencies(ctx.settings))
    ctx.outputs["dependencies"] = [r.model_dump() for r in results]
    return ", ".join(r.message for r in results)


def _workspace(ctx: StepContext) -> str:
    source = ensure_workspace(ctx.home, ctx.settings, ctx.registry)
    return str(source)


def _database(ctx: StepContext) -> str:
    outcomes = database.provision(ctx.settings, ctx.registry)
    ctx.outputs["database"] = [o.to_dict() for o in outcomes]
    return ", ".join(f"{o.name}={o.outcome}" for o in outcomes)


def _config(ctx: StepContext) -> str:
    config_render.materialize(ctx.home, ctx.settings)
    return str(ctx.home.env_file)


def _build(ctx: StepContext) -> str:
    artifacts = build.build_all(ctx.home, ctx.settings, ctx.registry)
    ctx.outputs["artifacts"] = [a.model_dump(mode="json") for a in artifacts]
    stamp = artifacts[0].version_stamp if artifacts else ""
    ctx.state.revision = stamp
    return stamp


def _migrate(ctx: StepContext) -> str:
    database.migrate(ctx.home, ctx.settings, ctx.registry)
    return "applied"


def _supervisor(ctx: StepContext) -> SystemdSupervisor:
    return SystemdSupervisor(ctx.registry, unit_dir=ctx.settings.unit_dir)


def _services(ctx: StepContext) -> str:
    names = units.register_units(units.build_units(ctx.home, ctx.settings), _supervisor(ctx))
    ctx.outputs["units"] = names
    return ", ".join(names)


def _activate(ctx: StepContext) -> str:
    names = units.activate_units(units.build_units(ctx.home, ctx.settings), _supervisor(ctx))
    return ", ".join(names)


def _restart(ctx: StepContext) -> str:
    result = restart_services(ctx.settings, ctx.registry, pause=ctx.settings.restart_pause)
    if not result.ok:
        raise RegistrationError("Units did not restart cleanly", detail="; ".join(result.errors))
    return ", ".join(result.units)


def install_steps(settings: Settings) -> list[PipelineStep]:
    """The install steps, in execution order."""
    steps = [
        PipelineStep("dependencies", "Check and install system dependencies", _dependencies),
        PipelineStep("workspace", "Fetch the issuer source at the pinned branch", _workspace),
        PipelineStep("database", "Create the issuer role and database", _database),
        PipelineStep("config", "Write environment and resolver settings", _config, always=True),
        PipelineStep("build", "Build the issuer executables", _build),
        PipelineStep("migrate", "Run database migrations", _migrate),
        PipelineStep("services", "Register supervisor units", _services),
    ]
    if settings.activate_on_install:
        steps.append(PipelineStep("activate", "Enable and start the units", _activate))
    return steps


def update_steps() -> list[PipelineStep]:
    """The update steps, in execution order."""
    return [
        PipelineStep("workspace", "Fetch the issuer source at the pinned branch", _workspace),
        PipelineStep("build", "Build the issuer executables", _build),
        PipelineStep("migrate", "Run database migrations", _migrate),
        PipelineStep("restart", "Restart the units", _restart),
    ]


# ── Use cases ───────────────────────────────────────────────────


def run_install(
    settings: Settings,
    registry: AdapterRegistry,
    fresh: bool = False,
    listener: StepListener | None = None,
) -> InstallResult:
    """Run (or resume) the install pipeline under the home lock."""
    home = settings.installation_home()
    result = InstallResult(home=str(home.root))

    pipeline = InstallPipeline(install_steps(settings), home, settings, registry)
    try:
        with HomeLock(home.lock_file):
            result.report = pipeline.run(fresh=fresh, listener=listener)
    except LockError as e:
        result.error = str(e)
        return result

    if not result.report.ok:
        result.error = result.report.error
    return result


def run_update(
    settings: Settings,
    registry: AdapterRegistry,
    listener: StepListener | None = None,
) -> InstallResult:
    """Bring an existing install up to the head of the pinned branch."""
    home = settings.installation_home()
    result = InstallResult(home=str(home.root))

    if not home.env_file.is_file():
        result.error = f"No installation found at {home.root} (missing {home.env_file.name}). Run install first."
        return result

    pipeline = InstallPipeline(
        update_steps(), home, settings, registry,
        operation_type="update",
        checkpoint=False,
    )
    try:
        with HomeLock(home.lock_file):
            result.report = pipeline.run(listener=listener)
    except LockError as e:
        result.error = str(e)
        return result

    if not result.report.ok:
        result.error = result.report.error
    return result
