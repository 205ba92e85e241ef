"""
Lifecycle use cases — status, start, stop, restart and logs.

These run any time after install and depend only on the registered
units and the rendered environment file. Nothing here raises on a
unit that will not start or stop: outcomes come back in the result
for the CLI to report.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass, field

from issuerctl.adapters.registry import AdapterRegistry
from issuerctl.core.engine.pipeline import generate_operation_id
from issuerctl.core.models.settings import Settings
from issuerctl.core.observability.health import ComponentHealth, SystemHealth, reachability
from issuerctl.core.persistence.audit import AuditEntry, AuditWriter
from issuerctl.core.services.config_render import env_file_problem
from issuerctl.core.services.issuer_api import IssuerApiClient
from issuerctl.core.services.supervisor import SystemdSupervisor
from issuerctl.core.services.units import UNIT_NAMES, resolve_unit

logger = logging.getLogger(__name__)


def _supervisor(settings: Settings, registry: AdapterRegistry) -> SystemdSupervisor:
    return SystemdSupervisor(registry, unit_dir=settings.unit_dir)


def api_client(settings: Settings) -> IssuerApiClient:
    """Client for the platform API, preferring the rendered env file."""
    home = settings.installation_home()
    if home.env_file.is_file():
        return IssuerApiClient.from_env_file(home.env_file, timeout=settings.api.timeout)
    api = settings.api
    return IssuerApiClient(api.url, api.auth_user, api.auth_password, timeout=api.timeout)


# ── Status ──────────────────────────────────────────────────────


@dataclass
class StatusResult:
    """Per-unit activity plus API liveness."""

    units: dict[str, bool] = field(default_factory=dict)
    api_url: str = ""
    api_reachable: bool = False
    api_error: str = ""
    health: SystemHealth = field(default_factory=SystemHealth)

    @property
    def active_units(self) -> list[str]:
        return [name for name, active in self.units.items() if active]

    def to_dict(self) -> dict:
        return {
            "units": self.units,
            "api": {
                "url": self.api_url,
                "reachable": self.api_reachable,
                "error": self.api_error,
            },
            "health": self.health.to_dict(),
        }


def get_status(settings: Settings, registry: AdapterRegistry) -> StatusResult:
    """Query each unit and the API health endpoint. Never raises."""
    supervisor = _supervisor(settings, registry)
    result = StatusResult()

    for name in UNIT_NAMES:
        active = supervisor.is_active(name)
        result.units[name] = active
        result.health.add(
            ComponentHealth(
                name=name,
                status="healthy" if active else "unhealthy",
                message="active" if active else "inactive",
            )
        )

    client = api_client(settings)
    response = client.health()
    result.api_url = response.url
    result.api_reachable = response.ok
    result.api_error = response.error
    result.health.add(reachability("api", response.ok, response.url, response.error))

    return result


# ── Start / stop / restart ──────────────────────────────────────


@dataclass
class LifecycleResult:
    """Outcome of a start, stop or restart across all units."""

    operation: str = ""
    units: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def errors(self) -> list[str]:
        return [f"{name}: {error}" for name, error in self.failed.items()]

    def to_dict(self) -> dict:
        return {
            "operation": self.operation,
            "ok": self.ok,
            "units": self.units,
            "failed": self.failed,
        }


def _apply(
    operation: str,
    settings: Settings,
    registry: AdapterRegistry,
) -> LifecycleResult:
    """Issue ``operation`` for every unit in fixed order, attempting all."""
    supervisor = _supervisor(settings, registry)
    command = getattr(supervisor, operation)
    result = LifecycleResult(operation=operation)
    start = time.monotonic()

    for name in UNIT_NAMES:
        receipt = command(name)
        if receipt.ok:
            result.units.append(name)
            logger.info("%s %s", operation, name)
        else:
            result.failed[name] = receipt.error or "failed"
            logger.warning("%s %s failed: %s", operation, name, receipt.error)

    _audit(settings, result, int((time.monotonic() - start) * 1000))
    return result


def _refuse(operation: str, settings: Settings, problem: str) -> LifecycleResult:
    """Fail every unit without touching any, because of ``problem``."""
    logger.error("Not running %s: %s", operation, problem)
    result = LifecycleResult(
        operation=operation,
        failed={name: problem for name in UNIT_NAMES},
    )
    _audit(settings, result, 0)
    return result


def start_services(settings: Settings, registry: AdapterRegistry) -> LifecycleResult:
    """Start platform, notifications and publisher, in that order.

    Nothing is started unless the environment file carries every key
    the executables read.
    """
    problem = env_file_problem(settings.installation_home().env_file)
    if problem:
        return _refuse("start", settings, problem)
    return _apply("start", settings, registry)


def stop_services(settings: Settings, registry: AdapterRegistry) -> LifecycleResult:
    """Stop platform, notifications and publisher, in that order."""
    return _apply("stop", settings, registry)


def restart_services(
    settings: Settings,
    registry: AdapterRegistry,
    pause: float | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> LifecycleResult:
    """Stop everything, wait, start everything.

    Refused up front, leaving running units alone, when the environment
    file is incomplete.
    """
    problem = env_file_problem(settings.installation_home().env_file)
    if problem:
        return _refuse("restart", settings, problem)
    stopped = stop_services(settings, registry)
    sleep(settings.restart_pause if pause is None else pause)
    started = start_services(settings, registry)

    result = LifecycleResult(operation="restart", units=started.units)
    for name, error in stopped.failed.items():
        result.failed[name] = f"stop: {error}"
    for name, error in started.failed.items():
        result.failed[name] = f"start: {error}"
    return result


def _audit(settings: Settings, result: LifecycleResult, duration_ms: int) -> None:
    home = settings.installation_home()
    if not home.root.is_dir():
        return
    AuditWriter(home.audit_file).write(
        AuditEntry(
            operation_id=generate_operation_id(),
            operation_type=result.operation,
            status="ok" if result.ok else ("partial" if result.units else "failed"),
            units=result.units,
            duration_ms=duration_ms,
            errors=result.errors,
        )
    )


# ── Logs ────────────────────────────────────────────────────────


def stream_logs(
    settings: Settings,
    registry: AdapterRegistry,
    unit: str | None = None,
) -> Generator[str, None, None]:
    """Follow one unit's log until the caller stops iterating.

    Raises:
        ValueError: If ``unit`` is not an issuer unit. Raised before
            anything is streamed.
    """
    name = resolve_unit(unit)
    logger.info("Following logs of %s", name)
    return _supervisor(settings, registry).stream_logs(name)
