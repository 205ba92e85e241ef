"""
Service registrar — one supervisor unit per long-running executable.

Units are written first and the supervisor is reloaded once afterwards,
so systemd never sees a half-registered set.
"""

from __future__ import annotations

import logging

from issuerctl.core.errors import RegistrationError
from issuerctl.core.models.home import InstallationHome
from issuerctl.core.models.settings import Settings
from issuerctl.core.models.unit import ServiceUnit
from issuerctl.core.services.config_render import env_file_problem
from issuerctl.core.services.supervisor import SystemdSupervisor

logger = logging.getLogger(__name__)

UNIT_PREFIX = "issuer"

# (alias, executable, description), in start/stop order.
UNIT_SPECS: list[tuple[str, str, str]] = [
    ("platform", "platform", "Issuer Node Platform API"),
    ("notifications", "notifications", "Issuer Node Notifications"),
    ("publisher", "pending_publisher", "Issuer Node Pending Publisher"),
]

UNIT_ALIASES = [alias for alias, _, _ in UNIT_SPECS]
UNIT_NAMES = [f"{UNIT_PREFIX}-{alias}" for alias in UNIT_ALIASES]


def build_units(home: InstallationHome, settings: Settings) -> list[ServiceUnit]:
    """Unit definitions for every supervised executable."""
    return [
        ServiceUnit(
            name=f"{UNIT_PREFIX}-{alias}",
            alias=alias,
            description=description,
            executable=home.binary(binary),
            working_directory=home.source_tree,
            environment_file=home.env_file,
            user=settings.service_user,
            restart_sec=settings.restart_sec,
        )
        for alias, binary, description in UNIT_SPECS
    ]


def render_unit(unit: ServiceUnit) -> str:
    """systemd unit-file text for ``unit``."""
    return (
        "[Unit]\n"
        f"Description={unit.description}\n"
        f"After={' '.join(unit.after)}\n"
        "\n"
        "[Service]\n"
        "Type=simple\n"
        f"User={unit.user}\n"
        f"WorkingDirectory={unit.working_directory}\n"
        f"EnvironmentFile={unit.environment_file}\n"
        f"ExecStart={unit.executable}\n"
        f"Restart={unit.restart}\n"
        f"RestartSec={unit.restart_sec}\n"
        "\n"
        "[Install]\n"
        f"WantedBy={unit.wanted_by}\n"
    )


def resolve_unit(name: str | None) -> str:
    """Map a CLI unit argument to a full unit name.

    Accepts an alias (``platform``), a full name (``issuer-platform``)
    or a full name with ``.service``. None means the platform unit.

    Raises:
        ValueError: If ``name`` is not one of the issuer units.
    """
    if not name:
        return UNIT_NAMES[0]
    candidate = name.removesuffix(".service")
    if candidate in UNIT_NAMES:
        return candidate
    if candidate in UNIT_ALIASES:
        return f"{UNIT_PREFIX}-{candidate}"
    raise ValueError(
        f"Unknown unit '{name}'. Choose one of: {', '.join(UNIT_ALIASES)}"
    )


def register_units(units: list[ServiceUnit], supervisor: SystemdSupervisor) -> list[str]:
    """Write every unit file, then reload the supervisor once.

    Raises:
        RegistrationError: If a unit cannot be written (no reload is
            attempted) or the reload fails.
    """
    logger.info("Registering %d units in %s…", len(units), supervisor.unit_dir)
    for unit in units:
        receipt = supervisor.write_unit(unit.name, render_unit(unit))
        if receipt.failed:
            raise RegistrationError(
                f"Cannot write unit {unit.unit_file_name}",
                detail=receipt.error or "",
            )
        logger.info("  wrote %s", supervisor.unit_path(unit.name))

    receipt = supervisor.reload()
    if receipt.failed:
        raise RegistrationError("Supervisor reload failed", detail=receipt.error or "")

    return [unit.name for unit in units]


def activate_units(units: list[ServiceUnit], supervisor: SystemdSupervisor) -> list[str]:
    """Enable and start every unit.

    Raises:
        RegistrationError: If a unit's environment file lacks a required
            key (nothing is enabled), or on the first unit that cannot
            be enabled.
    """
    for env_file in dict.fromkeys(unit.environment_file for unit in units):
        problem = env_file_problem(env_file)
        if problem:
            raise RegistrationError("Units cannot start", detail=problem)

    for unit in units:
        receipt = supervisor.enable(unit.name)
        if receipt.failed:
            raise RegistrationError(
                f"Cannot enable {unit.unit_file_name}",
                detail=receipt.error or "",
            )
        logger.info("  enabled %s", unit.name)
    return [unit.name for unit in units]
