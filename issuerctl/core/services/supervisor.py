"""
Process supervisor — systemd behind a small command interface.

Unit writes, reloads and state changes go through the privileged
executor. State queries and log tails need no privilege and run as
the invoking user. Runtime state belongs to systemd: this class only
issues commands and reports what systemd answers.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from pathlib import Path

from issuerctl.adapters.registry import AdapterRegistry
from issuerctl.adapters.shell.command import stream_command
from issuerctl.core.models.action import Receipt

logger = logging.getLogger(__name__)


class SystemdSupervisor:
    """Commands against systemd for issuer units."""

    def __init__(self, registry: AdapterRegistry, unit_dir: str = "/etc/systemd/system"):
        self._registry = registry
        self._unit_dir = Path(unit_dir)

    @property
    def unit_dir(self) -> Path:
        return self._unit_dir

    def unit_path(self, unit_name: str) -> Path:
        return self._unit_dir / f"{unit_name}.service"

    def write_unit(self, unit_name: str, content: str) -> Receipt:
        return self._registry.run(
            f"supervisor:write:{unit_name}",
            "privileged",
            operation="write",
            path=str(self.unit_path(unit_name)),
            content=content,
        )

    def reload(self) -> Receipt:
        return self._systemctl("reload", "daemon-reload")

    def enable(self, unit_name: str) -> Receipt:
        """Enable at boot and start now."""
        return self._systemctl(f"enable:{unit_name}", "enable", "--now", f"{unit_name}.service")

    def start(self, unit_name: str) -> Receipt:
        return self._systemctl(f"start:{unit_name}", "start", f"{unit_name}.service")

    def stop(self, unit_name: str) -> Receipt:
        return self._systemctl(f"stop:{unit_name}", "stop", f"{unit_name}.service")

    def is_active(self, unit_name: str) -> bool:
        """True only when systemd reports the unit active.

        A failed query reads as inactive.
        """
        receipt = self._registry.run(
            f"supervisor:is-active:{unit_name}",
            "shell",
            command=["systemctl", "is-active", "--quiet", f"{unit_name}.service"],
            timeout=10,
        )
        return receipt.ok

    def stream_logs(self, unit_name: str) -> Generator[str, None, None]:
        """Follow the unit's journal until the consumer stops."""
        return stream_command(["journalctl", "-u", f"{unit_name}.service", "-f"])

    def _systemctl(self, key: str, *args: str) -> Receipt:
        receipt = self._registry.run(
            f"supervisor:{key}",
            "privileged",
            argv=["systemctl", *args],
        )
        if receipt.failed:
            logger.debug("systemctl %s failed: %s", " ".join(args), receipt.error)
        return receipt
