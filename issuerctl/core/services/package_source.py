"""
OS package source — install and start system services for dependencies.

Uniform ``install`` / ``enable_service`` / ``start_service`` over the
platform package managers. Linux managers run under the privileged
executor; Homebrew refuses to run as root, so it goes through the
plain shell adapter.
"""

from __future__ import annotations

import logging

from issuerctl.adapters.registry import AdapterRegistry
from issuerctl.core.errors import DependencyError
from issuerctl.core.models.action import Receipt
from issuerctl.core.models.dependency import Dependency

logger = logging.getLogger(__name__)

# Probe order matters: a host with both apt-get and brew is Debian-like.
MANAGERS = ("apt-get", "yum", "brew")

PACKAGES: dict[str, dict[str, list[str]]] = {
    "apt-get": {
        "postgresql": ["postgresql", "postgresql-contrib"],
        "redis": ["redis-server"],
    },
    "yum": {
        "postgresql": ["postgresql-server", "postgresql-contrib"],
        "redis": ["redis"],
    },
    "brew": {
        "postgresql": ["postgresql"],
        "redis": ["redis"],
    },
}

# Extra commands run after a successful install, per manager.
POST_INSTALL: dict[str, dict[str, list[list[str]]]] = {
    "yum": {"postgresql": [["postgresql-setup", "initdb"]]},
}


class PackageSource:
    """Installs dependency packages with the host's package manager."""

    def __init__(self, registry: AdapterRegistry, timeout: int = 900):
        self._registry = registry
        self._timeout = timeout
        self._manager: str | None = None
        self._index_updated = False

    @property
    def manager(self) -> str:
        """The detected package manager (detected once, then cached)."""
        if self._manager is None:
            self._manager = self._detect_manager()
        return self._manager

    def _detect_manager(self) -> str:
        for candidate in MANAGERS:
            receipt = self._registry.run(
                f"packages:which:{candidate}",
                "shell",
                command=f"command -v {candidate}",
            )
            if receipt.ok:
                logger.debug("Package manager: %s", candidate)
                return candidate
        raise DependencyError(
            "No supported package manager found",
            detail=f"Looked for: {', '.join(MANAGERS)}",
        )

    def install(self, dep: Dependency) -> None:
        """Install the packages providing ``dep``."""
        manager = self.manager
        packages = PACKAGES[manager].get(dep.name)
        if not packages:
            raise DependencyError(f"No {manager} packages known for {dep.name}")

        if manager == "apt-get" and not self._index_updated:
            self._require(
                self._registry.run(
                    "packages:update",
                    "privileged",
                    argv=["apt-get", "update"],
                    timeout=self._timeout,
                ),
                "apt-get update failed",
            )
            self._index_updated = True

        logger.warning("%s not found. Installing %s…", dep.name, " ".join(packages))
        if manager == "brew":
            receipt = self._registry.run(
                f"packages:install:{dep.name}",
                "shell",
                command=["brew", "install", *packages],
                timeout=self._timeout,
            )
        else:
            receipt = self._registry.run(
                f"packages:install:{dep.name}",
                "privileged",
                argv=[manager, "install", "-y", *packages],
                timeout=self._timeout,
            )
        self._require(receipt, f"Installing {dep.name} with {manager} failed")

        for i, argv in enumerate(POST_INSTALL.get(manager, {}).get(dep.name, [])):
            self._require(
                self._registry.run(
                    f"packages:post-install:{dep.name}:{i}",
                    "privileged",
                    argv=argv,
                    timeout=self._timeout,
                ),
                f"Post-install step '{' '.join(argv)}' for {dep.name} failed",
            )

    def enable_service(self, service: str) -> Receipt:
        """Enable a system service at boot."""
        if self.manager == "brew":
            return Receipt.skip(
                adapter="shell",
                action_id=f"packages:enable:{service}",
                reason="brew services enables on start",
            )
        receipt = self._registry.run(
            f"packages:enable:{service}",
            "privileged",
            argv=["systemctl", "enable", service],
        )
        self._require(receipt, f"Enabling service {service} failed")
        return receipt

    def start_service(self, service: str) -> Receipt:
        """Start a system service now."""
        if self.manager == "brew":
            receipt = self._registry.run(
                f"packages:start:{service}",
                "shell",
                command=["brew", "services", "start", service],
            )
        else:
            receipt = self._registry.run(
                f"packages:start:{service}",
                "privileged",
                argv=["systemctl", "start", service],
            )
        self._require(receipt, f"Starting service {service} failed")
        return receipt

    @staticmethod
    def _require(receipt: Receipt, message: str) -> None:
        if receipt.failed:
            raise DependencyError(message, detail=receipt.error or "")
