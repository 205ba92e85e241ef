"""
Dependency prober — verify the tools the install pipeline needs.

Each required tool is looked up on PATH and, where a minimum version
applies, its version string is extracted and compared numerically.
Missing database and cache servers are installed through the package
source and probed again; a missing toolchain or version-control tool,
or a toolchain below the minimum, stops the install.
"""

from __future__ import annotations

import logging
import re

from issuerctl.adapters.registry import AdapterRegistry
from issuerctl.core.errors import DependencyError
from issuerctl.core.models.dependency import Dependency, ProbeResult
from issuerctl.core.models.settings import Settings
from issuerctl.core.services.package_source import PackageSource

logger = logging.getLogger(__name__)


def required_dependencies(settings: Settings) -> list[Dependency]:
    """The fixed list of required tools, in probe order."""
    return [
        Dependency(
            name="go",
            probe="go",
            version_command=["go", "version"],
            version_pattern=r"go(\d+\.\d+(?:\.\d+)?)",
            minimum_version=settings.go_min_version,
        ),
        Dependency(
            name="postgresql",
            probe="psql",
            installable=True,
            service="postgresql",
        ),
        Dependency(
            name="redis",
            probe="redis-server",
            installable=True,
            service="redis",
        ),
        Dependency(name="git", probe="git"),
    ]


def parse_version(text: str) -> tuple[int, ...]:
    """Numeric components of a dotted version (``"1.22.3"`` → ``(1, 22, 3)``)."""
    parts = re.findall(r"\d+", text)
    if not parts:
        raise ValueError(f"Not a version: {text!r}")
    return tuple(int(p) for p in parts)


def version_at_least(version: str, minimum: str) -> bool:
    """Compare dotted versions component by component, padding with zeros."""
    have = parse_version(version)
    need = parse_version(minimum)
    width = max(len(have), len(need))
    have += (0,) * (width - len(have))
    need += (0,) * (width - len(need))
    return have >= need


class DependencyProber:
    """Probes and, where allowed, installs required tools."""

    def __init__(
        self,
        registry: AdapterRegistry,
        package_source: PackageSource | None = None,
    ):
        self._registry = registry
        self._packages = package_source or PackageSource(registry)

    def probe(self, dep: Dependency) -> ProbeResult:
        """Check presence and version of one tool. Never raises."""
        result = ProbeResult(name=dep.name, minimum_version=dep.minimum_version)

        which = self._registry.run(
            f"probe:which:{dep.name}",
            "shell",
            command=f"command -v {dep.probe}",
        )
        if not which.ok:
            result.message = f"{dep.probe} not found on PATH"
            return result
        result.present = True

        if not dep.version_command:
            result.satisfied = True
            result.message = which.output
            return result

        version = self._registry.run(
            f"probe:version:{dep.name}",
            "shell",
            command=dep.version_command,
        )
        text = (version.output or "") + (version.metadata.get("stderr") or "")
        match = re.search(dep.version_pattern, text)
        if not version.ok or not match:
            result.message = f"Could not determine {dep.name} version"
            return result

        result.version = match.group(1)
        if dep.minimum_version and not version_at_least(result.version, dep.minimum_version):
            result.message = (
                f"{dep.name} version {result.version} found; "
                f"{dep.minimum_version} or newer is required"
            )
            return result

        result.satisfied = True
        result.message = f"{dep.name} {result.version}"
        return result

    def ensure(self, dependencies: list[Dependency]) -> list[ProbeResult]:
        """Probe every dependency, installing what may be installed.

        Raises:
            DependencyError: On the first tool that is missing and not
                installable, below its minimum version, or still missing
                after installation.
        """
        logger.info("Checking system dependencies…")
        results = []
        for dep in dependencies:
            result = self.probe(dep)

            if not result.present and dep.installable:
                self._packages.install(dep)
                if dep.service:
                    self._packages.enable_service(dep.service)
                    self._packages.start_service(dep.service)
                result = self.probe(dep)
                result.installed_now = True
                if not result.present:
                    raise DependencyError(
                        f"{dep.name} is still missing after installation",
                        detail=result.message,
                    )

            if not result.present:
                need = f" {dep.minimum_version} or newer" if dep.minimum_version else ""
                raise DependencyError(
                    f"{dep.name} is not installed. Install {dep.name}{need} and re-run.",
                    detail=result.message,
                )
            if not result.satisfied:
                raise DependencyError(result.message)

            logger.info("✓ %s", result.message)
            results.append(result)

        return results
