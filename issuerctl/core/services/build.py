"""
Build driver — compile the issuer executables from the source tree.

All targets are built into a staging directory beside ``bin/``. Only
when every target compiled is the staging directory renamed over
``bin/``, so the installed set is always wholly old or wholly new. For
the instant between the two renames ``bin/`` does not exist.
"""

from __future__ import annotations

import logging
import os
import shutil
from pathlib import Path

from issuerctl.adapters.registry import AdapterRegistry
from issuerctl.core.errors import BuildError
from issuerctl.core.models.artifact import BuildArtifact, BuildTarget
from issuerctl.core.models.home import InstallationHome
from issuerctl.core.models.settings import Settings

logger = logging.getLogger(__name__)

BUILD_TARGETS: list[BuildTarget] = [
    BuildTarget(name="platform"),
    BuildTarget(name="migrate"),
    BuildTarget(name="notifications"),
    BuildTarget(name="pending_publisher"),
]

STAGING_DIR = ".bin-staging"
PREVIOUS_DIR = ".bin-previous"


def version_stamp(home: InstallationHome, registry: AdapterRegistry) -> str:
    """Short revision id of the checked-out source.

    Raises:
        BuildError: If the revision cannot be read or is empty.
    """
    receipt = registry.run(
        "build:revision",
        "git",
        cwd=str(home.source_tree),
        operation="revision",
    )
    stamp = receipt.output.strip() if receipt.ok else ""
    if not stamp:
        raise BuildError(
            "Cannot determine the source revision for the version stamp",
            detail=receipt.error or "",
        )
    return stamp


def build_all(
    home: InstallationHome,
    settings: Settings,
    registry: AdapterRegistry,
) -> list[BuildArtifact]:
    """Build every target and install the set into ``home.bin_dir``.

    Raises:
        BuildError: On the first failing target. Staged outputs are
            discarded and the installed set is left untouched.
    """
    source = home.source_tree
    if not source.is_dir():
        raise BuildError(f"Source tree not found: {source}")

    stamp = version_stamp(home, registry)
    logger.info("Building issuer executables (revision %s)…", stamp)

    receipt = registry.run(
        "build:mod-download",
        "shell",
        cwd=str(source),
        command=["go", "mod", "download"],
        timeout=settings.build_timeout,
    )
    if receipt.failed:
        raise BuildError("go mod download failed", detail=receipt.error or "")

    staging = home.root / STAGING_DIR
    shutil.rmtree(staging, ignore_errors=True)
    staging.mkdir(parents=True)

    try:
        for target in BUILD_TARGETS:
            logger.info("  go build %s", target.name)
            receipt = registry.run(
                f"build:{target.name}",
                "shell",
                cwd=str(source),
                command=[
                    "go", "build",
                    "-ldflags", f"-X main.build={stamp}",
                    "-o", str(staging / target.name),
                    target.entry_point,
                ],
                timeout=settings.build_timeout,
            )
            if receipt.failed:
                raise BuildError(
                    f"Build of '{target.name}' failed; no executables were installed",
                    detail=receipt.error or "",
                )

        artifacts = _install_staged(staging, home.bin_dir, stamp)
    except OSError as e:
        raise BuildError(f"Cannot install built executables: {e}") from e
    finally:
        shutil.rmtree(staging, ignore_errors=True)

    logger.info("Built %d executables into %s", len(artifacts), home.bin_dir)
    return artifacts


def _install_staged(staging: Path, bin_dir: Path, stamp: str) -> list[BuildArtifact]:
    staged = [staging / t.name for t in BUILD_TARGETS]
    missing = [p.name for p in staged if not p.is_file()]
    if missing:
        raise BuildError(f"Build produced no output for: {', '.join(missing)}")

    for path in staged:
        path.chmod(0o755)
    _swap_in(staging, bin_dir)

    return [
        BuildArtifact(
            name=target.name,
            entry_point=target.entry_point,
            path=bin_dir / target.name,
            version_stamp=stamp,
        )
        for target in BUILD_TARGETS
    ]


def _swap_in(staging: Path, bin_dir: Path) -> None:
    """Replace ``bin_dir`` with ``staging``; the old set comes back on failure."""
    previous = bin_dir.parent / PREVIOUS_DIR
    shutil.rmtree(previous, ignore_errors=True)
    if bin_dir.exists():
        os.replace(bin_dir, previous)
    try:
        os.replace(staging, bin_dir)
    except OSError:
        if previous.exists():
            os.replace(previous, bin_dir)
        raise
    shutil.rmtree(previous, ignore_errors=True)
