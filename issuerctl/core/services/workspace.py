"""
Workspace manager — keep the issuer source tree at the pinned branch.

Presence and freshness are separate concerns: the checkout is cloned
only when absent, but every run fetches the pinned branch and hard-
resets onto it, so a stale tree is brought up to date instead of being
silently reused.
"""

from __future__ import annotations

import logging
from pathlib import Path

from issuerctl.adapters.registry import AdapterRegistry
from issuerctl.core.errors import WorkspaceError
from issuerctl.core.models.home import InstallationHome
from issuerctl.core.models.settings import Settings

logger = logging.getLogger(__name__)


def ensure_workspace(
    home: InstallationHome,
    settings: Settings,
    registry: AdapterRegistry,
) -> Path:
    """Ensure the home exists and the source tree sits at the pinned branch.

    Returns:
        Path of the source tree.

    Raises:
        WorkspaceError: On clone or sync failure. A failed clone is not
            recovered; the partial checkout is left for inspection.
    """
    logger.info("Preparing workspace in %s", home.root)
    home.ensure()

    branch = settings.branch
    checkout = home.checkout_dir

    if not (checkout / ".git").is_dir():
        if checkout.exists() and any(checkout.iterdir()):
            raise WorkspaceError(
                f"{checkout} exists but is not a git checkout",
                detail="Move it aside and re-run the install.",
            )
        logger.info("Cloning %s (%s)…", settings.repo_url, branch)
        receipt = registry.run(
            "workspace:clone",
            "git",
            cwd=str(home.root),
            operation="clone",
            url=settings.repo_url,
            branch=branch,
            destination=str(checkout),
        )
        if receipt.failed:
            raise WorkspaceError(
                f"Cloning {settings.repo_url} failed",
                detail=receipt.error or "",
            )

    for action_id, params in (
        ("workspace:fetch", {"operation": "fetch", "branch": branch}),
        ("workspace:checkout", {"operation": "checkout", "branch": branch}),
        ("workspace:reset", {"operation": "reset", "ref": f"origin/{branch}"}),
    ):
        receipt = registry.run(action_id, "git", cwd=str(checkout), **params)
        if receipt.failed:
            raise WorkspaceError(
                f"Syncing {checkout} to {branch} failed at '{params['operation']}'",
                detail=receipt.error or "",
            )

    source = home.source_tree
    if not source.is_dir():
        raise WorkspaceError(f"Source tree missing after sync: {source}")

    logger.info("Workspace ready at %s (%s)", source, branch)
    return source
