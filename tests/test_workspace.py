"""
Tests for the workspace manager.
"""

from pathlib import Path

import pytest

from issuerctl.core.errors import WorkspaceError
from issuerctl.core.models.home import InstallationHome
from issuerctl.core.services.workspace import ensure_workspace


@pytest.fixture
def home(home_root: Path) -> InstallationHome:
    return InstallationHome.at(home_root)


class TestEnsureWorkspace:
    def test_clones_when_absent(self, home, settings, registry, host):
        source = ensure_workspace(home, settings, registry)

        assert source == home.source_tree
        assert source.is_dir()
        assert host.action_ids == [
            "workspace:clone",
            "workspace:fetch",
            "workspace:checkout",
            "workspace:reset",
        ]
        clone = host.call_log[0]
        assert clone.params["url"] == settings.repo_url
        assert clone.params["branch"] == "main"
        assert clone.params["destination"] == str(home.checkout_dir)

    def test_existing_checkout_is_synced_not_recloned(self, home, settings, registry, host):
        ensure_workspace(home, settings, registry)
        host.reset()

        ensure_workspace(home, settings, registry)
        assert "workspace:clone" not in host.action_ids
        assert host.action_ids == ["workspace:fetch", "workspace:checkout", "workspace:reset"]
        reset = host.call_log[-1]
        assert reset.params["ref"] == "origin/main"
        assert reset.working_dir == str(home.checkout_dir)

    def test_pinned_branch(self, home, settings, registry, host):
        settings.branch = "release-1"
        ensure_workspace(home, settings, registry)
        assert host.call_log[-1].params["ref"] == "origin/release-1"

    def test_non_git_directory_is_refused(self, home, settings, registry, host):
        home.checkout_dir.mkdir(parents=True)
        (home.checkout_dir / "stray.txt").write_text("x")

        with pytest.raises(WorkspaceError, match="not a git checkout"):
            ensure_workspace(home, settings, registry)
        assert host.call_count == 0

    def test_clone_failure(self, home, settings, registry, host):
        host.set_failure("workspace:clone", error="fatal: repository not found")
        with pytest.raises(WorkspaceError, match="Cloning") as exc:
            ensure_workspace(home, settings, registry)
        assert "repository not found" in exc.value.detail
        assert "workspace:fetch" not in host.action_ids

    def test_sync_failure(self, home, settings, registry, host):
        host.set_failure("workspace:checkout", error="pathspec did not match")
        with pytest.raises(WorkspaceError, match="at 'checkout'"):
            ensure_workspace(home, settings, registry)
        assert "workspace:reset" not in host.action_ids

    def test_missing_source_subdirectory(self, home, settings, registry):
        home.checkout_dir.mkdir(parents=True)
        (home.checkout_dir / ".git").mkdir()
        with pytest.raises(WorkspaceError, match="Source tree missing"):
            ensure_workspace(home, settings, registry)
