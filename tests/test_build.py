"""
Tests for the build driver.
"""

import os
from pathlib import Path

import pytest

from issuerctl.core.errors import BuildError
from issuerctl.core.models.home import InstallationHome
from issuerctl.core.services import build as build_module
from issuerctl.core.services.build import (
    BUILD_TARGETS,
    PREVIOUS_DIR,
    STAGING_DIR,
    build_all,
    version_stamp,
)


@pytest.fixture
def home(home_root: Path) -> InstallationHome:
    home = InstallationHome.at(home_root)
    home.source_tree.mkdir(parents=True)
    return home


class TestVersionStamp:
    def test_reads_revision(self, home, registry):
        assert version_stamp(home, registry) == "abc1234"

    def test_empty_revision(self, home, registry, host):
        host.set_output("build:revision", "  ")
        with pytest.raises(BuildError, match="source revision"):
            version_stamp(home, registry)

    def test_git_failure(self, home, registry, host):
        host.set_failure("build:revision", error="not a git repository")
        with pytest.raises(BuildError) as exc:
            version_stamp(home, registry)
        assert "not a git repository" in exc.value.detail


class TestBuildAll:
    def test_builds_every_target(self, home, settings, registry, host):
        artifacts = build_all(home, settings, registry)

        assert [a.name for a in artifacts] == ["platform", "migrate", "notifications", "pending_publisher"]
        for artifact in artifacts:
            assert artifact.path == home.bin_dir / artifact.name
            assert artifact.path.is_file()
            assert os.access(artifact.path, os.X_OK)
            assert artifact.version_stamp == "abc1234"
        assert not (home.root / STAGING_DIR).exists()

    def test_replaces_the_whole_set(self, home, settings, registry):
        home.bin_dir.mkdir(parents=True)
        (home.bin_dir / "platform").write_text("old")
        (home.bin_dir / "retired").write_text("old")

        build_all(home, settings, registry)

        assert sorted(p.name for p in home.bin_dir.iterdir()) == sorted(t.name for t in BUILD_TARGETS)
        assert (home.bin_dir / "platform").read_text() != "old"
        assert not (home.root / PREVIOUS_DIR).exists()

    def test_failed_swap_restores_old_set(self, home, settings, registry, monkeypatch):
        home.bin_dir.mkdir(parents=True)
        (home.bin_dir / "platform").write_text("old")
        real_replace = os.replace

        def replace(src, dst):
            if Path(src).name == STAGING_DIR:
                raise OSError("disk full")
            real_replace(src, dst)

        monkeypatch.setattr(build_module.os, "replace", replace)
        with pytest.raises(BuildError, match="Cannot install built executables"):
            build_all(home, settings, registry)

        assert sorted(p.name for p in home.bin_dir.iterdir()) == ["platform"]
        assert (home.bin_dir / "platform").read_text() == "old"
        assert not (home.root / STAGING_DIR).exists()

    def test_command_shape(self, home, settings, registry, host):
        build_all(home, settings, registry)

        assert host.action_ids[:2] == ["build:revision", "build:mod-download"]
        call = next(c for c in host.call_log if c.action.id == "build:notifications")
        command = call.params["command"]
        assert command[:2] == ["go", "build"]
        assert command[command.index("-ldflags") + 1] == "-X main.build=abc1234"
        assert command[-1] == "./cmd/notifications/main.go"
        assert call.working_dir == str(home.source_tree)

    def test_one_failure_installs_nothing(self, home, settings, registry, host):
        home.bin_dir.mkdir(parents=True)
        old = home.bin_dir / "platform"
        old.write_text("old")

        host.set_failure("build:notifications", error="undefined: foo")
        with pytest.raises(BuildError, match="'notifications' failed") as exc:
            build_all(home, settings, registry)

        assert exc.value.step == "build"
        assert "undefined: foo" in str(exc.value)
        assert old.read_text() == "old"
        assert sorted(p.name for p in home.bin_dir.iterdir()) == ["platform"]
        assert "build:pending_publisher" not in host.action_ids

    def test_mod_download_failure(self, home, settings, registry, host):
        host.set_failure("build:mod-download", error="proxy unreachable")
        with pytest.raises(BuildError, match="go mod download"):
            build_all(home, settings, registry)
        assert not any(a == f"build:{t.name}" for t in BUILD_TARGETS for a in host.action_ids)

    def test_missing_source_tree(self, settings, registry, tmp_path: Path):
        home = InstallationHome.at(tmp_path / "empty")
        with pytest.raises(BuildError, match="Source tree not found"):
            build_all(home, settings, registry)

    def test_missing_output(self, home, settings, registry, host):
        from issuerctl.core.models.action import Receipt

        # compiler reports success but writes nothing
        host.set_response("build:migrate", Receipt.success(adapter="mock", action_id="build:migrate"))
        with pytest.raises(BuildError, match="no output for: migrate"):
            build_all(home, settings, registry)
        assert not home.bin_dir.joinpath("platform").exists()
