"""
Tests for configuration loading and the env-file format.
"""

import textwrap
from pathlib import Path

import pytest

from issuerctl.core.config.env_file import parse_env, read_env_file, write_env_file
from issuerctl.core.config.loader import ConfigError, find_settings_file, load_settings


class TestLoadSettings:
    def test_defaults_without_file(self):
        settings = load_settings()
        assert settings.branch == "main"
        assert settings.database.name == "issuerdb"
        assert settings.go_min_version == "1.22"

    def test_file_overrides(self, tmp_path: Path):
        path = tmp_path / "issuerctl.yml"
        path.write_text(textwrap.dedent("""\
            branch: release
            database:
              password: s3cret
            api:
              port: 4000
        """))
        settings = load_settings(path)
        assert settings.branch == "release"
        assert settings.database.password == "s3cret"
        assert settings.database.user == "issuer"
        assert settings.api.url == "http://localhost:4000"

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "issuerctl.yml"
        path.write_text("")
        assert load_settings(path).branch == "main"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "issuerctl.yml"
        path.write_text("branch: [unclosed")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_settings(path)

    def test_non_mapping(self, tmp_path: Path):
        path = tmp_path / "issuerctl.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_settings(path)

    def test_validation_error(self, tmp_path: Path):
        path = tmp_path / "issuerctl.yml"
        path.write_text("api:\n  port: not-a-port\n")
        with pytest.raises(ConfigError, match="Invalid issuerctl configuration"):
            load_settings(path)

    def test_env_config_path(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "cfg.yml"
        path.write_text("branch: dev\n")
        monkeypatch.setenv("ISSUERCTL_CONFIG", str(path))
        assert find_settings_file() == path
        assert load_settings().branch == "dev"

    def test_home_precedence(self, tmp_path: Path, monkeypatch):
        path = tmp_path / "cfg.yml"
        path.write_text("home: /from/file\n")
        assert load_settings(path).home == "/from/file"

        monkeypatch.setenv("ISSUERCTL_HOME", "/from/env")
        assert load_settings(path).home == "/from/env"
        assert load_settings(path, home="/from/flag").home == "/from/flag"


class TestEnvFile:
    def test_parse_skips_comments_and_blanks(self):
        env = parse_env("# header\n\nA=1\n  # indented comment\nB=x=y\nnot-a-pair\n")
        assert env == {"A": "1", "B": "x=y"}

    def test_values_are_literal(self):
        env = parse_env('URL=postgres://u:p@h:5432/db?sslmode=disable\nQ="quoted"\n')
        assert env["URL"] == "postgres://u:p@h:5432/db?sslmode=disable"
        assert env["Q"] == '"quoted"'

    def test_write_then_read(self, tmp_path: Path):
        path = tmp_path / "sub" / ".env"
        write_env_file(path, "A=1\nB=2\n")
        assert read_env_file(path) == {"A": "1", "B": "2"}
        assert [p.name for p in path.parent.iterdir()] == [".env"]

    def test_read_missing(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            read_env_file(tmp_path / ".env")
