"""
Environment file format — flat ``KEY=value`` lines.

The supervised binaries read this file through the supervisor's
EnvironmentFile directive, so values are written literally: no quoting,
no escaping, no ``export`` prefix. Comment and blank lines are allowed
and ignored on read.
"""

from __future__ import annotations

from pathlib import Path

from issuerctl.core.persistence.state_file import atomic_write


def parse_env(content: str) -> dict[str, str]:
    """Parse env-file text into an ordered key/value dict."""
    result: dict[str, str] = {}
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            continue
        key, _, value = stripped.partition("=")
        result[key.strip()] = value
    return result


def read_env_file(path: Path) -> dict[str, str]:
    """Read an env file. Raises FileNotFoundError if absent."""
    return parse_env(path.read_text(encoding="utf-8"))


def write_env_file(path: Path, content: str) -> None:
    """Replace the env file wholesale."""
    atomic_write(path, content, prefix=".env_")
