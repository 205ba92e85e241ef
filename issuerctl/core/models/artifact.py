"""
Build models — targets and the executables built from them.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel


class BuildTarget(BaseModel):
    """A named executable and the Go entry point it is built from."""

    name: str

    @property
    def entry_point(self) -> str:
        return f"./cmd/{self.name}/main.go"


class BuildArtifact(BaseModel):
    """One compiled executable.

    Regenerated on every build; the previous binary at ``path`` is
    overwritten, never versioned.
    """

    name: str
    entry_point: str
    path: Path
    version_stamp: str
