"""
Dependency models — required system tools and their probe results.

Dependencies are checked, never persisted.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class Dependency(BaseModel):
    """A system tool the install pipeline needs."""

    name: str                               # logical name (go, postgresql, …)
    probe: str                              # executable looked up on PATH
    version_command: list[str] = Field(default_factory=list)
    version_pattern: str = ""               # regex, group(1) = version
    minimum_version: str | None = None
    installable: bool = False               # may the package source install it?
    service: str | None = None              # system service to enable after install


class ProbeResult(BaseModel):
    """Transient outcome of probing one dependency."""

    name: str
    present: bool = False
    version: str | None = None
    minimum_version: str | None = None
    satisfied: bool = False
    installed_now: bool = False
    message: str = ""

    @property
    def too_old(self) -> bool:
        return self.present and not self.satisfied
