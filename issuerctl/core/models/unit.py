"""
ServiceUnit — one supervised process definition.

The unit definition is owned by the Service Registrar; its runtime
state (enabled/active) belongs to the process supervisor. This tool
only issues commands and reads reported state, so a crashed unit and
a stopped unit look the same: inactive.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field

DEFAULT_AFTER = ["network.target", "postgresql.service", "redis.service"]


class ServiceUnit(BaseModel):
    """A supervisor unit for one BuildArtifact."""

    name: str                       # unit name without suffix, e.g. issuer-platform
    alias: str                      # short name accepted by the CLI, e.g. platform
    description: str
    executable: Path
    working_directory: Path
    environment_file: Path
    user: str
    restart: str = "always"
    restart_sec: int = 5
    after: list[str] = Field(default_factory=lambda: list(DEFAULT_AFTER))
    wanted_by: str = "multi-user.target"

    @property
    def unit_file_name(self) -> str:
        return f"{self.name}.service"
