"""
Install errors — the fatal branch of the error taxonomy.

Any InstallError raised by a pipeline step stops the pipeline at that
step. Completed steps are not rolled back. Tolerated failures (a
database role that already exists) never become exceptions, and
lifecycle failures are reported in result objects instead.
"""

from __future__ import annotations


class InstallError(Exception):
    """A pipeline step could not complete."""

    step = "install"

    def __init__(self, message: str, detail: str = ""):
        super().__init__(message)
        self.detail = detail

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base}\n{self.detail}" if self.detail else base


class DependencyError(InstallError):
    """A required tool is missing, too old, or could not be installed."""

    step = "dependencies"


class WorkspaceError(InstallError):
    """The source tree could not be cloned or synced."""

    step = "workspace"


class ConfigRenderError(InstallError):
    """The environment or resolver file could not be written."""

    step = "config"


class BuildError(InstallError):
    """At least one build target failed; no binaries were installed."""

    step = "build"


class DatabaseError(InstallError):
    """A database admin statement failed for a reason other than 'already exists'."""

    step = "database"


class MigrationError(InstallError):
    """The migration executable could not run or exited non-zero."""

    step = "migrate"


class RegistrationError(InstallError):
    """A supervisor unit could not be written, reloaded or enabled."""

    step = "services"
