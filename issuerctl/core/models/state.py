"""
InstallState — checkpoint record of the install pipeline.

Serialized to <home>/.state/install.json after every step so that a
re-run after an interruption resumes at the first unfinished step
instead of starting over.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class StepRecord(BaseModel):
    """Outcome of one pipeline step."""

    name: str
    status: str = ""  # done, failed
    at: str = Field(default_factory=_now_iso)
    detail: str = ""


class InstallState(BaseModel):
    """Root checkpoint model."""

    schema_version: int = 1

    operation_id: str = ""
    status: str = ""  # running, complete, failed
    started_at: str = ""
    updated_at: str = Field(default_factory=_now_iso)
    finished_at: str | None = None

    steps: dict[str, StepRecord] = Field(default_factory=dict)
    failed_step: str | None = None
    last_error: str | None = None

    revision: str | None = None

    metadata: dict[str, Any] = Field(default_factory=dict)

    def touch(self) -> None:
        """Update the updated_at timestamp."""
        self.updated_at = _now_iso()

    @property
    def completed_steps(self) -> list[str]:
        return [name for name, rec in self.steps.items() if rec.status == "done"]

    def is_done(self, step: str) -> bool:
        rec = self.steps.get(step)
        return rec is not None and rec.status == "done"

    def begin(self, operation_id: str) -> None:
        """Start a new run, discarding checkpoints of a finished install."""
        if self.status in ("", "complete"):
            self.steps = {}
            self.revision = None
        self.operation_id = operation_id
        self.status = "running"
        self.started_at = _now_iso()
        self.finished_at = None
        self.failed_step = None
        self.last_error = None

    def mark_done(self, step: str, detail: str = "") -> None:
        self.steps[step] = StepRecord(name=step, status="done", detail=detail)

    def mark_failed(self, step: str, error: str) -> None:
        self.steps[step] = StepRecord(name=step, status="failed", detail=error)
        self.status = "failed"
        self.failed_step = step
        self.last_error = error
        self.finished_at = _now_iso()

    def mark_complete(self) -> None:
        self.status = "complete"
        self.finished_at = _now_iso()
