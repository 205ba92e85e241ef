"""
Install pipeline — ordered steps with persisted checkpoints.

Steps run strictly in order, each to completion before the next. After
every completed step the checkpoint state is saved, so a run that was
interrupted or failed resumes at the first unfinished step. A run that
follows a completed install (or a forced fresh run) starts over.

Flow:
    load state → begin → for each step: skip | run → save → audit
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from issuerctl.adapters.registry import AdapterRegistry
from issuerctl.core.errors import InstallError
from issuerctl.core.models.home import InstallationHome
from issuerctl.core.models.settings import Settings
from issuerctl.core.models.state import InstallState
from issuerctl.core.persistence.audit import AuditEntry, AuditWriter
from issuerctl.core.persistence.state_file import load_state, save_state

logger = logging.getLogger(__name__)

# (step name, event) where event is start, done, skipped or failed.
StepListener = Callable[[str, str], None]


@dataclass
class StepContext:
    """Everything a step needs; ``outputs`` carries results between steps."""

    home: InstallationHome
    settings: Settings
    registry: AdapterRegistry
    state: InstallState
    outputs: dict[str, Any] = field(default_factory=dict)


@dataclass
class PipelineStep:
    """One named step. ``run`` returns a short detail for the checkpoint.

    An ``always`` step runs on every pass, even when a resumed run
    finds it checkpointed.
    """

    name: str
    description: str
    run: Callable[[StepContext], str]
    always: bool = False


@dataclass
class PipelineReport:
    """Outcome of one pipeline run."""

    operation_id: str = ""
    operation_type: str = ""
    status: str = ""               # complete, failed
    completed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed_step: str | None = None
    error: str | None = None
    duration_ms: int = 0
    outputs: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "complete"

    def to_dict(self) -> dict:
        return {
            "operation_id": self.operation_id,
            "operation_type": self.operation_type,
            "status": self.status,
            "completed": self.completed,
            "skipped": self.skipped,
            "failed_step": self.failed_step,
            "error": self.error,
            "duration_ms": self.duration_ms,
        }


class InstallPipeline:
    """Runs steps in order against one installation home.

    With ``checkpoint=False`` no install state is read or written and
    every step runs; the update flow uses this so it never disturbs the
    install checkpoints.
    """

    def __init__(
        self,
        steps: list[PipelineStep],
        home: InstallationHome,
        settings: Settings,
        registry: AdapterRegistry,
        operation_type: str = "install",
        checkpoint: bool = True,
    ):
        names = [s.name for s in steps]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate step names: {names}")
        self.steps = steps
        self.home = home
        self.settings = settings
        self.registry = registry
        self.operation_type = operation_type
        self.checkpoint = checkpoint

    @property
    def step_names(self) -> list[str]:
        return [s.name for s in self.steps]

    def run(self, fresh: bool = False, listener: StepListener | None = None) -> PipelineReport:
        """Execute the pipeline. InstallErrors end the run as ``failed``."""
        notify = listener or (lambda _name, _event: None)
        operation_id = generate_operation_id()
        start = time.monotonic()

        state = load_state(self.home.state_file) if self.checkpoint else InstallState()
        if fresh:
            state = InstallState()
        state.begin(operation_id)
        self._save(state)

        ctx = StepContext(
            home=self.home,
            settings=self.settings,
            registry=self.registry,
            state=state,
        )
        report = PipelineReport(operation_id=operation_id, operation_type=self.operation_type)

        for step in self.steps:
            if self.checkpoint and not step.always and state.is_done(step.name):
                logger.info("⊘ %s (already done)", step.name)
                report.skipped.append(step.name)
                notify(step.name, "skipped")
                continue

            logger.info("▶ %s: %s", step.name, step.description)
            notify(step.name, "start")
            try:
                detail = step.run(ctx)
            except InstallError as e:
                logger.error("✗ %s: %s", step.name, e)
                state.mark_failed(step.name, str(e))
                self._save(state)
                report.status = "failed"
                report.failed_step = step.name
                report.error = str(e)
                notify(step.name, "failed")
                break
            except Exception as e:
                state.mark_failed(step.name, f"Unexpected error: {e}")
                self._save(state)
                raise

            state.mark_done(step.name, detail or "")
            self._save(state)
            report.completed.append(step.name)
            notify(step.name, "done")
        else:
            state.mark_complete()
            self._save(state)
            report.status = "complete"

        report.duration_ms = int((time.monotonic() - start) * 1000)
        report.outputs = ctx.outputs
        self._audit(report)
        return report

    def _save(self, state: InstallState) -> None:
        if self.checkpoint:
            save_state(state, self.home.state_file)

    def _audit(self, report: PipelineReport) -> None:
        AuditWriter(self.home.audit_file).write(
            AuditEntry(
                operation_id=report.operation_id,
                operation_type=report.operation_type,
                status="ok" if report.ok else "failed",
                steps=report.completed,
                duration_ms=report.duration_ms,
                errors=[report.error] if report.error else [],
                context={
                    "skipped": report.skipped,
                    "failed_step": report.failed_step,
                },
            )
        )


def generate_operation_id() -> str:
    """Generate a unique operation ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"op-{now}-{short}"
