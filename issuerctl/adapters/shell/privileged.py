"""
Privileged executor — the one place elevated rights are requested.

Package installs, database admin statements, unit-file writes and
supervisor control all run through this adapter. Nothing else in the
codebase prefixes ``sudo`` or writes outside the installation home,
so the rest of the orchestrator stays privilege-agnostic and tests can
replace this adapter with a recorder.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time

from issuerctl.adapters.base import Adapter, ExecutionContext
from issuerctl.core.models.action import Receipt

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 4000


class PrivilegedAdapter(Adapter):
    """Run commands as root (or another system user) and write root-owned files.

    Action params:
        operation (str): 'run' (default) or 'write'.
        argv (list[str]): Command to run (for 'run').
        run_as (str): Execute as this user instead of root.
        path (str): Destination file (for 'write').
        content (str): File content (for 'write').
        timeout (int): Timeout in seconds (default: 300).
    """

    @property
    def name(self) -> str:
        return "privileged"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "run")
        if operation == "run":
            if not context.params.get("argv"):
                return False, "Missing required param: 'argv'"
        elif operation == "write":
            if not context.params.get("path"):
                return False, "Missing required param: 'path'"
            if "content" not in context.params:
                return False, "Missing required param: 'content'"
        else:
            return False, f"Unknown operation '{operation}'. Valid: run, write"
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params.get("operation", "run")
        run_as = context.params.get("run_as")
        timeout = context.params.get("timeout", 300)

        if operation == "write":
            # tee keeps the write under sudo without a root-owned temp file
            argv = ["tee", context.params["path"]]
            stdin = context.params["content"]
        else:
            argv = list(context.params["argv"])
            stdin = None

        command = elevate(argv, run_as)
        display = " ".join(command)
        logger.info("Privileged: %s", display if operation == "run" else f"write {argv[1]}")
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                cwd=context.working_dir,
                input=stdin,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command timed out after {timeout}s",
                metadata={"command": display, "timeout": timeout},
            )
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Command execution error: {e}",
                metadata={"command": display, "return_code": 127},
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        stdout = "" if operation == "write" else result.stdout.strip()[-_OUTPUT_TAIL:]
        stderr = result.stderr.strip()[-_OUTPUT_TAIL:]

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=stdout,
                duration_ms=elapsed_ms,
                metadata={"command": display, "return_code": 0, "stderr": stderr},
            )
        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or stdout or f"Command exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={"command": display, "return_code": result.returncode},
        )


def elevate(argv: list[str], run_as: str | None = None) -> list[str]:
    """Prefix ``argv`` so it runs as root, or as ``run_as``."""
    if run_as:
        return ["sudo", "-u", run_as, *argv]
    if os.geteuid() == 0:
        return list(argv)
    return ["sudo", *argv]
