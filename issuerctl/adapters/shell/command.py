"""
Shell command adapter — run unprivileged commands.

This is the most fundamental adapter: it runs commands and captures
their output. Tool probes, go builds, migrations, reachability checks
and supervisor queries all go through it. Long-running output streams
(log tails) use ``stream_command`` instead, since they never produce a
single receipt.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from collections.abc import Generator
from pathlib import Path

from issuerctl.adapters.base import Adapter, ExecutionContext
from issuerctl.core.models.action import Receipt

logger = logging.getLogger(__name__)

_OUTPUT_TAIL = 4000


class ShellCommandAdapter(Adapter):
    """Execute commands and capture output.

    Action params:
        command (str | list[str]): Shell string or argv list.
        shell (bool): Run through the shell (default: True for strings).
        env (dict[str, str]): Variables layered over the current environment.
        timeout (int): Timeout in seconds (default: 300).
        cwd (str): Override working directory.
    """

    @property
    def name(self) -> str:
        return "shell"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        command = context.params.get("command")
        if not command:
            return False, "Missing required param: 'command'"

        cwd = context.working_dir
        if cwd and not Path(cwd).is_dir():
            return False, f"Working directory does not exist: {cwd}"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        command = context.params["command"]
        use_shell = context.params.get("shell", isinstance(command, str))
        timeout = context.params.get("timeout", 300)
        cwd = context.working_dir
        env = _merged_env(context.params.get("env"))

        display = command if isinstance(command, str) else " ".join(command)
        logger.debug("Executing: %s (cwd=%s)", display, cwd)
        start = time.monotonic()

        try:
            result = subprocess.run(
                command,
                shell=use_shell,
                cwd=cwd,
                env=env,
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
        output = result.stdout.strip()[-_OUTPUT_TAIL:]
        stderr = result.stderr.strip()[-_OUTPUT_TAIL:]

        if result.returncode == 0:
            return Receipt.success(
                adapter=self.name,
                action_id=context.action.id,
                output=output,
                duration_ms=elapsed_ms,
                metadata={
                    "command": display,
                    "return_code": 0,
                    "stderr": stderr,
                },
            )
        return Receipt.failure(
            adapter=self.name,
            action_id=context.action.id,
            error=stderr or output or f"Command exited with code {result.returncode}",
            duration_ms=elapsed_ms,
            metadata={
                "command": display,
                "return_code": result.returncode,
                "stdout": output,
            },
        )


def stream_command(argv: list[str]) -> Generator[str, None, None]:
    """Yield a child process's output line by line until it exits.

    The child is terminated when the consumer stops iterating, which is
    how a KeyboardInterrupt in the caller ends an endless tail.
    """
    logger.debug("Streaming: %s", " ".join(argv))
    proc = subprocess.Popen(
        argv,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
        text=True,
        bufsize=1,
    )
    try:
        assert proc.stdout is not None
        for line in proc.stdout:
            yield line.rstrip("\n")
        proc.wait()
    finally:
        if proc.poll() is None:
            proc.terminate()
            try:
                proc.wait(timeout=5)
            except subprocess.TimeoutExpired:
                proc.kill()


def _merged_env(overrides: dict[str, str] | None) -> dict[str, str] | None:
    if not overrides:
        return None
    env = os.environ.copy()
    env.update({k: str(v) for k, v in overrides.items()})
    return env
