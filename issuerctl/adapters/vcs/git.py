"""
Git adapter — version control operations on the issuer source checkout.

Provides clone/fetch/checkout/reset/revision through the adapter
protocol. Uses the git CLI — never raw API calls.
"""

from __future__ import annotations

import logging
import subprocess

from issuerctl.adapters.base import Adapter, ExecutionContext
from issuerctl.core.models.action import Receipt

logger = logging.getLogger(__name__)

_VALID_OPS = {"clone", "fetch", "checkout", "reset", "revision"}


class GitAdapter(Adapter):
    """Git version control operations.

    Action params:
        operation (str): One of 'clone', 'fetch', 'checkout', 'reset', 'revision'.
        url (str): Remote URL (for 'clone').
        destination (str): Clone target directory (for 'clone').
        branch (str): Branch to clone/fetch/checkout.
        ref (str): Reference to hard-reset to (for 'reset').
        timeout (int): Timeout in seconds (default: 600 for clone/fetch, 30 otherwise).
    """

    @property
    def name(self) -> str:
        return "git"

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        operation = context.params.get("operation", "")
        if operation not in _VALID_OPS:
            return False, f"Unknown operation '{operation}'. Valid: {', '.join(sorted(_VALID_OPS))}"

        if operation == "clone":
            for key in ("url", "destination"):
                if not context.params.get(key):
                    return False, f"Missing required param: '{key}' for clone operation"
        elif operation in ("fetch", "checkout"):
            if not context.params.get("branch"):
                return False, f"Missing required param: 'branch' for {operation} operation"
        elif operation == "reset":
            if not context.params.get("ref"):
                return False, "Missing required param: 'ref' for reset operation"

        if operation != "clone" and not context.working_dir:
            return False, f"Operation '{operation}' needs a working directory"

        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        operation = context.params["operation"]
        try:
            if operation == "clone":
                return self._clone(context)
            elif operation == "fetch":
                return self._fetch(context)
            elif operation == "checkout":
                return self._checkout(context)
            elif operation == "reset":
                return self._reset(context)
            else:
                return self._revision(context)
        except Exception as e:
            return Receipt.failure(
                adapter=self.name,
                action_id=context.action.id,
                error=f"Git error: {e}",
                metadata={"operation": operation},
            )

    # ── Operations ──────────────────────────────────────────────

    def _clone(self, ctx: ExecutionContext) -> Receipt:
        url = ctx.params["url"]
        destination = ctx.params["destination"]
        args = ["clone"]
        if ctx.params.get("branch"):
            args += ["--branch", ctx.params["branch"]]
        args += [url, destination]
        output = self._git(args, ctx.working_dir, timeout=ctx.params.get("timeout", 600))
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=output,
            metadata={"url": url, "destination": destination},
        )

    def _fetch(self, ctx: ExecutionContext) -> Receipt:
        branch = ctx.params["branch"]
        output = self._git(
            ["fetch", "origin", branch],
            ctx.working_dir,
            timeout=ctx.params.get("timeout", 600),
        )
        return Receipt.success(adapter=self.name, action_id=ctx.action.id, output=output)

    def _checkout(self, ctx: ExecutionContext) -> Receipt:
        branch = ctx.params["branch"]
        output = self._git(["checkout", branch], ctx.working_dir)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=output,
            metadata={"branch": branch},
        )

    def _reset(self, ctx: ExecutionContext) -> Receipt:
        ref = ctx.params["ref"]
        output = self._git(["reset", "--hard", ref], ctx.working_dir)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=output,
            metadata={"ref": ref},
        )

    def _revision(self, ctx: ExecutionContext) -> Receipt:
        """Short hash of HEAD."""
        output = self._git(["rev-parse", "--short", "HEAD"], ctx.working_dir)
        return Receipt.success(
            adapter=self.name,
            action_id=ctx.action.id,
            output=output.strip(),
        )

    # ── Helpers ─────────────────────────────────────────────────

    def _git(self, args: list[str], cwd: str | None, timeout: int = 30) -> str:
        """Run a git command and return stdout."""
        logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
        if result.returncode != 0:
            raise RuntimeError(result.stderr.strip() or f"git {args[0]} failed")
        return result.stdout
