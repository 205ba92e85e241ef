"""
Adapter registry — central dispatch for all adapter operations.

The registry is the single point of adapter management. It handles
registration, lookup, mock mode, and action execution. Services
never talk to adapters directly — always through the registry, which
is what lets tests swap in a recording mock for every external tool,
privileged ones included.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from issuerctl.adapters.base import Adapter, ExecutionContext
from issuerctl.core.models.action import Action, Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Central registry and dispatcher for adapters.

    Features:
        - Register adapters by name
        - Mock mode: route every action to one mock adapter
        - Execute actions through the appropriate adapter
    """

    def __init__(self, mock_mode: bool = False):
        self._adapters: dict[str, Adapter] = {}
        self._mock_mode = mock_mode
        self._mock_adapter: Adapter | None = None

    def set_mock_mode(self, enabled: bool, mock_adapter: Adapter | None = None) -> None:
        """Enable or disable mock mode.

        Args:
            enabled: Whether to use mock mode.
            mock_adapter: Optional custom mock adapter. If None, every
                action succeeds with a canned output.
        """
        self._mock_mode = enabled
        self._mock_adapter = mock_adapter

    def register(self, adapter: Adapter) -> None:
        """Register an adapter."""
        name = adapter.name
        if name in self._adapters:
            logger.warning("Overwriting existing adapter: %s", name)
        self._adapters[name] = adapter
        logger.debug("Registered adapter: %s", name)

    def run(
        self,
        action_id: str,
        adapter: str,
        cwd: str | None = None,
        **params: Any,
    ) -> Receipt:
        """Build an Action from keyword params and execute it."""
        return self.execute_action(
            Action(id=action_id, adapter=adapter, params=params),
            cwd=cwd,
        )

    def execute_action(self, action: Action, cwd: str | None = None) -> Receipt:
        """Execute an action through the appropriate adapter.

        This is the main dispatch method. It:
        1. Resolves the adapter (or mock)
        2. Builds the execution context
        3. Validates the action
        4. Executes
        5. Returns a Receipt (never raises)
        """
        start_time = time.monotonic()

        context = ExecutionContext(action=action, cwd=cwd, params=action.params)

        adapter: Adapter | None = None
        if self._mock_mode and self._mock_adapter:
            adapter = self._mock_adapter
        elif self._mock_mode:
            return Receipt.success(
                adapter=action.adapter,
                action_id=action.id,
                output=f"[mock] {action.adapter}:{action.id} executed",
                metadata={"mock": True},
            )
        else:
            adapter = self._adapters.get(action.adapter)

        if adapter is None:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"No adapter registered for '{action.adapter}'",
            )

        try:
            is_valid, error_msg = adapter.validate(context)
            if not is_valid:
                return Receipt.failure(
                    adapter=action.adapter,
                    action_id=action.id,
                    error=f"Validation failed: {error_msg}",
                )
        except Exception as e:
            return Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Validation error: {e}",
            )

        try:
            receipt = adapter.execute(context)
        except Exception as e:
            logger.error("Adapter %s raised during execution: %s", action.adapter, e)
            receipt = Receipt.failure(
                adapter=action.adapter,
                action_id=action.id,
                error=f"Unexpected error: {e}",
            )

        elapsed_ms = int((time.monotonic() - start_time) * 1000)
        receipt.duration_ms = elapsed_ms

        if receipt.failed:
            logger.debug("✗ %s → %s", action.id, receipt.error)
        else:
            logger.debug("✓ %s", action.id)

        return receipt


def default_registry() -> AdapterRegistry:
    """Registry wired with the real shell, privileged and git adapters."""
    from issuerctl.adapters.shell.command import ShellCommandAdapter
    from issuerctl.adapters.shell.privileged import PrivilegedAdapter
    from issuerctl.adapters.vcs.git import GitAdapter

    registry = AdapterRegistry()
    registry.register(ShellCommandAdapter())
    registry.register(PrivilegedAdapter())
    registry.register(GitAdapter())
    return registry
