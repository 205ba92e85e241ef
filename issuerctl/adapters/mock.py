"""
Mock adapter — recording test double for every adapter operation.

Routed to by the registry in mock mode, so it stands in for the shell,
the privileged executor and git at once. Returns success by default;
responses can be scripted per action id.
"""

from __future__ import annotations

from issuerctl.adapters.base import Adapter, ExecutionContext
from issuerctl.core.models.action import Receipt


class MockAdapter(Adapter):
    """Universal mock adapter for testing.

    By default, returns success for everything. Can be configured
    with custom responses per action ID.
    """

    def __init__(
        self,
        adapter_name: str = "mock",
        default_output: str = "[mock] executed",
    ):
        self._name = adapter_name
        self._default_output = default_output
        self._responses: dict[str, Receipt] = {}
        self._call_log: list[ExecutionContext] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def call_log(self) -> list[ExecutionContext]:
        """All execution contexts this mock has received."""
        return self._call_log

    @property
    def call_count(self) -> int:
        """Number of times execute has been called."""
        return len(self._call_log)

    @property
    def action_ids(self) -> list[str]:
        """Ids of executed actions, in call order."""
        return [ctx.action.id for ctx in self._call_log]

    def calls_to(self, adapter: str) -> list[ExecutionContext]:
        """Calls whose action targeted the named adapter."""
        return [ctx for ctx in self._call_log if ctx.action.adapter == adapter]

    def set_response(self, action_id: str, receipt: Receipt) -> None:
        """Set a custom response for a specific action ID."""
        self._responses[action_id] = receipt

    def set_output(self, action_id: str, output: str) -> None:
        """Configure a specific action to succeed with the given output."""
        self._responses[action_id] = Receipt.success(
            adapter=self._name,
            action_id=action_id,
            output=output,
            metadata={"return_code": 0},
        )

    def set_failure(
        self,
        action_id: str,
        error: str = "Mock failure",
        return_code: int = 1,
    ) -> None:
        """Configure a specific action to fail."""
        self._responses[action_id] = Receipt.failure(
            adapter=self._name,
            action_id=action_id,
            error=error,
            metadata={"return_code": return_code},
        )

    def validate(self, context: ExecutionContext) -> tuple[bool, str]:
        return True, ""

    def execute(self, context: ExecutionContext) -> Receipt:
        self._call_log.append(context)

        if context.action.id in self._responses:
            return self._responses[context.action.id].model_copy()

        return Receipt.success(
            adapter=self._name,
            action_id=context.action.id,
            output=self._default_output,
            metadata={"mock": True, "return_code": 0},
        )

    def reset(self) -> None:
        """Clear call log and custom responses."""
        self._call_log.clear()
        self._responses.clear()
