"""
Health report — aggregate status of supervised units and backing services.

Shared report shape for ``status`` and ``check-config``. A report is
never an assertion: an unhealthy component is data for the operator,
not an exception.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


@dataclass
class ComponentHealth:
    """Health of a single component (unit, API, database, cache)."""

    name: str
    status: str = "unknown"  # healthy, degraded, unhealthy, unknown
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status,
            "message": self.message,
            "details": self.details,
        }


@dataclass
class SystemHealth:
    """Aggregate health of an installation."""

    status: str = "healthy"
    timestamp: str = ""
    components: list[ComponentHealth] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.timestamp:
            self.timestamp = datetime.now(UTC).isoformat()

    def add(self, component: ComponentHealth) -> None:
        self.components.append(component)
        self._recalculate()

    def get(self, name: str) -> ComponentHealth | None:
        for component in self.components:
            if component.name == name:
                return component
        return None

    def _recalculate(self) -> None:
        """Recalculate overall status from components."""
        statuses = [c.status for c in self.components]
        if statuses and all(s == "unhealthy" for s in statuses):
            self.status = "unhealthy"
        elif any(s in ("unhealthy", "degraded") for s in statuses):
            self.status = "degraded"
        elif all(s == "healthy" for s in statuses):
            self.status = "healthy"
        else:
            self.status = "unknown"

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "components": [c.to_dict() for c in self.components],
        }


def reachability(name: str, reachable: bool, target: str, detail: str = "") -> ComponentHealth:
    """Component for a reachable/unreachable probe."""
    return ComponentHealth(
        name=name,
        status="healthy" if reachable else "unhealthy",
        message=f"{'reachable' if reachable else 'unreachable'} at {target}",
        details={"reachable": reachable, "target": target, "detail": detail},
    )
