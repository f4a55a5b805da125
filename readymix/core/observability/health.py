"""
Health checker — aggregate sync core health from its components.

Reports on the event bus, the audit log and the background simulator.
Used by the CLI ``health`` command and the ``/api/health`` endpoint.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from readymix.core.models.common import utc_now
from readymix.core.persistence.audit import AuditLog
from readymix.core.services.event_bus import EventBus, Topic
from readymix.core.services.simulator import BackgroundSimulator

logger = logging.getLogger(__name__)


class HealthStatus(StrEnum):
    """Component states, mildest first."""

    HEALTHY = "healthy"
    UNKNOWN = "unknown"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


_SEVERITY = {status: rank for rank, status in enumerate(HealthStatus)}


@dataclass
class ComponentHealth:
    """Health of one part of the sync core."""

    name: str
    status: HealthStatus = HealthStatus.UNKNOWN
    message: str = ""
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "status": str(self.status),
            "message": self.message,
            "details": self.details,
        }


@dataclass
class SystemHealth:
    """Worst status across all components; healthy when there are none."""

    status: HealthStatus = HealthStatus.HEALTHY
    timestamp: str = field(default_factory=lambda: utc_now().isoformat())
    components: list[ComponentHealth] = field(default_factory=list)

    def add(self, component: ComponentHealth) -> None:
        self.components.append(component)
        self.status = max(
            (HealthStatus(c.status) for c in self.components),
            key=_SEVERITY.__getitem__,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": str(self.status),
            "timestamp": self.timestamp,
            "components": [c.to_dict() for c in self.components],
        }


def check_event_bus(bus: EventBus) -> ComponentHealth:
    """Degraded once any observer has raised."""
    details = {
        "published": bus.published_count,
        "observer_failures": bus.failure_count,
        "subscribers": {t.value: bus.subscriber_count(t) for t in Topic},
    }
    if bus.failure_count:
        return ComponentHealth(
            name="event_bus",
            status=HealthStatus.DEGRADED,
            message=f"{bus.failure_count} observer call(s) failed",
            details=details,
        )
    return ComponentHealth(
        name="event_bus",
        status=HealthStatus.HEALTHY,
        message=f"{bus.subscriber_count()} subscriber(s), {bus.published_count} event(s)",
        details=details,
    )


def check_audit_log(audit: AuditLog) -> ComponentHealth:
    """Report fill level.  A full log is normal for a ring."""
    size = len(audit)
    return ComponentHealth(
        name="audit_log",
        status=HealthStatus.HEALTHY,
        message=f"{size}/{audit.capacity} entries retained",
        details={"entries": size, "capacity": audit.capacity},
    )


def check_simulator(simulator: BackgroundSimulator | None) -> ComponentHealth:
    """Report whether the simulator is running and what it has done."""
    if simulator is None:
        return ComponentHealth(
            name="simulator",
            status=HealthStatus.HEALTHY,
            message="Disabled",
        )
    details = {
        "running": simulator.running,
        "ticks": simulator.ticks,
        "applied": {a.value: n for a, n in simulator.applied.items()},
    }
    state = "running" if simulator.running else "idle"
    return ComponentHealth(
        name="simulator",
        status=HealthStatus.HEALTHY,
        message=f"{state}, {simulator.ticks} tick(s)",
        details=details,
    )


def check_system_health(
    bus: EventBus | None = None,
    audit: AuditLog | None = None,
    simulator: BackgroundSimulator | None = None,
    include_simulator: bool = True,
) -> SystemHealth:
    """Run all health checks and return aggregate status."""
    health = SystemHealth()

    if bus is not None:
        health.add(check_event_bus(bus))

    if audit is not None:
        health.add(check_audit_log(audit))

    if include_simulator:
        health.add(check_simulator(simulator))

    return health
