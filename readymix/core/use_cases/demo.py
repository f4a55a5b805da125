"""
Demo use case — scripted two-user walkthrough of live synchronization.

An admin and a site agent take turns writing to the same store.  Every
event the store publishes is captured per step, which shows that each
write reaches every observer straight away.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable

from readymix.core.models.area import ProjectArea, StructureType
from readymix.core.models.common import utc_now
from readymix.core.models.order import OrderDraft, OrderStatus
from readymix.core.services.entity_store import EntityStore
from readymix.core.services.event_bus import Topic

logger = logging.getLogger(__name__)

DEMO_AREA = "Foundation Zone D"
DEMO_STRUCTURE = "Raft Foundation"


@dataclass
class ObservedEvent:
    """One notification seen by the demo's observer."""

    topic: str
    action: str
    summary: str

    def to_dict(self) -> dict[str, str]:
        return {"topic": self.topic, "action": self.action, "summary": self.summary}


@dataclass
class DemoStep:
    """One step of the walkthrough and what it caused."""

    title: str
    description: str
    events: list[ObservedEvent] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "events": [e.to_dict() for e in self.events],
        }


@dataclass
class DemoResult:
    """All steps, plus the store's final counts."""

    steps: list[DemoStep] = field(default_factory=list)
    area_count: int = 0
    order_count: int = 0
    activity_count: int = 0

    @property
    def event_count(self) -> int:
        return sum(len(s.events) for s in self.steps)

    def to_dict(self) -> dict[str, Any]:
        return {
            "steps": [s.to_dict() for s in self.steps],
            "area_count": self.area_count,
            "order_count": self.order_count,
            "activity_count": self.activity_count,
            "event_count": self.event_count,
        }


def _summarize(payload: Any) -> str:
    name = getattr(payload, "name", None) or getattr(payload, "project_name", None)
    if name:
        return f"{payload.id} ({name})"
    details = getattr(payload, "details", None)
    return details or getattr(payload, "id", "?")


def _admin_creates_area(store: EntityStore) -> None:
    store.set_current_user("admin-demo", "admin", "Demo Admin")
    store.add_area(DEMO_AREA, 15)


def _agent_sees_area(store: EntityStore) -> None:
    names = [a.name for a in store.get_project_areas()]
    logger.info("Site agent's area list: %s", ", ".join(names))


def _agent_adds_structure(store: EntityStore) -> None:
    store.set_current_user("agent-demo", "site-agent", "Demo Agent")
    area = _find_demo_area(store)
    if area is not None:
        store.add_structure_to_area(area.id, DEMO_STRUCTURE, StructureType.FOUNDATION, "30MPa")


def _admin_sees_structure(store: EntityStore) -> None:
    area = _find_demo_area(store)
    count = len(area.structures) if area else 0
    logger.info("Admin sees %d structure(s) in %s", count, DEMO_AREA)


def _agent_creates_order(store: EntityStore) -> None:
    store.set_current_user("agent-demo", "site-agent", "Demo Agent")
    area = _find_demo_area(store)
    structure = area.find_structure(DEMO_STRUCTURE) if area else None
    if area is None or structure is None:
        return
    store.create_order(OrderDraft(
        project_name="Demo Project",
        location="Demo Site",
        area_id=area.id,
        structure_id=structure.id,
        volume=35,
        grade="30MPa",
        slump=100,
        delivery_date=(utc_now() + timedelta(days=1)).date(),
        delivery_time="08:00",
        status=OrderStatus.PENDING,
        contact_name="Demo Agent",
        contact_phone="+27 82 000 0000",
    ))


def _all_synchronized(store: EntityStore) -> None:
    logger.info("Orders visible to all users: %d", len(store.get_orders()))


def _find_demo_area(store: EntityStore) -> ProjectArea | None:
    return next((a for a in store.get_project_areas() if a.name == DEMO_AREA), None)


DEMO_STEPS: list[tuple[str, str, Callable[[EntityStore], None]]] = [
    ("Admin creates new area",
     f"Admin user adds '{DEMO_AREA}' to the project", _admin_creates_area),
    ("Site Agent sees update instantly",
     "New area appears in the site agent's area list immediately", _agent_sees_area),
    ("Site Agent adds structure",
     f"Site agent adds '{DEMO_STRUCTURE}' to the new area", _agent_adds_structure),
    ("Admin sees structure update",
     "Admin dashboard reflects the new structure immediately", _admin_sees_structure),
    ("Site Agent creates order",
     "Quick order for 35m³ of 30MPa concrete", _agent_creates_order),
    ("All users synchronized",
     "Order appears in the admin dashboard for processing", _all_synchronized),
]


def run_demo(store: EntityStore) -> DemoResult:
    """Play every demo step against ``store`` and record what was published."""
    result = DemoResult()
    current: list[ObservedEvent] = []

    def observe(payload: Any, action: str, topic: str) -> None:
        current.append(ObservedEvent(topic=str(topic), action=str(action), summary=_summarize(payload)))

    handles = [store.subscribe(topic, observe) for topic in Topic]
    try:
        for title, description, action in DEMO_STEPS:
            current = []
            action(store)
            result.steps.append(DemoStep(title=title, description=description, events=current))
    finally:
        for handle in handles:
            handle()

    result.area_count = len(store.get_project_areas())
    result.order_count = len(store.get_orders())
    result.activity_count = len(store.get_activities())
    return result
