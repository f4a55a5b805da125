"""
Entity store — sole writer of project areas, structures and orders.

Every write goes through three steps, in order:

    1. mutate   — apply the change to the in-memory collection
    2. audit    — append one attributed entry to the audit log
                  (which is also published on ``activities``)
    3. publish  — broadcast the changed entity on its topic

The whole triple runs under one re-entrant lock, so no two writes'
notification phases interleave, even with the background simulator
writing from its own thread.  An observer may call back into the store
from inside a notification; the lock is re-entrant for that reason.

Reads hand out deep copies.  Nothing a caller holds can change the
store's state; the write operations below are the only way in.

Business conditions never raise: an unknown id returns ``False`` or
``None``, and out-of-range progress is clamped.  Only malformed input
(blank names, non-numeric progress, invalid order drafts, unknown
status values) raises :class:`InvalidArgumentError`.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from pydantic import ValidationError

from readymix.core.context import ActorContext
from readymix.core.data import load_seed_areas
from readymix.core.errors import InvalidArgumentError
from readymix.core.models.activity import ActivityAction, ResourceType, UserActivity
from readymix.core.models.actor import Actor, ActorRole
from readymix.core.models.area import ProjectArea, Structure, StructureType
from readymix.core.models.common import clamp_progress, utc_now
from readymix.core.models.order import ConcreteOrder, OrderDraft, OrderStatus
from readymix.core.persistence.audit import AuditLog
from readymix.core.services.event_bus import Callback, EventBus, Subscription, Topic

logger = logging.getLogger(__name__)

ActorLike = Actor | str | None


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


class EntityStore:
    """Authoritative, in-memory collections with audit and notification.

    Args:
        bus: Event bus to publish on (a private one by default).
        audit: Audit log to record into (a private one by default).
        actors: Actor context writes are attributed to.
        seed: Start with the three demo areas.
    """

    def __init__(
        self,
        *,
        bus: EventBus | None = None,
        audit: AuditLog | None = None,
        actors: ActorContext | None = None,
        seed: bool = True,
    ) -> None:
        self._lock = threading.RLock()
        self.bus = bus if bus is not None else EventBus()
        self.audit = audit if audit is not None else AuditLog()
        self.actors = actors if actors is not None else ActorContext()

        self._areas: list[ProjectArea] = []
        self._orders: list[ConcreteOrder] = []
        self._last_stamp: datetime | None = None

        if seed:
            self._areas = load_seed_areas(self._stamp())

    # ── Delegates ───────────────────────────────────────────────

    def subscribe(self, topic: Topic | str, callback: Callback) -> Subscription:
        """Register an observer on the store's bus."""
        return self.bus.subscribe(topic, callback)

    def set_current_user(
        self, user_id: str, role: ActorRole | str, name: str, **agent_info: Any,
    ) -> Actor:
        return self.actors.set_current_user(user_id, role, name, **agent_info)

    def get_current_user(self) -> Actor:
        return self.actors.get_current_user()

    def locked(self) -> threading.RLock:
        """The store's write lock.

        Hold it around a read-decide-write sequence so no other writer
        can slip in between the read and the write::

            with store.locked():
                order = store.get_order(order_id)
                store.update_order_status(order_id, next_status(order.status))
        """
        return self._lock

    # ── Reads (snapshots) ───────────────────────────────────────

    def get_project_areas(self) -> list[ProjectArea]:
        """Deep copies of all areas, in insertion order."""
        with self._lock:
            return [area.model_copy(deep=True) for area in self._areas]

    def get_area(self, area_id: str) -> ProjectArea | None:
        with self._lock:
            area = self._find_area(area_id)
            return area.model_copy(deep=True) if area else None

    def get_orders(self) -> list[ConcreteOrder]:
        """Deep copies of all orders, in creation order."""
        with self._lock:
            return [order.model_copy(deep=True) for order in self._orders]

    def get_order(self, order_id: str) -> ConcreteOrder | None:
        with self._lock:
            order = self._find_order(order_id)
            return order.model_copy(deep=True) if order else None

    def get_activities(self) -> list[UserActivity]:
        """Newest-first audit entries (at most the log's capacity)."""
        return self.audit.list()

    # ── Areas ───────────────────────────────────────────────────

    def add_area(self, name: str, progress: float = 0, *, actor: ActorLike = None) -> ProjectArea:
        """Create an area with no structures.

        Raises:
            InvalidArgumentError: If ``name`` is blank, or ``progress``
                is not a number.
        """
        name = _require_name(name, "Area")
        progress = clamp_progress(progress)
        with self._lock:
            who = self._resolve_actor(actor)
            now = self._stamp()
            area = ProjectArea(
                id=_new_id("area"),
                name=name,
                progress=progress,
                last_updated=now,
                updated_by=who.id,
            )
            self._areas.append(area)

            self._record(who, ActivityAction.CREATE, ResourceType.AREA, area.id,
                         f"Created area: {name}", now)
            self._publish(Topic.PROJECT_AREAS, area, ActivityAction.CREATE)
            return area.model_copy(deep=True)

    def remove_area(self, area_id: str, *, actor: ActorLike = None) -> bool:
        """Remove an area together with all of its structures."""
        with self._lock:
            area = self._find_area(area_id)
            if area is None:
                logger.debug("remove_area: %s not found", area_id)
                return False
            who = self._resolve_actor(actor)
            now = self._stamp()
            self._areas.remove(area)

            self._record(who, ActivityAction.DELETE, ResourceType.AREA, area_id,
                         f"Removed area: {area.name}", now)
            self._publish(Topic.PROJECT_AREAS, area, ActivityAction.DELETE)
            return True

    def update_area_progress(self, area_id: str, progress: float, actor: ActorLike = None) -> bool:
        """Set an area's progress, clamped to [0, 100].

        Every call that finds the area stamps it and emits, even when the
        value does not change.  ``actor`` attributes the change to someone
        other than the current actor (the simulator uses this).
        """
        progress = clamp_progress(progress)
        with self._lock:
            area = self._find_area(area_id)
            if area is None:
                logger.debug("update_area_progress: %s not found", area_id)
                return False
            who = self._resolve_actor(actor)
            now = self._stamp()
            old = area.progress
            area.progress = progress
            area.last_updated = now
            area.updated_by = who.id

            self._record(who, ActivityAction.UPDATE, ResourceType.AREA, area_id,
                         f"Updated progress from {old}% to {area.progress}%", now)
            self._publish(Topic.PROJECT_AREAS, area, ActivityAction.UPDATE)
            return True

    # ── Structures ──────────────────────────────────────────────

    def add_structure_to_area(
        self,
        area_id: str,
        name: str,
        type: StructureType | str,
        recommended_grade: str,
        *,
        actor: ActorLike = None,
    ) -> Structure | None:
        """Append a structure to an area.

        The owning area is stamped as well, and it is the area (not the
        structure) that is published on ``projectAreas``.

        Returns:
            The new structure, or None if the area does not exist.
        """
        name = _require_name(name, "Structure")
        structure_type = _coerce(StructureType, type, "structure type")
        with self._lock:
            area = self._find_area(area_id)
            if area is None:
                logger.debug("add_structure_to_area: %s not found", area_id)
                return None
            who = self._resolve_actor(actor)
            now = self._stamp()
            structure = Structure(
                id=_new_id("struct"),
                name=name,
                type=structure_type,
                recommended_grade=recommended_grade,
                last_updated=now,
                updated_by=who.id,
            )
            area.structures.append(structure)
            area.last_updated = now
            area.updated_by = who.id

            self._record(who, ActivityAction.CREATE, ResourceType.STRUCTURE, structure.id,
                         f"Added structure: {name} to {area.name}", now)
            self._publish(Topic.PROJECT_AREAS, area, ActivityAction.UPDATE)
            return structure.model_copy(deep=True)

    def remove_structure(self, area_id: str, structure_id: str, *, actor: ActorLike = None) -> bool:
        """Remove one structure from its area."""
        with self._lock:
            area = self._find_area(area_id)
            structure = area.get_structure(structure_id) if area else None
            if area is None or structure is None:
                logger.debug("remove_structure: %s/%s not found", area_id, structure_id)
                return False
            who = self._resolve_actor(actor)
            now = self._stamp()
            area.structures.remove(structure)
            area.last_updated = now
            area.updated_by = who.id

            self._record(who, ActivityAction.DELETE, ResourceType.STRUCTURE, structure_id,
                         f"Removed structure: {structure.name} from {area.name}", now)
            self._publish(Topic.PROJECT_AREAS, area, ActivityAction.UPDATE)
            return True

    # ── Orders ──────────────────────────────────────────────────

    def create_order(
        self, order_data: OrderDraft | Mapping[str, Any], *, actor: ActorLike = None,
    ) -> ConcreteOrder:
        """Stamp and store a new order.

        ``area_id`` / ``structure_id`` are stored as given; they are not
        checked against the store's areas.

        Raises:
            InvalidArgumentError: If ``order_data`` is not a valid draft.
        """
        draft = _coerce_draft(order_data)
        with self._lock:
            who = self._resolve_actor(actor)
            now = self._stamp()
            order = ConcreteOrder(
                **draft.model_dump(include=set(OrderDraft.model_fields)),
                id=_new_id("ord"),
                created_at=now,
                created_by=who.id,
                last_updated=now,
                updated_by=who.id,
            )
            self._orders.append(order)

            self._record(who, ActivityAction.CREATE, ResourceType.ORDER, order.id,
                         f"Created order for {order.volume:g}m³ of {order.grade}", now)
            self._publish(Topic.ORDERS, order, ActivityAction.CREATE)
            return order.model_copy(deep=True)

    def update_order_status(
        self, order_id: str, status: OrderStatus | str, *, actor: ActorLike = None,
    ) -> bool:
        """Set an order's status.

        Any status may follow any other here; forward-only traversal is
        the caller's business.
        """
        new_status = _coerce(OrderStatus, status, "order status")
        with self._lock:
            order = self._find_order(order_id)
            if order is None:
                logger.debug("update_order_status: %s not found", order_id)
                return False
            who = self._resolve_actor(actor)
            now = self._stamp()
            old = order.status
            order.status = new_status
            order.last_updated = now
            order.updated_by = who.id

            self._record(who, ActivityAction.UPDATE, ResourceType.ORDER, order_id,
                         f"Updated status from {old} to {new_status}", now)
            self._publish(Topic.ORDERS, order, ActivityAction.UPDATE)
            return True

    # ── Internal helpers ────────────────────────────────────────

    def _find_area(self, area_id: str) -> ProjectArea | None:
        for area in self._areas:
            if area.id == area_id:
                return area
        return None

    def _find_order(self, order_id: str) -> ConcreteOrder | None:
        for order in self._orders:
            if order.id == order_id:
                return order
        return None

    def _stamp(self) -> datetime:
        """Current time, strictly later than any stamp issued before."""
        now = utc_now()
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = now
        return now

    def _resolve_actor(self, override: ActorLike) -> Actor:
        current = self.actors.get_current_user()
        if override is None:
            return current
        if isinstance(override, Actor):
            return override
        # A bare id keeps the current actor's role
        return Actor(id=override, role=current.role, name=override)

    def _record(
        self,
        who: Actor,
        action: ActivityAction,
        resource_type: ResourceType,
        resource_id: str,
        details: str,
        stamp: datetime,
    ) -> None:
        """Append to the audit log and announce it.  Never raises."""
        try:
            activity = self.audit.append(
                who.id, who.role, action, resource_type, resource_id, details,
                timestamp=stamp,
            )
        except Exception:
            logger.exception("Audit append failed for %s %s/%s", resource_id, action, resource_type)
            return
        self.bus.publish(Topic.ACTIVITIES, activity, ActivityAction.CREATE)

    def _publish(self, topic: Topic, entity: ProjectArea | ConcreteOrder, action: ActivityAction) -> None:
        # One copy shared by all observers; none of them can reach store state
        self.bus.publish(topic, entity.model_copy(deep=True), action)


def _require_name(name: str, what: str) -> str:
    if not isinstance(name, str):
        raise InvalidArgumentError(f"{what} name must be a string, got {name!r}")
    cleaned = name.strip()
    if not cleaned:
        raise InvalidArgumentError(f"{what} name must not be blank")
    return cleaned


def _coerce(enum_type: type, value: Any, what: str) -> Any:
    try:
        return enum_type(value)
    except ValueError:
        raise InvalidArgumentError(f"Unknown {what}: {value!r}") from None


def _coerce_draft(order_data: OrderDraft | Mapping[str, Any]) -> OrderDraft:
    if isinstance(order_data, OrderDraft):
        return order_data
    try:
        return OrderDraft.model_validate(dict(order_data))
    except ValidationError as e:
        raise InvalidArgumentError(f"Invalid order: {e}") from e
