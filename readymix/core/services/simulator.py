"""
Background mutation simulator — emulates other connected users.

On every tick, with low probability, one synthetic mutation is applied
through the store's public write API:

    progress     bump a random area's progress by a few points
    newOrder     create a Pending order on the first area/structure
    orderStatus  move a random order one step along the status flow

The simulator is just another caller.  Observers cannot tell its
writes from a real user's except by the actor they are attributed to.

Design decisions
────────────────
1. **Daemon thread** with a stop event: stops on ``stop()`` or when the
   process exits.
2. **``tick()`` is public** so tests drive it directly with a seeded
   ``random.Random`` instead of waiting on timers.
3. **Read-decide-write under the store lock**: the order picked for a
   status advance cannot change between the read and the write.
4. A failing tick is logged and the loop keeps going.
"""

from __future__ import annotations

import logging
import random
import threading
from datetime import timedelta
from enum import StrEnum

from readymix.core.errors import InvalidArgumentError
from readymix.core.models.actor import Actor, ActorRole
from readymix.core.models.common import utc_now
from readymix.core.models.order import OrderDraft, OrderStatus, next_status
from readymix.core.services.entity_store import EntityStore

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 5.0
"""Seconds between ticks."""

DEFAULT_PROBABILITY = 0.2
"""Chance that a tick mutates anything at all."""

EXTERNAL_ACTOR = Actor(id="external-user", role=ActorRole.ADMIN, name="External User")


class SimulatedAction(StrEnum):
    """Kinds of synthetic mutation."""

    PROGRESS = "progress"
    NEW_ORDER = "newOrder"
    ORDER_STATUS = "orderStatus"


class BackgroundSimulator:
    """Periodically injects synthetic mutations into a store.

    Args:
        store: Store to mutate.
        interval: Seconds between ticks when running on a thread.
        probability: Chance in [0, 1] that a tick does anything.
        rng: Random source (seed it for reproducible runs).
        actor: Identity the synthetic writes are attributed to.
    """

    def __init__(
        self,
        store: EntityStore,
        *,
        interval: float = DEFAULT_INTERVAL_S,
        probability: float = DEFAULT_PROBABILITY,
        rng: random.Random | None = None,
        actor: Actor = EXTERNAL_ACTOR,
    ) -> None:
        if interval <= 0:
            raise InvalidArgumentError(f"Simulator interval must be positive, got {interval}")
        if not 0.0 <= probability <= 1.0:
            raise InvalidArgumentError(f"Simulator probability must be in [0, 1], got {probability}")
        self.store = store
        self.interval = interval
        self.probability = probability
        self.actor = actor
        self._rng = rng or random.Random()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

        self.ticks = 0
        self.applied: dict[SimulatedAction, int] = {a: 0 for a in SimulatedAction}

    # ── Lifecycle ───────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> threading.Thread:
        """Start ticking on a daemon thread (no-op if already running)."""
        if self._thread is not None and self._thread.is_alive():
            return self._thread
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="mutation-simulator",
        )
        self._thread.start()
        logger.info(
            "Mutation simulator started (tick every %.1fs, p=%.2f)",
            self.interval, self.probability,
        )
        return self._thread

    def stop(self, timeout: float | None = None) -> None:
        """Signal the thread to stop and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
            logger.info("Mutation simulator stopped after %d ticks", self.ticks)

    def __enter__(self) -> BackgroundSimulator:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception:
                logger.exception("Simulator tick failed")

    # ── Ticking ─────────────────────────────────────────────────

    def tick(self) -> SimulatedAction | None:
        """Maybe apply one synthetic mutation.

        Returns:
            The action that changed the store, or None if this tick
            did nothing (dice roll lost, or nothing eligible to change).
        """
        self.ticks += 1
        if self._rng.random() >= self.probability:
            return None

        action = self._rng.choice(list(SimulatedAction))
        handlers = {
            SimulatedAction.PROGRESS: self._bump_progress,
            SimulatedAction.NEW_ORDER: self._create_order,
            SimulatedAction.ORDER_STATUS: self._advance_order,
        }
        with self.store.locked():
            applied = handlers[action]()
        if not applied:
            return None
        self.applied[action] += 1
        logger.debug("Simulated %s as %s", action, self.actor.id)
        return action

    def _bump_progress(self) -> bool:
        areas = self.store.get_project_areas()
        if not areas:
            return False
        area = self._rng.choice(areas)
        if area.progress >= 100:
            return False
        new_progress = min(100, area.progress + self._rng.randint(1, 4))
        return self.store.update_area_progress(area.id, new_progress, self.actor)

    def _create_order(self) -> bool:
        areas = self.store.get_project_areas()
        area = areas[0] if areas else None
        structure = area.structures[0] if area and area.structures else None
        draft = OrderDraft(
            project_name="Auto Generated Order",
            location="123 Construction Site",
            area_id=area.id if area else "",
            structure_id=structure.id if structure else "",
            volume=self._rng.randint(10, 59),
            grade="25MPa",
            slump=100,
            delivery_date=(utc_now() + timedelta(days=1)).date(),
            delivery_time="08:00",
            status=OrderStatus.PENDING,
            contact_name=self.actor.name,
            contact_phone="+27 82 000 0000",
        )
        self.store.create_order(draft, actor=self.actor)
        return True

    def _advance_order(self) -> bool:
        orders = self.store.get_orders()
        if not orders:
            return False
        order = self._rng.choice(orders)
        following = next_status(order.status)
        if following is None:
            return False
        return self.store.update_order_status(order.id, following, actor=self.actor)
