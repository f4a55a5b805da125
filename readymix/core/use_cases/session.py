"""
Session use case — wire a store, order service and simulator from settings.

Every entry point (CLI command, web app, tests) builds its own session.
Nothing is shared between sessions.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from readymix.core.config.loader import Settings
from readymix.core.context import ActorContext
from readymix.core.observability.health import SystemHealth, check_system_health
from readymix.core.persistence.audit import AuditLog
from readymix.core.services.entity_store import EntityStore
from readymix.core.services.order_service import OrderService
from readymix.core.services.simulator import BackgroundSimulator

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """One volatile store plus the services bound to it."""

    settings: Settings
    store: EntityStore
    orders: OrderService
    simulator: BackgroundSimulator | None = None

    def health(self) -> SystemHealth:
        return check_system_health(
            bus=self.store.bus,
            audit=self.store.audit,
            simulator=self.simulator,
        )

    def close(self) -> None:
        """Stop the simulator thread, if any."""
        if self.simulator is not None and self.simulator.running:
            self.simulator.stop(timeout=self.simulator.interval + 1.0)


def open_session(
    settings: Settings | None = None,
    *,
    start_simulator: bool = False,
) -> Session:
    """Build a seeded session.

    Args:
        settings: Loaded settings (defaults if None).
        start_simulator: Start the simulator thread right away.  Ignored
            when the simulator is disabled in settings.
    """
    settings = settings or Settings()

    store = EntityStore(
        audit=AuditLog(capacity=settings.audit.capacity),
        actors=ActorContext(settings.actor.to_actor()),
    )
    orders = OrderService(store, price_per_m3=settings.orders.price_per_m3)

    simulator = None
    if settings.simulator.enabled:
        simulator = BackgroundSimulator(
            store,
            interval=settings.simulator.interval,
            probability=settings.simulator.probability,
            rng=random.Random(settings.simulator.seed),
        )
        if start_simulator:
            simulator.start()

    logger.debug("Session opened (simulator %s)", "on" if simulator else "off")
    return Session(settings=settings, store=store, orders=orders, simulator=simulator)
