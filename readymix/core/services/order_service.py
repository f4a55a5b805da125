"""
Order service — order views and shortcuts for the ordering screens.

A thin layer over :class:`EntityStore`: every write goes through the
store (so audit and notification still happen there), every read works
on the store's snapshots.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any

from pydantic import BaseModel, Field

from readymix.core.errors import InvalidArgumentError
from readymix.core.models.common import utc_now
from readymix.core.models.order import ConcreteOrder, OrderDraft, OrderStatus, next_status
from readymix.core.services.entity_store import EntityStore

logger = logging.getLogger(__name__)

DEFAULT_PRICE_PER_M3 = 850.0
DEFAULT_SLUMP_MM = 100
DEFAULT_STEP_INTERVAL_S = 30.0


class QuickOrder(BaseModel):
    """A quick order as typed into the site agent's form.

    Area and structure are chosen by display name, not id.
    """

    area: str
    structure: str = ""
    volume: float = Field(gt=0)
    grade: str
    delivery_date: date
    delivery_time: str = "08:00"
    contact_name: str = ""
    contact_phone: str = ""
    location: str = ""
    special_instructions: str | None = None


@dataclass
class OrderStatistics:
    """Order counts by status plus revenue figures."""

    total_orders: int = 0
    pending_orders: int = 0
    confirmed_orders: int = 0
    in_production_orders: int = 0
    dispatched_orders: int = 0
    delivered_orders: int = 0
    cancelled_orders: int = 0
    today_revenue: float = 0.0
    weekly_revenue: float = 0.0
    avg_order_value: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class TrendPoint:
    """Orders and volume due for delivery on one day."""

    date: date
    orders: int = 0
    volume: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date.isoformat(), "orders": self.orders, "volume": self.volume}


_STATUS_FIELDS = {
    OrderStatus.PENDING: "pending_orders",
    OrderStatus.CONFIRMED: "confirmed_orders",
    OrderStatus.IN_PRODUCTION: "in_production_orders",
    OrderStatus.DISPATCHED: "dispatched_orders",
    OrderStatus.DELIVERED: "delivered_orders",
    OrderStatus.CANCELLED: "cancelled_orders",
}


class OrderService:
    """Order lookups, statistics and quick ordering on top of a store."""

    def __init__(self, store: EntityStore, price_per_m3: float = DEFAULT_PRICE_PER_M3) -> None:
        self.store = store
        self.price_per_m3 = price_per_m3

    # ── Writes ──────────────────────────────────────────────────

    def create_quick_order(self, quick: QuickOrder) -> ConcreteOrder:
        """Create a Pending order from a quick-order form.

        Unknown area or structure names leave the matching id empty.
        """
        area = next((a for a in self.store.get_project_areas() if a.name == quick.area), None)
        structure = area.find_structure(quick.structure) if area else None
        if area is None:
            logger.info("Quick order for unknown area %r", quick.area)

        draft = OrderDraft(
            project_name=f"Order for {quick.area}",
            location=quick.location,
            area_id=area.id if area else "",
            structure_id=structure.id if structure else "",
            volume=quick.volume,
            grade=quick.grade,
            slump=DEFAULT_SLUMP_MM,
            delivery_date=quick.delivery_date,
            delivery_time=quick.delivery_time,
            status=OrderStatus.PENDING,
            contact_name=quick.contact_name,
            contact_phone=quick.contact_phone,
            special_instructions=quick.special_instructions,
        )
        return self.store.create_order(draft)

    def update_order_status(self, order_id: str, status: OrderStatus | str) -> bool:
        return self.store.update_order_status(order_id, status)

    def advance_order(self, order_id: str) -> OrderStatus | None:
        """Move an order one step along the status flow.

        Returns:
            The new status, or None if the order is unknown or already
            Delivered or Cancelled.
        """
        with self.store.locked():
            order = self.store.get_order(order_id)
            following = next_status(order.status) if order else None
            if following is None:
                return None
            self.store.update_order_status(order_id, following)
            return following

    def simulate_order_progress(
        self, order_id: str, interval: float = DEFAULT_STEP_INTERVAL_S,
    ) -> OrderProgression:
        """Walk one order to Delivered in the background, a step per ``interval``."""
        return OrderProgression(self, order_id, interval).start()

    # ── Reads ───────────────────────────────────────────────────

    def get_order(self, order_id: str) -> ConcreteOrder | None:
        return self.store.get_order(order_id)

    def orders_by_status(self, status: OrderStatus | str) -> list[ConcreteOrder]:
        wanted = OrderStatus(status)
        return [o for o in self.store.get_orders() if o.status == wanted]

    def orders_by_date_range(self, start: date, end: date) -> list[ConcreteOrder]:
        """Orders whose delivery date falls within [start, end]."""
        return [o for o in self.store.get_orders() if start <= o.delivery_date <= end]

    def statistics(self, today: date | None = None) -> OrderStatistics:
        """Count orders per status and estimate revenue from volume."""
        today = today or utc_now().date()
        week_ago = today - timedelta(days=7)
        orders = self.store.get_orders()

        stats = OrderStatistics(total_orders=len(orders))
        for order in orders:
            field_name = _STATUS_FIELDS[order.status]
            setattr(stats, field_name, getattr(stats, field_name) + 1)

        stats.today_revenue = sum(
            o.volume * self.price_per_m3 for o in orders if o.delivery_date == today
        )
        stats.weekly_revenue = sum(
            o.volume * self.price_per_m3 for o in orders if o.delivery_date >= week_ago
        )
        if stats.total_orders:
            stats.avg_order_value = stats.weekly_revenue / stats.total_orders
        return stats

    def daily_trend(self, days: int = 7, today: date | None = None) -> list[TrendPoint]:
        """One point per day for the last ``days`` days, oldest first."""
        today = today or utc_now().date()
        orders = self.store.get_orders()
        trend = []
        for offset in range(days - 1, -1, -1):
            day = today - timedelta(days=offset)
            due = [o for o in orders if o.delivery_date == day]
            trend.append(TrendPoint(date=day, orders=len(due), volume=sum(o.volume for o in due)))
        return trend


class OrderProgression:
    """Daemon thread that advances a single order until it is terminal.

    The thread ends on its own once the order is Delivered, Cancelled or
    gone; ``stop()`` ends it early.
    """

    def __init__(self, service: OrderService, order_id: str, interval: float) -> None:
        if interval <= 0:
            raise InvalidArgumentError(f"Step interval must be positive, got {interval}")
        self.service = service
        self.order_id = order_id
        self.interval = interval
        self.steps = 0
        self._stop = threading.Event()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name=f"order-progress-{order_id}",
        )

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def start(self) -> OrderProgression:
        self._thread.start()
        logger.info("Order %s progressing every %.1fs", self.order_id, self.interval)
        return self

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        self.join(timeout)

    def join(self, timeout: float | None = None) -> None:
        """Wait for the order to finish (or for ``stop()``)."""
        if self._thread.ident is not None:
            self._thread.join(timeout)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                status = self.service.advance_order(self.order_id)
            except Exception:
                logger.exception("Advancing order %s failed", self.order_id)
                break
            if status is None:
                break
            self.steps += 1
        logger.info("Order %s progression ended after %d steps", self.order_id, self.steps)
