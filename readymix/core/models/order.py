"""
Concrete orders and their status lifecycle.

Orders move forward through ``ORDER_STATUS_FLOW``; ``Cancelled`` is a
terminal branch reachable from any non-terminal state.  The store does
not enforce this — callers that care (the simulator) do.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


class OrderStatus(StrEnum):
    """Order lifecycle states."""

    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    IN_PRODUCTION = "In Production"
    DISPATCHED = "Dispatched"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


ORDER_STATUS_FLOW: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.IN_PRODUCTION,
    OrderStatus.DISPATCHED,
    OrderStatus.DELIVERED,
)

TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})


def next_status(status: OrderStatus) -> OrderStatus | None:
    """Return the status one step forward, or None if there is none."""
    if status in TERMINAL_STATUSES or status not in ORDER_STATUS_FLOW:
        return None
    return ORDER_STATUS_FLOW[ORDER_STATUS_FLOW.index(status) + 1]


class OrderDraft(BaseModel):
    """The caller-supplied part of an order, before the store stamps it."""

    project_name: str
    location: str = ""
    area_id: str = ""        # weak reference, not checked by the store
    structure_id: str = ""   # weak reference, not checked by the store
    volume: float = Field(gt=0)  # m³
    grade: str
    slump: int = 100         # mm
    delivery_date: date
    delivery_time: str = "08:00"
    status: OrderStatus = OrderStatus.PENDING
    contact_name: str = ""
    contact_phone: str = ""
    special_instructions: str | None = None


class ConcreteOrder(OrderDraft):
    """A stored order with identity and attribution."""

    id: str
    created_at: datetime
    created_by: str
    last_updated: datetime
    updated_by: str
