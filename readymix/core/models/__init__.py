"""
Domain models — Pydantic types for the synchronization core.

All models are re-exported here for convenient access:

    from readymix.core.models import ProjectArea, ConcreteOrder, UserActivity
"""

from readymix.core.models.activity import ActivityAction, ResourceType, UserActivity
from readymix.core.models.actor import Actor, ActorRole
from readymix.core.models.area import ProjectArea, Structure, StructureType
from readymix.core.models.common import clamp_progress, utc_now
from readymix.core.models.order import (
    ORDER_STATUS_FLOW,
    ConcreteOrder,
    OrderDraft,
    OrderStatus,
    next_status,
)

__all__ = [
    # activity.py
    "ActivityAction",
    "ResourceType",
    "UserActivity",
    # actor.py
    "Actor",
    "ActorRole",
    # area.py
    "ProjectArea",
    "Structure",
    "StructureType",
    # common.py
    "clamp_progress",
    "utc_now",
    # order.py
    "ORDER_STATUS_FLOW",
    "ConcreteOrder",
    "OrderDraft",
    "OrderStatus",
    "next_status",
]
