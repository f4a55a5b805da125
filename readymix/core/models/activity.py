"""
UserActivity — one immutable audit record.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from readymix.core.models.actor import ActorRole
from readymix.core.models.common import utc_now


class ActivityAction(StrEnum):
    """What kind of mutation happened.  Doubles as the event action tag."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class ResourceType(StrEnum):
    """Which kind of entity a mutation touched."""

    AREA = "area"
    STRUCTURE = "structure"
    ORDER = "order"


class UserActivity(BaseModel):
    """A single attributed mutation.  Frozen once created."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    user_role: ActorRole
    action: ActivityAction
    resource_type: ResourceType
    resource_id: str
    details: str = ""
    timestamp: datetime = Field(default_factory=utc_now)
