"""
Audit log — capped, append-only activity history.

Every mutation made through the entity store writes exactly one entry
here.  Entries are kept newest-first in a bounded ring: once the log
holds ``capacity`` entries, each append evicts the oldest.

The log is volatile.  It lives as long as the store that owns it and is
empty again on the next process start.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections import deque
from datetime import datetime

from readymix.core.errors import InvalidArgumentError
from readymix.core.models.activity import ActivityAction, ResourceType, UserActivity
from readymix.core.models.actor import ActorRole
from readymix.core.models.common import utc_now

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 100


class AuditLog:
    """Bounded, newest-first ring of :class:`UserActivity` records."""

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise InvalidArgumentError(f"Audit capacity must be positive, got {capacity}")
        self._lock = threading.Lock()
        # appendleft + maxlen drops from the right, i.e. the oldest entry
        self._entries: deque[UserActivity] = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._entries.maxlen or DEFAULT_CAPACITY

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def append(
        self,
        user_id: str,
        user_role: ActorRole | str,
        action: ActivityAction | str,
        resource_type: ResourceType | str,
        resource_id: str,
        details: str = "",
        *,
        timestamp: datetime | None = None,
    ) -> UserActivity:
        """Record one mutation and return the new entry."""
        entry = UserActivity(
            id=f"activity-{uuid.uuid4().hex[:12]}",
            user_id=user_id,
            user_role=ActorRole(user_role),
            action=ActivityAction(action),
            resource_type=ResourceType(resource_type),
            resource_id=resource_id,
            details=details,
            timestamp=timestamp or utc_now(),
        )
        with self._lock:
            self._entries.appendleft(entry)
        logger.debug(
            "Audit %s/%s %s by %s", entry.action, entry.resource_type, resource_id, user_id,
        )
        return entry

    def list(self) -> list[UserActivity]:
        """Newest-first snapshot of the log.

        Entries are frozen, so copying the sequence is enough to keep
        callers from affecting the log.
        """
        with self._lock:
            return list(self._entries)
