"""
EventBus — in-process, topic-keyed pub/sub for store mutations.

Every successful entity store write is broadcast here so that every
mounted view can re-read its snapshot and re-render.

Delivery model
──────────────
- Topics are a closed set: ``projectAreas``, ``orders``, ``activities``.
- ``publish()`` is synchronous.  Observers run on the publisher's thread,
  in registration order, and all receive the same payload object.
- An observer that raises is logged and counted; the remaining
  observers still run and nothing reaches the publisher.
- No replay.  A subscriber only sees events published after it
  registered.

Subscription lifecycle
──────────────────────
``subscribe()`` returns a :class:`Subscription` handle.  Calling it
removes exactly that registration (calling it again does nothing).
It is the only way to remove an observer — views must call it when
they are torn down, or the callback lives for the rest of the process.

Callback signature::

    def on_change(payload, action, topic) -> None: ...
"""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable

from readymix.core.errors import InvalidArgumentError

logger = logging.getLogger(__name__)


class Topic(StrEnum):
    """Channels that store mutations are published on."""

    PROJECT_AREAS = "projectAreas"
    ORDERS = "orders"
    ACTIVITIES = "activities"


Callback = Callable[[Any, str, str], None]


@dataclass(frozen=True)
class _Registration:
    token: int
    callback: Callback


class Subscription:
    """Handle for one registration.  Call it (or exit it) to unsubscribe."""

    def __init__(self, bus: EventBus, topic: Topic, token: int) -> None:
        self._bus = bus
        self._topic = topic
        self._token = token
        self._active = True

    @property
    def topic(self) -> Topic:
        return self._topic

    @property
    def active(self) -> bool:
        return self._active

    def __call__(self) -> None:
        if not self._active:
            return
        self._active = False
        self._bus._remove(self._topic, self._token)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self()

    def __repr__(self) -> str:
        state = "active" if self._active else "cancelled"
        return f"<Subscription {self._topic}#{self._token} {state}>"


class EventBus:
    """Topic-keyed registry of observer callbacks."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tokens = itertools.count(1)
        self._registrations: dict[Topic, list[_Registration]] = {t: [] for t in Topic}
        self._published = 0
        self._failures = 0

    # ── Properties ──────────────────────────────────────────────

    @property
    def published_count(self) -> int:
        """Number of publish calls so far."""
        with self._lock:
            return self._published

    @property
    def failure_count(self) -> int:
        """Number of observer calls that raised."""
        with self._lock:
            return self._failures

    def subscriber_count(self, topic: Topic | str | None = None) -> int:
        """Active registrations on one topic, or on all topics."""
        with self._lock:
            if topic is None:
                return sum(len(regs) for regs in self._registrations.values())
            return len(self._registrations[_topic(topic)])

    # ── Subscribing ─────────────────────────────────────────────

    def subscribe(self, topic: Topic | str, callback: Callback) -> Subscription:
        """Register ``callback`` for ``topic``.

        Args:
            topic: One of the :class:`Topic` values.
            callback: Called as ``callback(payload, action, topic)``.

        Returns:
            A handle that unsubscribes this registration when called.

        Raises:
            InvalidArgumentError: If the topic is unknown.
        """
        resolved = _topic(topic)
        with self._lock:
            token = next(self._tokens)
            self._registrations[resolved].append(_Registration(token, callback))
            count = len(self._registrations[resolved])
        logger.debug("Subscribed #%d to %s (%d on topic)", token, resolved, count)
        return Subscription(self, resolved, token)

    def _remove(self, topic: Topic, token: int) -> None:
        with self._lock:
            regs = self._registrations[topic]
            self._registrations[topic] = [r for r in regs if r.token != token]
        logger.debug("Unsubscribed #%d from %s", token, topic)

    # ── Publishing ──────────────────────────────────────────────

    def publish(self, topic: Topic | str, payload: Any, action: str) -> int:
        """Deliver ``payload`` to every observer currently on ``topic``.

        Returns:
            How many observers handled the event without raising.
        """
        resolved = _topic(topic)
        with self._lock:
            self._published += 1
            targets = list(self._registrations[resolved])

        delivered = 0
        for reg in targets:
            try:
                reg.callback(payload, action, resolved)
            except Exception:
                with self._lock:
                    self._failures += 1
                logger.exception(
                    "Observer #%d failed handling %s/%s", reg.token, resolved, action,
                )
            else:
                delivered += 1

        logger.debug("event %s/%s → %d/%d observer(s)", resolved, action, delivered, len(targets))
        return delivered


def _topic(value: Topic | str) -> Topic:
    try:
        return Topic(value)
    except ValueError:
        known = ", ".join(t.value for t in Topic)
        raise InvalidArgumentError(f"Unknown topic {value!r} (expected one of: {known})") from None
