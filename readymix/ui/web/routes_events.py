"""
SSE event stream endpoint.

Provides ``GET /api/events`` — a Server-Sent Events stream that
forwards every store notification to the browser as it happens.

Wire format::

    event: orders
    id: 12
    data: {"seq":12,"topic":"orders","action":"update","data":{...}}

Each connection registers its own observers on the store's bus and
removes them when the client disconnects.  There is no replay: a
client sees only what is published after it connects, and should
fetch snapshots from the REST endpoints first.
"""

from __future__ import annotations

import itertools
import json
import logging
import queue
import time
from typing import Any, Generator

from flask import Blueprint, Response, current_app, request

from readymix.core.services.event_bus import EventBus, Subscription, Topic

logger = logging.getLogger(__name__)

events_bp = Blueprint("events", __name__)

HEARTBEAT_INTERVAL_S = 15.0
QUEUE_SIZE = 200


class EventStream:
    """Bridges bus notifications onto a queue read by one SSE client.

    Observers run on whichever thread wrote to the store; they only
    enqueue.  If the client falls behind and the queue fills, the
    stream is marked overflowed and closes so the client reconnects and
    re-reads snapshots.
    """

    def __init__(self, bus: EventBus, topics: list[Topic], maxsize: int = QUEUE_SIZE) -> None:
        self._queue: queue.Queue[dict[str, Any]] = queue.Queue(maxsize=maxsize)
        self._seq = itertools.count(1)
        self.overflowed = False
        self._handles: list[Subscription] = [bus.subscribe(t, self._on_event) for t in topics]

    def _on_event(self, payload: Any, action: str, topic: str) -> None:
        event = {
            "seq": next(self._seq),
            "ts": time.time(),
            "topic": str(topic),
            "action": str(action),
            "data": payload.model_dump(mode="json") if hasattr(payload, "model_dump") else payload,
        }
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            self.overflowed = True

    def get(self, timeout: float) -> dict[str, Any] | None:
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        for handle in self._handles:
            handle()

    def events(self, heartbeat_interval: float = HEARTBEAT_INTERVAL_S) -> Generator[dict, None, None]:
        """Yield events until overflow; yields a heartbeat when idle."""
        try:
            while not self.overflowed:
                event = self.get(heartbeat_interval)
                yield event if event is not None else {"topic": "heartbeat", "ts": time.time()}
        finally:
            self.close()


def _parse_topics(raw: str | None) -> list[Topic]:
    if not raw:
        return list(Topic)
    topics = []
    for name in raw.split(","):
        try:
            topics.append(Topic(name.strip()))
        except ValueError:
            logger.debug("Ignoring unknown topic %r in stream request", name)
    return topics or list(Topic)


@events_bp.route("/events")
def event_stream():  # type: ignore[no-untyped-def]
    """SSE endpoint — streams store notifications to the browser.

    Query params:
        topics (str): Comma-separated topics (default: all).

    Returns:
        ``text/event-stream`` response with chunked transfer.
    """
    store = current_app.config["SESSION"].store
    stream = EventStream(store.bus, _parse_topics(request.args.get("topics")))
    logger.info("SSE client connected (subscribers=%d)", store.bus.subscriber_count())

    def generate():  # type: ignore[no-untyped-def]
        for event in stream.events():
            header = f"event: {event['topic']}\n"
            if "seq" in event:
                header += f"id: {event['seq']}\n"
            yield f"{header}data: {json.dumps(event, default=str)}\n\n"

    response = Response(
        generate(),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "X-Accel-Buffering": "no",      # disable nginx/proxy buffering
            "Connection": "keep-alive",
        },
    )
    # The generator's own cleanup never runs if it is closed before it starts
    response.call_on_close(stream.close)
    return response
