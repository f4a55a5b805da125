"""
Tests for the event bus — subscription handles, ordering, failure isolation.
"""

import logging

import pytest

from readymix.core.errors import InvalidArgumentError
from readymix.core.services.event_bus import EventBus, Topic


class TestSubscribe:
    def test_unknown_topic_rejected(self):
        bus = EventBus()
        with pytest.raises(InvalidArgumentError, match="Unknown topic"):
            bus.subscribe("weather", lambda *a: None)

    def test_string_topic_accepted(self, recorder):
        bus = EventBus()
        handle = bus.subscribe("orders", recorder)
        assert handle.topic is Topic.ORDERS
        assert bus.subscriber_count("orders") == 1

    def test_subscriber_counts(self):
        bus = EventBus()
        bus.subscribe(Topic.ORDERS, lambda *a: None)
        bus.subscribe(Topic.ORDERS, lambda *a: None)
        bus.subscribe(Topic.ACTIVITIES, lambda *a: None)
        assert bus.subscriber_count(Topic.ORDERS) == 2
        assert bus.subscriber_count(Topic.PROJECT_AREAS) == 0
        assert bus.subscriber_count() == 3


class TestSubscription:
    def test_unsubscribe_stops_delivery(self, recorder):
        bus = EventBus()
        handle = bus.subscribe(Topic.ORDERS, recorder)
        bus.publish(Topic.ORDERS, {"n": 1}, "create")
        handle()
        bus.publish(Topic.ORDERS, {"n": 2}, "create")
        assert [p for p, _, _ in recorder.events] == [{"n": 1}]
        assert not handle.active

    def test_unsubscribe_is_idempotent(self):
        bus = EventBus()
        handle = bus.subscribe(Topic.ORDERS, lambda *a: None)
        handle()
        handle()
        assert bus.subscriber_count() == 0

    def test_same_callback_twice_is_two_registrations(self, recorder):
        """Each handle removes only its own registration."""
        bus = EventBus()
        first = bus.subscribe(Topic.ORDERS, recorder)
        bus.subscribe(Topic.ORDERS, recorder)
        bus.publish(Topic.ORDERS, "x", "create")
        assert len(recorder.events) == 2

        first()
        bus.publish(Topic.ORDERS, "y", "create")
        assert len(recorder.events) == 3

    def test_context_manager_unsubscribes(self, recorder):
        bus = EventBus()
        with bus.subscribe(Topic.ACTIVITIES, recorder):
            bus.publish(Topic.ACTIVITIES, 1, "create")
        bus.publish(Topic.ACTIVITIES, 2, "create")
        assert len(recorder.events) == 1

    def test_repr_shows_state(self):
        bus = EventBus()
        handle = bus.subscribe(Topic.ORDERS, lambda *a: None)
        assert "active" in repr(handle)
        handle()
        assert "cancelled" in repr(handle)


class TestPublish:
    def test_registration_order(self):
        bus = EventBus()
        calls = []
        for n in range(3):
            bus.subscribe(Topic.ORDERS, lambda p, a, t, n=n: calls.append(n))
        bus.publish(Topic.ORDERS, None, "update")
        assert calls == [0, 1, 2]

    def test_callback_receives_payload_action_topic(self, recorder):
        bus = EventBus()
        bus.subscribe(Topic.PROJECT_AREAS, recorder)
        payload = object()
        bus.publish("projectAreas", payload, "delete")
        assert recorder.events == [(payload, "delete", Topic.PROJECT_AREAS)]

    def test_only_matching_topic_notified(self, recorder):
        bus = EventBus()
        bus.subscribe(Topic.ORDERS, recorder)
        bus.publish(Topic.PROJECT_AREAS, 1, "create")
        assert recorder.events == []

    def test_no_replay_for_late_subscriber(self, recorder):
        bus = EventBus()
        bus.publish(Topic.ORDERS, 1, "create")
        bus.subscribe(Topic.ORDERS, recorder)
        assert recorder.events == []

    def test_failing_observer_is_isolated(self, recorder, caplog):
        bus = EventBus()

        def broken(payload, action, topic):
            raise RuntimeError("view crashed")

        bus.subscribe(Topic.ORDERS, broken)
        bus.subscribe(Topic.ORDERS, recorder)

        with caplog.at_level(logging.ERROR, logger="readymix.core.services.event_bus"):
            delivered = bus.publish(Topic.ORDERS, "payload", "create")

        assert delivered == 1
        assert len(recorder.events) == 1
        assert bus.failure_count == 1
        assert "failed handling orders/create" in caplog.text

    def test_unsubscribe_during_publish(self, recorder):
        """Removing a later observer mid-publish does not break the loop."""
        bus = EventBus()
        handles = []
        bus.subscribe(Topic.ORDERS, lambda *a: handles[0]())
        handles.append(bus.subscribe(Topic.ORDERS, recorder))

        bus.publish(Topic.ORDERS, 1, "create")
        bus.publish(Topic.ORDERS, 2, "create")
        assert bus.subscriber_count(Topic.ORDERS) == 1
        assert len(recorder.events) == 1

    def test_published_count(self):
        bus = EventBus()
        bus.publish(Topic.ORDERS, 1, "create")
        bus.publish(Topic.ACTIVITIES, 2, "create")
        assert bus.published_count == 2
