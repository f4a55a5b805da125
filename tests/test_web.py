"""
Tests for the web API — app factory, REST routes, event stream.
"""

from __future__ import annotations

import pytest
from flask import Flask
from flask.testing import FlaskClient

from readymix.core.config.loader import Settings, SimulatorSettings
from readymix.core.services.event_bus import EventBus, Topic
from readymix.core.use_cases.session import Session, open_session
from readymix.ui.web.routes_events import EventStream, _parse_topics
from readymix.ui.web.server import create_app


@pytest.fixture()
def session() -> Session:
    """A seeded session with the simulator disabled."""
    return open_session(Settings(simulator=SimulatorSettings(enabled=False)))


@pytest.fixture()
def app(session: Session) -> Flask:
    app = create_app(session=session)
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app: Flask) -> FlaskClient:
    """Create a Flask test client."""
    return app.test_client()


class TestAppFactory:
    def test_creates_app(self, app: Flask, session: Session):
        assert app.config["SESSION"] is session

    def test_builds_own_session(self):
        app = create_app(Settings(simulator=SimulatorSettings(enabled=False)))
        assert len(app.config["SESSION"].store.get_project_areas()) == 3

    def test_api_blueprints_registered(self, app: Flask):
        rules = {r.rule for r in app.url_map.iter_rules()}
        assert "/api/areas" in rules
        assert "/api/events" in rules
        assert "/api/health" in rules


class TestAreaRoutes:
    def test_list_areas(self, client: FlaskClient):
        resp = client.get("/api/areas")
        assert resp.status_code == 200
        data = resp.get_json()
        assert [a["id"] for a in data] == ["area-1", "area-2", "area-3"]
        assert data[0]["structures"][0]["name"] == "Strip Foundations"

    def test_get_area(self, client: FlaskClient):
        assert client.get("/api/areas/area-2").get_json()["name"] == "Structural Frame B"

    def test_get_missing_area(self, client: FlaskClient):
        resp = client.get("/api/areas/nope")
        assert resp.status_code == 404
        assert "error" in resp.get_json()

    def test_add_area(self, client: FlaskClient, session: Session):
        resp = client.post("/api/areas", json={"name": "Zone D", "progress": 120})
        assert resp.status_code == 201
        assert resp.get_json()["progress"] == 100
        assert len(session.store.get_project_areas()) == 4

    def test_add_area_overflowing_progress(self, client: FlaskClient):
        resp = client.post("/api/areas", data='{"name": "Zone D", "progress": 1e999}',
                           content_type="application/json")
        assert resp.status_code == 201
        assert resp.get_json()["progress"] == 100

    @pytest.mark.parametrize("progress", [None, "abc", "NaN"])
    def test_add_area_bad_progress(self, client: FlaskClient, session: Session, progress):
        resp = client.post("/api/areas", json={"name": "Zone D", "progress": progress})
        assert resp.status_code == 400
        assert len(session.store.get_project_areas()) == 3

    def test_add_area_nan_progress(self, client: FlaskClient):
        resp = client.post("/api/areas", data='{"name": "Zone D", "progress": NaN}',
                           content_type="application/json")
        assert resp.status_code == 400

    def test_add_area_numeric_name(self, client: FlaskClient):
        resp = client.post("/api/areas", json={"name": 7})
        assert resp.status_code == 400

    def test_add_area_blank_name(self, client: FlaskClient):
        resp = client.post("/api/areas", json={"name": " "})
        assert resp.status_code == 400
        assert "blank" in resp.get_json()["error"]

    def test_non_object_body(self, client: FlaskClient):
        resp = client.post("/api/areas", json=["Zone D"])
        assert resp.status_code == 400

    def test_remove_area(self, client: FlaskClient):
        assert client.delete("/api/areas/area-3").get_json() == {"removed": "area-3"}
        assert client.delete("/api/areas/area-3").status_code == 404

    def test_update_progress(self, client: FlaskClient):
        resp = client.post("/api/areas/area-1/progress", json={"progress": -4})
        assert resp.status_code == 200
        assert resp.get_json()["progress"] == 0

    def test_update_progress_not_a_number(self, client: FlaskClient):
        resp = client.post("/api/areas/area-1/progress", json={"progress": "high"})
        assert resp.status_code == 400

    def test_update_progress_overflowing_number(self, client: FlaskClient):
        resp = client.post(
            "/api/areas/area-1/progress",
            data='{"progress": 1e999}',
            content_type="application/json",
        )
        assert resp.status_code == 200
        assert resp.get_json()["progress"] == 100

    def test_update_progress_missing_area(self, client: FlaskClient):
        resp = client.post("/api/areas/nope/progress", json={"progress": 5})
        assert resp.status_code == 404

    def test_add_and_remove_structure(self, client: FlaskClient):
        resp = client.post("/api/areas/area-1/structures", json={
            "name": "Raft", "type": "Foundation", "recommended_grade": "30MPa",
        })
        assert resp.status_code == 201
        structure_id = resp.get_json()["id"]

        resp = client.delete(f"/api/areas/area-1/structures/{structure_id}")
        assert resp.get_json() == {"removed": structure_id}
        assert client.delete(f"/api/areas/area-1/structures/{structure_id}").status_code == 404

    def test_add_structure_bad_type(self, client: FlaskClient):
        resp = client.post("/api/areas/area-1/structures", json={"name": "Raft", "type": "Bridge"})
        assert resp.status_code == 400


ORDER_BODY = {
    "project_name": "Web Project",
    "area_id": "area-1",
    "structure_id": "struct-1",
    "volume": 30,
    "grade": "25MPa",
    "delivery_date": "2026-04-01",
}


class TestOrderRoutes:
    def test_create_and_fetch(self, client: FlaskClient):
        resp = client.post("/api/orders", json=ORDER_BODY)
        assert resp.status_code == 201
        order = resp.get_json()
        assert order["status"] == "Pending"

        assert client.get(f"/api/orders/{order['id']}").get_json()["id"] == order["id"]
        assert len(client.get("/api/orders").get_json()) == 1

    def test_invalid_order(self, client: FlaskClient):
        resp = client.post("/api/orders", json={"project_name": "No volume"})
        assert resp.status_code == 400

    def test_update_status(self, client: FlaskClient):
        order_id = client.post("/api/orders", json=ORDER_BODY).get_json()["id"]
        resp = client.post(f"/api/orders/{order_id}/status", json={"status": "Dispatched"})
        assert resp.status_code == 200
        assert resp.get_json()["status"] == "Dispatched"

    def test_update_status_unknown_value(self, client: FlaskClient):
        order_id = client.post("/api/orders", json=ORDER_BODY).get_json()["id"]
        resp = client.post(f"/api/orders/{order_id}/status", json={"status": "Lost"})
        assert resp.status_code == 400

    def test_update_status_missing_order(self, client: FlaskClient):
        resp = client.post("/api/orders/nope/status", json={"status": "Confirmed"})
        assert resp.status_code == 404

    def test_filter_by_status(self, client: FlaskClient):
        first = client.post("/api/orders", json=ORDER_BODY).get_json()["id"]
        client.post("/api/orders", json=ORDER_BODY)
        client.post(f"/api/orders/{first}/status", json={"status": "Confirmed"})

        confirmed = client.get("/api/orders?status=Confirmed").get_json()
        assert [o["id"] for o in confirmed] == [first]
        assert client.get("/api/orders?status=Bogus").status_code == 400

    def test_statistics(self, client: FlaskClient):
        client.post("/api/orders", json=ORDER_BODY)
        data = client.get("/api/orders/statistics").get_json()
        assert data["statistics"]["total_orders"] == 1
        assert len(data["trend"]) == 7


class TestActivityAndActorRoutes:
    def test_activities_newest_first(self, client: FlaskClient):
        client.post("/api/areas", json={"name": "Zone D"})
        client.post("/api/areas/area-1/progress", json={"progress": 70})
        data = client.get("/api/activities").get_json()
        assert [a["action"] for a in data] == ["update", "create"]

    def test_activities_limit(self, client: FlaskClient):
        for n in range(5):
            client.post("/api/areas/area-1/progress", json={"progress": n})
        assert len(client.get("/api/activities?limit=2").get_json()) == 2

    def test_actor_round_trip(self, client: FlaskClient):
        assert client.get("/api/actor").get_json()["id"] == "user-1"
        resp = client.post("/api/actor", json={
            "id": "admin-1", "role": "admin", "name": "Admin", "email": "a@example.com",
        })
        assert resp.status_code == 200
        assert resp.get_json()["email"] == "a@example.com"

        client.post("/api/areas", json={"name": "Zone D"})
        assert client.get("/api/activities").get_json()[0]["user_id"] == "admin-1"

    def test_actor_bad_role(self, client: FlaskClient):
        resp = client.post("/api/actor", json={"id": "x", "role": "root", "name": "X"})
        assert resp.status_code == 400

    def test_health(self, client: FlaskClient):
        data = client.get("/api/health").get_json()
        assert data["status"] == "healthy"
        assert {c["name"] for c in data["components"]} == {"event_bus", "audit_log", "simulator"}


class TestEventStream:
    def test_forwards_events(self):
        bus = EventBus()
        stream = EventStream(bus, [Topic.ORDERS])
        bus.publish(Topic.ORDERS, {"id": "ord-1"}, "create")

        event = stream.get(timeout=0.1)
        assert event["seq"] == 1
        assert event["topic"] == "orders"
        assert event["action"] == "create"
        assert event["data"] == {"id": "ord-1"}
        assert stream.get(timeout=0.01) is None

    def test_serializes_models(self, session: Session):
        stream = EventStream(session.store.bus, list(Topic))
        session.store.update_area_progress("area-1", 80)

        first, second = stream.get(0.1), stream.get(0.1)
        assert first["topic"] == "activities"
        assert second["topic"] == "projectAreas"
        assert second["data"]["progress"] == 80
        assert isinstance(second["data"]["last_updated"], str)

    def test_close_unsubscribes(self):
        bus = EventBus()
        stream = EventStream(bus, list(Topic))
        assert bus.subscriber_count() == 3
        stream.close()
        assert bus.subscriber_count() == 0

    def test_overflow_ends_stream(self):
        bus = EventBus()
        stream = EventStream(bus, [Topic.ORDERS], maxsize=1)
        bus.publish(Topic.ORDERS, 1, "create")
        bus.publish(Topic.ORDERS, 2, "create")
        assert stream.overflowed

        events = list(stream.events(heartbeat_interval=0.01))
        assert events == []
        assert bus.subscriber_count() == 0

    def test_heartbeat_when_idle(self):
        bus = EventBus()
        stream = EventStream(bus, [Topic.ORDERS])
        gen = stream.events(heartbeat_interval=0.01)
        assert next(gen)["topic"] == "heartbeat"
        gen.close()
        assert bus.subscriber_count() == 0

    def test_parse_topics(self):
        assert _parse_topics(None) == list(Topic)
        assert _parse_topics("orders, activities") == [Topic.ORDERS, Topic.ACTIVITIES]
        assert _parse_topics("weather") == list(Topic)

    def test_endpoint_subscribes(self, client: FlaskClient, session: Session):
        resp = client.get("/api/events?topics=orders")
        try:
            assert resp.status_code == 200
            assert resp.mimetype == "text/event-stream"
            assert session.store.bus.subscriber_count(Topic.ORDERS) == 1
        finally:
            resp.close()
