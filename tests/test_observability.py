"""
Tests for observability — health checks + logging setup.
"""

import logging
import random

from readymix.core.observability.health import (
    ComponentHealth,
    SystemHealth,
    check_audit_log,
    check_event_bus,
    check_simulator,
    check_system_health,
)
from readymix.core.observability.logging_config import resolve_level, setup_logging
from readymix.core.persistence.audit import AuditLog
from readymix.core.services.entity_store import EntityStore
from readymix.core.services.event_bus import EventBus, Topic
from readymix.core.services.simulator import BackgroundSimulator
from readymix.core.use_cases.session import open_session

# ── Health Check Tests ───────────────────────────────────────────────


class TestComponentHealth:
    def test_defaults(self):
        c = ComponentHealth(name="test")
        assert c.status == "unknown"

    def test_to_dict(self):
        c = ComponentHealth(name="test", status="healthy", message="ok")
        d = c.to_dict()
        assert d["name"] == "test"
        assert d["status"] == "healthy"


class TestSystemHealth:
    def test_all_healthy(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="healthy"))
        h.add(ComponentHealth(name="b", status="healthy"))
        assert h.status == "healthy"

    def test_one_degraded(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="healthy"))
        h.add(ComponentHealth(name="b", status="degraded"))
        assert h.status == "degraded"

    def test_unhealthy_wins(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="degraded"))
        h.add(ComponentHealth(name="b", status="unhealthy"))
        assert h.status == "unhealthy"

    def test_unknown_beats_healthy(self):
        h = SystemHealth()
        h.add(ComponentHealth(name="a", status="healthy"))
        h.add(ComponentHealth(name="b"))
        assert h.status == "unknown"

    def test_timestamp_set(self):
        assert SystemHealth().timestamp


class TestChecks:
    def test_event_bus_healthy(self):
        bus = EventBus()
        bus.subscribe(Topic.ORDERS, lambda *a: None)
        c = check_event_bus(bus)
        assert c.status == "healthy"
        assert c.details["subscribers"]["orders"] == 1

    def test_event_bus_degraded_after_observer_failure(self):
        bus = EventBus()

        def broken(*args):
            raise RuntimeError("boom")

        bus.subscribe(Topic.ORDERS, broken)
        bus.publish(Topic.ORDERS, None, "create")
        c = check_event_bus(bus)
        assert c.status == "degraded"
        assert c.details["observer_failures"] == 1

    def test_audit_log(self):
        audit = AuditLog(capacity=10)
        c = check_audit_log(audit)
        assert c.status == "healthy"
        assert c.message == "0/10 entries retained"

    def test_simulator_disabled(self):
        c = check_simulator(None)
        assert c.status == "healthy"
        assert c.message == "Disabled"

    def test_simulator_idle(self):
        sim = BackgroundSimulator(EntityStore(), probability=1.0, rng=random.Random(1))
        sim.tick()
        c = check_simulator(sim)
        assert c.details["running"] is False
        assert c.details["ticks"] == 1
        assert c.message.startswith("idle")

    def test_system_health(self):
        store = EntityStore()
        h = check_system_health(bus=store.bus, audit=store.audit, simulator=None)
        assert [c.name for c in h.components] == ["event_bus", "audit_log", "simulator"]
        assert h.status == "healthy"

    def test_system_health_without_simulator(self):
        h = check_system_health(bus=EventBus(), include_simulator=False)
        assert [c.name for c in h.components] == ["event_bus"]

    def test_session_health(self):
        session = open_session()
        d = session.health().to_dict()
        assert d["status"] == "healthy"
        assert len(d["components"]) == 3


# ── Logging Tests ────────────────────────────────────────────────────


class TestSetupLogging:
    def test_level_applied(self):
        setup_logging(level="INFO")
        root = logging.getLogger()
        assert root.level == logging.INFO
        assert len(root.handlers) == 1

    def test_unknown_level_falls_back_to_warning(self):
        setup_logging(level="LOUD")
        assert logging.getLogger().level == logging.WARNING

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "rmx.log"
        setup_logging(level="WARNING", log_file=str(log_file), log_file_level="DEBUG")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        logging.getLogger("readymix.test").debug("to the file only")
        for handler in root.handlers:
            handler.flush()
        assert "to the file only" in log_file.read_text()

    def test_noisy_loggers_quieted(self):
        setup_logging(level="INFO")
        assert logging.getLogger("werkzeug").level == logging.WARNING


class TestResolveLevel:
    def test_flags_win(self):
        env = {"RMX_LOG_LEVEL": "ERROR"}
        assert resolve_level(debug=True, environ=env) == "DEBUG"
        assert resolve_level(verbose=True, environ=env) == "INFO"
        assert resolve_level(quiet=True, environ={}) == "ERROR"

    def test_environment_then_default(self):
        assert resolve_level(environ={"RMX_LOG_LEVEL": "INFO"}) == "INFO"
        assert resolve_level(environ={}) == "WARNING"
