"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

import pytest

from readymix.core.models.order import OrderDraft
from readymix.core.services.entity_store import EntityStore


class Recorder:
    """Observer that records every ``(payload, action, topic)`` it is handed."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, str, str]] = []

    def __call__(self, payload: Any, action: str, topic: str) -> None:
        self.events.append((payload, action, topic))

    @property
    def topics(self) -> list[str]:
        return [str(topic) for _, _, topic in self.events]

    @property
    def actions(self) -> list[str]:
        return [str(action) for _, action, _ in self.events]


@pytest.fixture(autouse=True)
def _reset_root_logger():
    """Undo handlers and level left behind by ``setup_logging`` calls."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            if isinstance(handler, logging.FileHandler):
                handler.close()
    root.setLevel(level)


@pytest.fixture
def store() -> EntityStore:
    """A freshly seeded store with its own bus and audit log."""
    return EntityStore()


@pytest.fixture
def empty_store() -> EntityStore:
    """A store with no seed areas."""
    return EntityStore(seed=False)


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()


@pytest.fixture
def order_draft():
    """Factory for valid order drafts; keyword arguments override fields."""

    def make(**overrides: Any) -> OrderDraft:
        fields: dict[str, Any] = {
            "project_name": "Test Project",
            "location": "Test Site",
            "area_id": "area-1",
            "structure_id": "struct-1",
            "volume": 25,
            "grade": "30MPa",
            "slump": 100,
            "delivery_date": date(2026, 3, 2),
            "delivery_time": "08:00",
            "contact_name": "Sam",
            "contact_phone": "+27 82 111 2222",
        }
        fields.update(overrides)
        return OrderDraft(**fields)

    return make
