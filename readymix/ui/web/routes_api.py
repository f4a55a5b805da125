"""
API routes — REST endpoints over the entity store.

All endpoints return JSON.  Grouped under /api/ prefix.  Writes go
through the store, so every one of them is audited and published.
"""

from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, current_app, jsonify, request

from readymix.core.errors import InvalidArgumentError
from readymix.core.services.entity_store import EntityStore
from readymix.core.use_cases.session import Session

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__)


def _session() -> Session:
    return current_app.config["SESSION"]


def _store() -> EntityStore:
    return _session().store


def _body() -> dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgumentError("Expected a JSON object body")
    return data


def _progress(data: dict[str, Any], default: float | None = None) -> float:
    progress = data.get("progress", default)
    if not isinstance(progress, (int, float)) or isinstance(progress, bool):
        raise InvalidArgumentError("'progress' must be a number")
    return progress


def _not_found(what: str, ident: str):  # type: ignore[no-untyped-def]
    return jsonify({"error": f"{what} {ident!r} not found"}), 404


# ── Areas ────────────────────────────────────────────────────────────


@api_bp.route("/areas")
def api_areas():  # type: ignore[no-untyped-def]
    """All project areas with their structures."""
    return jsonify([a.model_dump(mode="json") for a in _store().get_project_areas()])


@api_bp.route("/areas/<area_id>")
def api_area(area_id: str):  # type: ignore[no-untyped-def]
    area = _store().get_area(area_id)
    if area is None:
        return _not_found("Area", area_id)
    return jsonify(area.model_dump(mode="json"))


@api_bp.route("/areas", methods=["POST"])
def api_add_area():  # type: ignore[no-untyped-def]
    """Create an area: ``{"name": ..., "progress": 0}``."""
    data = _body()
    area = _store().add_area(data.get("name", ""), _progress(data, 0))
    return jsonify(area.model_dump(mode="json")), 201


@api_bp.route("/areas/<area_id>", methods=["DELETE"])
def api_remove_area(area_id: str):  # type: ignore[no-untyped-def]
    if not _store().remove_area(area_id):
        return _not_found("Area", area_id)
    return jsonify({"removed": area_id})


@api_bp.route("/areas/<area_id>/progress", methods=["POST"])
def api_area_progress(area_id: str):  # type: ignore[no-untyped-def]
    """Set progress: ``{"progress": 70}`` (clamped to 0..100)."""
    if not _store().update_area_progress(area_id, _progress(_body())):
        return _not_found("Area", area_id)
    return jsonify(_store().get_area(area_id).model_dump(mode="json"))


@api_bp.route("/areas/<area_id>/structures", methods=["POST"])
def api_add_structure(area_id: str):  # type: ignore[no-untyped-def]
    """Add a structure: ``{"name", "type", "recommended_grade"}``."""
    data = _body()
    structure = _store().add_structure_to_area(
        area_id,
        data.get("name", ""),
        data.get("type", "General"),
        data.get("recommended_grade", ""),
    )
    if structure is None:
        return _not_found("Area", area_id)
    return jsonify(structure.model_dump(mode="json")), 201


@api_bp.route("/areas/<area_id>/structures/<structure_id>", methods=["DELETE"])
def api_remove_structure(area_id: str, structure_id: str):  # type: ignore[no-untyped-def]
    if not _store().remove_structure(area_id, structure_id):
        return _not_found("Structure", f"{area_id}/{structure_id}")
    return jsonify({"removed": structure_id})


# ── Orders ───────────────────────────────────────────────────────────


@api_bp.route("/orders")
def api_orders():  # type: ignore[no-untyped-def]
    """All orders, optionally filtered: ``?status=Pending``."""
    status = request.args.get("status")
    if status:
        try:
            orders = _session().orders.orders_by_status(status)
        except ValueError:
            raise InvalidArgumentError(f"Unknown order status: {status!r}") from None
    else:
        orders = _store().get_orders()
    return jsonify([o.model_dump(mode="json") for o in orders])


@api_bp.route("/orders/statistics")
def api_order_statistics():  # type: ignore[no-untyped-def]
    service = _session().orders
    return jsonify({
        "statistics": service.statistics().to_dict(),
        "trend": [p.to_dict() for p in service.daily_trend()],
    })


@api_bp.route("/orders/<order_id>")
def api_order(order_id: str):  # type: ignore[no-untyped-def]
    order = _store().get_order(order_id)
    if order is None:
        return _not_found("Order", order_id)
    return jsonify(order.model_dump(mode="json"))


@api_bp.route("/orders", methods=["POST"])
def api_create_order():  # type: ignore[no-untyped-def]
    order = _store().create_order(_body())
    return jsonify(order.model_dump(mode="json")), 201


@api_bp.route("/orders/<order_id>/status", methods=["POST"])
def api_order_status(order_id: str):  # type: ignore[no-untyped-def]
    """Set status: ``{"status": "Dispatched"}``."""
    status = _body().get("status", "")
    if not _store().update_order_status(order_id, status):
        return _not_found("Order", order_id)
    return jsonify(_store().get_order(order_id).model_dump(mode="json"))


# ── Activities, actor, health ────────────────────────────────────────


@api_bp.route("/activities")
def api_activities():  # type: ignore[no-untyped-def]
    """Newest-first activity feed: ``?limit=20``."""
    limit = request.args.get("limit", type=int)
    activities = _store().get_activities()
    if limit is not None and limit >= 0:
        activities = activities[:limit]
    return jsonify([a.model_dump(mode="json") for a in activities])


@api_bp.route("/actor")
def api_actor():  # type: ignore[no-untyped-def]
    return jsonify(_store().get_current_user().model_dump(mode="json"))


@api_bp.route("/actor", methods=["POST"])
def api_set_actor():  # type: ignore[no-untyped-def]
    """Switch actor: ``{"id", "role", "name", ...agent info}``."""
    data = _body()
    agent_info = {k: data[k] for k in ("site", "company", "phone", "email") if k in data}
    try:
        actor = _store().set_current_user(
            data.get("id", ""), data.get("role", ""), data.get("name", ""), **agent_info,
        )
    except ValueError as e:
        raise InvalidArgumentError(f"Invalid actor: {e}") from e
    return jsonify(actor.model_dump(mode="json"))


@api_bp.route("/health")
def api_health():  # type: ignore[no-untyped-def]
    return jsonify(_session().health().to_dict())
