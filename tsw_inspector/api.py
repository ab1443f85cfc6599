from __future__ import annotations

from typing import Any

from flask import Blueprint, jsonify, request

from .config import Settings
from .controls import WEATHER_PRESETS
from .exceptions import ValidationError
from .inspector import Inspector
from .models import ApiNode
from .tree import count_nodes, highlight_segments


def _json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    if body is None:
        return {}
    if not isinstance(body, dict):
        raise ValidationError("JSON payload must be an object")
    return body


def _as_float(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{field_name} must be a number") from exc


def _tree_payload(node: ApiNode, term: str, expanded: set[str]) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "NodePath": node.node_path,
        "NodeName": node.node_name,
        "expanded": node.node_path in expanded,
        "highlight": [
            {"text": text, "match": matched} for text, matched in highlight_segments(node.node_name, term)
        ],
    }
    if node.nodes is not None:
        payload["Nodes"] = [_tree_payload(child, term, expanded) for child in node.nodes]
    return payload


def build_api_blueprint(settings: Settings, inspector: Inspector) -> Blueprint:
    api = Blueprint("api", __name__, url_prefix="/api")

    def node_payload() -> dict[str, Any]:
        detail = inspector.detail
        store = inspector.store
        if detail is None or store is None:
            return {"node": None, "endpoints": {}, "expanded_endpoints": []}
        return {
            "node": detail.to_dict(),
            "endpoints": {name: entry.to_dict() for name, entry in store.snapshot().items()},
            "expanded_endpoints": store.expanded(),
        }

    @api.get("/health")
    def health() -> Any:
        return jsonify(
            {
                "status": "ok",
                "service": settings.app_name,
                "connected": inspector.connected,
                "active_polls": len(inspector.scheduler),
            }
        )

    @api.get("/session")
    def session() -> Any:
        return jsonify(
            {
                "connected": inspector.connected,
                "error": inspector.connection_error,
                "saved_api_key": inspector.saved_api_key() or "",
                "base_url": settings.tsw_base_url,
                "time_of_day_refresh_seconds": settings.time_of_day_refresh_seconds,
            }
        )

    @api.post("/connect")
    def connect() -> Any:
        body = _json_body()
        nodes = inspector.connect(str(body.get("api_key", "")))
        return jsonify({"connected": True, "root_nodes": len(nodes)})

    @api.post("/refresh")
    def refresh() -> Any:
        nodes = inspector.refresh()
        return jsonify({"connected": True, "root_nodes": len(nodes)})

    @api.post("/disconnect")
    def disconnect() -> Any:
        inspector.disconnect()
        return jsonify({"connected": False})

    @api.get("/nodes")
    def nodes() -> Any:
        term = request.args.get("search", "")
        filtered = inspector.browse(term)
        expanded = set(inspector.expansion.expanded_paths())
        return jsonify(
            {
                "search": term,
                "count": count_nodes(filtered),
                "expanded": sorted(expanded),
                "nodes": [_tree_payload(node, term, expanded) for node in filtered],
            }
        )

    @api.post("/nodes/toggle")
    def toggle_tree_node() -> Any:
        path = str(_json_body().get("path", "")).strip()
        if not path:
            raise ValidationError("path is required")
        return jsonify({"path": path, "expanded": inspector.toggle_tree_node(path)})

    @api.get("/node")
    def current_node() -> Any:
        return jsonify(node_payload())

    @api.post("/node")
    def select_node() -> Any:
        path = _json_body().get("path")
        if path is not None and not isinstance(path, str):
            raise ValidationError("path must be a string or null")
        inspector.select_node(path or None)
        return jsonify(node_payload())

    @api.get("/endpoints/<name>")
    def endpoint_state(name: str) -> Any:
        return jsonify(inspector.endpoint_state(name).to_dict())

    @api.post("/endpoints/<name>/fetch")
    def fetch_endpoint(name: str) -> Any:
        return jsonify(inspector.fetch_endpoint(name).to_dict())

    @api.post("/endpoints/<name>/toggle")
    def toggle_endpoint(name: str) -> Any:
        expanded = inspector.toggle_endpoint(name)
        payload = inspector.endpoint_state(name).to_dict()
        payload["expanded"] = expanded
        return jsonify(payload)

    @api.post("/endpoints/<name>/monitor")
    def monitor_endpoint(name: str) -> Any:
        return jsonify(inspector.toggle_monitoring(name).to_dict())

    @api.put("/endpoints/<name>/input")
    def edit_endpoint(name: str) -> Any:
        value = _json_body().get("value", "")
        return jsonify(inspector.edit_endpoint(name, "" if value is None else str(value)).to_dict())

    @api.post("/endpoints/<name>/write")
    def write_endpoint(name: str) -> Any:
        body = _json_body()
        value = body.get("value")
        return jsonify(inspector.write_endpoint(name, None if value is None else str(value)).to_dict())

    @api.post("/controls/push-button/press")
    def press_button() -> Any:
        return jsonify({"ok": inspector.press_button()})

    @api.post("/controls/push-button/release")
    def release_button() -> Any:
        return jsonify({"ok": inspector.release_button()})

    @api.get("/controls/lever")
    def lever_state() -> Any:
        state = inspector.lever_state()
        return jsonify({"lever": state.to_dict() if state is not None else None})

    @api.post("/controls/lever")
    def move_lever() -> Any:
        value = _as_float(_json_body().get("value"), "value")
        return jsonify({"ok": inspector.move_lever(value), "current": value})

    @api.post("/controls/lever/release")
    def release_lever() -> Any:
        return jsonify({"current": inspector.release_lever()})

    @api.get("/controls/weather/presets")
    def weather_presets() -> Any:
        return jsonify({"presets": [preset.to_dict() for preset in WEATHER_PRESETS]})

    @api.post("/controls/weather/apply")
    def apply_weather() -> Any:
        name = str(_json_body().get("preset", "")).strip()
        if not name:
            raise ValidationError("preset is required")
        return jsonify(inspector.apply_weather_preset(name).to_dict())

    @api.get("/controls/time-of-day")
    def time_of_day() -> Any:
        return jsonify(inspector.time_of_day().to_dict())

    return api
