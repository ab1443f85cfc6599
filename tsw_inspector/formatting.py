from __future__ import annotations

import re
from datetime import datetime
from typing import Any

_ISO_DATETIME = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}")
_TIME_OFFSET = re.compile(r"^[+-]\d{2}:\d{2}:\d{2}")

LARGE_NUMBER = 1e15


def parse_iso_datetime(value: str) -> datetime | None:
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def stringify(value: Any) -> str:
    """Render a scalar the way it would be typed back into an input box."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def format_value(value: Any) -> dict[str, Any]:
    """Classify an endpoint value into a display tree for the browser."""
    if value is None:
        return {"kind": "null", "display": "null"}

    if isinstance(value, bool):
        return {"kind": "boolean", "display": "true" if value else "false"}

    if isinstance(value, (int, float)):
        node: dict[str, Any] = {"kind": "number", "display": stringify(value)}
        if abs(value) > LARGE_NUMBER:
            node["scientific"] = f"{value:.2e}"
            node["formatted"] = f"{value:,.0f}"
        return node

    if isinstance(value, str):
        if _ISO_DATETIME.match(value):
            parsed = parse_iso_datetime(value)
            if parsed is not None:
                return {
                    "kind": "datetime",
                    "display": value,
                    "parsed": parsed.strftime("%Y-%m-%d %H:%M:%S"),
                }
        if _TIME_OFFSET.match(value):
            return {"kind": "offset", "display": value}
        return {"kind": "string", "display": value}

    if isinstance(value, (list, tuple)):
        return {
            "kind": "array",
            "display": f"Array ({len(value)} items)",
            "items": [format_value(item) for item in value],
        }

    if isinstance(value, dict):
        return {
            "kind": "object",
            "display": f"Object ({len(value)} properties)",
            "entries": [{"key": str(key), "value": format_value(item)} for key, item in value.items()],
        }

    return {"kind": "unknown", "display": str(value)}
