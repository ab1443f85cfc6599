"""Typed views over the simulation API's JSON envelope.

The remote API speaks PascalCase JSON. These dataclasses keep the wire names
in ``to_dict`` so the browser sees exactly what the simulation reported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

RESULT_SUCCESS = "Success"
RESULT_ERROR = "Error"


@dataclass(frozen=True, slots=True)
class ApiEndpoint:
    name: str
    writable: bool = False

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ApiEndpoint":
        return cls(name=str(payload.get("Name", "")), writable=bool(payload.get("Writable", False)))

    def to_dict(self) -> dict[str, Any]:
        return {"Name": self.name, "Writable": self.writable}


@dataclass(frozen=True, slots=True)
class ApiNode:
    node_path: str
    node_name: str
    nodes: list["ApiNode"] | None = None
    endpoints: list[ApiEndpoint] | None = None

    @property
    def has_children(self) -> bool:
        return bool(self.nodes)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ApiNode":
        raw_nodes = payload.get("Nodes")
        raw_endpoints = payload.get("Endpoints")
        return cls(
            node_path=str(payload.get("NodePath", "")),
            node_name=str(payload.get("NodeName", "")),
            nodes=_parse_nodes(raw_nodes) if isinstance(raw_nodes, list) else None,
            endpoints=_parse_endpoints(raw_endpoints) if isinstance(raw_endpoints, list) else None,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"NodePath": self.node_path, "NodeName": self.node_name}
        if self.nodes is not None:
            payload["Nodes"] = [child.to_dict() for child in self.nodes]
        if self.endpoints is not None:
            payload["Endpoints"] = [endpoint.to_dict() for endpoint in self.endpoints]
        return payload


@dataclass(slots=True)
class ApiResponse:
    result: str
    values: dict[str, Any] | None = None
    error: str | None = None
    message: str | None = None
    node_path: str | None = None
    node_name: str | None = None
    nodes: list[ApiNode] | None = None
    endpoints: list[ApiEndpoint] | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def is_success(self) -> bool:
        return self.result == RESULT_SUCCESS

    def first_value(self) -> Any:
        if not self.values:
            return None
        return next(iter(self.values.values()))

    def has_endpoint(self, name: str) -> bool:
        return any(endpoint.name == name for endpoint in self.endpoints or [])

    def writable_endpoints(self) -> list[ApiEndpoint]:
        return [endpoint for endpoint in self.endpoints or [] if endpoint.writable]

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ApiResponse":
        values = payload.get("Values")
        raw_nodes = payload.get("Nodes")
        raw_endpoints = payload.get("Endpoints")
        return cls(
            result=str(payload.get("Result", RESULT_ERROR)),
            values=values if isinstance(values, dict) else None,
            error=_optional_str(payload.get("Error")),
            message=_optional_str(payload.get("Message")),
            node_path=_optional_str(payload.get("NodePath")),
            node_name=_optional_str(payload.get("NodeName")),
            nodes=_parse_nodes(raw_nodes) if isinstance(raw_nodes, list) else None,
            endpoints=_parse_endpoints(raw_endpoints) if isinstance(raw_endpoints, list) else None,
            raw=payload,
        )

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"Result": self.result}
        if self.values is not None:
            payload["Values"] = self.values
        if self.error is not None:
            payload["Error"] = self.error
        if self.message is not None:
            payload["Message"] = self.message
        if self.node_path is not None:
            payload["NodePath"] = self.node_path
        if self.node_name is not None:
            payload["NodeName"] = self.node_name
        if self.nodes is not None:
            payload["Nodes"] = [node.to_dict() for node in self.nodes]
        if self.endpoints is not None:
            payload["Endpoints"] = [endpoint.to_dict() for endpoint in self.endpoints]
        return payload


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _parse_nodes(items: list[Any]) -> list[ApiNode]:
    return [ApiNode.from_dict(item) for item in items if isinstance(item, dict)]


def _parse_endpoints(items: list[Any]) -> list[ApiEndpoint]:
    return [ApiEndpoint.from_dict(item) for item in items if isinstance(item, dict)]
