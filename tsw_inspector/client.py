from __future__ import annotations

import logging
import math
from typing import Any

import requests

from .exceptions import TransportError
from .models import ApiResponse

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:31270"
API_KEY_HEADER = "DTGCommKey"
ROOT_PREFIX = "Root/"


def normalize_node_path(node_path: str) -> str:
    """Strip the display tree's ``Root/`` prefix; the remote API never sees it."""
    if node_path.startswith(ROOT_PREFIX):
        return node_path[len(ROOT_PREFIX) :]
    return node_path


def endpoint_path(node_path: str, endpoint: str) -> str:
    return f"{normalize_node_path(node_path)}.{endpoint}"


def format_number(value: float) -> str:
    # Matches how the simulation's own tooling renders numbers: 1.0 -> "1".
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if float(value).is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(float(value))


class TSWClient:
    """HTTP client for the Train Sim World CommAPI."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def _call(self, method: str, url: str, params: dict[str, str] | None = None) -> ApiResponse:
        headers = {
            API_KEY_HEADER: self.api_key,
            "Content-Type": "application/json",
        }
        try:
            response = self._session.request(
                method,
                url,
                headers=headers,
                params=params,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Transport failure on %s %s: %s", method, url, exc)
            raise TransportError(str(exc) or exc.__class__.__name__) from exc

        if not 200 <= response.status_code < 300:
            logger.error("Transport failure on %s %s: HTTP %s", method, url, response.status_code)
            raise TransportError(
                f"HTTP error! status: {response.status_code}",
                remote_status=response.status_code,
            )

        try:
            payload: Any = response.json()
        except ValueError as exc:
            logger.error("Transport failure on %s %s: malformed JSON", method, url)
            raise TransportError("Malformed JSON in response") from exc

        if not isinstance(payload, dict):
            logger.error("Transport failure on %s %s: response is not an object", method, url)
            raise TransportError("Malformed JSON in response")

        return ApiResponse.from_dict(payload)

    def list(self, node_path: str | None = None) -> ApiResponse:
        if node_path:
            return self._call("GET", f"{self.base_url}/list/{node_path}")
        return self._call("GET", f"{self.base_url}/list/")

    def get(self, node_path: str) -> ApiResponse:
        return self._call("GET", f"{self.base_url}/get/{node_path}")

    def set(self, node_path: str, value: float) -> ApiResponse:
        return self._call(
            "PATCH",
            f"{self.base_url}/set/{node_path}",
            params={"value": format_number(value)},
        )

    def close(self) -> None:
        self._session.close()
