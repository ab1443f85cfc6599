from __future__ import annotations

import logging
import math
import threading
from dataclasses import asdict, dataclass, replace
from typing import Any, Callable

from .client import TSWClient, endpoint_path
from .exceptions import TransportError
from .formatting import format_value, stringify

logger = logging.getLogger(__name__)

NO_VALUE_RETURNED = "No value returned"
INVALID_NUMERIC_VALUE = "Invalid numeric value"
FAILED_TO_SET_VALUE = "Failed to set value"


@dataclass(slots=True)
class EndpointValue:
    endpoint: str
    value: Any = None
    loading: bool = False
    error: str | None = None
    monitoring: bool = False
    input_value: str = ""
    setting_value: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["display"] = format_value(self.value)
        return payload


def parse_numeric(text: str | None) -> float | None:
    if text is None:
        return None
    try:
        number = float(str(text).strip())
    except ValueError:
        return None
    if math.isnan(number):
        return None
    return number


class EndpointValueStore:
    """Fetch, edit and write state for the endpoints of one selected node.

    A store is bound to a single node. Selecting another node replaces the
    store, so completions of requests issued for the old node only ever land
    in the discarded instance.
    """

    def __init__(self, client: TSWClient, node_path: str) -> None:
        self.client = client
        self.node_path = node_path
        self._entries: dict[str, EndpointValue] = {}
        self._expanded: set[str] = set()
        self._closed = False
        self._lock = threading.RLock()

    def _update(self, name: str, mutate: Callable[[EndpointValue], None]) -> EndpointValue:
        with self._lock:
            entry = self._entries.get(name)
            if entry is None:
                entry = EndpointValue(endpoint=name)
                if not self._closed:
                    self._entries[name] = entry
            mutate(entry)
            return replace(entry)

    def get(self, name: str) -> EndpointValue | None:
        with self._lock:
            entry = self._entries.get(name)
            return replace(entry) if entry is not None else None

    def snapshot(self) -> dict[str, EndpointValue]:
        with self._lock:
            return {name: replace(entry) for name, entry in self._entries.items()}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def fetch(self, name: str, update_loading: bool = True) -> EndpointValue:
        if update_loading:

            def start(entry: EndpointValue) -> None:
                entry.loading = True
                entry.error = None

            self._update(name, start)

        path = endpoint_path(self.node_path, name)
        try:
            response = self.client.get(path)
        except TransportError as exc:
            logger.warning("Transport failure fetching %s: %s", path, exc.message)

            def failed(entry: EndpointValue) -> None:
                entry.loading = False
                entry.error = exc.message

            return self._update(name, failed)

        if not response.is_success or response.values is None:
            logger.info("Remote rejected get %s: %s", path, response.error or response.result)

            def rejected(entry: EndpointValue) -> None:
                entry.value = None
                entry.loading = False
                entry.error = NO_VALUE_RETURNED

            return self._update(name, rejected)

        values = response.values
        first = response.first_value()

        def loaded(entry: EndpointValue) -> None:
            entry.value = values
            entry.loading = False
            entry.error = None
            if not entry.input_value:
                entry.input_value = stringify(first)

        return self._update(name, loaded)

    def edit(self, name: str, text: str) -> EndpointValue:
        def apply(entry: EndpointValue) -> None:
            entry.input_value = text
            entry.error = None

        return self._update(name, apply)

    def write(self, name: str, text: str | None = None) -> EndpointValue:
        if text is None:
            current = self.get(name)
            text = current.input_value if current is not None else ""

        number = parse_numeric(text)
        if number is None:

            def invalid(entry: EndpointValue) -> None:
                entry.error = INVALID_NUMERIC_VALUE
                entry.setting_value = False

            return self._update(name, invalid)

        def begin(entry: EndpointValue) -> None:
            entry.setting_value = True
            entry.error = None

        self._update(name, begin)

        path = endpoint_path(self.node_path, name)
        try:
            response = self.client.set(path, number)
        except TransportError as exc:
            logger.warning("Transport failure setting %s: %s", path, exc.message)

            def failed(entry: EndpointValue) -> None:
                entry.setting_value = False
                entry.error = exc.message

            return self._update(name, failed)

        if not response.is_success:
            logger.info("Remote rejected set %s=%s: %s", path, number, response.error or response.result)

            def rejected(entry: EndpointValue) -> None:
                entry.setting_value = False
                entry.error = FAILED_TO_SET_VALUE

            return self._update(name, rejected)

        # The set response does not carry the new value; read it back.
        self.fetch(name, update_loading=False)

        def done(entry: EndpointValue) -> None:
            entry.setting_value = False
            entry.error = None

        return self._update(name, done)

    def set_monitoring(self, name: str, monitoring: bool) -> EndpointValue:
        def apply(entry: EndpointValue) -> None:
            entry.monitoring = monitoring

        return self._update(name, apply)

    def is_expanded(self, name: str) -> bool:
        with self._lock:
            return name in self._expanded

    def expanded(self) -> list[str]:
        with self._lock:
            return sorted(self._expanded)

    def toggle_expanded(self, name: str) -> bool:
        with self._lock:
            if name in self._expanded:
                self._expanded.discard(name)
                return False
            self._expanded.add(name)
        self.fetch(name, update_loading=True)
        return True

    def close(self) -> None:
        with self._lock:
            self._closed = True
            self._entries.clear()
            self._expanded.clear()
