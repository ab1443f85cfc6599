from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from . import controls
from .client import TSWClient, normalize_node_path
from .controls import ControlKind, LeverState, PresetResult, TimeOfDay, WeatherPanel
from .exceptions import ApiResultError, NotConnectedError, TransportError, ValidationError
from .models import ApiNode, ApiResponse
from .scheduler import PollingScheduler
from .storage import SettingsStore
from .store import EndpointValue, EndpointValueStore
from .tree import TreeExpansion, filter_nodes

logger = logging.getLogger(__name__)

CONNECT_FAILED = "Failed to fetch nodes - check your API key"
OBJECT_CLASS_ENDPOINT = "ObjectClass"

ClientFactory = Callable[[str], TSWClient]


@dataclass
class NodeDetail:
    node_path: str
    data: ApiResponse | None = None
    object_class: str | None = None
    controls: list[ControlKind] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_path": self.node_path,
            "data": self.data.to_dict() if self.data is not None else None,
            "object_class": self.object_class,
            "controls": [kind.value for kind in self.controls],
            "error": self.error,
        }


class Inspector:
    """The single inspector session: connection, browse tree and selected node.

    Everything tied to the selected node (endpoint store, poll timers,
    expanded endpoints) is discarded together whenever the selection changes
    or the connection goes away.
    """

    def __init__(
        self,
        client_factory: ClientFactory,
        settings_store: SettingsStore,
        scheduler: PollingScheduler,
    ) -> None:
        self._client_factory = client_factory
        self.settings_store = settings_store
        self.scheduler = scheduler
        self.expansion = TreeExpansion()

        self.client: TSWClient | None = None
        self.connected = False
        self.connection_error: str | None = None
        self.nodes: list[ApiNode] = []

        self.store: EndpointValueStore | None = None
        self.detail: NodeDetail | None = None
        self.weather: WeatherPanel | None = None
        self._object_classes: dict[str, str | None] = {}
        self._lock = threading.RLock()

    # Connection

    def saved_api_key(self) -> str | None:
        return self.settings_store.load_api_key()

    def connect(self, api_key: str) -> list[ApiNode]:
        key = (api_key or "").strip()
        if not key:
            raise ValidationError("API key is required")

        with self._lock:
            self._teardown_selection()
            if self.client is not None:
                self.client.close()
            client = self._client_factory(key)
            self.client = client
            self._object_classes.clear()
            self.expansion.clear()
            nodes = self._load_tree(client)

        self.settings_store.save_api_key(key)
        logger.info("Connected to simulation API: %s root node(s)", len(nodes))
        return nodes

    def refresh(self) -> list[ApiNode]:
        with self._lock:
            return self._load_tree(self._require_client())

    def _load_tree(self, client: TSWClient) -> list[ApiNode]:
        try:
            response = client.list()
        except TransportError as exc:
            self._mark_disconnected(exc.message)
            raise

        if not response.is_success or response.nodes is None:
            logger.info("Remote rejected root listing: %s", response.error or response.result)
            self._mark_disconnected(CONNECT_FAILED)
            raise ApiResultError(CONNECT_FAILED)

        self.nodes = response.nodes
        self.connected = True
        self.connection_error = None
        return self.nodes

    def _mark_disconnected(self, message: str) -> None:
        self.connected = False
        self.connection_error = message

    def disconnect(self) -> None:
        with self._lock:
            self._teardown_selection()
            self.connected = False
            self.connection_error = None
            self.nodes = []
            self.expansion.clear()
        logger.info("Disconnected from simulation API")

    def close(self) -> None:
        with self._lock:
            self._teardown_selection()
            if self.client is not None:
                self.client.close()
                self.client = None
            self.connected = False

    def _require_client(self) -> TSWClient:
        if self.client is None or not self.connected:
            raise NotConnectedError()
        return self.client

    # Browse tree

    def browse(self, term: str = "") -> list[ApiNode]:
        self._require_client()
        filtered = filter_nodes(self.nodes, term)
        if term and term.strip():
            self.expansion.expand_for_search(filtered)
        return filtered

    def toggle_tree_node(self, node_path: str) -> bool:
        self._require_client()
        return self.expansion.toggle(node_path)

    # Node selection

    def _teardown_selection(self) -> None:
        self.scheduler.stop_all()
        if self.store is not None:
            self.store.close()
        self.store = None
        self.detail = None
        self.weather = None

    def select_node(self, node_path: str | None) -> NodeDetail | None:
        with self._lock:
            client = self._require_client()
            self._teardown_selection()
            if not node_path:
                return None

            self.store = EndpointValueStore(client, node_path)
            detail = NodeDetail(node_path=node_path)
            self.detail = detail

        try:
            detail.data = self._fetch_node_data(client, node_path)
        except TransportError as exc:
            logger.warning("Transport failure loading node %s: %s", node_path, exc.message)
            detail.error = exc.message
        # Resolved on its own; a failed listing does not skip the class lookup.
        detail.object_class = self._resolve_object_class(client, node_path)

        detail.controls = controls.resolve_controls(node_path, detail.data, detail.object_class)
        if ControlKind.WEATHER_MANAGER in detail.controls and detail.data is not None:
            with self._lock:
                if self.detail is detail:
                    self.weather = WeatherPanel(client, node_path, detail.data.endpoints or [])
        return detail

    def _fetch_node_data(self, client: TSWClient, node_path: str) -> ApiResponse:
        response = client.list(normalize_node_path(node_path))
        if response.is_success:
            return response
        # Known quirk: the fallback addresses the node by its display path.
        logger.info("Listing %s rejected (%s); falling back to get", node_path, response.error or response.result)
        return client.get(node_path)

    def _resolve_object_class(self, client: TSWClient, node_path: str) -> str | None:
        with self._lock:
            if node_path in self._object_classes:
                return self._object_classes[node_path]

        path = f"{normalize_node_path(node_path)}.{OBJECT_CLASS_ENDPOINT}"
        object_class: str | None = None
        try:
            response = client.get(path)
        except TransportError as exc:
            logger.warning("Transport failure resolving object class for %s: %s", node_path, exc.message)
        else:
            value = response.first_value() if response.is_success else None
            object_class = value if isinstance(value, str) else None

        with self._lock:
            self._object_classes[node_path] = object_class
        return object_class

    def _require_store(self) -> EndpointValueStore:
        self._require_client()
        store = self.store
        if store is None:
            raise ValidationError("No node selected")
        return store

    def _require_detail(self, kind: ControlKind) -> NodeDetail:
        self._require_client()
        detail = self.detail
        if detail is None:
            raise ValidationError("No node selected")
        if kind not in detail.controls:
            raise ValidationError(f"Selected node has no {kind.value.replace('_', ' ')} control")
        return detail

    # Endpoints

    def fetch_endpoint(self, name: str) -> EndpointValue:
        return self._require_store().fetch(name, update_loading=True)

    def toggle_endpoint(self, name: str) -> bool:
        return self._require_store().toggle_expanded(name)

    def edit_endpoint(self, name: str, text: str) -> EndpointValue:
        return self._require_store().edit(name, text)

    def write_endpoint(self, name: str, text: str | None = None) -> EndpointValue:
        return self._require_store().write(name, text)

    def endpoint_state(self, name: str) -> EndpointValue:
        store = self._require_store()
        return store.get(name) or EndpointValue(endpoint=name)

    def _poll_key(self, store: EndpointValueStore, name: str) -> str:
        return f"{store.node_path}.{name}"

    def toggle_monitoring(self, name: str) -> EndpointValue:
        self._require_client()

        # Lookup, flag and timer change happen under the lock that also guards
        # teardown, so a timer is never registered for a discarded store.
        with self._lock:
            store = self.store
            if store is None:
                raise ValidationError("No node selected")
            key = self._poll_key(store, name)
            current = store.get(name)
            if current is not None and current.monitoring:
                self.scheduler.stop(key)
                return store.set_monitoring(name, False)

            store.set_monitoring(name, True)
            self.scheduler.start(key, lambda: store.fetch(name, update_loading=False))

        return store.fetch(name, update_loading=True)

    # Controls

    def press_button(self) -> bool:
        detail = self._require_detail(ControlKind.PUSH_BUTTON)
        return controls.press_button(self._require_client(), detail.node_path)

    def release_button(self) -> bool:
        detail = self._require_detail(ControlKind.PUSH_BUTTON)
        return controls.release_button(self._require_client(), detail.node_path)

    def lever_state(self) -> LeverState | None:
        detail = self._require_detail(ControlKind.IRREGULAR_LEVER)
        return controls.read_lever(self._require_client(), detail.node_path)

    def move_lever(self, value: float) -> bool:
        detail = self._require_detail(ControlKind.IRREGULAR_LEVER)
        return controls.move_lever(self._require_client(), detail.node_path, value)

    def release_lever(self) -> float | None:
        detail = self._require_detail(ControlKind.IRREGULAR_LEVER)
        return controls.release_lever(self._require_client(), detail.node_path)

    def apply_weather_preset(self, preset_name: str) -> PresetResult:
        self._require_detail(ControlKind.WEATHER_MANAGER)
        panel = self.weather
        if panel is None:
            raise ValidationError(controls.NO_WEATHER_ENDPOINTS_MESSAGE)
        return panel.apply(controls.find_preset(preset_name))

    def time_of_day(self) -> TimeOfDay:
        detail = self._require_detail(ControlKind.TIME_OF_DAY)
        return controls.read_time_of_day(self._require_client(), detail.node_path)
