from __future__ import annotations

from pathlib import Path
import sys
from typing import Any

import pytest

root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from tsw_inspector.config import Settings
from tsw_inspector.models import ApiResponse
from tsw_inspector.scheduler import PollingScheduler
from tsw_inspector.storage import MemorySettingsStore

ROOT_LISTING = {
    "Result": "Success",
    "Nodes": [
        {
            "NodePath": "Root/Cab",
            "NodeName": "Cab",
            "Nodes": [
                {
                    "NodePath": "Root/Cab/Levers",
                    "NodeName": "Levers",
                    "Nodes": [
                        {"NodePath": "Root/Cab/Levers/Reverser", "NodeName": "Reverser"},
                        {"NodePath": "Root/Cab/Levers/Throttle", "NodeName": "Throttle"},
                    ],
                },
                {"NodePath": "Root/Cab/Horn", "NodeName": "Horn"},
            ],
        },
        {"NodePath": "Root/WeatherManager", "NodeName": "WeatherManager"},
        {"NodePath": "Root/TimeOfDay", "NodeName": "TimeOfDay"},
    ],
}


def success(**values: Any) -> dict[str, Any]:
    return {"Result": "Success", "Values": values}


class FakeTSWClient:
    """Records every remote call; answers from per-path tables."""

    def __init__(self, api_key: str = "test-key") -> None:
        self.api_key = api_key
        self.calls: list[tuple[str, str | None, float | None]] = []
        self.lists: dict[str | None, Any] = {None: ROOT_LISTING}
        self.gets: dict[str, Any] = {}
        self.sets: dict[str, Any] = {}
        self.closed = False

    def _respond(self, table: dict, key: Any, default: dict[str, Any]) -> ApiResponse:
        item = table.get(key, default)
        if callable(item):
            item = item()
        if isinstance(item, Exception):
            raise item
        return ApiResponse.from_dict(item)

    def list(self, node_path: str | None = None) -> ApiResponse:
        self.calls.append(("list", node_path, None))
        return self._respond(self.lists, node_path, {"Result": "Error", "Error": "Unknown node"})

    def get(self, node_path: str) -> ApiResponse:
        self.calls.append(("get", node_path, None))
        return self._respond(self.gets, node_path, {"Result": "Error", "Error": "Unknown endpoint"})

    def set(self, node_path: str, value: float) -> ApiResponse:
        self.calls.append(("set", node_path, value))
        return self._respond(self.sets, node_path, {"Result": "Success"})

    def close(self) -> None:
        self.closed = True

    def calls_of(self, method: str) -> list[tuple[str, str | None, float | None]]:
        return [call for call in self.calls if call[0] == method]


class FakeTimer:
    def __init__(self, interval: float, callback, name: str) -> None:
        self.interval = interval
        self.callback = callback
        self.name = name
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self, times: int = 1) -> None:
        for _ in range(times):
            if not self.cancelled:
                self.callback()


class FakeTimerFactory:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval: float, callback, name: str) -> FakeTimer:
        timer = FakeTimer(interval, callback, name)
        self.timers.append(timer)
        return timer

    def active(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if timer.started and not timer.cancelled]


@pytest.fixture()
def settings(tmp_path) -> Settings:
    return Settings(
        app_name="TSW Inspector",
        environment="test",
        log_level="INFO",
        tsw_base_url="http://localhost:31270",
        request_timeout_seconds=5.0,
        poll_interval_seconds=2.0,
        time_of_day_refresh_seconds=1.0,
        settings_backend="memory",
        settings_path=tmp_path / "settings.json",
        redis_url="redis://localhost:6391/0",
        allowed_origins=["http://localhost:5000"],
        max_request_bytes=65_536,
    )


@pytest.fixture()
def tsw() -> FakeTSWClient:
    return FakeTSWClient()


@pytest.fixture()
def timers() -> FakeTimerFactory:
    return FakeTimerFactory()


@pytest.fixture()
def settings_store() -> MemorySettingsStore:
    return MemorySettingsStore()


@pytest.fixture()
def scheduler(timers) -> PollingScheduler:
    return PollingScheduler(2.0, timer_factory=timers)


@pytest.fixture()
def inspector(tsw, settings_store, scheduler):
    from tsw_inspector.inspector import Inspector

    def factory(api_key: str) -> FakeTSWClient:
        tsw.api_key = api_key
        return tsw

    return Inspector(factory, settings_store, scheduler)


@pytest.fixture()
def connected(inspector):
    inspector.connect("test-key")
    return inspector


@pytest.fixture()
def app(settings, tsw, settings_store, timers):
    from tsw_inspector import create_app

    def factory(api_key: str) -> FakeTSWClient:
        tsw.api_key = api_key
        return tsw

    flask_app = create_app(
        settings,
        client_factory=factory,
        settings_store=settings_store,
        timer_factory=timers,
    )
    flask_app.config.update(TESTING=True)
    return flask_app


@pytest.fixture()
def client(app):
    return app.test_client()
