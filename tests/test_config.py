from __future__ import annotations

from pathlib import Path
import sys

root = Path(__file__).resolve().parents[1]
if str(root) not in sys.path:
    sys.path.insert(0, str(root))

from tsw_inspector.config import Settings


def test_defaults_point_at_local_simulation(monkeypatch):
    for name in ("TSW_BASE_URL", "POLL_INTERVAL_SECONDS", "SETTINGS_BACKEND"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings.from_env()

    assert settings.tsw_base_url == "http://localhost:31270"
    assert settings.poll_interval_seconds == 2.0
    assert settings.settings_backend == "file"


def test_base_url_is_trimmed(monkeypatch):
    monkeypatch.setenv("TSW_BASE_URL", "  http://192.168.1.20:31270/\n")

    settings = Settings.from_env()

    assert settings.tsw_base_url == "http://192.168.1.20:31270"


def test_bad_numbers_fall_back_and_minimums_apply(monkeypatch):
    monkeypatch.setenv("POLL_INTERVAL_SECONDS", "soon")
    monkeypatch.setenv("TSW_REQUEST_TIMEOUT_SECONDS", "0")
    monkeypatch.setenv("MAX_REQUEST_BYTES", "10")

    settings = Settings.from_env()

    assert settings.poll_interval_seconds == 2.0
    assert settings.request_timeout_seconds == 0.5
    assert settings.max_request_bytes == 1024
