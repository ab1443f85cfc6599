from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _env_int(name: str, default: int, minimum: int | None = None) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if minimum is not None:
        value = max(minimum, value)
    return value


def _env_float(name: str, default: float, minimum: float | None = None) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        return default
    if minimum is not None:
        value = max(minimum, value)
    return value


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return default
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items if items else default


@dataclass(slots=True)
class Settings:
    app_name: str
    environment: str
    log_level: str
    tsw_base_url: str
    request_timeout_seconds: float
    poll_interval_seconds: float
    time_of_day_refresh_seconds: float
    settings_backend: str
    settings_path: Path
    redis_url: str
    allowed_origins: List[str]
    max_request_bytes: int

    @classmethod
    def from_env(cls) -> "Settings":
        default_settings_path = Path.home() / ".tsw_inspector" / "settings.json"

        return cls(
            app_name=_env_str("APP_NAME", "TSW Inspector"),
            environment=_env_str("APP_ENV", "production"),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
            tsw_base_url=_env_str("TSW_BASE_URL", "http://localhost:31270").rstrip("/"),
            request_timeout_seconds=_env_float("TSW_REQUEST_TIMEOUT_SECONDS", 5.0, minimum=0.5),
            poll_interval_seconds=_env_float("POLL_INTERVAL_SECONDS", 2.0, minimum=0.1),
            time_of_day_refresh_seconds=_env_float("TIME_OF_DAY_REFRESH_SECONDS", 1.0, minimum=0.1),
            settings_backend=_env_str("SETTINGS_BACKEND", "file").lower(),
            settings_path=Path(_env_str("SETTINGS_PATH", str(default_settings_path))),
            redis_url=_env_str("REDIS_URL", "redis://localhost:6379/0"),
            allowed_origins=_env_list("ALLOWED_ORIGINS", ["http://localhost:5000"]),
            max_request_bytes=_env_int("MAX_REQUEST_BYTES", 65_536, minimum=1024),
        )
