from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path

import redis

from .config import Settings
from .retry import retry

logger = logging.getLogger(__name__)

API_KEY_SETTING = "tsw-api-key"


class SettingsStore(ABC):
    """Small persisted key/value store for user settings such as the API key."""

    name: str

    @abstractmethod
    def get(self, key: str) -> str | None:
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def load_api_key(self) -> str | None:
        return self.get(API_KEY_SETTING)

    def save_api_key(self, api_key: str) -> None:
        self.set(API_KEY_SETTING, api_key)


class MemorySettingsStore(SettingsStore):
    def __init__(self) -> None:
        self.name = "memory"
        self._values: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            self._values[key] = value


class FileSettingsStore(SettingsStore):
    def __init__(self, path: Path) -> None:
        self.name = "file"
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, ValueError) as exc:
            logger.warning("Settings file %s unreadable, ignoring: %s", self.path, exc)
            return {}
        if not isinstance(payload, dict):
            return {}
        return {str(key): str(value) for key, value in payload.items()}

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        with self._lock:
            payload = self._read()
            payload[key] = value
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, sort_keys=True)


class RedisSettingsStore(SettingsStore):
    def __init__(self, redis_url: str, fallback: SettingsStore) -> None:
        self.name = "redis"
        self._fallback = fallback
        self._client: redis.Redis | None = None

        try:
            self._client = redis.Redis.from_url(redis_url, decode_responses=True)
            self._ping()
            logger.info("Redis settings store enabled: %s", redis_url)
        except redis.RedisError as exc:
            logger.warning("Redis unavailable, storing settings in %s: %s", fallback.name, exc)
            self._client = None

    @retry(attempts=2, initial_delay=0.05, retry_on=(redis.RedisError,))
    def _ping(self) -> None:
        if self._client is None:
            return
        self._client.ping()

    def get(self, key: str) -> str | None:
        if self._client is None:
            return self._fallback.get(key)

        try:
            return self._client.get(key)
        except redis.RedisError as exc:
            logger.warning("Redis get failed; reading %s fallback: %s", self._fallback.name, exc)
            return self._fallback.get(key)

    def set(self, key: str, value: str) -> None:
        self._fallback.set(key, value)
        if self._client is None:
            return

        try:
            self._client.set(key, value)
        except redis.RedisError as exc:
            logger.warning("Redis set failed; %s fallback retained value: %s", self._fallback.name, exc)


def build_settings_store(settings: Settings) -> SettingsStore:
    backend = settings.settings_backend.strip().lower()
    file_store = FileSettingsStore(settings.settings_path)

    if backend == "redis":
        return RedisSettingsStore(settings.redis_url, fallback=file_store)

    if backend == "memory":
        logger.info("Using in-memory settings store; the API key will not survive restarts")
        return MemorySettingsStore()

    if backend != "file":
        logger.warning("Unknown settings backend %r, using file store", backend)
    logger.info("Using file settings store: %s", settings.settings_path)
    return file_store
