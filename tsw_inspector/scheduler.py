"""Recurring poll timers for monitored endpoints.

Each monitored endpoint owns exactly one ``RepeatingTimer``. The scheduler is
the only place timers are created or cancelled, so tearing it down is enough
to guarantee nothing keeps polling after a node change or disconnect.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0


class Timer(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None], str], Timer]


class RepeatingTimer:
    """Runs ``callback`` every ``interval`` seconds on a daemon thread.

    The first run happens one interval after ``start``. A failing callback is
    logged and the timer carries on with the next tick.
    """

    def __init__(self, interval: float, callback: Callable[[], None], name: str = "poll") -> None:
        self.interval = interval
        self.callback = callback
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(target=self._loop, daemon=True, name=f"poll-{self.name}")
        self._thread.start()

    def cancel(self) -> None:
        self._stop.set()

    @property
    def cancelled(self) -> bool:
        return self._stop.is_set()

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.callback()
            except Exception:
                logger.exception("Poll tick for %s failed", self.name)


class PollingScheduler:
    def __init__(
        self,
        interval: float = DEFAULT_POLL_INTERVAL,
        timer_factory: TimerFactory = RepeatingTimer,
    ) -> None:
        self.interval = interval
        self._timer_factory = timer_factory
        self._timers: dict[str, Timer] = {}
        self._lock = threading.Lock()

    def start(self, key: str, callback: Callable[[], None]) -> bool:
        """Register a timer for ``key``. Returns False if one is already running."""
        with self._lock:
            if key in self._timers:
                return False
            timer = self._timer_factory(self.interval, callback, key)
            self._timers[key] = timer
            timer.start()
        logger.debug("Started polling %s every %.1fs", key, self.interval)
        return True

    def stop(self, key: str) -> bool:
        with self._lock:
            timer = self._timers.pop(key, None)
        if timer is None:
            return False
        timer.cancel()
        logger.debug("Stopped polling %s", key)
        return True

    def stop_all(self) -> int:
        with self._lock:
            timers = list(self._timers.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()
        if timers:
            logger.info("Stopped %s poll timer(s)", len(timers))
        return len(timers)

    def is_active(self, key: str) -> bool:
        with self._lock:
            return key in self._timers

    def active_keys(self) -> list[str]:
        with self._lock:
            return sorted(self._timers)

    def __len__(self) -> int:
        with self._lock:
            return len(self._timers)
