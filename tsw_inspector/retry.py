from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from functools import wraps
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry(
    attempts: int = 3,
    initial_delay: float = 0.15,
    backoff: float = 2.0,
    max_delay: float = 1.5,
    jitter: float = 0.1,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Retry decorator with exponential backoff and jitter.

    Only used for local infrastructure (the settings backend). Calls to the
    simulation API are never retried.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delay = initial_delay
            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except retry_on as exc:  # type: ignore[misc]
                    if attempt >= attempts:
                        raise
                    pause = min(max_delay, delay) + random.uniform(0, jitter)
                    logger.debug(
                        "%s failed (attempt %s/%s): %s; retrying in %.2fs",
                        func.__name__,
                        attempt,
                        attempts,
                        exc,
                        pause,
                    )
                    sleep(pause)
                    delay *= backoff
            raise RuntimeError("retry loop exited unexpectedly")

        return wrapper

    return decorator
