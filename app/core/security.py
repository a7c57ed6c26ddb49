"""
Trigger gate: shared-secret check + in-memory rate limiting.

Known gaps
----------
- The rate limiter lives in process memory. It resets on restart and does
  not coordinate across gunicorn workers or replicas; two processes can both
  pass the gate at the same moment. A shared lease would be needed for that.
"""
from __future__ import annotations

import hmac
import math
import threading
import time
from typing import Callable, Optional, Protocol

from app.core.config import Settings, settings
from app.core.errors import CronMisconfiguredError


UPDATE_GATE_KEY = "update-entities"


class RateLimiter(Protocol):
    def try_acquire(self, key: str) -> bool:
        ...

    def retry_after(self, key: str) -> int:
        ...


class InMemoryRateLimiter:
    """
    Minimum-interval gate per key.

    A successful `try_acquire` stamps the key immediately, before the
    guarded work runs, so a failed run still counts against the interval.
    """

    def __init__(
        self,
        min_interval_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.min_interval_seconds = min_interval_seconds
        self._clock = clock
        self._last_run: dict[str, float] = {}
        self._lock = threading.Lock()

    def try_acquire(self, key: str) -> bool:
        with self._lock:
            now = self._clock()
            last = self._last_run.get(key)
            if last is not None and now - last < self.min_interval_seconds:
                return False
            self._last_run[key] = now
            return True

    def retry_after(self, key: str) -> int:
        with self._lock:
            last = self._last_run.get(key)
            if last is None:
                return 0
            remaining = self.min_interval_seconds - (self._clock() - last)
            return max(0, math.ceil(remaining))


def require_cron_secret(cfg: Settings) -> str:
    """Return the configured secret or fail closed."""
    secret = cfg.CRON_SECRET
    if not secret or len(secret) < cfg.CRON_SECRET_MIN_LENGTH:
        raise CronMisconfiguredError(min_length=cfg.CRON_SECRET_MIN_LENGTH)
    return secret


def verify_bearer(header: Optional[str], secret: str) -> bool:
    """Constant-time comparison of the Authorization header against `Bearer <secret>`."""
    if not header:
        return False
    expected = f"Bearer {secret}"
    return hmac.compare_digest(header.encode("utf-8"), expected.encode("utf-8"))


_rate_limiter = InMemoryRateLimiter(settings.CRON_MIN_INTERVAL_SECONDS)


def get_rate_limiter() -> RateLimiter:
    """FastAPI dependency returning the process-wide limiter."""
    return _rate_limiter
