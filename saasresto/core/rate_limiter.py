from __future__ import annotations

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from threading import Lock

from saasresto.core.config import (
    RATE_LIMIT_ACTION_WINDOW_SECONDS,
    RATE_LIMIT_CHANGE_PASSWORD_MAX,
    RATE_LIMIT_FORGOT_PASSWORD_MAX,
    RATE_LIMIT_LOGIN_MAX,
    RATE_LIMIT_LOGIN_WINDOW_SECONDS,
    RATE_LIMIT_REGISTER_MAX,
    RATE_LIMIT_RESET_PASSWORD_MAX,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 5
DEFAULT_WINDOW_SECONDS = 60


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter(ABC):
    """Fixed-window attempt counter keyed by ``action:key``.

    A shared external counter store can implement the same contract for
    multi-instance deployments.
    """

    action: str

    @abstractmethod
    def check(self, key: str) -> RateLimitDecision:
        """Count one attempt for ``key`` and say whether it may proceed."""

    @abstractmethod
    def clear(self, key: str) -> None:
        """Forget every attempt recorded for ``key``."""

    def sweep(self) -> int:
        return 0


class InMemoryRateLimiter(RateLimiter):
    """Process-local limiter: attempts 1..limit pass, the next ones are refused until the window resets."""

    def __init__(
        self,
        action: str,
        *,
        limit: int = DEFAULT_LIMIT,
        window_seconds: int = DEFAULT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.action = action
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._store: dict[str, _Window] = {}
        self._lock = Lock()

    def _store_key(self, key: str) -> str:
        return f"{self.action}:{key}"

    def check(self, key: str) -> RateLimitDecision:
        now = self._clock()
        store_key = self._store_key(key)

        with self._lock:
            window = self._store.get(store_key)
            if window is None or now >= window.reset_at:
                self._store[store_key] = _Window(count=1, reset_at=now + self.window_seconds)
                return RateLimitDecision(
                    allowed=True,
                    limit=self.limit,
                    remaining=self.limit - 1,
                    retry_after_seconds=0,
                )

            if window.count >= self.limit:
                retry_after = max(1, int(window.reset_at - now))
                return RateLimitDecision(
                    allowed=False,
                    limit=self.limit,
                    remaining=0,
                    retry_after_seconds=retry_after,
                )

            window.count += 1
            return RateLimitDecision(
                allowed=True,
                limit=self.limit,
                remaining=max(0, self.limit - window.count),
                retry_after_seconds=0,
            )

    def clear(self, key: str) -> None:
        with self._lock:
            self._store.pop(self._store_key(key), None)

    def sweep(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [store_key for store_key, window in self._store.items() if now >= window.reset_at]
            for store_key in expired:
                del self._store[store_key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


async def run_periodic_sweep(limiters: Iterable[RateLimiter], interval_seconds: float) -> None:
    """Drop expired windows forever; cancel the task to stop it."""
    limiters = list(limiters)
    while True:
        await asyncio.sleep(interval_seconds)
        removed = sum(limiter.sweep() for limiter in limiters)
        if removed:
            logger.debug("[RATE_LIMIT] swept %s expired entries", removed)


@dataclass
class RateLimiters:
    """One limiter per sensitive action."""

    login: RateLimiter
    register: RateLimiter
    forgot_password: RateLimiter
    reset_password: RateLimiter
    change_password: RateLimiter

    def all(self) -> list[RateLimiter]:
        return [self.login, self.register, self.forgot_password, self.reset_password, self.change_password]


def build_rate_limiters() -> RateLimiters:
    window = RATE_LIMIT_ACTION_WINDOW_SECONDS
    return RateLimiters(
        login=InMemoryRateLimiter(
            "login", limit=RATE_LIMIT_LOGIN_MAX, window_seconds=RATE_LIMIT_LOGIN_WINDOW_SECONDS
        ),
        register=InMemoryRateLimiter("register", limit=RATE_LIMIT_REGISTER_MAX, window_seconds=window),
        forgot_password=InMemoryRateLimiter(
            "forgot-password", limit=RATE_LIMIT_FORGOT_PASSWORD_MAX, window_seconds=window
        ),
        reset_password=InMemoryRateLimiter(
            "reset-password", limit=RATE_LIMIT_RESET_PASSWORD_MAX, window_seconds=window
        ),
        change_password=InMemoryRateLimiter(
            "change-password", limit=RATE_LIMIT_CHANGE_PASSWORD_MAX, window_seconds=window
        ),
    )
