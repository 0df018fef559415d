# partilio/core/rate_limit.py
import logging
import math
import time
from dataclasses import dataclass
from typing import Callable, Dict

from fastapi import HTTPException, Request, status

from .config import settings

logger = logging.getLogger(__name__)


@dataclass
class _Window:
    count: int
    reset_at: float


class AuthRateLimiter:
    """
    Fixed-window attempt counter keyed by client IP.

    Expired windows are evicted on every hit, so the map only ever holds
    clients seen during the last ``window_seconds``.
    """

    def __init__(self, max_attempts: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: Dict[str, _Window] = {}

    def _evict_expired(self, now: float) -> None:
        for key in [k for k, w in self._attempts.items() if now > w.reset_at]:
            del self._attempts[key]

    def hit(self, identifier: str) -> None:
        """Count an attempt; raise 429 once the window is exhausted."""
        now = self._clock()
        self._evict_expired(now)

        window = self._attempts.get(identifier)
        if window is None:
            self._attempts[identifier] = _Window(count=1, reset_at=now + self.window_seconds)
            return

        if window.count >= self.max_attempts:
            minutes_left = math.ceil((window.reset_at - now) / 60)
            logger.warning(f"Too many auth attempts from {identifier}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "message": f"Too many attempts. Try again in {minutes_left} minutes.",
                    "code": "TOO_MANY_ATTEMPTS",
                },
            )

        window.count += 1

    def reset(self) -> None:
        self._attempts.clear()

    async def __call__(self, request: Request) -> None:
        client = request.client.host if request.client else "unknown"
        self.hit(client)


login_rate_limiter = AuthRateLimiter(
    max_attempts=settings.AUTH_RATE_LIMIT_ATTEMPTS,
    window_seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
)

register_rate_limiter = AuthRateLimiter(
    max_attempts=3,
    window_seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
)
