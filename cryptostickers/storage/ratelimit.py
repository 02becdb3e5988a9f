"""
Login rate limiting on top of the `limits` moving-window strategy.

Attempts are counted over any window of `window_seconds`, not fixed buckets.
Denied attempts are not recorded, so hammering the endpoint does not push
the reset time further out.
"""

import math
import time
import logging
from dataclasses import dataclass
from typing import Optional

import redis
from limits import RateLimitItem, RateLimitItemPerSecond
from limits.storage import RedisStorage
from limits.strategies import MovingWindowRateLimiter

from cryptostickers.settings import settings

log = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset: float  # epoch seconds when the oldest counted attempt leaves the window

    def retry_after(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        return max(1, math.ceil(self.reset - now))


class RedisRateLimiter:
    def __init__(
        self,
        strategy: MovingWindowRateLimiter,
        item: RateLimitItem,
        namespace: str = "login",
        pool: Optional[redis.ConnectionPool] = None,
    ):
        self.strategy = strategy
        self.item = item
        self.namespace = namespace
        self.pool = pool

    @classmethod
    def from_url(cls, url: str, limit: int, window_seconds: int) -> "RedisRateLimiter":
        pool = redis.ConnectionPool.from_url(url)
        storage = RedisStorage(url, connection_pool=pool)
        return cls(MovingWindowRateLimiter(storage), RateLimitItemPerSecond(limit, window_seconds), pool=pool)

    def limit(self, identifier: str) -> RateLimitResult:
        allowed = self.strategy.hit(self.item, self.namespace, identifier)
        stats = self.strategy.get_window_stats(self.item, self.namespace, identifier)
        if not allowed:
            log.warning("Rate limit exceeded for %s", identifier)
        return RateLimitResult(
            success=allowed,
            limit=self.item.amount,
            remaining=max(0, stats.remaining),
            reset=stats.reset_time,
        )

    def close(self):
        if self.pool is not None:
            self.pool.disconnect()
        log.info("Closed Redis rate limiter")


def build_rate_limiter() -> Optional[RedisRateLimiter]:
    """Returns the login rate limiter, or None when Redis is not configured."""
    if not settings.redis_url:
        log.warning("Rate limiting is disabled: REDIS_URL not set")
        return None
    log.info("Initialized login rate limiter (%d per %ds)", settings.login_rate_limit, settings.login_rate_window_seconds)
    return RedisRateLimiter.from_url(
        settings.redis_url,
        limit=settings.login_rate_limit,
        window_seconds=settings.login_rate_window_seconds,
    )
