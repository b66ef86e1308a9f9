"""
Rate Limiting Module

Sliding-window rate limiting for API endpoints.

Counters live in an explicit store object rather than module-level state:
- RedisRateLimitStore: shared across instances (sorted set per key)
- MemoryRateLimitStore: single instance; takes an injectable clock and purges
  expired keys when the clock passes its next cleanup time

The application keeps its store on ``app.state.rate_limit_store``; the
``RateLimiter`` dependency resolves it per request, so tests and separate
apps can each use their own store.
"""

import logging
import secrets
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from fastapi import FastAPI, HTTPException, Request, Response, status
from redis.asyncio import Redis

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of a single rate limit check."""

    allowed: bool
    limit: int
    remaining: int
    reset_after: float

    @property
    def retry_after_seconds(self) -> int:
        return max(1, int(self.reset_after + 0.999))

    @property
    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": str(self.retry_after_seconds),
        }


class RateLimitStore(Protocol):
    async def hit(self, key: str, limit: int, window_seconds: float) -> RateLimitResult: ...


class RateLimitExceeded(HTTPException):
    """Exception raised when rate limit is exceeded."""

    def __init__(self, result: RateLimitResult, window_seconds: float):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "error": "RATE_LIMIT_EXCEEDED",
                "message": (
                    f"Rate limit exceeded. Maximum {result.limit} requests "
                    f"per {int(window_seconds)} seconds."
                ),
                "retry_after_seconds": result.retry_after_seconds,
            },
            headers={**result.headers, "Retry-After": str(result.retry_after_seconds)},
        )


class MemoryRateLimitStore:
    """
    In-process sliding-window store.

    Does not work across multiple server instances. Each key keeps the
    timestamps of its accepted requests; rejected requests are not counted.

    Args:
        clock: Returns the current time in seconds (monotonic by default)
        cleanup_interval: Seconds between purges of keys with no live hits
    """

    def __init__(self, clock: Clock = time.monotonic, cleanup_interval: float = 60.0):
        self._clock = clock
        self._cleanup_interval = cleanup_interval
        self._hits: dict[str, list[float]] = {}
        self._windows: dict[str, float] = {}
        self._next_cleanup = clock() + cleanup_interval

    def __len__(self) -> int:
        return len(self._hits)

    async def hit(self, key: str, limit: int, window_seconds: float) -> RateLimitResult:
        now = self._clock()
        if now >= self._next_cleanup:
            self.purge_expired()

        window_start = now - window_seconds
        hits = [ts for ts in self._hits.get(key, []) if ts > window_start]

        if len(hits) >= limit:
            self._hits[key] = hits
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_after=hits[0] + window_seconds - now,
            )

        hits.append(now)
        self._hits[key] = hits
        self._windows[key] = window_seconds

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=limit - len(hits),
            reset_after=hits[0] + window_seconds - now,
        )

    def purge_expired(self) -> int:
        """Drop keys whose newest hit has left its window. Returns keys removed."""
        now = self._clock()
        expired = [
            key
            for key, hits in self._hits.items()
            if not hits or hits[-1] + self._windows.get(key, 0) <= now
        ]
        for key in expired:
            del self._hits[key]
            self._windows.pop(key, None)

        self._next_cleanup = now + self._cleanup_interval
        if expired:
            logger.debug(f"Purged {len(expired)} expired rate limit key(s)")
        return len(expired)


class RedisRateLimitStore:
    """Sliding-window store backed by Redis sorted sets."""

    def __init__(self, client: Redis, clock: Clock = time.time):
        self._client = client
        self._clock = clock

    async def hit(self, key: str, limit: int, window_seconds: float) -> RateLimitResult:
        now = self._clock()
        window_start = now - window_seconds

        pipe = self._client.pipeline()
        pipe.zremrangebyscore(key, 0, window_start)
        pipe.zcard(key)
        pipe.zrange(key, 0, 0, withscores=True)
        _, current_count, oldest = await pipe.execute()

        oldest_ts = oldest[0][1] if oldest else now

        if current_count >= limit:
            return RateLimitResult(
                allowed=False,
                limit=limit,
                remaining=0,
                reset_after=oldest_ts + window_seconds - now,
            )

        pipe = self._client.pipeline()
        pipe.zadd(key, {f"{now:.6f}:{secrets.token_hex(4)}": now})
        pipe.expire(key, int(window_seconds) + 1)
        await pipe.execute()

        return RateLimitResult(
            allowed=True,
            limit=limit,
            remaining=limit - current_count - 1,
            reset_after=oldest_ts + window_seconds - now,
        )


def build_rate_limit_store(redis_client: Redis | None) -> RateLimitStore:
    """Use Redis when it is connected, otherwise an in-memory store."""
    if redis_client is not None:
        return RedisRateLimitStore(redis_client)
    logger.warning("Redis unavailable for rate limiting, using in-memory store")
    return MemoryRateLimitStore()


def get_rate_limit_store(app: FastAPI) -> RateLimitStore:
    """Return the app's store, creating an in-memory one on first use."""
    store = getattr(app.state, "rate_limit_store", None)
    if store is None:
        store = MemoryRateLimitStore()
        app.state.rate_limit_store = store
    return store


def _fallback_store(app: FastAPI) -> MemoryRateLimitStore:
    store = getattr(app.state, "rate_limit_fallback_store", None)
    if store is None:
        store = MemoryRateLimitStore()
        app.state.rate_limit_fallback_store = store
    return store


def client_ip_key(request: Request) -> str:
    """Default key: first X-Forwarded-For address (or peer IP) + endpoint path."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
    else:
        client_ip = request.client.host if request.client else "unknown"
    return f"rate_limit:{client_ip}:{request.url.path}"


class RateLimiter:
    """
    Rate limiting dependency for FastAPI endpoints.

    Usage:
        @router.post("/remind", dependencies=[Depends(RateLimiter(limit=5, window_seconds=60))])
        async def remind(...):
            ...

    Raises:
        RateLimitExceeded: When rate limit is exceeded (HTTP 429)
    """

    def __init__(
        self,
        limit: int = 10,
        window_seconds: float = 60,
        key_func: Callable[[Request], str] | None = None,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.key_func = key_func or client_ip_key

    async def __call__(self, request: Request, response: Response) -> RateLimitResult:
        key = self.key_func(request)
        store = get_rate_limit_store(request.app)

        try:
            result = await store.hit(key, self.limit, self.window_seconds)
        except Exception as e:
            if isinstance(store, MemoryRateLimitStore):
                raise
            logger.warning(f"Rate limit store failed, falling back to memory: {e}")
            result = await _fallback_store(request.app).hit(key, self.limit, self.window_seconds)

        if not result.allowed:
            logger.warning(f"Rate limit exceeded for {key}: {self.limit}/{self.window_seconds}s")
            raise RateLimitExceeded(result, self.window_seconds)

        response.headers.update(result.headers)
        return result


__all__ = [
    "MemoryRateLimitStore",
    "RateLimitExceeded",
    "RateLimitResult",
    "RateLimitStore",
    "RateLimiter",
    "RedisRateLimitStore",
    "build_rate_limit_store",
    "client_ip_key",
    "get_rate_limit_store",
]
