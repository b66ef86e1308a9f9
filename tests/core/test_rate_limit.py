"""
Unit tests for rate limiting.

These tests cover:
- Sliding-window counting with an injected clock
- Recovery once the window has passed
- Expired key cleanup (explicit and clock-triggered)
- Independent stores
- The Redis-backed store (mocked pipeline)
- The RateLimiter dependency and its fallback store
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI

from permission_please.core.rate_limit import (
    MemoryRateLimitStore,
    RateLimiter,
    RateLimitExceeded,
    RateLimitResult,
    RedisRateLimitStore,
    build_rate_limit_store,
    client_ip_key,
    get_rate_limit_store,
)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_request():
    """Create a mock request bound to an app with a memory store."""
    app = FastAPI()
    request = MagicMock()
    request.app = app
    request.headers = {}
    request.client.host = "10.0.0.1"
    request.url.path = "/api/v1/cron/reminders"
    return request


class TestMemoryRateLimitStore:
    """Tests for MemoryRateLimitStore."""

    @pytest.mark.asyncio
    async def test_allows_up_to_limit_then_blocks(self, clock):
        store = MemoryRateLimitStore(clock=clock)

        results = [await store.hit("k", 3, 60) for _ in range(3)]
        blocked = await store.hit("k", 3, 60)

        assert all(r.allowed for r in results)
        assert [r.remaining for r in results] == [2, 1, 0]
        assert blocked.allowed is False
        assert blocked.remaining == 0

    @pytest.mark.asyncio
    async def test_recovers_after_window(self, clock):
        store = MemoryRateLimitStore(clock=clock)
        for _ in range(3):
            await store.hit("k", 3, 60)

        clock.advance(59)
        assert (await store.hit("k", 3, 60)).allowed is False

        clock.advance(1)
        assert (await store.hit("k", 3, 60)).allowed is True

    @pytest.mark.asyncio
    async def test_window_slides(self, clock):
        store = MemoryRateLimitStore(clock=clock)
        await store.hit("k", 2, 60)
        clock.advance(30)
        await store.hit("k", 2, 60)

        clock.advance(30)
        # First hit expired, second still counts
        result = await store.hit("k", 2, 60)
        assert result.allowed is True
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_rejected_hits_are_not_counted(self, clock):
        store = MemoryRateLimitStore(clock=clock)
        await store.hit("k", 1, 60)
        for _ in range(5):
            clock.advance(10)
            await store.hit("k", 1, 60)

        clock.advance(10)
        assert (await store.hit("k", 1, 60)).allowed is True

    @pytest.mark.asyncio
    async def test_reset_after_points_at_oldest_hit(self, clock):
        store = MemoryRateLimitStore(clock=clock)
        await store.hit("k", 1, 60)
        clock.advance(20)

        result = await store.hit("k", 1, 60)

        assert result.reset_after == 40
        assert result.retry_after_seconds == 40

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, clock):
        store = MemoryRateLimitStore(clock=clock)
        await store.hit("a", 1, 60)

        assert (await store.hit("a", 1, 60)).allowed is False
        assert (await store.hit("b", 1, 60)).allowed is True

    @pytest.mark.asyncio
    async def test_stores_are_independent(self, clock):
        first = MemoryRateLimitStore(clock=clock)
        second = MemoryRateLimitStore(clock=clock)
        await first.hit("k", 1, 60)

        assert (await first.hit("k", 1, 60)).allowed is False
        assert (await second.hit("k", 1, 60)).allowed is True

    @pytest.mark.asyncio
    async def test_purge_expired_removes_stale_keys(self, clock):
        store = MemoryRateLimitStore(clock=clock)
        await store.hit("old", 5, 10)
        clock.advance(5)
        await store.hit("fresh", 5, 10)

        clock.advance(6)

        assert store.purge_expired() == 1
        assert len(store) == 1

    @pytest.mark.asyncio
    async def test_cleanup_runs_when_clock_passes_interval(self, clock):
        store = MemoryRateLimitStore(clock=clock, cleanup_interval=60)
        for key in ("a", "b", "c"):
            await store.hit(key, 5, 10)
        assert len(store) == 3

        clock.advance(30)
        await store.hit("d", 5, 10)
        assert len(store) == 4

        clock.advance(31)
        await store.hit("e", 5, 10)
        # a, b, c and d have expired and are purged before "e" is counted
        assert len(store) == 1


class TestRateLimitResult:
    """Tests for RateLimitResult."""

    def test_headers(self):
        result = RateLimitResult(allowed=True, limit=10, remaining=7, reset_after=12.2)

        assert result.headers == {
            "X-RateLimit-Limit": "10",
            "X-RateLimit-Remaining": "7",
            "X-RateLimit-Reset": "13",
        }

    def test_retry_after_is_at_least_one_second(self):
        assert RateLimitResult(False, 1, 0, 0.0).retry_after_seconds == 1


class TestRedisRateLimitStore:
    """Tests for RedisRateLimitStore with a mocked pipeline."""

    def _client(self, count: int, oldest: list):
        client = MagicMock()
        pipe = MagicMock()
        pipe.execute = AsyncMock(side_effect=[[0, count, oldest], [1, True]])
        client.pipeline.return_value = pipe
        return client, pipe

    @pytest.mark.asyncio
    async def test_allows_and_records_hit(self, clock):
        client, pipe = self._client(count=2, oldest=[("m", 990.0)])
        store = RedisRateLimitStore(client, clock=clock)

        result = await store.hit("k", 5, 60)

        assert result.allowed is True
        assert result.remaining == 2
        assert result.reset_after == 50
        pipe.zadd.assert_called_once()
        pipe.expire.assert_called_once_with("k", 61)

    @pytest.mark.asyncio
    async def test_blocks_at_limit_without_recording(self, clock):
        client, pipe = self._client(count=5, oldest=[("m", 990.0)])
        store = RedisRateLimitStore(client, clock=clock)

        result = await store.hit("k", 5, 60)

        assert result.allowed is False
        pipe.zadd.assert_not_called()


class TestStoreSelection:
    """Tests for choosing and resolving the app's store."""

    def test_build_uses_redis_when_available(self):
        assert isinstance(build_rate_limit_store(MagicMock()), RedisRateLimitStore)

    def test_build_falls_back_to_memory(self):
        assert isinstance(build_rate_limit_store(None), MemoryRateLimitStore)

    def test_get_store_creates_memory_store_once(self):
        app = FastAPI()
        store = get_rate_limit_store(app)

        assert isinstance(store, MemoryRateLimitStore)
        assert get_rate_limit_store(app) is store

    def test_get_store_returns_configured_store(self):
        app = FastAPI()
        configured = MemoryRateLimitStore()
        app.state.rate_limit_store = configured

        assert get_rate_limit_store(app) is configured


class TestClientIpKey:
    """Tests for the default rate limit key."""

    def test_uses_peer_ip(self, mock_request):
        assert client_ip_key(mock_request) == "rate_limit:10.0.0.1:/api/v1/cron/reminders"

    def test_prefers_first_forwarded_address(self, mock_request):
        mock_request.headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1"}
        assert client_ip_key(mock_request).startswith("rate_limit:203.0.113.7:")


class TestRateLimiter:
    """Tests for the RateLimiter dependency."""

    @pytest.mark.asyncio
    async def test_sets_headers_and_raises_when_exceeded(self, mock_request, clock):
        mock_request.app.state.rate_limit_store = MemoryRateLimitStore(clock=clock)
        limiter = RateLimiter(limit=2, window_seconds=60)
        response = MagicMock()
        response.headers = {}

        await limiter(mock_request, response)
        await limiter(mock_request, response)

        assert response.headers["X-RateLimit-Remaining"] == "0"
        with pytest.raises(RateLimitExceeded) as exc_info:
            await limiter(mock_request, response)

        assert exc_info.value.status_code == 429
        assert exc_info.value.detail["error"] == "RATE_LIMIT_EXCEEDED"
        assert exc_info.value.headers["Retry-After"] == "60"

    @pytest.mark.asyncio
    async def test_custom_key_func(self, mock_request, clock):
        mock_request.app.state.rate_limit_store = MemoryRateLimitStore(clock=clock)
        limiter = RateLimiter(limit=1, window_seconds=60, key_func=lambda _: "shared")
        response = MagicMock()
        response.headers = {}

        await limiter(mock_request, response)
        mock_request.client.host = "10.0.0.2"

        with pytest.raises(RateLimitExceeded):
            await limiter(mock_request, response)

    @pytest.mark.asyncio
    async def test_failing_redis_store_falls_back_to_memory(self, mock_request):
        failing = MagicMock(spec=RedisRateLimitStore)
        failing.hit = AsyncMock(side_effect=ConnectionError("redis down"))
        mock_request.app.state.rate_limit_store = failing
        limiter = RateLimiter(limit=1, window_seconds=60)
        response = MagicMock()
        response.headers = {}

        result = await limiter(mock_request, response)

        assert result.allowed is True
        with pytest.raises(RateLimitExceeded):
            await limiter(mock_request, response)
