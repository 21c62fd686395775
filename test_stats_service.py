"""Tests for the Redis-backed statistics service"""

import pytest
from redis.exceptions import TimeoutError as RedisTimeoutError

from config import settings
from stats_service import StatsService


class UnresponsiveRedis:
    """Redis client whose every command times out"""

    async def _timeout(self, *args, **kwargs):
        raise RedisTimeoutError("Timeout reading from socket")

    get = setex = zincrby = expire = zrevrange = ping = _timeout


class TestStatsService:
    """Statistics are advisory and bounded in time"""

    def test_redis_client_has_socket_timeouts(self):
        service = StatsService("redis://localhost:6379")

        kwargs = service.redis_client.connection_pool.connection_kwargs
        assert kwargs["socket_connect_timeout"] == settings.REDIS_SOCKET_TIMEOUT_SECONDS
        assert kwargs["socket_timeout"] == settings.REDIS_SOCKET_TIMEOUT_SECONDS

    @pytest.mark.asyncio
    async def test_timeouts_are_logged_not_raised(self, caplog):
        service = StatsService("redis://localhost:6379")
        service.redis_client = UnresponsiveRedis()

        await service.record_fetch("scan", True, 12.0)
        await service.increment_article_requests("40492331")

        assert await service.ping() is False
        assert await service.get_popular_articles() == {}
        assert (await service.get_upstream_performance("scan")).total_requests == 0
        assert "Timeout reading from socket" in caplog.text
