"""
Redis-backed statistics: upstream performance per resource kind and article
request counts. Statistics are advisory; Redis failures are logged and never
affect a served record.
"""

import json
from datetime import datetime
from typing import Dict, Optional

import redis.asyncio as redis

from config import settings
from logging_config import logger
from models import UpstreamPerformance


ARTICLE_REQUESTS_KEY = "article_requests"


class StatsService:
    """Upstream performance and article popularity tracking"""

    def __init__(self, redis_url: Optional[str] = None):
        """Initialize Redis connection (lazy, nothing is sent until first use)"""
        self.redis_client = redis.from_url(
            redis_url or settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
            socket_timeout=settings.REDIS_SOCKET_TIMEOUT_SECONDS,
        )

    async def ping(self) -> bool:
        try:
            return bool(await self.redis_client.ping())
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    async def get_upstream_performance(self, resource: str) -> UpstreamPerformance:
        """Get upstream performance metrics"""
        try:
            cached_data = await self.redis_client.get(f"performance:{resource}")
            if cached_data:
                return UpstreamPerformance(**json.loads(cached_data))
        except Exception as e:
            logger.warning(f"Performance get error for {resource}: {e}")
        return UpstreamPerformance(resource=resource)

    async def record_fetch(self, resource: str, success: bool, latency_ms: float) -> None:
        """Update upstream performance metrics"""
        try:
            perf = await self.get_upstream_performance(resource)
            perf.total_requests += 1

            if success:
                perf.successful_requests += 1
            else:
                perf.failed_requests += 1
                perf.last_failure = datetime.now()

            # simple moving average
            if perf.total_requests == 1:
                perf.avg_latency_ms = latency_ms
            else:
                perf.avg_latency_ms = (perf.avg_latency_ms * (perf.total_requests - 1) + latency_ms) / perf.total_requests

            await self.redis_client.setex(
                f"performance:{resource}",
                86400,  # 24 hours
                perf.model_dump_json()
            )
        except Exception as e:
            logger.warning(f"Performance update error for {resource}: {e}")

    async def increment_article_requests(self, article: str) -> None:
        """Increment request counter for article popularity tracking"""
        try:
            await self.redis_client.zincrby(ARTICLE_REQUESTS_KEY, 1, article)
            await self.redis_client.expire(ARTICLE_REQUESTS_KEY, 86400)
        except Exception as e:
            logger.warning(f"Article request increment error for {article}: {e}")

    async def get_popular_articles(self, limit: int = settings.POPULAR_ARTICLES_LIMIT) -> Dict[str, int]:
        """Most requested articles, highest count first"""
        try:
            rows = await self.redis_client.zrevrange(ARTICLE_REQUESTS_KEY, 0, limit - 1, withscores=True)
            return {article: int(score) for article, score in rows}
        except Exception as e:
            logger.warning(f"Popular articles stats error: {e}")
            return {}

    async def close(self) -> None:
        await self.redis_client.aclose()
