"""
Background job scheduler for cache prewarming and upstream performance logging.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import settings
from exceptions import ProxyError
from logging_config import logger
from merge_engine import AVAILABILITY, BUYING_OPTIONS, PRODUCT_DETAILS, SCAN, LookupService
from stats_service import StatsService


TRACKED_RESOURCES = [PRODUCT_DETAILS, SCAN, AVAILABILITY, BUYING_OPTIONS, "store_hours"]


def prewarm_interval_seconds() -> float:
    """Prewarm interval, capped at the upstream cache TTL"""
    interval = settings.PREWARM_INTERVAL_SECONDS
    if interval > settings.CACHE_TTL_SECONDS:
        logger.warning(
            f"PREWARM_INTERVAL_SECONDS={interval} exceeds CACHE_TTL_SECONDS={settings.CACHE_TTL_SECONDS}; "
            f"using {settings.CACHE_TTL_SECONDS}"
        )
        return settings.CACHE_TTL_SECONDS
    return interval


class BackgroundJobService:
    """Service for managing background tasks"""

    def __init__(self, lookup_service: LookupService, stats: StatsService):
        self.lookup_service = lookup_service
        self.stats = stats
        self.scheduler = AsyncIOScheduler()

    def start(self):
        """Start the background job scheduler"""
        self.scheduler.add_job(
            func=self.prewarm_cache_job,
            trigger=IntervalTrigger(seconds=prewarm_interval_seconds()),
            id='prewarm_cache',
            name='Prewarm upstream cache for watched and popular articles',
            replace_existing=True
        )

        self.scheduler.add_job(
            func=self.log_upstream_performance,
            trigger=IntervalTrigger(minutes=settings.PERFORMANCE_LOG_INTERVAL_MINUTES),
            id='log_performance',
            name='Log upstream performance metrics',
            replace_existing=True
        )

        self.scheduler.start()
        logger.info("Background job scheduler started")

    def stop(self):
        """Stop the background job scheduler"""
        if self.scheduler.running:
            self.scheduler.shutdown()
        logger.info("Background job scheduler stopped")

    async def articles_to_prewarm(self):
        """Watched articles first, then the most requested ones"""
        popular = await self.stats.get_popular_articles(settings.POPULAR_ARTICLES_LIMIT)
        articles = list(settings.WATCHED_ARTICLES)
        for article in popular:
            if article not in articles:
                articles.append(article)
        return articles

    async def prewarm_cache_job(self) -> int:
        """Run lookups for watched and popular articles at the default store"""
        logger.info("Starting cache prewarm job...")

        prewarmed_count = 0
        for article in await self.articles_to_prewarm():
            try:
                await self.lookup_service.lookup(
                    article, settings.DEFAULT_STORE, settings.DEFAULT_MARKET, settings.DEFAULT_LANG
                )
                prewarmed_count += 1
            except (ProxyError, ValueError) as e:
                logger.warning(f"Error prewarming cache for article {article}: {e}")

        logger.info(f"Cache prewarm completed. Prewarmed {prewarmed_count} articles")
        return prewarmed_count

    async def log_upstream_performance(self):
        """Log upstream latency and failure rates per resource kind"""
        for resource in TRACKED_RESOURCES:
            performance = await self.stats.get_upstream_performance(resource)

            if performance.total_requests == 0:
                logger.info(f"Upstream {resource}: No requests recorded")
                continue

            success_rate = (performance.successful_requests / performance.total_requests) * 100
            logger.info(
                f"Upstream {resource}: {performance.total_requests} requests, "
                f"{success_rate:.2f}% success, avg latency {performance.avg_latency_ms:.2f}ms, "
                f"last failure {performance.last_failure}"
            )
