"""
FastAPI application for the IKEA Lookup Proxy.
Publishes merged product/price/stock records as JSON and as minimal HTML for
change-monitoring tools.
"""

import re
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from background_jobs import TRACKED_RESOURCES, BackgroundJobService
from circuit_breaker import CircuitBreaker
from config import settings
from exceptions import ArticleLookupError, UpstreamError
from fetch_service import FetchService
from logging_config import logger
from merge_engine import BUYING_OPTIONS, LookupService, normalize_article
from models import NormalizedRecord, StoreHours
from rendering import render_error_page, render_monitor_page
from stats_service import StatsService
from store_hours import StoreHoursService
from ttl_cache import TTLCache


# Process-wide state, created once at import and never persisted
upstream_cache = TTLCache(settings.CACHE_TTL_SECONDS, settings.CACHE_MAX_ENTRIES)
page_cache = TTLCache(settings.STORE_HOURS_TTL_SECONDS, settings.CACHE_MAX_ENTRIES)
stats_service = StatsService()
fetch_service = FetchService(cache=upstream_cache, text_cache=page_cache, stats=stats_service)
buying_options_breaker = CircuitBreaker(BUYING_OPTIONS)
lookup_service = LookupService(fetch_service, buying_options_breaker)
store_hours_service = StoreHoursService(fetch_service)
background_job_service = BackgroundJobService(lookup_service, stats_service)

limiter = Limiter(key_func=get_remote_address)

# Monitor pages exist only for bare 8-digit article numbers
ARTICLE_PATH_RE = re.compile(r"\d{8}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown tasks"""
    logger.info(f"Starting IKEA Lookup Proxy on port {settings.PORT}")
    background_job_service.start()
    yield
    logger.info("Shutting down service...")
    background_job_service.stop()
    await fetch_service.close()
    await stats_service.close()


app = FastAPI(
    title="IKEA Lookup Proxy",
    description="""
    Merges IKEA product details, in-store scan data and store availability
    into one normalized record per article and store.

    ## Features
    - **Concurrent upstream fan-out** with a 60 second in-memory TTL cache
    - **Store-closed tolerance**: end-of-day closing degrades the record instead of failing it
    - **Monitor page**: `/{article}` renders minimal HTML for change-detection tools
    - **Buying options** (optional, needs `IKEA_CLIENT_ID`) behind a circuit breaker
    """,
    version="1.0.0",
    lifespan=lifespan
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


def lookup_error_status(error: ArticleLookupError) -> int:
    """Article not found upstream stays 404; anything else is a bad gateway"""
    return 404 if error.status == 404 else 502


def lookup_error_body(error: ArticleLookupError) -> dict:
    return {"error": error.message, "upstreamStatus": error.status, "url": error.url}


def resolve_params(article: str, store, market, lang):
    return (
        normalize_article(article),
        str(store or settings.DEFAULT_STORE),
        str(market or settings.DEFAULT_MARKET).lower(),
        str(lang or settings.DEFAULT_LANG).lower(),
    )


@app.get("/api/ping", tags=["Health"])
async def ping():
    return {"ok": True, "ts": int(time.time() * 1000)}


@app.get("/health", tags=["Health"])
async def health_check():
    """Detailed health check with component status"""
    redis_status = "healthy" if await stats_service.ping() else "unhealthy"
    return {
        "status": "healthy",
        "components": {
            "redis": redis_status,
            "upstreamCache": {"entries": len(upstream_cache), "maxEntries": upstream_cache.max_entries},
            "buyingOptions": "configured" if lookup_service.buying_options_enabled else "disabled",
        }
    }


@app.get("/api/lookup", response_model=NormalizedRecord, tags=["Lookup"])
@limiter.limit(settings.RATE_LIMIT)
async def api_lookup(
    request: Request,
    article: str = Query("", description="IKEA article number, e.g. 40492331"),
    store: str = Query(None, description="Store id"),
    market: str = Query(None, description="Market code, e.g. au"),
    lang: str = Query(None, description="Language code, e.g. en"),
):
    """
    Merged record for one article at one store.

    - online price and canonical product info (product details)
    - in-store price, department and location (scan)
    - store stock text, status and quantity (availability)

    `storeClosed` is true during end-of-day processing; in-store fields may
    then be null without meaning the article is out of stock.
    """
    article, store, market, lang = resolve_params(article, store, market, lang)
    if not article:
        raise HTTPException(status_code=400, detail="Missing article. Example: /api/lookup?article=40492331")

    await stats_service.increment_article_requests(article)
    try:
        return await lookup_service.lookup(article, store, market, lang)
    except ArticleLookupError as e:
        return JSONResponse(status_code=lookup_error_status(e), content=lookup_error_body(e))


@app.get("/api/stores/{slug}/hours", response_model=StoreHours, tags=["Stores"])
@limiter.limit(settings.RATE_LIMIT)
async def store_hours(request: Request, slug: str):
    """Opening hours scraped from the public store page"""
    try:
        return await store_hours_service.get_store_hours(slug)
    except UpstreamError as e:
        status_code = 404 if e.status == 404 else 502
        return JSONResponse(status_code=status_code, content={"error": e.message, "upstreamStatus": e.status})


@app.get("/admin/performance", tags=["Admin"])
async def get_upstream_performance():
    """Request counts, success rate and latency per upstream resource"""
    performance_data = {}
    for resource in TRACKED_RESOURCES:
        performance = await stats_service.get_upstream_performance(resource)

        success_rate = 0.0
        if performance.total_requests > 0:
            success_rate = (performance.successful_requests / performance.total_requests) * 100

        performance_data[resource] = {
            "total_requests": performance.total_requests,
            "successful_requests": performance.successful_requests,
            "failed_requests": performance.failed_requests,
            "success_rate_percent": round(success_rate, 2),
            "avg_latency_ms": round(performance.avg_latency_ms, 2),
            "last_failure": performance.last_failure.isoformat() if performance.last_failure else None
        }

    return {"upstream_performance": performance_data}


@app.get("/admin/circuit-breakers", tags=["Admin"])
async def get_circuit_breaker_status():
    """Circuit breaker state for optional resources"""
    state = buying_options_breaker.state
    return {
        "circuit_breakers": {
            state.resource: {
                "state": state.state,
                "failure_count": state.failure_count,
                "last_failure_time": state.last_failure_time.isoformat() if state.last_failure_time else None,
                "next_attempt_time": state.next_attempt_time.isoformat() if state.next_attempt_time else None
            }
        }
    }


@app.get("/admin/popular-articles", tags=["Admin"])
async def get_popular_articles():
    """Request counts for the most requested articles"""
    return {"popular_articles": await stats_service.get_popular_articles()}


@app.get("/{article}", response_class=HTMLResponse, tags=["Monitor"])
@limiter.limit(settings.RATE_LIMIT)
async def monitor_page(
    request: Request,
    article: str,
    store: str = Query(None),
    market: str = Query(None),
    lang: str = Query(None),
):
    """
    Minimal HTML for ChangeDetection.io (in-store focused).
    Example: /10455151?store=556
    """
    if not ARTICLE_PATH_RE.fullmatch(article):
        raise HTTPException(status_code=404, detail="Not Found")

    article, store, market, lang = resolve_params(article, store, market, lang)
    headers = {"Cache-Control": "no-store, max-age=0"}

    await stats_service.increment_article_requests(article)
    try:
        record = await lookup_service.lookup(article, store, market, lang)
    except ArticleLookupError as e:
        return HTMLResponse(render_error_page(e.message), status_code=lookup_error_status(e), headers=headers)

    return HTMLResponse(render_monitor_page(record), headers=headers)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
