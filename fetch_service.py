"""
Fetch layer for the upstream IKEA endpoints.

Every entry point checks the TTL cache first. ``fetch_strict`` raises
``UpstreamError`` on any non-2xx response, while ``fetch_tolerant`` returns a
``FetchSuccess``/``FetchFailure`` outcome and never raises for upstream
conditions. Timeouts and transport errors are mapped to 504/502 so they go
through the same classification as any other failed status.
"""

import json
import time
from typing import Any, Optional

import httpx

from config import settings
from exceptions import ConfigurationError, UpstreamError
from logging_config import excerpt, logger
from models import FetchFailure, FetchOutcome, FetchSuccess
from stats_service import StatsService
from ttl_cache import TTLCache


TIMEOUT_STATUS = 504
TRANSPORT_ERROR_STATUS = 502

JSON_HEADERS = {
    "Accept": "application/json",
    "User-Agent": settings.USER_AGENT,
}

HTML_HEADERS = {
    "Accept": "text/html,application/xhtml+xml",
    "User-Agent": settings.USER_AGENT,
}


def _is_success(status: int) -> bool:
    return 200 <= status < 300


def _try_parse_json(text: str) -> Any:
    """Best-effort JSON decode for upstreams that mislabel their content type"""
    if not text:
        return None
    try:
        return json.loads(text)
    except ValueError:
        return None


class FetchService:
    """Cache-first HTTP retrieval of upstream resources"""

    def __init__(
        self,
        cache: Optional[TTLCache] = None,
        text_cache: Optional[TTLCache] = None,
        client: Optional[httpx.AsyncClient] = None,
        stats: Optional[StatsService] = None,
        client_id: Optional[str] = None,
    ):
        self.cache = cache if cache is not None else TTLCache(settings.CACHE_TTL_SECONDS, settings.CACHE_MAX_ENTRIES)
        self.text_cache = text_cache if text_cache is not None else TTLCache(
            settings.STORE_HOURS_TTL_SECONDS, settings.CACHE_MAX_ENTRIES
        )
        self.client = client or httpx.AsyncClient(timeout=settings.UPSTREAM_TIMEOUT_SECONDS, follow_redirects=True)
        self.stats = stats
        self.client_id = settings.IKEA_CLIENT_ID if client_id is None else client_id

    async def fetch_strict(self, url: str, resource: str = "upstream") -> Any:
        """GET JSON, raising ``UpstreamError`` on non-2xx or an undecodable body"""
        return await self._fetch_json(url, f"json:{url}", JSON_HEADERS, resource)

    async def fetch_authenticated(self, url: str, resource: str = "upstream") -> Any:
        """Like ``fetch_strict`` with the client identity header and its own cache namespace"""
        if not self.client_id:
            raise ConfigurationError("IKEA_CLIENT_ID")
        headers = dict(JSON_HEADERS, **{"X-Client-ID": self.client_id})
        return await self._fetch_json(url, f"auth:{url}", headers, resource)

    async def fetch_tolerant(self, url: str, resource: str = "upstream") -> FetchOutcome:
        """GET JSON and describe the result instead of raising"""
        key = f"json:{url}"
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return FetchSuccess(url=url, status=200, data=cached)

        try:
            response = await self._send(url, JSON_HEADERS, resource)
        except UpstreamError as e:
            return FetchFailure(url=url, status=e.status, data=None, text=e.body_excerpt)

        text = response.text
        if "json" in response.headers.get("content-type", "").lower():
            try:
                data = response.json()
            except ValueError:
                data = None
        else:
            data = _try_parse_json(text)

        if _is_success(response.status_code):
            if data is not None:
                self.cache.set(key, data)
            return FetchSuccess(url=url, status=response.status_code, data=data)

        logger.warning(f"HTTP {response.status_code} from {url}: {excerpt(text, 200)}")
        return FetchFailure(url=url, status=response.status_code, data=data, text=text)

    async def fetch_text(self, url: str, resource: str = "upstream") -> str:
        """GET raw HTML for scraping, cached in the long-lived text cache"""
        key = f"text:{url}"
        cached = self.text_cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return cached

        response = await self._send(url, HTML_HEADERS, resource)
        if not _is_success(response.status_code):
            raise UpstreamError(url, response.status_code, response.text, resource)

        self.text_cache.set(key, response.text)
        return response.text

    async def close(self) -> None:
        await self.client.aclose()

    async def _fetch_json(self, url: str, key: str, headers: dict, resource: str) -> Any:
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return cached

        response = await self._send(url, headers, resource)
        if not _is_success(response.status_code):
            logger.warning(f"HTTP {response.status_code} from {url}: {excerpt(response.text, 200)}")
            raise UpstreamError(url, response.status_code, response.text, resource)

        try:
            data = response.json()
        except ValueError:
            raise UpstreamError(url, response.status_code, f"Invalid JSON: {response.text}", resource)

        self.cache.set(key, data)
        return data

    async def _send(self, url: str, headers: dict, resource: str) -> httpx.Response:
        """Issue one GET; transport failures become ``UpstreamError``"""
        logger.debug(f"Cache miss, fetching {url}")
        start_time = time.time()
        try:
            response = await self.client.get(url, headers=headers)
        except httpx.TimeoutException as e:
            await self._record(resource, False, start_time)
            logger.warning(f"Timeout fetching {url}: {e}")
            raise UpstreamError(url, TIMEOUT_STATUS, f"Timeout: {e}", resource)
        except httpx.HTTPError as e:
            await self._record(resource, False, start_time)
            logger.warning(f"Transport error fetching {url}: {e}")
            raise UpstreamError(url, TRANSPORT_ERROR_STATUS, f"Transport error: {e}", resource)

        await self._record(resource, _is_success(response.status_code), start_time)
        return response

    async def _record(self, resource: str, success: bool, start_time: float) -> None:
        if self.stats is None:
            return
        latency_ms = (time.time() - start_time) * 1000
        await self.stats.record_fetch(resource, success, latency_ms)
