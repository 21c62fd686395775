"""
Merge engine: fans out to the upstream resources for one article at one store
and reconciles them into a single NormalizedRecord.

Product details and availability are required; any failure there fails the
lookup. The scan resource answers 503 STORE_CLOSED during end-of-day
processing, which degrades the record instead of failing it. Buying options
are optional and only fetched when a client id is configured.
"""

import asyncio
import re
from typing import Any, Dict, Optional, Tuple

import field_paths as paths
from buying_options import summarize_buying_options
from circuit_breaker import CircuitBreaker
from config import settings
from exceptions import ArticleLookupError, ProxyError, UpstreamError
from fetch_service import FetchService
from field_extractor import as_count, as_number, as_text, extract, strip_html
from logging_config import logger
from models import (
    FetchOutcome, LocationInfo, NormalizedRecord, PriceInfo, Prices,
    ProductInfo, StockInfo
)
from quantity_resolver import resolve_quantity


PRODUCT_DETAILS = "product_details"
SCAN = "scan"
AVAILABILITY = "availability"
BUYING_OPTIONS = "buying_options"

URL_TEMPLATES = {
    PRODUCT_DETAILS: "{shop}/range/v6/{market}/{lang}/browse/product-details/{article}",
    SCAN: "{shop}/scan-shop/v6/{market}/{lang}/stores/{store}/product/{article}/1",
    AVAILABILITY: "{shop}/range/v6/{market}/{lang}/browse/availability/product/{article}?storeIds={store}",
    BUYING_OPTIONS: "{cia}/cia/availabilities/ru/{market}?itemNos={article}&expand=StoresList,Restocks,SalesLocations",
}

STORE_CLOSED_STATUS = 503
STORE_CLOSED_MARKERS = ("STORE_CLOSED", "End of day")
STORE_CLOSED_MESSAGE = (
    "The store is closed for end-of-day processing. In-store price, stock "
    "and location are temporarily unavailable; this does not mean the "
    "article is out of stock."
)

OUT_OF_STOCK_RE = re.compile(r"OUT[\s_-]*OF[\s_-]*STOCK", re.IGNORECASE)


def normalize_article(article: Any) -> str:
    """Keep digits only (``"404.923.31"`` -> ``"40492331"``)"""
    return re.sub(r"\D", "", str(article or ""))


def build_upstream_urls(
    article: str,
    store: str,
    market: str,
    lang: str,
    include_buying_options: bool = False,
) -> Dict[str, str]:
    """Deterministic mapping from the lookup key to upstream URLs"""
    values = {
        "shop": settings.SHOP_API_BASE_URL.rstrip("/"),
        "cia": settings.AVAILABILITY_API_BASE_URL.rstrip("/"),
        "article": article,
        "store": store,
        "market": market,
        "lang": lang,
    }
    urls = {kind: template.format(**values) for kind, template in URL_TEMPLATES.items()}
    if not include_buying_options:
        urls.pop(BUYING_OPTIONS)
    return urls


def is_store_closed(outcome: FetchOutcome) -> bool:
    """503 whose body declares STORE_CLOSED or whose text carries an end-of-day marker"""
    if outcome.ok or outcome.status != STORE_CLOSED_STATUS:
        return False
    data = outcome.data
    if isinstance(data, dict) and str(data.get("type") or "").upper() == "STORE_CLOSED":
        return True
    text = outcome.text or ""
    return any(marker in text for marker in STORE_CLOSED_MARKERS)


def prefer_store(store_value: Any, market_value: Any) -> Any:
    """Store-specific facts win over market-wide ones when present"""
    return store_value if store_value is not None else market_value


def is_out_of_stock(status: Optional[str]) -> bool:
    return bool(status and OUT_OF_STOCK_RE.search(status))


class LookupService:
    """Builds NormalizedRecords from the upstream resources"""

    def __init__(self, fetcher: FetchService, buying_options_breaker: Optional[CircuitBreaker] = None):
        self.fetcher = fetcher
        self.buying_options_breaker = buying_options_breaker or CircuitBreaker(BUYING_OPTIONS)

    @property
    def buying_options_enabled(self) -> bool:
        return bool(self.fetcher.client_id)

    async def lookup(self, article: str, store: str, market: str, lang: str) -> NormalizedRecord:
        """
        Fetch every resource concurrently and merge them.

        Raises ArticleLookupError when product details, availability, or a
        scan response other than store-closed fails. Never raises for a closed
        store or a failing buying-options resource.
        """
        article = normalize_article(article)
        if not article:
            raise ValueError("article must contain digits")
        market = market.lower()
        lang = lang.lower()

        urls = build_upstream_urls(article, store, market, lang, self.buying_options_enabled)

        tasks = [
            self.fetcher.fetch_strict(urls[PRODUCT_DETAILS], PRODUCT_DETAILS),
            self.fetcher.fetch_tolerant(urls[SCAN], SCAN),
            self.fetcher.fetch_strict(urls[AVAILABILITY], AVAILABILITY),
        ]
        if BUYING_OPTIONS in urls:
            tasks.append(self._fetch_buying_options(urls[BUYING_OPTIONS]))

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, UpstreamError):
                logger.warning(f"Lookup {article}@{store} failed: {result}")
                raise ArticleLookupError.from_upstream(result) from result
            if isinstance(result, BaseException):
                raise result

        details, scan_outcome, availability = results[:3]
        buying_payload, buying_error = results[3] if len(results) > 3 else (None, None)

        store_closed = False
        scan: Any = None
        if scan_outcome.ok:
            scan = scan_outcome.data
        elif is_store_closed(scan_outcome):
            logger.info(f"Store {store} closed for end-of-day processing ({article})")
            store_closed = True
        else:
            error = UpstreamError(scan_outcome.url, scan_outcome.status, scan_outcome.text, SCAN)
            logger.warning(f"Lookup {article}@{store} failed: {error}")
            raise ArticleLookupError.from_upstream(error)

        buying_options = None
        if buying_payload is not None:
            buying_options = summarize_buying_options(buying_payload, article, store, market)

        return NormalizedRecord(
            article=article,
            market=market,
            lang=lang,
            store=store,
            store_closed=store_closed,
            store_closed_message=STORE_CLOSED_MESSAGE if store_closed else None,
            product=self._product(details, scan),
            prices=self._prices(details, scan),
            stock=self._stock(scan, availability),
            location=self._location(scan),
            buying_options=buying_options,
            buying_options_error=buying_error,
            urls=urls,
        )

    async def _fetch_buying_options(self, url: str) -> Tuple[Any, Optional[str]]:
        """Optional resource: failures come back as an error string"""
        try:
            payload = await self.buying_options_breaker.call(
                self.fetcher.fetch_authenticated, url, BUYING_OPTIONS
            )
        except ProxyError as e:
            logger.warning(f"Buying options unavailable: {e}")
            return None, str(e)
        return payload, None

    def _product(self, details: Any, scan: Any) -> ProductInfo:
        return ProductInfo(
            title=as_text(prefer_store(extract(scan, paths.SCAN_TITLE), extract(details, paths.DETAILS_TITLE))),
            description=as_text(prefer_store(
                extract(scan, paths.SCAN_DESCRIPTION), extract(details, paths.DETAILS_DESCRIPTION)
            )),
            product_url=as_text(prefer_store(
                extract(scan, paths.SCAN_PRODUCT_URL), extract(details, paths.DETAILS_PRODUCT_URL)
            )),
            image_url=as_text(prefer_store(
                extract(scan, paths.SCAN_IMAGE_URL), extract(details, paths.DETAILS_IMAGE_URL)
            )),
        )

    def _prices(self, details: Any, scan: Any) -> Prices:
        return Prices(
            online=PriceInfo(
                raw=as_number(extract(details, paths.DETAILS_PRICE_RAW)),
                text=as_text(extract(details, paths.DETAILS_PRICE_TEXT)),
            ),
            store=PriceInfo(
                raw=as_number(extract(scan, paths.SCAN_PRICE_RAW)),
                text=as_text(extract(scan, paths.SCAN_PRICE_TEXT)),
            ),
        )

    def _stock(self, scan: Any, availability: Any) -> StockInfo:
        first = availability[0] if isinstance(availability, list) and availability else None

        description = as_text(extract(first, paths.AVAILABILITY_DESCRIPTION))
        description_text = strip_html(description)
        status = as_text(extract(first, paths.AVAILABILITY_STATUS, extract(scan, paths.SCAN_STATUS)))

        qty = resolve_quantity(description_text)
        if qty is None:
            qty = as_count(extract(scan, paths.SCAN_MAX_QUANTITY))
        if is_out_of_stock(status):
            qty = 0

        return StockInfo(qty=qty, status=status, description=description, description_text=description_text)

    def _location(self, scan: Any) -> LocationInfo:
        item_location = as_text(extract(scan, paths.SCAN_ITEM_LOCATION))
        return LocationInfo(
            division=as_text(extract(scan, paths.SCAN_DIVISION)),
            department=as_text(extract(scan, paths.SCAN_DEPARTMENT)),
            code=as_text(extract(scan, paths.SCAN_DEPARTMENT_CODE)),
            item_location_text=item_location,
            item_location_text_plain=strip_html(item_location),
        )
