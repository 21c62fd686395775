"""
Store opening hours scraped from the public store page.

The page embeds schema.org JSON-LD; ``openingHoursSpecification`` entries are
grouped into ``{days, hours}`` rows, with the compact ``openingHours`` strings
(``"Mo-Fr 09:00-21:00"``) as a fallback. Pages change rarely, so the raw HTML
lives in the fetch layer's long-TTL text cache.
"""

import json
from typing import Any, Dict, Iterable, List, Optional

from selectolax.lexbor import LexborHTMLParser

from config import settings
from fetch_service import FetchService
from logging_config import logger
from models import StoreHours, StoreHoursEntry


STORE_PAGE_TEMPLATE = "{web}/{market}/{lang}/stores/{slug}/"

DAY_ORDER = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def _json_ld_blocks(html: str) -> List[Any]:
    blocks: List[Any] = []
    for script in LexborHTMLParser(html).css('script[type="application/ld+json"]'):
        raw = (script.text() or "").strip()
        if not raw:
            continue
        try:
            obj = json.loads(raw)
        except ValueError:
            continue
        for item in _as_list(obj):
            blocks.append(item)
            if isinstance(item, dict):
                blocks.extend(_as_list(item.get("@graph")))
    return blocks


def _day_name(value: Any) -> str:
    # "https://schema.org/Monday" -> "Monday"
    return str(value).rstrip("/").rsplit("/", 1)[-1]


def _time(value: Any) -> str:
    # "09:00:00" -> "09:00"
    text = str(value or "")
    return text[:5] if len(text) >= 5 else text


def _collapse_days(days: List[str]) -> str:
    ordered = sorted(set(days), key=lambda d: DAY_ORDER.index(d) if d in DAY_ORDER else len(DAY_ORDER))
    if len(ordered) > 2 and all(d in DAY_ORDER for d in ordered):
        indexes = [DAY_ORDER.index(d) for d in ordered]
        if indexes == list(range(indexes[0], indexes[-1] + 1)):
            return f"{ordered[0]} - {ordered[-1]}"
    return ", ".join(ordered)


def parse_opening_hours(blocks: Iterable[Any]) -> List[StoreHoursEntry]:
    """Group identical opening times into one row per time range"""
    grouped: Dict[str, List[str]] = {}
    compact: List[StoreHoursEntry] = []

    for block in blocks:
        if not isinstance(block, dict):
            continue
        for spec in _as_list(block.get("openingHoursSpecification")):
            if not isinstance(spec, dict) or not spec.get("opens"):
                continue
            hours = f"{_time(spec.get('opens'))} - {_time(spec.get('closes'))}"
            for day in _as_list(spec.get("dayOfWeek")):
                grouped.setdefault(hours, []).append(_day_name(day))
        for line in _as_list(block.get("openingHours")):
            days, _, hours = str(line).strip().partition(" ")
            if days and hours:
                compact.append(StoreHoursEntry(days=days, hours=hours.strip()))

    if grouped:
        return [StoreHoursEntry(days=_collapse_days(days), hours=hours) for hours, days in grouped.items()]
    return compact


class StoreHoursService:
    """Lookup of opening hours by store page slug"""

    def __init__(self, fetcher: FetchService, market: Optional[str] = None, lang: Optional[str] = None):
        self.fetcher = fetcher
        self.market = market or settings.DEFAULT_MARKET
        self.lang = lang or settings.DEFAULT_LANG

    def store_page_url(self, slug: str) -> str:
        return STORE_PAGE_TEMPLATE.format(
            web=settings.WEB_BASE_URL.rstrip("/"), market=self.market, lang=self.lang, slug=slug
        )

    async def get_store_hours(self, slug: str) -> StoreHours:
        """Raises UpstreamError when the store page cannot be fetched"""
        html = await self.fetcher.fetch_text(self.store_page_url(slug), "store_hours")
        hours = parse_opening_hours(_json_ld_blocks(html))
        if not hours:
            logger.warning(f"No opening hours found on store page for {slug}")
        return StoreHours(slug=slug, hours=hours)
