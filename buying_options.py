"""
Summary of the cross-market buying-options resource for one article at one store.
"""

from typing import Any, List, Optional

import field_paths as paths
from field_extractor import as_count, as_text, extract
from models import BuyingOptions, ChannelAvailability, Restock


STORE_UNIT_TYPE = "STO"
MARKET_UNIT_TYPE = "RU"


def find_availability(payload: Any, item_no: str, unit_type: str, unit_code: str) -> Optional[dict]:
    """Entry of ``availabilities`` keyed by (itemNo, classUnitType, classUnitCode)"""
    entries = extract(payload, ("availabilities",), [])
    if not isinstance(entries, list):
        return None
    for entry in entries:
        if (
            as_text(extract(entry, paths.OPTION_ITEM_NO)) == item_no
            and str(extract(entry, paths.OPTION_UNIT_TYPE, "")).upper() == unit_type
            and str(extract(entry, paths.OPTION_UNIT_CODE, "")).upper() == unit_code.upper()
        ):
            return entry
    return None


def _restocks(channel: Any) -> List[Restock]:
    raw = extract(channel, paths.CHANNEL_RESTOCKS, [])
    if not isinstance(raw, list):
        return []
    return [
        Restock(
            earliest_date=as_text(extract(item, ("earliestDate",))),
            latest_date=as_text(extract(item, ("latestDate",))),
            quantity=as_count(extract(item, ("quantity",))),
        )
        for item in raw
        if isinstance(item, dict)
    ]


def summarize_channel(entry: Optional[dict], channel_path: str) -> Optional[ChannelAvailability]:
    if entry is None:
        return None
    channel = extract(entry, (channel_path,))
    if not isinstance(channel, dict):
        return None
    in_range = extract(channel, paths.CHANNEL_IN_RANGE)
    return ChannelAvailability(
        in_range=in_range if isinstance(in_range, bool) else None,
        quantity=as_count(extract(channel, paths.CHANNEL_QUANTITY)),
        message_type=as_text(extract(channel, paths.CHANNEL_MESSAGE_TYPE)),
        restocks=_restocks(channel),
    )


def summarize_buying_options(payload: Any, article: str, store: str, market: str) -> Optional[BuyingOptions]:
    """
    Per-channel view of the article at ``store``.

    Cash-and-carry and click-and-collect come from the store entry. Home
    delivery prefers the market-wide entry and falls back to the store entry.
    Returns None when the payload has no entry for the article.
    """
    store_entry = find_availability(payload, article, STORE_UNIT_TYPE, store)
    market_entry = find_availability(payload, article, MARKET_UNIT_TYPE, market)
    if store_entry is None and market_entry is None:
        return None

    channels = paths.OPTION_CHANNELS
    return BuyingOptions(
        item_no=article,
        store=store,
        cash_carry=summarize_channel(store_entry, channels["cash_carry"]),
        click_collect=summarize_channel(store_entry, channels["click_collect"]),
        home_delivery=(
            summarize_channel(market_entry, channels["home_delivery"])
            or summarize_channel(store_entry, channels["home_delivery"])
        ),
    )
