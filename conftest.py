"""
Shared test doubles: canned upstream payloads and an httpx.MockTransport stub
that routes requests by upstream resource kind.
"""

from typing import Any, Dict, List, Optional

import httpx
import pytest

from fetch_service import FetchService
from models import UpstreamPerformance
from ttl_cache import TTLCache


ARTICLE = "40492331"
STORE = "556"
MARKET = "au"
LANG = "en"


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def details_payload(title: Optional[str] = "BILLY", price: Any = 99.0) -> dict:
    return {
        "product": {
            "title": title,
            "typeName": "Bookcase",
            "productUrl": f"https://www.ikea.com/au/en/p/billy-bookcase-{ARTICLE}/",
            "images": [{"imageUrl": "https://www.ikea.com/images/online.jpg"}],
            "pricePackage": {"includingVat": {"rawPrice": price, "sellingPrice": f"${price}"}},
        }
    }


def scan_payload(
    title: Optional[str] = "BILLY Bookcase white",
    price: Any = 89.0,
    item_location: Optional[str] = "Aisle <b>12</b> Bin <b>3</b>",
    qty_max: Any = 5,
) -> dict:
    return {
        "presentationSection": {
            "productCard": {
                "product": {
                    "title": title,
                    "description": "Bookcase, white, 80x28x202 cm",
                    "imageUrl": "https://www.ikea.com/images/store.jpg",
                    "pricePackage": {"includingVat": {"rawPrice": price, "sellingPrice": f"${price}"}},
                },
                "salesLocation": {
                    "location": {
                        "division": "MARKET_HALL",
                        "department": {"id": 17, "names": [{"name": "Storage"}]},
                    }
                },
                "stockInfo": {"itemLocation": "Self serve"},
            }
        },
        "buyingInstructionSection": {"salesPlaceList": [{"itemLocation": item_location}]},
        "buyingDecisionSection": {"quantityPicker": {"max": qty_max}},
    }


def availability_payload(
    description: Optional[str] = "There are <b>145</b> in stock",
    status: Optional[str] = "HIGH_IN_STOCK",
) -> List[dict]:
    return [{"status": {"description": description, "type": status}}]


def buying_options_payload(quantity: int = 12) -> dict:
    return {
        "availabilities": [
            {
                "itemKey": {"itemNo": ARTICLE, "itemType": "ART"},
                "classUnitKey": {"classUnitType": "RU", "classUnitCode": "AU"},
                "buyingOption": {"homeDelivery": {"range": {"inRange": True}}},
            },
            {
                "itemKey": {"itemNo": ARTICLE, "itemType": "ART"},
                "classUnitKey": {"classUnitType": "STO", "classUnitCode": STORE},
                "buyingOption": {
                    "cashCarry": {
                        "range": {"inRange": True},
                        "availability": {
                            "quantity": quantity,
                            "probability": {"thisDay": {"messageType": "HIGH_IN_STOCK"}},
                            "restocks": [
                                {"earliestDate": "2026-10-21", "latestDate": "2026-10-23", "quantity": 40}
                            ],
                        },
                    },
                    "clickCollect": {"range": {"inRange": False}},
                },
            },
        ]
    }


def resource_kind(request: httpx.Request) -> str:
    path = request.url.path
    if "/browse/product-details/" in path:
        return "product_details"
    if "/scan-shop/" in path:
        return "scan"
    if "/browse/availability/" in path:
        return "availability"
    if "/cia/availabilities/" in path:
        return "buying_options"
    return "page"


class UpstreamStub:
    """Programmable upstream; each kind maps to a canned response or an exception"""

    def __init__(self):
        self.responses: Dict[str, Any] = {
            "product_details": {"status": 200, "json": details_payload()},
            "scan": {"status": 200, "json": scan_payload()},
            "availability": {"status": 200, "json": availability_payload()},
            "buying_options": {"status": 200, "json": buying_options_payload()},
        }
        self.requests: List[httpx.Request] = []

    def respond(self, kind: str, status: int = 200, json: Any = None, text: Optional[str] = None,
                content_type: Optional[str] = None) -> None:
        self.responses[kind] = {"status": status, "json": json, "text": text, "content_type": content_type}

    def fail(self, kind: str, error: Exception) -> None:
        self.responses[kind] = error

    def calls(self, kind: str) -> int:
        return sum(1 for request in self.requests if resource_kind(request) == kind)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        spec = self.responses.get(resource_kind(request), {"status": 404, "text": "Not Found"})
        if isinstance(spec, Exception):
            raise spec
        if spec.get("text") is not None:
            headers = {"content-type": spec.get("content_type") or "text/plain"}
            return httpx.Response(spec["status"], text=spec["text"], headers=headers)
        return httpx.Response(spec["status"], json=spec.get("json"))

    def fetcher(self, client_id: str = "", clock: Optional[FakeClock] = None, stats: Any = None) -> FetchService:
        clock = clock or FakeClock()
        return FetchService(
            cache=TTLCache(default_ttl=60, max_entries=500, clock=clock),
            text_cache=TTLCache(default_ttl=6 * 60 * 60, max_entries=500, clock=clock),
            client=httpx.AsyncClient(transport=httpx.MockTransport(self.handler)),
            stats=stats,
            client_id=client_id,
        )


class FakeStats:
    """In-memory stand-in for StatsService"""

    def __init__(self):
        self.fetches: List[tuple] = []
        self.article_requests: Dict[str, int] = {}

    async def ping(self) -> bool:
        return True

    async def record_fetch(self, resource: str, success: bool, latency_ms: float) -> None:
        self.fetches.append((resource, success))

    async def get_upstream_performance(self, resource: str) -> UpstreamPerformance:
        rows = [ok for name, ok in self.fetches if name == resource]
        return UpstreamPerformance(
            resource=resource,
            total_requests=len(rows),
            successful_requests=sum(1 for ok in rows if ok),
            failed_requests=sum(1 for ok in rows if not ok),
        )

    async def increment_article_requests(self, article: str) -> None:
        self.article_requests[article] = self.article_requests.get(article, 0) + 1

    async def get_popular_articles(self, limit: int = 10) -> Dict[str, int]:
        ranked = sorted(self.article_requests.items(), key=lambda item: item[1], reverse=True)
        return dict(ranked[:limit])

    async def close(self) -> None:
        pass


@pytest.fixture
def upstream() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
