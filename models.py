"""
Data models for the IKEA Lookup Proxy.
All models use Pydantic for validation and static typing.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CircuitState(str, Enum):
    """Circuit breaker states"""
    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


class CamelModel(BaseModel):
    """Base for models published to API consumers with camelCase keys"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Fetch outcomes (produced once per upstream call, never persisted)
class FetchSuccess(BaseModel):
    """2xx response with decoded data"""
    ok: Literal[True] = True
    url: str
    status: int = 200
    data: Any = None


class FetchFailure(BaseModel):
    """Non-2xx response, timeout or transport error"""
    ok: Literal[False] = False
    url: str
    status: int
    data: Any = None
    text: str = ""


FetchOutcome = Union[FetchSuccess, FetchFailure]


# Normalized record
class ProductInfo(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    product_url: Optional[str] = None
    image_url: Optional[str] = None


class PriceInfo(CamelModel):
    raw: Optional[float] = None
    text: Optional[str] = None


class Prices(CamelModel):
    online: PriceInfo = Field(default_factory=PriceInfo)
    store: PriceInfo = Field(default_factory=PriceInfo)


class StockInfo(CamelModel):
    qty: Optional[int] = Field(default=None, ge=0)
    status: Optional[str] = None
    description: Optional[str] = None
    description_text: Optional[str] = None


class LocationInfo(CamelModel):
    division: Optional[str] = None
    department: Optional[str] = None
    code: Optional[str] = None
    item_location_text: Optional[str] = None
    item_location_text_plain: Optional[str] = None


class Restock(CamelModel):
    earliest_date: Optional[str] = None
    latest_date: Optional[str] = None
    quantity: Optional[int] = None


class ChannelAvailability(CamelModel):
    """One buying channel (cash-and-carry, click-and-collect, home delivery)"""
    in_range: Optional[bool] = None
    quantity: Optional[int] = None
    message_type: Optional[str] = None
    restocks: List[Restock] = Field(default_factory=list)


class BuyingOptions(CamelModel):
    item_no: str
    store: str
    cash_carry: Optional[ChannelAvailability] = None
    click_collect: Optional[ChannelAvailability] = None
    home_delivery: Optional[ChannelAvailability] = None


class NormalizedRecord(CamelModel):
    """Merged view of one article at one store"""
    article: str
    market: str
    lang: str
    store: str
    store_closed: bool = False
    store_closed_message: Optional[str] = None
    product: ProductInfo = Field(default_factory=ProductInfo)
    prices: Prices = Field(default_factory=Prices)
    stock: StockInfo = Field(default_factory=StockInfo)
    location: LocationInfo = Field(default_factory=LocationInfo)
    buying_options: Optional[BuyingOptions] = None
    buying_options_error: Optional[str] = None
    urls: Dict[str, str] = Field(default_factory=dict)


# Store hours collaborator
class StoreHoursEntry(BaseModel):
    days: str
    hours: str


class StoreHours(BaseModel):
    slug: str
    hours: List[StoreHoursEntry] = Field(default_factory=list)


# Operational tracking
class UpstreamPerformance(BaseModel):
    """Upstream performance tracking per resource kind"""
    resource: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    avg_latency_ms: float = 0.0
    last_failure: Optional[datetime] = None


class CircuitBreakerState(BaseModel):
    """Circuit breaker state tracking"""
    resource: str
    state: CircuitState = CircuitState.CLOSED
    failure_count: int = 0
    last_failure_time: Optional[datetime] = None
    next_attempt_time: Optional[datetime] = None
