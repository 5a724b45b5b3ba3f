"""Platform-agnostic listing and order schema."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal

from marketdesk.core.sku import extract_mpn

Platform = Literal["mercadolibre", "backmarket"]

PLATFORMS: tuple[Platform, ...] = ("mercadolibre", "backmarket")

PLATFORM_PREFIXES: dict[Platform, str] = {
    "mercadolibre": "ml",
    "backmarket": "bm",
}

PLATFORM_LABELS: dict[Platform, str] = {
    "mercadolibre": "ML",
    "backmarket": "BM",
}


def unified_id(platform: Platform, external_id: str | int) -> str:
    """Build a globally unique id such as ``ml-MLM123`` or ``bm-42``."""
    return f"{PLATFORM_PREFIXES[platform]}-{external_id}"


def parse_day(value: str | None) -> date | None:
    """Parse the ``YYYY-MM-DD`` prefix of an ISO timestamp, or None."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


@dataclass(frozen=True, slots=True)
class OrderQuery:
    """Order listing filters. Dates are ISO strings, passed through to the API."""

    status: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True, slots=True)
class UnifiedListing:
    """A listing normalized across marketplaces.

    ``id`` and ``mpn`` are derived from ``platform``/``external_id`` and
    ``sku`` respectively and cannot be passed in.
    """

    platform: Platform
    external_id: str
    title: str
    sku: str
    price: float
    currency: str
    stock: int
    status: str
    image_url: str | None = None
    url: str | None = None
    size: str | None = None
    connectivity: str | None = None
    color: str | None = None
    updated_at: str | None = None
    min_price: float | None = None
    max_price: float | None = None
    net_payout: float | None = None
    id: str = field(init=False)
    mpn: str = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "id", unified_id(self.platform, self.external_id))
        object.__setattr__(self, "mpn", extract_mpn(self.sku))


@dataclass(frozen=True, slots=True)
class UnifiedOrderItem:
    """One order line. Owned by its order and never mutated."""

    listing_id: str
    title: str
    sku: str
    quantity: int
    unit_price: float


@dataclass(frozen=True, slots=True)
class UnifiedOrder:
    """An order normalized across marketplaces.

    ``net_amount`` and ``margin`` are derived at construction:
    ``net_amount = total_amount - fees`` and ``margin`` is 0 for cancelled or
    refunded orders, else ``net_amount - cost``. ``cost`` is a snapshot taken
    at mapping time.
    """

    platform: Platform
    external_id: str
    order_number: str
    status: str
    items: tuple[UnifiedOrderItem, ...]
    total_amount: float
    currency: str
    fees: float
    shipping_cost: float
    cost: float
    order_date: str
    cancelled: bool = False
    buyer_name: str | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    shipped_date: str | None = None
    delivered_date: str | None = None
    id: str = field(init=False)
    net_amount: float = field(init=False)
    margin: float = field(init=False)

    def __post_init__(self) -> None:
        net_amount = self.total_amount - self.fees
        object.__setattr__(self, "id", unified_id(self.platform, self.external_id))
        object.__setattr__(self, "items", tuple(self.items))
        object.__setattr__(self, "net_amount", net_amount)
        object.__setattr__(
            self, "margin", 0.0 if self.cancelled else net_amount - self.cost
        )

    @property
    def order_day(self) -> date | None:
        return parse_day(self.order_date)

    @property
    def quantity(self) -> int:
        return sum(item.quantity for item in self.items)
