from __future__ import annotations

from typing import Any
import urllib.parse

from pydantic import Field

from marketdesk.adapters.credentials import CredentialStore
from marketdesk.adapters.marketplaces.http import (
    JsonHttpClient,
    MarketplaceModel,
    NotConnectedError,
)
from marketdesk.core.numbers import Money

BM_BASE_URL = "https://www.backmarket.com/ws"

# Order state set when tracking is pushed.
SHIPPED_STATE = 3


# BM API response models ------------------------------------------------


class BMListing(MarketplaceModel):
    id: str | None = None
    listing_id: int
    title: str = ""
    sku: str | None = None
    price: Money = 0.0
    currency: str | None = None
    quantity: int = 0
    state: int | None = None
    grade: str | None = None
    publication_state: int | None = None
    backmarket_id: int | None = None
    product_id: str | None = None
    min_price: Money | None = None
    max_price: Money | None = None


class BMOrderLine(MarketplaceModel):
    id: int | None = None
    product_id: int | None = None
    listing_id: int | str
    listing: str | None = None
    product: str | None = None
    quantity: int = 1
    price: Money = 0.0
    shipping_price: Money = 0.0
    currency: str | None = None
    state: int | None = None
    orderline_fee: Money = 0.0
    sales_taxes: Money = 0.0
    brand: str | None = None
    condition: int | None = None


class BMShippingAddress(MarketplaceModel):
    first_name: str | None = None
    last_name: str | None = None
    city: str | None = None
    state_or_province: str | None = None
    country: str | None = None


class BMOrder(MarketplaceModel):
    order_id: int
    state: int = 0
    date_creation: str = ""
    date_modification: str | None = None
    date_shipping: str | None = None
    date_payment: str | None = None
    price: Money = 0.0
    shipping_price: Money = 0.0
    currency: str | None = None
    sales_taxes: Money = 0.0
    payment_method: str | None = None
    orderlines: list[BMOrderLine] = Field(default_factory=list)
    shipping_address: BMShippingAddress | None = None
    tracking_number: str | None = None
    tracking_url: str | None = None
    shipper: str | None = None


class BMPage(MarketplaceModel):
    count: int = 0
    next: str | None = None
    previous: str | None = None


class BMListingsPage(BMPage):
    results: list[BMListing] = Field(default_factory=list)


class BMOrdersPage(BMPage):
    results: list[BMOrder] = Field(default_factory=list)


def _next_page_number(next_url: str | None) -> int | None:
    if not next_url:
        return None
    query = urllib.parse.parse_qs(urllib.parse.urlparse(next_url).query)
    try:
        return int(query["page"][0])
    except (KeyError, IndexError, ValueError):
        return None


# Client ----------------------------------------------------------------


class BackMarketClient(JsonHttpClient):
    """Back Market seller API client authenticated with a Basic token."""

    service_name = "BM"

    def __init__(
        self,
        credentials: CredentialStore,
        *,
        base_url: str = BM_BASE_URL,
        timeout_seconds: float = 30.0,
        max_pages: int = 20,
    ) -> None:
        super().__init__(base_url, timeout_seconds=timeout_seconds)
        self._credential_store = credentials
        self._max_pages = max_pages

    def _auth_headers(self) -> dict[str, str]:
        credentials = self._credential_store.get_credentials("backmarket")
        if credentials is None or not credentials.access_token:
            raise NotConnectedError("BackMarket not connected")
        return {"Authorization": f"Basic {credentials.access_token}"}

    def get_listings(self, *, page: int = 1) -> BMListingsPage:
        return BMListingsPage.parse(
            self._request("GET", "/listings", params={"page": page})
        )

    def get_all_listings(self) -> list[BMListing]:
        """Follow ``next`` links up to the configured page cap."""
        listings: list[BMListing] = []
        page: int | None = 1
        for _ in range(self._max_pages):
            if page is None:
                break
            resp = self.get_listings(page=page)
            listings.extend(resp.results)
            page = _next_page_number(resp.next)
        return listings

    def get_listing(self, listing_id: str) -> BMListing:
        return BMListing.parse(self._request("GET", f"/listings/{listing_id}"))

    def update_listing(
        self,
        listing_id: str,
        *,
        price: float | None = None,
        quantity: int | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if price is not None:
            payload["price"] = price
        if quantity is not None:
            payload["quantity"] = quantity
        return dict(
            self._request("POST", f"/listings/{listing_id}", payload=payload) or {}
        )

    def get_orders(self, *, state: int | None = None, page: int = 1) -> BMOrdersPage:
        return BMOrdersPage.parse(
            self._request("GET", "/orders", params={"state": state, "page": page})
        )

    def get_all_orders(self, *, state: int | None = None) -> list[BMOrder]:
        orders: list[BMOrder] = []
        page: int | None = 1
        for _ in range(self._max_pages):
            if page is None:
                break
            resp = self.get_orders(state=state, page=page)
            orders.extend(resp.results)
            page = _next_page_number(resp.next)
        return orders

    def get_order(self, order_id: str) -> BMOrder:
        return BMOrder.parse(self._request("GET", f"/orders/{order_id}"))

    def update_order_tracking(
        self,
        order_id: str,
        *,
        tracking_number: str,
        tracking_url: str | None = None,
        shipper: str | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "new_state": SHIPPED_STATE,
            "tracking_number": tracking_number,
        }
        if tracking_url:
            payload["tracking_url"] = tracking_url
        if shipper:
            payload["shipper"] = shipper
        return dict(self._request("POST", f"/orders/{order_id}", payload=payload) or {})
