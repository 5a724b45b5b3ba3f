from __future__ import annotations

from typing import Any

from pydantic import Field

from marketdesk.adapters.credentials import CredentialStore, PlatformCredentials
from marketdesk.adapters.marketplaces.http import (
    JsonHttpClient,
    MarketplaceModel,
    NotConnectedError,
)
from marketdesk.core.models import OrderQuery
from marketdesk.core.numbers import Money
from marketdesk.infra.rate_limiter import RateLimiter, mercadolibre_rate_limiter

ML_BASE_URL = "https://api.mercadolibre.com"

# Multiget endpoint accepts at most 20 ids per call.
MULTIGET_BATCH_SIZE = 20


# ML API response models ------------------------------------------------


class MLVariation(MarketplaceModel):
    id: int | None = None
    seller_custom_field: str | None = None


class MLItem(MarketplaceModel):
    id: str
    title: str = ""
    price: Money = 0.0
    currency_id: str = ""
    available_quantity: int = 0
    sold_quantity: int = 0
    status: str = ""
    permalink: str | None = None
    thumbnail: str | None = None
    seller_custom_field: str | None = None
    variations: list[MLVariation] = Field(default_factory=list)
    date_created: str | None = None
    last_updated: str | None = None


class MLOrderItemRef(MarketplaceModel):
    id: str
    title: str = ""
    seller_custom_field: str | None = None


class MLOrderItem(MarketplaceModel):
    item: MLOrderItemRef
    quantity: int = 1
    unit_price: Money = 0.0
    currency_id: str | None = None


class MLBuyer(MarketplaceModel):
    id: int | None = None
    nickname: str | None = None
    first_name: str | None = None
    last_name: str | None = None


class MLPayment(MarketplaceModel):
    id: int | None = None
    status: str | None = None
    total_paid_amount: Money = 0.0
    marketplace_fee: Money = 0.0
    shipping_cost: Money = 0.0


class MLShipping(MarketplaceModel):
    id: int | None = None
    status: str | None = None
    tracking_number: str | None = None


class MLStatusDetail(MarketplaceModel):
    description: str | None = None


class MLOrder(MarketplaceModel):
    id: int
    status: str = ""
    status_detail: MLStatusDetail | None = None
    date_created: str = ""
    date_closed: str | None = None
    order_items: list[MLOrderItem] = Field(default_factory=list)
    total_amount: Money = 0.0
    currency_id: str = ""
    buyer: MLBuyer | None = None
    payments: list[MLPayment] = Field(default_factory=list)
    shipping: MLShipping | None = None
    pack_id: int | None = None


class MLPaging(MarketplaceModel):
    total: int = 0


class MLOrderSearchResponse(MarketplaceModel):
    results: list[MLOrder] = Field(default_factory=list)
    paging: MLPaging = Field(default_factory=MLPaging)


class MLItemSearchResponse(MarketplaceModel):
    results: list[str] = Field(default_factory=list)


class MLUser(MarketplaceModel):
    id: int


class MLMultigetEntry(MarketplaceModel):
    code: int
    body: dict[str, Any] | None = None


# Client ----------------------------------------------------------------


class MercadoLibreClient(JsonHttpClient):
    """Mercado Libre REST client authenticated with a bearer token."""

    service_name = "ML"

    def __init__(
        self,
        credentials: CredentialStore,
        *,
        base_url: str = ML_BASE_URL,
        timeout_seconds: float = 30.0,
        rate_limiter: RateLimiter | None = None,
    ) -> None:
        super().__init__(base_url, timeout_seconds=timeout_seconds)
        self._credential_store = credentials
        self._rate_limiter = rate_limiter or mercadolibre_rate_limiter()

    def _credentials(self) -> PlatformCredentials:
        credentials = self._credential_store.get_credentials("mercadolibre")
        if credentials is None or not credentials.access_token:
            raise NotConnectedError("Mercado Libre not connected")
        return credentials

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._credentials().access_token}"}

    def _before_request(self) -> None:
        self._rate_limiter.wait_for_slot()

    def get_user_id(self) -> str:
        credentials = self._credentials()
        if credentials.user_id:
            return credentials.user_id
        me = MLUser.parse(self._request("GET", "/users/me"))
        return str(me.id)

    def get_item_ids(self, *, limit: int = 100) -> list[str]:
        """Return the seller's item ids."""
        user_id = self.get_user_id()
        resp = MLItemSearchResponse.parse(
            self._request(
                "GET", f"/users/{user_id}/items/search", params={"limit": limit}
            )
        )
        return resp.results

    def get_item(self, item_id: str) -> MLItem:
        return MLItem.parse(self._request("GET", f"/items/{item_id}"))

    def get_items_batch(self, item_ids: list[str]) -> list[MLItem]:
        """Fetch items via multiget, skipping entries that did not return 200."""
        items: list[MLItem] = []
        for start in range(0, len(item_ids), MULTIGET_BATCH_SIZE):
            batch = item_ids[start : start + MULTIGET_BATCH_SIZE]
            raw = self._request("GET", "/items", params={"ids": ",".join(batch)})
            for entry in (MLMultigetEntry.parse(e) for e in raw or []):
                if entry.code == 200 and entry.body:
                    items.append(MLItem.parse(entry.body))
        return items

    def search_orders(self, query: OrderQuery | None = None) -> MLOrderSearchResponse:
        query = query or OrderQuery()
        params: dict[str, Any] = {
            "seller": self.get_user_id(),
            "sort": "date_desc",
            "limit": query.limit,
            "offset": query.offset,
            "order.status": query.status,
            "order.date_created.from": query.date_from,
            "order.date_created.to": query.date_to,
        }
        return MLOrderSearchResponse.parse(
            self._request("GET", "/orders/search", params=params)
        )

    def get_order(self, order_id: str) -> MLOrder:
        return MLOrder.parse(self._request("GET", f"/orders/{order_id}"))

    def update_item(
        self,
        item_id: str,
        *,
        price: float | None = None,
        available_quantity: int | None = None,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        if price is not None:
            payload["price"] = price
        if available_quantity is not None:
            payload["available_quantity"] = available_quantity
        return dict(self._request("PUT", f"/items/{item_id}", payload=payload) or {})
