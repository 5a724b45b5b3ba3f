"""Per-platform providers: a client plus its mapper behind one interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import loguru
from loguru import logger

from marketdesk.adapters.credentials import CredentialStore, is_connected
from marketdesk.adapters.marketplaces.backmarket import mapper as bm_mapper
from marketdesk.adapters.marketplaces.backmarket.client import BackMarketClient
from marketdesk.adapters.marketplaces.http import MarketplaceClientError
from marketdesk.adapters.marketplaces.mercadolibre import mapper as ml_mapper
from marketdesk.adapters.marketplaces.mercadolibre.client import MercadoLibreClient
from marketdesk.core.models import OrderQuery, Platform, UnifiedListing, UnifiedOrder
from marketdesk.core.sku import CostLookup

ML_ACTIVE_STATUSES = ("paid", "confirmed", "partially_paid")
BM_ACTIVE_STATUSES = frozenset({"New", "Pending", "Validated", "Shipped"})


@dataclass(frozen=True, slots=True)
class OrderPage:
    """Mapped orders plus the total the marketplace reports for the query."""

    orders: list[UnifiedOrder]
    total: int


class MarketplaceProvider(Protocol):
    platform: Platform

    def is_connected(self) -> bool: ...

    def list_listings(self) -> list[UnifiedListing]: ...

    def count_listings(self) -> int: ...

    def list_orders(
        self, query: OrderQuery, cost_lookup: CostLookup
    ) -> list[UnifiedOrder]: ...

    def list_orders_page(
        self, query: OrderQuery, cost_lookup: CostLookup
    ) -> OrderPage: ...

    def get_order(self, external_id: str, cost_lookup: CostLookup) -> UnifiedOrder: ...

    def is_active(self, order: UnifiedOrder) -> bool: ...

    def update_price(self, external_id: str, price: float) -> None: ...

    def update_stock(self, external_id: str, stock: int) -> None: ...

    def update_tracking(
        self,
        external_id: str,
        tracking_number: str,
        tracking_url: str | None = None,
        carrier: str | None = None,
    ) -> None: ...


class MercadoLibreProvider:
    platform: Platform = "mercadolibre"

    def __init__(
        self,
        client: MercadoLibreClient,
        credentials: CredentialStore,
        *,
        fee_sample_size: int = 50,
        logger_instance: loguru.Logger = logger,
    ) -> None:
        self._client = client
        self._credentials = credentials
        self._fee_sample_size = fee_sample_size
        self._logger = logger_instance

    def is_connected(self) -> bool:
        return is_connected(self._credentials, self.platform)

    def list_listings(self) -> list[UnifiedListing]:
        """Fetch listings with ``net_payout`` estimated from recent order fees."""
        item_ids = self._client.get_item_ids()
        if not item_ids:
            return []
        items = self._client.get_items_batch(item_ids)
        listings = [ml_mapper.map_listing(item) for item in items]

        try:
            recent = self._client.search_orders(
                OrderQuery(limit=self._fee_sample_size)
            )
        except MarketplaceClientError as e:
            self._logger.bind(platform=self.platform).warning(
                "Could not estimate ML fee rate: {}", e
            )
            return listings

        fee_rate = ml_mapper.estimate_fee_rate(recent.results)
        self._logger.bind(platform=self.platform, fee_rate=fee_rate).debug(
            "Estimated ML fee rate {:.3f} from {} orders",
            fee_rate,
            len(recent.results),
        )
        return ml_mapper.apply_net_payout(listings, fee_rate)

    def count_listings(self) -> int:
        return len(self._client.get_item_ids())

    def list_orders(
        self, query: OrderQuery, cost_lookup: CostLookup
    ) -> list[UnifiedOrder]:
        return self.list_orders_page(query, cost_lookup).orders

    def list_orders_page(
        self, query: OrderQuery, cost_lookup: CostLookup
    ) -> OrderPage:
        """One page of orders with ML's ``paging.total`` across all pages."""
        resp = self._client.search_orders(query)
        orders = [ml_mapper.map_order(o, cost_lookup) for o in resp.results]
        return OrderPage(orders=orders, total=resp.paging.total or len(orders))

    def get_order(self, external_id: str, cost_lookup: CostLookup) -> UnifiedOrder:
        return ml_mapper.map_order(self._client.get_order(external_id), cost_lookup)

    def is_active(self, order: UnifiedOrder) -> bool:
        status = order.status.lower()
        return any(s in status for s in ML_ACTIVE_STATUSES)

    def update_price(self, external_id: str, price: float) -> None:
        self._client.update_item(external_id, price=price)

    def update_stock(self, external_id: str, stock: int) -> None:
        self._client.update_item(external_id, available_quantity=stock)

    def update_tracking(
        self,
        external_id: str,
        tracking_number: str,
        tracking_url: str | None = None,
        carrier: str | None = None,
    ) -> None:
        raise MarketplaceClientError(
            "Mercado Libre shipments are tracked by Mercado Envios; "
            f"order {external_id} cannot take a manual tracking number"
        )


class BackMarketProvider:
    platform: Platform = "backmarket"

    def __init__(self, client: BackMarketClient, credentials: CredentialStore) -> None:
        self._client = client
        self._credentials = credentials

    def is_connected(self) -> bool:
        return is_connected(self._credentials, self.platform)

    def list_listings(self) -> list[UnifiedListing]:
        return [
            bm_mapper.map_listing(listing)
            for listing in self._client.get_all_listings()
        ]

    def count_listings(self) -> int:
        first_page = self._client.get_listings()
        return first_page.count or len(first_page.results)

    def list_orders(
        self, query: OrderQuery, cost_lookup: CostLookup
    ) -> list[UnifiedOrder]:
        # The BM orders endpoint takes no filters: every order is returned,
        # neither filtered by the query nor paged.
        return [
            bm_mapper.map_order(o, cost_lookup) for o in self._client.get_all_orders()
        ]

    def list_orders_page(
        self, query: OrderQuery, cost_lookup: CostLookup
    ) -> OrderPage:
        orders = self.list_orders(query, cost_lookup)
        return OrderPage(orders=orders, total=len(orders))

    def get_order(self, external_id: str, cost_lookup: CostLookup) -> UnifiedOrder:
        return bm_mapper.map_order(self._client.get_order(external_id), cost_lookup)

    def is_active(self, order: UnifiedOrder) -> bool:
        return order.status in BM_ACTIVE_STATUSES

    def update_price(self, external_id: str, price: float) -> None:
        self._client.update_listing(external_id, price=price)

    def update_stock(self, external_id: str, stock: int) -> None:
        self._client.update_listing(external_id, quantity=stock)

    def update_tracking(
        self,
        external_id: str,
        tracking_number: str,
        tracking_url: str | None = None,
        carrier: str | None = None,
    ) -> None:
        self._client.update_order_tracking(
            external_id,
            tracking_number=tracking_number,
            tracking_url=tracking_url,
            shipper=carrier,
        )
