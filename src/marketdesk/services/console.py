"""Seller console: concurrent cross-marketplace reads and report wiring.

Each connected platform is queried on its own worker thread (the clients
are blocking). A failing platform never hides the other one's data: its
error is logged and returned in ``errors`` as ``"<label>: <message>"``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TypeVar

import loguru
from loguru import logger

from marketdesk.adapters.db.facade import DB
from marketdesk.adapters.marketplaces.http import NotConnectedError
from marketdesk.adapters.marketplaces.provider import MarketplaceProvider
from marketdesk.core.models import (
    PLATFORM_LABELS,
    PLATFORMS,
    OrderQuery,
    Platform,
    UnifiedListing,
    UnifiedOrder,
)
from marketdesk.core.sku import DEFAULT_SKU_COSTS, SkuMatcher
from marketdesk.reports.payouts import PayoutCategory, PayoutEntry
from marketdesk.reports.products import ProductReport, generate_product_report
from marketdesk.reports.sales import SalesReport, generate_sales_report

T = TypeVar("T")

DASHBOARD_ORDER_SAMPLE = 20
RECENT_ORDERS = 10


@dataclass
class ListingsResult:
    listings: list[UnifiedListing] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class OrdersResult:
    orders: list[UnifiedOrder] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class SalesReportResult:
    report: SalesReport
    errors: list[str] = field(default_factory=list)


@dataclass
class ProductReportResult:
    report: ProductReport
    errors: list[str] = field(default_factory=list)


@dataclass
class DashboardKpis:
    total_listings: int = 0
    active_orders: int = 0
    total_revenue: float = 0.0
    total_profit: float = 0.0
    revenue_by_platform: dict[Platform, float] = field(
        default_factory=lambda: dict.fromkeys(PLATFORMS, 0.0)
    )
    orders_by_platform: dict[Platform, int] = field(
        default_factory=lambda: dict.fromkeys(PLATFORMS, 0)
    )
    recent_orders: list[UnifiedOrder] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


@dataclass
class _PlatformDashboard:
    platform: Platform
    listing_count: int
    orders: list[UnifiedOrder]
    order_total: int
    active_orders: int


class ConsoleLogger:
    """Handles all logging for SellerConsole."""

    def __init__(self, logger_instance: loguru.Logger = logger) -> None:
        self._logger = logger_instance

    def platform_skipped(self, platform: Platform) -> None:
        self._logger.bind(platform=platform).debug(
            "{} not connected, skipping", PLATFORM_LABELS[platform]
        )

    def platform_failed(self, platform: Platform, operation: str, error: str) -> None:
        """Log a per-platform failure that was turned into an error entry."""
        self._logger.bind(platform=platform, operation=operation).warning(
            "{} {} failed: {}", PLATFORM_LABELS[platform], operation, error
        )

    def fetched(self, operation: str, count: int, error_count: int) -> None:
        self._logger.bind(operation=operation, count=count, errors=error_count).info(
            "Fetched {}: {} records ({} platform errors)",
            operation,
            count,
            error_count,
        )

    def cost_snapshot(self, entry_count: int, from_defaults: bool) -> None:
        source = "defaults" if from_defaults else "database"
        self._logger.bind(entries=entry_count, source=source).debug(
            "Built SKU cost snapshot with {} entries from {}", entry_count, source
        )


def order_timestamp(order: UnifiedOrder) -> float:
    """Sort key for orders; unparsable dates sort last."""
    try:
        return datetime.fromisoformat(order.order_date.strip()).timestamp()
    except ValueError:
        return float("-inf")


def newest_first(orders: Sequence[UnifiedOrder]) -> list[UnifiedOrder]:
    return sorted(orders, key=order_timestamp, reverse=True)


class SellerConsole:
    """Read side of the console over a set of marketplace providers.

    Args:
        providers: One provider per marketplace
        db: Optional database for the SKU cost table and payout ledger;
            without it the default cost table and no cutover date are used
        order_limit: Default page size for order queries
    """

    def __init__(
        self,
        providers: Sequence[MarketplaceProvider],
        *,
        db: DB | None = None,
        order_limit: int = 50,
        console_logger: ConsoleLogger | None = None,
    ) -> None:
        self._providers = list(providers)
        self._db = db
        self._order_limit = order_limit
        self._logger = console_logger or ConsoleLogger()

    def provider(self, platform: Platform) -> MarketplaceProvider:
        for provider in self._providers:
            if provider.platform == platform:
                return provider
        raise NotConnectedError(f"{PLATFORM_LABELS[platform]} not configured")

    def sku_matcher(self) -> SkuMatcher:
        """Snapshot the cost table for one request (defaults when empty)."""
        entries = self._db.list_sku_costs() if self._db is not None else []
        from_defaults = not entries
        if from_defaults:
            entries = list(DEFAULT_SKU_COSTS)
        self._logger.cost_snapshot(len(entries), from_defaults)
        return SkuMatcher(entries)

    def default_query(self) -> OrderQuery:
        return OrderQuery(limit=self._order_limit)

    async def _per_platform(
        self, operation: str, fetch: Callable[[MarketplaceProvider], T]
    ) -> tuple[list[T], list[str]]:
        async def run(provider: MarketplaceProvider) -> tuple[T | None, str | None]:
            try:
                if not await asyncio.to_thread(provider.is_connected):
                    self._logger.platform_skipped(provider.platform)
                    return None, None
                return await asyncio.to_thread(fetch, provider), None
            except Exception as e:
                self._logger.platform_failed(provider.platform, operation, str(e))
                return None, f"{PLATFORM_LABELS[provider.platform]}: {e}"

        outcomes = await asyncio.gather(*(run(p) for p in self._providers))
        values = [value for value, _ in outcomes if value is not None]
        errors = [error for _, error in outcomes if error is not None]
        return values, errors

    async def fetch_listings(self) -> ListingsResult:
        batches, errors = await self._per_platform(
            "listings", lambda p: p.list_listings()
        )
        listings = [listing for batch in batches for listing in batch]
        self._logger.fetched("listings", len(listings), len(errors))
        return ListingsResult(listings=listings, errors=errors)

    async def fetch_orders(
        self,
        query: OrderQuery | None = None,
        sku_matcher: SkuMatcher | None = None,
    ) -> OrdersResult:
        """Fetch orders from every connected platform, newest first."""
        query = query or self.default_query()
        cost_lookup = (sku_matcher or self.sku_matcher()).cost_for
        batches, errors = await self._per_platform(
            "orders", lambda p: p.list_orders(query, cost_lookup)
        )
        orders = newest_first([order for batch in batches for order in batch])
        self._logger.fetched("orders", len(orders), len(errors))
        return OrdersResult(orders=orders, errors=errors)

    async def sales_report(
        self, date_from: date | None = None, date_to: date | None = None
    ) -> SalesReportResult:
        fetched = await self.fetch_orders(self._report_query(date_from, date_to))
        report = generate_sales_report(fetched.orders, date_from, date_to)
        return SalesReportResult(report=report, errors=fetched.errors)

    async def product_report(self) -> ProductReportResult:
        """Per-product report with the cutover from the stored payout ledger."""
        matcher = self.sku_matcher()
        fetched = await self.fetch_orders(self.default_query(), matcher)

        last_payout_date: date | None = None
        payouts: list[PayoutEntry] = []
        if self._db is not None:
            last_payout_date = self._db.latest_payout_date()
            payouts = [
                PayoutEntry(date=row.date[:10], amount=row.net_debit_amount)
                for row in self._db.load_payout_rows()
                if row.category is PayoutCategory.PAYOUT
            ]

        report = generate_product_report(
            fetched.orders,
            last_payout_date=last_payout_date,
            sku_matcher=matcher,
            payouts=payouts,
        )
        return ProductReportResult(report=report, errors=fetched.errors)

    async def dashboard(self) -> DashboardKpis:
        cost_lookup = self.sku_matcher().cost_for
        sample = OrderQuery(limit=DASHBOARD_ORDER_SAMPLE)

        def collect(provider: MarketplaceProvider) -> _PlatformDashboard:
            page = provider.list_orders_page(sample, cost_lookup)
            orders = page.orders
            return _PlatformDashboard(
                platform=provider.platform,
                listing_count=provider.count_listings(),
                orders=orders,
                order_total=page.total,
                active_orders=sum(1 for o in orders if provider.is_active(o)),
            )

        per_platform, errors = await self._per_platform("dashboard", collect)

        kpis = DashboardKpis(errors=errors)
        all_orders: list[UnifiedOrder] = []
        for stats in per_platform:
            kpis.total_listings += stats.listing_count
            kpis.active_orders += stats.active_orders
            kpis.revenue_by_platform[stats.platform] = sum(
                o.total_amount for o in stats.orders
            )
            kpis.orders_by_platform[stats.platform] = stats.order_total
            all_orders.extend(stats.orders)

        kpis.total_revenue = sum(kpis.revenue_by_platform.values())
        kpis.total_profit = sum(o.margin for o in all_orders)
        kpis.recent_orders = newest_first(all_orders)[:RECENT_ORDERS]
        return kpis

    # Marketplace writes --------------------------------------------------

    def update_price(self, platform: Platform, external_id: str, price: float) -> None:
        self.provider(platform).update_price(external_id, price)

    def update_stock(self, platform: Platform, external_id: str, stock: int) -> None:
        self.provider(platform).update_stock(external_id, stock)

    def update_tracking(
        self,
        platform: Platform,
        external_id: str,
        tracking_number: str,
        tracking_url: str | None = None,
        carrier: str | None = None,
    ) -> None:
        self.provider(platform).update_tracking(
            external_id, tracking_number, tracking_url, carrier
        )

    def _report_query(self, date_from: date | None, date_to: date | None) -> OrderQuery:
        return OrderQuery(
            date_from=date_from.isoformat() if date_from else None,
            date_to=date_to.isoformat() if date_to else None,
            limit=self._order_limit,
        )
