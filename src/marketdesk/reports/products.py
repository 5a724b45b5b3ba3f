"""Per-product report: money received vs still pending payout.

Orders are attributed to the listing of their first item. An order's net
counts as received when it was placed on or before the cutover date (the
latest confirmed payout) and as pending otherwise.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date

from marketdesk.core.models import Platform, UnifiedOrder
from marketdesk.core.sku import SkuMatcher, extract_mpn
from marketdesk.core.titles import (
    UNKNOWN_COLOR,
    parse_color,
    parse_connectivity,
    parse_size,
)
from marketdesk.reports.payouts import PayoutEntry


@dataclass(frozen=True, slots=True)
class ProductReportRow:
    product_name: str
    item_id: str
    sku: str
    mpn: str
    platform: Platform
    size: str
    connectivity: str
    color: str
    sold: int
    cost: float
    selling_rate: float
    received: float
    pending: float
    profit: float


@dataclass(frozen=True, slots=True)
class ProductReport:
    products: list[ProductReportRow] = field(default_factory=list)
    total_sold: int = 0
    total_received: float = 0.0
    total_pending: float = 0.0
    total_profit: float = 0.0
    payouts: list[PayoutEntry] = field(default_factory=list)


@dataclass(slots=True)
class _ProductTotals:
    product_name: str
    item_id: str
    sku: str
    mpn: str
    platform: Platform
    size: str
    connectivity: str
    color: str
    cost: float
    sold: int = 0
    received: float = 0.0
    pending: float = 0.0

    def freeze(self) -> ProductReportRow:
        selling_rate = (self.received + self.pending) / self.sold if self.sold else 0.0
        profit = self.received - self.cost * self.sold
        if profit < 0 and self.pending > 0:
            # Not a loss yet while money is still on its way.
            profit = 0.0
        return ProductReportRow(
            product_name=self.product_name,
            item_id=self.item_id,
            sku=self.sku,
            mpn=self.mpn,
            platform=self.platform,
            size=self.size,
            connectivity=self.connectivity,
            color=self.color,
            sold=self.sold,
            cost=self.cost,
            selling_rate=selling_rate,
            received=self.received,
            pending=self.pending,
            profit=profit,
        )


def product_name(size: str, connectivity: str, color: str, fallback: str) -> str:
    """Join ``size - connectivity - color``, skipping blanks and Unknown."""
    parts = [p for p in (size, connectivity, color) if p and p != UNKNOWN_COLOR]
    return " - ".join(parts) if parts else fallback


def _new_totals(
    order: UnifiedOrder, sku_matcher: SkuMatcher | None
) -> _ProductTotals:
    item = order.items[0]
    sku = item.sku or ""
    mpn = extract_mpn(sku)
    entry = sku_matcher.entry_for(mpn) if sku_matcher is not None else None

    size = (entry.size if entry else None) or parse_size(item.title)
    connectivity = (entry.connectivity if entry else None) or parse_connectivity(
        item.title
    )
    color = parse_color(item.title)
    return _ProductTotals(
        product_name=product_name(size, connectivity, color, item.listing_id),
        item_id=item.listing_id,
        sku=sku,
        mpn=mpn,
        platform=order.platform,
        size=size,
        connectivity=connectivity,
        color=color,
        cost=sku_matcher.cost_for(sku) if sku_matcher is not None else 0.0,
    )


def generate_product_report(
    orders: Iterable[UnifiedOrder],
    last_payout_date: date | None = None,
    sku_matcher: SkuMatcher | None = None,
    payouts: Sequence[PayoutEntry] = (),
) -> ProductReport:
    """Group orders by product and split their net into received/pending."""
    groups: dict[tuple[Platform, str], _ProductTotals] = {}

    for order in orders:
        if not order.items:
            continue
        item = order.items[0]
        key = (order.platform, item.listing_id)
        if key not in groups:
            groups[key] = _new_totals(order, sku_matcher)
        totals = groups[key]

        totals.sold += item.quantity
        day = order.order_day
        if last_payout_date is not None and day is not None and day > last_payout_date:
            totals.pending += order.net_amount
        else:
            totals.received += order.net_amount

    rows = sorted(
        (totals.freeze() for totals in groups.values()),
        key=lambda row: row.received,
        reverse=True,
    )
    return ProductReport(
        products=rows,
        total_sold=sum(row.sold for row in rows),
        total_received=sum(row.received for row in rows),
        total_pending=sum(row.pending for row in rows),
        total_profit=sum(row.profit for row in rows),
        payouts=list(payouts),
    )
