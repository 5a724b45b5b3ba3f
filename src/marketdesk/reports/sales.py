"""Period sales report over unified orders."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

from marketdesk.core.models import PLATFORM_LABELS, UnifiedOrder

# Status fragments (case-insensitive) of orders that produced no sale.
UNSOLD_STATUS_MARKERS = ("canceled", "cancelled", "return in progress", "refunded")

# Status fragments of orders whose product cost counts against the period.
SOLD_STATUS_MARKERS = (
    "delivered",
    "mediation completed",
    "released the money",
    "on its way",
    "closed complaint",
    "processing",
    "shipped",
    "paid",
    "validated",
    "completed",
)


def is_unsold(status: str) -> bool:
    text = status.lower()
    return any(marker in text for marker in UNSOLD_STATUS_MARKERS)


def is_sold(status: str) -> bool:
    text = status.lower()
    return any(marker in text for marker in SOLD_STATUS_MARKERS)


@dataclass(frozen=True, slots=True)
class SalesReportRow:
    order_id: str
    status: str
    sku: str
    item_description: str
    quantity: int
    purchase_date: str
    base_price: float
    fees: float
    shipping_fee: float
    cost: float
    total_net: float
    margin: float
    tracking_number: str
    platform: str


@dataclass(frozen=True, slots=True)
class SalesReport:
    total_amount: float = 0.0
    product_cost: float = 0.0
    refund_withdrawal: float = 0.0
    profit: float = 0.0
    order_count: int = 0
    rows: list[SalesReportRow] = field(default_factory=list)


def _in_window(
    order: UnifiedOrder, date_from: date | None, date_to: date | None
) -> bool:
    if date_from is None and date_to is None:
        return True
    day = order.order_day
    if day is None:
        return False
    if date_from is not None and day < date_from:
        return False
    return date_to is None or day <= date_to


def _report_row(order: UnifiedOrder) -> SalesReportRow:
    first = order.items[0] if order.items else None
    return SalesReportRow(
        order_id=order.order_number,
        status=order.status,
        sku=first.sku if first else "",
        item_description=first.title if first else "",
        quantity=order.quantity,
        purchase_date=order.order_date[:10],
        base_price=order.total_amount,
        fees=order.fees,
        shipping_fee=order.shipping_cost,
        cost=order.cost,
        total_net=order.net_amount,
        margin=0.0 if is_unsold(order.status) else order.net_amount - order.cost,
        tracking_number=order.tracking_number or "",
        platform=PLATFORM_LABELS[order.platform],
    )


def generate_sales_report(
    orders: Iterable[UnifiedOrder],
    date_from: date | None = None,
    date_to: date | None = None,
) -> SalesReport:
    """Aggregate orders placed within an inclusive calendar-day window.

    When either bound is given, orders without a parsable day are left out.
    Product cost only counts for orders in a sold status; unsold orders add
    their absolute net to ``refund_withdrawal`` instead.
    """
    rows = [_report_row(o) for o in orders if _in_window(o, date_from, date_to)]

    total_amount = sum(row.total_net for row in rows)
    product_cost = sum(row.cost for row in rows if is_sold(row.status))
    refund_withdrawal = sum(abs(row.total_net) for row in rows if is_unsold(row.status))

    return SalesReport(
        total_amount=total_amount,
        product_cost=product_cost,
        refund_withdrawal=refund_withdrawal,
        profit=total_amount - product_cost - refund_withdrawal,
        order_count=len(rows),
        rows=rows,
    )
