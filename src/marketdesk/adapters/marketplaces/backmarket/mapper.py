"""Back Market listings and orders to the unified schema."""

from __future__ import annotations

from collections.abc import Mapping

from marketdesk.adapters.marketplaces.backmarket.client import BMListing, BMOrder
from marketdesk.core.models import UnifiedListing, UnifiedOrder, UnifiedOrderItem
from marketdesk.core.sku import CostLookup
from marketdesk.core.titles import parse_color, parse_connectivity, parse_size

ORDER_STATE_LABELS: dict[int, str] = {
    1: "New",
    2: "Pending",
    3: "Shipped",
    4: "Cancelled",
    5: "Cancelled",
    6: "Refunded",
    7: "Under Review",
    8: "Dispute",
    9: "Completed",
}

# Labels whose orders never produce margin.
UNSOLD_LABELS = frozenset({"Cancelled", "Refunded"})

PUBLISHED_STATE = 2
DEFAULT_CURRENCY = "USD"


def state_label(state: int, labels: Mapping[int, str] = ORDER_STATE_LABELS) -> str:
    return labels.get(state, f"State {state}")


def map_listing(listing: BMListing) -> UnifiedListing:
    sku = listing.sku or ""
    return UnifiedListing(
        platform="backmarket",
        external_id=str(listing.listing_id),
        title=listing.title,
        sku=sku,
        price=listing.price,
        currency=listing.currency or DEFAULT_CURRENCY,
        stock=listing.quantity,
        status="active" if listing.publication_state == PUBLISHED_STATE else "paused",
        size=parse_size(listing.title),
        connectivity=parse_connectivity(listing.title),
        color=parse_color(listing.title),
        min_price=listing.min_price,
        max_price=listing.max_price,
    )


def map_order(
    order: BMOrder,
    cost_lookup: CostLookup,
    *,
    state_labels: Mapping[int, str] = ORDER_STATE_LABELS,
) -> UnifiedOrder:
    """Map a BM order, resolving unit costs through ``cost_lookup``.

    Fees come from each line's ``orderline_fee``; lines without one count
    as zero.
    """
    items = tuple(
        UnifiedOrderItem(
            listing_id=str(line.listing_id),
            title=line.product or line.listing or "",
            sku=line.listing or "",
            quantity=line.quantity,
            unit_price=line.price,
        )
        for line in order.orderlines
    )

    if items:
        total_amount = sum(item.unit_price * item.quantity for item in items)
    else:
        total_amount = order.price
    cost = sum(cost_lookup(item.sku) * item.quantity for item in items)
    fees = sum(line.orderline_fee for line in order.orderlines)

    label = state_label(order.state, state_labels)

    buyer_name = None
    if order.shipping_address is not None:
        address = order.shipping_address
        buyer_name = (
            f"{address.first_name or ''} {address.last_name or ''}".strip() or None
        )

    return UnifiedOrder(
        platform="backmarket",
        external_id=str(order.order_id),
        order_number=f"BM-{order.order_id}",
        status=label,
        items=items,
        total_amount=total_amount,
        currency=order.currency or DEFAULT_CURRENCY,
        fees=fees,
        shipping_cost=order.shipping_price,
        cost=cost,
        order_date=order.date_creation,
        cancelled=label in UNSOLD_LABELS,
        buyer_name=buyer_name,
        tracking_number=order.tracking_number or None,
        tracking_url=order.tracking_url or None,
        shipped_date=order.date_shipping or None,
    )
