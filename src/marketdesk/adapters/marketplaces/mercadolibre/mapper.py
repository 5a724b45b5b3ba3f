"""Mercado Libre items and orders to the unified schema."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import replace

from marketdesk.adapters.marketplaces.mercadolibre.client import MLItem, MLOrder
from marketdesk.core.models import UnifiedListing, UnifiedOrder, UnifiedOrderItem
from marketdesk.core.sku import CostLookup
from marketdesk.core.titles import parse_color, parse_connectivity, parse_size

# Native statuses whose orders never produce margin.
UNSOLD_STATUSES = frozenset({"cancelled", "invalid"})

# Seller purchase-order numbering used for ML orders.
ORDER_NUMBER_PREFIX = "PO-211"


def listing_sku(item: MLItem) -> str:
    """Seller SKU for an item, falling back to its first variation."""
    if item.seller_custom_field:
        return item.seller_custom_field
    if item.variations and item.variations[0].seller_custom_field:
        return item.variations[0].seller_custom_field
    return ""


def map_listing(item: MLItem) -> UnifiedListing:
    return UnifiedListing(
        platform="mercadolibre",
        external_id=item.id,
        title=item.title,
        sku=listing_sku(item),
        price=item.price,
        currency=item.currency_id,
        stock=item.available_quantity,
        status=item.status,
        image_url=item.thumbnail,
        url=item.permalink,
        size=parse_size(item.title),
        connectivity=parse_connectivity(item.title),
        color=parse_color(item.title),
        updated_at=item.last_updated,
    )


def _buyer_name(order: MLOrder) -> str | None:
    if order.buyer is None:
        return None
    full_name = f"{order.buyer.first_name or ''} {order.buyer.last_name or ''}".strip()
    return full_name or order.buyer.nickname or None


def map_order(order: MLOrder, cost_lookup: CostLookup) -> UnifiedOrder:
    """Map an ML order, resolving unit costs through ``cost_lookup``."""
    items = tuple(
        UnifiedOrderItem(
            listing_id=line.item.id,
            title=line.item.title,
            sku=line.item.seller_custom_field or "",
            quantity=line.quantity,
            unit_price=line.unit_price,
        )
        for line in order.order_items
    )

    fees = sum(payment.marketplace_fee for payment in order.payments)
    shipping_cost = sum(payment.shipping_cost for payment in order.payments)
    cost = sum(cost_lookup(item.sku) * item.quantity for item in items)

    status_label = (
        order.status_detail.description
        if order.status_detail and order.status_detail.description
        else order.status
    )
    tracking_number = order.shipping.tracking_number if order.shipping else None

    return UnifiedOrder(
        platform="mercadolibre",
        external_id=str(order.id),
        order_number=f"{ORDER_NUMBER_PREFIX}-{order.id}",
        status=status_label,
        items=items,
        total_amount=order.total_amount,
        currency=order.currency_id,
        fees=fees,
        shipping_cost=shipping_cost,
        cost=cost,
        order_date=order.date_created,
        cancelled=order.status in UNSOLD_STATUSES,
        buyer_name=_buyer_name(order),
        tracking_number=tracking_number or None,
        delivered_date=order.date_closed if order.status == "delivered" else None,
    )


def estimate_fee_rate(orders: Iterable[MLOrder]) -> float:
    """Average marketplace fee ratio over recent orders.

    Uses the reported ``marketplace_fee`` when present, otherwise the gap
    between paid and total amounts. Returns 0.0 when no order carries a fee
    signal.
    """
    total_amount = 0.0
    total_fees = 0.0
    for order in orders:
        if order.total_amount <= 0 or not order.payments:
            continue
        order_fees = sum(p.marketplace_fee for p in order.payments)
        paid_amount = sum(p.total_paid_amount for p in order.payments)
        if order_fees > 0:
            total_fees += order_fees
            total_amount += order.total_amount
        elif paid_amount > 0 and paid_amount != order.total_amount:
            total_fees += abs(paid_amount - order.total_amount)
            total_amount += order.total_amount
    return total_fees / total_amount if total_amount > 0 else 0.0


def apply_net_payout(
    listings: Iterable[UnifiedListing], fee_rate: float
) -> list[UnifiedListing]:
    """Return copies of ``listings`` with ``net_payout`` estimated from a fee rate."""
    return [
        replace(
            listing,
            net_payout=round(listing.price * (1 - fee_rate), 2)
            if fee_rate > 0
            else None,
        )
        for listing in listings
    ]
