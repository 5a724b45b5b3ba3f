from __future__ import annotations

from dataclasses import FrozenInstanceError, replace
from datetime import date

import pytest

from marketdesk.core.models import (
    UnifiedListing,
    UnifiedOrder,
    UnifiedOrderItem,
    parse_day,
    unified_id,
)


def create_order(**overrides: object) -> UnifiedOrder:
    fields: dict[str, object] = {
        "platform": "mercadolibre",
        "external_id": "2000001",
        "order_number": "PO-211-2000001",
        "status": "paid",
        "items": (
            UnifiedOrderItem("MLM1", "Apple Watch SE 44mm", "4WY33LW/A", 2, 150.0),
        ),
        "total_amount": 300.0,
        "currency": "MXN",
        "fees": 45.0,
        "shipping_cost": 10.0,
        "cost": 200.0,
        "order_date": "2024-03-05T10:00:00.000-04:00",
    }
    fields.update(overrides)
    return UnifiedOrder(**fields)  # type: ignore[arg-type]


class TestUnifiedId:
    def test_prefixes(self) -> None:
        assert unified_id("mercadolibre", "MLM123") == "ml-MLM123"
        assert unified_id("backmarket", 42) == "bm-42"


class TestParseDay:
    def test_uses_date_prefix(self) -> None:
        assert parse_day("2024-03-05T23:59:59Z") == date(2024, 3, 5)

    @pytest.mark.parametrize("value", [None, "", "not a date", "2024-13-01"])
    def test_unparsable_is_none(self, value: str | None) -> None:
        assert parse_day(value) is None


class TestUnifiedListing:
    def test_derives_id_and_mpn(self) -> None:
        # act
        listing = UnifiedListing(
            platform="backmarket",
            external_id="77",
            title="Apple Watch",
            sku="4WY33LW/A-ASIS",
            price=250.0,
            currency="USD",
            stock=3,
            status="active",
        )

        # assert
        assert listing.id == "bm-77"
        assert listing.mpn == "4WY33LW/A"

    def test_replace_keeps_derived_fields(self) -> None:
        listing = UnifiedListing(
            platform="mercadolibre",
            external_id="MLM9",
            title="x",
            sku="ABC-1",
            price=100.0,
            currency="MXN",
            stock=1,
            status="active",
        )

        updated = replace(listing, net_payout=85.0)

        assert updated.net_payout == 85.0
        assert updated.id == "ml-MLM9"
        assert listing.net_payout is None


class TestUnifiedOrder:
    def test_net_and_margin(self) -> None:
        order = create_order()

        assert order.id == "ml-2000001"
        assert order.net_amount == 255.0
        assert order.margin == 55.0

    def test_cancelled_order_has_zero_margin(self) -> None:
        order = create_order(cancelled=True)

        assert order.net_amount == 255.0
        assert order.margin == 0.0

    def test_order_day_and_quantity(self) -> None:
        order = create_order()

        assert order.order_day == date(2024, 3, 5)
        assert order.quantity == 2

    def test_items_are_stored_as_tuple(self) -> None:
        item = UnifiedOrderItem("1", "t", "s", 1, 10.0)

        order = create_order(items=[item])

        assert order.items == (item,)

    def test_frozen(self) -> None:
        order = create_order()

        with pytest.raises(FrozenInstanceError):
            order.status = "cancelled"  # type: ignore[misc]
