from __future__ import annotations

import pytest

from marketdesk.core.sku import (
    DEFAULT_SKU_COSTS,
    SkuCostEntry,
    SkuMatcher,
    create_cost_lookup,
    extract_mpn,
)


def create_matcher(*entries: SkuCostEntry) -> SkuMatcher:
    return SkuMatcher(entries or DEFAULT_SKU_COSTS)


class TestExtractMpn:
    @pytest.mark.parametrize(
        ("sku", "expected"),
        [
            ("4WY33LW/A-ASIS-PLUS", "4WY33LW/A"),
            ("4WY33LW/A", "4WY33LW/A"),
            ("-ABC-1", "ABC"),
            ("  MX2E3LL/A - USED", "MX2E3LL/A"),
            ("", ""),
            (None, ""),
            ("---", ""),
        ],
    )
    def test_first_non_empty_segment(self, sku: str | None, expected: str) -> None:
        assert extract_mpn(sku) == expected


class TestSkuMatcher:
    def test_exact_mpn_hit(self) -> None:
        # setup
        matcher = create_matcher()

        # act
        cost = matcher.cost_for("4WY33LW/A")

        # assert
        assert cost == 234

    def test_mpn_lookup_ignores_case(self) -> None:
        matcher = create_matcher()

        assert matcher.cost_for("4wy33lw/a") == 234

    def test_condition_suffix_resolves_through_segment(self) -> None:
        matcher = create_matcher()

        assert matcher.cost_for("4WXA3LW/A-ASIS-PLUS") == 223

    def test_gps_variant_code_matches_first_size_and_connectivity_row(self) -> None:
        # input
        sku = "GPS-42-SILVER"

        # setup
        matcher = create_matcher()

        # act
        cost = matcher.cost_for(sku)

        # assert: first 42mm GPS row in table order
        assert cost == 221

    def test_cell_variant_code_with_mm_suffix(self) -> None:
        matcher = create_matcher()

        assert matcher.cost_for("CELL-46MM-BLACK") == 234

    def test_variant_code_without_size_segment_misses(self) -> None:
        matcher = create_matcher()

        assert matcher.cost_for("GPS-SILVER") == 0.0

    def test_iphone_free_text_with_storage(self) -> None:
        matcher = create_matcher()

        assert matcher.cost_for("iPhone 13 128GB") == 244.37

    def test_iphone_without_storage_probes_largest_first(self) -> None:
        # setup
        matcher = create_matcher()

        # act: no 256GB row for the 12, so 128GB wins over 64GB
        cost = matcher.cost_for("IPHONE12-USED")

        # assert
        assert cost == 244.37

    def test_explicit_storage_is_not_probed(self) -> None:
        matcher = create_matcher()

        assert matcher.cost_for("iPhone 11 512GB") == 0.0

    def test_unknown_sku_returns_zero(self) -> None:
        matcher = create_matcher()

        assert matcher.cost_for("SAMSUNG-S23") == 0.0

    @pytest.mark.parametrize("sku", [None, "", "   "])
    def test_blank_sku_returns_zero(self, sku: str | None) -> None:
        matcher = create_matcher()

        assert matcher.cost_for(sku) == 0.0

    def test_negative_cost_is_clamped(self) -> None:
        matcher = create_matcher(SkuCostEntry("BROKEN", -10.0))

        assert matcher.cost_for("BROKEN") == 0.0

    def test_repeated_lookups_are_stable(self) -> None:
        matcher = create_matcher()

        first = matcher.cost_for("GPS-42-SILVER")
        second = matcher.cost_for("GPS-42-SILVER")

        assert first == second == 221

    def test_entry_for_returns_table_row(self) -> None:
        matcher = create_matcher()

        entry = matcher.entry_for("4wwa3lw/a")

        assert entry is not None
        assert entry.size == "42mm"
        assert entry.connectivity == "GPS"
        assert matcher.entry_for("") is None

    def test_len_counts_entries(self) -> None:
        assert len(create_matcher()) == len(DEFAULT_SKU_COSTS)


class TestCreateCostLookup:
    def test_lookup_closes_over_snapshot(self) -> None:
        # setup
        entries = [SkuCostEntry("ABC123", 99.5)]
        lookup = create_cost_lookup(entries)

        # act
        entries.append(SkuCostEntry("LATE", 1.0))

        # assert
        assert lookup("ABC123-NEW") == 99.5
        assert lookup("LATE") == 0.0
