from __future__ import annotations

import pytest

from marketdesk.core.numbers import format_currency, format_percent, to_float


class TestToFloat:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("1234.50", 1234.5),
            (" -12.5 ", -12.5),
            (7, 7.0),
            (2.25, 2.25),
            ("", 0.0),
            ("-", 0.0),
            (None, 0.0),
            ("abc", 0.0),
            ("nan", 0.0),
            ("inf", 0.0),
            (float("nan"), 0.0),
            (True, 0.0),
        ],
    )
    def test_tolerant_parsing(self, value: object, expected: float) -> None:
        assert to_float(value) == expected


class TestFormatting:
    def test_usd(self) -> None:
        assert format_currency(1234.5) == "$1,234.50"

    def test_negative_usd(self) -> None:
        assert format_currency(-5) == "-$5.00"

    def test_other_currency(self) -> None:
        assert format_currency(1500, "mxn") == "1,500.00 MXN"

    def test_percent(self) -> None:
        assert format_percent(0.125) == "12.5%"
