"""Tolerant numeric parsing and money formatting."""

from __future__ import annotations

import math
from typing import Annotated, Any

from pydantic import BeforeValidator


def to_float(value: Any) -> float:
    """Parse a marketplace or ledger amount, defaulting to 0.0.

    Accepts numbers and numeric-looking strings. ``None``, ``""``, ``"-"``,
    any non-numeric token and non-finite values all become ``0.0`` so that
    aggregate sums never see NaN.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, int | float):
        number = float(value)
    else:
        text = str(value).strip()
        if text in ("", "-"):
            return 0.0
        try:
            number = float(text)
        except ValueError:
            return 0.0
    return number if math.isfinite(number) else 0.0


# Pydantic field type for monetary values that may arrive as strings.
Money = Annotated[float, BeforeValidator(to_float)]


def format_currency(amount: float, currency: str = "USD") -> str:
    """Format an amount as ``$1,234.56`` (USD) or ``1,234.56 MXN``."""
    sign = "-" if amount < 0 else ""
    body = f"{abs(amount):,.2f}"
    if currency.upper() == "USD":
        return f"{sign}${body}"
    return f"{sign}{body} {currency.upper()}"


def format_percent(value: float) -> str:
    """Format a ratio as a percentage with one decimal (0.125 -> 12.5%)."""
    return f"{value * 100:.1f}%"
