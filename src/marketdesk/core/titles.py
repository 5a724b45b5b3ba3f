"""Best-effort product attribute parsing from free-text listing titles."""

from __future__ import annotations

import re

UNKNOWN_COLOR = "Unknown"

# Order matters: more specific patterns come first.
_COLORS: list[tuple[str, str]] = [
    ("rose gold", "Rose Gold"),
    ("jet black", "Jet Black"),
    ("space gray", "Space Gray"),
    ("space grey", "Space Gray"),
    ("blush pink", "Pink"),
    ("midnight", "Midnight"),
    ("starlight", "Starlight"),
    ("silver", "Silver"),
    ("pink", "Pink"),
    ("gold", "Gold"),
    ("blue", "Blue"),
    ("red", "Red"),
    ("green", "Green"),
    ("graphite", "Graphite"),
    ("black", "Black"),
    ("white", "White"),
    ("titanium", "Titanium"),
    ("natural", "Natural"),
]

_SIZE_REGEX = re.compile(r"(\d{2})\s*mm", re.IGNORECASE)

_CELLULAR_TOKENS = ("cellular", "cell", "gps + cel", "lte")


def parse_color(title: str | None) -> str:
    """Return the canonical color named in a title, or ``"Unknown"``."""
    if not title:
        return UNKNOWN_COLOR
    lowered = title.lower()
    for pattern, color_name in _COLORS:
        if pattern in lowered:
            return color_name
    return UNKNOWN_COLOR


def parse_size(title: str | None) -> str:
    """Return a case size such as ``"44mm"``, or ``""``."""
    if not title:
        return ""
    match = _SIZE_REGEX.search(title)
    return f"{match.group(1)}mm" if match else ""


def parse_connectivity(title: str | None) -> str:
    """Return ``"Cell"``, ``"GPS"`` or ``""``.

    Cellular variants also advertise GPS, so the cellular check runs first.
    """
    if not title:
        return ""
    lowered = title.lower()
    if any(token in lowered for token in _CELLULAR_TOKENS):
        return "Cell"
    if "gps" in lowered:
        return "GPS"
    return ""
