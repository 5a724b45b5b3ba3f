"""SKU to unit-cost resolution.

Sellers encode SKUs inconsistently across marketplaces: bare MPNs
(``4WY33LW/A``), MPNs with condition suffixes (``4WY33LW/A-ASIS-PLUS``),
variant codes (``GPS-42-SILVER``) and free text (``iPhone 13 128GB``).
``SkuMatcher`` resolves all of these against one cost table with ordered
fallback strategies. The first strategy that hits wins.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
import re

CostLookup = Callable[[str], float]


@dataclass(frozen=True, slots=True)
class SkuCostEntry:
    """Unit cost for one manufacturer part number."""

    mpn: str
    cost: float
    size: str | None = None
    connectivity: str | None = None
    description: str | None = None
    id: int | None = None


DEFAULT_SKU_COSTS: tuple[SkuCostEntry, ...] = (
    # Apple Watch SE2
    SkuCostEntry("4WWA3LW/A", 221, "42mm", "GPS", "42mm GPS Aluminum Silver"),
    SkuCostEntry("4WWF3LW/A", 221, "42mm", "GPS", "42mm GPS Aluminum Rose Gold"),
    SkuCostEntry("4WWJ3LW/A", 221, "42mm", "GPS", "42mm GPS Aluminum Jet Black"),
    SkuCostEntry("4WXA3LW/A", 223, "42mm", "Cell", "42mm Cell Aluminum Rose Gold"),
    SkuCostEntry("4WY03LW/A", 234, "46mm", "Cell", "46mm Cell Aluminum Silver"),
    SkuCostEntry("4WY33LW/A", 234, "46mm", "Cell", "46mm Cell Aluminum Jet Black"),
    # iPhones
    SkuCostEntry("IPHONE11-64GB", 156.87, "64GB", None, "iPhone 11 64GB"),
    SkuCostEntry("IPHONE11-128GB", 163.82, "128GB", None, "iPhone 11 128GB"),
    SkuCostEntry("IPHONE12-64GB", 170.76, "64GB", None, "iPhone 12 64GB"),
    SkuCostEntry("IPHONE12-128GB", 244.37, "128GB", None, "iPhone 12 128GB"),
    SkuCostEntry("IPHONE13-128GB", 244.37, "128GB", None, "iPhone 13 128GB"),
    SkuCostEntry("IPHONE13-256GB", 254.10, "256GB", None, "iPhone 13 256GB"),
)

# Probed in order when a phone SKU carries no explicit storage token.
PROBE_STORAGE_SIZES = (256, 128, 64)

_RADIO_PREFIXES = (("GPS", "GPS"), ("CELL", "Cell"))
_SIZE_SEGMENT = re.compile(r"^(\d{2})(?:MM)?$")
_IPHONE_MODEL = re.compile(r"IPHONE\s*-?\s*(\d{2})(?!\d)")
_STORAGE = re.compile(r"(\d{2,4})\s*GB")


def extract_mpn(sku: str | None) -> str:
    """Extract the MPN from a full SKU: the first non-empty ``-`` segment.

    >>> extract_mpn("4WY33LW/A-ASIS-PLUS")
    '4WY33LW/A'
    """
    if not sku:
        return ""
    for segment in str(sku).split("-"):
        segment = segment.strip()
        if segment:
            return segment
    return ""


class SkuMatcher:
    """Resolves raw marketplace SKUs to unit costs over a cost-table snapshot."""

    def __init__(self, entries: Iterable[SkuCostEntry]) -> None:
        self._entries = list(entries)
        self._by_mpn: dict[str, SkuCostEntry] = {}
        for entry in self._entries:
            self._by_mpn.setdefault(entry.mpn.strip().upper(), entry)
        self._memo: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def entry_for(self, mpn: str | None) -> SkuCostEntry | None:
        """Return the cost-table row for an MPN, if any."""
        if not mpn:
            return None
        return self._by_mpn.get(mpn.strip().upper())

    def cost_for(self, sku: str | None) -> float:
        """Return the unit cost for a SKU, or 0.0 when nothing matches.

        0.0 means "no cost data", not a free product. Never raises.
        """
        if not sku or not str(sku).strip():
            return 0.0
        key = str(sku).strip()
        if key not in self._memo:
            entry = self._resolve(key)
            self._memo[key] = max(0.0, float(entry.cost)) if entry else 0.0
        return self._memo[key]

    def _resolve(self, sku: str) -> SkuCostEntry | None:
        for strategy in (
            self._match_exact,
            self._match_segment,
            self._match_size_connectivity,
            self._match_model_storage,
        ):
            entry = strategy(sku)
            if entry is not None:
                return entry
        return None

    def _match_exact(self, sku: str) -> SkuCostEntry | None:
        return self.entry_for(sku)

    def _match_segment(self, sku: str) -> SkuCostEntry | None:
        return self.entry_for(extract_mpn(sku))

    def _match_size_connectivity(self, sku: str) -> SkuCostEntry | None:
        upper = sku.upper()
        radio = next(
            (label for prefix, label in _RADIO_PREFIXES if upper.startswith(prefix)),
            None,
        )
        if radio is None:
            return None

        size: str | None = None
        for segment in upper.split("-"):
            match = _SIZE_SEGMENT.match(segment.strip())
            if match:
                size = f"{match.group(1)}mm"
                break
        if size is None:
            return None

        for entry in self._entries:
            if (
                (entry.size or "").lower() == size
                and (entry.connectivity or "").lower() == radio.lower()
            ):
                return entry
        return None

    def _match_model_storage(self, sku: str) -> SkuCostEntry | None:
        upper = sku.upper()
        model_match = _IPHONE_MODEL.search(upper)
        if model_match is None:
            return None
        model = model_match.group(1)

        storage_match = _STORAGE.search(upper[model_match.end() :])
        if storage_match:
            return self.entry_for(f"IPHONE{model}-{storage_match.group(1)}GB")

        for size in PROBE_STORAGE_SIZES:
            entry = self.entry_for(f"IPHONE{model}-{size}GB")
            if entry is not None:
                return entry
        return None


def create_cost_lookup(entries: Iterable[SkuCostEntry]) -> CostLookup:
    """Build a cost lookup closure over one snapshot of the cost table."""
    return SkuMatcher(entries).cost_for
