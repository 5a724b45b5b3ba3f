"""Payout ledger reconciliation.

Parses the semicolon-delimited account-money export, classifies each row by
its ``DESCRIPTION`` tag and works out how much of the computed net sales is
still on its way to the seller's bank account.

Everything here is stateless: summaries are recomputed from the full row
set on every call.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from marketdesk.core.models import parse_day
from marketdesk.core.numbers import to_float
from marketdesk.reports.logger import PayoutLogger

LEDGER_COLUMNS = (
    "DATE",
    "DESCRIPTION",
    "ITEM_ID",
    "PACK_ID",
    "GROSS_AMOUNT",
    "MP_FEE_AMOUNT",
    "SHIPPING_FEE_AMOUNT",
    "NET_CREDIT_AMOUNT",
    "NET_DEBIT_AMOUNT",
)

# Running-balance artifacts of the export, not financial events.
_EXCLUDED_MARKERS = ("initial_available_balance", "total")

# Ledger amounts share the marketplace parsing rules.
to_amount = to_float


class PayoutImportError(ValueError):
    """A ledger upload was rejected (no file, no rows)."""


class PayoutCategory(Enum):
    PAYMENT = "payment"
    PAYOUT = "payout"
    REFUND = "refund"
    RESERVE_FOR_DISPUTE = "reserve_for_dispute"
    MEDIATION = "mediation"
    OTHER = "other"
    EXCLUDED = "excluded"


DISPUTE_CATEGORIES = frozenset(
    {PayoutCategory.RESERVE_FOR_DISPUTE, PayoutCategory.MEDIATION}
)


@dataclass(frozen=True, slots=True)
class PayoutCsvRow:
    """One ledger line with amounts already parsed."""

    date: str
    description: str
    item_id: str = ""
    pack_id: str = ""
    gross_amount: float = 0.0
    mp_fee_amount: float = 0.0
    shipping_fee_amount: float = 0.0
    net_credit_amount: float = 0.0
    net_debit_amount: float = 0.0
    extra: dict[str, str] = field(default_factory=dict, compare=False)

    @property
    def category(self) -> PayoutCategory:
        return classify(self.description, has_date=bool(self.date.strip()))


@dataclass(frozen=True, slots=True)
class PayoutEntry:
    date: str
    amount: float


@dataclass(frozen=True, slots=True)
class PayoutMetrics:
    gross_sales: float = 0.0
    mp_fees: float = 0.0
    shipping_fees: float = 0.0
    net_payments: float = 0.0
    num_payments: int = 0
    refunds: float = 0.0
    dispute_held: float = 0.0
    dispute_released: float = 0.0
    dispute_net: float = 0.0
    total_credits: float = 0.0
    total_debits: float = 0.0


@dataclass(frozen=True, slots=True)
class PayoutSummary:
    payouts: list[PayoutEntry]
    total_paid_out: float
    metrics: PayoutMetrics
    still_held: float
    pending_payout: float

    @property
    def last_payout_date(self) -> date | None:
        """Cutover date: the latest confirmed payout."""
        days = [d for d in (parse_day(p.date) for p in self.payouts) if d is not None]
        return max(days) if days else None


def classify(description: str | None, *, has_date: bool = True) -> PayoutCategory:
    """Classify a ledger row by its ``DESCRIPTION`` tag.

    Rows without a date and running-balance labels are ``EXCLUDED``.
    """
    text = (description or "").strip().lower()
    if not has_date or any(marker in text for marker in _EXCLUDED_MARKERS):
        return PayoutCategory.EXCLUDED
    try:
        category = PayoutCategory(text)
    except ValueError:
        return PayoutCategory.OTHER
    return PayoutCategory.OTHER if category is PayoutCategory.EXCLUDED else category


def _split_line(line: str) -> list[str]:
    return [cell.replace('"', "").strip() for cell in line.split(";")]


def parse_payout_csv(
    text: str, *, payout_logger: PayoutLogger | None = None
) -> list[PayoutCsvRow]:
    """Parse a semicolon-delimited ledger export.

    Each line is split on its own and every ``"`` is dropped, so a stray
    quote only affects its own row. Short rows are padded with empty
    strings; unknown columns land in ``PayoutCsvRow.extra``. Returns ``[]``
    when there is no data row.
    """
    log = payout_logger or PayoutLogger()
    lines = [
        _split_line(line)
        for line in text.lstrip("\ufeff").splitlines()
        if line.strip()
    ]
    if len(lines) < 2:
        return []

    headers = lines[0]
    extra_columns = [h for h in headers if h and h not in LEDGER_COLUMNS]

    rows: list[PayoutCsvRow] = []
    for values in lines[1:]:
        values += [""] * (len(headers) - len(values))
        record = dict(zip(headers, values, strict=False))

        rows.append(
            PayoutCsvRow(
                date=record.get("DATE", ""),
                description=record.get("DESCRIPTION", ""),
                item_id=record.get("ITEM_ID", ""),
                pack_id=record.get("PACK_ID", ""),
                gross_amount=to_amount(record.get("GROSS_AMOUNT")),
                mp_fee_amount=to_amount(record.get("MP_FEE_AMOUNT")),
                shipping_fee_amount=to_amount(record.get("SHIPPING_FEE_AMOUNT")),
                net_credit_amount=to_amount(record.get("NET_CREDIT_AMOUNT")),
                net_debit_amount=to_amount(record.get("NET_DEBIT_AMOUNT")),
                extra={k: record[k] for k in extra_columns},
            )
        )

    log.ledger_parsed(len(rows), extra_columns)
    return rows


def summarize_payouts(
    rows: Iterable[PayoutCsvRow],
    still_held: float = 0.0,
    *,
    payout_logger: PayoutLogger | None = None,
) -> PayoutSummary:
    """Aggregate ledger rows into payout metrics and the pending balance.

    ``still_held`` is the seller's estimate of funds the marketplace holds
    that the export does not reflect yet.
    """
    log = payout_logger or PayoutLogger()
    by_category: dict[PayoutCategory, list[PayoutCsvRow]] = {
        category: [] for category in PayoutCategory
    }
    for row in rows:
        by_category[row.category].append(row)
    log.rows_excluded(len(by_category[PayoutCategory.EXCLUDED]))

    valid = [
        row
        for category, members in by_category.items()
        if category is not PayoutCategory.EXCLUDED
        for row in members
    ]
    payments = by_category[PayoutCategory.PAYMENT]
    refunds = by_category[PayoutCategory.REFUND]
    disputes = [r for c in DISPUTE_CATEGORIES for r in by_category[c]]

    dispute_held = sum(r.net_debit_amount for r in disputes)
    dispute_released = sum(r.net_credit_amount for r in disputes)
    metrics = PayoutMetrics(
        gross_sales=sum(r.gross_amount for r in payments),
        mp_fees=sum(r.mp_fee_amount for r in payments),
        shipping_fees=sum(r.shipping_fee_amount for r in payments),
        net_payments=sum(r.net_credit_amount for r in payments),
        num_payments=len(payments),
        refunds=sum(r.net_credit_amount for r in refunds),
        dispute_held=dispute_held,
        dispute_released=dispute_released,
        dispute_net=dispute_released - dispute_held,
        total_credits=sum(r.net_credit_amount for r in valid),
        total_debits=sum(r.net_debit_amount for r in valid),
    )

    payouts = [
        PayoutEntry(date=r.date[:10], amount=r.net_debit_amount)
        for r in by_category[PayoutCategory.PAYOUT]
    ]
    total_paid_out = sum(p.amount for p in payouts)
    pending_payout = max(
        0.0, metrics.net_payments - total_paid_out - still_held + metrics.refunds
    )

    summary = PayoutSummary(
        payouts=payouts,
        total_paid_out=total_paid_out,
        metrics=metrics,
        still_held=still_held,
        pending_payout=pending_payout,
    )
    log.summary_computed(summary)
    return summary


def summarize_payout_csv(text: str | None, still_held: float = 0.0) -> PayoutSummary:
    """Parse and summarize an uploaded ledger, rejecting empty uploads."""
    if text is None:
        raise PayoutImportError("No file provided")
    rows = parse_payout_csv(text)
    if not rows:
        raise PayoutImportError("No valid rows found in CSV")
    return summarize_payouts(rows, still_held)
