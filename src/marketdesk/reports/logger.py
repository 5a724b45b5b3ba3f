"""Logging for report generation.

Separates logging logic from report calculations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import loguru
from loguru import logger

if TYPE_CHECKING:
    from marketdesk.reports.payouts import PayoutSummary


class PayoutLogger:
    """Handles all logging for payout ledger parsing and reconciliation."""

    def __init__(self, logger_instance: loguru.Logger = logger) -> None:
        self._logger = logger_instance

    def ledger_parsed(self, row_count: int, extra_columns: list[str]) -> None:
        """Log a parsed ledger upload."""
        self._logger.bind(rows=row_count, extra_columns=extra_columns).info(
            "Parsed payout ledger: {} rows", row_count
        )
        if extra_columns:
            self._logger.bind(extra_columns=extra_columns).debug(
                "Ignoring extra ledger columns: {}", ", ".join(extra_columns)
            )

    def rows_excluded(self, excluded_count: int) -> None:
        """Log running-balance and undated rows dropped before aggregation."""
        if excluded_count:
            self._logger.bind(excluded=excluded_count).debug(
                "Excluded {} balance/total rows from reconciliation", excluded_count
            )

    def summary_computed(self, summary: PayoutSummary) -> None:
        """Log reconciliation totals."""
        self._logger.bind(
            net_payments=summary.metrics.net_payments,
            total_paid_out=summary.total_paid_out,
            still_held=summary.still_held,
            pending_payout=summary.pending_payout,
        ).info(
            "Payout reconciliation: net {:.2f}, paid out {:.2f}, pending {:.2f}",
            summary.metrics.net_payments,
            summary.total_paid_out,
            summary.pending_payout,
        )
