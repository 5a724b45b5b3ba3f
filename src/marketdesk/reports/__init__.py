"""Financial reports over unified orders and the payout ledger."""

from __future__ import annotations

from marketdesk.reports.csv_export import to_csv
from marketdesk.reports.payouts import (
    PayoutCategory,
    PayoutCsvRow,
    PayoutImportError,
    PayoutSummary,
    classify,
    parse_payout_csv,
    summarize_payout_csv,
    summarize_payouts,
)
from marketdesk.reports.products import (
    ProductReport,
    ProductReportRow,
    generate_product_report,
)
from marketdesk.reports.sales import SalesReport, SalesReportRow, generate_sales_report

__all__ = [
    # Payout reconciliation
    "PayoutCategory",
    "PayoutCsvRow",
    "PayoutImportError",
    "PayoutSummary",
    "classify",
    "parse_payout_csv",
    "summarize_payout_csv",
    "summarize_payouts",
    # Aggregators
    "ProductReport",
    "ProductReportRow",
    "SalesReport",
    "SalesReportRow",
    "generate_product_report",
    "generate_sales_report",
    # Export
    "to_csv",
]
