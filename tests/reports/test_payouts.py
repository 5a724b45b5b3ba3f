from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock

import pytest

from marketdesk.reports.logger import PayoutLogger
from marketdesk.reports.payouts import (
    PayoutCategory,
    PayoutCsvRow,
    PayoutEntry,
    PayoutImportError,
    classify,
    parse_payout_csv,
    summarize_payout_csv,
    summarize_payouts,
)

HEADER = (
    "DATE;DESCRIPTION;ITEM_ID;PACK_ID;GROSS_AMOUNT;MP_FEE_AMOUNT;"
    "SHIPPING_FEE_AMOUNT;NET_CREDIT_AMOUNT;NET_DEBIT_AMOUNT"
)

LEDGER = "\n".join(
    [
        HEADER,
        "2024-03-01;initial_available_balance;;;;;;500;",
        "2024-03-02T10:00:00;payment;MLM1;;1000;-100;-50;850;",
        "2024-03-03T10:00:00;payment;MLM2;;2000;-200;-80;1720;",
        "2024-03-04T10:00:00;refund;MLM3;;;;;40;",
        "2024-03-05T10:00:00;reserve_for_dispute;MLM2;;;;;;300",
        "2024-03-06T10:00:00;mediation;MLM2;;;;;100;",
        "2024-03-07T10:00:00;payout;;;;;;;1500",
        "2024-03-08T10:00:00;shipping;;;;;;;25",
        ";payment;;;999;;;999;",
        "2024-03-31;total;;;;;;3000;2000",
    ]
)


def create_row(description: str, **amounts: float) -> PayoutCsvRow:
    return PayoutCsvRow(date="2024-03-02", description=description, **amounts)


class TestClassify:
    @pytest.mark.parametrize(
        ("description", "expected"),
        [
            ("payment", PayoutCategory.PAYMENT),
            (" Payout ", PayoutCategory.PAYOUT),
            ("REFUND", PayoutCategory.REFUND),
            ("reserve_for_dispute", PayoutCategory.RESERVE_FOR_DISPUTE),
            ("mediation", PayoutCategory.MEDIATION),
            ("shipping", PayoutCategory.OTHER),
            ("payment_adjustment", PayoutCategory.OTHER),
            ("", PayoutCategory.OTHER),
            ("initial_available_balance", PayoutCategory.EXCLUDED),
            ("Total", PayoutCategory.EXCLUDED),
            ("subtotal_payments", PayoutCategory.EXCLUDED),
            ("excluded", PayoutCategory.OTHER),
        ],
    )
    def test_description_tags(self, description: str, expected: PayoutCategory) -> None:
        assert classify(description) is expected

    def test_undated_row_is_excluded(self) -> None:
        assert classify("payment", has_date=False) is PayoutCategory.EXCLUDED
        assert PayoutCsvRow(date="", description="payment").category is (
            PayoutCategory.EXCLUDED
        )


class TestParsePayoutCsv:
    def test_parses_all_rows_with_amounts(self) -> None:
        # act
        rows = parse_payout_csv(LEDGER)

        # assert
        assert len(rows) == 10
        payment = rows[1]
        assert payment.date == "2024-03-02T10:00:00"
        assert payment.item_id == "MLM1"
        assert payment.gross_amount == 1000.0
        assert payment.mp_fee_amount == -100.0
        assert payment.net_credit_amount == 850.0
        assert payment.net_debit_amount == 0.0

    def test_bom_quotes_and_short_rows(self) -> None:
        # input
        text = '\ufeff"DATE";"DESCRIPTION";"NET_CREDIT_AMOUNT";"NET_DEBIT_AMOUNT"\n'
        text += '"2024-03-02";"payment";"12.5"\n\n'

        # act
        (row,) = parse_payout_csv(text)

        # assert
        assert row.description == "payment"
        assert row.net_credit_amount == 12.5
        assert row.net_debit_amount == 0.0
        assert row.pack_id == ""

    def test_unknown_columns_go_to_extra(self) -> None:
        text = "DATE;DESCRIPTION;SOURCE_ID\n2024-03-02;payment;abc"

        (row,) = parse_payout_csv(text)

        assert row.extra == {"SOURCE_ID": "abc"}

    def test_malformed_numbers_are_zero(self) -> None:
        text = "DATE;DESCRIPTION;GROSS_AMOUNT;NET_CREDIT_AMOUNT\n"
        text += "2024-03-02;payment;-;n/a"

        (row,) = parse_payout_csv(text)

        assert row.gross_amount == 0.0
        assert row.net_credit_amount == 0.0

    def test_stray_quote_stays_on_its_own_row(self) -> None:
        # input
        text = "\n".join(
            [
                HEADER,
                '2024-01-10;payment;"MLM1;;100;10;0;90;',
                "2024-01-11;payment;MLM2;;200;20;0;180;",
                "2024-01-15;payout;;;;;;;90",
            ]
        )

        # act
        rows = parse_payout_csv(text)
        summary = summarize_payouts(rows)

        # assert
        assert [row.item_id for row in rows] == ["MLM1", "MLM2", ""]
        assert rows[0].net_credit_amount == 90.0
        assert summary.metrics.net_payments == 270.0
        assert summary.total_paid_out == 90.0
        assert summary.last_payout_date == date(2024, 1, 15)

    @pytest.mark.parametrize("text", ["", HEADER, "\n\n" + HEADER + "\n\n"])
    def test_no_data_rows(self, text: str) -> None:
        assert parse_payout_csv(text) == []

    def test_logs_through_payout_logger(self) -> None:
        payout_logger = MagicMock(spec=PayoutLogger)

        parse_payout_csv(LEDGER, payout_logger=payout_logger)

        payout_logger.ledger_parsed.assert_called_once_with(10, [])


class TestSummarizePayouts:
    def test_ledger_metrics(self) -> None:
        # act
        summary = summarize_payouts(parse_payout_csv(LEDGER))

        # assert
        metrics = summary.metrics
        assert metrics.gross_sales == 3000.0
        assert metrics.mp_fees == -300.0
        assert metrics.shipping_fees == -130.0
        assert metrics.net_payments == 2570.0
        assert metrics.num_payments == 2
        assert metrics.refunds == 40.0
        assert metrics.dispute_held == 300.0
        assert metrics.dispute_released == 100.0
        assert metrics.dispute_net == -200.0
        assert metrics.total_credits == 2710.0
        assert metrics.total_debits == 1825.0

    def test_payouts_and_pending(self) -> None:
        summary = summarize_payouts(parse_payout_csv(LEDGER), still_held=200.0)

        assert summary.payouts == [PayoutEntry(date="2024-03-07", amount=1500.0)]
        assert summary.total_paid_out == 1500.0
        assert summary.still_held == 200.0
        # 2570 - 1500 - 200 + 40
        assert summary.pending_payout == pytest.approx(910.0)
        assert summary.last_payout_date == date(2024, 3, 7)

    def test_pending_is_never_negative(self) -> None:
        rows = [
            create_row("payment", net_credit_amount=100.0),
            create_row("payout", net_debit_amount=500.0),
        ]

        summary = summarize_payouts(rows)

        assert summary.pending_payout == 0.0

    def test_empty_rows(self) -> None:
        summary = summarize_payouts([])

        assert summary.payouts == []
        assert summary.pending_payout == 0.0
        assert summary.last_payout_date is None

    def test_last_payout_date_is_latest(self) -> None:
        rows = [
            PayoutCsvRow(date="2024-04-02", description="payout", net_debit_amount=1),
            PayoutCsvRow(date="2024-05-09", description="payout", net_debit_amount=1),
            PayoutCsvRow(date="2024-04-20", description="payout", net_debit_amount=1),
        ]

        assert summarize_payouts(rows).last_payout_date == date(2024, 5, 9)


class TestSummarizePayoutCsv:
    def test_rejects_missing_file(self) -> None:
        with pytest.raises(PayoutImportError, match="No file"):
            summarize_payout_csv(None)

    def test_rejects_header_only(self) -> None:
        with pytest.raises(PayoutImportError, match="No valid rows"):
            summarize_payout_csv(HEADER)

    def test_summarizes_upload(self) -> None:
        summary = summarize_payout_csv(LEDGER, still_held=0.0)

        assert summary.pending_payout == pytest.approx(1110.0)
