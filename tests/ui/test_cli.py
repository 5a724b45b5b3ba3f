from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from loguru import logger
import pytest
from typer.testing import CliRunner

from marketdesk.adapters.db.facade import DB
from marketdesk.ui.cli import app

runner = CliRunner()

LEDGER = "\n".join(
    [
        "DATE;DESCRIPTION;ITEM_ID;PACK_ID;GROSS_AMOUNT;MP_FEE_AMOUNT;"
        "SHIPPING_FEE_AMOUNT;NET_CREDIT_AMOUNT;NET_DEBIT_AMOUNT",
        "2024-03-02T10:00:00;payment;MLM1;;1000;-100;-50;850;",
        "2024-03-07T10:00:00;payout;;;;;;;500",
    ]
)


@pytest.fixture
def db_url(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[str]:
    url = f"sqlite:///{tmp_path / 'marketdesk.db'}"
    monkeypatch.setenv("MARKETDESK_DATABASE_URL", url)
    monkeypatch.setenv("MARKETDESK_LOG_LEVEL", "WARNING")
    for name in ("ML_ACCESS_TOKEN", "ML_USER_ID", "BM_API_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    yield url
    # The CLI points loguru at the runner's captured stderr.
    logger.remove()


class TestSkuCosts:
    def test_seed_is_idempotent(self, db_url: str) -> None:
        first = runner.invoke(app, ["sku-costs", "seed"])
        second = runner.invoke(app, ["sku-costs", "seed"])

        assert first.exit_code == 0
        assert "Seeded 12 SKU costs" in first.output
        assert "Seeded 0 SKU costs" in second.output

    def test_set_list_delete(self, db_url: str) -> None:
        # act
        saved = runner.invoke(
            app, ["sku-costs", "set", "4WY33LW/A", "250", "--size", "46mm"]
        )
        listed = runner.invoke(app, ["sku-costs", "list"])
        deleted = runner.invoke(app, ["sku-costs", "delete", "4WY33LW/A"])
        missing = runner.invoke(app, ["sku-costs", "delete", "4WY33LW/A"])

        # assert
        assert saved.exit_code == 0
        assert "Saved 4WY33LW/A at $250.00" in saved.output
        assert "4WY33LW/A" in listed.output
        assert deleted.exit_code == 0
        assert missing.exit_code == 1
        assert DB(db_url).list_sku_costs() == []

    def test_empty_list_hints_at_seed(self, db_url: str) -> None:
        result = runner.invoke(app, ["sku-costs", "list"])

        assert result.exit_code == 0
        assert "sku-costs seed" in result.output

    def test_blank_mpn_rejected(self, db_url: str) -> None:
        result = runner.invoke(app, ["sku-costs", "set", " ", "10"])

        assert result.exit_code == 1


class TestCredentials:
    def test_set_and_clear(self, db_url: str) -> None:
        # act
        connected = runner.invoke(
            app, ["credentials", "set", "ml", "APP_USR-1", "--user-id", "77"]
        )

        # assert
        assert connected.exit_code == 0
        assert "ML connected" in connected.output
        stored = DB(db_url).get_credentials("mercadolibre")
        assert stored is not None
        assert stored.access_token == "APP_USR-1"
        assert stored.user_id == "77"

        cleared = runner.invoke(app, ["credentials", "clear", "mercadolibre"])
        again = runner.invoke(app, ["credentials", "clear", "ml"])
        assert "ML disconnected" in cleared.output
        assert "No stored token for ML" in again.output

    def test_unknown_platform(self, db_url: str) -> None:
        result = runner.invoke(app, ["credentials", "set", "amazon", "tok"])

        assert result.exit_code != 0


class TestPayouts:
    def test_summary_and_save(self, db_url: str, tmp_path: Path) -> None:
        # setup
        ledger = tmp_path / "ledger.csv"
        ledger.write_text(LEDGER, encoding="utf-8")

        # act
        result = runner.invoke(
            app, ["payouts", str(ledger), "--still-held", "100", "--save"]
        )

        # assert
        assert result.exit_code == 0
        assert "Saved 2 ledger rows" in result.output
        assert "Payments: 1" in result.output
        assert "Last payout: 2024-03-07" in result.output
        db = DB(db_url)
        assert len(db.load_payout_rows()) == 2
        assert db.latest_payout_date().isoformat() == "2024-03-07"

    def test_summarizes_stored_ledger(self, db_url: str, tmp_path: Path) -> None:
        # setup: two imports accumulate in the stored ledger
        ledger = tmp_path / "ledger.csv"
        ledger.write_text(LEDGER, encoding="utf-8")
        later = tmp_path / "later.csv"
        later.write_text(
            LEDGER.splitlines()[0] + "\n2024-04-02T10:00:00;payout;;;;;;;300",
            encoding="utf-8",
        )
        runner.invoke(app, ["payouts", str(ledger), "--save"])
        runner.invoke(app, ["payouts", str(later), "--save"])

        # act
        result = runner.invoke(app, ["payouts", "--still-held", "50"])

        # assert
        assert result.exit_code == 0
        assert "Payments: 1" in result.output
        assert "Last payout: 2024-04-02" in result.output
        assert "$800.00" in result.output
        assert "Saved" not in result.output

    def test_empty_stored_ledger(self, db_url: str) -> None:
        result = runner.invoke(app, ["payouts"])

        assert result.exit_code == 1
        assert "No stored ledger rows" in result.output

    def test_reads_config_before_summarizing(
        self, db_url: str, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        ledger = tmp_path / "ledger.csv"
        ledger.write_text(LEDGER, encoding="utf-8")
        monkeypatch.setenv("MARKETDESK_LOG_LEVEL", "LOUD")

        result = runner.invoke(app, ["payouts", str(ledger)])

        assert result.exit_code == 1
        assert "MARKETDESK_LOG_LEVEL" in result.output

    def test_missing_file(self, db_url: str, tmp_path: Path) -> None:
        result = runner.invoke(app, ["payouts", str(tmp_path / "nope.csv")])

        assert result.exit_code == 1
        assert "No file provided" in result.output

    def test_header_only_file(self, db_url: str, tmp_path: Path) -> None:
        ledger = tmp_path / "ledger.csv"
        ledger.write_text(LEDGER.splitlines()[0], encoding="utf-8")

        result = runner.invoke(app, ["payouts", str(ledger)])

        assert result.exit_code == 1
        assert "No valid rows" in result.output


class TestDisconnected:
    def test_dashboard_with_no_tokens(self, db_url: str) -> None:
        result = runner.invoke(app, ["dashboard"])

        assert result.exit_code == 0
        assert "Dashboard" in result.output

    def test_update_listing_without_token(self, db_url: str) -> None:
        result = runner.invoke(app, ["update-listing", "bm", "42", "--stock", "1"])

        assert result.exit_code == 1
        assert "not connected" in result.output

    def test_update_listing_needs_a_change(self, db_url: str) -> None:
        result = runner.invoke(app, ["update-listing", "bm", "42"])

        assert result.exit_code != 0

    def test_invalid_config(self, db_url: str, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MARKETDESK_ORDER_LIMIT", "0")

        result = runner.invoke(app, ["listings"])

        assert result.exit_code == 1
        assert "MARKETDESK_ORDER_LIMIT" in result.output
