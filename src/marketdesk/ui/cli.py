from __future__ import annotations

import asyncio
from collections.abc import Sequence
from datetime import date
from pathlib import Path
import sys
from typing import Any

from dotenv import load_dotenv
from loguru import logger
from rich.console import Console
from rich.table import Table
import typer

from marketdesk.adapters.credentials import (
    ChainedCredentialStore,
    EnvCredentialStore,
    PlatformCredentials,
)
from marketdesk.adapters.db.facade import DB, SkuCostValidationError
from marketdesk.adapters.marketplaces.backmarket.client import BackMarketClient
from marketdesk.adapters.marketplaces.http import MarketplaceClientError
from marketdesk.adapters.marketplaces.mercadolibre.client import MercadoLibreClient
from marketdesk.adapters.marketplaces.provider import (
    BackMarketProvider,
    MercadoLibreProvider,
)
from marketdesk.core.config import ConsoleConfig, load_console_config_from_env
from marketdesk.core.models import PLATFORM_LABELS, OrderQuery, Platform
from marketdesk.core.numbers import format_currency, format_percent
from marketdesk.reports.csv_export import to_csv
from marketdesk.reports.payouts import (
    PayoutImportError,
    parse_payout_csv,
    summarize_payout_csv,
    summarize_payouts,
)
from marketdesk.services.console import SellerConsole

# Load environment variables from .env
load_dotenv()

app = typer.Typer(
    help="marketdesk: one console for Mercado Libre and Back Market sellers.",
    no_args_is_help=True,
)
sku_app = typer.Typer(help="Manage the SKU unit-cost table.")
credentials_app = typer.Typer(help="Manage stored marketplace tokens.")
app.add_typer(sku_app, name="sku-costs")
app.add_typer(credentials_app, name="credentials")

console = Console()

_PLATFORM_ALIASES: dict[str, Platform] = {
    "ml": "mercadolibre",
    "mercadolibre": "mercadolibre",
    "bm": "backmarket",
    "backmarket": "backmarket",
}


def configure_logging(level: str) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        format="{time:YYYY-MM-DD HH:mm:ss} [{level}] {name}: {message}",
        level=level,
    )


def _load() -> tuple[ConsoleConfig, DB]:
    try:
        config = load_console_config_from_env()
    except ValueError as e:
        typer.echo(f"Invalid configuration: {e}", err=True)
        raise typer.Exit(1) from None
    configure_logging(config.log_level)
    db = DB(config.database_url)
    db.create_schema()
    return config, db


def build_console(config: ConsoleConfig, db: DB) -> SellerConsole:
    """Wire clients and providers; stored tokens win over environment ones."""
    credentials = ChainedCredentialStore(db, EnvCredentialStore())
    ml_client = MercadoLibreClient(
        credentials, timeout_seconds=config.http_timeout_seconds
    )
    bm_client = BackMarketClient(
        credentials,
        timeout_seconds=config.http_timeout_seconds,
        max_pages=config.max_pages,
    )
    return SellerConsole(
        [
            MercadoLibreProvider(ml_client, credentials),
            BackMarketProvider(bm_client, credentials),
        ],
        db=db,
        order_limit=config.order_limit,
    )


def _platform(value: str) -> Platform:
    try:
        return _PLATFORM_ALIASES[value.strip().lower()]
    except KeyError:
        raise typer.BadParameter(
            f"unknown platform {value!r} (use ml or bm)"
        ) from None


def _day(value: str | None, option: str) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(
            f"{option} must be YYYY-MM-DD, got {value!r}"
        ) from None


def _print_errors(errors: Sequence[str]) -> None:
    for error in errors:
        console.print(f"[yellow]warning[/yellow] {error}")


def _write_csv(path: Path, rows: Sequence[Any]) -> None:
    path.write_text(to_csv(rows), encoding="utf-8")
    typer.echo(f"Wrote {len(rows)} rows to {path}")


def _money(amount: float) -> str:
    return format_currency(amount)


# Reports ---------------------------------------------------------------


@app.command("payouts")
def payouts(
    ledger: Path | None = typer.Argument(
        None, help="Semicolon-delimited payout CSV (default: the stored ledger)"
    ),
    still_held: float = typer.Option(
        0.0, "--still-held", help="Funds the marketplace still holds"
    ),
    save: bool = typer.Option(False, "--save", help="Store the rows in the database"),
) -> None:
    """Reconcile a payout ledger and show what is still pending.

    Without LEDGER the summary is recomputed from every stored ledger row.
    """
    _, db = _load()
    text: str | None = None
    if ledger is None:
        stored = db.load_payout_rows()
        if not stored:
            typer.echo("No stored ledger rows. Import one with --save.", err=True)
            raise typer.Exit(1)
        summary = summarize_payouts(stored, still_held)
    else:
        text = ledger.read_text(encoding="utf-8") if ledger.is_file() else None
        try:
            summary = summarize_payout_csv(text, still_held)
        except PayoutImportError as e:
            typer.echo(f"Import failed: {e}", err=True)
            raise typer.Exit(1) from None

    if save and ledger is not None and text is not None:
        rows = parse_payout_csv(text)
        imported = db.import_payout_rows(rows, source_file=ledger.name)
        typer.echo(f"Saved {imported} ledger rows")

    metrics = summary.metrics
    table = Table(title="Payout reconciliation")
    table.add_column("Metric")
    table.add_column("Amount", justify="right")
    for label, amount in (
        ("Gross sales", metrics.gross_sales),
        ("Marketplace fees", metrics.mp_fees),
        ("Shipping fees", metrics.shipping_fees),
        ("Net payments", metrics.net_payments),
        ("Refunds", metrics.refunds),
        ("Dispute held", metrics.dispute_held),
        ("Dispute released", metrics.dispute_released),
        ("Paid out", summary.total_paid_out),
        ("Still held", summary.still_held),
        ("Pending payout", summary.pending_payout),
    ):
        table.add_row(label, _money(amount))
    console.print(table)
    typer.echo(f"Payments: {metrics.num_payments}")
    if summary.last_payout_date:
        typer.echo(f"Last payout: {summary.last_payout_date.isoformat()}")


@app.command("sales-report")
def sales_report(
    date_from: str | None = typer.Option(None, "--from", help="First day (YYYY-MM-DD)"),
    date_to: str | None = typer.Option(None, "--to", help="Last day (YYYY-MM-DD)"),
    csv_path: Path | None = typer.Option(None, "--csv", help="Export rows as CSV"),
) -> None:
    """Sales, product cost and profit over a period."""
    start, end = _day(date_from, "--from"), _day(date_to, "--to")
    config, db = _load()
    result = asyncio.run(build_console(config, db).sales_report(start, end))
    _print_errors(result.errors)
    report = result.report

    table = Table(title="Sales report")
    for column in ("Order", "Platform", "Status", "SKU", "Date", "Net", "Margin"):
        table.add_column(column)
    for row in report.rows:
        table.add_row(
            row.order_id,
            row.platform,
            row.status,
            row.sku,
            row.purchase_date,
            _money(row.total_net),
            _money(row.margin),
        )
    console.print(table)
    typer.echo(
        f"Orders: {report.order_count}  Total: {_money(report.total_amount)}  "
        f"Cost: {_money(report.product_cost)}  "
        f"Refunds: {_money(report.refund_withdrawal)}  Profit: {_money(report.profit)}"
    )
    if csv_path:
        _write_csv(csv_path, report.rows)


@app.command("product-report")
def product_report(
    csv_path: Path | None = typer.Option(None, "--csv", help="Export rows as CSV"),
) -> None:
    """Per-product received vs pending, split at the last stored payout."""
    config, db = _load()
    result = asyncio.run(build_console(config, db).product_report())
    _print_errors(result.errors)
    report = result.report

    table = Table(title="Product report")
    for column in ("Product", "Platform", "Sold", "Received", "Pending", "Profit"):
        table.add_column(column)
    for row in report.products:
        table.add_row(
            row.product_name,
            PLATFORM_LABELS[row.platform],
            str(row.sold),
            _money(row.received),
            _money(row.pending),
            _money(row.profit),
        )
    console.print(table)
    typer.echo(
        f"Sold: {report.total_sold}  Received: {_money(report.total_received)}  "
        f"Pending: {_money(report.total_pending)}  "
        f"Profit: {_money(report.total_profit)}"
    )
    if csv_path:
        _write_csv(csv_path, report.products)


# Marketplace data ------------------------------------------------------


@app.command("orders")
def orders(
    status: str | None = typer.Option(None, help="Marketplace status filter"),
    date_from: str | None = typer.Option(None, "--from", help="ISO start date"),
    date_to: str | None = typer.Option(None, "--to", help="ISO end date"),
    limit: int | None = typer.Option(None, help="Page size"),
    offset: int = typer.Option(0, help="Page offset"),
    csv_path: Path | None = typer.Option(None, "--csv", help="Export orders as CSV"),
) -> None:
    """List orders from all connected marketplaces, newest first."""
    config, db = _load()
    query = OrderQuery(
        status=status,
        date_from=date_from,
        date_to=date_to,
        limit=limit or config.order_limit,
        offset=offset,
    )
    result = asyncio.run(build_console(config, db).fetch_orders(query))
    _print_errors(result.errors)

    table = Table(title="Orders")
    for column in ("Order", "Platform", "Status", "Date", "Total", "Margin"):
        table.add_column(column)
    for order in result.orders:
        table.add_row(
            order.order_number,
            PLATFORM_LABELS[order.platform],
            order.status,
            order.order_date[:10],
            format_currency(order.total_amount, order.currency),
            format_currency(order.margin, order.currency),
        )
    console.print(table)
    if csv_path:
        _write_csv(
            csv_path,
            [
                {
                    "id": o.id,
                    "order_number": o.order_number,
                    "platform": o.platform,
                    "status": o.status,
                    "buyer": o.buyer_name,
                    "order_date": o.order_date,
                    "total_amount": o.total_amount,
                    "fees": o.fees,
                    "net_amount": o.net_amount,
                    "cost": o.cost,
                    "margin": o.margin,
                    "tracking_number": o.tracking_number,
                }
                for o in result.orders
            ],
        )


@app.command("listings")
def listings() -> None:
    """List listings from all connected marketplaces."""
    config, db = _load()
    result = asyncio.run(build_console(config, db).fetch_listings())
    _print_errors(result.errors)

    table = Table(title="Listings")
    for column in ("ID", "Title", "SKU", "Price", "Net payout", "Stock", "Status"):
        table.add_column(column)
    for listing in result.listings:
        net = listing.net_payout
        table.add_row(
            listing.id,
            listing.title,
            listing.sku,
            format_currency(listing.price, listing.currency),
            format_currency(net, listing.currency) if net is not None else "-",
            str(listing.stock),
            listing.status,
        )
    console.print(table)


@app.command("dashboard")
def dashboard() -> None:
    """Headline KPIs across both marketplaces."""
    config, db = _load()
    kpis = asyncio.run(build_console(config, db).dashboard())
    _print_errors(kpis.errors)

    table = Table(title="Dashboard")
    table.add_column("KPI")
    table.add_column("Value", justify="right")
    table.add_row("Listings", str(kpis.total_listings))
    table.add_row("Active orders", str(kpis.active_orders))
    table.add_row("Revenue", _money(kpis.total_revenue))
    table.add_row("Profit", _money(kpis.total_profit))
    if kpis.total_revenue:
        table.add_row("Margin", format_percent(kpis.total_profit / kpis.total_revenue))
    for platform, revenue in kpis.revenue_by_platform.items():
        label = PLATFORM_LABELS[platform]
        table.add_row(f"{label} revenue", _money(revenue))
        table.add_row(f"{label} orders", str(kpis.orders_by_platform[platform]))
    console.print(table)

    recent = Table(title="Recent orders")
    for column in ("Order", "Platform", "Status", "Date", "Total"):
        recent.add_column(column)
    for order in kpis.recent_orders:
        recent.add_row(
            order.order_number,
            PLATFORM_LABELS[order.platform],
            order.status,
            order.order_date[:10],
            format_currency(order.total_amount, order.currency),
        )
    console.print(recent)


@app.command("update-listing")
def update_listing(
    platform: str = typer.Argument(..., help="ml or bm"),
    external_id: str = typer.Argument(..., help="Marketplace listing id"),
    price: float | None = typer.Option(None, help="New price"),
    stock: int | None = typer.Option(None, help="New available quantity"),
) -> None:
    """Push a price and/or stock change to a marketplace listing."""
    target = _platform(platform)
    if price is None and stock is None:
        raise typer.BadParameter("pass --price and/or --stock")
    config, db = _load()
    seller = build_console(config, db)
    try:
        if price is not None:
            seller.update_price(target, external_id, price)
        if stock is not None:
            seller.update_stock(target, external_id, stock)
    except MarketplaceClientError as e:
        typer.echo(f"Update failed: {e}", err=True)
        raise typer.Exit(1) from None
    typer.echo(f"Updated {PLATFORM_LABELS[target]} listing {external_id}")


@app.command("ship")
def ship(
    platform: str = typer.Argument(..., help="ml or bm"),
    order_id: str = typer.Argument(..., help="Marketplace order id"),
    tracking_number: str = typer.Argument(..., help="Carrier tracking number"),
    tracking_url: str | None = typer.Option(None, "--url", help="Tracking page URL"),
    carrier: str | None = typer.Option(None, help="Carrier name"),
) -> None:
    """Mark an order shipped with its tracking number."""
    target = _platform(platform)
    config, db = _load()
    try:
        build_console(config, db).update_tracking(
            target, order_id, tracking_number, tracking_url, carrier
        )
    except MarketplaceClientError as e:
        typer.echo(f"Tracking update failed: {e}", err=True)
        raise typer.Exit(1) from None
    typer.echo(f"Order {order_id} marked shipped")


# SKU costs -------------------------------------------------------------


@sku_app.command("list")
def sku_costs_list() -> None:
    """Show the stored cost table."""
    _, db = _load()
    entries = db.list_sku_costs()
    if not entries:
        typer.echo("No SKU costs stored. Run `marketdesk sku-costs seed`.")
        return
    table = Table(title="SKU costs")
    for column in ("MPN", "Cost", "Size", "Connectivity", "Description"):
        table.add_column(column)
    for entry in entries:
        table.add_row(
            entry.mpn,
            _money(entry.cost),
            entry.size or "",
            entry.connectivity or "",
            entry.description or "",
        )
    console.print(table)


@sku_app.command("set")
def sku_costs_set(
    mpn: str = typer.Argument(..., help="Manufacturer part number"),
    cost: float = typer.Argument(..., help="Unit cost"),
    size: str | None = typer.Option(None, help="Case or storage size"),
    connectivity: str | None = typer.Option(None, help="GPS or Cell"),
    description: str | None = typer.Option(None, help="Free-text description"),
) -> None:
    """Create or update the cost for an MPN."""
    _, db = _load()
    try:
        entry = db.upsert_sku_cost(
            mpn,
            cost,
            size=size,
            connectivity=connectivity,
            description=description,
        )
    except SkuCostValidationError as e:
        typer.echo(f"Invalid SKU cost: {e}", err=True)
        raise typer.Exit(1) from None
    typer.echo(f"Saved {entry.mpn} at {_money(entry.cost)}")


@sku_app.command("delete")
def sku_costs_delete(mpn: str = typer.Argument(..., help="MPN to delete")) -> None:
    """Delete the cost for an MPN."""
    _, db = _load()
    if not db.delete_sku_cost(mpn):
        typer.echo(f"No SKU cost for {mpn}", err=True)
        raise typer.Exit(1)
    typer.echo(f"Deleted {mpn}")


@sku_app.command("seed")
def sku_costs_seed() -> None:
    """Insert the default cost table rows that are missing."""
    _, db = _load()
    inserted = db.seed_sku_costs()
    typer.echo(f"Seeded {inserted} SKU costs")


# Credentials -----------------------------------------------------------


@credentials_app.command("set")
def credentials_set(
    platform: str = typer.Argument(..., help="ml or bm"),
    access_token: str = typer.Argument(..., help="API access token"),
    user_id: str | None = typer.Option(None, help="Seller user id (ML)"),
) -> None:
    """Store an access token for a marketplace."""
    target = _platform(platform)
    _, db = _load()
    db.save_credentials(
        PlatformCredentials(target, access_token=access_token, user_id=user_id)
    )
    typer.echo(f"{PLATFORM_LABELS[target]} connected")


@credentials_app.command("clear")
def credentials_clear(platform: str = typer.Argument(..., help="ml or bm")) -> None:
    """Forget the stored token for a marketplace."""
    target = _platform(platform)
    _, db = _load()
    if db.delete_credentials(target):
        typer.echo(f"{PLATFORM_LABELS[target]} disconnected")
    else:
        typer.echo(f"No stored token for {PLATFORM_LABELS[target]}")


def main() -> None:
    app()
