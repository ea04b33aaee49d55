"""
CLI interface for Storage Billing.

Provides command-line access to invoices, capacity monitoring and the daily
usage roll-up.
"""

import logging
import math
import sys
from datetime import date, datetime
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from storage_billing.config.loader import BillingConfig, load_billing_config
from storage_billing.core.capacity import CapacityLevel, CapacityStatus
from storage_billing.core.periods import Period, last_30_days, last_month, resolve_preset
from storage_billing.core.pricing import format_price
from storage_billing.core.report import (
    InvoiceReport,
    MonitoringReport,
    build_invoice_report,
    build_monitoring_report,
)
from storage_billing.core.rollup import (
    calculate_daily_deltas,
    fill_missing_dates,
    rollup_storage_events_by_day,
)
from storage_billing.core.units import format_bytes, format_date
from storage_billing.payloads.models import as_plain_dict
from storage_billing.services.capabilities import BillingServices, FetchResult, FileInvoker

app = typer.Typer()
console = Console()
logger = logging.getLogger(__name__)

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1

CAPACITY_BAR_WIDTH = 40

_LEVEL_COLORS = {
    CapacityLevel.OK: "green",
    CapacityLevel.WARNING: "yellow",
    CapacityLevel.CRITICAL: "red",
}

DATA_DIR_OPTION = typer.Option(
    ...,
    "--data-dir",
    "-d",
    help="Directory with recorded capability results (account-usage-get.json, ...)",
)
ACCOUNT_OPTION = typer.Option("", "--account", "-a", help="Account DID to query")
CONFIG_OPTION = typer.Option(None, "--config", "-c", help="Path to a YAML billing config")


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Storage Billing CLI."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )
    if ctx.invoked_subcommand is None:
        console.print("Storage Billing - Use --help to see available commands")


@app.command()
def invoice(
    data_dir: str = DATA_DIR_OPTION,
    account: str = ACCOUNT_OPTION,
    start: Optional[str] = typer.Option(None, "--from", help="First day of the period (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--to", help="Last day of the period (YYYY-MM-DD)"),
    preset: Optional[str] = typer.Option(
        None,
        "--preset",
        "-p",
        help="Named period: last-30-days, this-month or last-month",
    ),
    config_path: Optional[str] = CONFIG_OPTION,
):
    """
    Show the invoice for a billing period.

    Storage is billed at the amount held at the end of the period, egress at
    the total served during it. Defaults to the last 30 days.
    """
    config = _load_config(config_path)
    try:
        period = _resolve_period(start, end, preset)
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    logger.debug("Invoice period %s - %s", period.start_day, period.end_day)
    services = _build_services(data_dir, config)
    usage = _unwrap(services.get_account_usage(account))
    egress = _unwrap(services.get_account_egress(account, period))

    report = build_invoice_report(usage, egress, period, config.prices)
    _display_invoice(report)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def monitor(
    data_dir: str = DATA_DIR_OPTION,
    account: str = ACCOUNT_OPTION,
    config_path: Optional[str] = CONFIG_OPTION,
):
    """Show storage capacity against the plan, with usage totals and last
    month's daily egress."""
    services = _build_services(data_dir, _load_config(config_path))
    plan = _unwrap(services.get_plan(account))
    usage = _unwrap(services.get_account_usage(account))
    egress = _unwrap(services.get_account_egress(account, last_month()))

    report = build_monitoring_report(usage, egress, plan)
    _display_monitoring(report)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def rollup(
    data_dir: str = DATA_DIR_OPTION,
    account: str = ACCOUNT_OPTION,
    start: Optional[str] = typer.Option(None, "--from", help="First day to show (YYYY-MM-DD)"),
    end: Optional[str] = typer.Option(None, "--to", help="Last day to show (YYYY-MM-DD)"),
    fill: bool = typer.Option(False, "--fill", help="Carry values forward over days without events"),
    fill_zero: bool = typer.Option(False, "--fill-zero", help="Show days without events as 0"),
    as_json: bool = typer.Option(False, "--json", help="Print the series as JSON"),
    config_path: Optional[str] = CONFIG_OPTION,
):
    """
    Show the daily storage roll-up of the account's usage ledger.

    ``--from``/``--to`` limit the series to a window of days; with ``--fill``
    or ``--fill-zero`` every day of the window is listed.
    """
    try:
        window_start = date.fromisoformat(start) if start else None
        window_end = date.fromisoformat(end) if end else None
    except ValueError as e:
        console.print(f"[red]Error:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)

    services = _build_services(data_dir, _load_config(config_path))
    usage = _unwrap(services.get_account_usage(account))
    daily = rollup_storage_events_by_day(usage)

    if not daily:
        console.print("\n[bold yellow]No storage usage events found[/]")
        console.print(f"Reported total: {format_bytes(usage.total if usage else 0)}\n")
        sys.exit(EXIT_CODE_PASS)

    if fill or fill_zero:
        daily = fill_missing_dates(
            daily,
            window_start or daily[0].date,
            window_end or daily[-1].date,
            fill_zero=fill_zero,
        )
    else:
        daily = [
            s for s in daily
            if (window_start is None or s.date >= window_start)
            and (window_end is None or s.date <= window_end)
        ]

    if as_json:
        console.print_json(data=as_plain_dict(daily))
        sys.exit(EXIT_CODE_PASS)

    if not daily:
        console.print("\n[bold yellow]No storage usage events in the selected days[/]\n")
        sys.exit(EXIT_CODE_PASS)

    table = Table(title="Daily Storage")
    table.add_column("Date")
    table.add_column("Storage", justify="right")
    table.add_column("Change", justify="right")
    for snapshot, delta in zip(daily, calculate_daily_deltas(daily)):
        sign = "+" if delta.bytes > 0 else ("-" if delta.bytes < 0 else "")
        table.add_row(
            format_date(snapshot.date),
            format_bytes(snapshot.bytes),
            f"{sign}{format_bytes(abs(delta.bytes))}",
        )
    console.print(table)
    sys.exit(EXIT_CODE_PASS)


def _load_config(config_path: Optional[str]) -> BillingConfig:
    try:
        return load_billing_config(config_path)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error loading configuration:[/] {e}")
        sys.exit(EXIT_CODE_FAIL)


def _build_services(data_dir: str, config: BillingConfig) -> BillingServices:
    """Serve recorded results from ``data_dir``, addressed to the configured services."""
    for name, endpoint in config.services.items():
        logger.debug("Service %s: %s (%s)", name, endpoint.url, endpoint.did)
    return BillingServices(FileInvoker(data_dir), endpoints=config.services)


def _resolve_period(start: Optional[str], end: Optional[str], preset: Optional[str]) -> Period:
    """Resolve CLI period options to a period of whole UTC days.

    Presets are reduced to their calendar days, like explicit dates.
    """
    if preset:
        window = resolve_preset(preset)
        return Period.from_date_strings(_day_string(window.start), _day_string(window.end))

    default = last_30_days()
    return Period.from_date_strings(
        start or _day_string(default.start),
        end or _day_string(default.end),
    )


def _day_string(value: datetime) -> str:
    return value.date().isoformat()


def _unwrap(result: FetchResult):
    """Return the payload of a fetch, exiting on failure."""
    if result.failed:
        console.print("\n[bold red]Error Loading Data[/]")
        failure = result.error
        target = f" ({failure.service})" if failure.service else ""
        console.print(f"{failure.capability}{target}: {failure}")
        sys.exit(EXIT_CODE_FAIL)
    return result.ok


def _display_invoice(report: InvoiceReport) -> None:
    """Display invoice metrics and line items."""
    console.print("\n[bold]Invoice[/bold]")
    console.print("-" * 40)
    console.print(
        f"Billing period: {format_date(report.period.start)} - {format_date(report.period.end)}"
    )

    if not report.valid_period:
        console.print(f"\n[yellow]{report.message}[/]\n")
        return

    console.print(f"Storage used: {report.storage_display.formatted}")
    console.print(f"Egress: {report.egress_display.formatted}")
    console.print(f"[bold]Total due: {format_price(report.invoice.total)}[/bold]\n")

    table = Table(title="Line Items")
    table.add_column("Item")
    table.add_column("Quantity", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Amount", justify="right")
    table.add_row(
        "Storage",
        f"{report.invoice.storage_tib:.4f} TiB",
        f"{format_price(report.prices.storage_usd_per_tib)} / TiB-month",
        format_price(report.invoice.storage_amount),
    )
    table.add_row(
        "Egress",
        f"{report.invoice.egress_tib:.4f} TiB",
        f"{format_price(report.prices.egress_usd_per_tib)} / TiB",
        format_price(report.invoice.egress_amount),
    )
    table.add_row("[bold]Total[/bold]", "", "", f"[bold]{format_price(report.invoice.total)}[/bold]")
    console.print(table)


def _display_monitoring(report: MonitoringReport) -> None:
    """Display the capacity bar and data summary."""
    capacity = report.capacity
    console.print("\n[bold]Storage Capacity[/bold]")
    console.print("-" * 40)
    console.print(_capacity_bar(capacity))

    reserved = "Unlimited" if capacity.unlimited else format_bytes(capacity.reserved)
    remaining = "Unlimited" if capacity.unlimited else format_bytes(capacity.remaining)
    console.print(f"Reserved: {reserved}")
    console.print(f"Used: {format_bytes(capacity.used)}")
    console.print(f"Remaining: {remaining}")

    console.print("\n[bold]Data Summary[/bold]")
    console.print(f"Total storage: {report.total_storage} bytes")
    console.print(f"Total egress: {report.total_egress} bytes")
    console.print(f"Daily storage data points: {report.storage_data_points}")
    console.print(f"Daily egress data points: {report.egress_data_points}\n")

    if not report.daily_egress:
        console.print("[dim]No egress recorded last month[/]\n")
        return

    table = Table(title="Daily Egress")
    table.add_column("Date")
    table.add_column("Egress", justify="right")
    table.add_column("Accumulated", justify="right")
    for day, running in zip(report.daily_egress, report.accumulated_egress):
        table.add_row(format_date(day.date), format_bytes(day.bytes), format_bytes(running.bytes))
    console.print(table)


def _capacity_bar(capacity: CapacityStatus) -> str:
    # Any usage shows at least one cell; a full bar means the limit is reached
    filled = math.floor(CAPACITY_BAR_WIDTH * capacity.bar_width / 100)
    if capacity.percent_used > 0:
        filled = max(filled, 1)
    color = _LEVEL_COLORS[capacity.level]
    bar = f"[{color}]{'█' * filled}[/]{'░' * (CAPACITY_BAR_WIDTH - filled)}"
    return f"{bar} {capacity.percent_used:.1f}%"


if __name__ == "__main__":
    app()
