"""
Invoice and monitoring reports.

Composes roll-up, pricing and capacity into the figures shown on the
invoicing and monitoring screens. Reports are pure and deterministic: the
same payloads and period always give the same report, and missing
payloads are treated as empty data rather than errors.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from .capacity import CapacityStatus, compute_capacity
from .egress import accumulate, count_data_points, egress_total, rollup_egress_by_day
from .periods import Period
from .pricing import Invoice, PriceConfig, invoice_for_prices
from .rollup import rollup_storage_events_by_day, storage_at_period_end
from .units import ByteDisplay, format_bytes_auto
from storage_billing.payloads.models import AccountEgress, AccountUsage, DailySnapshot, Plan

INVALID_PERIOD_MESSAGE = "Select an end date after the start date"


@dataclass
class InvoiceReport:
    """Invoice figures for one billing period."""
    period: Period
    storage_bytes: float
    egress_bytes: float
    invoice: Invoice
    storage_display: ByteDisplay
    egress_display: ByteDisplay
    prices: PriceConfig
    daily: List[DailySnapshot] = field(default_factory=list)
    message: Optional[str] = None

    @property
    def valid_period(self) -> bool:
        return self.period.is_valid


@dataclass
class MonitoringReport:
    """Capacity and totals for the monitoring screen."""
    capacity: CapacityStatus
    total_storage: int
    total_egress: int
    storage_data_points: int
    egress_data_points: int
    daily_egress: List[DailySnapshot] = field(default_factory=list)
    accumulated_egress: List[DailySnapshot] = field(default_factory=list)


def build_invoice_report(
    usage: Optional[AccountUsage],
    egress: Optional[AccountEgress],
    period: Period,
    prices: PriceConfig,
) -> InvoiceReport:
    """Build the invoice for a period.

    Storage is what the account holds at the end of the period (see
    :func:`storage_at_period_end`), falling back to the reported total when
    the usage ledger has no daily data. Egress is the service's total for
    the period. An invalid period bills nothing and carries a guidance
    message instead.

    Args:
        usage: Usage payload, or None when unavailable
        egress: Egress payload for the period, or None when unavailable
        period: Billing period
        prices: Per-TiB rates

    Returns:
        InvoiceReport for display
    """
    daily = rollup_storage_events_by_day(usage)

    if period.is_valid:
        fallback = usage.total if usage is not None else 0
        storage_bytes = storage_at_period_end(daily, period.start, period.end, fallback)
        egress_bytes = egress_total(egress)
        message = None
    else:
        storage_bytes = 0
        egress_bytes = 0
        message = INVALID_PERIOD_MESSAGE

    return InvoiceReport(
        period=period,
        storage_bytes=storage_bytes,
        egress_bytes=egress_bytes,
        invoice=invoice_for_prices(storage_bytes, egress_bytes, prices),
        storage_display=format_bytes_auto(storage_bytes),
        egress_display=format_bytes_auto(egress_bytes),
        prices=prices,
        daily=daily,
        message=message,
    )


def build_monitoring_report(
    usage: Optional[AccountUsage],
    egress: Optional[AccountEgress],
    plan: Optional[Plan],
) -> MonitoringReport:
    """Build capacity, totals and the daily egress series from whatever
    payloads are available."""
    reserved = plan.limit if plan is not None else 0
    used = usage.total if usage is not None else 0
    daily_egress = rollup_egress_by_day(egress)

    return MonitoringReport(
        capacity=compute_capacity(reserved, used),
        total_storage=used,
        total_egress=egress_total(egress),
        storage_data_points=len(rollup_storage_events_by_day(usage)),
        egress_data_points=count_data_points(egress),
        daily_egress=daily_egress,
        accumulated_egress=accumulate(daily_egress),
    )
