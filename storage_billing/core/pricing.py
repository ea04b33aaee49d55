"""
Pricing calculations.

Converts storage and egress byte counts into USD amounts at per-TiB rates.
"""

from dataclasses import dataclass

from .units import bytes_to_tib


@dataclass(frozen=True)
class PriceConfig:
    """USD rates per TiB for storage (per month) and egress."""
    storage_usd_per_tib: float
    egress_usd_per_tib: float


@dataclass(frozen=True)
class Invoice:
    """Line items and total for one billing period, unrounded."""
    storage_amount: float
    egress_amount: float
    total: float
    storage_tib: float
    egress_tib: float


def calculate_storage_price(num_bytes: float, price_per_tib: float) -> float:
    """Storage price in USD."""
    return bytes_to_tib(num_bytes) * price_per_tib


def calculate_egress_price(num_bytes: float, price_per_tib: float) -> float:
    """Egress price in USD."""
    return bytes_to_tib(num_bytes) * price_per_tib


def calculate_invoice(
    storage_bytes: float,
    egress_bytes: float,
    storage_price_per_tib: float,
    egress_price_per_tib: float,
) -> Invoice:
    """Calculate the invoice for a storage and an egress byte count.

    No rounding is applied here; presentation rounds to cents. Zero and
    negative byte counts are accepted as they are.

    Args:
        storage_bytes: Bytes stored at the end of the period
        egress_bytes: Bytes served during the period
        storage_price_per_tib: USD per TiB-month of storage
        egress_price_per_tib: USD per TiB of egress

    Returns:
        Invoice with amounts and the TiB figures they were computed from
    """
    storage_tib = bytes_to_tib(storage_bytes)
    egress_tib = bytes_to_tib(egress_bytes)
    storage_amount = storage_tib * storage_price_per_tib
    egress_amount = egress_tib * egress_price_per_tib

    return Invoice(
        storage_amount=storage_amount,
        egress_amount=egress_amount,
        total=storage_amount + egress_amount,
        storage_tib=storage_tib,
        egress_tib=egress_tib,
    )


def invoice_for_prices(storage_bytes: float, egress_bytes: float, prices: PriceConfig) -> Invoice:
    """Convenience wrapper over :func:`calculate_invoice` using a PriceConfig."""
    return calculate_invoice(
        storage_bytes,
        egress_bytes,
        prices.storage_usd_per_tib,
        prices.egress_usd_per_tib,
    )


def format_price(amount: float) -> str:
    """Format an amount as USD with two decimals, e.g. ``$1,234.50``."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.2f}"
