"""
Byte unit conversion and display helpers.

Billing is done in binary units (1 TiB = 1024^4 bytes).
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Union

BYTES_PER_GIB = 1024 ** 3
BYTES_PER_TIB = 1024 ** 4

BYTE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB")


@dataclass(frozen=True)
class ByteDisplay:
    """Auto-scaled byte amount ready for display."""
    value: float
    unit: str
    formatted: str


def bytes_to_tib(num_bytes: float) -> float:
    """Convert bytes to TiB."""
    return num_bytes / BYTES_PER_TIB


def bytes_to_gib(num_bytes: float) -> float:
    """Convert bytes to GiB."""
    return num_bytes / BYTES_PER_GIB


def _scale(num_bytes: float):
    """Return (value, unit index) for the largest unit keeping |value| >= 1."""
    value = float(num_bytes)
    index = 0
    while abs(value) >= 1024 and index < len(BYTE_UNITS) - 1:
        value /= 1024
        index += 1
    return value, index


def format_bytes(num_bytes: float) -> str:
    """Format bytes in a human-readable form, e.g. ``1.5 KiB``.

    Trailing zeros are dropped from the two-decimal value.
    """
    if num_bytes == 0:
        return "0 B"

    value, index = _scale(num_bytes)
    rounded = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{rounded} {BYTE_UNITS[index]}"


def format_bytes_auto(num_bytes: float, decimals: int = 2) -> ByteDisplay:
    """Pick the most appropriate unit and return value and unit separately.

    Uses 1.0 as the threshold, so the displayed value is always >= 1.0
    unless the amount is below one byte. Zero is shown in GiB, the unit the
    dashboard cards default to.

    Args:
        num_bytes: Amount in bytes
        decimals: Decimal places in the formatted string

    Returns:
        ByteDisplay with the scaled value, its unit and a formatted string
    """
    if num_bytes == 0:
        return ByteDisplay(value=0.0, unit="GiB", formatted=f"{0:.{decimals}f} GiB")

    value, index = _scale(num_bytes)
    unit = BYTE_UNITS[index]
    return ByteDisplay(value=value, unit=unit, formatted=f"{value:.{decimals}f} {unit}")


def format_date(value: Union[date, datetime, str]) -> str:
    """Format a date as ``Mar 5, 2024``."""
    d = _coerce_date(value)
    return f"{d:%b} {d.day}, {d.year}"


def format_datetime(value: Union[datetime, str]) -> str:
    """Format a timestamp as ``Mar 5, 2024 14:07``."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00")) if isinstance(value, str) else value
    return f"{dt:%b} {dt.day}, {dt.year} {dt:%H:%M}"


def _coerce_date(value: Union[date, datetime, str]) -> date:
    if isinstance(value, str):
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    if isinstance(value, datetime):
        return value.date()
    return value
