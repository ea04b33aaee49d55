"""
Billing period selection.

All boundaries are computed in UTC so that client and services agree on
which calendar day an instant belongs to.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, Dict, Optional, Union

from storage_billing.payloads.models import parse_timestamp


@dataclass(frozen=True)
class Period:
    """Time window used to scope usage/egress queries and invoices.

    Validity is not enforced on construction: an invalid period (from >= to)
    means "no data" downstream, not an error.
    """
    start: datetime
    end: datetime

    @property
    def is_valid(self) -> bool:
        return self.start < self.end

    @property
    def start_day(self) -> date:
        return day_key(self.start)

    @property
    def end_day(self) -> date:
        return day_key(self.end)

    @classmethod
    def from_date_strings(cls, start: str, end: str) -> "Period":
        """Build a period from ``YYYY-MM-DD`` strings, both at midnight UTC.

        Raises:
            ValueError: If either string is not a calendar date
        """
        return cls(start=_midnight(date.fromisoformat(start)), end=_midnight(date.fromisoformat(end)))

    def to_query(self) -> Dict[str, str]:
        """Period in the shape expected by capability invocations."""
        return {"from": _iso(self.start), "to": _iso(self.end)}


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def day_key(value: Union[date, datetime, str]) -> date:
    """UTC calendar day of a timestamp (dates pass through unchanged)."""
    if isinstance(value, datetime) or isinstance(value, str):
        return parse_timestamp(value).date()
    return value


def last_30_days(now: Optional[datetime] = None) -> Period:
    """``[now - 30 days, now]``."""
    now = _normalize(now)
    return Period(start=now - timedelta(days=30), end=now)


def this_month(now: Optional[datetime] = None) -> Period:
    """``[first of the current month, now]``."""
    now = _normalize(now)
    return Period(start=_first_of_month(now), end=now)


def last_month(now: Optional[datetime] = None) -> Period:
    """``[first of previous month, first of this month)``, half-open."""
    now = _normalize(now)
    first_of_this = _first_of_month(now)
    first_of_last = _first_of_month(first_of_this - timedelta(days=1))
    return Period(start=first_of_last, end=first_of_this)


def default_period(now: Optional[datetime] = None) -> Period:
    """First day of last month to now, the window the usage and egress
    services report on when no period is given."""
    now = _normalize(now)
    return Period(start=last_month(now).start, end=now)


PRESETS: Dict[str, Callable[[Optional[datetime]], Period]] = {
    "last-30-days": last_30_days,
    "this-month": this_month,
    "last-month": last_month,
}


def resolve_preset(name: str, now: Optional[datetime] = None) -> Period:
    """Look up a named preset window.

    Raises:
        ValueError: If the preset name is unknown
    """
    if name not in PRESETS:
        raise ValueError(f"Unknown period preset: {name} (expected one of: {', '.join(PRESETS)})")
    return PRESETS[name](now)


def _normalize(now: Optional[datetime]) -> datetime:
    return utc_now() if now is None else parse_timestamp(now)


def _first_of_month(value: datetime) -> datetime:
    return datetime(value.year, value.month, 1, tzinfo=timezone.utc)


def _midnight(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
