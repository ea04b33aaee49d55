"""
Roll-up of storage usage events into daily snapshots.

The usage service reports an event-sourced ledger: for every (space,
provider) pair an initial size plus timestamped deltas. This module turns
that into a cumulative, date-keyed series for the whole account.

Storage is a stock, not a flow: a day without events means "unchanged",
never "zero".
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Sequence, Union

from storage_billing.core.periods import day_key
from storage_billing.payloads.models import AccountUsage, DailySnapshot


def rollup_storage_events_by_day(usage: Optional[AccountUsage]) -> List[DailySnapshot]:
    """Roll up storage events into daily cumulative snapshots.

    The starting size is the sum of ``size.initial`` over every (space,
    provider) pair; the top-level ``total`` is not consulted. Events from
    all spaces and providers are grouped by the UTC day of their receipt,
    and each day's net delta is applied in ascending date order. Only days
    with events are emitted.

    Args:
        usage: Account usage payload (None is treated as empty)

    Returns:
        Snapshots with strictly increasing dates; bytes never below zero
    """
    if usage is None:
        return []

    provider_usages = usage.provider_usages()

    daily_deltas: Dict[date, int] = defaultdict(int)
    for provider_usage in provider_usages:
        for event in provider_usage.events:
            daily_deltas[day_key(event.receipt_at)] += event.delta

    if not daily_deltas:
        return []

    current_size = sum(p.initial_size for p in provider_usages)

    snapshots = []
    for day in sorted(daily_deltas):
        current_size += daily_deltas[day]
        # Only the reported value is clamped; the running total keeps its sign
        snapshots.append(DailySnapshot(date=day, bytes=max(0, current_size)))

    return snapshots


def calculate_daily_deltas(snapshots: Sequence[DailySnapshot]) -> List[DailySnapshot]:
    """Difference of each snapshot from the previous one.

    The first snapshot has no predecessor, so its delta is its own value.
    """
    deltas = []
    previous: Optional[DailySnapshot] = None
    for snapshot in snapshots:
        delta = snapshot.bytes - previous.bytes if previous else snapshot.bytes
        deltas.append(DailySnapshot(date=snapshot.date, bytes=delta))
        previous = snapshot
    return deltas


def fill_missing_dates(
    snapshots: Sequence[DailySnapshot],
    start: Union[date, datetime],
    end: Union[date, datetime],
    fill_zero: bool = False,
) -> List[DailySnapshot]:
    """Expand a sparse series into one entry per day of ``[start, end]``.

    Missing days get 0 when ``fill_zero`` is set, otherwise the last known
    value (0 before the first known day). An empty input stays empty.
    """
    if not snapshots:
        return []

    by_day = {s.date: s.bytes for s in snapshots}

    filled = []
    last_value = 0
    current = day_key(start)
    last_day = day_key(end)
    while current <= last_day:
        if current in by_day:
            last_value = by_day[current]
            filled.append(DailySnapshot(date=current, bytes=last_value))
        else:
            filled.append(DailySnapshot(date=current, bytes=0 if fill_zero else last_value))
        current += timedelta(days=1)

    return filled


def storage_at_period_end(
    snapshots: Sequence[DailySnapshot],
    start: Union[date, datetime],
    end: Union[date, datetime],
    fallback_total: float = 0,
) -> float:
    """Storage held at the end of ``[start, end]`` (day keys, inclusive).

    Policy:
    1. No snapshots at all: ``fallback_total`` (the service-reported total)
    2. Latest snapshot inside the window
    3. Latest snapshot before the window, carried forward
    4. Otherwise 0

    Args:
        snapshots: Series sorted by date, as produced by the roll-up
        start: First day of the window
        end: Last day of the window
        fallback_total: Value used when there is no daily data

    Returns:
        Bytes stored at the end of the window
    """
    if not snapshots:
        return fallback_total

    start_key = day_key(start)
    end_key = day_key(end)

    in_range = [s for s in snapshots if start_key <= s.date <= end_key]
    if in_range:
        return in_range[-1].bytes

    before = [s for s in snapshots if s.date < start_key]
    if before:
        return before[-1].bytes

    return 0
