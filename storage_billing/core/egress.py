"""
Egress roll-up.

Merges per-space daily egress stats into one account-wide series.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence

from storage_billing.payloads.models import AccountEgress, DailySnapshot


def egress_total(egress: Optional[AccountEgress]) -> int:
    """Reported egress total for the queried period, 0 when absent."""
    return egress.total if egress is not None else 0


def rollup_egress_by_day(egress: Optional[AccountEgress]) -> List[DailySnapshot]:
    """Sum daily egress across spaces, one entry per day with stats."""
    if egress is None:
        return []

    per_day: Dict[date, int] = defaultdict(int)
    for space in egress.spaces.values():
        for stat in space.daily_stats:
            per_day[stat.date] += stat.egress

    return [DailySnapshot(date=day, bytes=per_day[day]) for day in sorted(per_day)]


def accumulate(series: Sequence[DailySnapshot]) -> List[DailySnapshot]:
    """Running total of a daily series."""
    running = 0
    accumulated = []
    for entry in series:
        running += entry.bytes
        accumulated.append(DailySnapshot(date=entry.date, bytes=running))
    return accumulated


def count_data_points(egress: Optional[AccountEgress]) -> int:
    """Number of daily stats across all spaces."""
    if egress is None:
        return 0
    return sum(len(space.daily_stats) for space in egress.spaces.values())
