"""
Payload models for the usage, egress and plan capabilities.
"""

from .models import (
    AccountEgress,
    AccountUsage,
    DailySnapshot,
    DailyStat,
    Plan,
    ProviderUsage,
    SpaceEgress,
    SpaceUsage,
    UsageEvent,
)

__all__ = [
    "AccountEgress",
    "AccountUsage",
    "DailySnapshot",
    "DailyStat",
    "Plan",
    "ProviderUsage",
    "SpaceEgress",
    "SpaceUsage",
    "UsageEvent",
]
