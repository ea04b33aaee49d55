"""
Storage capacity against the account plan.
"""

from dataclasses import dataclass
from enum import Enum

WARNING_PERCENT = 70.0
CRITICAL_PERCENT = 90.0


class CapacityLevel(Enum):
    """How close usage is to the reserved capacity."""
    OK = "ok"
    WARNING = "warning"    # >= 70% used
    CRITICAL = "critical"  # >= 90% used


@dataclass(frozen=True)
class CapacityStatus:
    """Reserved/used/remaining capacity. Reserved 0 means unlimited."""
    reserved: int
    used: int
    remaining: int
    percent_used: float
    level: CapacityLevel

    @property
    def unlimited(self) -> bool:
        return self.reserved == 0

    @property
    def bar_width(self) -> float:
        """Fill of the capacity bar in percent, capped at 100."""
        return min(self.percent_used, 100.0)


def compute_capacity(reserved: int, used: int) -> CapacityStatus:
    """Compute capacity metrics for a plan limit and current usage."""
    remaining = max(0, reserved - used)
    percent_used = (used / reserved) * 100 if reserved > 0 else 0.0

    if percent_used >= CRITICAL_PERCENT:
        level = CapacityLevel.CRITICAL
    elif percent_used >= WARNING_PERCENT:
        level = CapacityLevel.WARNING
    else:
        level = CapacityLevel.OK

    return CapacityStatus(
        reserved=reserved,
        used=used,
        remaining=remaining,
        percent_used=percent_used,
        level=level,
    )
