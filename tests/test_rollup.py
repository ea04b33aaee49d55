"""
Unit tests for the usage roll-up.

Tests daily grouping, cumulative sizes, clamping and period-end lookup.
"""

from datetime import date, datetime, timezone

import pytest

from storage_billing.core.rollup import (
    calculate_daily_deltas,
    fill_missing_dates,
    rollup_storage_events_by_day,
    storage_at_period_end,
)
from storage_billing.payloads.models import AccountUsage, DailySnapshot

GIB = 1024 ** 3
TIB = 1024 ** 4


def make_usage(spaces, total=0):
    """Build an AccountUsage from {space: {provider: (initial, [(receiptAt, delta)])}}."""
    payload = {"total": total, "spaces": {}}
    for space, providers in spaces.items():
        payload["spaces"][space] = {
            "total": 0,
            "providers": {
                provider: {
                    "space": space,
                    "provider": provider,
                    "size": {"initial": initial, "final": 0},
                    "events": [
                        {"cause": f"bafy-{i}", "delta": delta, "receiptAt": at}
                        for i, (at, delta) in enumerate(events)
                    ],
                }
                for provider, (initial, events) in providers.items()
            },
        }
    return AccountUsage.from_dict(payload)


def snapshots(*pairs):
    return [DailySnapshot(date=d, bytes=b) for d, b in pairs]


class TestRollup:
    """Test rolling usage events into daily snapshots."""

    def test_fixture_payload(self, usage_payload):
        """Test roll-up of a realistic two-space payload."""
        daily = rollup_storage_events_by_day(AccountUsage.from_dict(usage_payload))

        assert daily == snapshots(
            (date(2024, 1, 5), TIB),
            (date(2024, 1, 20), TIB + GIB),
            (date(2024, 2, 10), TIB),
        )

    def test_baseline_is_sum_of_initial_sizes(self):
        """Test that every (space, provider) initial size contributes."""
        usage = make_usage({
            "did:key:a": {
                "did:web:p1": (100, [("2024-01-01T10:00:00Z", 50), ("2024-01-02T23:59:00Z", -20)]),
                "did:web:p2": (1000, []),
            },
            "did:key:b": {
                "did:web:p1": (200, [("2024-01-01T05:00:00Z", 30), ("2024-01-03T00:00:00Z", 10)]),
            },
        })

        daily = rollup_storage_events_by_day(usage)

        assert daily == snapshots(
            (date(2024, 1, 1), 1380),
            (date(2024, 1, 2), 1360),
            (date(2024, 1, 3), 1370),
        )

    def test_reported_total_is_ignored(self):
        """Test that the top-level total does not seed the series."""
        usage = make_usage(
            {"did:key:a": {"did:web:p1": (100, [("2024-01-01T00:00:00Z", 1)])}},
            total=999_999,
        )

        assert rollup_storage_events_by_day(usage) == snapshots((date(2024, 1, 1), 101))

    def test_events_grouped_by_utc_day(self):
        """Test that receipt times are bucketed by their UTC calendar day."""
        usage = make_usage({
            "did:key:a": {
                "did:web:p1": (0, [
                    ("2024-01-01T23:30:00-05:00", 10),  # 2024-01-02 04:30 UTC
                    ("2024-01-02T01:00:00+00:00", 5),
                ]),
            },
        })

        assert rollup_storage_events_by_day(usage) == snapshots((date(2024, 1, 2), 15))

    def test_dates_strictly_increasing(self):
        """Test ordering regardless of event arrival order."""
        usage = make_usage({
            "did:key:a": {"did:web:p1": (0, [("2024-03-01T00:00:00Z", 1), ("2024-01-01T00:00:00Z", 1)])},
            "did:key:b": {"did:web:p1": (0, [("2024-02-01T00:00:00Z", 1), ("2024-01-01T12:00:00Z", 1)])},
        })

        dates = [s.date for s in rollup_storage_events_by_day(usage)]

        assert dates == sorted(set(dates))
        assert dates == [date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1)]

    def test_negative_sizes_clamped_to_zero(self):
        """Test that reported bytes never go below zero."""
        usage = make_usage({
            "did:key:a": {"did:web:p1": (10, [
                ("2024-01-01T00:00:00Z", -50),
                ("2024-01-02T00:00:00Z", 20),
                ("2024-01-03T00:00:00Z", 100),
            ])},
        })

        daily = rollup_storage_events_by_day(usage)

        assert all(s.bytes >= 0 for s in daily)
        # The running total stays at -40, -20, then 80
        assert [s.bytes for s in daily] == [0, 0, 80]

    def test_empty_spaces(self):
        """Test that a payload without spaces yields no snapshots."""
        assert rollup_storage_events_by_day(AccountUsage.from_dict({"total": 5, "spaces": {}})) == []

    def test_no_events(self):
        """Test that providers without events yield no snapshots."""
        usage = make_usage({"did:key:a": {"did:web:p1": (TIB, [])}})
        assert rollup_storage_events_by_day(usage) == []

    def test_none_payload(self):
        """Test that a missing payload is treated as empty."""
        assert rollup_storage_events_by_day(None) == []

    def test_idempotent(self, usage_payload):
        """Test that repeated calls give equal, independent results."""
        usage = AccountUsage.from_dict(usage_payload)

        first = rollup_storage_events_by_day(usage)
        second = rollup_storage_events_by_day(usage)

        assert first == second
        assert first is not second


class TestDailyDeltas:
    """Test per-day change calculation."""

    def test_deltas(self):
        """Test differences between consecutive snapshots."""
        series = snapshots(
            (date(2024, 1, 1), 100),
            (date(2024, 1, 2), 150),
            (date(2024, 1, 5), 120),
        )

        assert calculate_daily_deltas(series) == snapshots(
            (date(2024, 1, 1), 100),
            (date(2024, 1, 2), 50),
            (date(2024, 1, 5), -30),
        )

    def test_empty(self):
        assert calculate_daily_deltas([]) == []


class TestFillMissingDates:
    """Test dense series expansion."""

    def test_carry_forward(self):
        """Test days before the first value are 0 and later days carry forward."""
        series = snapshots((date(2024, 1, 3), 500))

        filled = fill_missing_dates(series, date(2024, 1, 1), date(2024, 1, 5))

        assert [s.date for s in filled] == [date(2024, 1, d) for d in range(1, 6)]
        assert [s.bytes for s in filled] == [0, 0, 500, 500, 500]

    def test_fill_zero(self):
        """Test that fill_zero leaves gaps at zero."""
        series = snapshots((date(2024, 1, 3), 500))

        filled = fill_missing_dates(series, date(2024, 1, 1), date(2024, 1, 5), fill_zero=True)

        assert [s.bytes for s in filled] == [0, 0, 500, 0, 0]

    def test_multiple_values(self):
        """Test that the latest known value is carried."""
        series = snapshots((date(2024, 1, 1), 10), (date(2024, 1, 3), 30))

        filled = fill_missing_dates(series, date(2024, 1, 1), date(2024, 1, 4))

        assert [s.bytes for s in filled] == [10, 10, 30, 30]

    def test_datetime_bounds_use_day(self):
        """Test that time-of-day on the bounds is ignored."""
        series = snapshots((date(2024, 1, 2), 7))

        filled = fill_missing_dates(
            series,
            datetime(2024, 1, 1, 18, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 2, 6, 0, tzinfo=timezone.utc),
        )

        assert filled == snapshots((date(2024, 1, 1), 0), (date(2024, 1, 2), 7))

    def test_earlier_snapshots_not_seeded(self):
        """Test that values before the window do not seed the fill."""
        series = snapshots((date(2024, 1, 1), 100))

        filled = fill_missing_dates(series, date(2024, 1, 3), date(2024, 1, 4))

        assert [s.bytes for s in filled] == [0, 0]

    def test_empty_input(self):
        assert fill_missing_dates([], date(2024, 1, 1), date(2024, 1, 5)) == []


class TestStorageAtPeriodEnd:
    """Test period-end storage lookup."""

    SERIES = snapshots(
        (date(2024, 1, 5), 100),
        (date(2024, 1, 20), 200),
        (date(2024, 2, 10), 150),
    )

    def test_no_snapshots_returns_fallback(self):
        """Test that the reported total is used without daily data."""
        assert storage_at_period_end([], date(2024, 1, 1), date(2024, 1, 31), 12345) == 12345

    def test_last_snapshot_in_range(self):
        """Test that the latest snapshot in the window wins."""
        assert storage_at_period_end(self.SERIES, date(2024, 1, 1), date(2024, 1, 31), 0) == 200

    def test_bounds_inclusive(self):
        """Test that snapshots on the first and last day count."""
        assert storage_at_period_end(self.SERIES, date(2024, 1, 20), date(2024, 1, 20)) == 200
        assert storage_at_period_end(self.SERIES, date(2024, 2, 10), date(2024, 3, 1)) == 150

    def test_carry_forward_before_window(self):
        """Test that storage persists through a window without activity."""
        assert storage_at_period_end(self.SERIES, date(2024, 3, 1), date(2024, 3, 31), 999) == 150
        assert storage_at_period_end(self.SERIES, date(2024, 1, 21), date(2024, 2, 1)) == 200

    def test_only_later_snapshots(self):
        """Test that a window before all activity reports zero."""
        assert storage_at_period_end(self.SERIES, date(2023, 12, 1), date(2023, 12, 31), 999) == 0

    def test_datetime_bounds_use_day_keys(self):
        """Test that bounds with a time of day compare by calendar day."""
        result = storage_at_period_end(
            self.SERIES,
            datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc),
            datetime(2024, 1, 20, 0, 0, tzinfo=timezone.utc),
        )
        assert result == 200

    @pytest.mark.parametrize("fallback", [0, 1, TIB])
    def test_fallback_exact(self, fallback):
        """Test that the fallback is returned unchanged."""
        assert storage_at_period_end([], date(2024, 1, 1), date(2024, 1, 2), fallback) == fallback
