"""
Tests for forecast period generation.

Tests cover monthly and weekly bucketing, clipping and degenerate ranges.
"""

import pytest
from datetime import date, timedelta

from cashline.forecast.periods import Period, PeriodType, generate_periods


def assert_contiguous(periods, start, end):
    """Periods are ordered, gapless and cover start..end exactly."""
    assert periods[0].start == start
    assert periods[-1].end == end + timedelta(days=1)
    for previous, current in zip(periods, periods[1:]):
        assert previous.end == current.start
        assert previous.start < previous.end


# =============================================================================
# Unit Tests - Period
# =============================================================================

class TestPeriod:
    """Tests for the half-open Period interval."""

    def test_contains_is_half_open(self):
        period = Period(start=date(2024, 1, 1), end=date(2024, 2, 1))

        assert period.contains(date(2024, 1, 1))
        assert period.contains(date(2024, 1, 31))
        assert not period.contains(date(2024, 2, 1))
        assert not period.contains(date(2023, 12, 31))

    def test_last_day(self):
        period = Period(start=date(2024, 2, 1), end=date(2024, 3, 1))

        assert period.last_day == date(2024, 2, 29)


# =============================================================================
# Unit Tests - Monthly
# =============================================================================

class TestMonthlyPeriods:
    """Tests for calendar-month bucketing."""

    def test_full_quarter(self):
        periods = generate_periods(date(2024, 1, 1), date(2024, 3, 31), PeriodType.MONTHLY)

        assert [(p.start, p.end) for p in periods] == [
            (date(2024, 1, 1), date(2024, 2, 1)),
            (date(2024, 2, 1), date(2024, 3, 1)),
            (date(2024, 3, 1), date(2024, 4, 1)),
        ]

    def test_clipped_at_both_ends(self):
        periods = generate_periods(date(2024, 1, 15), date(2024, 3, 10), "monthly")

        assert len(periods) == 3
        assert periods[0] == Period(date(2024, 1, 15), date(2024, 2, 1))
        assert periods[-1] == Period(date(2024, 3, 1), date(2024, 3, 11))
        assert_contiguous(periods, date(2024, 1, 15), date(2024, 3, 10))

    def test_crosses_year_boundary(self):
        periods = generate_periods(date(2023, 11, 20), date(2024, 2, 5), PeriodType.MONTHLY)

        assert [p.start for p in periods] == [
            date(2023, 11, 20),
            date(2023, 12, 1),
            date(2024, 1, 1),
            date(2024, 2, 1),
        ]
        assert_contiguous(periods, date(2023, 11, 20), date(2024, 2, 5))

    def test_single_day(self):
        periods = generate_periods(date(2024, 5, 31), date(2024, 5, 31), PeriodType.MONTHLY)

        assert periods == [Period(date(2024, 5, 31), date(2024, 6, 1))]


# =============================================================================
# Unit Tests - Weekly
# =============================================================================

class TestWeeklyPeriods:
    """Tests for fixed 7-day bucketing."""

    def test_weeks_start_at_start_date(self):
        periods = generate_periods(date(2024, 1, 3), date(2024, 1, 23), PeriodType.WEEKLY)

        assert [p.start for p in periods] == [
            date(2024, 1, 3),
            date(2024, 1, 10),
            date(2024, 1, 17),
        ]
        assert all((p.end - p.start).days == 7 for p in periods)
        assert_contiguous(periods, date(2024, 1, 3), date(2024, 1, 23))

    def test_last_week_clipped(self):
        periods = generate_periods(date(2024, 1, 1), date(2024, 1, 10), PeriodType.WEEKLY)

        assert len(periods) == 2
        assert periods[-1] == Period(date(2024, 1, 8), date(2024, 1, 11))


# =============================================================================
# Edge Cases
# =============================================================================

class TestEdgeCases:
    """Tests for degenerate inputs."""

    def test_inverted_range_is_empty(self):
        assert generate_periods(date(2024, 3, 1), date(2024, 1, 1)) == []

    def test_missing_dates_are_empty(self):
        assert generate_periods(None, date(2024, 1, 1)) == []
        assert generate_periods(date(2024, 1, 1), None) == []

    def test_unknown_period_type_is_empty(self):
        assert generate_periods(date(2024, 1, 1), date(2024, 3, 1), "fortnightly") == []

    @pytest.mark.parametrize("period_type", [PeriodType.MONTHLY, PeriodType.WEEKLY])
    def test_year_long_span_is_contiguous(self, period_type):
        start, end = date(2024, 1, 9), date(2024, 12, 17)
        periods = generate_periods(start, end, period_type)

        assert_contiguous(periods, start, end)
