"""Tests for period boundaries and period lists."""

from __future__ import annotations

import pytest

from tally.kernel.models import AggregationConfig, AggregationMode, Boundaries
from tally.kernel.periods import build_periods, get_boundaries, iter_boundaries, start_of_day

from tests.conftest import ms


class TestGetBoundaries:
    def test_daily(self):
        b = get_boundaries("daily", 1, None, ms(2024, 1, 15, 13, 45))
        assert b == Boundaries(ms(2024, 1, 15), ms(2024, 1, 16))

    def test_weekly_monday_start(self):
        b = get_boundaries(AggregationMode.weekly, 1, None, ms(2024, 1, 17, 9))
        assert b == Boundaries(ms(2024, 1, 15), ms(2024, 1, 22))

    def test_weekly_sunday_start(self):
        b = get_boundaries(AggregationMode.weekly, 0, None, ms(2024, 1, 17, 9))
        assert b == Boundaries(ms(2024, 1, 14), ms(2024, 1, 21))

    def test_weekly_on_start_day(self):
        b = get_boundaries("weekly", 1, None, ms(2024, 1, 15))
        assert b.from_ms == ms(2024, 1, 15)

    def test_monthly(self):
        assert get_boundaries("monthly", 1, None, ms(2024, 1, 15)) == Boundaries(ms(2024, 1, 1), ms(2024, 2, 1))

    def test_monthly_leap_february(self):
        assert get_boundaries("monthly", 1, None, ms(2024, 2, 15)) == Boundaries(ms(2024, 2, 1), ms(2024, 3, 1))

    def test_monthly_year_rollover(self):
        assert get_boundaries("monthly", 1, None, ms(2024, 12, 31)) == Boundaries(ms(2024, 12, 1), ms(2025, 1, 1))

    def test_custom_first_period(self):
        b = get_boundaries("custom", 1, 14, ms(2024, 1, 8), ms(2024, 1, 1))
        assert b == Boundaries(ms(2024, 1, 1), ms(2024, 1, 15))

    def test_custom_second_period(self):
        b = get_boundaries("custom", 1, 14, ms(2024, 1, 20), ms(2024, 1, 1))
        assert b == Boundaries(ms(2024, 1, 15), ms(2024, 1, 29))

    def test_custom_before_anchor_uses_floor(self):
        b = get_boundaries("custom", 1, 14, ms(2023, 12, 31), ms(2024, 1, 1))
        assert b == Boundaries(ms(2023, 12, 18), ms(2024, 1, 1))

    @pytest.mark.parametrize("days, anchor", [(None, ms(2024, 1, 1)), (14, None), (0, ms(2024, 1, 1))])
    def test_custom_falls_back_to_daily(self, days, anchor):
        b = get_boundaries("custom", 1, days, ms(2024, 1, 15, 8), anchor)
        assert b == Boundaries(ms(2024, 1, 15), ms(2024, 1, 16))

    def test_dst_day_is_23_hours(self):
        # Europe/Berlin switches to summer time on 2024-03-31
        b = get_boundaries("daily", 1, None, ms(2024, 3, 31, 12), tz_name="Europe/Berlin")
        assert b.to_ms - b.from_ms == 23 * 3600 * 1000

    def test_deterministic(self):
        args = ("custom", 1, 10, ms(2024, 5, 5), ms(2024, 1, 1))
        assert get_boundaries(*args) == get_boundaries(*args)


class TestIterBoundaries:
    @pytest.mark.parametrize("mode", list(AggregationMode))
    def test_contiguous_and_covering(self, mode):
        config = AggregationConfig(mode=mode, aggregation_days=5, anchor_start_date=ms(2024, 1, 3))
        range_from, range_to = ms(2024, 1, 10, 15), ms(2024, 3, 2, 23, 59)
        periods = iter_boundaries(config, range_from, range_to)

        assert periods[0].from_ms <= range_from
        assert periods[-1].to_ms > range_to
        for current, following in zip(periods, periods[1:]):
            assert current.to_ms == following.from_ms

    def test_short_range_yields_one_period(self):
        config = AggregationConfig(mode="monthly")
        periods = iter_boundaries(config, ms(2024, 1, 10), ms(2024, 1, 11))
        assert periods == [Boundaries(ms(2024, 1, 1), ms(2024, 2, 1))]

    def test_stops_at_range_end_day(self):
        config = AggregationConfig(mode="weekly", week_start_day=1)
        periods = iter_boundaries(config, ms(2024, 1, 15), ms(2024, 1, 28, 23, 59))
        assert [p.from_ms for p in periods] == [ms(2024, 1, 15), ms(2024, 1, 22)]

    def test_start_of_day(self):
        assert start_of_day(ms(2024, 6, 1, 23, 59)) == ms(2024, 6, 1)


class TestBuildPeriods:
    def test_daily_labels_and_keys(self):
        periods = build_periods(AggregationConfig(mode="daily"), ms(2024, 1, 15), ms(2024, 1, 16, 12))
        assert [p.label for p in periods] == ["15.01.", "16.01."]
        assert periods[0].key == str(ms(2024, 1, 15))

    def test_weekly_label(self):
        periods = build_periods(AggregationConfig(mode="weekly"), ms(2024, 1, 17), ms(2024, 1, 17))
        assert periods[0].label == "15.01. - 21.01."

    def test_monthly_label(self):
        periods = build_periods(AggregationConfig(mode="monthly"), ms(2024, 1, 17), ms(2024, 2, 3))
        assert [p.label for p in periods] == ["01.2024", "02.2024"]
