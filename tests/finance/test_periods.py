"""Tests for kakebo.finance.periods"""

from datetime import date

import pytest

from kakebo.errors import ToolArgumentError
from kakebo.finance.periods import (
    current_cycle,
    days_elapsed,
    month_bounds,
    parse_iso_date,
    parse_month,
    period_range,
)

TODAY = date(2026, 3, 15)  # a Sunday


class TestMonths:

    def test_month_bounds(self):
        assert month_bounds(date(2026, 2, 10)) == (date(2026, 2, 1), date(2026, 2, 28))
        assert month_bounds(date(2024, 2, 10)) == (date(2024, 2, 1), date(2024, 2, 29))
        assert month_bounds(date(2026, 12, 31)) == (date(2026, 12, 1), date(2026, 12, 31))

    def test_parse_month_defaults_to_current(self):
        assert parse_month(None, TODAY) == (date(2026, 3, 1), date(2026, 3, 31))

    def test_parse_month(self):
        assert parse_month("2026-02", TODAY) == (date(2026, 2, 1), date(2026, 2, 28))

    @pytest.mark.parametrize("value", ["marzo", "2026", "2026-13"])
    def test_parse_month_rejects_garbage(self, value):
        with pytest.raises(ToolArgumentError):
            parse_month(value, TODAY)

    def test_parse_iso_date(self):
        assert parse_iso_date(None, "date") is None
        assert parse_iso_date("", "date") is None
        assert parse_iso_date("2026-03-01", "date") == date(2026, 3, 1)
        with pytest.raises(ToolArgumentError, match="startDate"):
            parse_iso_date("01/03/2026", "startDate")


class TestPeriodRange:

    @pytest.mark.parametrize("period, expected", [
        ("current_month", (date(2026, 3, 1), TODAY)),
        ("last_month", (date(2026, 2, 1), date(2026, 2, 28))),
        ("last_3_months", (date(2025, 12, 1), TODAY)),
        ("last_6_months", (date(2025, 9, 1), TODAY)),
        ("current_week", (date(2026, 3, 9), TODAY)),
        ("last_week", (date(2026, 3, 2), date(2026, 3, 8))),
        ("last_3_days", (date(2026, 3, 12), TODAY)),
        ("whenever", (date(2026, 3, 1), TODAY)),
    ])
    def test_ranges(self, period, expected):
        assert period_range(period, TODAY) == expected

    def test_last_month_across_year(self):
        assert period_range("last_month", date(2026, 1, 20)) == (date(2025, 12, 1), date(2025, 12, 31))


class TestDaysElapsed:

    def test_inside(self):
        assert days_elapsed(date(2026, 3, 1), date(2026, 3, 31), TODAY) == 15

    def test_past_period_counts_whole_span(self):
        assert days_elapsed(date(2026, 2, 1), date(2026, 2, 28), TODAY) == 28

    def test_future_period(self):
        assert days_elapsed(date(2026, 4, 1), date(2026, 4, 30), TODAY) == 0


class TestCurrentCycle:

    def test_calendar_by_default(self):
        cycle = current_cycle(None, TODAY)
        assert (cycle.start, cycle.end) == (date(2026, 3, 1), date(2026, 3, 31))
        assert cycle.cycle_type == "calendar"

    def test_calendar_to_dict(self):
        data = current_cycle({"cycle_type": "calendar"}, TODAY).to_dict(TODAY)
        assert data["cycleStart"] == "2026-03-01"
        assert data["cycleEnd"] == "2026-03-31"
        assert data["daysElapsed"] == 15
        assert data["daysRemaining"] == 16
        assert data["daysTotal"] == 31
        assert data["progressPercentage"] == 48
        assert data["payrollDay"] is None

    def test_payroll_before_payday(self):
        cycle = current_cycle({"cycle_type": "payroll", "payroll_day": 25}, TODAY)
        assert (cycle.start, cycle.end) == (date(2026, 2, 25), date(2026, 3, 24))
        assert cycle.payroll_day == 25

    def test_payroll_on_payday(self):
        cycle = current_cycle({"cycle_type": "payroll", "payroll_day": 25}, date(2026, 3, 25))
        assert (cycle.start, cycle.end) == (date(2026, 3, 25), date(2026, 4, 24))

    def test_payroll_day_clamped_to_month_end(self):
        cycle = current_cycle({"cycle_type": "payroll", "payroll_day": 31}, date(2026, 2, 10))
        assert cycle.start == date(2026, 1, 31)
        assert cycle.start <= date(2026, 2, 10) <= cycle.end
