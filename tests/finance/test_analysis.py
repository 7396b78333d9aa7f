"""Tests for kakebo.finance.analysis"""

from datetime import date
from decimal import Decimal

import pytest

from kakebo.finance.analysis import (
    as_amount,
    as_date,
    calculate_trend,
    filter_by_keywords,
    group_key,
    mean_and_std,
    project_spending,
    projection_confidence,
    status_level,
)


class TestConversions:

    def test_as_amount_handles_decimal_and_missing(self):
        assert as_amount({"amount": Decimal("12.50")}) == 12.5
        assert as_amount({}) == 0.0

    def test_as_date(self):
        assert as_date(None) is None
        assert as_date(date(2026, 3, 1)) == date(2026, 3, 1)
        assert as_date("2026-03-01T10:00:00") == date(2026, 3, 1)


class TestTrend:

    def test_single_point_is_stable(self):
        assert calculate_trend([100]) == ("stable", 0.0)

    def test_flat_is_stable(self):
        assert calculate_trend([100, 100, 100]) == ("stable", 0.0)

    def test_small_change_inside_band(self):
        assert calculate_trend([100, 104]) == ("stable", 0.0)

    def test_increasing(self):
        assert calculate_trend([100, 200, 300]) == ("increasing", 50.0)

    def test_decreasing(self):
        assert calculate_trend([300, 200, 100]) == ("decreasing", 50.0)


class TestStatistics:

    def test_mean_and_std(self):
        mean, std, count = mean_and_std([2, 4, 4, 4, 5, 5, 7, 9])
        assert (mean, std, count) == (5.0, 2.0, 8)

    def test_empty(self):
        assert mean_and_std([]) == (0.0, 0.0, 0)


class TestKeywordFilter:

    ROWS = [
        {"note": "Compra Mercadona", "amount": 40},
        {"note": "Cine con amigos", "amount": 12},
        {"note": None, "amount": 3},
    ]

    def test_matches_notes(self):
        rows, applied = filter_by_keywords(self.ROWS, "comida")
        assert applied is True
        assert [r["note"] for r in rows] == ["Compra Mercadona"]

    def test_filter_name_is_normalized(self):
        rows, applied = filter_by_keywords(self.ROWS, "  OCIO ")
        assert applied is True
        assert [r["note"] for r in rows] == ["Cine con amigos"]

    def test_unknown_filter_is_ignored(self):
        rows, applied = filter_by_keywords(self.ROWS, "mascotas")
        assert applied is False
        assert rows == self.ROWS


class TestGrouping:

    @pytest.mark.parametrize("group_by, expected", [
        ("day", "2026-03-15"),
        ("week", "2026-W11"),
        ("month", "2026-03"),
    ])
    def test_group_key(self, group_by, expected):
        assert group_key(date(2026, 3, 15), group_by) == expected


class TestBudgetHelpers:

    @pytest.mark.parametrize("percentage, expected", [
        (0, "safe"),
        (69.9, "safe"),
        (70, "warning"),
        (99.9, "warning"),
        (100, "exceeded"),
        (250, "exceeded"),
    ])
    def test_status_level(self, percentage, expected):
        assert status_level(percentage) == expected

    def test_projection_linear(self):
        assert project_spending(300, 10, 30) == 900

    def test_projection_damped_early_in_period(self):
        assert project_spending(40, 2, 30) == pytest.approx(432)

    def test_projection_before_start(self):
        assert project_spending(0, 0, 30) == 0

    @pytest.mark.parametrize("elapsed, expected", [(25, "high"), (20, "high"), (10, "medium"), (9, "low")])
    def test_confidence(self, elapsed, expected):
        assert projection_confidence(elapsed) == expected
