"""
Date helpers: named periods, month bounds and the user's pay cycle.

All functions take ``today`` explicitly so tools stay deterministic under test.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Optional, Tuple

from dateutil.relativedelta import relativedelta

from ..errors import ToolArgumentError


def month_bounds(day: date) -> Tuple[date, date]:
    """First and last day of *day*'s month."""
    start = day.replace(day=1)
    return start, start + relativedelta(months=1, days=-1)


def parse_month(month: Optional[str], today: date) -> Tuple[date, date]:
    """Bounds for a ``YYYY-MM`` string (defaults to the current month)."""
    if not month:
        return month_bounds(today)
    try:
        year, month_num = (int(part) for part in month.split("-"))
        return month_bounds(date(year, month_num, 1))
    except ValueError:
        raise ToolArgumentError(f"Mes inválido '{month}': usa el formato YYYY-MM")


def parse_iso_date(value: Optional[str], field_name: str) -> Optional[date]:
    if value is None or value == "":
        return None
    try:
        return date.fromisoformat(str(value))
    except ValueError:
        raise ToolArgumentError(f"Fecha inválida en {field_name}: usa el formato YYYY-MM-DD")


def period_range(period: str, today: date) -> Tuple[date, date]:
    """Inclusive (start, end) for an analysis period name.

    Unknown names fall back to the current month.
    """
    if period == "last_month":
        end = today.replace(day=1) - timedelta(days=1)
        return end.replace(day=1), end
    if period == "last_3_months":
        return today.replace(day=1) - relativedelta(months=3), today
    if period == "last_6_months":
        return today.replace(day=1) - relativedelta(months=6), today
    if period == "current_week":
        return today - timedelta(days=today.weekday()), today
    if period == "last_week":
        end = today - timedelta(days=today.weekday() + 1)
        return end - timedelta(days=6), end
    if period == "last_3_days":
        return today - timedelta(days=3), today
    return today.replace(day=1), today


def days_elapsed(start: date, end: date, today: date) -> int:
    """Days of [start, end] already lived through (the whole span if past)."""
    if today > end:
        return (end - start).days + 1
    if today < start:
        return 0
    return (today - start).days + 1


@dataclass
class Cycle:
    """The user's current spending cycle (calendar month or payroll-to-payroll)."""

    start: date
    end: date
    cycle_type: str = "calendar"
    payroll_day: Optional[int] = None

    def days_total(self) -> int:
        return (self.end - self.start).days + 1

    def days_elapsed(self, today: date) -> int:
        return days_elapsed(self.start, self.end, today)

    def days_remaining(self, today: date) -> int:
        return max(0, (self.end - today).days)

    def to_dict(self, today: date) -> Dict[str, Any]:
        total = self.days_total()
        elapsed = self.days_elapsed(today)
        return {
            "cycleStart": self.start.isoformat(),
            "cycleEnd": self.end.isoformat(),
            "daysRemaining": self.days_remaining(today),
            "daysElapsed": elapsed,
            "daysTotal": total,
            "cycleType": self.cycle_type,
            "payrollDay": self.payroll_day,
            "progressPercentage": round(elapsed / total * 100) if total else 0,
        }


def current_cycle(payment_cycle: Optional[Dict[str, Any]], today: date) -> Cycle:
    """Resolve the cycle containing *today* from a ``payment_cycles`` row."""
    if not payment_cycle or payment_cycle.get("cycle_type") != "payroll":
        start, end = month_bounds(today)
        return Cycle(start=start, end=end)

    payroll_day = int(payment_cycle.get("payroll_day") or 1)
    # relativedelta(day=n) clamps to the month's last day
    this_month_pay = today + relativedelta(day=payroll_day)
    if today >= this_month_pay:
        start = this_month_pay
    else:
        start = today - relativedelta(months=1) + relativedelta(day=payroll_day)
    next_pay = start + relativedelta(months=1) + relativedelta(day=payroll_day)
    return Cycle(
        start=start,
        end=next_pay - timedelta(days=1),
        cycle_type="payroll",
        payroll_day=payroll_day,
    )
