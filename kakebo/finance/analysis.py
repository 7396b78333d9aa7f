"""Small numeric helpers shared by the read tools."""

import math
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .constants import SEMANTIC_KEYWORDS

STABLE_BAND_PCT = 5.0


def as_amount(row: Dict[str, Any]) -> float:
    """Row amount as float (asyncpg returns NUMERIC as Decimal)."""
    return float(row.get("amount") or 0)


def as_date(value: Any) -> Optional[date]:
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def money(value: float) -> float:
    return round(value + 0.0, 2)


def calculate_trend(amounts: List[float]) -> Tuple[str, float]:
    """Least-squares slope relative to the mean.

    Returns ``(trend, percentage)``; changes within ±5% are "stable".
    """
    n = len(amounts)
    if n < 2:
        return "stable", 0.0

    xs = range(n)
    sum_x = sum(xs)
    sum_y = sum(amounts)
    sum_xy = sum(x * y for x, y in zip(xs, amounts))
    sum_x2 = sum(x * x for x in xs)

    slope = (n * sum_xy - sum_x * sum_y) / (n * sum_x2 - sum_x * sum_x)
    average = sum_y / n
    percentage = (slope / average) * 100 if average else 0.0

    if abs(percentage) < STABLE_BAND_PCT:
        return "stable", 0.0
    return ("increasing" if slope > 0 else "decreasing"), round(abs(percentage), 1)


def mean_and_std(amounts: Iterable[float]) -> Tuple[float, float, int]:
    """Population mean and standard deviation."""
    values = list(amounts)
    if not values:
        return 0.0, 0.0, 0
    mean = sum(values) / len(values)
    variance = sum((v - mean) ** 2 for v in values) / len(values)
    return mean, math.sqrt(variance), len(values)


def filter_by_keywords(
    rows: List[Dict[str, Any]], semantic_filter: str
) -> Tuple[List[Dict[str, Any]], bool]:
    """Keep rows whose note mentions a keyword of *semantic_filter*.

    Returns ``(rows, applied)``; an unknown filter leaves rows untouched.
    """
    keywords = SEMANTIC_KEYWORDS.get(semantic_filter.strip().lower())
    if not keywords:
        return rows, False
    matched = []
    for row in rows:
        note = (row.get("note") or "").lower()
        if note and any(keyword in note for keyword in keywords):
            matched.append(row)
    return matched, True


def group_key(day: date, group_by: str) -> str:
    if group_by == "month":
        return day.strftime("%Y-%m")
    if group_by == "week":
        year, week, _ = day.isocalendar()
        return f"{year}-W{week:02d}"
    return day.isoformat()


def status_level(percentage: float) -> str:
    if percentage >= 100:
        return "exceeded"
    if percentage >= 70:
        return "warning"
    return "safe"


def project_spending(spent: float, elapsed: int, total_days: int) -> float:
    """End-of-period projection; before day 5 the daily rate is damped by 0.7."""
    if elapsed <= 0:
        return spent
    daily = spent / elapsed
    if elapsed < 5:
        return spent + daily * 0.7 * (total_days - elapsed)
    return daily * total_days


def projection_confidence(elapsed: int) -> str:
    if elapsed >= 20:
        return "high"
    if elapsed >= 10:
        return "medium"
    return "low"
