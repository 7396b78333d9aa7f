"""
Finance read tools - spending analysis, budgets, anomalies, projections.

None of these tools write to the data store. Every store call is scoped by
``context.user_id``.
"""

import logging
from collections import OrderedDict
from datetime import timedelta
from typing import Annotated, Any, Dict, List, Literal, Optional

from dateutil.relativedelta import relativedelta

from ..errors import ToolArgumentError
from ..models import ToolContext
from ..tool_decorator import tool
from .analysis import (
    as_amount,
    as_date,
    calculate_trend,
    filter_by_keywords,
    group_key,
    mean_and_std,
    money,
    project_spending,
    projection_confidence,
    status_level,
)
from .common import db_category, get_store, load_budgets, normalize_query, today
from .constants import (
    CATEGORIES,
    CATEGORY_TO_DB,
    DB_TO_CATEGORY,
    MAX_ANALYSIS_LIMIT,
    MIN_HISTORY_FOR_ANOMALIES,
)
from .periods import (
    current_cycle,
    days_elapsed,
    parse_iso_date,
    parse_month,
    period_range,
)

logger = logging.getLogger(__name__)

CategoryArg = Literal["survival", "optional", "culture", "extra"]
CategoryOrAllArg = Literal["survival", "optional", "culture", "extra", "all"]


def _expense_view(row: Dict[str, Any]) -> Dict[str, Any]:
    day = as_date(row.get("date"))
    return {
        "id": str(row.get("id", "")),
        "concept": row.get("note") or "Sin concepto",
        "amount": money(as_amount(row)),
        "category": DB_TO_CATEGORY.get(row.get("category"), row.get("category")),
        "date": day.isoformat() if day else "",
    }


# =============================================================================
# analyzeSpendingPattern
# =============================================================================


def _spending_insights(
    total: float,
    trend: str,
    trend_pct: float,
    top: List[Dict[str, Any]],
    count: int,
) -> List[str]:
    if count == 0:
        return ["No hay gastos registrados en este período."]
    insights = [f"Basado en {count} transacciones."]
    if trend == "increasing":
        insights.append(f"El gasto muestra una tendencia al alza del {trend_pct}%.")
    elif trend == "decreasing":
        insights.append(f"El gasto muestra una tendencia a la baja del {trend_pct}%.")
    if top and total > 0:
        share = top[0]["amount"] / total * 100
        if share >= 30:
            insights.append(
                f"El gasto más alto ({top[0]['concept']}, {top[0]['amount']}€) "
                f"representa el {round(share)}% del total."
            )
    return insights


@tool(
    name="analyzeSpendingPattern",
    default_arguments={"category": "all", "period": "current_month", "groupBy": "day"},
)
async def analyze_spending_pattern(
    category: Annotated[CategoryOrAllArg, "Kakebo category to analyze, or 'all'"] = "all",
    period: Annotated[
        Literal["current_month", "last_month", "last_3_months", "last_6_months", "current_week", "last_week"],
        "Time period to analyze",
    ] = "current_month",
    groupBy: Annotated[Literal["day", "week", "month"], "Grouping used for averages and trend"] = "day",
    limit: Annotated[int, "Max expenses to list (default 5, max 50)", {"minimum": 1, "maximum": 50}] = 5,
    semanticFilter: Annotated[
        Optional[str],
        "Subcategory keyword filter: comida, transporte, salud, vivienda, ocio, educacion, suscripciones, vicios",
    ] = None,
    *,
    context: ToolContext,
) -> Dict[str, Any]:
    """Analyze the user's spending for a period: totals, averages, trend and top expenses."""
    store = get_store(context)
    limit = max(1, min(int(limit), MAX_ANALYSIS_LIMIT))
    start, end = period_range(period, today(context))

    rows = await store.list_expenses(context.user_id, start, end, db_category(category))

    applied_filter = None
    if semanticFilter:
        rows, applied = filter_by_keywords(rows, semanticFilter)
        if applied:
            applied_filter = semanticFilter.lower()
        else:
            logger.warning(f"No keywords for semantic filter '{semanticFilter}', ignoring it")

    groups: "OrderedDict[str, float]" = OrderedDict()
    for row in sorted(rows, key=lambda r: as_date(r.get("date")) or start):
        key = group_key(as_date(row.get("date")) or start, groupBy)
        groups[key] = groups.get(key, 0.0) + as_amount(row)

    total = sum(groups.values())
    trend, trend_pct = calculate_trend(list(groups.values()))
    top = sorted((_expense_view(r) for r in rows), key=lambda e: e["amount"], reverse=True)[:limit]

    return {
        "category": category,
        "period": period,
        "startDate": start.isoformat(),
        "endDate": end.isoformat(),
        "semanticFilter": applied_filter,
        "transactionCount": len(rows),
        "totalAmount": money(total),
        "averagePerPeriod": money(total / len(groups)) if groups else 0.0,
        "groupBy": groupBy,
        "trend": trend,
        "trendPercentage": trend_pct,
        "topExpenses": top,
        "insights": _spending_insights(total, trend, trend_pct, top, len(rows)),
    }


# =============================================================================
# getBudgetStatus
# =============================================================================


@tool(name="getBudgetStatus")
async def get_budget_status(
    month: Annotated[Optional[str], "Month in YYYY-MM format (defaults to the current cycle)"] = None,
    category: Annotated[Optional[CategoryArg], "Only report this category"] = None,
    *,
    context: ToolContext,
) -> Dict[str, Any]:
    """Check how much of each budget has been spent, what remains and the projected end-of-period spend."""
    store = get_store(context)
    ref = today(context)
    if month:
        start, end = parse_month(month, ref)
    else:
        cycle = current_cycle(await store.get_payment_cycle(context.user_id), ref)
        start, end = cycle.start, cycle.end

    budgets = await load_budgets(store, context.user_id, start)
    rows = await store.list_expenses(context.user_id, start, end, db_category(category))

    spent_by_category = {c: 0.0 for c in CATEGORIES}
    for row in rows:
        key = DB_TO_CATEGORY.get(row.get("category"))
        if key:
            spent_by_category[key] += as_amount(row)

    elapsed = days_elapsed(start, end, ref)
    total_days = (end - start).days + 1
    remaining_days = max(0, (end - ref).days) if ref <= end else 0

    categories = [category] if category else list(CATEGORIES)
    report = []
    for name in categories:
        budget = budgets[name]
        spent = spent_by_category[name]
        percentage = round(spent / budget * 100, 1) if budget > 0 else (100.0 if spent > 0 else 0.0)
        report.append({
            "category": name,
            "budget": money(budget),
            "spent": money(spent),
            "remaining": money(budget - spent),
            "percentage": percentage,
            "status": status_level(percentage),
            "daysRemaining": remaining_days,
            "projectedSpending": money(project_spending(spent, elapsed, total_days)),
        })

    total_budget = sum(item["budget"] for item in report)
    total_spent = sum(item["spent"] for item in report)
    total_pct = total_spent / total_budget * 100 if total_budget > 0 else 0.0

    result: Dict[str, Any] = {
        "periodStart": start.isoformat(),
        "periodEnd": end.isoformat(),
        "categories": report,
        "totalBudget": money(total_budget),
        "totalSpent": money(total_spent),
        "totalRemaining": money(total_budget - total_spent),
        "overallStatus": status_level(total_pct),
    }

    settings = await store.get_settings(context.user_id) or {}
    if settings.get("monthly_income") is not None:
        income = float(settings.get("monthly_income") or 0)
        fixed = float(settings.get("fixed_expenses") or 0)
        saving = float(settings.get("saving_goal") or 0)
        utilizable = income - fixed - saving
        result.update({
            "monthlyIncome": money(income),
            "fixedExpenses": money(fixed),
            "savingGoal": money(saving),
            "utilizable": money(utilizable),
            "disponibleReal": money(utilizable - total_spent),
        })
    return result


# =============================================================================
# detectAnomalies
# =============================================================================

_SENSITIVITY_MULTIPLIER = {"low": 3.0, "medium": 2.0, "high": 1.5}
_SEVERITY_ORDER = {"high": 3, "medium": 2, "low": 1}


def _severity(deviation_pct: float) -> str:
    if deviation_pct > 200:
        return "high"
    if deviation_pct > 100:
        return "medium"
    return "low"


def _anomaly(row: Dict[str, Any], reason: str, severity: str, average: float, deviation: float) -> Dict[str, Any]:
    view = _expense_view(row)
    view.update({
        "reason": reason,
        "severity": severity,
        "historicalAverage": money(average),
        "deviationPercentage": round(deviation, 1),
    })
    return view


@tool(
    name="detectAnomalies",
    default_arguments={"period": "current_month", "sensitivity": "medium"},
)
async def detect_anomalies(
    period: Annotated[Literal["current_month", "last_week", "last_3_days"], "Period to inspect"] = "current_month",
    sensitivity: Annotated[Literal["low", "medium", "high"], "Detection sensitivity"] = "medium",
    *,
    context: ToolContext,
) -> Dict[str, Any]:
    """Detect unusual expenses compared with the previous three months of history."""
    store = get_store(context)
    ref = today(context)
    if period == "last_week":
        start, end = ref - timedelta(days=7), ref
    else:
        start, end = period_range(period, ref)

    history = await store.list_expenses(
        context.user_id, start - relativedelta(months=3), start - timedelta(days=1)
    )
    current = await store.list_expenses(context.user_id, start, end)

    if not current:
        return {"anomalies": [], "summary": "No hay gastos en este período para analizar"}

    if len(history) < MIN_HISTORY_FOR_ANOMALIES:
        return {
            "anomalies": [],
            "summary": (
                "Necesitas más histórico para detectar anomalías fiables. "
                f"Actualmente tienes {len(history)} gastos de los últimos 3 meses. "
                f"Se recomienda al menos {MIN_HISTORY_FOR_ANOMALIES} gastos históricos."
            ),
        }

    stats = {
        db_name: mean_and_std(as_amount(r) for r in history if r.get("category") == db_name)
        for db_name in CATEGORY_TO_DB.values()
    }
    multiplier = _SENSITIVITY_MULTIPLIER.get(sensitivity, 2.0)

    anomalies: List[Dict[str, Any]] = []
    for row in current:
        mean, std, count = stats.get(row.get("category") or "extra", (0.0, 0.0, 0))
        amount = as_amount(row)
        if count > 5 and std > 0 and amount > mean + multiplier * std:
            deviation = (amount - mean) / mean * 100
            anomalies.append(_anomaly(row, "unusually_high_amount", _severity(deviation), mean, deviation))
        elif 0 < count < 5:
            anomalies.append(_anomaly(row, "rare_category", "low", mean, 0.0))

    by_day: Dict[Any, List[Dict[str, Any]]] = {}
    for row in current:
        by_day.setdefault(row.get("date"), []).append(row)
    flagged = {a["id"] for a in anomalies}
    for rows in by_day.values():
        if len(rows) >= 3 and sum(as_amount(r) for r in rows) / len(rows) > 50:
            for row in rows[:2]:
                if str(row.get("id", "")) not in flagged:
                    anomalies.append(_anomaly(row, "unusual_timing", "low", 0.0, 0.0))

    anomalies.sort(key=lambda a: _SEVERITY_ORDER[a["severity"]], reverse=True)

    if not anomalies:
        summary = "No se detectaron anomalías. Tus gastos están dentro de lo normal."
    else:
        high = sum(1 for a in anomalies if a["severity"] == "high")
        medium = sum(1 for a in anomalies if a["severity"] == "medium")
        summary = f"Se detectaron {len(anomalies)} anomalía(s)"
        if high:
            summary += f" ({high} de alta severidad)"
        elif medium:
            summary += f" ({medium} de severidad media)"
        summary += ". Revisa los detalles para más información."

    return {"anomalies": anomalies, "summary": summary}


# =============================================================================
# predictMonthlySpending
# =============================================================================


@tool(name="predictMonthlySpending")
async def predict_monthly_spending(
    month: Annotated[Optional[str], "Month in YYYY-MM format (defaults to the current month)"] = None,
    category: Annotated[Optional[CategoryArg], "Only project this category"] = None,
    *,
    context: ToolContext,
) -> Dict[str, Any]:
    """Project end-of-month spending from the pace so far, with a confidence level."""
    store = get_store(context)
    ref = today(context)
    start, end = parse_month(month, ref)
    total_days = (end - start).days + 1
    elapsed = days_elapsed(start, end, ref)

    budgets = await load_budgets(store, context.user_id, start)
    rows = await store.list_expenses(context.user_id, start, end, db_category(category))
    confidence = projection_confidence(elapsed) if rows and elapsed else "low"

    spent = {c: 0.0 for c in CATEGORIES}
    for row in rows:
        key = DB_TO_CATEGORY.get(row.get("category"))
        if key:
            spent[key] += as_amount(row)

    def _projection(amount: float) -> float:
        return money(amount / elapsed * total_days) if elapsed and amount else 0.0

    by_category = []
    for name in ([category] if category else list(CATEGORIES)):
        projected = _projection(spent[name])
        by_category.append({
            "category": name,
            "spentSoFar": money(spent[name]),
            "projectedTotal": projected,
            "budget": money(budgets[name]),
            "projectedOverage": money(max(0.0, projected - budgets[name])),
            "confidence": confidence,
        })

    spent_total = sum(item["spentSoFar"] for item in by_category)
    budget_total = sum(item["budget"] for item in by_category)
    projected_total = _projection(spent_total)
    return {
        "month": start.strftime("%Y-%m"),
        "currentDate": ref.isoformat(),
        "daysElapsed": elapsed,
        "daysRemaining": total_days - elapsed,
        "spentSoFar": money(spent_total),
        "projectedTotal": projected_total,
        "budget": money(budget_total),
        "projectedOverage": money(max(0.0, projected_total - budget_total)),
        "confidence": confidence,
        "byCategory": by_category,
    }


# =============================================================================
# getSpendingTrends
# =============================================================================


@tool(name="getSpendingTrends", default_arguments={"months": 6})
async def get_spending_trends(
    months: Annotated[int, "How many months to include (default 6, max 12)", {"minimum": 2, "maximum": 12}] = 6,
    category: Annotated[Optional[CategoryArg], "Only include this category"] = None,
    *,
    context: ToolContext,
) -> Dict[str, Any]:
    """Show how monthly spending evolved over recent months."""
    store = get_store(context)
    ref = today(context)
    months = max(2, min(int(months), 12))
    first_month = ref.replace(day=1) - relativedelta(months=months - 1)

    rows = await store.list_expenses(context.user_id, first_month, ref, db_category(category))

    totals: "OrderedDict[str, float]" = OrderedDict()
    for i in range(months):
        totals[(first_month + relativedelta(months=i)).strftime("%Y-%m")] = 0.0
    for row in rows:
        day = as_date(row.get("date"))
        if day:
            key = day.strftime("%Y-%m")
            if key in totals:
                totals[key] += as_amount(row)

    series = [{"month": key, "total": money(value)} for key, value in totals.items()]
    trend, trend_pct = calculate_trend(list(totals.values()))
    values = list(totals.values())
    highest = max(series, key=lambda s: s["total"])
    lowest = min(series, key=lambda s: s["total"])
    previous, latest = values[-2], values[-1]

    return {
        "category": category or "all",
        "months": series,
        "average": money(sum(values) / len(values)),
        "trend": trend,
        "trendPercentage": trend_pct,
        "highestMonth": highest,
        "lowestMonth": lowest,
        "changeVsPreviousMonth": round((latest - previous) / previous * 100, 1) if previous else None,
        "note": "El mes actual está en curso" if ref < (ref.replace(day=1) + relativedelta(months=1, days=-1)) else None,
    }


# =============================================================================
# searchExpenses
# =============================================================================


@tool(name="searchExpenses")
async def search_expenses(
    query: Annotated[Optional[str], "Text to look for in the expense concept"] = None,
    category: Annotated[Optional[CategoryArg], "Category filter"] = None,
    minAmount: Annotated[Optional[float], "Minimum amount in euros"] = None,
    maxAmount: Annotated[Optional[float], "Maximum amount in euros"] = None,
    startDate: Annotated[Optional[str], "Start date YYYY-MM-DD"] = None,
    endDate: Annotated[Optional[str], "End date YYYY-MM-DD"] = None,
    limit: Annotated[int, "Max results (default 20)", {"minimum": 1, "maximum": 100}] = 20,
    *,
    context: ToolContext,
) -> Dict[str, Any]:
    """Search individual expenses by text, category, amount range or dates."""
    store = get_store(context)
    start = parse_iso_date(startDate, "startDate")
    end = parse_iso_date(endDate, "endDate")
    if start and end and start > end:
        raise ToolArgumentError("La fecha de inicio no puede ser posterior a la fecha de fin")
    if minAmount is not None and maxAmount is not None and minAmount > maxAmount:
        raise ToolArgumentError("El importe mínimo no puede ser mayor que el máximo")

    limit = max(1, min(int(limit), 100))
    normalized = normalize_query(query)
    excluded = set()
    if normalized:
        feedback = await store.get_search_feedback(context.user_id, normalized)
        excluded = {expense_id for expense_id, kind in feedback.items() if kind == "incorrect"}

    # Over-fetch so results the user rejected do not shrink the page
    rows = await store.search_expenses(
        context.user_id,
        text=(query or "").strip() or None,
        category=db_category(category),
        min_amount=minAmount,
        max_amount=maxAmount,
        start=start,
        end=end,
        limit=limit + len(excluded),
    )
    kept = [r for r in rows if str(r.get("id")) not in excluded]
    results = [_expense_view(r) for r in kept[:limit]]
    return {
        "results": results,
        "count": len(results),
        "totalAmount": money(sum(r["amount"] for r in results)),
        "excludedByFeedback": len(rows) - len(kept),
    }


# =============================================================================
# getCurrentCycle
# =============================================================================


@tool(name="getCurrentCycle")
async def get_current_cycle(*, context: ToolContext) -> Dict[str, Any]:
    """Get the current payment cycle: start and end dates, days elapsed and remaining."""
    store = get_store(context)
    ref = today(context)
    cycle = current_cycle(await store.get_payment_cycle(context.user_id), ref)
    return cycle.to_dict(ref)


READ_TOOLS = [
    analyze_spending_pattern,
    get_budget_status,
    detect_anomalies,
    predict_monthly_spending,
    get_spending_trends,
    search_expenses,
    get_current_cycle,
]
