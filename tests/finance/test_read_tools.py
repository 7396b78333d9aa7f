"""Tests for the finance read tools, run through the registry executors."""

from datetime import date, timedelta

import pytest

from conftest import OTHER_USER_ID, TODAY, USER_ID
from kakebo.errors import NotFoundError, ToolArgumentError
from kakebo.models import ToolContext


async def run(registry, name, args, context):
    return await registry.get_tool(name).executor(args, context)


@pytest.fixture
def march(store):
    """Three expenses of user-1 in March plus one of another user."""
    store.add_expense(40, "Mercadona", "supervivencia", date(2026, 3, 2))
    store.add_expense(60, "Cine", "opcional", date(2026, 3, 5))
    store.add_expense(100, "Lidl", "supervivencia", date(2026, 3, 10))
    store.add_expense(999, "Mercadona", "supervivencia", date(2026, 3, 3), user_id=OTHER_USER_ID)
    return store


class TestReadToolsNeverWrite:

    def test_no_read_tool_requires_confirmation(self, registry):
        for name in ("analyzeSpendingPattern", "getBudgetStatus", "detectAnomalies",
                     "predictMonthlySpending", "getSpendingTrends", "searchExpenses",
                     "getCurrentCycle"):
            assert registry.requires_confirmation(name) is False


class TestAnalyzeSpendingPattern:

    @pytest.mark.asyncio
    async def test_current_month_totals(self, registry, march, tool_context):
        result = await run(registry, "analyzeSpendingPattern", {}, tool_context)
        assert result["transactionCount"] == 3
        assert result["totalAmount"] == 200.0
        assert result["startDate"] == "2026-03-01"
        assert result["endDate"] == "2026-03-15"
        assert result["topExpenses"][0]["concept"] == "Lidl"
        assert result["topExpenses"][0]["category"] == "survival"
        assert result["trend"] == "increasing"

    @pytest.mark.asyncio
    async def test_category_filter(self, registry, march, tool_context):
        result = await run(registry, "analyzeSpendingPattern", {"category": "survival"}, tool_context)
        assert result["totalAmount"] == 140.0

    @pytest.mark.asyncio
    async def test_semantic_filter(self, registry, march, tool_context):
        result = await run(
            registry, "analyzeSpendingPattern", {"semanticFilter": "comida"}, tool_context
        )
        assert result["semanticFilter"] == "comida"
        assert {e["concept"] for e in result["topExpenses"]} == {"Mercadona", "Lidl"}

    @pytest.mark.asyncio
    async def test_limit(self, registry, march, tool_context):
        result = await run(registry, "analyzeSpendingPattern", {"limit": 1}, tool_context)
        assert len(result["topExpenses"]) == 1

    @pytest.mark.asyncio
    async def test_empty_period(self, registry, march, tool_context):
        result = await run(registry, "analyzeSpendingPattern", {"period": "last_month"}, tool_context)
        assert result["transactionCount"] == 0
        assert result["insights"] == ["No hay gastos registrados en este período."]

    @pytest.mark.asyncio
    async def test_other_user_sees_only_own_rows(self, registry, march):
        context = ToolContext(data_store=march, user_id=OTHER_USER_ID, metadata={"today": TODAY})
        result = await run(registry, "analyzeSpendingPattern", {}, context)
        assert result["totalAmount"] == 999.0


class TestGetBudgetStatus:

    @pytest.mark.asyncio
    async def test_per_category_report(self, registry, march, tool_context):
        result = await run(registry, "getBudgetStatus", {}, tool_context)
        survival = next(c for c in result["categories"] if c["category"] == "survival")
        assert survival["budget"] == 500.0
        assert survival["spent"] == 140.0
        assert survival["remaining"] == 360.0
        assert survival["percentage"] == 28.0
        assert survival["status"] == "safe"
        assert survival["daysRemaining"] == 16
        assert survival["projectedSpending"] == pytest.approx(289.33)
        assert result["totalBudget"] == 900.0
        assert result["totalSpent"] == 200.0
        assert "monthlyIncome" not in result

    @pytest.mark.asyncio
    async def test_single_category(self, registry, march, tool_context):
        result = await run(registry, "getBudgetStatus", {"category": "optional"}, tool_context)
        assert [c["category"] for c in result["categories"]] == ["optional"]
        assert result["categories"][0]["percentage"] == 30.0

    @pytest.mark.asyncio
    async def test_cycle_budget_overrides_defaults(self, registry, march, tool_context):
        march.cycle_budgets[(USER_ID, date(2026, 3, 1))] = {
            "budget_supervivencia": 100,
            "budget_opcional": 200,
            "budget_cultura": 0,
            "budget_extra": 0,
        }
        result = await run(registry, "getBudgetStatus", {"category": "survival"}, tool_context)
        assert result["categories"][0]["status"] == "exceeded"
        assert result["overallStatus"] == "exceeded"

    @pytest.mark.asyncio
    async def test_income_plan(self, registry, march, tool_context):
        march.set_budgets(monthly_income=2000, fixed_expenses=800, saving_goal=200)
        result = await run(registry, "getBudgetStatus", {}, tool_context)
        assert result["utilizable"] == 1000.0
        assert result["disponibleReal"] == 800.0

    @pytest.mark.asyncio
    async def test_payroll_cycle(self, registry, march, tool_context):
        march.payment_cycles[USER_ID] = {"cycle_type": "payroll", "payroll_day": 25}
        result = await run(registry, "getBudgetStatus", {}, tool_context)
        assert result["periodStart"] == "2026-02-25"
        assert result["periodEnd"] == "2026-03-24"

    @pytest.mark.asyncio
    async def test_no_budgets(self, registry, march):
        context = ToolContext(data_store=march, user_id=OTHER_USER_ID, metadata={"today": TODAY})
        with pytest.raises(NotFoundError):
            await run(registry, "getBudgetStatus", {}, context)

    @pytest.mark.asyncio
    async def test_bad_month(self, registry, march, tool_context):
        with pytest.raises(ToolArgumentError):
            await run(registry, "getBudgetStatus", {"month": "marzo"}, tool_context)


class TestDetectAnomalies:

    @pytest.mark.asyncio
    async def test_nothing_to_analyze(self, registry, store, tool_context):
        result = await run(registry, "detectAnomalies", {}, tool_context)
        assert result["anomalies"] == []
        assert "No hay gastos" in result["summary"]

    @pytest.mark.asyncio
    async def test_needs_history(self, registry, march, tool_context):
        result = await run(registry, "detectAnomalies", {}, tool_context)
        assert result["anomalies"] == []
        assert "Necesitas más histórico" in result["summary"]

    @pytest.mark.asyncio
    async def test_flags_unusually_high_amount(self, registry, store, tool_context):
        for i in range(25):
            store.add_expense(50 if i % 2 else 60, "Súper", "supervivencia",
                              date(2026, 1, 1) + timedelta(days=i * 2))
        store.add_expense(52, "Súper", "supervivencia", date(2026, 3, 9))
        store.add_expense(300, "Compra grande", "supervivencia", date(2026, 3, 10))

        result = await run(registry, "detectAnomalies", {"sensitivity": "medium"}, tool_context)

        assert len(result["anomalies"]) == 1
        anomaly = result["anomalies"][0]
        assert anomaly["concept"] == "Compra grande"
        assert anomaly["reason"] == "unusually_high_amount"
        assert anomaly["severity"] == "high"
        assert "alta severidad" in result["summary"]


class TestPredictMonthlySpending:

    @pytest.mark.asyncio
    async def test_projection(self, registry, march, tool_context):
        result = await run(registry, "predictMonthlySpending", {}, tool_context)
        assert result["month"] == "2026-03"
        assert result["daysElapsed"] == 15
        assert result["daysRemaining"] == 16
        assert result["spentSoFar"] == 200.0
        assert result["projectedTotal"] == pytest.approx(413.33)
        assert result["projectedOverage"] == 0.0
        assert result["confidence"] == "medium"

    @pytest.mark.asyncio
    async def test_no_spending_is_low_confidence(self, registry, store, tool_context):
        result = await run(registry, "predictMonthlySpending", {}, tool_context)
        assert result["projectedTotal"] == 0.0
        assert result["confidence"] == "low"


class TestGetSpendingTrends:

    @pytest.mark.asyncio
    async def test_monthly_series(self, registry, march, tool_context):
        march.add_expense(100, "Súper", "supervivencia", date(2026, 1, 10))
        march.add_expense(200, "Súper", "supervivencia", date(2026, 2, 10))

        result = await run(registry, "getSpendingTrends", {"months": 3}, tool_context)

        assert [m["month"] for m in result["months"]] == ["2026-01", "2026-02", "2026-03"]
        assert [m["total"] for m in result["months"]] == [100.0, 200.0, 200.0]
        assert result["changeVsPreviousMonth"] == 0.0
        assert result["lowestMonth"]["month"] == "2026-01"
        assert result["note"] == "El mes actual está en curso"

    @pytest.mark.asyncio
    async def test_months_clamped(self, registry, store, tool_context):
        result = await run(registry, "getSpendingTrends", {"months": 40}, tool_context)
        assert len(result["months"]) == 12
        assert result["changeVsPreviousMonth"] is None


class TestSearchExpenses:

    @pytest.mark.asyncio
    async def test_text_search(self, registry, march, tool_context):
        result = await run(registry, "searchExpenses", {"query": "mercadona"}, tool_context)
        assert result["count"] == 1
        assert result["totalAmount"] == 40.0

    @pytest.mark.asyncio
    async def test_amount_range(self, registry, march, tool_context):
        result = await run(registry, "searchExpenses", {"minAmount": 50, "maxAmount": 100}, tool_context)
        assert {r["concept"] for r in result["results"]} == {"Cine", "Lidl"}

    @pytest.mark.asyncio
    async def test_inverted_amount_range(self, registry, march, tool_context):
        with pytest.raises(ToolArgumentError):
            await run(registry, "searchExpenses", {"minAmount": 100, "maxAmount": 50}, tool_context)

    @pytest.mark.asyncio
    async def test_inverted_dates(self, registry, march, tool_context):
        with pytest.raises(ToolArgumentError):
            await run(
                registry,
                "searchExpenses",
                {"startDate": "2026-03-10", "endDate": "2026-03-01"},
                tool_context,
            )

    @pytest.mark.asyncio
    async def test_rejected_results_are_hidden(self, registry, march, tool_context):
        march.add_expense(15, "Mercadona parking", "extra", date(2026, 3, 12))
        march.search_feedback[(USER_ID, "mercadona", "exp-5")] = "incorrect"

        result = await run(registry, "searchExpenses", {"query": " Mercadona"}, tool_context)

        assert [r["concept"] for r in result["results"]] == ["Mercadona"]
        assert result["excludedByFeedback"] == 1
        assert result["totalAmount"] == 40.0

    @pytest.mark.asyncio
    async def test_rejections_do_not_shrink_the_page(self, registry, march, tool_context):
        march.add_expense(15, "Mercadona parking", "extra", date(2026, 3, 12))
        march.search_feedback[(USER_ID, "mercadona", "exp-5")] = "incorrect"
        result = await run(registry, "searchExpenses", {"query": "mercadona", "limit": 1}, tool_context)
        assert [r["concept"] for r in result["results"]] == ["Mercadona"]

    @pytest.mark.asyncio
    async def test_other_users_feedback_ignored(self, registry, march, tool_context):
        march.search_feedback[(OTHER_USER_ID, "mercadona", "exp-1")] = "incorrect"
        result = await run(registry, "searchExpenses", {"query": "mercadona"}, tool_context)
        assert result["count"] == 1
        assert result["excludedByFeedback"] == 0


class TestGetCurrentCycle:

    @pytest.mark.asyncio
    async def test_calendar(self, registry, store, tool_context):
        result = await run(registry, "getCurrentCycle", {}, tool_context)
        assert result["cycleType"] == "calendar"
        assert result["cycleStart"] == "2026-03-01"
        assert result["daysRemaining"] == 16

    @pytest.mark.asyncio
    async def test_payroll(self, registry, store, tool_context):
        store.payment_cycles[USER_ID] = {"cycle_type": "payroll", "payroll_day": 25}
        result = await run(registry, "getCurrentCycle", {}, tool_context)
        assert result["cycleType"] == "payroll"
        assert result["cycleStart"] == "2026-02-25"
        assert result["cycleEnd"] == "2026-03-24"
