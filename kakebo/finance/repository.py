"""
Finance repositories - one per Kakebo table.

Amounts come back from asyncpg as Decimal; the tools convert them.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from ..db import Repository

logger = logging.getLogger(__name__)


class TransactionRepository(Repository):
    """expenses / incomes share the same shape: amount, note, category, date."""

    async def add(
        self,
        user_id: str,
        amount: float,
        note: str,
        category: str,
        on_date: date,
    ) -> Dict[str, Any]:
        return await self._insert({
            "user_id": user_id,
            "amount": amount,
            "note": note,
            "category": category,
            "date": on_date,
        })

    async def update(
        self, user_id: str, transaction_id: str, updates: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        return await self._update_owned(user_id, transaction_id, updates)

    async def in_range(
        self,
        user_id: str,
        start: date,
        end: date,
        category: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        where = "date >= $2 AND date <= $3"
        args: List[Any] = [start, end]
        if category is not None:
            where += " AND category = $4"
            args.append(category)
        return await self._fetch_owned(user_id, where, tuple(args), order_by="date ASC")

    async def search(
        self,
        user_id: str,
        text: Optional[str] = None,
        category: Optional[str] = None,
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
        limit: int = 20,
    ) -> List[Dict[str, Any]]:
        """Filtered lookup, newest first."""
        conditions = []
        args: List[Any] = []
        idx = 2

        if text:
            conditions.append(f"note ILIKE ${idx}")
            args.append(f"%{text}%")
            idx += 1
        if category is not None:
            conditions.append(f"category = ${idx}")
            args.append(category)
            idx += 1
        if min_amount is not None:
            conditions.append(f"amount >= ${idx}")
            args.append(min_amount)
            idx += 1
        if max_amount is not None:
            conditions.append(f"amount <= ${idx}")
            args.append(max_amount)
            idx += 1
        if start is not None:
            conditions.append(f"date >= ${idx}")
            args.append(start)
            idx += 1
        if end is not None:
            conditions.append(f"date <= ${idx}")
            args.append(end)
            idx += 1

        return await self._fetch_owned(
            user_id,
            " AND ".join(conditions),
            tuple(args),
            order_by="date DESC, amount DESC",
            limit=limit,
        )


class ExpenseRepository(TransactionRepository):
    TABLE_NAME = "expenses"

    async def history(self, user_id: str) -> List[Dict[str, Any]]:
        rows = await self._db.fetch(
            "SELECT date, category FROM expenses WHERE user_id = $1 ORDER BY date ASC",
            user_id,
        )
        return [dict(r) for r in rows]


class IncomeRepository(TransactionRepository):
    TABLE_NAME = "incomes"


class BudgetRepository(Repository):
    TABLE_NAME = "cycle_budgets"

    async def get_for_cycle(self, user_id: str, cycle_start: date) -> Optional[Dict[str, Any]]:
        return await self._fetch_one_owned(user_id, "cycle_start = $2", (cycle_start,))

    async def upsert(
        self,
        user_id: str,
        cycle_start: date,
        cycle_end: date,
        budgets: Dict[str, float],
    ) -> Dict[str, Any]:
        """Set the given budget columns; columns not given keep their value (0 on insert)."""
        columns = list(budgets.keys())
        placeholders = [f"${i + 4}" for i in range(len(columns))]
        updates = [f"{column} = EXCLUDED.{column}" for column in columns]
        updates.append("cycle_end = EXCLUDED.cycle_end")
        row = await self._db.fetchrow(
            f"INSERT INTO cycle_budgets (user_id, cycle_start, cycle_end, {', '.join(columns)}) "
            f"VALUES ($1, $2, $3, {', '.join(placeholders)}) "
            f"ON CONFLICT (user_id, cycle_start) "
            f"DO UPDATE SET {', '.join(updates)} "
            f"RETURNING *",
            user_id,
            cycle_start,
            cycle_end,
            *budgets.values(),
        )
        return dict(row)


class SettingsRepository(Repository):
    TABLE_NAME = "user_settings"

    async def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._fetch_one_owned(user_id)


class PaymentCycleRepository(Repository):
    TABLE_NAME = "payment_cycles"

    async def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self._fetch_one_owned(user_id)


class ScenarioRepository(Repository):
    TABLE_NAME = "scenarios"

    async def add(self, user_id: str, scenario: Dict[str, Any]) -> Dict[str, Any]:
        return await self._insert({"user_id": user_id, **scenario})


class SearchFeedbackRepository(Repository):
    """User corrections to search results: expense X does / does not match query Q."""

    TABLE_NAME = "search_feedback"

    async def upsert_many(self, user_id: str, query: str, feedback: Dict[str, str]) -> int:
        """Insert or overwrite one row per expense id; returns the rows written."""
        if not feedback:
            return 0
        rows = await self._db.fetch(
            "INSERT INTO search_feedback (user_id, query, expense_id, feedback_type) "
            "SELECT $1, $2, f.expense_id, f.feedback_type "
            "FROM unnest($3::text[], $4::text[]) AS f(expense_id, feedback_type) "
            "ON CONFLICT (user_id, query, expense_id) "
            "DO UPDATE SET feedback_type = EXCLUDED.feedback_type, updated_at = NOW() "
            "RETURNING expense_id",
            user_id,
            query,
            list(feedback.keys()),
            list(feedback.values()),
        )
        return len(rows)

    async def for_query(self, user_id: str, query: str) -> Dict[str, str]:
        rows = await self._fetch_owned(user_id, "query = $2", (query,))
        return {row["expense_id"]: row["feedback_type"] for row in rows}
