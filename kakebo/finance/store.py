"""
FinanceStore - Postgres-backed implementation of FinanceStoreProtocol.

Composes the per-table repositories over one shared Database.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

from ..db import Database
from ..errors import NotFoundError
from .repository import (
    BudgetRepository,
    ExpenseRepository,
    IncomeRepository,
    PaymentCycleRepository,
    ScenarioRepository,
    SearchFeedbackRepository,
    SettingsRepository,
)

logger = logging.getLogger(__name__)


class FinanceStore:

    def __init__(self, db: Database):
        self.db = db
        self.expenses = ExpenseRepository(db)
        self.incomes = IncomeRepository(db)
        self.budgets = BudgetRepository(db)
        self.settings = SettingsRepository(db)
        self.payment_cycles = PaymentCycleRepository(db)
        self.scenarios = ScenarioRepository(db)
        self.search_feedback = SearchFeedbackRepository(db)

    def _transactions(self, kind: str):
        return self.incomes if kind == "income" else self.expenses

    async def insert_transaction(
        self,
        user_id: str,
        kind: str,
        amount: float,
        note: str,
        category: str,
        on_date: date,
    ) -> Dict[str, Any]:
        return await self._transactions(kind).add(user_id, amount, note, category, on_date)

    async def update_transaction(
        self,
        user_id: str,
        kind: str,
        transaction_id: str,
        updates: Dict[str, Any],
    ) -> Dict[str, Any]:
        row = await self._transactions(kind).update(user_id, transaction_id, updates)
        if row is None:
            raise NotFoundError(
                f"{kind} {transaction_id} not found for user {user_id}",
                user_message="No se encontró la transacción o no tienes permiso para modificarla",
            )
        return row

    async def list_expenses(
        self,
        user_id: str,
        start: date,
        end: date,
        category: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        return await self.expenses.in_range(user_id, start, end, category)

    async def search_expenses(
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
        return await self.expenses.search(
            user_id, text, category, min_amount, max_amount, start, end, limit
        )

    async def get_settings(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.settings.get(user_id)

    async def get_payment_cycle(self, user_id: str) -> Optional[Dict[str, Any]]:
        return await self.payment_cycles.get(user_id)

    async def get_cycle_budget(self, user_id: str, cycle_start: date) -> Optional[Dict[str, Any]]:
        return await self.budgets.get_for_cycle(user_id, cycle_start)

    async def upsert_cycle_budget(
        self,
        user_id: str,
        cycle_start: date,
        cycle_end: date,
        budgets: Dict[str, float],
    ) -> Dict[str, Any]:
        return await self.budgets.upsert(user_id, cycle_start, cycle_end, budgets)

    async def insert_scenario(self, user_id: str, scenario: Dict[str, Any]) -> Dict[str, Any]:
        return await self.scenarios.add(user_id, scenario)

    async def list_expense_history(self, user_id: str) -> List[Dict[str, Any]]:
        return await self.expenses.history(user_id)

    async def upsert_search_feedback(
        self, user_id: str, query: str, feedback: Dict[str, str]
    ) -> int:
        return await self.search_feedback.upsert_many(user_id, query, feedback)

    async def get_search_feedback(self, user_id: str, query: str) -> Dict[str, str]:
        return await self.search_feedback.for_query(user_id, query)
