"""Shared fixtures: a scripted LLM client and an in-memory finance store."""

import re
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

import pytest

from kakebo.errors import NotFoundError
from kakebo.finance import build_registry
from kakebo.llm.base import LLMResponse, StopReason, StreamChunk, ToolCall, Usage
from kakebo.models import ToolContext

USER_ID = "user-1"
OTHER_USER_ID = "user-2"
TODAY = date(2026, 3, 15)


# ---------------------------------------------------------------------------
# Scripted LLM client
# ---------------------------------------------------------------------------

def text_response(content: str, prompt_tokens: int = 10, completion_tokens: int = 5) -> LLMResponse:
    return LLMResponse(
        content=content,
        usage=Usage(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
        ),
        model="fake-model",
    )


def tool_response(*calls: Tuple[str, Dict[str, Any]], content: str = "") -> LLMResponse:
    """Function-calling response requesting the given (name, arguments) calls."""
    return LLMResponse(
        content=content,
        tool_calls=[
            ToolCall(id=f"call_{i}", name=name, arguments=dict(arguments))
            for i, (name, arguments) in enumerate(calls)
        ],
        stop_reason=StopReason.TOOL_USE,
        usage=Usage(prompt_tokens=20, completion_tokens=8, total_tokens=28),
        model="fake-model",
    )


def _pieces(content: str) -> List[str]:
    """Split text into word-sized pieces that join back to the original."""
    return re.findall(r"\S+\s*|\s+", content) if content else []


class FakeLLMClient:
    """
    Replays scripted responses in order.

    ``chat_completion`` and ``stream_completion`` pop from the same queue, so
    one script drives a turn in either mode. Streaming splits the scripted
    content into word pieces and reports usage on a final empty chunk.
    Queue items that are exceptions are raised instead.
    """

    model_name = "fake-model"

    def __init__(self, responses: Optional[List[Any]] = None):
        self.responses: List[Any] = list(responses or [])
        self.calls: List[Dict[str, Any]] = []

    def queue(self, *responses: Any) -> "FakeLLMClient":
        self.responses.extend(responses)
        return self

    def _next(self) -> LLMResponse:
        if not self.responses:
            return text_response("Respuesta por defecto.")
        item = self.responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, str):
            return text_response(item)
        return item

    async def chat_completion(self, messages, tools=None, config=None):
        self.calls.append({"mode": "chat", "messages": messages, "tools": tools, "config": config})
        return self._next()

    async def stream_completion(self, messages, tools=None, config=None):
        self.calls.append({"mode": "stream", "messages": messages, "tools": tools, "config": config})
        response = self._next()
        for piece in _pieces(response.content):
            yield StreamChunk(content=piece, model=response.model)
        yield StreamChunk(content="", is_final=True, usage=response.usage, model=response.model)

    @property
    def call_count(self) -> int:
        return len(self.calls)


# ---------------------------------------------------------------------------
# In-memory finance store
# ---------------------------------------------------------------------------

class InMemoryFinanceStore:
    """FinanceStoreProtocol over plain dicts. Every query filters by user_id."""

    def __init__(self):
        self.expenses: List[Dict[str, Any]] = []
        self.incomes: List[Dict[str, Any]] = []
        self.settings: Dict[str, Dict[str, Any]] = {}
        self.payment_cycles: Dict[str, Dict[str, Any]] = {}
        self.cycle_budgets: Dict[Tuple[str, date], Dict[str, Any]] = {}
        self.scenarios: List[Dict[str, Any]] = []
        self.search_feedback: Dict[Tuple[str, str, str], str] = {}
        self.writes = 0
        self._next_id = 0

    def _new_id(self, prefix: str) -> str:
        self._next_id += 1
        return f"{prefix}-{self._next_id}"

    # -- seeding helpers --

    def add_expense(
        self,
        amount: float,
        note: str,
        category: str,
        on_date: date,
        user_id: str = USER_ID,
    ) -> Dict[str, Any]:
        row = {
            "id": self._new_id("exp"),
            "user_id": user_id,
            "amount": amount,
            "note": note,
            "category": category,
            "date": on_date,
        }
        self.expenses.append(row)
        return row

    def set_budgets(
        self,
        user_id: str = USER_ID,
        survival: float = 500,
        optional: float = 200,
        culture: float = 100,
        extra: float = 100,
        **extra_settings: Any,
    ) -> None:
        self.settings[user_id] = {
            "user_id": user_id,
            "budget_supervivencia": survival,
            "budget_opcional": optional,
            "budget_cultura": culture,
            "budget_extra": extra,
            **extra_settings,
        }

    # -- protocol --

    def _table(self, kind: str) -> List[Dict[str, Any]]:
        return self.incomes if kind == "income" else self.expenses

    async def insert_transaction(self, user_id, kind, amount, note, category, on_date):
        self.writes += 1
        row = {
            "id": self._new_id("inc" if kind == "income" else "exp"),
            "user_id": user_id,
            "amount": amount,
            "note": note,
            "category": category,
            "date": on_date,
        }
        self._table(kind).append(row)
        return dict(row)

    async def update_transaction(self, user_id, kind, transaction_id, updates):
        for row in self._table(kind):
            if row["id"] == transaction_id and row["user_id"] == user_id:
                self.writes += 1
                row.update(updates)
                return dict(row)
        raise NotFoundError(
            f"{kind} {transaction_id} not found for user {user_id}",
            user_message="No se encontró la transacción o no tienes permiso para modificarla",
        )

    async def list_expenses(self, user_id, start, end, category=None):
        rows = [
            dict(r) for r in self.expenses
            if r["user_id"] == user_id
            and start <= r["date"] <= end
            and (category is None or r["category"] == category)
        ]
        return sorted(rows, key=lambda r: r["date"])

    async def list_expense_history(self, user_id):
        rows = [
            {"date": r["date"], "category": r["category"]}
            for r in self.expenses if r["user_id"] == user_id
        ]
        return sorted(rows, key=lambda r: r["date"])

    async def search_expenses(
        self,
        user_id,
        text=None,
        category=None,
        min_amount=None,
        max_amount=None,
        start=None,
        end=None,
        limit=20,
    ):
        rows = []
        for r in self.expenses:
            if r["user_id"] != user_id:
                continue
            if text and text.lower() not in (r["note"] or "").lower():
                continue
            if category is not None and r["category"] != category:
                continue
            if min_amount is not None and r["amount"] < min_amount:
                continue
            if max_amount is not None and r["amount"] > max_amount:
                continue
            if start is not None and r["date"] < start:
                continue
            if end is not None and r["date"] > end:
                continue
            rows.append(dict(r))
        rows.sort(key=lambda r: (r["date"], r["amount"]), reverse=True)
        return rows[:limit]

    async def get_settings(self, user_id):
        return self.settings.get(user_id)

    async def get_payment_cycle(self, user_id):
        return self.payment_cycles.get(user_id)

    async def get_cycle_budget(self, user_id, cycle_start):
        return self.cycle_budgets.get((user_id, cycle_start))

    async def upsert_cycle_budget(self, user_id, cycle_start, cycle_end, budgets):
        self.writes += 1
        row = self.cycle_budgets.setdefault((user_id, cycle_start), {
            "user_id": user_id,
            "cycle_start": cycle_start,
            "budget_supervivencia": 0,
            "budget_opcional": 0,
            "budget_cultura": 0,
            "budget_extra": 0,
        })
        row["cycle_end"] = cycle_end
        row.update(budgets)
        return dict(row)

    async def insert_scenario(self, user_id, scenario):
        self.writes += 1
        row = {"id": self._new_id("scn"), "user_id": user_id, **scenario}
        self.scenarios.append(row)
        return dict(row)

    async def upsert_search_feedback(self, user_id, query, feedback):
        self.writes += 1
        for expense_id, feedback_type in feedback.items():
            self.search_feedback[(user_id, query, expense_id)] = feedback_type
        return len(feedback)

    async def get_search_feedback(self, user_id, query):
        return {
            expense_id: feedback_type
            for (owner, q, expense_id), feedback_type in self.search_feedback.items()
            if owner == user_id and q == query
        }


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def store():
    store = InMemoryFinanceStore()
    store.set_budgets()
    return store


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def tool_context(store):
    return ToolContext(data_store=store, user_id=USER_ID, metadata={"today": TODAY})
