"""
Kakebo Protocols - Abstract interfaces for the external collaborators

The orchestrator only depends on these contracts: an LLM client and a
finance data store. Concrete implementations live in ``kakebo.llm`` and
``kakebo.finance.store``.
"""

from datetime import date
from typing import Any, AsyncIterator, Dict, List, Optional, Protocol, runtime_checkable


@runtime_checkable
class LLMClientProtocol(Protocol):
    """
    Abstract interface for LLM clients

    Both call shapes must report token usage on the response (or on the
    final stream chunk) so the MetricsAccountant can charge the turn.
    """

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Plain or function-calling completion.

        Returns:
            LLMResponse-like object with content, tool_calls, usage, model
        """
        ...

    def stream_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        config: Optional[Dict[str, Any]] = None,
    ) -> AsyncIterator[Any]:
        """Streaming completion yielding StreamChunk-like objects."""
        ...


@runtime_checkable
class FinanceStoreProtocol(Protocol):
    """
    Abstract interface for the per-user financial data store.

    Every method takes ``user_id`` and must apply it as a filter. Missing
    rows on update raise ``kakebo.errors.NotFoundError``.
    """

    async def insert_transaction(
        self,
        user_id: str,
        kind: str,
        amount: float,
        note: str,
        category: str,
        on_date: date,
    ) -> Dict[str, Any]:
        ...

    async def update_transaction(
        self,
        user_id: str,
        kind: str,
        transaction_id: str,
        updates: Dict[str, Any],
    ) -> Dict[str, Any]:
        ...

    async def list_expenses(
        self,
        user_id: str,
        start: date,
        end: date,
        category: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        ...

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
        ...

    async def get_settings(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def get_payment_cycle(self, user_id: str) -> Optional[Dict[str, Any]]:
        ...

    async def get_cycle_budget(self, user_id: str, cycle_start: date) -> Optional[Dict[str, Any]]:
        ...

    async def upsert_cycle_budget(
        self,
        user_id: str,
        cycle_start: date,
        cycle_end: date,
        budgets: Dict[str, float],
    ) -> Dict[str, Any]:
        ...

    async def insert_scenario(self, user_id: str, scenario: Dict[str, Any]) -> Dict[str, Any]:
        ...

    async def list_expense_history(self, user_id: str) -> List[Dict[str, Any]]:
        """``date`` and ``category`` of every expense, oldest first."""
        ...

    async def upsert_search_feedback(
        self, user_id: str, query: str, feedback: Dict[str, str]
    ) -> int:
        """Store ``{expense_id: "correct" | "incorrect"}`` for a normalized query."""
        ...

    async def get_search_feedback(self, user_id: str, query: str) -> Dict[str, str]:
        ...
