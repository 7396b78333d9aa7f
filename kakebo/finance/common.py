"""Context accessors shared by the finance tools."""

from datetime import date
from typing import Any, Dict, Optional

from ..errors import NotFoundError, ToolArgumentError
from ..models import ToolContext
from ..protocols import FinanceStoreProtocol
from .constants import BUDGET_COLUMNS, CATEGORIES, CATEGORY_TO_DB


def get_store(context: ToolContext) -> FinanceStoreProtocol:
    if context.data_store is None:
        raise RuntimeError("No data store bound to the tool context")
    if not context.user_id:
        raise RuntimeError("No user bound to the tool context")
    return context.data_store


def today(context: ToolContext) -> date:
    """Reference date for relative periods (``metadata["today"]`` overrides)."""
    value = context.metadata.get("today")
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    return date.today()


def db_category(category: Optional[str], allow_all: bool = True) -> Optional[str]:
    """English tool category -> stored Spanish name (None for "all"/unset)."""
    if category is None or (allow_all and category == "all"):
        return None
    if category not in CATEGORY_TO_DB:
        raise ToolArgumentError(
            f"Categoría inválida '{category}': usa survival, optional, culture o extra"
        )
    return CATEGORY_TO_DB[category]


async def load_budgets(
    store: FinanceStoreProtocol, user_id: str, cycle_start: date
) -> Dict[str, float]:
    """Per-category budget for a cycle, falling back to the user's defaults."""
    row: Optional[Dict[str, Any]] = await store.get_cycle_budget(user_id, cycle_start)
    if row is None:
        row = await store.get_settings(user_id)
    if row is None:
        raise NotFoundError(f"No budgets configured for user {user_id}")
    return {category: float(row.get(BUDGET_COLUMNS[category]) or 0) for category in CATEGORIES}


def normalize_query(query: Optional[str]) -> str:
    """Search text as stored with feedback: trimmed and lower-cased."""
    return (query or "").strip().lower()
