"""
User context - how much expense history backs the user's questions.

The disclaimer built here is injected as a system message so the model
hedges on patterns, trends and projections for new or sparse users.
"""

import logging
import time
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional, Tuple

from ..protocols import FinanceStoreProtocol
from .analysis import as_date

logger = logging.getLogger(__name__)

NEW_USER_DAYS = 30
LIMITED_HISTORY_DAYS = 90
DEFAULT_CACHE_TTL = 300.0

QUALITY_EXCELLENT = "excellent"
QUALITY_GOOD = "good"
QUALITY_FAIR = "fair"
QUALITY_POOR = "poor"

# (min transactions, min days, grade), best first
_QUALITY_TIERS = (
    (100, 90, QUALITY_EXCELLENT),
    (50, 60, QUALITY_GOOD),
    (20, 30, QUALITY_FAIR),
)


@dataclass
class UserContext:
    is_new_user: bool = True
    has_limited_history: bool = True
    days_since_first_expense: int = 0
    total_transactions: int = 0
    transactions_by_category: Dict[str, int] = field(default_factory=dict)
    data_quality: str = QUALITY_POOR
    recommended_actions: List[str] = field(default_factory=list)
    first_expense_date: Optional[date] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isNewUser": self.is_new_user,
            "hasLimitedHistory": self.has_limited_history,
            "daysSinceFirstExpense": self.days_since_first_expense,
            "totalTransactions": self.total_transactions,
            "transactionsByCategory": dict(self.transactions_by_category),
            "dataQuality": self.data_quality,
            "recommendedActions": list(self.recommended_actions),
            "firstExpenseDate": self.first_expense_date.isoformat() if self.first_expense_date else None,
        }


def empty_context() -> UserContext:
    """Context for a user without expenses (or whose history could not be read)."""
    return UserContext(recommended_actions=[
        "Empieza registrando tus gastos diarios",
        "Define un presupuesto mensual para cada categoría",
    ])


def assess_data_quality(transactions: int, days: int) -> str:
    for min_transactions, min_days, grade in _QUALITY_TIERS:
        if transactions >= min_transactions and days >= min_days:
            return grade
    return QUALITY_POOR


def _recommended_actions(is_new_user: bool, total: int, by_category: Dict[str, int]) -> List[str]:
    actions = []
    if is_new_user:
        actions.append("Sigue registrando gastos a diario para obtener análisis más precisos")
    if total < 50:
        actions.append("Más historial mejorará la detección de anomalías y el análisis de tendencias")
    if len(by_category) < 3:
        actions.append("Reparte tus gastos entre las 4 categorías para obtener mejores análisis")
    return actions


async def analyze_user_context(
    store: FinanceStoreProtocol, user_id: str, today: date
) -> UserContext:
    """Grade the user's expense history. Store failures give the empty context."""
    try:
        rows = await store.list_expense_history(user_id)
    except Exception as e:
        logger.warning(f"[UserContext] Could not read history for user {user_id}: {e}")
        return empty_context()

    dates = [d for d in (as_date(row.get("date")) for row in rows) if d is not None]
    if not dates:
        return empty_context()

    first = min(dates)
    days = max(0, (today - first).days)
    by_category: Dict[str, int] = {}
    for row in rows:
        category = row.get("category") or "extra"
        by_category[category] = by_category.get(category, 0) + 1

    total = len(rows)
    is_new_user = days < NEW_USER_DAYS
    context = UserContext(
        is_new_user=is_new_user,
        has_limited_history=days < LIMITED_HISTORY_DAYS,
        days_since_first_expense=days,
        total_transactions=total,
        transactions_by_category=by_category,
        data_quality=assess_data_quality(total, days),
        recommended_actions=_recommended_actions(is_new_user, total, by_category),
        first_expense_date=first,
    )
    logger.debug(
        f"[UserContext] user={user_id} days={days} transactions={total} "
        f"quality={context.data_quality}"
    )
    return context


def context_disclaimer(context: UserContext) -> str:
    """System-message text telling the model how far the user's data goes."""
    days = context.days_since_first_expense
    total = context.total_transactions

    if context.is_new_user:
        return (
            f"IMPORTANTE - USUARIO NUEVO: Este usuario empezó hace {days} días con "
            f"{total} transacciones. Tienes MUY POCO HISTÓRICO.\n\n"
            "RESTRICCIONES OBLIGATORIAS:\n"
            "- NO hagas comparaciones con \"patrones habituales\" (no existen aún)\n"
            "- NO hagas proyecciones a largo plazo\n"
            "- NO detectes \"anomalías\" (no hay baseline)\n"
            "- NO analices \"tendencias\" (insuficiente histórico)\n"
            "- SÍ reconoce explícitamente: \"Como empezaste hace poco, aún no tengo "
            "suficiente histórico\"\n"
            "- SÍ limita respuestas a datos del período actual solamente\n\n"
            f"Calidad de datos: {context.data_quality}"
        )

    if context.has_limited_history:
        return (
            f"CONTEXTO - HISTÓRICO LIMITADO: Este usuario tiene {days} días de histórico "
            f"({total} transacciones).\n\n"
            "PRECAUCIONES:\n"
            "- Menciona limitaciones si el análisis requiere más histórico\n"
            "- Proyecciones de largo plazo tienen baja confianza\n"
            "- Comparaciones temporales limitadas al período disponible\n\n"
            f"Calidad de datos: {context.data_quality}"
        )

    return (
        f"CONTEXTO: Usuario con {days} días de histórico ({total} transacciones). "
        f"Calidad de datos: {context.data_quality}. "
        "Histórico suficiente para análisis completos."
    )


class UserContextCache:
    """
    Per-user UserContext cache with a time-to-live.

    Usage:
        cache = UserContextCache(ttl=300)
        context = await cache.get(store, user_id, today)
        cache.invalidate(user_id)   # after the user writes new data
    """

    def __init__(self, ttl: float = DEFAULT_CACHE_TTL):
        self.ttl = ttl
        self._entries: Dict[Tuple[str, date], Tuple[float, UserContext]] = {}

    async def get(self, store: FinanceStoreProtocol, user_id: str, today: date) -> UserContext:
        key = (user_id, today)
        now = time.monotonic()
        cached = self._entries.get(key)
        if cached is not None and now - cached[0] < self.ttl:
            return cached[1]

        context = await analyze_user_context(store, user_id, today)
        self._entries[key] = (now, context)
        return context

    def invalidate(self, user_id: str) -> None:
        for key in [k for k in self._entries if k[0] == user_id]:
            del self._entries[key]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
