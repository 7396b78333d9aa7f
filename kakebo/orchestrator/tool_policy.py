"""
Tool-call policy for function-calling resolution.

Applied to the model's tool calls after unknown names are dropped:

1. **Limit** -- keep at most ``max_tools_per_call`` calls, in model order.
2. **Forbidden combinations** -- if two tools of a forbidden pair are both
   requested, the later call is dropped.
3. **Companion hints** -- tools that are usually paired; a missing
   companion is only logged.

Usage::

    policy = ToolCallPolicy(max_tools_per_call=3)
    calls = policy.apply(calls)
"""

import logging
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from ..models import ToolCallRequest

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOOLS_PER_CALL = 3

# At most one tool of each pair runs per turn
DEFAULT_FORBIDDEN_COMBINATIONS: List[FrozenSet[str]] = [
    frozenset({"predictMonthlySpending", "getSpendingTrends"}),
]

DEFAULT_COMPANION_HINTS: Dict[str, str] = {
    "predictMonthlySpending": "getBudgetStatus",
}


class ToolCallPolicy:
    """Limits and combination rules for one resolved batch."""

    def __init__(
        self,
        max_tools_per_call: int = DEFAULT_MAX_TOOLS_PER_CALL,
        forbidden_combinations: Optional[Iterable[Iterable[str]]] = None,
        companion_hints: Optional[Dict[str, str]] = None,
    ) -> None:
        if max_tools_per_call < 1:
            raise ValueError("max_tools_per_call must be at least 1")
        self.max_tools_per_call = max_tools_per_call
        self.forbidden_combinations: List[FrozenSet[str]] = (
            [frozenset(combo) for combo in forbidden_combinations]
            if forbidden_combinations is not None
            else list(DEFAULT_FORBIDDEN_COMBINATIONS)
        )
        self.companion_hints = (
            dict(companion_hints) if companion_hints is not None else dict(DEFAULT_COMPANION_HINTS)
        )

    def apply(self, calls: List[ToolCallRequest]) -> List[ToolCallRequest]:
        kept = self._limit(calls)
        kept = self._drop_forbidden(kept)
        self._check_companions(kept)
        return kept

    def _limit(self, calls: List[ToolCallRequest]) -> List[ToolCallRequest]:
        if len(calls) <= self.max_tools_per_call:
            return list(calls)
        dropped = [c.tool_name for c in calls[self.max_tools_per_call:]]
        logger.warning(
            f"[ToolCallPolicy] {len(calls)} tool calls exceed the limit of "
            f"{self.max_tools_per_call}; dropping {dropped}"
        )
        return list(calls[: self.max_tools_per_call])

    def _drop_forbidden(self, calls: List[ToolCallRequest]) -> List[ToolCallRequest]:
        kept: List[ToolCallRequest] = []
        names: Set[str] = set()
        for call in calls:
            clash = self._forbidden_partner(call.tool_name, names)
            if clash is not None:
                logger.warning(
                    f"[ToolCallPolicy] '{call.tool_name}' cannot run with '{clash}' "
                    f"in the same turn; dropping it"
                )
                continue
            kept.append(call)
            names.add(call.tool_name)
        return kept

    def _forbidden_partner(self, name: str, present: Set[str]) -> Optional[str]:
        for combo in self.forbidden_combinations:
            if name not in combo:
                continue
            for other in combo - {name}:
                if other in present:
                    return other
        return None

    def _check_companions(self, calls: List[ToolCallRequest]) -> None:
        names = {c.tool_name for c in calls}
        for name in names:
            companion = self.companion_hints.get(name)
            if companion and companion not in names:
                logger.warning(
                    f"[ToolCallPolicy] '{name}' usually runs with '{companion}', "
                    f"which was not requested"
                )
