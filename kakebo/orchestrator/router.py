"""Keyword Router - deterministic intent classification for the router mode.

Each intent maps to at most one read tool. Rules are checked in order and
the first match wins, so "cuánto gasté este mes" is a spending question
and not a prediction.
"""

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

INTENT_ANALYZE_SPENDING = "analyze_spending"
INTENT_CHECK_BUDGET = "check_budget"
INTENT_DETECT_ANOMALIES = "detect_anomalies"
INTENT_PREDICT_SPENDING = "predict_spending"
INTENT_VIEW_TRENDS = "view_trends"
INTENT_GENERAL_QUESTION = "general_question"
INTENT_UNCLEAR = "unclear"

INTENT_TO_TOOL: Dict[str, Optional[str]] = {
    INTENT_ANALYZE_SPENDING: "analyzeSpendingPattern",
    INTENT_CHECK_BUDGET: "getBudgetStatus",
    INTENT_DETECT_ANOMALIES: "detectAnomalies",
    INTENT_PREDICT_SPENDING: "predictMonthlySpending",
    INTENT_VIEW_TRENDS: "getSpendingTrends",
    INTENT_GENERAL_QUESTION: None,
    INTENT_UNCLEAR: None,
}

_RULES: List[Tuple[str, Pattern, float]] = [
    (
        INTENT_ANALYZE_SPENDING,
        re.compile(r"gast|cuanto|cuánto|total|categor[ií]a|comida|cultura|extra|supervivencia"),
        0.6,
    ),
    (
        INTENT_CHECK_BUDGET,
        re.compile(r"presupuesto|budget|c[oó]mo va|how.*budget|voy|avanzar|progreso"),
        0.6,
    ),
    (
        INTENT_DETECT_ANOMALIES,
        re.compile(r"anomal[ií]a|raro|extraño|anormal|unusual|detect|an[oó]malo|anomaly"),
        0.6,
    ),
    (
        INTENT_PREDICT_SPENDING,
        re.compile(r"predic|pr[oó]ximo|siguiente|futuro|mes|month|forecast"),
        0.6,
    ),
    (
        INTENT_VIEW_TRENDS,
        re.compile(r"trend|tendencia|evoluci[oó]n|hist[oó]r|cambio|evolucionar"),
        0.6,
    ),
    (
        INTENT_GENERAL_QUESTION,
        re.compile(r"c[oó]mo|cu[aá]l|qu[eé]|ayuda|help|consejo"),
        0.5,
    ),
]


@dataclass
class IntentClassification:
    """Result of keyword classification."""

    intent: str
    confidence: float
    reasoning: str

    @property
    def tool_name(self) -> Optional[str]:
        return INTENT_TO_TOOL.get(self.intent)


class KeywordRouter:
    """Classifies a message with ordered regex rules."""

    def classify(self, message: str) -> IntentClassification:
        text = (message or "").lower()
        for intent, pattern, confidence in _RULES:
            match = pattern.search(text)
            if match:
                logger.debug(f"[KeywordRouter] '{match.group(0)}' -> {intent}")
                return IntentClassification(
                    intent=intent,
                    confidence=confidence,
                    reasoning=f"Matched keyword '{match.group(0)}'",
                )
        return IntentClassification(
            intent=INTENT_UNCLEAR,
            confidence=0.3,
            reasoning="Unable to match to any intent",
        )

    def tools_for(self, message: str) -> List[str]:
        """Zero or one tool name for *message*."""
        tool_name = self.classify(message).tool_name
        return [tool_name] if tool_name else []
