"""
Metrics Accountant - per-turn token, cost, latency and tool accounting

One accountant is created per turn. Every model call of the turn is
recorded, so the totals are sums across the resolver and the synthesizer.
"""

import logging
import time
from typing import Any, Optional

from ..models import TurnMetrics

logger = logging.getLogger(__name__)


class MetricsAccountant:
    """
    Accumulates usage for one turn.

    Usage:
        accountant = MetricsAccountant(model="gpt-4o-mini")
        accountant.record_usage(response.usage)
        accountant.record_tools(2)
        metrics = accountant.finalize()
    """

    def __init__(self, model: str, started_at: Optional[float] = None):
        self.model = model
        self._started_at = started_at if started_at is not None else time.monotonic()
        self.input_tokens = 0
        self.output_tokens = 0
        self.cost_usd = 0.0
        self.tool_calls = 0
        self.model_calls = 0

    def record_usage(self, usage: Any) -> None:
        """Add one model call. ``usage`` may be None when the provider sent none."""
        self.model_calls += 1
        if usage is None:
            return
        self.input_tokens += int(getattr(usage, "prompt_tokens", 0) or 0)
        self.output_tokens += int(getattr(usage, "completion_tokens", 0) or 0)
        cost = getattr(usage, "cost", None)
        if cost:
            self.cost_usd += float(cost)

    def record_tools(self, count: int) -> None:
        self.tool_calls += count

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self._started_at) * 1000)

    def finalize(self) -> TurnMetrics:
        metrics = TurnMetrics(
            model=self.model,
            latency_ms=self.elapsed_ms,
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
            cost_usd=round(self.cost_usd, 6),
            tool_calls=self.tool_calls,
        )
        logger.info(
            f"[Metrics] model={metrics.model} latency={metrics.latency_ms}ms "
            f"tokens={metrics.input_tokens}/{metrics.output_tokens} "
            f"cost=${metrics.cost_usd:.6f} tools={metrics.tool_calls} "
            f"calls={self.model_calls}"
        )
        return metrics
