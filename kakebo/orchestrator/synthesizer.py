"""
Response Synthesizer - the final natural-language reply of a turn

``synthesize`` and ``stream`` make the same single model call and apply the
same fallbacks, so the streamed pieces always join into the text the
non-streaming call would return.
"""

import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from ..errors import DEFAULT_ERROR_MESSAGE, ModelProviderError
from ..models import Message, ToolResult
from ..protocols import LLMClientProtocol
from ..tools.errors import ERROR_VALIDATION
from .metrics import MetricsAccountant
from .prompts import build_general_prompt, build_synthesis_prompt

logger = logging.getLogger(__name__)

ALL_TOOLS_FAILED_MESSAGE = (
    "Lo siento, no pude obtener los datos necesarios para responder tu pregunta. "
    "Por favor, inténtalo de nuevo."
)
EMPTY_RESPONSE_MESSAGE = "No pude generar una respuesta."

SYNTHESIS_SYSTEM_PROMPT = (
    "Eres un asistente financiero que habla con el usuario sobre sus gastos "
    "registrados con el método Kakebo. Da información clara y accionable. "
    "Responde siempre en español, de forma breve y cercana."
)

# Prior turns included for context
HISTORY_WINDOW = 6


class Synthesizer:
    """
    Usage:
        synthesizer = Synthesizer(llm_client)
        text = await synthesizer.synthesize(message, history, results, accountant)

        async for piece in synthesizer.stream(message, history, results, accountant):
            ...
    """

    def __init__(
        self,
        llm_client: LLMClientProtocol,
        general_temperature: float = 0.7,
        synthesis_temperature: float = 0.6,
        max_tokens: int = 500,
    ):
        self.llm_client = llm_client
        self.general_temperature = general_temperature
        self.synthesis_temperature = synthesis_temperature
        self.max_tokens = max_tokens

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    @staticmethod
    def all_failed(tool_results: Dict[str, ToolResult]) -> bool:
        return bool(tool_results) and not any(r.success for r in tool_results.values())

    @staticmethod
    def failure_message(tool_results: Dict[str, ToolResult]) -> str:
        """Reply when no tool succeeded; argument errors are named so the user can fix them."""
        reasons: List[str] = []
        for result in tool_results.values():
            if result.error_type == ERROR_VALIDATION and result.error and result.error not in reasons:
                reasons.append(result.error)
        if not reasons:
            return ALL_TOOLS_FAILED_MESSAGE
        return f"{ALL_TOOLS_FAILED_MESSAGE} {'. '.join(reasons)}."

    def _request(
        self,
        message: str,
        history: List[Message],
        tool_results: Dict[str, ToolResult],
        context_note: Optional[str] = None,
    ) -> Dict[str, Any]:
        context = [m.to_dict() for m in history[-HISTORY_WINDOW:]]
        note = [{"role": "system", "content": context_note}] if context_note else []
        if not tool_results:
            return {
                "messages": note + context + [{"role": "user", "content": build_general_prompt(message)}],
                "config": {"temperature": self.general_temperature, "max_tokens": self.max_tokens},
                "fallback": EMPTY_RESPONSE_MESSAGE,
            }

        envelopes = {name: result.to_dict() for name, result in tool_results.items()}
        return {
            "messages": [
                {"role": "system", "content": SYNTHESIS_SYSTEM_PROMPT},
                *note,
                *context,
                {"role": "user", "content": build_synthesis_prompt(message, envelopes)},
            ],
            "config": {"temperature": self.synthesis_temperature, "max_tokens": self.max_tokens},
            "fallback": DEFAULT_ERROR_MESSAGE,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def synthesize(
        self,
        message: str,
        history: List[Message],
        tool_results: Dict[str, ToolResult],
        accountant: MetricsAccountant,
        context_note: Optional[str] = None,
    ) -> str:
        if self.all_failed(tool_results):
            logger.warning(f"[Synthesizer] All {len(tool_results)} tools failed")
            return self.failure_message(tool_results)

        request = self._request(message, history, tool_results, context_note)
        try:
            response = await self.llm_client.chat_completion(
                messages=request["messages"], config=request["config"]
            )
        except Exception as e:
            logger.error(f"[Synthesizer] Model call failed: {e}", exc_info=True)
            raise ModelProviderError(f"Synthesis failed: {e}", cause_type=type(e).__name__) from e

        accountant.record_usage(getattr(response, "usage", None))
        content = getattr(response, "content", None)
        if not content:
            logger.warning("[Synthesizer] Empty response from model")
            return request["fallback"]
        return content

    async def stream(
        self,
        message: str,
        history: List[Message],
        tool_results: Dict[str, ToolResult],
        accountant: MetricsAccountant,
        context_note: Optional[str] = None,
    ) -> AsyncIterator[str]:
        """Yield the reply in pieces, in generation order."""
        if self.all_failed(tool_results):
            logger.warning(f"[Synthesizer] All {len(tool_results)} tools failed")
            yield self.failure_message(tool_results)
            return

        request = self._request(message, history, tool_results, context_note)
        produced = False
        usage = None
        try:
            async for chunk in self.llm_client.stream_completion(
                messages=request["messages"], config=request["config"]
            ):
                if chunk.usage is not None:
                    usage = chunk.usage
                if chunk.content:
                    produced = True
                    yield chunk.content
        except Exception as e:
            logger.error(f"[Synthesizer] Streaming model call failed: {e}", exc_info=True)
            raise ModelProviderError(f"Streaming synthesis failed: {e}", cause_type=type(e).__name__) from e

        accountant.record_usage(usage)
        if not produced:
            logger.warning("[Synthesizer] Empty streamed response from model")
            yield request["fallback"]
