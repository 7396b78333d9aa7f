"""
Intent/Tool Resolver - turns a user message into a direct reply or tool calls

Two strategies share one contract, ``resolve(message, history, accountant)``:

- KeywordRouterResolver: deterministic keyword classification, at most one
  read tool with fixed default arguments. No model call is made here; a
  direct reply is left for the synthesizer's general answer.
- FunctionCallingResolver: one function-calling model call over the
  registry schemas. Unknown tool names are dropped with a warning and the
  rest goes through the ToolCallPolicy.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from ..errors import ModelProviderError
from ..models import Message, ToolCallRequest
from ..protocols import LLMClientProtocol
from ..tools.registry import ToolRegistry
from .metrics import MetricsAccountant
from .prompts import build_system_prompt
from .router import KeywordRouter
from .tool_policy import ToolCallPolicy

logger = logging.getLogger(__name__)

RESOLUTION_DIRECT = "direct"
RESOLUTION_TOOLS = "tools"


@dataclass
class Resolution:
    """
    Resolver output.

    Attributes:
        kind: "direct" or "tools"
        calls: Tool calls to run (kind == "tools", never empty)
        text: Model text for a direct reply; None when the reply still has
            to be generated
        intent: Classified intent (keyword router only)
    """
    kind: str
    calls: List[ToolCallRequest] = field(default_factory=list)
    text: Optional[str] = None
    intent: Optional[str] = None

    @property
    def is_direct(self) -> bool:
        return self.kind == RESOLUTION_DIRECT

    @classmethod
    def direct(cls, text: Optional[str] = None, intent: Optional[str] = None) -> "Resolution":
        return cls(kind=RESOLUTION_DIRECT, text=text, intent=intent)

    @classmethod
    def tools(cls, calls: List[ToolCallRequest], intent: Optional[str] = None) -> "Resolution":
        return cls(kind=RESOLUTION_TOOLS, calls=list(calls), intent=intent)


def history_to_messages(history: List[Message]) -> List[Dict[str, Any]]:
    return [m.to_dict() for m in history]


class KeywordRouterResolver:

    def __init__(self, registry: ToolRegistry, router: Optional[KeywordRouter] = None):
        self.registry = registry
        self.router = router or KeywordRouter()

    async def resolve(
        self,
        message: str,
        history: List[Message],
        accountant: MetricsAccountant,
        today: Optional[date] = None,
        context_note: Optional[str] = None,
    ) -> Resolution:
        classification = self.router.classify(message)
        tool_name = classification.tool_name
        logger.info(
            f"[Resolver] keyword router: intent={classification.intent} "
            f"tool={tool_name or '-'}"
        )

        if tool_name is None:
            return Resolution.direct(intent=classification.intent)

        tool = self.registry.get_tool(tool_name)
        if tool is None:
            logger.warning(f"[Resolver] Routed tool '{tool_name}' is not registered")
            return Resolution.direct(intent=classification.intent)

        call = ToolCallRequest(
            id=f"router_{uuid.uuid4().hex[:12]}",
            tool_name=tool_name,
            arguments=dict(tool.default_arguments),
        )
        return Resolution.tools([call], intent=classification.intent)


class FunctionCallingResolver:

    def __init__(
        self,
        registry: ToolRegistry,
        llm_client: LLMClientProtocol,
        policy: Optional[ToolCallPolicy] = None,
        temperature: float = 0.3,
        max_tokens: int = 1000,
    ):
        self.registry = registry
        self.llm_client = llm_client
        self.policy = policy or ToolCallPolicy()
        self.temperature = temperature
        self.max_tokens = max_tokens

    def build_messages(
        self,
        message: str,
        history: List[Message],
        today: Optional[date] = None,
        context_note: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        messages = [{"role": "system", "content": build_system_prompt(today)}]
        if context_note:
            messages.append({"role": "system", "content": context_note})
        return [
            *messages,
            *history_to_messages(history),
            {"role": "user", "content": message},
        ]

    async def resolve(
        self,
        message: str,
        history: List[Message],
        accountant: MetricsAccountant,
        today: Optional[date] = None,
        context_note: Optional[str] = None,
    ) -> Resolution:
        messages = self.build_messages(message, history, today, context_note)
        try:
            response = await self.llm_client.chat_completion(
                messages=messages,
                tools=self.registry.get_tools_schema(),
                config={
                    "temperature": self.temperature,
                    "max_tokens": self.max_tokens,
                    "tool_choice": "auto",
                },
            )
        except Exception as e:
            logger.error(f"[Resolver] Function-calling request failed: {e}", exc_info=True)
            raise ModelProviderError(f"Function-calling request failed: {e}", cause_type=type(e).__name__) from e

        accountant.record_usage(getattr(response, "usage", None))

        raw_calls = getattr(response, "tool_calls", None) or []
        if not raw_calls:
            logger.info("[Resolver] function calling: direct reply")
            return Resolution.direct(text=getattr(response, "content", None) or "")

        calls = []
        for raw in raw_calls:
            if raw.name not in self.registry:
                logger.warning(f"[Resolver] Model requested unknown tool '{raw.name}'; dropped")
                continue
            calls.append(ToolCallRequest(
                id=raw.id or f"call_{uuid.uuid4().hex[:12]}",
                tool_name=raw.name,
                arguments=dict(raw.arguments or {}),
            ))
        calls = self.policy.apply(calls)

        if not calls:
            # Every requested tool was unknown; fall back to the model text
            logger.warning("[Resolver] No usable tool calls left; treating as direct reply")
            return Resolution.direct(text=getattr(response, "content", None) or None)

        logger.info(f"[Resolver] function calling: tools={[c.tool_name for c in calls]}")
        return Resolution.tools(calls)
