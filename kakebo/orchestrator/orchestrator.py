"""
Kakebo Orchestrator - Runs one conversational turn end to end

Flow (both entry points):
1. Validate the message, the history and any confirmed action
2. Resolve: direct reply or tool calls (a valid confirmed action skips this)
3. Gate: block on the first unconfirmed write tool
4. Execute the allowed calls in parallel
5. Synthesize the reply from the tool result envelopes
6. Finalize the per-turn metrics

``handle_message`` returns the finished result; ``stream_message`` yields
the same turn as TurnEvents. The chunks of a streamed turn join into the
message the non-streaming call would have returned.
"""

import logging
from datetime import date
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple, Union

from ..errors import DEFAULT_ERROR_MESSAGE, InputValidationError, KakeboError
from ..finance.context import UserContextCache, context_disclaimer
from ..models import (
    AgentResponse,
    ConfirmationRequest,
    ConversationTurn,
    Message,
    PendingAction,
    ToolContext,
    ToolResult,
)
from ..protocols import FinanceStoreProtocol, LLMClientProtocol
from ..streaming import TurnEvent, TurnStream
from ..tools.executor import ToolExecutor
from ..tools.registry import ToolRegistry
from .config import RESOLVER_KEYWORD_ROUTER, OrchestratorConfig
from .confirmation import ConfirmationGate
from .metrics import MetricsAccountant
from .resolver import FunctionCallingResolver, KeywordRouterResolver, Resolution
from .synthesizer import EMPTY_RESPONSE_MESSAGE, Synthesizer
from .tool_policy import ToolCallPolicy
from .validation import validate_confirmed_action, validate_history, validate_message

logger = logging.getLogger(__name__)

HistoryInput = Optional[Sequence[Union[Message, Dict[str, Any]]]]
ActionInput = Optional[Union[PendingAction, Dict[str, Any]]]


class Orchestrator:
    """
    Central coordinator for a Kakebo turn.

    Everything a turn needs lives in its ConversationTurn and
    MetricsAccountant, so concurrent turns never share mutable data. The only
    state kept across turns is the per-user context cache.

    Usage:
        orchestrator = Orchestrator(registry, llm_client, store, OrchestratorConfig())
        result = await orchestrator.handle_message("user-1", "¿Cómo voy este mes?")

        async for event in orchestrator.stream_message("user-1", "¿Cuánto gasté?"):
            print(event.to_json_line())
    """

    def __init__(
        self,
        registry: ToolRegistry,
        llm_client: LLMClientProtocol,
        data_store: FinanceStoreProtocol,
        config: Optional[OrchestratorConfig] = None,
        model_name: Optional[str] = None,
    ):
        """
        Args:
            registry: Frozen registry of domain tools
            llm_client: Client used for resolution and synthesis
            data_store: Finance store handed to tools through ToolContext
            config: Orchestration settings
            model_name: Model reported in metrics (defaults to the client's)
        """
        self.config = config or OrchestratorConfig()
        self.registry = registry
        self.llm_client = llm_client
        self.data_store = data_store
        self.model_name = model_name or getattr(llm_client, "model_name", None) or "unknown"

        self.policy = ToolCallPolicy(max_tools_per_call=self.config.max_tools_per_call)
        if self.config.resolver_mode == RESOLVER_KEYWORD_ROUTER:
            self.resolver = KeywordRouterResolver(registry)
        else:
            self.resolver = FunctionCallingResolver(
                registry,
                llm_client,
                policy=self.policy,
                temperature=self.config.resolver_temperature,
            )
        self.gate = ConfirmationGate(registry, enabled=self.config.enable_write_confirmation)
        self.executor = ToolExecutor(registry, timeout=self.config.tool_execution_timeout)
        self.synthesizer = Synthesizer(
            llm_client,
            general_temperature=self.config.general_temperature,
            synthesis_temperature=self.config.synthesis_temperature,
        )
        self.user_contexts = UserContextCache(ttl=self.config.user_context_ttl)

    # ==========================================================================
    # PUBLIC API
    # ==========================================================================

    async def handle_message(
        self,
        user_id: str,
        message: str,
        history: HistoryInput = None,
        confirmed_action: ActionInput = None,
        today: Optional[date] = None,
    ) -> Union[AgentResponse, ConfirmationRequest]:
        """
        Handle one user message.

        Returns:
            AgentResponse, or ConfirmationRequest when a write tool is blocked

        Raises:
            InputValidationError: Invalid message, history or confirmed action
            ModelProviderError: The resolver or synthesizer model call failed
        """
        turn, action = self._start_turn(user_id, message, history, confirmed_action)
        today = today or date.today()
        accountant = MetricsAccountant(self.model_name)
        turn.context_note = await self._context_note(turn, today)

        resolution = await self._resolve(turn, action, accountant, today)

        if resolution.is_direct:
            if resolution.text is not None:
                turn.final_response = resolution.text or EMPTY_RESPONSE_MESSAGE
            else:
                turn.final_response = await self.synthesizer.synthesize(
                    turn.user_message, turn.history, {}, accountant, turn.context_note
                )
            return self._finish(turn, accountant)

        decision = self.gate.check(resolution.calls, action)
        if decision.blocked:
            turn.confirmation = decision.confirmation
            turn.metrics = accountant.finalize()
            return decision.confirmation

        turn.tool_calls = decision.calls
        turn.tool_results = await self._execute(turn, accountant, today)
        turn.final_response = await self.synthesizer.synthesize(
            turn.user_message, turn.history, turn.tool_results, accountant, turn.context_note
        )
        return self._finish(turn, accountant)

    async def stream_message(
        self,
        user_id: str,
        message: str,
        history: HistoryInput = None,
        confirmed_action: ActionInput = None,
        today: Optional[date] = None,
    ) -> AsyncIterator[TurnEvent]:
        """
        Stream one user message as TurnEvents.

        Same flow as handle_message. Every turn ends with exactly one of
        ``done``, ``confirmation`` or ``error``; failures never raise out of
        the iterator.
        """
        stream = TurnStream()
        try:
            turn, action = self._start_turn(user_id, message, history, confirmed_action)
        except InputValidationError as e:
            logger.info(f"[Orchestrator] Rejected input: {e}")
            yield stream.error(e.user_message)
            return

        today = today or date.today()
        accountant = MetricsAccountant(self.model_name)

        try:
            yield stream.thinking()
            turn.context_note = await self._context_note(turn, today)
            resolution = await self._resolve(turn, action, accountant, today)

            if resolution.is_direct:
                if resolution.text is not None:
                    # Function-calling replies are only known once complete
                    yield stream.chunk(resolution.text or EMPTY_RESPONSE_MESSAGE)
                else:
                    async for piece in self.synthesizer.stream(
                        turn.user_message, turn.history, {}, accountant, turn.context_note
                    ):
                        yield stream.chunk(piece)
                turn.final_response = stream.text
                yield stream.done([], self._finish(turn, accountant).metrics)
                return

            yield stream.tools([c.tool_name for c in resolution.calls])

            decision = self.gate.check(resolution.calls, action)
            if decision.blocked:
                turn.confirmation = decision.confirmation
                turn.metrics = accountant.finalize()
                yield stream.confirmation(decision.confirmation)
                return

            turn.tool_calls = decision.calls
            yield stream.executing()
            turn.tool_results = await self._execute(turn, accountant, today)

            async for piece in self.synthesizer.stream(
                turn.user_message, turn.history, turn.tool_results, accountant, turn.context_note
            ):
                yield stream.chunk(piece)
            turn.final_response = stream.text
            response = self._finish(turn, accountant)
            yield stream.done(response.tools_used, response.metrics)

        except KakeboError as e:
            logger.error(f"[Orchestrator] Streamed turn failed: {e}")
            if not stream.finished:
                yield stream.error(e.user_message)
        except Exception as e:
            logger.error(f"[Orchestrator] Unexpected error in streamed turn: {e}", exc_info=True)
            if not stream.finished:
                yield stream.error(DEFAULT_ERROR_MESSAGE)

    # ==========================================================================
    # TURN STEPS
    # ==========================================================================

    def _start_turn(
        self,
        user_id: str,
        message: str,
        history: HistoryInput,
        confirmed_action: ActionInput,
    ) -> Tuple[ConversationTurn, Optional[PendingAction]]:
        if not user_id:
            raise InputValidationError("Falta el identificador de usuario.")
        turn = ConversationTurn(
            user_message=validate_message(message),
            history=validate_history(history, self.config.max_history_messages),
            user_id=user_id,
        )
        action = validate_confirmed_action(confirmed_action, self.registry)
        logger.info(
            f"[Orchestrator] Turn for user={user_id} history={len(turn.history)} "
            f"confirmed={action.tool_name if action else '-'}"
        )
        return turn, action

    async def _resolve(
        self,
        turn: ConversationTurn,
        action: Optional[PendingAction],
        accountant: MetricsAccountant,
        today: date,
    ) -> Resolution:
        if action is not None:
            # Approved calls run exactly as confirmed
            logger.info(f"[Orchestrator] Running confirmed action '{action.tool_name}'")
            resolution = Resolution.tools([action.tool_call])
        else:
            resolution = await self.resolver.resolve(
                turn.user_message, turn.history, accountant,
                today=today, context_note=turn.context_note,
            )
        turn.resolved_intent = resolution.intent
        return resolution

    async def _execute(
        self,
        turn: ConversationTurn,
        accountant: MetricsAccountant,
        today: date,
    ) -> Dict[str, ToolResult]:
        context = ToolContext(
            data_store=self.data_store,
            user_id=turn.user_id,
            metadata={"today": today},
        )
        results = await self.executor.execute(turn.tool_calls, context)
        accountant.record_tools(len(turn.tool_calls))
        if self._wrote_data(turn.tool_calls, results):
            self.user_contexts.invalidate(turn.user_id)
        return results

    async def _context_note(self, turn: ConversationTurn, today: date) -> Optional[str]:
        if not self.config.enable_user_context:
            return None
        user_context = await self.user_contexts.get(self.data_store, turn.user_id, today)
        return context_disclaimer(user_context)

    def _wrote_data(self, calls: List[Any], results: Dict[str, ToolResult]) -> bool:
        writes = {call.tool_name for call in calls if self.registry.requires_confirmation(call.tool_name)}
        return any(
            result.success for key, result in results.items()
            if key.split("#", 1)[0] in writes
        )

    def _finish(self, turn: ConversationTurn, accountant: MetricsAccountant) -> AgentResponse:
        turn.metrics = accountant.finalize()
        return AgentResponse(
            message=turn.final_response or "",
            tools_used=self._tools_used(turn.tool_calls),
            metrics=turn.metrics,
        )

    @staticmethod
    def _tools_used(calls: List[Any]) -> List[str]:
        return [call.tool_name for call in calls]
