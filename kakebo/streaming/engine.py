"""
Kakebo Streaming Engine - Per-turn state machine for streamed replies

TurnStream owns the legal transitions of one streamed turn and builds the
event for each of them:

    idle -> thinking -> tools-selected -> executing -> streaming-text -> done
                     \\-> streaming-text       \\-> confirmation-needed
    any non-terminal -> done | error

Exactly one terminal event is produced per turn. Any emit after it raises
StreamStateError.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..models import ConfirmationRequest, TurnMetrics
from .models import TurnEvent, TurnEventType, TurnState

logger = logging.getLogger(__name__)


class StreamStateError(RuntimeError):
    """An event was requested that the current state does not allow."""


_ALLOWED: Dict[TurnEventType, frozenset] = {
    TurnEventType.THINKING: frozenset({TurnState.IDLE}),
    TurnEventType.TOOLS: frozenset({TurnState.THINKING}),
    TurnEventType.CONFIRMATION: frozenset({TurnState.TOOLS_SELECTED}),
    TurnEventType.EXECUTING: frozenset({TurnState.TOOLS_SELECTED}),
    TurnEventType.CHUNK: frozenset({
        TurnState.THINKING,
        TurnState.EXECUTING,
        TurnState.STREAMING_TEXT,
    }),
}

_NEXT_STATE: Dict[TurnEventType, TurnState] = {
    TurnEventType.THINKING: TurnState.THINKING,
    TurnEventType.TOOLS: TurnState.TOOLS_SELECTED,
    TurnEventType.CONFIRMATION: TurnState.CONFIRMATION_NEEDED,
    TurnEventType.EXECUTING: TurnState.EXECUTING,
    TurnEventType.CHUNK: TurnState.STREAMING_TEXT,
    TurnEventType.DONE: TurnState.DONE,
    TurnEventType.ERROR: TurnState.ERROR,
}


class TurnStream:
    """
    State machine for one streamed turn.

    Example usage:
        stream = TurnStream()
        yield stream.thinking()
        yield stream.tools(["getBudgetStatus"])
        yield stream.executing()
        for piece in pieces:
            yield stream.chunk(piece)
        yield stream.done(["getBudgetStatus"], metrics)
    """

    def __init__(self):
        self.state = TurnState.IDLE
        self.events: List[TurnEvent] = []

    @property
    def finished(self) -> bool:
        return self.state.is_terminal

    @property
    def text(self) -> str:
        """Concatenation of every chunk emitted so far."""
        return "".join(e.data["text"] for e in self.events if e.type == TurnEventType.CHUNK)

    def _emit(self, event_type: TurnEventType, data: Optional[Dict[str, Any]] = None) -> TurnEvent:
        if self.state.is_terminal:
            raise StreamStateError(
                f"Cannot emit '{event_type.value}' after terminal state '{self.state.value}'"
            )
        allowed = _ALLOWED.get(event_type)
        if allowed is not None and self.state not in allowed:
            raise StreamStateError(
                f"Cannot emit '{event_type.value}' from state '{self.state.value}'"
            )

        event = TurnEvent(type=event_type, data=data or {}, sequence=len(self.events))
        self.state = _NEXT_STATE[event_type]
        self.events.append(event)
        return event

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def thinking(self) -> TurnEvent:
        return self._emit(TurnEventType.THINKING)

    def tools(self, names: Iterable[str]) -> TurnEvent:
        names = list(names)
        if not names:
            raise StreamStateError("'tools' requires at least one tool name")
        return self._emit(TurnEventType.TOOLS, {"names": names})

    def confirmation(self, request: ConfirmationRequest) -> TurnEvent:
        logger.info(f"[TurnStream] Awaiting confirmation for {request.pending_action.tool_name}")
        return self._emit(TurnEventType.CONFIRMATION, {"request": request.to_dict()})

    def executing(self) -> TurnEvent:
        return self._emit(TurnEventType.EXECUTING)

    def chunk(self, text: str) -> TurnEvent:
        if not text:
            raise StreamStateError("'chunk' requires non-empty text")
        return self._emit(TurnEventType.CHUNK, {"text": text})

    def done(self, tools_used: List[str], metrics: TurnMetrics) -> TurnEvent:
        return self._emit(
            TurnEventType.DONE,
            {"toolsUsed": list(tools_used), "metrics": metrics.to_dict()},
        )

    def error(self, message: str) -> TurnEvent:
        return self._emit(TurnEventType.ERROR, {"message": message})
