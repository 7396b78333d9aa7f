"""
Kakebo Streaming Models - Turn states and wire events

The wire protocol is newline-delimited JSON: one object per event, tagged
by ``type`` with the payload fields next to it.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict


class TurnEventType(str, Enum):
    """Closed set of event types a client can receive"""
    THINKING = "thinking"
    TOOLS = "tools"
    EXECUTING = "executing"
    CHUNK = "chunk"
    CONFIRMATION = "confirmation"
    DONE = "done"
    ERROR = "error"


class TurnState(str, Enum):
    """States of the per-turn streaming state machine"""
    IDLE = "idle"
    THINKING = "thinking"
    TOOLS_SELECTED = "tools-selected"
    EXECUTING = "executing"
    STREAMING_TEXT = "streaming-text"

    # Terminal
    DONE = "done"
    CONFIRMATION_NEEDED = "confirmation-needed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (TurnState.DONE, TurnState.CONFIRMATION_NEEDED, TurnState.ERROR)


TERMINAL_EVENTS = frozenset({
    TurnEventType.DONE,
    TurnEventType.CONFIRMATION,
    TurnEventType.ERROR,
})


@dataclass
class TurnEvent:
    """
    One streamed event.

    Attributes:
        type: Event type
        data: Payload fields ({"text"}, {"names"}, {"request"}, ...)
        sequence: Position within the turn, starting at 0
    """
    type: TurnEventType
    data: Dict[str, Any] = field(default_factory=dict)
    sequence: int = 0

    @property
    def is_terminal(self) -> bool:
        return self.type in TERMINAL_EVENTS

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, **self.data}

    def to_json_line(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False) + "\n"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TurnEvent":
        payload = {k: v for k, v in data.items() if k != "type"}
        return cls(type=TurnEventType(data["type"]), data=payload)
