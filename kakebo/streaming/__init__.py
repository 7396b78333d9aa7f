"""
Kakebo Streaming - Newline-delimited JSON events for one turn

- TurnEventType / TurnEvent: wire events
- TurnState / TurnStream: the per-turn state machine
"""

from .engine import StreamStateError, TurnStream
from .models import TERMINAL_EVENTS, TurnEvent, TurnEventType, TurnState

__all__ = [
    "TurnEventType",
    "TurnEvent",
    "TurnState",
    "TERMINAL_EVENTS",
    "TurnStream",
    "StreamStateError",
]
