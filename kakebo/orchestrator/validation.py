"""
Turn input validation - runs before any model call or tool execution.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from ..errors import InputValidationError
from ..models import VALID_ROLES, Message, PendingAction
from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 1000
DEFAULT_MAX_HISTORY_MESSAGES = 50


def validate_message(message: Any) -> str:
    """Stripped user message, 1..1000 characters."""
    if not isinstance(message, str):
        raise InputValidationError("El mensaje debe ser texto.")
    text = message.strip()
    if not text:
        raise InputValidationError("El mensaje no puede estar vacío.")
    if len(text) > MAX_MESSAGE_LENGTH:
        raise InputValidationError(
            f"El mensaje es demasiado largo (máximo {MAX_MESSAGE_LENGTH} caracteres)."
        )
    return text


def validate_history(
    history: Optional[Sequence[Union[Message, Dict[str, Any]]]],
    max_messages: int = DEFAULT_MAX_HISTORY_MESSAGES,
) -> List[Message]:
    if not history:
        return []
    if len(history) > max_messages:
        raise InputValidationError(
            f"El historial es demasiado largo (máximo {max_messages} mensajes)."
        )

    messages: List[Message] = []
    for i, item in enumerate(history):
        if isinstance(item, Message):
            role, content = item.role, item.content
        elif isinstance(item, dict):
            role, content = item.get("role"), item.get("content")
        else:
            raise InputValidationError(f"Mensaje {i} del historial no es válido.")
        if role not in VALID_ROLES or not isinstance(content, str):
            raise InputValidationError(f"Mensaje {i} del historial no es válido.")
        messages.append(Message(role=role, content=content))
    return messages


def validate_confirmed_action(
    action: Optional[Union[PendingAction, Dict[str, Any]]],
    registry: ToolRegistry,
) -> Optional[PendingAction]:
    """
    Parse an echoed PendingAction.

    A structurally broken payload is an input error. A well-formed action
    that is not self-consistent (unknown or read-only tool, or arguments
    that differ from its tool call) is dropped, so the turn goes back through the gate.
    """
    if action is None:
        return None
    if isinstance(action, dict):
        try:
            action = PendingAction.from_dict(action)
        except (KeyError, TypeError, AttributeError):
            raise InputValidationError("La acción confirmada no es válida.")

    if not registry.requires_confirmation(action.tool_name):
        # Unknown and read-only tools never need confirming
        logger.warning(
            f"[Validation] Confirmed action for '{action.tool_name}' ignored: "
            f"not a tool that needs confirmation"
        )
        return None
    call = action.tool_call
    if call.tool_name != action.tool_name or call.arguments != action.arguments:
        logger.warning(
            f"[Validation] Confirmed action for '{action.tool_name}' does not match "
            f"its tool call; ignored"
        )
        return None
    return action
