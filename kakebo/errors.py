"""
Kakebo Errors - Exception hierarchy for the turn pipeline

Input validation and model-provider errors terminate a turn. Tool errors
never leave the ToolExecutor; they are folded into a failed ToolResult.
"""

from typing import Optional

DEFAULT_ERROR_MESSAGE = (
    "Lo siento, hubo un error al procesar tu solicitud. "
    "Por favor, inténtalo de nuevo."
)


class KakeboError(Exception):
    """Base class for all Kakebo errors.

    ``user_message`` is the only text that may reach the client.
    """

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message)
        self.user_message = user_message or DEFAULT_ERROR_MESSAGE


class InputValidationError(KakeboError):
    """Malformed user message, history or confirmed action."""

    def __init__(self, message: str, user_message: Optional[str] = None):
        super().__init__(message, user_message=user_message or message)


class ModelProviderError(KakeboError):
    """The LLM call failed (timeout, rate limit, malformed output)."""

    def __init__(self, message: str, cause_type: Optional[str] = None):
        super().__init__(message)
        self.cause_type = cause_type


class ToolArgumentError(KakeboError, ValueError):
    """A tool rejected its arguments before touching the data store."""

    def __init__(self, message: str):
        super().__init__(message, user_message=message)


class NotFoundError(KakeboError, LookupError):
    """Data store signal: the requested row does not exist for this user."""
