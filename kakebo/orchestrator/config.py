"""Orchestrator configuration.

Centralizes the tunable parameters of one Kakebo turn. The config is passed
explicitly to the pieces that need it; nothing reads it from module state.
"""

from dataclasses import dataclass
from typing import Any, Dict

RESOLVER_FUNCTION_CALLING = "function_calling"
RESOLVER_KEYWORD_ROUTER = "keyword_router"
RESOLVER_MODES = (RESOLVER_FUNCTION_CALLING, RESOLVER_KEYWORD_ROUTER)


@dataclass
class OrchestratorConfig:
    """All per-turn orchestration settings in one place."""

    # Resolution
    resolver_mode: str = RESOLVER_FUNCTION_CALLING
    """"function_calling" (model picks tools) or "keyword_router" (regex intents)."""
    max_tools_per_call: int = 3
    """Upper bound on tool calls kept from one function-calling response."""

    # Confirmation
    enable_write_confirmation: bool = True
    """Feature flag for the Confirmation Gate. Off means writes run unconfirmed."""

    # Tool execution
    tool_execution_timeout: float = 30
    """Per-tool timeout in seconds."""

    # Input limits
    max_history_messages: int = 50
    """Longest history accepted on a request."""

    # User context
    enable_user_context: bool = True
    """Tell the model how much expense history backs the user's questions."""
    user_context_ttl: float = 300
    """Seconds a computed user context is reused."""

    # LLM calls
    resolver_temperature: float = 0.3
    synthesis_temperature: float = 0.6
    general_temperature: float = 0.7

    def __post_init__(self):
        if self.resolver_mode not in RESOLVER_MODES:
            raise ValueError(
                f"Unknown resolver_mode '{self.resolver_mode}'. "
                f"Expected one of: {', '.join(RESOLVER_MODES)}"
            )
        if self.max_tools_per_call < 1:
            raise ValueError("max_tools_per_call must be at least 1")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OrchestratorConfig":
        """Create from dictionary"""
        return cls(
            resolver_mode=data.get("resolver_mode", RESOLVER_FUNCTION_CALLING),
            max_tools_per_call=int(data.get("max_tools_per_call", 3)),
            enable_write_confirmation=bool(data.get("enable_write_confirmation", True)),
            tool_execution_timeout=float(data.get("tool_execution_timeout", 30)),
            max_history_messages=int(data.get("max_history_messages", 50)),
            enable_user_context=bool(data.get("enable_user_context", True)),
            user_context_ttl=float(data.get("user_context_ttl", 300)),
            resolver_temperature=float(data.get("resolver_temperature", 0.3)),
            synthesis_temperature=float(data.get("synthesis_temperature", 0.6)),
            general_temperature=float(data.get("general_temperature", 0.7)),
        )
