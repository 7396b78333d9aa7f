"""
Kakebo Copilot - Conversational finance assistant over Kakebo expense data

Turns a user question into zero or more domain tool calls, gates writes
behind an explicit confirmation, runs the tools in parallel and answers in
Spanish, either in one response or as a stream of events.

Quick Start:
    from kakebo import KakeboCopilot

    app = KakeboCopilot("config.yaml")
    result = await app.chat("user-1", "¿Cuánto gasté este mes?")

    if isinstance(result, ConfirmationRequest):
        # Ask the user, then echo the pending action back
        result = await app.chat(
            "user-1", "sí",
            confirmed_action=result.pending_action.to_dict(),
        )

Streaming:
    async for event in app.stream("user-1", "¿Cómo va mi presupuesto?"):
        if event.type == TurnEventType.CHUNK:
            print(event.data["text"], end="")
"""

__version__ = "0.1.0"

from .tool_decorator import tool

from .models import (
    AgentResponse,
    ConfirmationRequest,
    Message,
    PendingAction,
    ToolCallRequest,
    ToolContext,
    ToolDefinition,
    ToolResult,
    TurnMetrics,
)

from .errors import (
    KakeboError,
    InputValidationError,
    ModelProviderError,
    ToolArgumentError,
    NotFoundError,
)

from .orchestrator import (
    Orchestrator,
    OrchestratorConfig,
)

from .app import KakeboCopilot

from .streaming import (
    TurnEventType,
    TurnEvent,
    TurnStream,
)

from .llm import (
    LLMConfig,
    LLMResponse,
    LiteLLMClient,
)

__all__ = [
    "__version__",
    "tool",
    "AgentResponse", "ConfirmationRequest", "Message", "PendingAction",
    "ToolCallRequest", "ToolContext", "ToolDefinition", "ToolResult", "TurnMetrics",
    "KakeboError", "InputValidationError", "ModelProviderError",
    "ToolArgumentError", "NotFoundError",
    "KakeboCopilot", "Orchestrator", "OrchestratorConfig",
    "TurnEventType", "TurnEvent", "TurnStream",
    "LLMConfig", "LLMResponse", "LiteLLMClient",
]
