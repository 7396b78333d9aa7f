"""
Kakebo Models - Shared dataclasses used across the turn pipeline

Everything here lives for exactly one turn, except ToolDefinition which is
held by the process-wide ToolRegistry. Wire names (``to_dict``/``from_dict``)
are camelCase; Python attributes are snake_case.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
VALID_ROLES = (ROLE_USER, ROLE_ASSISTANT)

GENERIC_CONFIRMATION_MESSAGE = "¿Confirmas esta acción?"
INCOMPLETE_CALL_MESSAGE = (
    "Falta el campo '{field}' para completar esta acción. "
    "Si la confirmas así, no se podrá guardar."
)


# ===== Conversation =====


@dataclass(frozen=True)
class Message:
    """One conversation message. Order in a history list is significant."""

    role: str
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Message":
        return cls(role=data["role"], content=data["content"])


# ===== Tool calls =====


@dataclass
class ToolCallRequest:
    """
    A tool call resolved for this turn.

    Attributes:
        id: Opaque correlation id (from the model, or generated by the router)
        tool_name: Registered tool name
        arguments: Arguments as resolved; never mutated afterwards
    """

    id: str
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "toolName": self.tool_name,
            "arguments": self.arguments,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ToolCallRequest":
        return cls(
            id=data["id"],
            tool_name=data["toolName"],
            arguments=dict(data.get("arguments") or {}),
        )


@dataclass
class ToolResult:
    """
    Result envelope for one executed tool call.

    Attributes:
        success: Whether the tool returned normally
        data: JSON-serializable tool output (success only)
        error: User-safe error text (failure only)
        error_type: Classification used for logging (failure only)
    """

    success: bool
    data: Any = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, data: Any) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def failed(cls, error: str, error_type: str = "unknown") -> "ToolResult":
        return cls(success=False, error=error, error_type=error_type)

    def to_dict(self) -> Dict[str, Any]:
        if self.success:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error}


# ===== Confirmation =====


@dataclass
class PendingAction:
    """A resolved but unexecuted tool call, echoed by the client to confirm it."""

    tool_call: ToolCallRequest
    tool_name: str
    arguments: Dict[str, Any]
    description: str

    @classmethod
    def from_call(cls, call: ToolCallRequest, description: str) -> "PendingAction":
        return cls(
            tool_call=call,
            tool_name=call.tool_name,
            arguments=dict(call.arguments),
            description=description,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "toolCall": self.tool_call.to_dict(),
            "toolName": self.tool_name,
            "arguments": self.arguments,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PendingAction":
        return cls(
            tool_call=ToolCallRequest.from_dict(data["toolCall"]),
            tool_name=data["toolName"],
            arguments=dict(data.get("arguments") or {}),
            description=data.get("description", ""),
        )


@dataclass
class ConfirmationRequest:
    """Terminal output of a gated turn."""

    message: str
    pending_action: PendingAction

    @property
    def requires_confirmation(self) -> bool:
        return True

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "pendingAction": self.pending_action.to_dict(),
            "requiresConfirmation": True,
        }


# ===== Metrics and results =====


@dataclass
class TurnMetrics:
    """Per-turn accounting, summed over every model call in the turn."""

    model: str
    latency_ms: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    cost_usd: float = 0.0
    tool_calls: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model": self.model,
            "latencyMs": self.latency_ms,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
            "costUsd": self.cost_usd,
            "toolCalls": self.tool_calls,
        }


@dataclass
class AgentResponse:
    """Successful, non-gated turn result."""

    message: str
    tools_used: List[str]
    metrics: TurnMetrics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "toolsUsed": list(self.tools_used),
            "metrics": self.metrics.to_dict(),
        }


@dataclass
class ConversationTurn:
    """Working record of one turn. Never shared between concurrent turns."""

    user_message: str
    history: List[Message] = field(default_factory=list)
    user_id: str = ""
    context_note: Optional[str] = None
    resolved_intent: Optional[str] = None
    tool_calls: List[ToolCallRequest] = field(default_factory=list)
    tool_results: Dict[str, ToolResult] = field(default_factory=dict)
    final_response: Optional[str] = None
    confirmation: Optional[ConfirmationRequest] = None
    metrics: Optional[TurnMetrics] = None


# ===== Tool definitions =====


@dataclass
class ToolContext:
    """Context passed to tool executors.

    ``user_id`` is the mandatory filter for every data store access.
    """

    data_store: Any = None
    user_id: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolDefinition:
    """A registered domain tool.

    Attributes:
        name: Tool name as exposed to the model (e.g. "createTransaction").
        description: What this tool does (shown to the model).
        parameters: JSON Schema for tool arguments.
        executor: Async function(args: dict, context: ToolContext) -> Any.
        requires_confirmation: If True, the Confirmation Gate blocks the turn.
        confirmation_template: Function(args) -> str used for the gate message.
        risk_level: "read" or "write".
        default_arguments: Arguments the keyword router sends for this tool.
    """

    name: str
    description: str
    parameters: Dict[str, Any]
    executor: Callable
    requires_confirmation: bool = False
    confirmation_template: Optional[Callable[[Dict[str, Any]], str]] = None
    risk_level: str = "read"
    default_arguments: Dict[str, Any] = field(default_factory=dict)

    def missing_arguments(self, arguments: Dict[str, Any]) -> List[str]:
        """Required schema fields that are absent or null in *arguments*."""
        return [
            name for name in self.parameters.get("required", [])
            if arguments.get(name) is None
        ]

    def describe_call(self, arguments: Dict[str, Any]) -> str:
        """Human-readable confirmation text for a call to this tool."""
        missing = self.missing_arguments(arguments)
        if missing:
            return INCOMPLETE_CALL_MESSAGE.format(field=missing[0])
        if self.confirmation_template is None:
            return GENERIC_CONFIRMATION_MESSAGE
        return self.confirmation_template(arguments)

    def to_openai_schema(self) -> Dict[str, Any]:
        """Convert to OpenAI function-calling tool schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }
