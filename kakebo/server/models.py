"""Pydantic request/response models for the Kakebo Copilot API.

Wire names are camelCase; Python attributes are snake_case.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class HistoryMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


class ToolCallPayload(_CamelModel):
    id: str
    tool_name: str = Field(alias="toolName")
    arguments: Dict[str, Any] = Field(default_factory=dict)


class PendingActionPayload(_CamelModel):
    tool_call: ToolCallPayload = Field(alias="toolCall")
    tool_name: str = Field(alias="toolName")
    arguments: Dict[str, Any] = Field(default_factory=dict)
    description: str = ""


class ChatRequest(_CamelModel):
    message: str
    history: List[HistoryMessage] = Field(default_factory=list)
    confirmed_action: Optional[PendingActionPayload] = Field(None, alias="confirmedAction")

    def history_dicts(self) -> List[Dict[str, str]]:
        return [m.model_dump() for m in self.history]

    def confirmed_action_dict(self) -> Optional[Dict[str, Any]]:
        if self.confirmed_action is None:
            return None
        return self.confirmed_action.model_dump(by_alias=True)


class MetricsPayload(_CamelModel):
    model: str
    latency_ms: int = Field(alias="latencyMs")
    input_tokens: int = Field(alias="inputTokens")
    output_tokens: int = Field(alias="outputTokens")
    total_tokens: int = Field(alias="totalTokens")
    cost_usd: float = Field(alias="costUsd")
    tool_calls: int = Field(alias="toolCalls")


class ChatResponse(_CamelModel):
    message: str
    tools_used: List[str] = Field(alias="toolsUsed")
    metrics: MetricsPayload


class ConfirmationResponse(_CamelModel):
    message: str
    pending_action: PendingActionPayload = Field(alias="pendingAction")
    requires_confirmation: bool = Field(True, alias="requiresConfirmation")


class HealthResponse(_CamelModel):
    status: str
    model: str
    resolver_mode: str = Field(alias="resolverMode")
    confirmation_enabled: bool = Field(alias="confirmationEnabled")
    capabilities: List[str]
