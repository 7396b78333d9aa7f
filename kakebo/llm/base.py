"""
Kakebo LLM Client Base - Base class and common types for LLM clients

This module provides:
- BaseLLMClient: Abstract base class for all LLM clients
- LLMConfig: Configuration dataclass
- LLMResponse: Standardized response format
- StreamChunk: Streaming chunk format
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional


class StopReason(str, Enum):
    """Reason why the LLM stopped generating"""
    END_TURN = "end_turn"             # Natural completion
    MAX_TOKENS = "max_tokens"         # Hit token limit
    STOP_SEQUENCE = "stop_sequence"   # Hit stop sequence
    TOOL_USE = "tool_use"             # Model wants to use a tool
    CONTENT_FILTER = "content_filter" # Provider filtered the output
    ERROR = "error"                   # Error occurred


@dataclass
class LLMConfig:
    """
    Configuration for LLM clients.

    Attributes:
        api_key: API key for the provider
        model: Model name (e.g., "gpt-4o-mini")
        base_url: Optional base URL override for API
        temperature: Sampling temperature (0.0 - 2.0)
        max_tokens: Maximum tokens in response
        timeout: Request timeout in seconds
        max_retries: Retries performed by the provider SDK (not by the orchestrator)
    """
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    base_url: Optional[str] = None
    temperature: float = 0.7
    max_tokens: int = 1024
    timeout: int = 60
    max_retries: int = 2

    # Cost tracking
    track_costs: bool = True

    # Extra provider-specific config
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolCall:
    """A tool call from the LLM"""
    id: str
    name: str
    arguments: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "arguments": self.arguments,
        }


@dataclass
class Usage:
    """Token usage information"""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    # Cost in USD (if available)
    cost: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "cost": self.cost,
        }


@dataclass
class LLMResponse:
    """
    Standardized LLM response format.

    All provider clients return this format for consistency.
    """
    content: str
    tool_calls: Optional[List[ToolCall]] = None
    stop_reason: StopReason = StopReason.END_TURN
    usage: Optional[Usage] = None
    model: Optional[str] = None

    # Raw response for debugging
    raw_response: Optional[Any] = None


@dataclass
class StreamChunk:
    """
    A chunk from streaming response.

    Tool calls are only populated on the final chunk, once their
    argument deltas have been fully accumulated.
    """
    content: str = ""
    tool_calls: Optional[List[ToolCall]] = None
    is_final: bool = False
    stop_reason: Optional[StopReason] = None
    usage: Optional[Usage] = None
    model: Optional[str] = None

    # Accumulated content (all chunks so far)
    accumulated_content: str = ""


class BaseLLMClient(ABC):
    """
    Abstract base class for LLM clients.

    Subclasses implement ``_call_api`` and ``_stream_api``; cost is filled in
    here from PRICING when the provider did not report one.
    """

    # Provider name (override in subclasses)
    provider: str = "unknown"

    # Cost per 1K tokens
    # Format: {"model_name": {"input": cost, "output": cost}}
    PRICING: Dict[str, Dict[str, float]] = {
        "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
        "gpt-4o": {"input": 0.0025, "output": 0.01},
    }

    # Reasoning models reject temperature and use max_completion_tokens
    _RESTRICTED_PREFIXES = ("o1", "o3", "o4")

    def __init__(self, config: Optional[LLMConfig] = None, **kwargs):
        """
        Initialize the client.

        Args:
            config: LLMConfig instance
            **kwargs: Override config values
        """
        if config is None:
            config = LLMConfig(**kwargs)
        else:
            for key, value in kwargs.items():
                if hasattr(config, key):
                    setattr(config, key, value)

        self.config = config
        self._client = None

    @property
    def model_name(self) -> str:
        return self.config.model

    @abstractmethod
    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Make the actual API call (provider-specific).

        Args:
            messages: List of message dicts
            tools: Optional list of tool schemas
            **kwargs: Additional provider-specific params

        Returns:
            LLMResponse with standardized format
        """
        pass

    @abstractmethod
    async def _stream_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs
    ) -> AsyncIterator[StreamChunk]:
        """
        Make streaming API call (provider-specific).

        Yields:
            StreamChunk objects
        """
        pass

    async def chat_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        config: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> LLMResponse:
        """
        Send a chat completion request.

        Args:
            messages: List of message dicts with 'role' and 'content'
            tools: Optional list of OpenAI-format tool schemas
            config: Optional config overrides (temperature, max_tokens, ...)

        Returns:
            LLMResponse with content, tool_calls, usage, etc.
        """
        merged_kwargs = {**kwargs}
        if config:
            merged_kwargs.update(config)

        response = await self._call_api(messages, tools or None, **merged_kwargs)

        if self.config.track_costs and response.usage and response.usage.cost is None:
            response.usage.cost = self._calculate_cost(response.usage, response.model)

        return response

    async def stream_completion(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        config: Optional[Dict[str, Any]] = None,
        **kwargs
    ) -> AsyncIterator[StreamChunk]:
        """
        Send a streaming chat completion request.

        Yields chunks as they arrive from the API.

        Example:
            async for chunk in client.stream_completion(messages):
                print(chunk.content, end="", flush=True)
                if chunk.usage:
                    print(f"\\nUsed {chunk.usage.total_tokens} tokens")
        """
        merged_kwargs = {**kwargs}
        if config:
            merged_kwargs.update(config)

        accumulated = ""
        async for chunk in self._stream_api(messages, tools or None, **merged_kwargs):
            accumulated += chunk.content
            chunk.accumulated_content = accumulated
            if self.config.track_costs and chunk.usage and chunk.usage.cost is None:
                chunk.usage.cost = self._calculate_cost(chunk.usage, chunk.model)
            yield chunk

    def _is_restricted_model(self, model: str) -> bool:
        """Reasoning models (o1/o3/o4 families) reject sampling params."""
        name = model.split("/")[-1].lower()
        return name.startswith(self._RESTRICTED_PREFIXES)

    def _model_params(self, model: str, **kwargs) -> Dict[str, Any]:
        """Sampling params for a call, honoring per-call overrides."""
        max_tokens = kwargs.get("max_tokens", self.config.max_tokens)
        params: Dict[str, Any] = {
            "timeout": kwargs.get("timeout", self.config.timeout),
            "num_retries": self.config.max_retries,
        }
        if self._is_restricted_model(model):
            params["max_completion_tokens"] = max_tokens
        else:
            params["temperature"] = kwargs.get("temperature", self.config.temperature)
            params["max_tokens"] = max_tokens
        return params

    def _calculate_cost(self, usage: Usage, model: Optional[str] = None) -> Optional[float]:
        """Calculate cost based on token usage"""
        model = model or self.config.model
        pricing = self.PRICING.get(model)
        if pricing is None:
            # Provider-suffixed names like "gpt-4o-mini-2024-07-18"
            for name in sorted(self.PRICING, key=len, reverse=True):
                if model.startswith(name):
                    pricing = self.PRICING[name]
                    break
        if pricing is None:
            return None

        input_cost = (usage.prompt_tokens / 1000) * pricing.get("input", 0)
        output_cost = (usage.completion_tokens / 1000) * pricing.get("output", 0)
        return input_cost + output_cost

    async def close(self) -> None:
        """Close the client and release resources"""
        if self._client and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
