"""
Kakebo LLM - Provider-agnostic LLM clients

Usage:
    from kakebo.llm import LiteLLMClient, LLMConfig

    client = LiteLLMClient(LLMConfig(model="gpt-4o-mini"), provider_name="openai")
"""

from .base import (
    BaseLLMClient,
    LLMConfig,
    LLMResponse,
    StopReason,
    StreamChunk,
    ToolCall,
    Usage,
)
from .litellm_client import LiteLLMClient, build_litellm_model_string

__all__ = [
    "BaseLLMClient",
    "LLMConfig",
    "LLMResponse",
    "StopReason",
    "StreamChunk",
    "ToolCall",
    "Usage",
    "LiteLLMClient",
    "build_litellm_model_string",
]
