"""
Kakebo LiteLLM Client - Unified LLM client powered by litellm

One client for every provider the assistant can run against (OpenAI by
default, plus Anthropic, Azure, Gemini and local Ollama models).
"""

import json
import logging
import os
from typing import Any, AsyncIterator, Dict, List, Optional

from .base import (
    BaseLLMClient,
    LLMConfig,
    LLMResponse,
    StopReason,
    StreamChunk,
    ToolCall,
    Usage,
)

logger = logging.getLogger(__name__)

# Provider -> default environment variable for API key
_PROVIDER_ENV_VARS: Dict[str, Optional[str]] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "azure": "AZURE_OPENAI_API_KEY",
    "gemini": "GOOGLE_API_KEY",
    "ollama": None,
}


def build_litellm_model_string(provider: str, model: str) -> str:
    """Map provider + model to the litellm model string.

    litellm uses prefixed model strings to route to the correct provider.

    Args:
        provider: Provider name (openai, anthropic, azure, gemini, ollama).
        model: Raw model name (e.g. "gpt-4o-mini").

    Returns:
        litellm-compatible model string.
    """
    provider = provider.lower()
    if provider == "openai":
        return model
    if provider in ("anthropic", "azure", "gemini", "ollama"):
        return f"{provider}/{model}"
    return model


def _parse_arguments(raw: Any) -> Dict[str, Any]:
    """Tool-call arguments arrive as a JSON string; bad JSON becomes {}."""
    if isinstance(raw, dict):
        return raw
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"[LiteLLM] Unparseable tool arguments: {raw[:200]}")
        return {}
    return parsed if isinstance(parsed, dict) else {}


class LiteLLMClient(BaseLLMClient):
    """
    LLM client that delegates every call to litellm.

    Example:
        config = LLMConfig(model="gpt-4o-mini", api_key="sk-xxx")
        client = LiteLLMClient(config=config, provider_name="openai")
        response = await client.chat_completion([
            {"role": "user", "content": "¿Cuánto he gastado este mes?"}
        ])
    """

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        provider_name: str = "openai",
        **kwargs,
    ):
        if config is None:
            if "model" not in kwargs:
                raise ValueError("model is required")
            model = kwargs.pop("model")
            config = LLMConfig(model=model, **kwargs)
            kwargs = {}

        super().__init__(config, **kwargs)

        self.provider = provider_name.lower()
        self._litellm_model = build_litellm_model_string(self.provider, self.config.model)

        # Resolve API key: explicit config > env var
        api_key = self.config.api_key
        if not api_key:
            env_var = _PROVIDER_ENV_VARS.get(self.provider)
            if env_var:
                api_key = os.environ.get(env_var)

        self._base_kwargs: Dict[str, Any] = {}
        if self.config.base_url:
            self._base_kwargs["api_base"] = self.config.base_url
        if api_key:
            self._base_kwargs["api_key"] = api_key

        logger.info(
            f"LiteLLMClient initialized: provider={self.provider}, "
            f"litellm_model={self._litellm_model}"
        )

    # ------------------------------------------------------------------
    # Core API methods
    # ------------------------------------------------------------------

    def _build_params(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]],
        **kwargs,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "model": self._litellm_model,
            "messages": messages,
            **self._model_params(self.config.model, **kwargs),
            **self._base_kwargs,
        }
        if tools:
            params["tools"] = tools
            params["tool_choice"] = kwargs.get("tool_choice", "auto")
            if "parallel_tool_calls" in kwargs:
                params["parallel_tool_calls"] = kwargs["parallel_tool_calls"]
        return params

    async def _call_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs,
    ) -> LLMResponse:
        """Make a non-streaming call via litellm.acompletion."""
        import litellm

        params = self._build_params(messages, tools, **kwargs)
        logger.info(
            f"[LiteLLM] model={params['model']}, tools={len(tools) if tools else 0}, "
            f"messages={len(messages)}"
        )

        response = await litellm.acompletion(**params)

        choice = response.choices[0]
        message = choice.message

        tool_calls = None
        if message.tool_calls:
            tool_calls = [
                ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=_parse_arguments(tc.function.arguments),
                )
                for tc in message.tool_calls
            ]

        usage = None
        if response.usage:
            usage = Usage(
                prompt_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
            if self.config.track_costs:
                try:
                    usage.cost = litellm.completion_cost(completion_response=response)
                except Exception as e:
                    logger.debug(f"[LiteLLM] completion_cost unavailable: {e}")

        return LLMResponse(
            content=message.content or "",
            tool_calls=tool_calls,
            stop_reason=self._parse_stop_reason(choice.finish_reason),
            usage=usage,
            model=getattr(response, "model", None) or self.config.model,
            raw_response=response,
        )

    async def _stream_api(
        self,
        messages: List[Dict[str, Any]],
        tools: Optional[List[Dict[str, Any]]] = None,
        **kwargs,
    ) -> AsyncIterator[StreamChunk]:
        """Make a streaming call via litellm.acompletion(stream=True)."""
        import litellm

        params = self._build_params(messages, tools, **kwargs)
        params["stream"] = True
        params["stream_options"] = {"include_usage": True}

        response = await litellm.acompletion(**params)

        # Tool call deltas arrive split across chunks, keyed by index
        tool_call_deltas: Dict[int, Dict[str, Any]] = {}
        model = self.config.model

        async for chunk in response:
            model = getattr(chunk, "model", None) or model
            chunk_usage = getattr(chunk, "usage", None)

            if not chunk.choices:
                # Final chunk may carry only usage
                if chunk_usage:
                    yield StreamChunk(
                        content="",
                        is_final=True,
                        usage=self._stream_usage(litellm, chunk_usage, model),
                        model=model,
                    )
                continue

            choice = chunk.choices[0]
            delta = choice.delta
            content = getattr(delta, "content", None) or ""

            if getattr(delta, "tool_calls", None):
                for tc_delta in delta.tool_calls:
                    slot = tool_call_deltas.setdefault(
                        tc_delta.index, {"id": "", "name": "", "arguments": ""}
                    )
                    if tc_delta.id:
                        slot["id"] = tc_delta.id
                    if tc_delta.function:
                        if tc_delta.function.name:
                            slot["name"] = tc_delta.function.name
                        if tc_delta.function.arguments:
                            slot["arguments"] += tc_delta.function.arguments

            tool_calls = None
            stop_reason = None
            if choice.finish_reason is not None:
                stop_reason = self._parse_stop_reason(choice.finish_reason)
                if tool_call_deltas:
                    tool_calls = [
                        ToolCall(
                            id=tool_call_deltas[idx]["id"],
                            name=tool_call_deltas[idx]["name"],
                            arguments=_parse_arguments(tool_call_deltas[idx]["arguments"]),
                        )
                        for idx in sorted(tool_call_deltas)
                    ]

            yield StreamChunk(
                content=content,
                tool_calls=tool_calls,
                stop_reason=stop_reason,
                usage=self._stream_usage(litellm, chunk_usage, model) if chunk_usage else None,
                model=model,
            )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _stream_usage(self, litellm: Any, raw_usage: Any, model: str) -> Usage:
        usage = Usage(
            prompt_tokens=raw_usage.prompt_tokens or 0,
            completion_tokens=raw_usage.completion_tokens or 0,
            total_tokens=raw_usage.total_tokens or 0,
        )
        if self.config.track_costs:
            try:
                prompt_cost, completion_cost = litellm.cost_per_token(
                    model=model,
                    prompt_tokens=usage.prompt_tokens,
                    completion_tokens=usage.completion_tokens,
                )
                usage.cost = prompt_cost + completion_cost
            except Exception as e:
                logger.debug(f"[LiteLLM] cost_per_token unavailable for {model}: {e}")
        return usage

    @staticmethod
    def _parse_stop_reason(finish_reason: Optional[str]) -> StopReason:
        """Map litellm/OpenAI finish_reason to StopReason enum."""
        if finish_reason is None:
            return StopReason.END_TURN
        mapping = {
            "stop": StopReason.END_TURN,
            "end_turn": StopReason.END_TURN,
            "length": StopReason.MAX_TOKENS,
            "max_tokens": StopReason.MAX_TOKENS,
            "tool_calls": StopReason.TOOL_USE,
            "tool_use": StopReason.TOOL_USE,
            "function_call": StopReason.TOOL_USE,
            "content_filter": StopReason.CONTENT_FILTER,
            "stop_sequence": StopReason.STOP_SEQUENCE,
        }
        return mapping.get(finish_reason, StopReason.END_TURN)
