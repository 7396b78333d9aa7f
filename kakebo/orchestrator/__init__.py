"""
Kakebo Orchestrator Module

Runs one conversational finance turn:
- Resolver (keyword router or function calling)
- Confirmation Gate for write tools
- Parallel tool execution
- Synthesis of the final reply
- Per-turn metrics

Quick Start:
    from kakebo.orchestrator import Orchestrator, OrchestratorConfig

    orchestrator = Orchestrator(registry, llm_client, store, OrchestratorConfig())

    # Handle message
    response = await orchestrator.handle_message(user_id, message)

    # Stream events
    async for event in orchestrator.stream_message(user_id, message):
        print(event.to_dict())
"""

from .config import (
    RESOLVER_FUNCTION_CALLING,
    RESOLVER_KEYWORD_ROUTER,
    RESOLVER_MODES,
    OrchestratorConfig,
)
from .confirmation import ConfirmationGate, GateDecision, action_matches
from .metrics import MetricsAccountant
from .orchestrator import Orchestrator
from .resolver import FunctionCallingResolver, KeywordRouterResolver, Resolution
from .router import IntentClassification, KeywordRouter
from .synthesizer import Synthesizer
from .tool_policy import ToolCallPolicy

__all__ = [
    "Orchestrator",
    "OrchestratorConfig",
    "RESOLVER_FUNCTION_CALLING",
    "RESOLVER_KEYWORD_ROUTER",
    "RESOLVER_MODES",
    "ConfirmationGate",
    "GateDecision",
    "action_matches",
    "MetricsAccountant",
    "Resolution",
    "KeywordRouterResolver",
    "FunctionCallingResolver",
    "KeywordRouter",
    "IntentClassification",
    "Synthesizer",
    "ToolCallPolicy",
]
