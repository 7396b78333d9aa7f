"""
Kakebo Tools - Registry and executor for domain tools

Provides:
- ToolRegistry: Static, frozen catalogue of ToolDefinitions
- ToolExecutor: Parallel, failure-isolated execution of a tool batch
- classify_error / user_friendly_error: Tool failure presentation
"""

from .errors import classify_error, tool_error_message, user_friendly_error
from .executor import ToolExecutor
from .registry import ToolRegistry

__all__ = [
    "ToolRegistry",
    "ToolExecutor",
    "classify_error",
    "tool_error_message",
    "user_friendly_error",
]
