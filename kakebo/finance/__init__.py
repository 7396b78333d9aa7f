"""
Kakebo finance domain - tools over the user's expenses, budgets and cycles.
"""

from typing import List

from ..models import ToolDefinition
from ..tools.registry import ToolRegistry
from .read_tools import READ_TOOLS
from .store import FinanceStore
from .write_tools import WRITE_TOOLS

ALL_TOOLS: List[ToolDefinition] = READ_TOOLS + WRITE_TOOLS


def build_registry() -> ToolRegistry:
    """A frozen registry holding every finance tool."""
    registry = ToolRegistry(ALL_TOOLS)
    registry.freeze()
    return registry


__all__ = ["ALL_TOOLS", "FinanceStore", "build_registry"]
