"""
Kakebo Tool Registry - Static catalogue of domain tools

Built once at startup, then frozen. It is the single source of truth for
which tools mutate state and therefore need confirmation.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..models import ToolDefinition

logger = logging.getLogger(__name__)


class ToolRegistry:
    """
    Name -> ToolDefinition lookup shared (read-only) by every turn.

    Usage:
        registry = ToolRegistry([analyze_spending_pattern, create_transaction])
        registry.freeze()
        schemas = registry.get_tools_schema()
    """

    def __init__(self, tools: Iterable[ToolDefinition] = ()):
        self._tools: Dict[str, ToolDefinition] = {}
        self._frozen = False
        for tool in tools:
            self.register(tool)

    def register(self, tool: ToolDefinition) -> None:
        """Add a tool. Names must be unique; no changes after freeze()."""
        if self._frozen:
            raise RuntimeError("ToolRegistry is frozen; register tools at startup")
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name} (confirm={tool.requires_confirmation})")

    def freeze(self) -> "ToolRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_tool(self, name: str) -> Optional[ToolDefinition]:
        return self._tools.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> List[str]:
        return list(self._tools)

    def requires_confirmation(self, name: str) -> bool:
        """Unknown names never require confirmation (they never execute)."""
        tool = self._tools.get(name)
        return bool(tool and tool.requires_confirmation)

    def confirmable_names(self) -> List[str]:
        return [name for name, tool in self._tools.items() if tool.requires_confirmation]

    def get_tools_schema(self, names: Optional[Iterable[str]] = None) -> List[Dict[str, Any]]:
        """OpenAI-format schemas, for all tools or the given subset."""
        if names is None:
            return [tool.to_openai_schema() for tool in self._tools.values()]
        schemas = []
        for name in names:
            tool = self._tools.get(name)
            if tool is None:
                logger.warning(f"Tool not found in registry: {name}")
                continue
            schemas.append(tool.to_openai_schema())
        return schemas
