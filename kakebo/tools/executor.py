"""
Kakebo Tool Executor - Run a batch of resolved tool calls concurrently

Every call in a batch is started before any is awaited. A failing tool
becomes a ``success=False`` ToolResult; it never aborts its siblings and
never raises past this module.
"""

import asyncio
import logging
import time
from typing import Dict, List, Optional

from ..errors import InputValidationError
from ..models import ToolCallRequest, ToolContext, ToolResult
from .errors import ERROR_UNKNOWN, classify_error, tool_error_message
from .registry import ToolRegistry

logger = logging.getLogger(__name__)


def result_key(tool_name: str, seen: Dict[str, int]) -> str:
    """Map key for a tool result; repeated tool names get a ``#n`` suffix."""
    seen[tool_name] = seen.get(tool_name, 0) + 1
    count = seen[tool_name]
    return tool_name if count == 1 else f"{tool_name}#{count}"


class ToolExecutor:
    """
    Executes resolved tool calls against the registry.

    Usage:
        executor = ToolExecutor(registry, timeout=30)
        results = await executor.execute(
            calls,
            ToolContext(data_store=store, user_id="user-1"),
        )
    """

    def __init__(self, registry: ToolRegistry, timeout: Optional[float] = 30.0):
        """
        Args:
            registry: Frozen ToolRegistry
            timeout: Per-tool timeout in seconds (None disables it)
        """
        self.registry = registry
        self.timeout = timeout

    async def execute(
        self,
        calls: List[ToolCallRequest],
        context: ToolContext,
    ) -> Dict[str, ToolResult]:
        """
        Run all calls in parallel and collect their result envelopes.

        Returns:
            Mapping tool name -> ToolResult, one entry per call, in call order
        """
        if not context.user_id:
            raise InputValidationError("Tool execution requires a bound user id")
        if not calls:
            return {}

        outcomes = await asyncio.gather(
            *[self._execute_with_timeout(call, context) for call in calls],
            return_exceptions=True,
        )

        results: Dict[str, ToolResult] = {}
        seen: Dict[str, int] = {}
        for call, outcome in zip(calls, outcomes):
            if isinstance(outcome, BaseException):
                # Only cancellation can get here; _execute_tool handles the rest
                logger.warning(f"[ToolExecutor] '{call.tool_name}' did not complete: {outcome!r}")
                outcome = ToolResult.failed(
                    tool_error_message(call.tool_name, outcome), ERROR_UNKNOWN
                )
            results[result_key(call.tool_name, seen)] = outcome

        failed = sum(1 for r in results.values() if not r.success)
        logger.info(
            f"[ToolExecutor] batch done: {len(results)} tools, {failed} failed "
            f"(user={context.user_id})"
        )
        return results

    async def _execute_with_timeout(
        self,
        call: ToolCallRequest,
        context: ToolContext,
    ) -> ToolResult:
        if self.timeout is None:
            return await self._execute_tool(call, context)
        try:
            return await asyncio.wait_for(self._execute_tool(call, context), timeout=self.timeout)
        except asyncio.TimeoutError:
            error = TimeoutError(f"Tool '{call.tool_name}' timed out after {self.timeout}s")
            logger.error(f"[ToolExecutor] {error}")
            return ToolResult.failed(
                tool_error_message(call.tool_name, error), classify_error(error)
            )

    async def _execute_tool(self, call: ToolCallRequest, context: ToolContext) -> ToolResult:
        """Execute a single tool call"""
        tool = self.registry.get_tool(call.tool_name)
        if tool is None:
            logger.warning(f"[ToolExecutor] Unknown tool '{call.tool_name}'")
            return ToolResult.failed(f"Herramienta desconocida: {call.tool_name}", ERROR_UNKNOWN)

        start = time.monotonic()
        try:
            data = await tool.executor(dict(call.arguments), context)
        except Exception as e:
            error_type = classify_error(e)
            logger.error(
                f"[ToolExecutor] Tool '{call.tool_name}' failed ({error_type}): {e}",
                exc_info=True,
            )
            return ToolResult.failed(tool_error_message(call.tool_name, e), error_type)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        logger.info(f"[ToolExecutor] Tool '{call.tool_name}' succeeded in {elapsed_ms}ms")
        return ToolResult.ok(data)
