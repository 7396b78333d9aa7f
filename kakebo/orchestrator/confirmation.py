"""
Confirmation Gate - blocks state-mutating tool calls until the user confirms

The gate is stateless: a blocked turn returns a PendingAction that the
client echoes back as ``confirmed_action`` on its next request. A call is
authorized only by an action with the same tool name and the same
arguments.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from ..models import (
    GENERIC_CONFIRMATION_MESSAGE,
    ConfirmationRequest,
    PendingAction,
    ToolCallRequest,
)
from ..tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass
class GateDecision:
    """Either ``proceed`` with ``calls`` or blocked with ``confirmation``."""

    calls: List[ToolCallRequest] = field(default_factory=list)
    confirmation: Optional[ConfirmationRequest] = None

    @property
    def proceed(self) -> bool:
        return self.confirmation is None

    @property
    def blocked(self) -> bool:
        return self.confirmation is not None


def action_matches(call: ToolCallRequest, action: Optional[PendingAction]) -> bool:
    """Same tool name and same arguments. The call id is not compared."""
    if action is None:
        return False
    return call.tool_name == action.tool_name and call.arguments == action.arguments


class ConfirmationGate:
    """
    Usage:
        gate = ConfirmationGate(registry, enabled=config.enable_write_confirmation)
        decision = gate.check(calls, confirmed_action)
        if decision.blocked:
            return decision.confirmation
    """

    def __init__(self, registry: ToolRegistry, enabled: bool):
        self.registry = registry
        self.enabled = enabled

    def check(
        self,
        calls: List[ToolCallRequest],
        confirmed_action: Optional[PendingAction] = None,
    ) -> GateDecision:
        if not self.enabled:
            return GateDecision(calls=list(calls))

        for call in calls:
            if not self.registry.requires_confirmation(call.tool_name):
                continue
            if action_matches(call, confirmed_action):
                logger.info(f"[ConfirmationGate] '{call.tool_name}' confirmed by the user")
                continue
            if confirmed_action is not None:
                logger.info(
                    f"[ConfirmationGate] Confirmed action '{confirmed_action.tool_name}' "
                    f"does not match '{call.tool_name}'; asking again"
                )
            return GateDecision(confirmation=self._build_request(call))

        return GateDecision(calls=list(calls))

    def _build_request(self, call: ToolCallRequest) -> ConfirmationRequest:
        message = self._describe(call)
        logger.info(f"[ConfirmationGate] Blocking turn on '{call.tool_name}'")
        return ConfirmationRequest(
            message=message,
            pending_action=PendingAction.from_call(call, message),
        )

    def _describe(self, call: ToolCallRequest) -> str:
        tool = self.registry.get_tool(call.tool_name)
        if tool is None:
            return GENERIC_CONFIRMATION_MESSAGE
        try:
            return tool.describe_call(call.arguments) or GENERIC_CONFIRMATION_MESSAGE
        except Exception as e:
            logger.warning(
                f"[ConfirmationGate] Template for '{call.tool_name}' failed: {e}; "
                f"using the generic message"
            )
            return GENERIC_CONFIRMATION_MESSAGE
