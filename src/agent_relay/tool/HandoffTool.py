"""HandoffTool - a tool whose only effect is to switch the active agent.

One HandoffTool is generated per handoff target each time an agent lists its
tools. Executing it does no work: it leaves a PendingHandoff marker in the
run context and returns a short acknowledgement. The acknowledgement is only
kept as the tool result in history for auditing; the end user never sees a
"transfer" message, the next agent simply answers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from agent_relay.run.RunContext import PendingHandoff
from agent_relay.tool.Tool import Tool
from agent_relay.tool.ToolContext import ToolContext
from agent_relay.tool.ToolMetadata import Param
from agent_relay.util.naming import bounded_tool_name, name_slug

if TYPE_CHECKING:
    from agent_relay.agent.Agent import Agent


HANDOFF_PARAMS = {
    "reason": Param("string", "Reason for the transfer (optional)", required=False),
}


def handoff_tool_name(target_name: str) -> str:
    """Tool name for a handoff to the named agent, e.g. "transfer_to_billing_agent".

    Names without ASCII letters or digits fall back to a hash slug, and the
    result never exceeds the API's tool name limit.
    """
    return bounded_tool_name(f"transfer_to_{name_slug(target_name)}")


@dataclass(frozen=True, eq=False)
class HandoffTool(Tool):
    """A Tool bound to one target agent.

    Attributes:
        target: The agent the conversation moves to when this tool is called
    """

    target: Agent | None = None

    @classmethod
    def for_agent(cls, target: Agent) -> HandoffTool:
        description = target.handoff_description or f"Transfer to {target.name}"
        return cls(
            name=handoff_tool_name(target.name),
            description=description,
            params=HANDOFF_PARAMS,
            target=target,
        )

    def perform(self, context: ToolContext, **kwargs: Any) -> str:
        """Record the pending handoff and return an audit-only acknowledgement.

        Only the first handoff requested in a turn is kept. A later one is
        answered with a note that it was ignored.
        """
        assert self.target is not None
        reason = kwargs.get("reason")
        accepted = context.run_context.request_handoff(
            PendingHandoff(
                target=self.target, reason=reason, tool_call_id=context.tool_call_id
            )
        )
        if not accepted:
            return f"Ignored transfer to {self.target.name}: another transfer is already in progress"
        return f"Transferring to {self.target.name}"
