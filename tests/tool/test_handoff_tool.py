"""Tests for HandoffTool."""

from __future__ import annotations

from agent_relay.agent.Agent import Agent
from agent_relay.run.RunContext import RunContext
from agent_relay.tool.HandoffTool import HandoffTool, handoff_tool_name
from agent_relay.tool.ToolContext import ToolContext


class TestHandoffTool:
    """Tests for building and executing handoff tools."""

    def test_name_and_default_description(self) -> None:
        """The tool is named after the target in snake_case."""
        tool = HandoffTool.for_agent(Agent("Billing Agent"))
        assert tool.name == "transfer_to_billing_agent"
        assert tool.description == "Transfer to Billing Agent"
        assert handoff_tool_name("FAQAgent") == "transfer_to_faq_agent"

    def test_name_without_ascii_uses_hash_slug(self) -> None:
        """A name that snake_case empties gets a stable hash slug."""
        name = handoff_tool_name("Соня")
        assert name.startswith("transfer_to_agent_")
        assert name == handoff_tool_name("Соня")
        assert name != handoff_tool_name("Иван")

    def test_long_name_is_bounded(self) -> None:
        """A very long agent name still yields a valid tool name."""
        name = HandoffTool.for_agent(Agent("Enterprise " * 10)).name
        assert len(name) <= 64
        assert name.startswith("transfer_to_enterprise_")

    def test_custom_description(self) -> None:
        """The target's handoff_description is used when set."""
        target = Agent("Billing", handoff_description="Billing questions and refunds")
        assert HandoffTool.for_agent(target).description == "Billing questions and refunds"

    def test_reason_is_optional(self) -> None:
        """The schema exposes an optional reason."""
        schema = HandoffTool.for_agent(Agent("Billing")).json_schema()
        assert "reason" in schema["properties"]
        assert schema["required"] == []

    def test_execute_sets_pending_handoff(self) -> None:
        """Executing records a pending handoff instead of switching anything itself."""
        target = Agent("Billing")
        run_ctx = RunContext()
        result = HandoffTool.for_agent(target).execute(
            ToolContext(run_ctx, tool_call_id="call_1"), {"reason": "refund"}
        )
        assert result == "Transferring to Billing"
        pending = run_ctx.pending_handoff
        assert pending is not None
        assert pending.target is target
        assert pending.reason == "refund"
        assert pending.tool_call_id == "call_1"

    def test_second_handoff_is_ignored(self) -> None:
        """Only the first handoff in a turn is kept."""
        run_ctx = RunContext()
        billing, support = Agent("Billing"), Agent("Support")
        HandoffTool.for_agent(billing).execute(ToolContext(run_ctx), {})
        result = HandoffTool.for_agent(support).execute(ToolContext(run_ctx), {})
        assert result.startswith("Ignored transfer to Support")
        assert run_ctx.pending_handoff is not None
        assert run_ctx.pending_handoff.target is billing
