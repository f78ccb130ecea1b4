"""Tests for AgentRunner."""

from __future__ import annotations

import threading
from collections.abc import Sequence
from typing import Any

import pytest

from agent_relay.agent.Agent import Agent
from agent_relay.agent.ChatTypes import ChatResponse, ToolCall
from agent_relay.agent_app.AgentRunner import AgentRunner
from agent_relay.run.RunContext import RunContext
from agent_relay.tool.ToolMetadata import ToolMetadata


class MockChatClient:
    """Chat client returning scripted responses in order and recording system prompts."""

    def __init__(self, *responses: ChatResponse) -> None:
        self.responses = list(responses)
        self.systems: list[str] = []
        self._lock = threading.Lock()

    def complete(
        self,
        system: str,
        history: Sequence[dict[str, Any]],
        tools: Sequence[ToolMetadata],
        **kwargs: Any,
    ) -> ChatResponse:
        with self._lock:
            self.systems.append(system)
            return self.responses.pop(0)


class EchoChatClient:
    """Answers every request with the system prompt, so each agent is recognisable."""

    def complete(self, system, history, tools, **kwargs) -> ChatResponse:  # type: ignore[no-untyped-def]
        return ChatResponse(content=f"{system}: {history[-1]['content']}")


def support_agents() -> tuple[Agent, Agent, Agent]:
    triage = Agent("Triage", instructions="triage")
    billing = Agent("Billing", instructions="billing")
    faq = Agent("FAQ", instructions="faq")
    triage.register_handoffs(billing, faq)
    billing.register_handoffs(triage)
    faq.register_handoffs(triage)
    return triage, billing, faq


class TestConstruction:
    """Tests for building an AgentRunner."""

    def test_requires_agents(self) -> None:
        """At least one agent is required."""
        with pytest.raises(ValueError):
            AgentRunner([], MockChatClient())

    def test_first_agent_is_default(self) -> None:
        """The first agent is the default."""
        triage, billing, faq = support_agents()
        app = AgentRunner([triage, billing, faq], MockChatClient())
        assert app.default_agent is triage
        assert app.get_agent("FAQ") is faq
        assert app.get_agent("Nobody") is None

    def test_registry_is_read_only(self) -> None:
        """The name table can't be modified."""
        triage, billing, faq = support_agents()
        app = AgentRunner([triage, billing, faq], MockChatClient())
        with pytest.raises(TypeError):
            app.registry["Other"] = Agent("Other")  # type: ignore[index]

    def test_with_agents(self) -> None:
        """with_agents builds the same runner from positional agents."""
        triage, billing, faq = support_agents()
        app = AgentRunner.with_agents(triage, billing, faq, client=MockChatClient())
        assert app.agents == (triage, billing, faq)


class TestDetermineConversationAgent:
    """Tests for picking the agent that answers next."""

    def test_new_conversation_uses_default(self) -> None:
        """No history means the default agent."""
        triage, billing, faq = support_agents()
        app = AgentRunner([triage, billing, faq], MockChatClient())
        assert app.determine_conversation_agent(None) is triage
        assert app.determine_conversation_agent({}) is triage

    def test_last_assistant_agent(self) -> None:
        """The last assistant message with an agent name decides."""
        triage, billing, faq = support_agents()
        app = AgentRunner([triage, billing, faq], MockChatClient())
        context = {
            "conversation_history": [
                {"role": "user", "content": "refund"},
                {"role": "assistant", "content": "", "agent_name": "Triage", "tool_calls": []},
                {"role": "assistant", "content": "Sure", "agent_name": "Billing"},
                {"role": "user", "content": "thanks"},
            ]
        }
        assert app.determine_conversation_agent(context) is billing

    def test_accepts_run_context(self) -> None:
        """A RunContext works as well as a dict."""
        triage, billing, faq = support_agents()
        app = AgentRunner([triage, billing, faq], MockChatClient())
        ctx = RunContext(
            conversation_history=[{"role": "assistant", "content": "hi", "agent_name": "FAQ"}]
        )
        assert app.determine_conversation_agent(ctx) is faq

    def test_unknown_agent_falls_back(self, caplog: pytest.LogCaptureFixture) -> None:
        """An agent name not in the registry falls back to the default."""
        triage, billing, faq = support_agents()
        app = AgentRunner([triage, billing, faq], MockChatClient())
        context = {
            "conversation_history": [
                {"role": "assistant", "content": "hi", "agent_name": "Retired Agent"}
            ]
        }
        with caplog.at_level("WARNING", logger="agent_relay"):
            assert app.determine_conversation_agent(context) is triage
        assert "Retired Agent" in caplog.text


class TestRun:
    """Tests for AgentRunner.run across conversation turns."""

    def test_resume_routes_to_billing(self) -> None:
        """After a handoff to Billing, the next turn goes straight to Billing."""
        triage, billing, faq = support_agents()
        client = MockChatClient(
            ChatResponse(tool_calls=(ToolCall("c1", "transfer_to_billing"),)),
            ChatResponse(content="I can help with your refund."),
            ChatResponse(content="Refund issued."),
        )
        app = AgentRunner([triage, billing, faq], client)

        first = app.run("I was charged twice")
        second = app.run("Please refund me", context=first.context.to_dict())

        assert first.current_agent == "Billing"
        assert second.output == "Refund issued."
        assert second.current_agent == "Billing"
        assert client.systems == ["triage", "billing", "billing"]

    def test_handoff_across_registry(self) -> None:
        """Handoffs use agent references, so targets need no extra lookup."""
        triage, billing, faq = support_agents()
        client = MockChatClient(
            ChatResponse(tool_calls=(ToolCall("c1", "transfer_to_faq"),)),
            ChatResponse(content="Bags up to 23kg."),
        )
        result = AgentRunner([triage, billing, faq], client).run("Baggage allowance?")
        assert result.output == "Bags up to 23kg."
        assert result.current_agent == "FAQ"

    def test_concurrent_conversations(self) -> None:
        """One AgentRunner serves many conversations from many threads."""
        triage, billing, faq = support_agents()
        app = AgentRunner([triage, billing, faq], EchoChatClient())
        outputs: dict[int, Any] = {}

        def converse(i: int) -> None:
            context = {
                "conversation_history": [
                    {"role": "assistant", "content": "hi", "agent_name": "FAQ" if i % 2 else "Billing"}
                ]
            }
            outputs[i] = app.run(f"question {i}", context=context).output

        threads = [threading.Thread(target=converse, args=(i,)) for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for i, output in outputs.items():
            expected = "faq" if i % 2 else "billing"
            assert output == f"{expected}: question {i}"

    def test_callback_registration_is_chainable(self) -> None:
        """on_* methods return the runner and their callbacks fire."""
        triage, billing, faq = support_agents()
        client = MockChatClient(
            ChatResponse(tool_calls=(ToolCall("c1", "transfer_to_billing", {"reason": "refund"}),)),
            ChatResponse(content="ok"),
        )
        events: list[str] = []
        app = AgentRunner([triage, billing, faq], client)

        returned = (
            app.on_agent_thinking(lambda name, inp: events.append(f"thinking:{name}"))
            .on_tool_start(lambda tool, args: events.append(f"start:{tool}"))
            .on_tool_complete(lambda tool, res: events.append(f"complete:{tool}"))
            .on_agent_handoff(lambda f, t, r: events.append(f"handoff:{f}->{t}:{r}"))
        )
        app.run("refund")

        assert returned is app
        assert events == [
            "thinking:Triage",
            "start:transfer_to_billing",
            "complete:transfer_to_billing",
            "handoff:Triage->Billing:refund",
            "thinking:Billing",
        ]
