"""AgentRunner - a fixed set of agents behind one entry point.

AgentRunner is built once at startup with every agent a conversation may
reach. Each call to run() picks the agent that should answer, from the
conversation history, and executes one Runner.run with it. The first agent is
the default for new conversations.

The agent table is immutable after construction, so one AgentRunner can serve
many conversations from many threads at once.

Usage:
    triage = Agent("Triage", instructions="Route the customer.")
    billing = Agent("Billing", instructions="Handle billing questions.")
    triage.register_handoffs(billing)
    billing.register_handoffs(triage)

    app = AgentRunner([triage, billing], ClaudeClient())
    result = app.run("I was charged twice")
    result = app.run("Can I get a refund?", context=result.context.to_dict())
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from types import MappingProxyType
from typing import Any

from agent_relay.agent.Agent import Agent, agents_by_name
from agent_relay.agent.ChatClient import ChatClient
from agent_relay.config.Configuration import Configuration
from agent_relay.run.Callbacks import Callback, CallbackEvent, CallbackManager
from agent_relay.run.RunContext import RunContext
from agent_relay.run.RunResult import RunResult
from agent_relay.run.Runner import Runner

logger = logging.getLogger(__name__)


class AgentRunner:
    """Thread-safe entry point for multi-agent conversations."""

    _agents: tuple[Agent, ...]
    _registry: Mapping[str, Agent]

    def __init__(
        self,
        agents: Sequence[Agent],
        client: ChatClient,
        config: Configuration | None = None,
        callbacks: CallbackManager | None = None,
    ) -> None:
        """Create an AgentRunner.

        Args:
            agents: Every agent the conversation may reach. The first one is the
                default for new conversations.
            client: Chat client shared by every run
            config: Runner configuration
            callbacks: Lifecycle callbacks; more can be added with on_* methods

        Raises:
            ValueError: If no agents are given
        """
        if not agents:
            raise ValueError("At least one agent must be provided")
        self._agents = tuple(agents)
        self._registry = MappingProxyType(agents_by_name(self._agents))
        self._config = config or Configuration()
        self._callbacks = callbacks or CallbackManager()
        self._runner = Runner(client, self._config, self._callbacks)

    @classmethod
    def with_agents(
        cls,
        *agents: Agent,
        client: ChatClient,
        config: Configuration | None = None,
    ) -> AgentRunner:
        return cls(agents, client, config)

    @property
    def agents(self) -> tuple[Agent, ...]:
        return self._agents

    @property
    def default_agent(self) -> Agent:
        return self._agents[0]

    @property
    def registry(self) -> Mapping[str, Agent]:
        return self._registry

    def get_agent(self, name: str) -> Agent | None:
        """Get an agent by name, or None if not registered."""
        return self._registry.get(name)

    def determine_conversation_agent(
        self, context: RunContext | Mapping[str, Any] | None
    ) -> Agent:
        """Pick the agent that should answer next.

        The last assistant message carrying an agent name decides. New
        conversations, and histories naming an agent this runner doesn't know,
        fall back to the default agent.
        """
        if isinstance(context, RunContext):
            history = context.conversation_history
        else:
            history = list((context or {}).get("conversation_history") or [])

        for message in reversed(history):
            if message.get("role") == "assistant" and message.get("agent_name"):
                name = message["agent_name"]
                agent = self._registry.get(name)
                if agent is None:
                    logger.warning(
                        "Agent '%s' from history is not registered; using '%s'",
                        name,
                        self.default_agent.name,
                    )
                    return self.default_agent
                return agent
        return self.default_agent

    def run(
        self,
        input: str,
        context: RunContext | Mapping[str, Any] | None = None,
        max_turns: int | None = None,
        deadline: float | None = None,
    ) -> RunResult:
        """Run one conversation turn with the appropriate agent.

        Args:
            input: The user's message (empty to resume without new input)
            context: The previous result's context, or its to_dict() snapshot
            max_turns: Turn budget for this run
            deadline: Absolute time.monotonic() value passed to the chat client

        Returns:
            The RunResult; failures are captured, never raised
        """
        agent = self.determine_conversation_agent(context)
        return self._runner.run(
            agent,
            input,
            context=context,
            registry=self._registry,
            max_turns=max_turns,
            deadline=deadline,
        )

    # Callback registration

    def _on(self, event: CallbackEvent, callback: Callback) -> AgentRunner:
        self._callbacks.register(event, callback)
        return self

    def on_tool_start(self, callback: Callback) -> AgentRunner:
        """Called as callback(tool_name, args) before each tool runs."""
        return self._on(CallbackEvent.TOOL_START, callback)

    def on_tool_complete(self, callback: Callback) -> AgentRunner:
        """Called as callback(tool_name, result) after each tool runs."""
        return self._on(CallbackEvent.TOOL_COMPLETE, callback)

    def on_agent_thinking(self, callback: Callback) -> AgentRunner:
        """Called as callback(agent_name, input) before each model call."""
        return self._on(CallbackEvent.AGENT_THINKING, callback)

    def on_agent_handoff(self, callback: Callback) -> AgentRunner:
        """Called as callback(from_agent, to_agent, reason) on every handoff."""
        return self._on(CallbackEvent.AGENT_HANDOFF, callback)
