"""AgentTool - wraps an agent so another agent can call it like a function.

Unlike a handoff, the calling agent keeps the conversation. The wrapped agent
runs a separate, isolated run on a deep copy of the caller's state bag with an
empty history; nothing it writes flows back. Only its token usage is added to
the caller's totals.

Example:
    researcher = Agent("Researcher", instructions="Answer research questions.")
    lead = Agent(
        "Lead",
        tools=[AgentTool.for_agent(researcher, client, description="Ask the researcher")],
    )
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from agent_relay.run.Runner import Runner
from agent_relay.tool.Tool import Tool
from agent_relay.tool.ToolContext import ToolContext
from agent_relay.tool.ToolMetadata import Param
from agent_relay.util.naming import bounded_tool_name, name_slug

if TYPE_CHECKING:
    from agent_relay.agent.Agent import Agent
    from agent_relay.agent.ChatClient import ChatClient
    from agent_relay.config.Configuration import Configuration
    from agent_relay.run.RunResult import RunResult

logger = logging.getLogger(__name__)

AGENT_TOOL_PARAMS = {"input": Param("string", "Input for the agent")}

type OutputExtractor = Callable[[RunResult], Any]


@dataclass(frozen=True, eq=False)
class AgentTool(Tool):
    """A Tool that runs a nested agent and returns its output.

    Attributes:
        agent: The wrapped agent
        client: Chat client used for the nested run
        output_extractor: Turns the nested RunResult into the tool result
        max_turns: Turn budget of the nested run
        config: Configuration for the nested runner
    """

    agent: Agent | None = None
    client: ChatClient | None = None
    output_extractor: OutputExtractor | None = None
    max_turns: int = 3
    config: Configuration | None = None

    @classmethod
    def for_agent(
        cls,
        agent: Agent,
        client: ChatClient,
        name: str | None = None,
        description: str | None = None,
        output_extractor: OutputExtractor | None = None,
        max_turns: int = 3,
        config: Configuration | None = None,
    ) -> AgentTool:
        return cls(
            name=bounded_tool_name(name or name_slug(agent.name)),
            description=description or f"Run {agent.name} agent",
            params=AGENT_TOOL_PARAMS,
            agent=agent,
            client=client,
            output_extractor=output_extractor,
            max_turns=max_turns,
            config=config,
        )

    def perform(self, context: ToolContext, **kwargs: Any) -> Any:
        assert self.agent is not None and self.client is not None
        try:
            runner = Runner(self.client, self.config)
            result = runner.run(
                self.agent,
                kwargs["input"],
                context={"state": context.run_context.copy_state()},
                max_turns=self.max_turns,
            )
            context.run_context.add_usage(result.usage)
            if result.error is not None:
                return f"Agent execution failed: {result.error}"
            if self.output_extractor is not None:
                return self.output_extractor(result)
            if result.output is None or result.output == "":
                return f"No output from {self.agent.name}"
            return result.output
        except Exception as e:
            logger.warning("Agent tool '%s' failed: %s", self.name, e)
            return f"Error executing {self.agent.name}: {e}"
