"""Protocol for chat clients.

Any client that implements complete(...) -> ChatResponse can drive the Runner.
This allows swapping between different LLM providers (Anthropic, OpenAI, a
test double, etc.)
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

from agent_relay.agent.ChatTypes import ChatResponse
from agent_relay.tool.ToolMetadata import ToolMetadata
from agent_relay.util.json_utils import JSONSchema


class ChatClient(Protocol):
    """Protocol for one LLM round-trip.

    Any class with a complete method matching this signature satisfies the protocol.
    """

    def complete(
        self,
        system: str,
        history: Sequence[dict[str, Any]],
        tools: Sequence[ToolMetadata],
        *,
        model: str | None = None,
        response_schema: JSONSchema | None = None,
        deadline: float | None = None,
    ) -> ChatResponse:
        """Ask the model for the next step.

        Args:
            system: Resolved system instructions of the active agent
            history: Conversation history; user, assistant (optionally with
                tool_calls) and tool (with tool_call_id) entries
            tools: Tools the model may call this turn
            model: Model identifier of the active agent
            response_schema: When given, the final answer must be coerced into
                structured data matching this schema
            deadline: Absolute time.monotonic() value the call must finish by

        Returns:
            Final content, tool calls, or both, plus usage

        Raises:
            ModelError: If the provider call fails
        """
        ...
