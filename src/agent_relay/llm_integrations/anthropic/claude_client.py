from __future__ import annotations

import time
from collections.abc import Sequence
from typing import Any, Literal, Unpack

import anthropic
from anthropic.types import MessageParam, TextBlock, ToolParam, ToolUseBlock
from anthropic.types.message_create_params import MessageCreateParamsBase

from agent_relay.agent.ChatTypes import ChatResponse, ToolCall
from agent_relay.config.Configuration import Configuration
from agent_relay.errors import ModelError
from agent_relay.run.Usage import Usage
from agent_relay.tool.ToolMetadata import ToolMetadata
from agent_relay.util.json_utils import JSONSchema, json

CLAUDE_MODELS = {
    "sonnet": "claude-sonnet-4-5",
    "haiku": "claude-haiku-4-5",
    "opus": "claude-opus-4-5",
}

STRUCTURED_OUTPUT_TOOL = "structured_output"


def resolve_model(model: str) -> str:
    """Map a short size name ("haiku") to a model id; other ids pass through."""
    return CLAUDE_MODELS.get(model, model)


# Core Claude interaction
class ClaudeClient:
    """ChatClient backed by the Anthropic Messages API."""

    config: dict[str, Any]

    def __init__(
        self,
        configuration: Configuration | None = None,
        client: anthropic.Anthropic | None = None,
    ):
        self.configuration = configuration or Configuration.from_env()
        self.client = client or anthropic.Anthropic(
            api_key=self.configuration.anthropic_api_key,
            timeout=self.configuration.request_timeout,
        )
        self.config = {
            "max_tokens": 1024,
            "temperature": 0.7,
        }

    def set_config(self, **kwargs: Unpack[MessageCreateParamsBase]) -> None:
        """Update the request config with the provided kwargs.

        Args:
            **kwargs: Any valid MessageCreateParamsBase fields (max_tokens, temperature, top_p, top_k, stop_sequences, etc.)
        """
        self.config.update(kwargs)

    @staticmethod
    def _append(messages: list[MessageParam], role: Literal["user", "assistant"], blocks: list[Any]) -> None:
        """Append content blocks, merging with the previous message of the same role."""
        if not blocks:
            return
        if messages and messages[-1]["role"] == role:
            previous = messages[-1]["content"]
            assert isinstance(previous, list)
            previous.extend(blocks)
            return
        messages.append({"role": role, "content": blocks})

    @staticmethod
    def to_claude_messages(history: Sequence[dict[str, Any]]) -> list[MessageParam]:
        """Convert run history into Anthropic messages.

        Assistant tool calls become tool_use blocks and tool entries become
        tool_result blocks in the following user message.
        """
        messages: list[MessageParam] = []
        for msg in history:
            content = msg.get("content")
            text = content if isinstance(content, str) else json.to_string(content)
            match msg.get("role"):
                case "user":
                    ClaudeClient._append(messages, "user", [{"type": "text", "text": text}])
                case "assistant":
                    blocks: list[Any] = []
                    if content not in (None, ""):
                        blocks.append({"type": "text", "text": text})
                    for raw in msg.get("tool_calls") or []:
                        call = ToolCall.from_dict(raw)
                        blocks.append(
                            {
                                "type": "tool_use",
                                "id": call.id,
                                "name": call.name,
                                "input": dict(call.arguments),
                            }
                        )
                    ClaudeClient._append(messages, "assistant", blocks)
                case "tool":
                    result: dict[str, Any] = {
                        "type": "tool_result",
                        "tool_use_id": msg["tool_call_id"],
                        "content": "" if content is None else text,
                    }
                    if msg.get("is_error"):
                        result["is_error"] = True
                    ClaudeClient._append(messages, "user", [result])
        return messages

    @staticmethod
    def to_claude_tools(tools: Sequence[ToolMetadata]) -> list[ToolParam]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": dict(tool.parameters),
            }
            for tool in tools
        ]

    def _timeout(self, deadline: float | None) -> float:
        if deadline is None:
            return self.configuration.request_timeout
        return max(deadline - time.monotonic(), 0.001)

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
        """Get the next step from Claude.

        When response_schema is given, Claude must either call one of the
        tools or the structured output tool; the latter's input becomes the
        response content.

        Raises:
            ModelError: If the Anthropic API call fails
        """
        claude_tools = self.to_claude_tools(tools)
        params: dict[str, Any] = {
            **self.config,
            "model": resolve_model(model or self.configuration.default_model),
            "system": system,
            "messages": self.to_claude_messages(history),
        }
        if response_schema is not None:
            claude_tools.append(
                {
                    "name": STRUCTURED_OUTPUT_TOOL,
                    "description": "Return the final answer in the required structure",
                    "input_schema": dict(response_schema),
                }
            )
            if len(claude_tools) == 1:
                params["tool_choice"] = {"type": "tool", "name": STRUCTURED_OUTPUT_TOOL}
            else:
                params["tool_choice"] = {"type": "any"}
        if claude_tools:
            params["tools"] = claude_tools

        try:
            response = self.client.messages.create(**params, timeout=self._timeout(deadline))
        except anthropic.APIError as e:
            raise ModelError(
                f"Claude API error: {e}",
                provider="anthropic",
                status_code=getattr(e, "status_code", None),
                cause=e,
            ) from e

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        structured: Any = None
        for block in response.content:
            match block:
                case TextBlock():
                    text_parts.append(block.text)
                case ToolUseBlock() if block.name == STRUCTURED_OUTPUT_TOOL:
                    structured = block.input
                case ToolUseBlock():
                    tool_calls.append(ToolCall(block.id, block.name, dict(block.input)))

        content: Any = structured if structured is not None else "".join(text_parts) or None
        usage = Usage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            total_tokens=response.usage.input_tokens + response.usage.output_tokens,
        )
        return ChatResponse(content=content, tool_calls=tuple(tool_calls), usage=usage)
