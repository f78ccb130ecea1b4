"""Value types exchanged with a chat client."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from agent_relay.run.Usage import Usage


@dataclass(frozen=True)
class ToolCall:
    """A single tool call requested by the model.

    Attributes:
        id: Provider-assigned id; tool results are correlated by it
        name: Tool name as advertised to the model
        arguments: Decoded arguments object
    """

    id: str
    name: str
    arguments: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": dict(self.arguments)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ToolCall:
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            arguments=dict(data.get("arguments") or {}),
        )


@dataclass(frozen=True)
class ChatResponse:
    """One model round-trip's outcome.

    Both content and tool_calls may be present. When a response schema was
    requested, content is the structured value rather than a string.

    Attributes:
        content: Final text, a structured value, or None
        tool_calls: Tool calls to run before the next turn
        usage: Tokens used by this round-trip, if the provider reports them
    """

    content: Any = None
    tool_calls: tuple[ToolCall, ...] = ()
    usage: Usage | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "tool_calls", tuple(self.tool_calls))

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    @property
    def has_content(self) -> bool:
        if self.content is None:
            return False
        if isinstance(self.content, str):
            return bool(self.content.strip())
        return True
