"""Structured error hierarchy for agent runs.

Only `Runner.run` catches these at its public boundary; everything below it
raises normally and lets the runner classify the failure.
"""

from __future__ import annotations


class AgentRelayError(Exception):
    """Base error carrying a stable code and the underlying cause."""

    def __init__(
        self, code: str, message: str, cause: BaseException | None = None
    ) -> None:
        super().__init__(message)
        self.code = code
        self.cause = cause


class ModelError(AgentRelayError):
    """The chat adapter failed (network, provider or decoding error)."""

    def __init__(
        self,
        message: str,
        provider: str = "unknown",
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__("MODEL_ERROR", message, cause)
        self.provider = provider
        self.status_code = status_code


class ToolError(AgentRelayError):
    def __init__(
        self,
        tool_name: str,
        message: str,
        code: str = "TOOL_ERROR",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(code, message, cause)
        self.tool_name = tool_name


class ToolNotFoundError(ToolError):
    def __init__(self, tool_name: str, agent_name: str) -> None:
        super().__init__(
            tool_name,
            f"Tool '{tool_name}' is not available to agent '{agent_name}'",
            code="TOOL_NOT_FOUND",
        )
        self.agent_name = agent_name


class ToolArgumentError(ToolError):
    def __init__(self, tool_name: str, message: str, cause: BaseException | None = None) -> None:
        super().__init__(
            tool_name,
            f"Invalid arguments for tool '{tool_name}': {message}",
            code="TOOL_INVALID_ARGUMENTS",
            cause=cause,
        )


class MaxTurnsExceeded(AgentRelayError):
    """The run used its whole turn budget without producing a final answer."""

    def __init__(self, max_turns: int) -> None:
        super().__init__("MAX_TURNS_EXCEEDED", f"Exceeded maximum turns: {max_turns}")
        self.max_turns = max_turns
