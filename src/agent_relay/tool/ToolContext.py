"""ToolContext - the light per-call wrapper a tool receives.

A fresh ToolContext is built for every tool call. It exposes the shared run
state and usage without handing the tool the runner itself, so the same Tool
value can serve any number of concurrent runs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from agent_relay.run.RunContext import RunContext
from agent_relay.run.Usage import Usage


@dataclass(frozen=True)
class ToolContext:
    """Execution context for one tool call.

    Attributes:
        run_context: The run's shared context (state bag, usage, history)
        retry_count: Attempts made for this call before this one. Always 0 today;
            there is no retry loop at this layer.
        tool_call_id: Id of the model's tool call, when called by the runner
        agent_name: Name of the agent whose turn requested the call
    """

    run_context: RunContext
    retry_count: int = 0
    tool_call_id: str | None = None
    agent_name: str | None = None

    @property
    def state(self) -> dict[str, Any]:
        return self.run_context.state

    @property
    def usage(self) -> Usage:
        return self.run_context.usage

    def get(self, path: str, default: Any = None) -> Any:
        return self.run_context.get(path, default)

    def set(self, key: str, value: Any) -> None:
        self.run_context.set(key, value)
