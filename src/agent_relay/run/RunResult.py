"""RunResult - the immutable outcome of one Runner.run call.

Callers always get a RunResult back; failures are captured here instead of
raised, with a FailureKind so "the agent looped" can be told apart from "the
model call crashed".

Example:
    result = runner.run(agent, "Hello")
    if result.success:
        print(result.output)
    elif result.failure is FailureKind.MAX_TURNS:
        print("Sorry, that took too long.")
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from agent_relay.run.RunContext import Message, RunContext
from agent_relay.run.Usage import Usage


class FailureKind(StrEnum):
    MAX_TURNS = "max_turns"
    MODEL_ERROR = "model_error"
    INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class RunResult:
    """Snapshot taken when the run loop stops.

    Attributes:
        output: Final text, or a structured value when the agent has a response
            schema. None on failure.
        context: The run's context, with history, current_agent and usage updated
        usage: Token usage totals at the end of the run
        input: The user input the run was started with
        messages: History entries appended during this run
        error: The captured error on failure
        failure: Classification of the failure
        turns: Model round-trips made
        duration: Wall-clock seconds
    """

    output: Any
    context: RunContext
    usage: Usage
    input: str = ""
    messages: tuple[Message, ...] = ()
    error: BaseException | None = None
    failure: FailureKind | None = None
    turns: int = 0
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def failed(self) -> bool:
        return not self.success

    @property
    def current_agent(self) -> str | None:
        return self.context.current_agent

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "input": self.input,
            "output": self.output,
            "error": str(self.error) if self.error else None,
            "failure": self.failure.value if self.failure else None,
            "current_agent": self.current_agent,
            "usage": self.usage.to_dict(),
            "turns": self.turns,
            "duration": self.duration,
            "messages": list(self.messages),
        }

    def __str__(self) -> str:
        if self.success:
            return f"Success: {self.output}"
        return f"Error: {self.error}"
