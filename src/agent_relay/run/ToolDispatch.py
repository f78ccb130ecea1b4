"""Tool dispatch strategies - how one turn's regular tool calls are executed.

Tools only communicate through the run context's state bag, so running the
calls of one turn sequentially or in parallel gives the same observable
result. Outcomes are always returned in the order of the calls, whatever
order they complete in.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Protocol

from agent_relay.agent.ChatTypes import ToolCall
from agent_relay.util.json_utils import json


@dataclass(frozen=True)
class ToolOutcome:
    """Result of one tool call, ready to be folded into history.

    Attributes:
        call: The originating tool call
        result: The tool's return value (None on error)
        error: The exception raised by the tool, if any
    """

    call: ToolCall
    result: Any = None
    error: BaseException | None = None

    @property
    def content(self) -> str:
        """The tool result message the model sees next turn."""
        if self.error is not None:
            return f"Error: {self.error}"
        if isinstance(self.result, str):
            return self.result
        if self.result is None:
            return ""
        return json.to_string(self.result)

    def to_message(self) -> dict[str, Any]:
        message: dict[str, Any] = {
            "role": "tool",
            "content": self.content,
            "tool_call_id": self.call.id,
        }
        if self.error is not None:
            message["is_error"] = True
        return message


type ExecuteFn = Callable[[ToolCall], ToolOutcome]


class ToolDispatchStrategy(Protocol):
    def dispatch(self, calls: Sequence[ToolCall], execute: ExecuteFn) -> list[ToolOutcome]: ...


class SequentialDispatch:
    """Run calls one after another on the calling thread."""

    def dispatch(self, calls: Sequence[ToolCall], execute: ExecuteFn) -> list[ToolOutcome]:
        return [execute(call) for call in calls]


class ConcurrentDispatch:
    """Run calls on a thread pool and wait for all of them."""

    def __init__(self, max_workers: int = 8) -> None:
        self.max_workers = max_workers

    def dispatch(self, calls: Sequence[ToolCall], execute: ExecuteFn) -> list[ToolOutcome]:
        if not calls:
            return []
        workers = min(self.max_workers, len(calls))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="agent-tool") as pool:
            futures = [pool.submit(execute, call) for call in calls]
            return [future.result() for future in futures]


def choose_strategy(call_count: int, max_workers: int = 8) -> ToolDispatchStrategy:
    """Concurrent when a turn has more than one call, sequential otherwise."""
    if call_count > 1 and max_workers > 1:
        return ConcurrentDispatch(max_workers)
    return SequentialDispatch()
