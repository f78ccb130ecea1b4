"""RunContext - mutable shared state threaded through one orchestrated run.

A RunContext holds:
- the state bag, the only channel tools use to share durable data
  (customer records, previous lookups, ...)
- the running token usage
- the conversation history, with assistant entries tagged by agent name
- the agent transitions, one entry per handoff

One RunContext belongs to one run. It is never shared across runs, but tool
calls within a turn may run in parallel, so every mutation goes through a
per-context lock.

The serialized shape (to_dict / from_dict) is what callers persist between
conversation turns:

    {
        "conversation_history": [...],
        "current_agent": "Billing",
        "agent_transitions": [{"from": "Triage", "to": "Billing", "reason": "...", "timestamp": "..."}],
        "state": {...},
        "usage": {"input_tokens": 0, "output_tokens": 0, "total_tokens": 0},
    }
"""

from __future__ import annotations

import copy
import threading
from datetime import UTC, datetime
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from glom import glom

from agent_relay.run.Usage import Usage
from agent_relay.util.json_utils import json

if TYPE_CHECKING:
    from agent_relay.agent.Agent import Agent


type Message = dict[str, Any]
"""One history entry: role, content and optional agent_name / tool_calls / tool_call_id."""

_MISSING = object()


@dataclass(frozen=True)
class PendingHandoff:
    """Marker a handoff tool leaves in the context for the runner to pick up.

    Attributes:
        target: The agent to switch to (same-process reference, not a name)
        reason: Optional reason given by the model
        tool_call_id: The tool call that requested the handoff
    """

    target: Agent
    reason: str | None = None
    tool_call_id: str | None = None


class RunContext:
    """Shared state, usage and history for one run."""

    _state: dict[str, Any]
    _history: list[Message]
    _pending_handoff: PendingHandoff | None
    _transitions: list[dict[str, Any]]
    current_agent: str | None
    usage: Usage

    def __init__(
        self,
        state: Mapping[str, Any] | None = None,
        conversation_history: list[Message] | None = None,
        current_agent: str | None = None,
        usage: Usage | None = None,
        agent_transitions: list[dict[str, Any]] | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._state = dict(state or {})
        self._history = list(conversation_history or [])
        self._transitions = list(agent_transitions or [])
        self._pending_handoff = None
        self.current_agent = current_agent
        self.usage = usage or Usage()

    @contextmanager
    def locked(self) -> Iterator[dict[str, Any]]:
        """Hold the context lock for a compound read-modify-write on the state bag.

        Usage:
            with ctx.locked() as state:
                state["count"] = state.get("count", 0) + 1
        """
        with self._lock:
            yield self._state

    # State bag

    @property
    def state(self) -> dict[str, Any]:
        """The live state bag. Prefer get/set/locked when tools run in parallel."""
        return self._state

    def get(self, path: str, default: Any = None) -> Any:
        """Read a value from the state bag.

        Args:
            path: A key, or a dotted path into nested dicts ("customer.plan.name")
            default: Returned when any segment of the path is missing

        Returns:
            The stored value or default
        """
        with self._lock:
            if path in self._state:
                return self._state[path]
            return glom(self._state, path, default=default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._state[key] = value

    def update(self, values: Mapping[str, Any]) -> None:
        with self._lock:
            self._state.update(values)

    def copy_state(self) -> dict[str, Any]:
        """Deep copy of the state bag, e.g. for isolated nested runs."""
        with self._lock:
            return copy.deepcopy(self._state)

    # Usage

    def add_usage(self, sample: Usage | None) -> None:
        with self._lock:
            self.usage.add(sample)

    # History

    @property
    def conversation_history(self) -> list[Message]:
        """A snapshot of the history. Use append_message to add entries."""
        with self._lock:
            return list(self._history)

    def append_message(self, message: Message) -> None:
        with self._lock:
            self._history.append(message)

    def extend_messages(self, messages: list[Message]) -> None:
        with self._lock:
            self._history.extend(messages)

    # Agent transitions

    @property
    def agent_transitions(self) -> list[dict[str, Any]]:
        """A snapshot of the handoffs recorded so far, oldest first."""
        with self._lock:
            return copy.deepcopy(self._transitions)

    def record_agent_transition(
        self, from_agent: str, to_agent: str, reason: str | None = None
    ) -> None:
        with self._lock:
            self._transitions.append(
                {
                    "from": from_agent,
                    "to": to_agent,
                    "reason": reason,
                    "timestamp": datetime.now(UTC).isoformat(),
                }
            )

    # Handoff marker

    @property
    def pending_handoff(self) -> PendingHandoff | None:
        return self._pending_handoff

    def request_handoff(self, pending: PendingHandoff) -> bool:
        """Record a pending handoff unless one is already set this turn.

        Returns:
            True if this request became the pending handoff, False if an earlier
            one was already recorded
        """
        with self._lock:
            if self._pending_handoff is not None:
                return False
            self._pending_handoff = pending
            return True

    def take_pending_handoff(self) -> PendingHandoff | None:
        """Return and clear the pending handoff."""
        with self._lock:
            pending = self._pending_handoff
            self._pending_handoff = None
            return pending

    # Serialization

    def to_dict(self) -> dict[str, Any]:
        """Plain, JSON-compatible snapshot for persisting a conversation.

        The pending handoff marker is transient and never serialized.

        Raises:
            TypeError: If a state value is not JSON-compatible, naming its key
        """
        with self._lock:
            for key, value in self._state.items():
                if not isinstance(key, str) or not json.is_py_json(value):
                    raise TypeError(
                        f"State key {key!r} holds a {type(value).__name__}, "
                        "which is not JSON-compatible"
                    )
            return {
                "conversation_history": copy.deepcopy(self._history),
                "current_agent": self.current_agent,
                "agent_transitions": copy.deepcopy(self._transitions),
                "state": copy.deepcopy(self._state),
                "usage": self.usage.to_dict(),
            }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> RunContext:
        """Rebuild a context from to_dict() output (or a partial dict)."""
        data = data or {}
        return cls(
            state=copy.deepcopy(data.get("state") or {}),
            conversation_history=copy.deepcopy(data.get("conversation_history") or []),
            current_agent=data.get("current_agent"),
            usage=Usage.from_dict(data.get("usage")),
            agent_transitions=copy.deepcopy(data.get("agent_transitions") or []),
        )

    def to_json(self) -> str:
        return json.to_string(self.to_dict(), strict=True)

    @classmethod
    def from_json(cls, text: str) -> RunContext:
        data = json.parse(text)
        if not isinstance(data, dict):
            raise TypeError("Serialized RunContext must be a JSON object")
        return cls.from_dict(data)

    @classmethod
    def coerce(cls, value: RunContext | Mapping[str, Any] | None) -> RunContext:
        """Accept a RunContext, a serialized dict or None."""
        if isinstance(value, RunContext):
            return value
        if value is None or isinstance(value, Mapping):
            return cls.from_dict(value)
        raise TypeError(f"Cannot build a RunContext from {type(value).__name__}")

    def __repr__(self) -> str:
        return (
            f"RunContext(current_agent={self.current_agent!r}, "
            f"state_keys={sorted(self._state)!r}, history={len(self._history)})"
        )
