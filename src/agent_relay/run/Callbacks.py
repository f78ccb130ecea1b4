"""Lifecycle callbacks for observability collaborators (tracing, UIs, logs).

Callbacks are best-effort notifications. A callback that raises is logged and
skipped; it never aborts a tool call or a run.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Mapping, Sequence
from enum import StrEnum
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)


class CallbackEvent(StrEnum):
    AGENT_THINKING = "agent_thinking"
    TOOL_START = "tool_start"
    TOOL_COMPLETE = "tool_complete"
    AGENT_HANDOFF = "agent_handoff"


type Callback = Callable[..., Any]


class CallbackManager:
    """Holds callbacks per event and emits to them.

    Registration is copy-on-write under a lock, so emitting from many runs at
    once never needs the lock.
    """

    _callbacks: Mapping[CallbackEvent, tuple[Callback, ...]]

    def __init__(
        self, callbacks: Mapping[CallbackEvent | str, Sequence[Callback]] | None = None
    ) -> None:
        self._lock = threading.Lock()
        table: dict[CallbackEvent, tuple[Callback, ...]] = {}
        for event, cbs in (callbacks or {}).items():
            table[CallbackEvent(event)] = tuple(cbs)
        self._callbacks = MappingProxyType(table)

    def register(self, event: CallbackEvent | str, callback: Callback) -> None:
        key = CallbackEvent(event)
        with self._lock:
            table = dict(self._callbacks)
            table[key] = table.get(key, ()) + (callback,)
            self._callbacks = MappingProxyType(table)

    def callbacks_for(self, event: CallbackEvent | str) -> tuple[Callback, ...]:
        return self._callbacks.get(CallbackEvent(event), ())

    def emit(self, event: CallbackEvent | str, *args: Any) -> None:
        """Call every callback registered for event, in registration order."""
        for callback in self.callbacks_for(event):
            try:
                callback(*args)
            except Exception:
                logger.exception("Callback error for %s", CallbackEvent(event).value)

    def emit_agent_thinking(self, agent_name: str, input: Any) -> None:
        self.emit(CallbackEvent.AGENT_THINKING, agent_name, input)

    def emit_tool_start(self, tool_name: str, args: Mapping[str, Any]) -> None:
        self.emit(CallbackEvent.TOOL_START, tool_name, args)

    def emit_tool_complete(self, tool_name: str, result: Any) -> None:
        self.emit(CallbackEvent.TOOL_COMPLETE, tool_name, result)

    def emit_agent_handoff(self, from_agent: str, to_agent: str, reason: str | None) -> None:
        self.emit(CallbackEvent.AGENT_HANDOFF, from_agent, to_agent, reason)
