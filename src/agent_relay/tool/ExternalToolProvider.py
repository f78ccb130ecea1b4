"""Protocol for externally-sourced tools (e.g. an MCP server or plugin host).

Fetching may spawn a subprocess or make network round-trips, so Agent caches
the fetched list per instance and only refetches on an explicit refresh.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from agent_relay.tool.Tool import Tool


@runtime_checkable
class ExternalToolProvider(Protocol):
    """Any object with a name and a fetch_tools() method satisfies the protocol.

    Attributes:
        name: Short identifier, used to prefix tool names that collide with an
            agent's own tools
    """

    name: str

    def fetch_tools(self) -> list[Tool]:
        """Return the provider's current tools. Must be safe to call repeatedly."""
        ...
