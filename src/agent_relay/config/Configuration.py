"""Configuration - explicit settings for runners and chat clients.

Build one Configuration at process start and pass it to whatever constructs
the chat client and runners. It is frozen; use with_overrides() to derive a
variant (e.g. per tenant) without touching the shared instance.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any

DEFAULT_MODEL = "claude-haiku-4-5"
DEFAULT_MAX_TURNS = 10

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Configuration:
    """Settings shared by Runner, AgentRunner and ClaudeClient.

    Attributes:
        default_model: Model used by agents that don't declare one
        max_turns: Default model round-trip budget for one run
        max_parallel_tools: Upper bound on worker threads for one turn's tool calls
        request_timeout: Per-request timeout (seconds) for the chat client
        anthropic_api_key: API key for the Anthropic client
        debug: Lower the package logger to DEBUG when applied
    """

    default_model: str = DEFAULT_MODEL
    max_turns: int = DEFAULT_MAX_TURNS
    max_parallel_tools: int = 8
    request_timeout: float = 120.0
    anthropic_api_key: str | None = None
    debug: bool = False

    def __post_init__(self) -> None:
        if self.max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        if self.max_parallel_tools < 1:
            raise ValueError("max_parallel_tools must be at least 1")

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Configuration:
        """Build a Configuration from environment variables.

        Reads ANTHROPIC_API_KEY, AGENT_RELAY_DEFAULT_MODEL, AGENT_RELAY_MAX_TURNS
        and AGENT_RELAY_DEBUG. Unset variables keep the defaults.
        """
        env = os.environ if environ is None else environ
        kwargs: dict[str, Any] = {}
        if "ANTHROPIC_API_KEY" in env:
            kwargs["anthropic_api_key"] = env["ANTHROPIC_API_KEY"]
        if "AGENT_RELAY_DEFAULT_MODEL" in env:
            kwargs["default_model"] = env["AGENT_RELAY_DEFAULT_MODEL"]
        if "AGENT_RELAY_MAX_TURNS" in env:
            kwargs["max_turns"] = int(env["AGENT_RELAY_MAX_TURNS"])
        if "AGENT_RELAY_DEBUG" in env:
            kwargs["debug"] = env["AGENT_RELAY_DEBUG"].strip().lower() in _TRUTHY
        return cls(**kwargs)

    def with_overrides(self, **overrides: Any) -> Configuration:
        """Return a copy with the given fields replaced."""
        return replace(self, **overrides)

    def apply_logging(self) -> None:
        """Set the agent_relay logger level from the debug flag.

        Handlers are left to the application.
        """
        level = logging.DEBUG if self.debug else logging.INFO
        logging.getLogger("agent_relay").setLevel(level)
