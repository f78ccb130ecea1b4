"""Agent - an immutable description of one LLM persona.

An Agent bundles a name, instructions, a model, declared tools and the agents
it may hand the conversation to. Agents hold no per-run state: the same Agent
is referenced by many concurrent runs, and the Runner threads a RunContext
through each one.

Agents are built, wired, then treated as frozen:
- construction sets every field
- register_handoffs() adds handoff targets, which is needed to express cyclic
  references between agents defined one after another
- after startup wiring, all reads are effectively lock-free

Handoff tools are generated from the registered targets every time the tool
list is requested, so registrations made after construction are always seen.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any

from agent_relay.agent import Instructions as instructions_mod
from agent_relay.agent.Instructions import Instructions, InstructionsLike
from agent_relay.tool.ExternalToolProvider import ExternalToolProvider
from agent_relay.tool.HandoffTool import HandoffTool
from agent_relay.tool.Tool import Tool
from agent_relay.util.json_utils import JSONSchema
from agent_relay.util.naming import bounded_tool_name

if TYPE_CHECKING:
    from agent_relay.run.RunContext import RunContext

logger = logging.getLogger(__name__)


def _unique_tools(tools: Iterable[Tool]) -> tuple[Tool, ...]:
    """Drop repeated references to the same Tool object, keeping order."""
    seen: set[int] = set()
    unique: list[Tool] = []
    for tool in tools:
        if id(tool) in seen:
            continue
        seen.add(id(tool))
        unique.append(tool)
    return tuple(unique)


class _NameClaims:
    """Hands out unique tool names, prefixing and then numbering on collision.

    Every name handed out fits the API's tool name limit.
    """

    def __init__(self) -> None:
        self.taken: set[str] = set()
        self.tools: list[Tool] = []

    def claim(self, tool: Tool, prefix: str | None = None) -> None:
        name = bounded_tool_name(tool.name)
        if name in self.taken:
            base = f"{prefix}_{tool.name}" if prefix else tool.name
            name, n = bounded_tool_name(base), 2
            while name in self.taken:
                name = bounded_tool_name(f"{base}_{n}")
                n += 1
            logger.debug("Tool name '%s' collides; exposing it as '%s'", tool.name, name)
        if name != tool.name:
            tool = tool.renamed(name)
        self.taken.add(name)
        self.tools.append(tool)


@dataclass(frozen=True, eq=False)
class Agent:
    """One LLM persona: instructions, model, tools and handoff targets.

    Attributes:
        name: Unique identifier within a registry; also used to tag assistant
            messages in history so a later run resumes with the right agent
        instructions: Static text or a function of the RunContext evaluated each
            turn. Strings and callables are coerced to the Instructions variant.
        model: Model identifier; None means the runner's configured default
        tools: Declared tools, in order
        handoff_description: Description used when another agent builds a
            handoff tool pointing at this agent
        response_schema: When set, the final answer is structured data matching it
        external_tools: Provider of dynamically fetched tools, cached per instance
    """

    name: str
    instructions: Instructions | None = None
    model: str | None = None
    tools: tuple[Tool, ...] = ()
    handoff_description: str | None = None
    response_schema: JSONSchema | None = None
    external_tools: ExternalToolProvider | None = None

    _handoff_targets: list[Agent] = field(default_factory=list, init=False, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _external_cache: list[Tool] | None = field(default=None, init=False, repr=False)

    def __init__(
        self,
        name: str,
        instructions: InstructionsLike = None,
        model: str | None = None,
        tools: Iterable[Tool] = (),
        handoffs: Iterable[Agent] = (),
        handoff_description: str | None = None,
        response_schema: JSONSchema | dict[str, Any] | None = None,
        external_tools: ExternalToolProvider | None = None,
    ) -> None:
        """Create an agent.

        Args:
            name: Unique identifier for this agent
            instructions: System prompt string, or a function (RunContext) -> str
            model: Model identifier (defaults to the runner's configured model)
            tools: Tools the agent may call
            handoffs: Agents this agent may hand the conversation to
            handoff_description: How other agents' handoff tools describe this agent
            response_schema: JSON schema for structured final output
            external_tools: Provider of externally sourced tools

        Raises:
            ValueError: If name is empty
            TypeError: If instructions or response_schema are malformed
        """
        if not name or not name.strip():
            raise ValueError("Agent name must not be empty")
        schema = None if response_schema is None else JSONSchema(response_schema)
        set_ = object.__setattr__
        set_(self, "name", name)
        set_(self, "instructions", instructions_mod.as_instructions(instructions))
        set_(self, "model", model)
        set_(self, "tools", _unique_tools(tools))
        set_(self, "handoff_description", handoff_description)
        set_(self, "response_schema", schema)
        set_(self, "external_tools", external_tools)
        set_(self, "_handoff_targets", [])
        set_(self, "_lock", threading.Lock())
        set_(self, "_external_cache", None)
        self.register_handoffs(*handoffs)

    # Handoffs

    @property
    def handoff_targets(self) -> tuple[Agent, ...]:
        with self._lock:
            return tuple(self._handoff_targets)

    def register_handoffs(self, *targets: Agent) -> Agent:
        """Add handoff targets. Duplicates (by identity) collapse.

        Safe to call concurrently from several initializers.

        Returns:
            This agent, for chaining
        """
        with self._lock:
            for target in targets:
                if not isinstance(target, Agent):
                    raise TypeError(
                        f"Handoff target must be an Agent, got {type(target).__name__}"
                    )
                if any(existing is target for existing in self._handoff_targets):
                    continue
                self._handoff_targets.append(target)
        return self

    def handoff_tools(self) -> list[HandoffTool]:
        return [HandoffTool.for_agent(target) for target in self.handoff_targets]

    # External tools

    def _get_external_tools(self) -> list[Tool]:
        if self.external_tools is None:
            return []
        with self._lock:
            if self._external_cache is None:
                fetched = list(self.external_tools.fetch_tools())
                logger.debug(
                    "Agent '%s' fetched %d tools from '%s'",
                    self.name,
                    len(fetched),
                    self.external_tools.name,
                )
                object.__setattr__(self, "_external_cache", fetched)
            return list(self._external_cache or [])

    def refresh_external_tools(self) -> None:
        """Drop this agent's cached external tools; the next listing refetches.

        Other agents sharing the same provider keep their own caches.
        """
        with self._lock:
            object.__setattr__(self, "_external_cache", None)

    # Tools

    def all_tools(self, context: RunContext | None = None) -> list[Tool]:
        """Declared tools, then one handoff tool per target, then external tools.

        Names are made unique: declared tools keep their names, colliding
        handoff tools get a "handoff_" prefix and colliding external tools get
        the provider's name as prefix. Nothing is dropped.

        Args:
            context: The current run context. Reserved for context-dependent
                tool sets; the listing is currently the same for every run.
        """
        claims = _NameClaims()
        for tool in self.tools:
            claims.claim(tool)
        for tool in self.handoff_tools():
            claims.claim(tool, prefix="handoff")
        provider_name = self.external_tools.name if self.external_tools else None
        for tool in self._get_external_tools():
            claims.claim(tool, prefix=provider_name)
        return claims.tools

    def handoff_tool_names(self, context: RunContext | None = None) -> frozenset[str]:
        return frozenset(
            t.name for t in self.all_tools(context) if isinstance(t, HandoffTool)
        )

    def has_tool(self, name: str) -> bool:
        """Check if the agent exposes a tool with this name."""
        return any(t.name == name for t in self.all_tools())

    def list_tools(self) -> list[str]:
        """List the names of all tools this agent exposes."""
        return [t.name for t in self.all_tools()]

    # Instructions

    def resolve_instructions(self, context: RunContext) -> str:
        """The system prompt for this turn. Pure; safe to call every turn."""
        return instructions_mod.resolve(self.instructions, context)

    # Copies

    def clone_with(self, **overrides: Any) -> Agent:
        """Return a new Agent with some fields replaced.

        Handoff targets are carried over unless "handoffs" is given. The clone
        has its own external tool cache.

        Raises:
            TypeError: If an override names an unknown field
        """
        kwargs: dict[str, Any] = {
            f.name: getattr(self, f.name) for f in fields(self) if f.init
        }
        kwargs["handoffs"] = self.handoff_targets
        unknown = set(overrides) - set(kwargs)
        if unknown:
            raise TypeError(f"Unknown Agent fields: {', '.join(sorted(unknown))}")
        kwargs.update(overrides)
        return Agent(**kwargs)

    def __repr__(self) -> str:
        targets = [t.name for t in self.handoff_targets]
        return (
            f"Agent(name={self.name!r}, model={self.model!r}, "
            f"tools={[t.name for t in self.tools]!r}, handoffs={targets!r})"
        )


def agents_by_name(agents: Sequence[Agent]) -> dict[str, Agent]:
    """Name lookup table; later agents win on duplicate names."""
    table: dict[str, Agent] = {}
    for agent in agents:
        if agent.name in table and table[agent.name] is not agent:
            logger.warning("Duplicate agent name '%s'; the later agent wins", agent.name)
        table[agent.name] = agent
    return table
