"""Tests for Agent class."""

from __future__ import annotations

import threading

import pytest

from agent_relay.agent.Agent import Agent, agents_by_name
from agent_relay.agent.Instructions import DynamicInstructions, StaticInstructions
from agent_relay.run.RunContext import RunContext
from agent_relay.tool.HandoffTool import HandoffTool
from agent_relay.tool.Tool import Tool
from agent_relay.tool.ToolContext import ToolContext


def make_tool(name: str, result: str = "ok") -> Tool:
    return Tool(name=name, description=f"{name} tool", handler=lambda ctx: result)


class CountingProvider:
    """External tool provider that counts fetches."""

    def __init__(self, name: str, tools: list[Tool]) -> None:
        self.name = name
        self.tools = tools
        self.fetches = 0

    def fetch_tools(self) -> list[Tool]:
        self.fetches += 1
        return list(self.tools)


class TestAgentCreation:
    """Tests for Agent initialization."""

    def test_create_agent(self) -> None:
        """Agent can be created with just a name."""
        agent = Agent("Triage")
        assert agent.name == "Triage"
        assert agent.instructions is None
        assert agent.tools == ()
        assert agent.handoff_targets == ()

    def test_empty_name_rejected(self) -> None:
        """An empty name is a ValueError."""
        with pytest.raises(ValueError):
            Agent("  ")

    def test_string_instructions_coerced(self) -> None:
        """A string becomes StaticInstructions."""
        agent = Agent("A", instructions="Be brief.")
        assert agent.instructions == StaticInstructions("Be brief.")
        assert agent.resolve_instructions(RunContext()) == "Be brief."

    def test_callable_instructions_evaluated_per_context(self) -> None:
        """A callable becomes DynamicInstructions evaluated with the context."""
        agent = Agent("A", instructions=lambda ctx: f"Customer: {ctx.get('customer.name', 'unknown')}")
        assert isinstance(agent.instructions, DynamicInstructions)
        assert agent.resolve_instructions(RunContext()) == "Customer: unknown"
        ctx = RunContext(state={"customer": {"name": "Ada"}})
        assert agent.resolve_instructions(ctx) == "Customer: Ada"

    def test_bad_instructions_rejected(self) -> None:
        """Instructions that are neither text nor callable raise TypeError."""
        with pytest.raises(TypeError):
            Agent("A", instructions=42)  # type: ignore[arg-type]

    def test_invalid_response_schema_rejected(self) -> None:
        """response_schema is checked against the JSON Schema meta-schema."""
        with pytest.raises(TypeError, match="Invalid JSON Schema"):
            Agent("A", response_schema={"type": "nope"})

    def test_fields_are_frozen(self) -> None:
        """Public fields can't be reassigned."""
        agent = Agent("A")
        with pytest.raises(AttributeError):
            agent.name = "B"  # type: ignore[misc]


class TestHandoffs:
    """Tests for handoff registration."""

    def test_register_is_idempotent(self) -> None:
        """Registering the same target twice keeps one entry."""
        a, b = Agent("A"), Agent("B")
        a.register_handoffs(b)
        a.register_handoffs(b, b)
        assert a.handoff_targets == (b,)

    def test_cyclic_handoffs(self) -> None:
        """Agents can point at each other."""
        a, b = Agent("A"), Agent("B")
        a.register_handoffs(b)
        b.register_handoffs(a)
        assert a.handoff_targets == (b,)
        assert b.handoff_targets == (a,)

    def test_handoffs_in_constructor(self) -> None:
        """handoffs given at construction are registered in order."""
        b, c = Agent("B"), Agent("C")
        a = Agent("A", handoffs=[b, c])
        assert a.list_tools() == ["transfer_to_b", "transfer_to_c"]

    def test_register_rejects_non_agent(self) -> None:
        """Only Agents can be handoff targets."""
        with pytest.raises(TypeError):
            Agent("A").register_handoffs("B")  # type: ignore[arg-type]

    def test_concurrent_registration(self) -> None:
        """Concurrent registration of the same targets never duplicates them."""
        a = Agent("A")
        targets = [Agent(f"T{i}") for i in range(5)]

        def wire() -> None:
            a.register_handoffs(*targets)

        threads = [threading.Thread(target=wire) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert a.handoff_targets == tuple(targets)

    def test_registration_after_construction_is_visible(self) -> None:
        """Tools listed after register_handoffs include the new handoff."""
        a = Agent("A")
        assert a.handoff_tool_names() == frozenset()
        a.register_handoffs(Agent("Billing"))
        assert a.handoff_tool_names() == frozenset({"transfer_to_billing"})


class TestAllTools:
    """Tests for tool listing and name collisions."""

    def test_order(self) -> None:
        """Declared tools first, then handoff tools, then external tools."""
        provider = CountingProvider("mcp", [make_tool("search")])
        a = Agent("A", tools=[make_tool("lookup")], handoffs=[Agent("B")], external_tools=provider)
        assert a.list_tools() == ["lookup", "transfer_to_b", "search"]

    def test_duplicate_tool_objects_collapse(self) -> None:
        """The same Tool object passed twice is listed once."""
        tool = make_tool("lookup")
        assert Agent("A", tools=[tool, tool]).list_tools() == ["lookup"]

    def test_handoff_collision_prefixed(self) -> None:
        """A handoff tool colliding with a declared tool gets a handoff_ prefix."""
        a = Agent("A", tools=[make_tool("transfer_to_b")], handoffs=[Agent("B")])
        names = a.list_tools()
        assert names == ["transfer_to_b", "handoff_transfer_to_b"]
        assert a.handoff_tool_names() == frozenset({"handoff_transfer_to_b"})

    def test_external_collision_prefixed_with_provider(self) -> None:
        """An external tool colliding with a declared tool gets the provider prefix."""
        provider = CountingProvider("mcp", [make_tool("lookup", "external")])
        a = Agent("A", tools=[make_tool("lookup")], external_tools=provider)
        assert a.list_tools() == ["lookup", "mcp_lookup"]

    def test_numeric_suffix_when_prefix_collides(self) -> None:
        """If the prefixed name is taken too, a numeric suffix is added."""
        provider = CountingProvider("mcp", [make_tool("lookup")])
        a = Agent(
            "A",
            tools=[make_tool("lookup"), make_tool("mcp_lookup")],
            external_tools=provider,
        )
        assert a.list_tools() == ["lookup", "mcp_lookup", "mcp_lookup_2"]

    def test_distinct_tools_with_same_name_both_kept(self) -> None:
        """Two declared tools sharing a name are both exposed."""
        a = Agent("A", tools=[make_tool("lookup", "one"), make_tool("lookup", "two")])
        names = a.list_tools()
        assert len(names) == len(set(names)) == 2
        renamed = a.all_tools()[1]
        assert renamed.execute(ToolContext(RunContext()), {}) == "two"

    def test_non_ascii_handoff_targets_stay_distinct(self) -> None:
        """Targets whose names have no ASCII letters get separate, non-empty tool names."""
        a = Agent("A", handoffs=[Agent("Соня"), Agent("Иван")])
        names = a.list_tools()
        assert len(set(names)) == 2
        assert all(name.startswith("transfer_to_agent_") for name in names)

    def test_long_names_fit_the_limit(self) -> None:
        """Prefixed and numbered names never exceed 64 characters."""
        long_name = "lookup_" + "x" * 60
        provider = CountingProvider("mcp", [make_tool(long_name), make_tool(long_name)])
        a = Agent("A", tools=[make_tool(long_name)], external_tools=provider)
        names = a.list_tools()
        assert len(set(names)) == 3
        assert all(len(name) <= 64 for name in names)

    def test_handoff_tools_are_handoff_tools(self) -> None:
        """Generated handoff tools point at their target."""
        b = Agent("B")
        tool = Agent("A", handoffs=[b]).all_tools()[0]
        assert isinstance(tool, HandoffTool)
        assert tool.target is b

    def test_has_tool(self) -> None:
        """has_tool checks the full listing."""
        a = Agent("A", tools=[make_tool("lookup")], handoffs=[Agent("B")])
        assert a.has_tool("lookup")
        assert a.has_tool("transfer_to_b")
        assert not a.has_tool("missing")


class TestExternalTools:
    """Tests for external tool caching."""

    def test_fetched_once(self) -> None:
        """Listing tools repeatedly fetches from the provider once."""
        provider = CountingProvider("mcp", [make_tool("search")])
        a = Agent("A", external_tools=provider)
        a.all_tools()
        a.all_tools()
        assert provider.fetches == 1

    def test_refresh_refetches(self) -> None:
        """refresh_external_tools makes the next listing fetch again."""
        provider = CountingProvider("mcp", [make_tool("search")])
        a = Agent("A", external_tools=provider)
        a.all_tools()
        provider.tools = [make_tool("search"), make_tool("fetch")]
        a.refresh_external_tools()
        assert a.list_tools() == ["search", "fetch"]
        assert provider.fetches == 2

    def test_cache_is_per_agent(self) -> None:
        """Agents sharing a provider keep separate caches."""
        provider = CountingProvider("mcp", [make_tool("search")])
        a = Agent("A", external_tools=provider)
        b = Agent("B", external_tools=provider)
        a.all_tools()
        b.all_tools()
        a.refresh_external_tools()
        b.all_tools()
        assert provider.fetches == 2


class TestCloneWith:
    """Tests for clone_with."""

    def test_overrides_fields(self) -> None:
        """clone_with returns a new agent with the given fields replaced."""
        a = Agent("A", instructions="one", model="claude-haiku-4-5")
        clone = a.clone_with(instructions="two")
        assert clone is not a
        assert clone.resolve_instructions(RunContext()) == "two"
        assert clone.model == "claude-haiku-4-5"
        assert a.resolve_instructions(RunContext()) == "one"

    def test_carries_handoffs(self) -> None:
        """Handoff targets are carried over."""
        b = Agent("B")
        clone = Agent("A", handoffs=[b]).clone_with(name="A2")
        assert clone.handoff_targets == (b,)

    def test_unknown_field(self) -> None:
        """Unknown fields raise TypeError."""
        with pytest.raises(TypeError, match="Unknown Agent fields"):
            Agent("A").clone_with(temperature=0.2)


class TestAgentsByName:
    """Tests for agents_by_name."""

    def test_later_agent_wins(self, caplog: pytest.LogCaptureFixture) -> None:
        """Duplicate names resolve to the later agent with a warning."""
        first, second = Agent("Support"), Agent("Support")
        with caplog.at_level("WARNING", logger="agent_relay"):
            table = agents_by_name([first, second])
        assert table["Support"] is second
        assert "Duplicate agent name" in caplog.text
