"""Tests for the handoff prompt helper."""

from __future__ import annotations

from agent_relay.prompts import RECOMMENDED_HANDOFF_PROMPT_PREFIX, prompt_with_handoff_instructions


def test_prompt_with_handoff_instructions() -> None:
    """The handoff guidance comes first, followed by the agent's own prompt."""
    prompt = prompt_with_handoff_instructions("You are a billing agent.")
    assert prompt.startswith(RECOMMENDED_HANDOFF_PROMPT_PREFIX)
    assert prompt.endswith("You are a billing agent.")


def test_prefix_forbids_mentioning_transfers() -> None:
    """The prefix tells agents that transfers are invisible."""
    assert "transfer_to_<agent_name>" in RECOMMENDED_HANDOFF_PROMPT_PREFIX
    assert "NEVER mention transfers" in RECOMMENDED_HANDOFF_PROMPT_PREFIX
