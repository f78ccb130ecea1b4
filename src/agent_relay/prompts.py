"""Prompt text shared by agents that hand off to each other."""

RECOMMENDED_HANDOFF_PROMPT_PREFIX = """\
# System context
You are part of a multi-agent system designed to make agent coordination and \
execution easy. It uses two primary abstractions: **Agents** and **Handoffs**. \
An agent encompasses instructions and tools and can hand off a conversation to \
another agent when appropriate. Handoffs are achieved by calling a handoff \
function, generally named `transfer_to_<agent_name>`.

CRITICAL: Transfers between agents are handled seamlessly in the background \
and are completely invisible to users. NEVER mention transfers, handoffs, or \
connecting to other agents in your conversation with the user. Simply call the \
transfer function when needed without any explanation to the user.
"""


def prompt_with_handoff_instructions(prompt: str) -> str:
    """Prefix an agent's instructions with the handoff guidance above."""
    return f"{RECOMMENDED_HANDOFF_PROMPT_PREFIX}\n{prompt}"
