"""Instructions - an agent's system prompt, fixed or computed per turn."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from agent_relay.run.RunContext import RunContext


@dataclass(frozen=True)
class StaticInstructions:
    text: str


@dataclass(frozen=True)
class DynamicInstructions:
    """Instructions computed from the run context every turn.

    The function must be pure: it is called once per model round-trip and
    must not mutate the context.
    """

    fn: Callable[[RunContext], str]


type Instructions = StaticInstructions | DynamicInstructions

type InstructionsLike = Instructions | str | Callable[[RunContext], str] | None


def as_instructions(value: InstructionsLike) -> Instructions | None:
    """Coerce a string or callable into the tagged Instructions variant."""
    match value:
        case None:
            return None
        case StaticInstructions() | DynamicInstructions():
            return value
        case str() as text:
            return StaticInstructions(text)
        case _ if callable(value):
            return DynamicInstructions(value)
        case _:
            raise TypeError(
                f"instructions must be a string or a callable, got {type(value).__name__}"
            )


def resolve(instructions: Instructions | None, context: RunContext) -> str:
    match instructions:
        case None:
            return ""
        case StaticInstructions(text=text):
            return text
        case DynamicInstructions(fn=fn):
            result = fn(context)
            return "" if result is None else str(result)
