"""ToolMetadata - tool information sent to the model.

ToolMetadata contains only what the chat client needs to advertise a tool
(name, description, parameter schema) without the handler. The handler stays
on the Tool and is only reachable through the runner.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from agent_relay.util.json_utils import JSONSchema


type ParamType = Literal["string", "integer", "number", "boolean", "array", "object"]


@dataclass(frozen=True)
class Param:
    """One named tool parameter.

    Attributes:
        type: JSON schema type name
        description: Shown to the model
        required: Whether the model must supply it
    """

    type: ParamType = "string"
    description: str = ""
    required: bool = True

    def to_json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type}
        if self.description:
            schema["description"] = self.description
        return schema


def params_to_json_schema(params: Mapping[str, Param]) -> JSONSchema:
    """Build an object schema from named params.

    Unknown arguments are rejected so that typos from the model surface as
    errors it can correct on the next turn.
    """
    return JSONSchema({
        "type": "object",
        "properties": {name: p.to_json_schema() for name, p in params.items()},
        "required": [name for name, p in params.items() if p.required],
        "additionalProperties": False,
    })


@dataclass(frozen=True)
class ToolMetadata:
    """Tool metadata visible to the model (no handler).

    Attributes:
        name: Unique identifier for this tool within one agent
        description: Human-readable description (useful for LLM tool selection)
        parameters: JSON schema describing the arguments object
    """

    name: str
    description: str
    parameters: JSONSchema
