"""Tool - a named, schema-described capability an agent exposes to the model.

Tools are stateless: everything a call needs comes from the ToolContext and
the arguments, never from instance fields, because one Tool value may run
concurrently in unrelated runs.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any

import jsonschema

from agent_relay.errors import ToolArgumentError
from agent_relay.tool.ToolContext import ToolContext
from agent_relay.tool.ToolMetadata import Param, ToolMetadata, params_to_json_schema
from agent_relay.util.json_utils import JSONSchema


type ToolHandler = Callable[..., Any]
"""Called as handler(tool_context, **arguments) and returns a string or structured value."""


@dataclass(frozen=True, eq=False)
class Tool:
    """A capability that can be granted to an agent.

    Attributes:
        name: Identifier used by the model's function-calling protocol
        description: Human-readable description (useful for LLM tool selection)
        params: Named parameters; turned into the JSON schema sent to the model
        handler: The function that executes when the tool is invoked
    """

    name: str
    description: str = ""
    params: Mapping[str, Param] = field(default_factory=dict)
    handler: ToolHandler | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Tool name must not be empty")
        if self.handler is None and type(self).perform is Tool.perform:
            raise ValueError(f"Tool '{self.name}' needs a handler or a perform() override")
        object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def json_schema(self) -> JSONSchema:
        return params_to_json_schema(self.params)

    def to_metadata(self) -> ToolMetadata:
        """Extract tool metadata (without handler) for the chat client."""
        return ToolMetadata(
            name=self.name,
            description=self.description,
            parameters=self.json_schema(),
        )

    def renamed(self, name: str) -> Tool:
        """Copy of this tool exposed under a different name."""
        return replace(self, name=name)

    def execute(self, context: ToolContext, arguments: Mapping[str, Any] | None = None) -> Any:
        """Validate arguments against the schema, then perform the tool.

        Args:
            context: Per-call context wrapping the run's shared state
            arguments: Arguments decoded from the model's tool call

        Returns:
            The tool's result (string or structured value)

        Raises:
            ToolArgumentError: If arguments don't match the parameter schema
        """
        args = dict(arguments or {})
        try:
            self.json_schema().validate(args)
        except jsonschema.ValidationError as e:
            raise ToolArgumentError(self.name, e.message, e) from e
        return self.perform(context, **args)

    def perform(self, context: ToolContext, **kwargs: Any) -> Any:
        """Run the tool. Subclasses override this; plain tools use handler."""
        assert self.handler is not None
        return self.handler(context, **kwargs)

    @staticmethod
    def define(
        name: str | None = None,
        description: str | None = None,
        params: Mapping[str, Param] | None = None,
    ) -> Callable[[ToolHandler], Tool]:
        """Decorator that turns a function into a Tool.

        Usage:
            @Tool.define(params={"city": Param("string", "City name")})
            def get_weather(ctx: ToolContext, city: str) -> str:
                \"\"\"Get current weather for a city.\"\"\"
                return f"Sunny in {city}"

        The tool name defaults to the function name and the description to its
        docstring.
        """

        def decorator(fn: ToolHandler) -> Tool:
            return Tool(
                name=name or fn.__name__,
                description=description or (fn.__doc__ or "").strip(),
                params=params or {},
                handler=fn,
            )

        return decorator
