from __future__ import annotations

import json as _json
from typing import Any, TypeGuard

import jsonschema


type JSONPyPrimitive = str | int | float | bool | None
"""Python primitives that convert to JSON without special treatment."""

type JSONPyDict = dict[str, JSONPyValue]

type JSONPyList = list[JSONPyValue]

type JSONPyValue = JSONPyPrimitive | JSONPyDict | JSONPyList


def _is_py_json(val: Any) -> bool:
    """Check if a value is JSON-compatible (internal helper)."""
    if val is None or isinstance(val, (str, int, float, bool)):
        return True
    if isinstance(val, dict):
        return all(isinstance(k, str) and _is_py_json(v) for k, v in val.items())
    if isinstance(val, (list, tuple)):
        return all(_is_py_json(item) for item in val)
    return False


class JSONSchema(dict[str, JSONPyValue]):
    """A validated JSON Schema dictionary.

    Validates against the JSON Schema meta-schema to ensure the schema is well-formed.
    """

    def __new__(cls, data: Any) -> JSONSchema:
        if not isinstance(data, dict):
            raise TypeError("JSONSchema must be a dict")
        try:
            jsonschema.Draft202012Validator.check_schema(data)
        except jsonschema.SchemaError as e:
            raise TypeError(f"Invalid JSON Schema: {e.message}") from e
        return super().__new__(cls, data)

    def __reduce__(self) -> tuple[type[JSONSchema], tuple[dict[str, Any]]]:
        """Support pickling and deepcopy."""
        return (JSONSchema, (dict(self),))

    def validate(self, instance: Any) -> None:
        """Validate an instance against this schema.

        Raises:
            jsonschema.ValidationError: If the instance doesn't match
        """
        jsonschema.Draft202012Validator(self).validate(instance)


class json:
    """Typed wrapper around the standard json module."""

    JSONPyPrimitive = JSONPyPrimitive
    JSONPyValue = JSONPyValue
    JSONDecodeError = _json.JSONDecodeError

    @staticmethod
    def to_string(json_val: Any, strict: bool = False) -> str:
        """Convert a Python value to a JSON string.

        Values that are not JSON-compatible (e.g. exceptions or objects in tool
        results) are rendered with str() rather than failing, unless strict.

        Args:
            json_val: A JSON-compatible Python value
            strict: Raise TypeError on values JSON can't represent

        Returns:
            The JSON string representation
        """
        if strict:
            return _json.dumps(json_val)
        return _json.dumps(json_val, default=str)

    @staticmethod
    def parse(json_str: str) -> JSONPyValue:
        """Parse a JSON string into a Python value.

        Args:
            json_str: A valid JSON string

        Returns:
            The parsed Python value
        """
        return _json.loads(json_str)  # type: ignore[return-value]

    @staticmethod
    def is_py_json(val: Any) -> TypeGuard[JSONPyValue]:
        """Check if a value is a valid JSON-compatible Python value.

        Args:
            val: Any Python value

        Returns:
            True if the value can be serialized to JSON
        """
        return _is_py_json(val)
