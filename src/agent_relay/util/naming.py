"""Name helpers for deriving tool names from agent names."""

from __future__ import annotations

import hashlib
import re

MAX_TOOL_NAME_LENGTH = 64
"""Longest tool name the Anthropic API accepts."""


def snake_case(name: str) -> str:
    """Convert an agent name like "Billing Agent" or "FAQAgent" to snake_case.

    CamelCase boundaries and runs of spaces or dashes become underscores, and
    any character that is not a letter, digit or underscore is dropped.

    Examples:
        snake_case("Billing Agent") -> "billing_agent"
        snake_case("FAQAgent") -> "faq_agent"
        snake_case("Agent-Name!@#") -> "agent_name"
    """
    s = re.sub(r"([A-Z]+)([A-Z][a-z])", r"\1_\2", name.strip())
    s = re.sub(r"([a-z\d])([A-Z])", r"\1_\2", s)
    s = re.sub(r"[\s\-]+", "_", s)
    s = re.sub(r"[^A-Za-z0-9_]", "", s)
    s = re.sub(r"_+", "_", s).strip("_")
    return s.lower()


def short_hash(text: str) -> str:
    """Eight hex characters that are stable across processes."""
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:8]


def name_slug(name: str) -> str:
    """snake_case(name), or "agent_<hash>" when nothing ASCII survives ("Соня")."""
    return snake_case(name) or f"agent_{short_hash(name)}"


def bounded_tool_name(name: str, limit: int = MAX_TOOL_NAME_LENGTH) -> str:
    """Cut name down to limit characters, keeping distinct names distinct.

    A name that is too long keeps its head and gets a hash of the full name
    as suffix, so two long names sharing a prefix still differ.
    """
    if len(name) <= limit:
        return name
    suffix = short_hash(name)
    head = name[: limit - len(suffix) - 1].rstrip("_")
    return f"{head}_{suffix}"
