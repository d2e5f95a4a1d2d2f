"""Escaping utilities for emitted markup."""

from typing import Any


def escape_attribute(value: Any) -> str:
    """Escape a literal attribute value for a double-quoted JSX attribute.

    Escapes: " and newlines
    """
    return str(value).replace('"', "&quot;").replace("\n", "\\n")


def escape_template_literal(value: str) -> str:
    """Escape text embedded in a JS template literal."""
    return value.replace("\\", "\\\\").replace("`", "\\`").replace("${", "\\${")
