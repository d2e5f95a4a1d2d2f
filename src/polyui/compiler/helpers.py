"""Shared helpers for generators: naming, imports and state rendering."""

import json
import re
from typing import Any, Callable, List, Optional

from polyui.compiler.ast_nodes import (
    FUNCTION_PREFIX,
    GETTER_PREFIX,
    METHOD_PREFIX,
    Component,
    Import,
    Node,
)

_WORD_RE = re.compile(r"[A-Z]{2,}(?=[A-Z][a-z]|[^A-Za-z]|$)|[A-Z]?[a-z]+|[A-Z]+|\d+")
_ATTRIBUTE_NAME_RE = re.compile(r"^[A-Za-z_:][A-Za-z0-9_.:\-]*$")

SELF_CLOSING_TAGS = {
    "area",
    "base",
    "br",
    "col",
    "embed",
    "hr",
    "img",
    "input",
    "link",
    "meta",
    "param",
    "source",
    "track",
    "wbr",
}


def words(value: str) -> List[str]:
    return _WORD_RE.findall(value)


def camel_case(value: str) -> str:
    parts = words(value)
    if not parts:
        return ""
    head, rest = parts[0].lower(), parts[1:]
    return head + "".join(p[:1].upper() + p[1:].lower() for p in rest)


def kebab_case(value: str) -> str:
    return "-".join(p.lower() for p in words(value))


def capitalize(value: str) -> str:
    return value[:1].upper() + value[1:]


def is_valid_attribute_name(name: str) -> bool:
    return bool(name) and bool(_ATTRIBUTE_NAME_RE.match(name))


def filter_empty_text_nodes(node: Node) -> bool:
    """False for literal text nodes that contain only whitespace."""
    text = node.properties.get("_text")
    return not (isinstance(text, str) and not text.strip() and not node.bindings)


def get_component_name(component: Component) -> str:
    return capitalize(camel_case(component.name or "my-component"))


def render_import(item: Import) -> str:
    default_name: Optional[str] = None
    namespace_name: Optional[str] = None
    named: List[str] = []
    for local, imported in item.imports.items():
        if imported == "default":
            default_name = local
        elif imported == "*":
            namespace_name = local
        elif imported == local:
            named.append(local)
        else:
            named.append(f"{imported} as {local}")

    if namespace_name:
        head = f"* as {namespace_name}"
        if default_name:
            head = f"{default_name}, {head}"
        return f"import {head} from '{item.path}';"

    specifiers: List[str] = []
    if default_name:
        specifiers.append(default_name)
    if named:
        specifiers.append("{ " + ", ".join(named) + " }")
    if not specifiers:
        return f"import '{item.path}';"
    return f"import {', '.join(specifiers)} from '{item.path}';"


def render_imports(imports: List[Import]) -> str:
    return "\n".join(render_import(item) for item in imports)


def _code_value(value: Any) -> Optional[str]:
    if isinstance(value, str):
        for prefix in (METHOD_PREFIX, FUNCTION_PREFIX, GETTER_PREFIX):
            if value.startswith(prefix):
                return value
    return None


def get_state_object_string(
    component: Component,
    format: str = "object",
    value_mapper: Callable[[str], str] = lambda code: code,
) -> str:
    """Render the component state as an object literal or class members.

    JSON values are emitted as literals. Code values (tagged with the method,
    function or getter prefix) are passed through value_mapper and emitted as
    members.
    """
    lines: List[str] = []
    for key, value in component.state.items():
        code_value = _code_value(value)
        if code_value is None:
            literal = json.dumps(value)
            if format == "class":
                lines.append(f"{key} = {literal};")
            else:
                lines.append(f"{key}: {literal},")
            continue

        if code_value.startswith(FUNCTION_PREFIX):
            code = value_mapper(code_value[len(FUNCTION_PREFIX):])
            if format == "class":
                lines.append(f"{key} = {code};")
            else:
                lines.append(f"{key}: {code},")
        else:
            prefix = METHOD_PREFIX if code_value.startswith(METHOD_PREFIX) else GETTER_PREFIX
            code = value_mapper(code_value[len(prefix):])
            lines.append(code if format == "class" else f"{code},")

    if format == "class":
        return "\n".join(lines)
    return "{\n" + "\n".join(lines) + "\n}"


def node_text(node: Node) -> str:
    """Literal or bound text content of a node, or ''."""
    text = node.properties.get("_text")
    if isinstance(text, str) and text.strip():
        return text
    binding = node.bindings.get("_text")
    if binding is not None and binding.code.strip():
        return binding.code
    return ""
