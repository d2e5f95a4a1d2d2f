"""Collection of per-node style literals into a class-keyed style map."""

import logging
import re
import textwrap
from typing import Any, Callable, Dict, List, Optional

import json5

from polyui.compiler.ast_nodes import Component, Node
from polyui.compiler.exceptions import StyleSyntaxError
from polyui.compiler.helpers import camel_case
from polyui.compiler.traverse import walk

log = logging.getLogger(__name__)

StyleMap = Dict[str, Dict[str, Any]]

CSS_BINDING = "css"


def parse_style_literal(code: str) -> Dict[str, Any]:
    """Parse a JSON5 object literal such as ``{ color: 'red' }``."""
    try:
        value = json5.loads(code)
    except ValueError as e:
        raise StyleSyntaxError(f"Invalid style literal {code!r}: {e}") from e
    if not isinstance(value, dict):
        raise StyleSyntaxError(f"Style literal must be an object, got {code!r}")
    return value


def collect_styles(
    component: Component,
    apply: Callable[[Node, str], None],
    default_name: str = "div",
    prefix: Optional[str] = None,
) -> StyleMap:
    """Move every ``css`` binding into the returned style map.

    Class names are the camel-cased tag name followed by a per-name
    occurrence counter (omitted for the first occurrence), optionally
    namespaced with prefix. apply(node, class_name) rewrites the node to
    reference the class.
    """
    style_map: StyleMap = {}
    indexes: Dict[str, int] = {}

    for node in walk(component):
        binding = node.bindings.get(CSS_BINDING)
        if binding is None:
            continue
        value = parse_style_literal(binding.code)
        del node.bindings[CSS_BINDING]
        if not value:
            continue

        name = camel_case(node.name or default_name) or default_name
        index = indexes[name] = indexes.get(name, 0) + 1
        class_name = name if index == 1 else f"{name}{index}"
        if prefix:
            class_name = f"{prefix}-{class_name}"

        apply(node, class_name)
        style_map[class_name] = value

    log.debug("Collected %d style classes from %s", len(style_map), component.name)
    return style_map


def collect_css(
    component: Component, class_property: str = "class", prefix: Optional[str] = None
) -> StyleMap:
    """Collect styles, referencing each class through class_property."""

    def add_class(node: Node, class_name: str) -> None:
        existing = node.properties.get(class_property, "")
        node.properties[class_property] = f"{existing} {class_name}".strip()

    return collect_styles(component, add_class, prefix=prefix)


def collect_react_native_styles(component: Component) -> StyleMap:
    """Collect styles, referencing each entry as ``styles.<name>``."""

    def add_style(node: Node, class_name: str) -> None:
        node.set_binding("style", f"styles.{class_name}")

    return collect_styles(component, add_style, default_name="view")


def css_property_name(key: str) -> str:
    if key.startswith("--"):
        return key
    return re.sub(r"[A-Z]", lambda m: "-" + m.group(0).lower(), key)


def _render_rules(selector: str, styles: Dict[str, Any]) -> List[str]:
    declarations: List[str] = []
    nested: List[str] = []
    media: List[str] = []

    for key, value in styles.items():
        if isinstance(value, dict):
            if key.startswith("@"):
                inner = "\n".join(_render_rules(selector, value))
                media.append(f"{key} {{\n{textwrap.indent(inner, '  ')}\n}}")
            elif "&" in key:
                nested.extend(_render_rules(key.replace("&", selector), value))
            elif key.startswith(":"):
                nested.extend(_render_rules(selector + key, value))
            else:
                nested.extend(_render_rules(f"{selector} {key}", value))
        else:
            declarations.append(f"  {css_property_name(key)}: {value};")

    rules: List[str] = []
    if declarations:
        rules.append(f"{selector} {{\n" + "\n".join(declarations) + "\n}")
    return rules + nested + media


def render_css(style_map: StyleMap) -> str:
    """Render a style map as stylesheet text."""
    blocks: List[str] = []
    for class_name, styles in style_map.items():
        blocks.extend(_render_rules(f".{class_name}", styles))
    return "\n".join(blocks)


def minify_css(css: str) -> str:
    return re.sub(r"\s+", " ", css.strip())
