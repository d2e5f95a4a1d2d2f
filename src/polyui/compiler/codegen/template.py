"""JSX template rendering shared by the JSX-based generators."""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, List

from polyui.compiler.ast_nodes import FOR, FRAGMENT, SHOW, Binding, Node
from polyui.compiler.codegen.base import GenerationContext
from polyui.compiler.escape import escape_attribute
from polyui.compiler.exceptions import ComponentSchemaError
from polyui.compiler.helpers import (
    SELF_CLOSING_TAGS,
    filter_empty_text_nodes,
    is_valid_attribute_name,
)

log = logging.getLogger(__name__)


class NodeKind(Enum):
    FRAGMENT = FRAGMENT
    FOR = FOR
    SHOW = SHOW
    ELEMENT = "element"


def classify(node: Node) -> NodeKind:
    match node.name:
        case "Fragment":
            return NodeKind.FRAGMENT
        case "For":
            return NodeKind.FOR
        case "Show":
            return NodeKind.SHOW
        case _:
            return NodeKind.ELEMENT


def is_event_binding(key: str) -> bool:
    return key.startswith("on")


class JsxTemplate(ABC):
    """Renders IR nodes as JSX.

    Subclasses decide how event bindings are emitted and may rename
    attributes or tags; everything else (control flow, literal properties,
    inline bindings, spreads, text) is shared.
    """

    # Value a falsy Show condition renders to
    empty_value = "undefined"

    def __init__(self, context: GenerationContext) -> None:
        self.context = context

    def process(self, code: str) -> str:
        return self.context.bindings.process(code)

    def render(self, node: Node) -> str:
        match classify(node):
            case NodeKind.FRAGMENT:
                return self.render_fragment(node)
            case NodeKind.FOR:
                return self.render_for(node)
            case NodeKind.SHOW:
                return self.render_show(node)
            case NodeKind.ELEMENT:
                return self.render_element(node)

    def render_nodes(self, nodes: List[Node], skip_empty_text: bool = False) -> str:
        if skip_empty_text:
            nodes = [n for n in nodes if filter_empty_text_nodes(n)]
        return "\n".join(self.render(n) for n in nodes)

    def render_fragment(self, node: Node) -> str:
        return f"<>{self.render_nodes(node.children)}</>"

    def _required_binding(self, node: Node, key: str) -> str:
        code = node.get_binding(key)
        if code is None or not code.strip():
            raise ComponentSchemaError(f"{node.name} node requires a '{key}' binding")
        return code

    def render_for(self, node: Node) -> str:
        each = self.process(self._required_binding(node, "each"))
        item_name = node.properties.get("_forName") or "item"
        index_name = node.properties.get("_indexName")
        params = f"({item_name}, {index_name})" if index_name else item_name
        children = self.render_nodes(node.children, skip_empty_text=True)
        return f"{{{each}.map({params} => (\n<>{children}</>\n))}}"

    def render_show(self, node: Node) -> str:
        when = self.process(self._required_binding(node, "when"))
        children = self.render_nodes(node.children, skip_empty_text=True)
        else_node = node.meta.get("else")
        if isinstance(else_node, Node):
            alternate = f"(\n<>{self.render(else_node)}</>\n)"
        else:
            alternate = self.empty_value
        return f"{{{when} ? (\n<>{children}</>\n) : {alternate}}}"

    def tag_name(self, node: Node) -> str:
        return node.name

    def attribute_name(self, key: str) -> str:
        return key

    def render_text(self, node: Node, text: str) -> str:
        return text

    @abstractmethod
    def render_events(self, node: Node, events: Dict[str, Binding]) -> List[str]:
        """JSX attributes for the event bindings of node."""

    def render_element(self, node: Node) -> str:
        text_binding = node.get_binding("_text")
        if text_binding:
            return self.render_text(node, f"{{{self.process(text_binding)}}}")
        text = node.properties.get("_text")
        if text:
            return self.render_text(node, text)

        tag = self.tag_name(node)
        parts = [f"<{tag}"]

        spread = node.get_binding("_spread")
        if spread:
            parts.append(f" {{...({self.process(spread)})}}")

        for key, value in node.properties.items():
            if not key or key.startswith("_") or key.startswith("$"):
                continue
            if not is_valid_attribute_name(key):
                log.warning("Skipping invalid attribute name: %s", key)
                continue
            parts.append(f' {self.attribute_name(key)}="{escape_attribute(value or "")}"')

        events: Dict[str, Binding] = {}
        for key, binding in node.bindings.items():
            if key.startswith("_") or key.startswith("$"):
                continue
            if is_event_binding(key):
                events[key] = binding
                continue
            if not is_valid_attribute_name(key):
                log.warning("Skipping invalid attribute name: %s", key)
                continue
            parts.append(f" {self.attribute_name(key)}={{{self.process(binding.code)}}}")

        if events:
            parts.extend(self.render_events(node, events))

        if tag in SELF_CLOSING_TAGS:
            return "".join(parts) + " />"

        parts.append(">")
        parts.append(self.render_nodes(node.children))
        parts.append(f"</{tag}>")
        return "".join(parts)
