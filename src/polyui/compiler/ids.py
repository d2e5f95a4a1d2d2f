"""Deterministic per-call id allocation for nodes."""

import re
from typing import Dict

from polyui.compiler.ast_nodes import Node
from polyui.compiler.helpers import camel_case, capitalize

_HEADING_RE = re.compile(r"^h\d$")


class NameRegistry:
    """Per-generation-call counters, keyed by base name.

    A registry must be created fresh for every generation call; generators do
    so through their GenerationContext and pass it down explicitly.
    """

    def __init__(self) -> None:
        self._counts: Dict[str, int] = {}
        self._assigned: Dict[int, str] = {}

    def next_count(self, base: str) -> int:
        count = self._counts.get(base, 0) + 1
        self._counts[base] = count
        return count

    def owns(self, node: Node) -> bool:
        """True if node's memoised id was assigned by this registry."""
        node_id = node.meta.get("id")
        return node_id is not None and self._assigned.get(id(node)) == node_id

    def remember(self, node: Node, node_id: str) -> None:
        self._assigned[id(node)] = node_id


def base_name(node: Node) -> str:
    explicit = node.properties.get("$name")
    if explicit:
        return camel_case(explicit)
    # don't turn h1 into h-1
    if _HEADING_RE.match(node.name or ""):
        return node.name
    return camel_case(node.name or "div") or "div"


def allocate_id(node: Node, registry: NameRegistry) -> str:
    """Allocate a fresh id without memoising it."""
    name = base_name(node)
    count = registry.next_count(name)
    return capitalize(name if count == 1 else f"{name}{count}")


def get_id(node: Node, registry: NameRegistry) -> str:
    """Return node's id for this call, allocating it on first use."""
    if registry.owns(node):
        return node.meta["id"]
    node_id = allocate_id(node, registry)
    node.meta["id"] = node_id
    registry.remember(node, node_id)
    return node_id
