"""Generic visit/mutate over the IR tree."""

import dataclasses
from typing import Any, Callable, Iterator, List

from polyui.compiler.ast_nodes import Node


def is_node(value: Any) -> bool:
    return isinstance(value, Node)


def walk(value: Any) -> Iterator[Node]:
    """Yield every reachable Node in document order.

    Descends into node children, bindings, properties and meta, and into any
    list, tuple, dict or dataclass found along the way. A node's substructures
    are read after it has been yielded, so the consumer may mutate the node
    (or replace its children list) before its descendants are visited.
    """
    if isinstance(value, Node):
        yield value
        # Nodes nested in meta (e.g. Show's else branch) come after children
        for attr in ("children", "bindings", "properties", "meta"):
            yield from walk(getattr(value, attr))
    elif isinstance(value, dict):
        for item in list(value.values()):
            yield from walk(item)
    elif isinstance(value, (list, tuple)):
        for item in list(value):
            yield from walk(item)
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        for f in dataclasses.fields(value):
            yield from walk(getattr(value, f.name))


def traverse_nodes(root: Any, callback: Callable[[Node], None]) -> None:
    """Call callback for every node under root."""
    for node in walk(root):
        callback(node)


def filter_nodes(root: Any, predicate: Callable[[Node], bool]) -> List[Node]:
    """Return the nodes under root matching predicate, in document order."""
    return [node for node in walk(root) if predicate(node)]
