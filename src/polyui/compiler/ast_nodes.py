"""IR node definitions for polyui components."""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Reserved control-flow node names
FRAGMENT = "Fragment"
FOR = "For"
SHOW = "Show"

# Prefixes marking code-valued state entries
METHOD_PREFIX = "@polyui/method:"
FUNCTION_PREFIX = "@polyui/function:"
GETTER_PREFIX = "@polyui/get:"


@dataclass
class Binding:
    """Expression-driven attribute, event handler or text value."""

    code: str
    arguments: Optional[List[str]] = None
    is_arrow_function: bool = False


@dataclass
class Node:
    """Render-tree element."""

    name: str = "div"
    properties: Dict[str, str] = field(default_factory=dict)
    bindings: Dict[str, Binding] = field(default_factory=dict)
    children: List["Node"] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)

    def get_binding(self, key: str) -> Optional[str]:
        binding = self.bindings.get(key)
        return binding.code if binding is not None else None

    def set_binding(self, key: str, code: str, **kwargs: Any) -> None:
        self.bindings[key] = Binding(code=code, **kwargs)


@dataclass
class Import:
    """Module import: local name -> imported name ('default', '*' or a name)."""

    path: str
    imports: Dict[str, str] = field(default_factory=dict)


@dataclass
class Component:
    """Root IR entity, one per generation call."""

    name: str = "MyComponent"
    children: List[Node] = field(default_factory=list)
    imports: List[Import] = field(default_factory=list)
    hooks: Dict[str, str] = field(default_factory=dict)
    state: Dict[str, Any] = field(default_factory=dict)
    props: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)


def create_node(
    name: str = "div",
    properties: Optional[Dict[str, str]] = None,
    bindings: Optional[Dict[str, Any]] = None,
    children: Optional[List[Node]] = None,
    meta: Optional[Dict[str, Any]] = None,
) -> Node:
    """Build a Node, accepting plain code strings as binding values."""
    node_bindings: Dict[str, Binding] = {}
    for key, value in (bindings or {}).items():
        node_bindings[key] = value if isinstance(value, Binding) else Binding(code=value)

    return Node(
        name=name,
        properties=dict(properties or {}),
        bindings=node_bindings,
        children=list(children or []),
        meta=dict(meta or {}),
    )


def create_text(text: str) -> Node:
    """Build a literal text node."""
    return Node(name="div", properties={"_text": text})


def fast_clone(value: Any) -> Any:
    """Deep copy IR values so generators never mutate caller input."""
    return copy.deepcopy(value)
