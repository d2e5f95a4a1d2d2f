"""Maps JSON component descriptions onto the IR dataclasses."""

import json
from typing import Any, Dict, List, Mapping, Union

from polyui.compiler.ast_nodes import Binding, Component, Import, Node
from polyui.compiler.exceptions import ComponentSchemaError

COMPONENT_TYPE = "@polyui/component"
NODE_TYPE = "@polyui/node"

# Meta entries holding nested nodes
NODE_META_KEYS = ("else",)


class ComponentParser:
    """Builds a Component from JSON-compatible data.

    Every error names the path of the offending value, e.g.
    ``children[0].bindings.onClick``.
    """

    def parse(self, text: str) -> Component:
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ComponentSchemaError(f"Invalid JSON: {e}") from e
        return self.from_dict(data)

    def from_dict(self, data: Any) -> Component:
        self._expect(data, Mapping, "component", "")
        data_type = data.get("@type", COMPONENT_TYPE)
        if data_type != COMPONENT_TYPE:
            raise ComponentSchemaError(f"Unexpected @type {data_type!r}", "@type")

        name = data.get("name", "MyComponent")
        self._expect(name, str, "string", "name")

        return Component(
            name=name,
            children=self._map_nodes(data.get("children", []), "children"),
            imports=self._map_imports(data.get("imports", []), "imports"),
            hooks=self._map_strings(data.get("hooks", {}), "hooks"),
            state=dict(self._expect(data.get("state", {}), Mapping, "object", "state")),
            props=dict(self._expect(data.get("props", {}), Mapping, "object", "props")),
            meta=dict(self._expect(data.get("meta", {}), Mapping, "object", "meta")),
        )

    def _expect(self, value: Any, kind: Any, label: str, path: str) -> Any:
        if not isinstance(value, kind):
            raise ComponentSchemaError(
                f"Expected {label}, got {type(value).__name__}", path
            )
        return value

    def _map_strings(self, value: Any, path: str) -> Dict[str, str]:
        self._expect(value, Mapping, "object", path)
        for key, item in value.items():
            self._expect(item, str, "string", f"{path}.{key}")
        return dict(value)

    def _map_imports(self, value: Any, path: str) -> List[Import]:
        self._expect(value, list, "array", path)
        imports = []
        for i, item in enumerate(value):
            item_path = f"{path}[{i}]"
            self._expect(item, Mapping, "object", item_path)
            if "path" not in item:
                raise ComponentSchemaError("Import requires a path", item_path)
            self._expect(item["path"], str, "string", f"{item_path}.path")
            imports.append(
                Import(
                    path=item["path"],
                    imports=self._map_strings(item.get("imports", {}), f"{item_path}.imports"),
                )
            )
        return imports

    def _map_nodes(self, value: Any, path: str) -> List[Node]:
        self._expect(value, list, "array", path)
        return [self._map_node(item, f"{path}[{i}]") for i, item in enumerate(value)]

    def _map_binding(self, value: Any, path: str) -> Binding:
        if isinstance(value, str):
            return Binding(code=value)
        self._expect(value, Mapping, "string or object", path)
        code = value.get("code")
        self._expect(code, str, "string", f"{path}.code")

        arguments = value.get("arguments")
        if arguments is not None:
            self._expect(arguments, list, "array", f"{path}.arguments")
            for i, arg in enumerate(arguments):
                self._expect(arg, str, "string", f"{path}.arguments[{i}]")

        binding_type = value.get("type", "function")
        if binding_type not in ("arrow", "function"):
            raise ComponentSchemaError(
                f"Unknown binding type {binding_type!r}", f"{path}.type"
            )
        return Binding(
            code=code,
            arguments=list(arguments) if arguments is not None else None,
            is_arrow_function=binding_type == "arrow",
        )

    def _map_node(self, value: Any, path: str) -> Node:
        self._expect(value, Mapping, "node object", path)
        node_type = value.get("@type", NODE_TYPE)
        if node_type != NODE_TYPE:
            raise ComponentSchemaError(f"Unexpected @type {node_type!r}", f"{path}.@type")

        name = value.get("name", "div")
        self._expect(name, str, "string", f"{path}.name")

        bindings_value = self._expect(
            value.get("bindings", {}), Mapping, "object", f"{path}.bindings"
        )
        bindings = {
            key: self._map_binding(item, f"{path}.bindings.{key}")
            for key, item in bindings_value.items()
        }

        meta = dict(self._expect(value.get("meta", {}), Mapping, "object", f"{path}.meta"))
        for key in NODE_META_KEYS:
            if key in meta and meta[key] is not None:
                meta[key] = self._map_node(meta[key], f"{path}.meta.{key}")

        return Node(
            name=name,
            properties=self._map_strings(value.get("properties", {}), f"{path}.properties"),
            bindings=bindings,
            children=self._map_nodes(value.get("children", []), f"{path}.children"),
            meta=meta,
        )


def parse_component(data: Union[str, Mapping[str, Any]]) -> Component:
    """Build a Component from JSON text or already-decoded data."""
    parser = ComponentParser()
    if isinstance(data, str):
        return parser.parse(data)
    return parser.from_dict(data)


def _binding_to_dict(binding: Binding) -> Union[str, Dict[str, Any]]:
    if binding.arguments is None and not binding.is_arrow_function:
        return binding.code
    result: Dict[str, Any] = {"code": binding.code}
    if binding.arguments is not None:
        result["arguments"] = list(binding.arguments)
    if binding.is_arrow_function:
        result["type"] = "arrow"
    return result


def node_to_dict(node: Node) -> Dict[str, Any]:
    meta = {
        key: node_to_dict(value) if isinstance(value, Node) else value
        for key, value in node.meta.items()
    }
    return {
        "@type": NODE_TYPE,
        "name": node.name,
        "properties": dict(node.properties),
        "bindings": {key: _binding_to_dict(b) for key, b in node.bindings.items()},
        "children": [node_to_dict(child) for child in node.children],
        "meta": meta,
    }


def component_to_dict(component: Component) -> Dict[str, Any]:
    """Inverse of parse_component."""
    return {
        "@type": COMPONENT_TYPE,
        "name": component.name,
        "imports": [{"path": i.path, "imports": dict(i.imports)} for i in component.imports],
        "hooks": dict(component.hooks),
        "state": dict(component.state),
        "props": dict(component.props),
        "children": [node_to_dict(child) for child in component.children],
        "meta": dict(component.meta),
    }
