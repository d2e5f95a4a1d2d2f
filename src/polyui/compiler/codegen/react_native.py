"""React Native generator: lowers tags then delegates to the React generator."""

from dataclasses import dataclass
from typing import Optional

from polyui.compiler.ast_nodes import Component, Node, fast_clone
from polyui.compiler.codegen.base import GeneratorOutput
from polyui.compiler.codegen.react import ReactOptions, component_to_react
from polyui.compiler.helpers import node_text
from polyui.compiler.traverse import traverse_nodes


@dataclass
class ReactNativeOptions(ReactOptions):
    styles_type: str = "react-native"
    type: str = "native"

    CHOICES = {
        "styles_type": ("emotion", "react-native"),
        "state_type": ("useState", "mobx"),
        "type": ("native",),
    }


def lower_native_node(node: Node) -> None:
    # TODO: map img and input onto Image and TextInput
    if node.name.lower() == node.name:
        node.name = "View"
    if node_text(node).strip():
        node.name = "Text"


def component_to_react_native(
    component: Component, options: Optional[ReactNativeOptions] = None
) -> GeneratorOutput:
    options = options or ReactNativeOptions()
    json = fast_clone(component)
    traverse_nodes(json, lower_native_node)
    return component_to_react(json, ReactOptions(**options.to_kwargs()))
