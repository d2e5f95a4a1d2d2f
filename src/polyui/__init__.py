from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("polyui")
except PackageNotFoundError:
    __version__ = "unknown"

from polyui.compiler.ast_nodes import (
    Binding,
    Component,
    Import,
    Node,
    create_node,
    create_text,
)
from polyui.compiler.codegen.base import GeneratorOutput, OutputFile
from polyui.compiler.codegen.qwik import QwikOptions, component_to_qwik
from polyui.compiler.codegen.react import ReactOptions, component_to_react
from polyui.compiler.codegen.react_native import (
    ReactNativeOptions,
    component_to_react_native,
)
from polyui.compiler.exceptions import PolyUIError
from polyui.compiler.parser import parse_component
from polyui.compiler.plugins import Plugin
from polyui.log import configure_logging
from polyui.targets import TARGETS, compile_component

__all__ = [
    "Binding",
    "Component",
    "Import",
    "Node",
    "create_node",
    "create_text",
    "GeneratorOutput",
    "OutputFile",
    "QwikOptions",
    "component_to_qwik",
    "ReactOptions",
    "component_to_react",
    "ReactNativeOptions",
    "component_to_react_native",
    "PolyUIError",
    "parse_component",
    "Plugin",
    "configure_logging",
    "TARGETS",
    "compile_component",
]
