"""Registry of generation targets."""

from dataclasses import dataclass
from typing import Any, Callable, Dict, Type

from polyui.compiler.ast_nodes import Component
from polyui.compiler.codegen.base import GeneratorOptions, GeneratorOutput
from polyui.compiler.codegen.qwik import QwikOptions, component_to_qwik
from polyui.compiler.codegen.react import ReactOptions, component_to_react
from polyui.compiler.codegen.react_native import (
    ReactNativeOptions,
    component_to_react_native,
)
from polyui.compiler.exceptions import UnknownTargetError


@dataclass(frozen=True)
class Target:
    generator: Callable[..., GeneratorOutput]
    options_class: Type[GeneratorOptions]


TARGETS: Dict[str, Target] = {
    "qwik": Target(component_to_qwik, QwikOptions),
    "react": Target(component_to_react, ReactOptions),
    "reactNative": Target(component_to_react_native, ReactNativeOptions),
}

# alternate spellings accepted from configs
ALIASES = {"react-native": "reactNative", "react_native": "reactNative"}


def get_target(name: str) -> Target:
    target = TARGETS.get(ALIASES.get(name, name))
    if target is None:
        raise UnknownTargetError(
            f"Unknown target {name!r}; expected one of {sorted(TARGETS)}"
        )
    return target


def compile_component(
    component: Component, target: str, **options: Any
) -> GeneratorOutput:
    """Generate component for target, building options from keyword arguments.

    Option names may be given in snake_case or camelCase.
    """
    resolved = get_target(target)
    return resolved.generator(component, resolved.options_class.from_mapping(options))
