"""Generator contract shared by every target."""

import dataclasses
import re
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Iterator, List, Mapping, Optional, Sequence, TypeVar

from polyui.compiler.ast_nodes import Component
from polyui.compiler.bindings import BindingRewriter
from polyui.compiler.exceptions import ConfigError
from polyui.compiler.expressions import ExpressionRewriter
from polyui.compiler.formatting import Formatter
from polyui.compiler.ids import NameRegistry
from polyui.compiler.plugins import Plugin

OptionsT = TypeVar("OptionsT", bound="GeneratorOptions")


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)([A-Z])", r"_\1", key).lower()


@dataclass
class GeneratorOptions:
    """Options understood by every generator."""

    prettier: bool = True
    formatter: Optional[Formatter] = None
    plugins: List[Plugin] = field(default_factory=list)
    rewriter: Optional[ExpressionRewriter] = None

    CHOICES: ClassVar[Dict[str, Sequence[str]]] = {}

    def __post_init__(self) -> None:
        for name, allowed in self.CHOICES.items():
            value = getattr(self, name)
            if value not in allowed:
                raise ConfigError(
                    f"Invalid value {value!r} for {name}; expected one of {list(allowed)}"
                )

    @classmethod
    def from_mapping(cls: type[OptionsT], data: Mapping[str, Any]) -> OptionsT:
        """Build options from snake_case or camelCase keys."""
        names = {f.name for f in dataclasses.fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = key if key in names else _snake_case(key)
            if name not in names:
                raise ConfigError(f"Unknown option {key!r} for {cls.__name__}")
            kwargs[name] = value
        return cls(**kwargs)

    def to_kwargs(self) -> Dict[str, Any]:
        """Shallow field mapping, suitable for building another options class."""
        return {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}


@dataclass
class OutputFile:
    path: str
    contents: str


@dataclass
class GeneratorOutput:
    files: List[OutputFile] = field(default_factory=list)
    component_name: Optional[str] = None

    def __iter__(self) -> Iterator[OutputFile]:
        return iter(self.files)

    @property
    def paths(self) -> List[str]:
        return [f.path for f in self.files]

    def get(self, path: str) -> OutputFile:
        for f in self.files:
            if f.path == path:
                return f
        raise KeyError(path)


@dataclass
class GenerationContext:
    """State owned by exactly one generation call."""

    component: Component
    options: GeneratorOptions
    bindings: BindingRewriter
    registry: NameRegistry = field(default_factory=NameRegistry)
