"""Compiler exceptions."""

from typing import Optional


class PolyUIError(Exception):
    """Base class for all compiler errors."""


class ComponentSchemaError(PolyUIError):
    """Raised when input data does not describe a valid component."""

    def __init__(self, message: str, path: str = "") -> None:
        self.message = message
        self.path = path
        super().__init__(str(self))

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class BindingSyntaxError(PolyUIError):
    """Raised when embedded expression code cannot be rewritten."""

    def __init__(
        self, message: str, code: str = "", position: Optional[int] = None
    ) -> None:
        self.message = message
        self.code = code
        self.position = position
        super().__init__(str(self))

    def __str__(self) -> str:
        if not self.code:
            return self.message
        if self.position is None:
            return f"{self.message} in {self.code!r}"
        return f"{self.message} at position {self.position} in {self.code!r}"


class StyleSyntaxError(PolyUIError):
    """Raised when a structured style literal cannot be parsed."""


class FormatError(PolyUIError):
    """Raised by a formatter that could not format its input."""


class BundleError(PolyUIError):
    """Raised when the compile/link step of bundling fails."""


class ConfigError(PolyUIError):
    """Raised on invalid generator options."""


class UnknownTargetError(PolyUIError):
    """Raised when a target name has no registered generator."""
