"""Source formatting capability."""

import logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, Optional

from polyui.compiler.exceptions import FormatError

if TYPE_CHECKING:
    from polyui.compiler.codegen.base import GeneratorOptions

log = logging.getLogger(__name__)

PRETTIER_PARSERS: Dict[str, str] = {
    "typescript": "babel-ts",
    "javascript": "babel",
    "css": "css",
}


class Formatter(ABC):
    """Pretty-prints generated source. May fail with FormatError."""

    @abstractmethod
    def format(self, text: str, kind: str) -> str: ...


class PrettierFormatter(Formatter):
    """Formats source by piping it through the prettier executable."""

    def __init__(self, executable: str = "prettier", timeout: Optional[float] = 30) -> None:
        self.executable = executable
        self.timeout = timeout

    def format(self, text: str, kind: str) -> str:
        parser = PRETTIER_PARSERS.get(kind)
        if parser is None:
            raise FormatError(f"No prettier parser for {kind!r}")

        prettier_bin = shutil.which(self.executable)
        if not prettier_bin:
            raise FormatError(f"{self.executable} not found on PATH")

        log.debug(f"Running command: {[prettier_bin, '--parser', parser]}")
        try:
            result = subprocess.run(
                [prettier_bin, "--parser", parser],
                input=text,
                capture_output=True,
                text=True,
                check=True,
                timeout=self.timeout,
            )
        except subprocess.CalledProcessError as e:
            raise FormatError(e.stderr.strip() or str(e)) from e
        except (OSError, subprocess.TimeoutExpired) as e:
            raise FormatError(str(e)) from e
        return result.stdout


def format_code(text: str, options: "GeneratorOptions", kind: str = "typescript") -> str:
    """Format text unless disabled; on failure warn and return it unchanged."""
    if not options.prettier:
        return text
    formatter = options.formatter or PrettierFormatter()
    try:
        return formatter.format(text, kind)
    except Exception as e:
        log.warning(f"Error formatting code: {e}")
        return text
