"""Logging setup for polyui."""

import logging
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler

console = Console(stderr=True)


def configure_logging(
    level: Union[int, str] = logging.INFO, rich_console: Optional[Console] = None
) -> logging.Logger:
    """Route polyui log records through a RichHandler.

    Generators only emit records (invalid attribute names, formatter
    failures); applications embedding polyui decide whether to call this.
    """
    handler = RichHandler(
        console=rich_console or console, show_path=False, markup=False
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logger = logging.getLogger("polyui")
    for existing in list(logger.handlers):
        if isinstance(existing, RichHandler):
            logger.removeHandler(existing)
    logger.addHandler(handler)
    logger.setLevel(level)
    return logger
