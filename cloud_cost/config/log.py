"""
Logging setup for the command line.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: int = logging.WARNING) -> None:
    """Route cloud_cost loggers to stderr through Rich."""
    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    logger = logging.getLogger("cloud_cost")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
