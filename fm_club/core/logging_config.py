"""Logging setup for the FM Club CLI."""

import logging

from rich.logging import RichHandler


def configure_logging(level: str = "WARNING") -> None:
    """Install a rich handler on the root logger."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
