"""Rich logging setup for the CLI."""

import logging

from rich.console import Console
from rich.logging import RichHandler

# Log output goes to stderr so command output on stdout stays clean
console = Console(stderr=True)


def configure_rich_logging(level: int | str = logging.INFO, show_time: bool = True) -> None:
    """Route all logging through a ``RichHandler``.

    Args:
        level: Logging level (name or number).
        show_time: Show timestamp in log output.
    """
    rich_handler = RichHandler(
        console=console,
        show_time=show_time,
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))

    logging.basicConfig(
        level=level,
        handlers=[rich_handler],
        force=True,
    )
