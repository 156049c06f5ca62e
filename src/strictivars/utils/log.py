import logging
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler


def _setup_root_logger() -> None:
    logger = logging.getLogger("strictivars")
    logger.setLevel(logging.DEBUG)
    _handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        show_time=False,
        show_level=False,
    )
    _handler.setLevel(logging.INFO)
    _formatter = logging.Formatter("%(name)s: %(levelname)s: %(message)s")
    _handler.setFormatter(_formatter)
    logger.addHandler(_handler)


def add_file_handler(path: Path | str, level: int = logging.DEBUG, *, print_path: bool = True) -> None:
    """Also write the package log to `path`."""
    logger = logging.getLogger("strictivars")
    handler = logging.FileHandler(path)
    handler.setLevel(level)
    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    if print_path:
        print(f"Logging to '{path}'")


_setup_root_logger()
logger = logging.getLogger("strictivars")
