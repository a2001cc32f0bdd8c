"""Logging setup for the command line."""

import logging

from rich.console import Console
from rich.logging import RichHandler

from timehogger.config import Settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(settings: Settings, verbose: bool = False) -> logging.Logger:
    """Send ``timehogger`` logs to the debug log file, and to stderr when verbose.

    Safe to call more than once; handlers installed by a previous call are
    replaced.
    """
    root = logging.getLogger("timehogger")
    root.setLevel(logging.DEBUG if verbose else settings.log_level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    try:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(settings.log_file, encoding="utf-8")
    except OSError:
        file_handler = None
    if file_handler is not None:
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(file_handler)

    if verbose:
        root.addHandler(RichHandler(console=Console(stderr=True), show_path=False))

    root.propagate = False
    return root
