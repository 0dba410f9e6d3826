"""Console logging configuration for the CLI"""

from __future__ import annotations

import logging


def setup_console_logging(level: int | str = logging.INFO) -> None:
    """Call once at start-up. Re-calls only adjust the root level."""
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return

    root.setLevel(level)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(
        "[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    ))
    root.addHandler(handler)
