"""Logging setup for the puzzle server."""
from __future__ import annotations

import logging
from typing import Union


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Configure root logging with a compact, grep-friendly formatter."""
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
            datefmt="%H:%M:%S",
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
