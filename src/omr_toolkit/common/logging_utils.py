"""
Logging setup for command-line entry points.

Library modules only create module loggers; handlers are attached here
so that embedding applications keep control of their own logging.
"""
from __future__ import annotations

import logging
import sys
from typing import Optional

DEFAULT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def configure_logging(verbosity: int = 0, stream: Optional[object] = None) -> logging.Handler:
    """
    Attach a console handler to the ``omr_toolkit`` logger.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG
        stream: Output stream (defaults to stderr)

    Returns:
        The attached handler (for later removal).
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity == 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    logger = logging.getLogger("omr_toolkit")
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(DEFAULT_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(level)
    return handler


def detach_handler(handler: logging.Handler) -> None:
    """Remove a handler previously attached by configure_logging()."""
    logging.getLogger("omr_toolkit").removeHandler(handler)
