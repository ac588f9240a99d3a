"""Logging setup for bucket-sync.

Usage::

    from bucket_sync.logger import get_logger

    log = get_logger(__name__)
    log.warning("Could not tag %s", key)
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

__all__ = ["get_logger", "setup_logging"]

_ROOT_LOGGER_NAME = "bucket_sync"
_configured = False


def setup_logging(verbose: bool = False, quiet: bool = False, console: Optional[Console] = None) -> None:
    """Configure the *bucket_sync* logger.

    Call once during CLI bootstrap. ``verbose`` enables DEBUG, ``quiet``
    limits output to errors.
    """
    global _configured

    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    root = logging.getLogger(_ROOT_LOGGER_NAME)
    root.setLevel(level)

    if not _configured:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_time=False,
            show_path=verbose,
            markup=False,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)
        root.propagate = False
        _configured = True


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the bucket_sync namespace."""
    if name == _ROOT_LOGGER_NAME or name.startswith(_ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{_ROOT_LOGGER_NAME}.{name}")
