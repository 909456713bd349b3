"""Logging helpers shared across backpropnets.

Usage::

    from backpropnets.utils import get_logger

    logger = get_logger(__name__)
    logger.info("Training started")

The level comes from ``BACKPROPNETS_LOG_LEVEL`` (``DEBUG``, ``INFO``,
``WARNING``, ``ERROR``; default ``INFO``).
"""

from __future__ import annotations

import logging
import os
import sys

_ROOT_LOGGER = "backpropnets"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_initialized = False


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    name = (level or os.environ.get("BACKPROPNETS_LOG_LEVEL") or "INFO").upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(level: str | int | None = None, *, force: bool = False) -> logging.Logger:
    """Attach a console handler to the package logger (once)."""

    global _initialized
    root = logging.getLogger(_ROOT_LOGGER)
    if _initialized and not force:
        if level is not None:
            root.setLevel(_resolve_level(level))
        return root
    for handler in list(root.handlers):
        root.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(_FORMAT, datefmt="%H:%M:%S"))
    root.addHandler(handler)
    root.setLevel(_resolve_level(level))
    _initialized = True
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the ``backpropnets`` namespace."""

    setup_logging()
    if name != _ROOT_LOGGER and not name.startswith(_ROOT_LOGGER + "."):
        name = f"{_ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


__all__ = ["get_logger", "setup_logging"]
