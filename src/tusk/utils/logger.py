# Copyright (c) 2026 Dedalus Labs, Inc. and its contributors
# SPDX-License-Identifier: MIT

"""Logging helpers.

Library modules obtain loggers via ``get_logger`` and attach structured context
through ``extra={"event": ...}``. Nothing is emitted unless the application
configures logging; ``configure_logging`` is a convenience for scripts.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO

_ROOT = "tusk"
_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s%(event_suffix)s"

logging.getLogger(_ROOT).addHandler(logging.NullHandler())


class _EventFormatter(logging.Formatter):
    """Appends the structured ``event`` field when a record carries one."""

    def format(self, record: logging.LogRecord) -> str:
        event = getattr(record, "event", None)
        record.event_suffix = f" [{event}]" if event else ""
        return super().format(record)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``tusk`` namespace."""
    if name != _ROOT and not name.startswith(f"{_ROOT}."):
        name = f"{_ROOT}.{name}"
    return logging.getLogger(name)


def configure_logging(level: int | str = logging.INFO, *, stream: TextIO | None = None) -> logging.Handler:
    """Attach a console handler to the ``tusk`` logger and set its level.

    Calling this again replaces the handler installed by the previous call.
    """
    logger = logging.getLogger(_ROOT)
    for handler in list(logger.handlers):
        if getattr(handler, "_tusk_console", False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(_EventFormatter(_DEFAULT_FORMAT))
    handler._tusk_console = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    return handler


__all__ = ["configure_logging", "get_logger"]
