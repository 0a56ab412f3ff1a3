# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""structlog setup for afkbot.

Log lines go to stderr so ``afkbot check-config`` and ``afkbot status`` keep
stdout clean for their YAML/JSON output. Colour is only used on a terminal.
"""

from __future__ import annotations

import logging
import sys
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from afkbot.settings import Settings

__all__ = ["configure_logging", "get_logger"]


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(settings: Settings) -> None:
    """Install the console pipeline at ``settings.log_level``.

    Context bound with ``structlog.contextvars`` is merged into every line;
    ``afkbot run`` binds the bot username there.
    """
    stream = sys.stderr
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=stream.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_level(settings.log_level)),
        logger_factory=structlog.PrintLoggerFactory(file=stream),
    )


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    return structlog.get_logger(name)
