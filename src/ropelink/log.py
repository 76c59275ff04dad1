"""structlog setup for ropelink; events go to stderr through stdlib logging."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog


def configure_logging(level: int | str = "WARNING", *, json_logs: bool = False) -> None:
    """Route ropelink events to stderr at ``level``.

    Output is rendered as JSON when ``json_logs`` is set or stderr is not a
    terminal, and with the console renderer otherwise.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logging.basicConfig(
        level=level,
        handlers=[logging.StreamHandler(sys.stderr)],
        force=True,
        format="%(message)s",
    )
    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
    ]
    if json_logs or not sys.stderr.isatty():
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    full_name = name if name.startswith("ropelink") else f"ropelink.{name}"
    return structlog.get_logger(full_name)
