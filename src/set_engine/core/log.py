"""
structlog setup and the logger protocol consumed by strategies and the controller.

Any object with ``debug/info/warning/error/exception`` methods that accept an
event string plus keyword fields satisfies ``EngineLogger``; a structlog bound
logger does out of the box.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Protocol

import structlog


class EngineLogger(Protocol):
    def debug(self, event: str, **kw: Any) -> Any: ...

    def info(self, event: str, **kw: Any) -> Any: ...

    def warning(self, event: str, **kw: Any) -> Any: ...

    def error(self, event: str, **kw: Any) -> Any: ...

    def exception(self, event: str, **kw: Any) -> Any: ...


def configure_logging(level: str = "INFO", json: bool = False) -> None:
    """
    Configure structlog for console or JSON output.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        json: Render one JSON object per line instead of the console format
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=False))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
