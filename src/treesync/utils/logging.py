"""Logging configuration and utilities."""

import functools
import logging
import logging.handlers
import sys
import time
from pathlib import Path
from typing import Optional

import structlog
import colorlog
from structlog.typing import Processor

from ..config.settings import get_settings


# Marks handlers installed by setup_logging so a later call can replace them
_HANDLER_MARK = "_treesync_handler"

_LOG_COLORS = {
    'DEBUG': 'cyan',
    'INFO': 'green',
    'WARNING': 'yellow',
    'ERROR': 'red',
    'CRITICAL': 'red,bg_white',
}


def _resolve_level(level: str) -> int:
    value = logging.getLevelName(level.upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer(sort_keys=True)
    return structlog.dev.ConsoleRenderer(colors=False)


def _install(root: logging.Logger, handler: logging.Handler) -> None:
    setattr(handler, _HANDLER_MARK, True)
    root.addHandler(handler)


def setup_logging(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None
) -> None:
    """Route structlog events through the standard library.

    Events are rendered by structlog (console or JSON) and written to stderr,
    plus a rotating file when a path is configured. Arguments override the
    ``TREESYNC_LOG_*`` settings. Calling this again replaces the handlers of
    the previous call.

    Raises:
        ValueError: If the level name is unknown
    """
    config = get_settings().logging

    level = _resolve_level(log_level or config.level)
    format_type = log_format or config.format
    file_path = log_file or config.file_path

    root = logging.getLogger()
    for handler in [h for h in root.handlers if getattr(h, _HANDLER_MARK, False)]:
        root.removeHandler(handler)
        handler.close()
    root.setLevel(level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(format_type),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # console events go to stderr
    _install(root, console_handler(level))
    if file_path:
        _install(root, file_handler(file_path, level))


def file_handler(file_path: str, level: int) -> logging.Handler:
    """Rotating file handler writing pre-rendered events, one per line."""
    log_file = Path(file_path)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8"
    )
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(message)s"))
    return handler


def console_handler(level: int) -> logging.Handler:
    """stderr handler coloring each rendered event by level."""
    handler = colorlog.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(message)s",
        reset=True,
        log_colors=_LOG_COLORS
    ))
    return handler


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name)


class LoggerMixin:
    """Give a class a ``logger`` named after the class."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Logger bound to the class name."""
        return get_logger(type(self).__name__)


def _elapsed_ms(start_time: float) -> float:
    return round((time.perf_counter() - start_time) * 1000, 3)


def log_async_execution_time(func):
    """Log the wall time of a coroutine function.

    Successful calls are logged at DEBUG; a call that raises is logged at
    ERROR and the exception propagates unchanged.
    """
    logger = get_logger(func.__module__)
    name = func.__qualname__

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        """Await the wrapped coroutine and log how long it took."""
        start_time = time.perf_counter()
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            logger.error(
                "Call failed",
                function=name,
                duration_ms=_elapsed_ms(start_time),
                error=str(e)
            )
            raise

        logger.debug("Call finished", function=name, duration_ms=_elapsed_ms(start_time))
        return result

    return wrapper
