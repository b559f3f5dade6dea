"""Utility helpers for treesync."""

from .logging import (
    setup_logging,
    get_logger,
    LoggerMixin,
    log_async_execution_time
)

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggerMixin",
    "log_async_execution_time",
]
