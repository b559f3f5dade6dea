"""Configuration package for treesync."""

from .settings import (
    SyncSettings,
    LoggingSettings,
    AppSettings,
    get_settings
)

__all__ = [
    "SyncSettings",
    "LoggingSettings",
    "AppSettings",
    "get_settings",
]
