"""Utility modules for the recording and replay core.

Provides:
- Structured logging configuration
"""

from .logging import (
    LogContext,
    ReplayLogger,
    configure_from_settings,
    configure_logging,
    get_logger,
)

__all__ = [
    "configure_logging",
    "configure_from_settings",
    "get_logger",
    "LogContext",
    "ReplayLogger",
]
