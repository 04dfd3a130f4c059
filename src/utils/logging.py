"""Structured logging configuration for the recording and replay core.

Provides:
- Structured logging with structlog
- Context-aware logging
- A replay-run logger for step lifecycle tracking
"""

import logging
import sys
from typing import Optional

import structlog


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    include_timestamp: bool = True,
) -> None:
    """Configure structured logging for the recorder and replay engine.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        json_format: Render one JSON object per line instead of console output
        include_timestamp: Prefix each event with an ISO timestamp
    """
    numeric_level = getattr(logging, level.upper())
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=numeric_level)
    logging.getLogger().setLevel(numeric_level)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
    ]
    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso"))
    processors += [
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_from_settings(settings) -> None:
    """Configure logging from a Settings instance."""
    configure_logging(
        level=settings.log_level.value,
        json_format=settings.log_json,
    )


def get_logger(name: Optional[str] = None, **context) -> structlog.BoundLogger:
    """Get a configured logger with optional context.

    Args:
        name: Logger name
        **context: Additional context to bind

    Returns:
        Configured structlog logger
    """
    logger = structlog.get_logger(name)
    if context:
        logger = logger.bind(**context)
    return logger


class LogContext:
    """Context manager for scoped logging context.

    Usage:
        with LogContext(session_id="rec-123", flow_id="flow-1"):
            logger.info("Recording started")
            # All logs within this block have session_id and flow_id bound
    """

    def __init__(self, **context):
        self.context = context
        self._bound = False

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        self._bound = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._bound:
            structlog.contextvars.unbind_contextvars(*self.context.keys())
            self._bound = False


class ReplayLogger:
    """Logger specialized for replay run tracking.

    Provides structured logging for:
    - Run start/end
    - Step execution
    - Locator fallback
    - Failures
    """

    def __init__(self, flow_id: str, flow_name: str = ""):
        """Initialize replay logger.

        Args:
            flow_id: Flow identifier
            flow_name: Human-readable flow name
        """
        self.log = get_logger().bind(
            component="replay",
            flow_id=flow_id,
            flow_name=flow_name,
        )
        self.step_count = 0

    def run_started(self, total_steps: int) -> None:
        """Log run start."""
        self.log.info("Replay started", total_steps=total_steps)

    def run_finished(self, passed: bool, duration_ms: int) -> None:
        """Log run completion."""
        self.log.info(
            "Replay finished",
            passed=passed,
            duration_ms=duration_ms,
            steps_executed=self.step_count,
        )

    def step_started(self, step_index: int, kind: str, description: str = "") -> None:
        """Log step start."""
        self.step_count = step_index + 1
        self.log.debug(
            "Step started",
            step_index=step_index,
            kind=kind,
            description=description,
        )

    def step_completed(self, step_index: int, kind: str, duration_ms: int, fallback_used: bool) -> None:
        """Log step completion."""
        level = self.log.info if fallback_used else self.log.debug
        level(
            "Step completed",
            step_index=step_index,
            kind=kind,
            duration_ms=duration_ms,
            fallback_used=fallback_used,
        )

    def step_failed(self, step_index: int, kind: str, error: str) -> None:
        """Log step failure."""
        self.log.warning(
            "Step failed",
            step_index=step_index,
            kind=kind,
            error=error,
        )

    def aborted(self, step_index: int) -> None:
        """Log an abort taking effect."""
        self.log.info("Replay aborted", step_index=step_index)
