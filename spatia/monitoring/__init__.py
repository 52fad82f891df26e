"""
Spatia - Monitoring Module

Structured lifecycle logging.
"""

from spatia.monitoring.logging import (
    LogLevel,
    LogRecord,
    StructuredLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "LogLevel",
    "LogRecord",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
]
