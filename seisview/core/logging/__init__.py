"""Structured logging and stage timing."""

from seisview.core.logging.config import LOG_LEVELS, LogConfig
from seisview.core.logging.logger import (
    configure_from_settings,
    configure_logging,
    current_trace_id,
    log_context,
    logger,
)
from seisview.core.logging.performance import PerformanceLogger

__all__ = [
    "LOG_LEVELS",
    "LogConfig",
    "PerformanceLogger",
    "configure_from_settings",
    "configure_logging",
    "current_trace_id",
    "log_context",
    "logger",
]
