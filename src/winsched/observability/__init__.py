"""Structured JSON-lines logging for winsched."""

from winsched.observability.logging import (
    LOG_FILENAME,
    REDACTED,
    JsonLinesFormatter,
    LoggingConfig,
    configure_logging,
    redact,
    setup_logging,
    shutdown_logging,
)

__all__ = [
    "JsonLinesFormatter",
    "LOG_FILENAME",
    "LoggingConfig",
    "REDACTED",
    "configure_logging",
    "redact",
    "setup_logging",
    "shutdown_logging",
]
