"""Public observability primitives: structured logging and correlation scopes."""

from edgenode.observability.logging import (
    CORRELATION_KEYS,
    LoggingConfig,
    LogRedactor,
    StructuredLoggingHandle,
    configure_structlog,
    correlation_scope,
    default_log_redactor,
    flush_logging,
    get_active_logging_handle,
    get_correlation_context,
    reset_correlation_fields,
    set_correlation_fields,
    setup_logging,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "CORRELATION_KEYS",
    "LogRedactor",
    "LoggingConfig",
    "StructuredLoggingHandle",
    "configure_structlog",
    "correlation_scope",
    "default_log_redactor",
    "flush_logging",
    "get_active_logging_handle",
    "get_correlation_context",
    "reset_correlation_fields",
    "set_correlation_fields",
    "setup_logging",
    "setup_structured_logging",
    "shutdown_logging",
]
