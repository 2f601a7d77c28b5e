"""
OAP Bootstrap - Observability Package

Logging and tracing for the server boot.

Components:
- logging: structlog integration with trace context propagation
- tracing: OpenTelemetry tracer provider setup and span helpers

Usage:
    from observability import setup_logging, setup_tracing, get_logger

    setup_logging()
    setup_tracing()
    logger = get_logger(__name__)
"""
from .logging import (
    BootLogger,
    LogContext,
    LoggingConfig,
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
    shutdown_logging,
)
from .tracing import (
    TracingConfig,
    create_span,
    get_tracer,
    setup_tracing,
    shutdown_tracing,
)

__all__ = [
    # Logging
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "LoggingConfig",
    "LogContext",
    "BootLogger",
    "bind_context",
    "clear_context",
    # Tracing
    "setup_tracing",
    "shutdown_tracing",
    "get_tracer",
    "create_span",
    "TracingConfig",
]
