"""
OAP Bootstrap - Structured Logging with Trace Context

Integrates structlog with OpenTelemetry trace context propagation, so boot
log lines can be correlated with the ``module_manager.init`` trace.

Features:
- Structured JSON logging for log aggregation
- Human readable console rendering for operators
- Automatic trace context injection (trace_id, span_id)
- Bridges the stdlib ``oap.*`` loggers used by the module engine

Usage:
    from observability.logging import setup_logging, get_logger

    setup_logging(LoggingConfig(level="INFO", json_format=False))

    logger = get_logger(__name__)
    logger.info("Module prepared", module="storage", provider="h2")
"""
from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog
from structlog.types import EventDict, WrappedLogger

# Global state
_configured: bool = False


@dataclass
class LoggingConfig:
    """Configuration for structured logging."""

    service_name: str = "oap-server"
    level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper()
    )
    json_format: bool = field(
        default_factory=lambda: os.getenv("LOG_FORMAT", "console").lower() == "json"
    )
    enable_trace_context: bool = True
    include_timestamp: bool = True
    environment: str = field(
        default_factory=lambda: os.getenv("ENVIRONMENT", "development")
    )


def add_trace_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor adding the current OpenTelemetry trace and span ids."""
    from opentelemetry import trace

    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        if ctx.is_valid:
            event_dict["trace_id"] = format(ctx.trace_id, "032x")
            event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def add_service_context(
    service_name: str,
    environment: str,
) -> structlog.types.Processor:
    """Create a processor that adds service context to all log events."""

    def processor(
        logger: WrappedLogger,
        method_name: str,
        event_dict: EventDict,
    ) -> EventDict:
        event_dict["service"] = service_name
        event_dict["environment"] = environment
        return event_dict

    return processor


def add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add ISO8601 timestamp."""
    event_dict["timestamp"] = datetime.now(timezone.utc).isoformat()
    return event_dict


def _shared_processors(config: LoggingConfig) -> List[structlog.types.Processor]:
    """Processors run for both structlog and stdlib ``oap.*`` records."""
    chain: List[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_service_context(config.service_name, config.environment),
    ]
    if config.include_timestamp:
        chain.append(add_timestamp)
    if config.enable_trace_context:
        chain.append(add_trace_context)
    return chain


def _renderer(config: LoggingConfig) -> List[structlog.types.Processor]:
    if config.json_format:
        return [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [structlog.dev.ConsoleRenderer(colors=False)]


def setup_logging(config: Optional[LoggingConfig] = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Both go through one ``ProcessorFormatter`` on stdout, so engine records
    from ``logging.getLogger("oap.module")`` carry the same service and
    trace fields as structlog events. Idempotent; call ``shutdown_logging``
    first to reconfigure.
    """
    global _configured

    if _configured:
        return

    config = config or LoggingConfig()
    shared = _shared_processors(config)

    structlog.configure(
        processors=shared + [
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta] + _renderer(config),
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    level = getattr(logging, config.level, logging.INFO)
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    for existing in root_logger.handlers[:]:
        root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    for noisy in ("opentelemetry", "grpc"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _configured = True


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structlog logger instance.

    Example:
        >>> logger = get_logger(__name__)
        >>> logger.info("Provider started", module="core", provider="default")
    """
    if not _configured:
        setup_logging()

    return structlog.get_logger(name)


def shutdown_logging() -> None:
    """Flush handlers and allow ``setup_logging`` to run again."""
    global _configured

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        handler.flush()

    structlog.reset_defaults()
    _configured = False


class LogContext:
    """
    Context manager binding contextual fields to every log line.

    Example:
        >>> with LogContext(mode="init"):
        ...     logger.info("Booting")
    """

    def __init__(self, **kwargs: Any):
        self.context = kwargs

    def __enter__(self) -> "LogContext":
        structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        structlog.contextvars.unbind_contextvars(*self.context.keys())


def bind_context(**kwargs: Any) -> None:
    """Bind contextual variables to all subsequent log messages."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    """Clear all bound contextual variables."""
    structlog.contextvars.clear_contextvars()


class BootLogger:
    """Logger specialized for server boot events."""

    def __init__(self, name: str = "oap.starter"):
        self._logger = get_logger(name)

    def boot_started(self, description: str, mode: str, settings: Optional[Dict[str, Any]] = None) -> None:
        self._logger.info(
            "Boot started",
            server=description,
            mode=mode,
            settings=settings or {},
            component="starter",
        )

    def boot_succeeded(self, modules: int, duration: float) -> None:
        self._logger.info(
            "Boot completed",
            modules=modules,
            duration_ms=round(duration * 1000),
            component="starter",
        )

    def boot_failed(self, error: BaseException) -> None:
        self._logger.error(
            "Boot failed",
            error=str(error),
            error_type=type(error).__name__,
            exc_info=error,
            component="starter",
        )

    def init_mode_exit(self) -> None:
        self._logger.info("OAP starts up in init mode successfully, exit now...", component="starter")

    def booting_parameters(self, table: str) -> None:
        self._logger.info("\n" + table, component="booting-parameters")
