"""
OAP Module Library - Error Taxonomy

Every failure the bootstrap engine can report is a ``ModuleLibraryError``.
None of them are recovered internally: they propagate to the caller of
``ModuleManager.init`` and the process is expected to exit.

Features:
- Hierarchical exception classes with module/provider context
- Error severity levels for prioritized handling
- OpenTelemetry span recording of every raised error
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode


class ErrorSeverity(Enum):
    """Error severity levels for prioritized handling."""

    WARNING = "warning"    # Misuse that does not break the boot
    ERROR = "error"        # Boot cannot continue
    CRITICAL = "critical"  # Configuration or wiring is broken
    FATAL = "fatal"        # Programmer error inside the engine contract


@dataclass
class ErrorContext:
    """Structured context for boot error diagnostics."""

    operation: str
    module_name: Optional[str] = None
    provider_name: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    trace_id: Optional[str] = None
    span_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    stack_trace: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary for serialization."""
        return {
            "operation": self.operation,
            "module_name": self.module_name,
            "provider_name": self.provider_name,
            "timestamp": self.timestamp.isoformat(),
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "metadata": self.metadata,
            "stack_trace": self.stack_trace,
        }

    @classmethod
    def from_current_span(
        cls,
        operation: str,
        module_name: Optional[str] = None,
        provider_name: Optional[str] = None,
        **kwargs: Any,
    ) -> "ErrorContext":
        """Create context from the current OpenTelemetry span."""
        span = trace.get_current_span()
        trace_id = None
        span_id = None

        if span and span.is_recording():
            ctx = span.get_span_context()
            if ctx.is_valid:
                trace_id = format(ctx.trace_id, "032x")
                span_id = format(ctx.span_id, "016x")

        return cls(
            operation=operation,
            module_name=module_name,
            provider_name=provider_name,
            trace_id=trace_id,
            span_id=span_id,
            stack_trace=traceback.format_exc(),
            **kwargs,
        )


class ModuleLibraryError(Exception):
    """
    Base exception for all bootstrap engine errors.

    Provides:
    - Structured error context
    - Severity level
    - Chained exception support
    - OpenTelemetry span recording
    """

    default_severity: ErrorSeverity = ErrorSeverity.ERROR
    error_code: str = "MODULE_ERROR"

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        severity: Optional[ErrorSeverity] = None,
        cause: Optional[BaseException] = None,
        suggestions: Optional[List[str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.context = context
        self.severity = severity or self.default_severity
        self.cause = cause
        self.suggestions = suggestions or []
        self.timestamp = datetime.now(timezone.utc)

        self._record_to_span()

    def _record_to_span(self) -> None:
        """Record exception to current OpenTelemetry span."""
        span = trace.get_current_span()
        if span and span.is_recording():
            span.set_status(Status(StatusCode.ERROR, self.message))
            span.record_exception(self)
            span.set_attribute("error.code", self.error_code)
            span.set_attribute("error.severity", self.severity.value)
            if self.context:
                span.set_attribute("error.operation", self.context.operation)
                if self.context.module_name:
                    span.set_attribute("error.module", self.context.module_name)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for diagnostics."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "severity": self.severity.value,
            "suggestions": self.suggestions,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context.to_dict() if self.context else None,
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        parts = [f"[{self.error_code}] {self.message}"]
        if self.cause:
            parts.append(f" [caused by: {self.cause}]")
        return "".join(parts)


# -----------------------------------------------------------------------------
# Module and provider resolution
# -----------------------------------------------------------------------------


class UnknownModuleError(ModuleLibraryError):
    """A selected module has no definition, or a required module is not loaded."""

    error_code = "MODULE_NOT_FOUND"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, module_names: Iterable[str] = (), **kwargs: Any):
        super().__init__(message, **kwargs)
        self.module_names = list(module_names)


class ModuleNotFoundAtRuntimeError(ModuleLibraryError):
    """``ModuleManager.find`` was asked for a module that was never loaded."""

    error_code = "MODULE_NOT_FOUND_AT_RUNTIME"

    def __init__(self, module_name: str, **kwargs: Any):
        super().__init__(f"{module_name} missing.", **kwargs)
        self.module_name = module_name


class DuplicateModuleError(ModuleLibraryError):
    """Two discovered module definitions share a name."""

    error_code = "DUPLICATE_MODULE"
    default_severity = ErrorSeverity.CRITICAL


class ProviderNotFoundError(ModuleLibraryError):
    """No provider implements a selected module, or the selector matches none."""

    error_code = "PROVIDER_NOT_FOUND"
    default_severity = ErrorSeverity.CRITICAL


class AmbiguousProviderError(ModuleLibraryError):
    """Several providers implement a module and the configuration picks none."""

    error_code = "AMBIGUOUS_PROVIDER"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, candidates: Iterable[str] = (), **kwargs: Any):
        super().__init__(message, **kwargs)
        self.candidates = list(candidates)


class ProviderNotBoundError(ModuleLibraryError):
    """A module's provider was requested before the module was prepared."""

    error_code = "PROVIDER_NOT_BOUND"
    default_severity = ErrorSeverity.FATAL


class ProviderStateError(ModuleLibraryError):
    """A lifecycle method was invoked out of order."""

    error_code = "ILLEGAL_PROVIDER_STATE"
    default_severity = ErrorSeverity.FATAL


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------


class ModuleConfigError(ModuleLibraryError):
    """Provider settings violate the provider's configuration schema."""

    error_code = "MODULE_CONFIG_ERROR"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.config_key = config_key


# -----------------------------------------------------------------------------
# Services
# -----------------------------------------------------------------------------


class ServiceNotProvidedError(ModuleLibraryError):
    """A required capability is missing, or a lookup missed."""

    error_code = "SERVICE_NOT_PROVIDED"


class ServiceConflictError(ModuleLibraryError):
    """A capability was registered twice in the same registry."""

    error_code = "SERVICE_CONFLICT"


class SealedRegistryError(ModuleLibraryError):
    """Registration attempted after the owning provider left ``created``."""

    error_code = "SEALED_REGISTRY"
    default_severity = ErrorSeverity.FATAL


# -----------------------------------------------------------------------------
# Ordering and lifecycle
# -----------------------------------------------------------------------------


class CycleDependencyError(ModuleLibraryError):
    """The ``required_modules`` graph contains a cycle."""

    error_code = "CYCLE_DEPENDENCY"
    default_severity = ErrorSeverity.CRITICAL

    def __init__(self, message: str, unplaced: Iterable[str] = (), **kwargs: Any):
        super().__init__(message, **kwargs)
        self.unplaced = list(unplaced)


class ModuleStartError(ModuleLibraryError):
    """A provider's own startup logic failed."""

    error_code = "MODULE_START_ERROR"


class StillPreparingError(ModuleLibraryError):
    """``find`` was called before the manager reached the running stage."""

    error_code = "STILL_PREPARING"
    default_severity = ErrorSeverity.FATAL

    def __init__(self, message: str = "Still in preparing stage.", **kwargs: Any):
        super().__init__(message, **kwargs)


class BootingParametersFrozenError(ModuleLibraryError):
    """A booting parameter row was added after the prepare stage ended."""

    error_code = "BOOTING_PARAMETERS_FROZEN"
    default_severity = ErrorSeverity.WARNING
