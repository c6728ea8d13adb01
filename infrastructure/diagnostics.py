"""
RELGRAPH DIAGNOSTICS - Warning & Error Reporting

Every non-fatal problem the engine runs into is turned into a Diagnostic
and handed to a DiagnosticReporter:
- ReferentialError: an edge names a node that is not registered
- StrategyError: a detection strategy raised while analysing a node
- CycleWarning: a dependency walk ran into a cycle

The reporter:
- Logs each diagnostic through stdlib logging at the matching level
- Keeps a bounded ring buffer of recent diagnostics for debug panels
- Forwards each diagnostic to optional sink callables (error trackers,
  UI toasts, test probes)

Usage:
    reporter = DiagnosticReporter()
    reporter.warning(
        "Cannot add relationship: unknown endpoint",
        category=ErrorCategory.COMPONENT,
        metadata={"source_id": "a", "target_id": "b"},
    )
    recent = reporter.get_by_severity(ErrorSeverity.WARNING)
"""
import time
import logging
from typing import Optional, Dict, Any, List, Callable
from collections import deque
from enum import Enum

import msgspec

logger = logging.getLogger("relgraph.diagnostics")


# =============================================================================
# SEVERITY & CATEGORY
# =============================================================================

class ErrorSeverity(str, Enum):
    """Severity levels for diagnostics."""
    DEBUG = "debug"          # Useful for debugging only
    INFO = "info"            # Informational, not an error
    WARNING = "warning"      # Operation continued with a degraded result
    ERROR = "error"          # Part of an operation was skipped
    CRITICAL = "critical"    # Engine state may be corrupt


class ErrorCategory(str, Enum):
    """Diagnostic categories."""
    COMPONENT = "component"      # Component / relationship handling
    STATE = "state"              # Shared state analysis
    VALIDATION = "validation"    # Rejected input
    SYSTEM = "system"            # Engine internals
    UNKNOWN = "unknown"


_LOG_LEVELS: Dict[ErrorSeverity, int] = {
    ErrorSeverity.DEBUG: logging.DEBUG,
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


# =============================================================================
# DIAGNOSTIC
# =============================================================================

class Diagnostic(msgspec.Struct, kw_only=True):
    """
    One reported problem.

    Attributes:
        message: Human-readable description
        severity: ErrorSeverity value
        category: ErrorCategory value
        metadata: Structured context (node ids, strategy name, ...)
        timestamp: Unix timestamp when reported
    """
    message: str
    severity: ErrorSeverity
    category: ErrorCategory = ErrorCategory.UNKNOWN
    metadata: Dict[str, Any] = msgspec.field(default_factory=dict)
    timestamp: float = msgspec.field(default_factory=time.time)


DiagnosticSink = Callable[[Diagnostic], None]


# =============================================================================
# REPORTER
# =============================================================================

class DiagnosticReporter:
    """
    Collects diagnostics emitted by the graph engine.

    Thread Safety:
        NOT thread-safe. The owning RelationshipGraph serializes access.
    """

    def __init__(self, buffer_size: int = 1000, sinks: Optional[List[DiagnosticSink]] = None):
        self._buffer: deque = deque(maxlen=buffer_size)
        self._sinks: List[DiagnosticSink] = list(sinks or [])

    def add_sink(self, sink: DiagnosticSink) -> None:
        """Register a callable receiving every diagnostic."""
        if sink not in self._sinks:
            self._sinks.append(sink)

    def remove_sink(self, sink: DiagnosticSink) -> None:
        if sink in self._sinks:
            self._sinks.remove(sink)

    def report(self, diagnostic: Diagnostic) -> Diagnostic:
        """
        Record a diagnostic, log it and forward it to every sink.

        Sink failures are logged and never propagate.
        """
        self._buffer.append(diagnostic)

        level = _LOG_LEVELS.get(diagnostic.severity, logging.WARNING)
        if diagnostic.metadata:
            logger.log(level, f"[{diagnostic.category.value}] {diagnostic.message} {diagnostic.metadata}")
        else:
            logger.log(level, f"[{diagnostic.category.value}] {diagnostic.message}")

        for sink in self._sinks:
            try:
                sink(diagnostic)
            except Exception as e:
                logger.error(f"Diagnostic sink failed: {e}", exc_info=True)

        return diagnostic

    def warning(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.COMPONENT,
        metadata: Optional[Dict[str, Any]] = None,
        exc: Optional[BaseException] = None,
    ) -> Diagnostic:
        """Shortcut for a WARNING diagnostic."""
        return self._emit(ErrorSeverity.WARNING, message, category, metadata, exc)

    def error(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.COMPONENT,
        metadata: Optional[Dict[str, Any]] = None,
        exc: Optional[BaseException] = None,
    ) -> Diagnostic:
        """Shortcut for an ERROR diagnostic."""
        return self._emit(ErrorSeverity.ERROR, message, category, metadata, exc)

    def _emit(
        self,
        severity: ErrorSeverity,
        message: str,
        category: ErrorCategory,
        metadata: Optional[Dict[str, Any]],
        exc: Optional[BaseException],
    ) -> Diagnostic:
        # exc is recorded by type name and message
        metadata = dict(metadata or {})
        if exc is not None:
            metadata["error_type"] = type(exc).__name__
            metadata["error"] = str(exc)
        return self.report(Diagnostic(
            message=message,
            severity=severity,
            category=category,
            metadata=metadata,
        ))

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_last(self, n: int) -> List[Diagnostic]:
        """Get the last n diagnostics."""
        items = list(self._buffer)
        return items[-n:] if n > 0 else []

    def get_by_severity(self, severity: ErrorSeverity) -> List[Diagnostic]:
        return [d for d in self._buffer if d.severity == severity]

    def get_by_category(self, category: ErrorCategory) -> List[Diagnostic]:
        return [d for d in self._buffer if d.category == category]

    def clear(self) -> None:
        """Clear the buffer (sinks stay registered)."""
        self._buffer.clear()

    def __len__(self) -> int:
        return len(self._buffer)
