"""
RELGRAPH INFRASTRUCTURE - System-Level Modules

This package contains infrastructure components:
- config: TOML configuration and logging setup
- diagnostics: Warning/error reporting with a bounded ring buffer
- event_bus: Publisher-subscriber change notifications
"""

from infrastructure.config import (
    EngineConfig,
    DetectionConfig,
    AnalyzerConfig,
    DiagnosticsConfig,
    LoggingConfig,
    load_config,
    configure_logging,
)
from infrastructure.diagnostics import (
    Diagnostic,
    DiagnosticReporter,
    ErrorSeverity,
    ErrorCategory,
)
from infrastructure.event_bus import EventBus, EventType, GraphEvent

__all__ = [
    "EngineConfig",
    "DetectionConfig",
    "AnalyzerConfig",
    "DiagnosticsConfig",
    "LoggingConfig",
    "load_config",
    "configure_logging",
    "Diagnostic",
    "DiagnosticReporter",
    "ErrorSeverity",
    "ErrorCategory",
    "EventBus",
    "EventType",
    "GraphEvent",
]
