"""
RELGRAPH CONFIG - Engine Configuration

Configuration is loaded once from config/relgraph.toml (or an explicit
path) and passed down to the collaborators that need it. Nothing reads the
file behind the caller's back.

Sections:
- [detection]: strengths assigned to pattern-derived relationships
- [analyzer]: default thresholds for hub / isolation queries
- [diagnostics]: ring buffer size for recent diagnostics
- [logging]: level and format for the relgraph.* loggers

Usage:
    from infrastructure.config import load_config, configure_logging

    config = load_config()
    configure_logging(config.logging)
    manager = RelationshipManager(config=config)
"""
import logging
import tomllib
import warnings
from pathlib import Path
from typing import Optional, Dict, Any

import msgspec


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "relgraph.toml"


# =============================================================================
# CONFIG SECTIONS
# =============================================================================

class DetectionConfig(msgspec.Struct, kw_only=True, frozen=True):
    """Strengths for pattern-derived detections. Explicit hints are always 1.0."""
    explicit_strength: float = 1.0
    jsx_containment_strength: float = 0.8
    prop_passing_strength: float = 0.9
    state_passing_strength: float = 0.8
    shared_context_strength: float = 0.7


class AnalyzerConfig(msgspec.Struct, kw_only=True, frozen=True):
    """Default thresholds for GraphAnalyzer queries."""
    hub_threshold: int = 5
    isolation_threshold: int = 1


class DiagnosticsConfig(msgspec.Struct, kw_only=True, frozen=True):
    buffer_size: int = 1000


class LoggingConfig(msgspec.Struct, kw_only=True, frozen=True):
    """Level and format for the relgraph.* loggers."""
    level: str = "WARNING"
    format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class EngineConfig(msgspec.Struct, kw_only=True, frozen=True):
    """Complete engine configuration."""
    detection: DetectionConfig = msgspec.field(default_factory=DetectionConfig)
    analyzer: AnalyzerConfig = msgspec.field(default_factory=AnalyzerConfig)
    diagnostics: DiagnosticsConfig = msgspec.field(default_factory=DiagnosticsConfig)
    logging: LoggingConfig = msgspec.field(default_factory=LoggingConfig)


# =============================================================================
# LOADING
# =============================================================================

def config_from_dict(config_dict: Dict[str, Any]) -> EngineConfig:
    """
    Build an EngineConfig from a plain dict (e.g. parsed TOML).

    Raises:
        msgspec.ValidationError: If a value has the wrong type
    """
    return msgspec.convert(config_dict, type=EngineConfig)


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """
    Load configuration from TOML.

    Missing or invalid files fall back to defaults with a warning.

    Args:
        path: TOML file to read. Defaults to config/relgraph.toml.

    Returns:
        EngineConfig
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH

    try:
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)
    except FileNotFoundError:
        warnings.warn(f"Config file not found, using defaults: {config_path}")
        return EngineConfig()
    except tomllib.TOMLDecodeError as e:
        warnings.warn(f"Failed to parse config {config_path}: {e}")
        return EngineConfig()

    try:
        return config_from_dict(raw)
    except msgspec.ValidationError as e:
        warnings.warn(f"Invalid config in {config_path}: {e}")
        return EngineConfig()


def configure_logging(config: Optional[LoggingConfig] = None) -> logging.Logger:
    """
    Apply a LoggingConfig to the relgraph logger hierarchy.

    Attaches a single stream handler the first time it is called.
    """
    config = config or LoggingConfig()
    root = logging.getLogger("relgraph")
    root.setLevel(getattr(logging, config.level.upper(), logging.WARNING))

    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(config.format))
        root.addHandler(handler)
    else:
        for handler in root.handlers:
            handler.setFormatter(logging.Formatter(config.format))

    return root
