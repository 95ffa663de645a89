"""Configuration models and loaders."""

from __future__ import annotations

from .config import (
    SUPPORTED_LANGUAGES,
    AnalysisConfig,
    Config,
    ErrorReportingConfig,
    GenerationConfig,
    MonitoringConfig,
    RetryConfig,
    SessionConfig,
    ValidationConfig,
    find_config_file,
    load_config,
)

__all__ = [
    "SUPPORTED_LANGUAGES",
    "AnalysisConfig",
    "Config",
    "ErrorReportingConfig",
    "GenerationConfig",
    "MonitoringConfig",
    "RetryConfig",
    "SessionConfig",
    "ValidationConfig",
    "find_config_file",
    "load_config",
]
