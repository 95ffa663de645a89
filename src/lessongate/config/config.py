"""
Configuration management for LessonGate using Pydantic.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Setup Logging ---
log = logging.getLogger(__name__)

SUPPORTED_LANGUAGES: tuple[str, ...] = ("en", "es", "fr", "de", "it", "pt", "nl", "pl", "ru", "ja", "ko", "zh")


def _default_languages() -> List[str]:
    return list(SUPPORTED_LANGUAGES)


def _check_languages(v: List[str]) -> List[str]:
    if not v:
        raise ValueError("supported_languages must contain at least one language code")
    return [code.lower() for code in v]


# --- Nested Configuration Models ---


class AnalysisConfig(BaseModel):
    """Page-level suitability gate and analysis scheduling."""

    min_word_count: int = Field(default=200, ge=0, description="Minimum words on the page.")
    min_quality_score: float = Field(default=0.6, ge=0.0, le=1.0, description="Minimum blended quality (0-1).")
    max_advertising_ratio: float = Field(default=0.4, ge=0.0, le=1.0, description="Maximum advertising ratio.")
    min_language_confidence: float = Field(default=0.7, ge=0.0, le=1.0)
    supported_languages: List[str] = Field(default_factory=_default_languages)
    cache_ttl_seconds: float = Field(default=300.0, gt=0, description="Lifetime of a cached analysis.")
    analysis_throttle_ms: int = Field(default=1000, ge=0, description="Minimum gap between two analyses.")
    dom_change_threshold: int = Field(default=10, ge=1, description="Significant mutations before re-analysis.")
    debounce_ms: int = Field(default=1000, ge=0, description="Delay of a scheduled re-analysis.")

    @field_validator("supported_languages")
    @classmethod
    def validate_languages(cls, v: List[str]) -> List[str]:
        return _check_languages(v)


class ValidationConfig(BaseModel):
    """Post-extraction content validation thresholds."""

    min_word_count: int = Field(default=200, ge=0, description="Minimum words for lesson generation.")
    min_quality_score: float = Field(default=60.0, ge=0.0, le=100.0, description="Minimum validation score.")
    max_advertising_ratio: float = Field(default=0.3, ge=0.0, le=1.0)
    min_language_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    supported_languages: List[str] = Field(default_factory=_default_languages)
    strict_mode: bool = Field(default=False, description="Report low educational value as an issue.")

    @field_validator("supported_languages")
    @classmethod
    def validate_languages(cls, v: List[str]) -> List[str]:
        return _check_languages(v)


class RetryConfig(BaseModel):
    """Retry and backoff policy for extraction and generation calls."""

    max_retry_attempts: int = Field(default=3, ge=1, description="Maximum attempts per session or request.")
    retry_base_delay_ms: int = Field(default=1000, ge=0)
    retry_max_delay_ms: int = Field(default=30000, ge=0)
    enable_retry: bool = True
    show_technical_details: bool = False


class SessionConfig(BaseModel):
    """In-memory extraction session bookkeeping."""

    session_retention_hours: float = Field(default=24.0, gt=0)
    max_history_entries: int = Field(default=50, ge=1)
    max_event_entries: int = Field(default=100, ge=1)
    max_retry_attempts: int = Field(default=3, ge=0)


class GenerationConfig(BaseModel):
    """AI text generation endpoint."""

    endpoint: str = Field(
        default="https://openrouter.ai/api/v1/chat/completions",
        description="OpenAI-compatible chat completions URL.",
    )
    model: str = Field(default="google/gemini-2.5-flash")
    api_key: Optional[SecretStr] = Field(default=None, description="Bearer token for the endpoint.")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=8000, ge=1)
    top_p: float = Field(default=0.9, ge=0.0, le=1.0)
    timeout_seconds: float = Field(default=60.0, gt=0)
    max_section_attempts: int = Field(default=2, ge=1, description="Generate/validate rounds per lesson section.")


class ErrorReportingConfig(BaseModel):
    support_contact: str = "support@lessongate.dev"


class MonitoringConfig(BaseModel):
    """Configuration for the observability and monitoring system."""

    log_level: str = Field(default="INFO", description="Logging level (e.g., DEBUG, INFO, WARNING).")
    log_file: str | None = Field(default=None, description="Path to log file. If None, logs to console.")
    prometheus_port: int | None = Field(default=None, description="Port for Prometheus metrics exporter.")

    @field_validator("log_file", mode="before")
    @classmethod
    def create_parent_dir(cls, v: str | Path | None) -> str | None:
        if v is None:
            return None
        path = Path(v)
        path.parent.mkdir(parents=True, exist_ok=True)
        return str(path)


# --- Main Configuration Class ---


class Config(BaseSettings):
    project_name: str = "LessonGate"
    version: str = "0.1.0"
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    sessions: SessionConfig = Field(default_factory=SessionConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    errors: ErrorReportingConfig = Field(default_factory=ErrorReportingConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    model_config = SettingsConfigDict(env_prefix="LESSONGATE_", env_nested_delimiter="__", case_sensitive=False)

    @classmethod
    def from_yaml(cls, path: Path) -> Config:
        log.debug("Loading configuration from YAML file: %s", path)
        if not path.is_file():
            raise FileNotFoundError(f"Configuration file not found or is not a file: {path}")
        with open(path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
        if not yaml_data:
            log.warning("Configuration file is empty: %s. Using default settings.", path)
            return cls.model_validate({})
        return cls.model_validate(yaml_data)


def find_config_file() -> Path | None:
    current_dir = Path.cwd()
    for path in (current_dir / "lessongate.yaml", current_dir / "lessongate.yml", current_dir / "config.yaml"):
        if path.exists():
            return path
    return None


def load_config(path: Path | None = None) -> Config:
    """Build a Config from an explicit file, a discovered file, or defaults plus environment."""
    config_path = path or find_config_file()
    if config_path is None:
        log.info("No config file found. Using default settings.")
        return Config()
    log.info("Loading configuration from: %s", config_path)
    return Config.from_yaml(config_path)
