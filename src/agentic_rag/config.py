"""
Application Configuration
=========================

Centralized configuration management using Pydantic Settings.
Environment variables take precedence over config file values.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class LLMSettings(BaseSettings):
    """Text-generation provider settings."""

    model_config = SettingsConfigDict(env_prefix="AGENTIC_RAG_LLM_", extra="ignore")

    provider: str = Field(default="openai", description="Provider name")
    model: str = Field(default="gpt-4o-mini", description="Chat model used for every call")
    api_key: str = Field(default="", description="Provider API key")
    base_url: str | None = Field(default=None, description="OpenAI-compatible base URL (e.g. Ollama)")
    timeout: float = Field(default=60.0, description="Per-request timeout in seconds")
    max_retries: int = Field(default=3, description="Attempts for transient failures")
    retry_min_wait: float = Field(default=1.0, description="Minimum backoff in seconds")
    retry_max_wait: float = Field(default=30.0, description="Maximum backoff in seconds")
    circuit_failure_threshold: int = Field(default=5, description="Failures before the circuit opens")
    circuit_recovery_timeout: float = Field(default=60.0, description="Seconds before a half-open trial request")


class RetrievalSettings(BaseSettings):
    """Planner, executor and synthesizer settings."""

    model_config = SettingsConfigDict(env_prefix="AGENTIC_RAG_RETRIEVAL_", extra="ignore")

    content_max_chars: int = Field(default=8000, ge=1, description="Max characters stored per file")
    max_sub_queries: int = Field(default=5, ge=1, description="Hard limit on planned sub-queries")
    max_results_per_query: int = Field(default=10, ge=1, description="Max records kept per sub-query")
    max_prompt_files: int = Field(default=40, ge=1, description="Max index entries rendered into a prompt")
    max_concurrency: int = Field(default=4, ge=1, description="Concurrent sub-query executions")

    planner_temperature: float = Field(default=0.5)
    executor_temperature: float = Field(default=0.6)
    summarize_temperature: float = Field(default=0.4)
    graph_temperature: float = Field(default=0.4)
    hierarchical_temperature: float = Field(default=0.5)


class ConfidenceSettings(BaseSettings):
    """Confidence scoring settings."""

    model_config = SettingsConfigDict(env_prefix="AGENTIC_RAG_CONFIDENCE_", extra="ignore")

    min_context_chars: int = Field(default=200, ge=1, description="Lower bound of the target context length")
    max_context_chars: int = Field(default=500, ge=1, description="Upper bound of the target context length")
    source_ratio: float = Field(default=0.25, gt=0, description="Target length relative to gathered source")


class CacheSettings(BaseSettings):
    """Result cache settings."""

    model_config = SettingsConfigDict(env_prefix="AGENTIC_RAG_CACHE_", extra="ignore")

    enabled: bool = Field(default=True)
    ttl_seconds: float | None = Field(default=None, description="Entry lifetime; None keeps entries for the session")
    max_entries: int = Field(default=1024, ge=1, description="Entries kept per cache map")


class Settings(BaseSettings):
    """
    Main settings.

    Loads configuration from:
    1. Environment variables (highest priority)
    2. config/settings.yaml file (or the path in AGENTIC_RAG_CONFIG)
    3. Default values (lowest priority)
    """

    model_config = SettingsConfigDict(
        env_prefix="AGENTIC_RAG_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    app_name: str = Field(default="agentic-rag", description="Application name")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="human", description="json | human")

    llm: LLMSettings = Field(default_factory=LLMSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    confidence: ConfidenceSettings = Field(default_factory=ConfidenceSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v_lower = v.lower()
        if v_lower not in {"json", "human"}:
            raise ValueError(f"Invalid log format: {v}. Must be 'json' or 'human'")
        return v_lower

    @classmethod
    def load_yaml_config(cls, config_path: Path | None = None) -> dict[str, Any]:
        """Load configuration from YAML file."""
        if config_path is None:
            env_path = os.getenv("AGENTIC_RAG_CONFIG")
            config_path = Path(env_path) if env_path else Path.cwd() / "config" / "settings.yaml"

        if config_path.exists():
            with open(config_path) as f:
                return yaml.safe_load(f) or {}
        return {}


_SECTIONS: dict[str, type[BaseSettings]] = {
    "llm": LLMSettings,
    "retrieval": RetrievalSettings,
    "confidence": ConfidenceSettings,
    "cache": CacheSettings,
}


def apply_yaml_config(settings: Settings, yaml_config: dict[str, Any]) -> Settings:
    """
    Overlay YAML sections on top of settings.

    Environment variables still win: a nested section is rebuilt from the
    YAML values and then re-read from the environment.
    """
    for section, section_cls in _SECTIONS.items():
        values = yaml_config.get(section)
        if not isinstance(values, dict):
            continue
        env_values = getattr(settings, section).model_dump(exclude_unset=True)
        setattr(settings, section, section_cls(**{**values, **env_values}))

    for key in ("app_name", "log_level", "log_format"):
        if key in yaml_config and key not in settings.model_fields_set:
            setattr(settings, key, yaml_config[key])

    return settings


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings.

    Returns:
        Settings: Settings instance
    """
    settings = Settings()

    try:
        yaml_config = Settings.load_yaml_config()
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Ignoring unreadable settings file: {e}")
        return settings

    return apply_yaml_config(settings, yaml_config)
