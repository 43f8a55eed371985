from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ResponseFormat(str, Enum):
    """Shape the caller expects back from the model."""

    TEXT = "text"
    JSON = "json"


class GenerationError(Exception):
    """Base exception for text-generation failures."""

    def __init__(self, message: str, provider: str, model: str | None = None):
        self.provider = provider
        self.model = model
        super().__init__(f"[{provider}] {message}")


class ProviderUnavailableError(GenerationError):
    """Provider is unavailable (connection error, timeout, open circuit, etc.)."""


class RateLimitError(GenerationError):
    """Rate limit exceeded, should retry after delay."""

    def __init__(
        self,
        message: str,
        provider: str,
        model: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message, provider, model)
        self.retry_after = retry_after


class QuotaExceededError(GenerationError):
    """Quota limit exceeded (insufficient funds/credits). Should NOT retry."""


class InvalidRequestError(GenerationError):
    """Invalid request parameters (bad input, context too long, etc.)."""


class AuthenticationError(GenerationError):
    """API key invalid or missing."""


@dataclass
class TokenUsage:
    """Token usage statistics."""

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens


@dataclass
class GenerationResult:
    """Result from a single generation call."""

    text: str
    model: str
    provider: str
    usage: TokenUsage
    finish_reason: str | None = None
    latency_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass
class ProviderConfig:
    """Configuration for a provider."""

    api_key: str | None = None
    base_url: str | None = None
    model: str | None = None
    timeout: float = 60.0
    max_retries: int = 3
    retry_min_wait: float = 1.0
    retry_max_wait: float = 30.0
    extra: dict[str, Any] = field(default_factory=dict)
