"""
Provider Base Classes
=====================

Abstract base class for text-generation providers. Subclasses implement a
single completion call; retries, circuit breaking and the plain-string
port contract live here.
"""

import logging
from abc import ABC, abstractmethod

from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from agentic_rag.generation.domain.provider_models import (
    AuthenticationError,
    GenerationError,
    GenerationResult,
    InvalidRequestError,
    ProviderConfig,
    ProviderUnavailableError,
    QuotaExceededError,
    RateLimitError,
    ResponseFormat,
    TokenUsage,
)
from agentic_rag.generation.infrastructure.providers.resilience import CircuitBreaker

__all__ = [
    "AuthenticationError",
    "BaseTextGenerator",
    "GenerationError",
    "GenerationResult",
    "InvalidRequestError",
    "ProviderConfig",
    "ProviderUnavailableError",
    "QuotaExceededError",
    "RateLimitError",
    "ResponseFormat",
    "TokenUsage",
]

logger = logging.getLogger(__name__)

JSON_SYSTEM_PROMPT = (
    "Respond with valid JSON only. Do not wrap the JSON in Markdown and do not add commentary."
)

RETRYABLE_ERRORS = (RateLimitError, ProviderUnavailableError)


class BaseTextGenerator(ABC):
    """Abstract base class for text-generation providers."""

    provider_name: str = "base"
    default_model: str = ""

    def __init__(
        self,
        config: ProviderConfig | None = None,
        circuit: CircuitBreaker | None = None,
    ):
        self.config = config or ProviderConfig()
        self.circuit = circuit or CircuitBreaker()
        self._validate_config()

    @property
    def model_name(self) -> str:
        return self.config.model or self.default_model

    @abstractmethod
    def _validate_config(self) -> None:
        """Validate provider configuration. Override in subclasses."""

    @abstractmethod
    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
    ) -> GenerationResult:
        """
        Run one completion request.

        Raises:
            GenerationError: mapped provider failure
        """

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        response_format: ResponseFormat | str = ResponseFormat.TEXT,
    ) -> str:
        """
        Generate text from a prompt.

        Transient failures (rate limits, unavailability) are retried with
        exponential backoff. Permanent failures and an open circuit raise
        immediately.

        Returns:
            The generated text

        Raises:
            GenerationError: On generation failure
        """
        system_prompt = JSON_SYSTEM_PROMPT if ResponseFormat(response_format) == ResponseFormat.JSON else None

        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(1, self.config.max_retries)),
            wait=wait_exponential(
                multiplier=1,
                min=self.config.retry_min_wait,
                max=self.config.retry_max_wait,
            ),
            retry=retry_if_exception_type(RETRYABLE_ERRORS),
            before_sleep=lambda retry_state: logger.warning(
                f"Retrying {self.provider_name} generation after {retry_state.outcome.exception()}"
            ),
            reraise=True,
        ):
            with attempt:
                result = await self._guarded_complete(prompt, system_prompt, temperature)

        return result.text

    async def _guarded_complete(
        self,
        prompt: str,
        system_prompt: str | None,
        temperature: float | None,
    ) -> GenerationResult:
        if not self.circuit.allow_request():
            raise ProviderUnavailableError(
                f"Circuit {self.circuit.state.value}, request rejected",
                provider=self.provider_name,
                model=self.model_name,
            )

        try:
            result = await self.complete(prompt, system_prompt=system_prompt, temperature=temperature)
        except (AuthenticationError, InvalidRequestError, QuotaExceededError):
            # Configuration problems, not endpoint health
            raise
        except GenerationError:
            self.circuit.record_failure()
            raise
        else:
            self.circuit.record_success()
        finally:
            # Permanent errors, foreign exceptions and cancellation leave no verdict
            self.circuit.release()

        logger.debug(
            f"{self.provider_name} generated {result.usage.output_tokens} tokens "
            f"in {result.latency_ms:.0f}ms"
        )
        return result
