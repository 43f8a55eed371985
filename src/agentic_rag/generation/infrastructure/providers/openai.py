"""
OpenAI Provider
===============

Text-generation provider for the OpenAI chat-completions API and any
OpenAI-compatible endpoint (Ollama, vLLM, ...).
"""

import logging
import time
from typing import Any

from agentic_rag.config import LLMSettings
from agentic_rag.generation.infrastructure.providers.base import (
    AuthenticationError,
    BaseTextGenerator,
    GenerationResult,
    InvalidRequestError,
    ProviderConfig,
    ProviderUnavailableError,
    QuotaExceededError,
    RateLimitError,
    TokenUsage,
)
from agentic_rag.generation.infrastructure.providers.resilience import CircuitBreaker

logger = logging.getLogger(__name__)


def _get_openai_client(api_key: str | None, base_url: str | None, timeout: float):
    """Create an AsyncOpenAI client."""
    from openai import AsyncOpenAI

    # Local OpenAI-compatible servers ignore the key but the client requires one
    return AsyncOpenAI(api_key=api_key or "local", base_url=base_url, timeout=timeout)


class OpenAITextGenerator(BaseTextGenerator):
    """OpenAI (or OpenAI-compatible) text generator."""

    provider_name = "openai"
    default_model = "gpt-4o-mini"

    def __init__(
        self,
        config: ProviderConfig | None = None,
        circuit: CircuitBreaker | None = None,
        client: Any = None,
    ):
        super().__init__(config, circuit)
        self._client = client

    @classmethod
    def from_settings(cls, settings: LLMSettings) -> "OpenAITextGenerator":
        """Build a generator from LLM settings."""
        config = ProviderConfig(
            api_key=settings.api_key or None,
            base_url=settings.base_url,
            model=settings.model,
            timeout=settings.timeout,
            max_retries=settings.max_retries,
            retry_min_wait=settings.retry_min_wait,
            retry_max_wait=settings.retry_max_wait,
        )
        circuit = CircuitBreaker(
            failure_threshold=settings.circuit_failure_threshold,
            recovery_timeout=settings.circuit_recovery_timeout,
        )
        return cls(config=config, circuit=circuit)

    def _validate_config(self) -> None:
        # A custom base_url points at a local server that needs no key
        if not self.config.api_key and not self.config.base_url:
            raise AuthenticationError(
                "API key is required",
                provider=self.provider_name,
            )

    @property
    def client(self):
        if self._client is None:
            self._client = _get_openai_client(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout,
            )
        return self._client

    async def complete(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
    ) -> GenerationResult:
        """Generate text using the ChatCompletion API."""
        model = self.model_name
        start_time = time.perf_counter()

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        params: dict[str, Any] = {"model": model, "messages": messages}
        if temperature is not None:
            params["temperature"] = temperature

        try:
            response = await self.client.chat.completions.create(**params)
        except Exception as e:
            self._handle_error(e, model)

        choice = response.choices[0] if response.choices else None
        content = (choice.message.content if choice else None) or ""
        usage = response.usage

        return GenerationResult(
            text=content,
            model=model,
            provider=self.provider_name,
            usage=TokenUsage(
                input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
                output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            ),
            finish_reason=choice.finish_reason if choice else None,
            latency_ms=(time.perf_counter() - start_time) * 1000,
            metadata={"response_id": getattr(response, "id", None)},
        )

    def _handle_error(self, e: Exception, model: str) -> None:
        """Convert OpenAI exceptions to provider exceptions."""
        error_type = type(e).__name__

        if "RateLimitError" in error_type:
            # Hard quota limits vs transient rate limits
            error_str = str(e).lower()
            if "insufficient_quota" in error_str or "billing" in error_str:
                raise QuotaExceededError(str(e), provider=self.provider_name, model=model) from e

            raise RateLimitError(
                str(e),
                provider=self.provider_name,
                model=model,
                retry_after=60.0,
            ) from e
        elif "AuthenticationError" in error_type or "PermissionDeniedError" in error_type:
            raise AuthenticationError(str(e), provider=self.provider_name, model=model) from e
        elif "BadRequestError" in error_type or "NotFoundError" in error_type:
            raise InvalidRequestError(str(e), provider=self.provider_name, model=model) from e
        else:
            raise ProviderUnavailableError(
                f"OpenAI error: {e}",
                provider=self.provider_name,
                model=model,
            ) from e
