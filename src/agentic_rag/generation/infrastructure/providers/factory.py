"""
Provider Factory
================

Builds the configured text generator from settings.
"""

import logging

from agentic_rag.config import LLMSettings
from agentic_rag.generation.infrastructure.providers.base import BaseTextGenerator
from agentic_rag.generation.infrastructure.providers.openai import OpenAITextGenerator

logger = logging.getLogger(__name__)

OLLAMA_DEFAULT_BASE_URL = "http://localhost:11434/v1"

_registry: dict[str, type[BaseTextGenerator]] = {
    "openai": OpenAITextGenerator,
    # Ollama speaks the OpenAI chat-completions protocol
    "ollama": OpenAITextGenerator,
}


def register_text_generator(name: str, provider_class: type[BaseTextGenerator]) -> None:
    """Register a text-generation provider."""
    _registry[name.lower()] = provider_class


def build_text_generator(settings: LLMSettings) -> BaseTextGenerator:
    """
    Instantiate the provider named in settings.

    Raises:
        ValueError: unknown provider name
    """
    name = settings.provider.lower()
    provider_class = _registry.get(name)
    if provider_class is None:
        raise ValueError(f"Unknown text-generation provider '{settings.provider}'. Known: {sorted(_registry)}")

    if name == "ollama" and not settings.base_url:
        settings = settings.model_copy(update={"base_url": OLLAMA_DEFAULT_BASE_URL})

    if not hasattr(provider_class, "from_settings"):
        raise ValueError(f"Provider '{name}' cannot be built from settings")

    logger.info(f"Using text-generation provider {name} ({settings.model})")
    return provider_class.from_settings(settings)
