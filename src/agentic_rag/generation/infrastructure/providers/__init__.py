"""
LLM Providers
=============

Text generation adapters behind the TextGenerationPort.
"""

from agentic_rag.generation.infrastructure.providers.factory import (
    build_text_generator,
    register_text_generator,
)
from agentic_rag.generation.infrastructure.providers.openai import OpenAITextGenerator

__all__ = ["OpenAITextGenerator", "build_text_generator", "register_text_generator"]
