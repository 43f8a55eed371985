from typing import Protocol

from agentic_rag.generation.domain.provider_models import ResponseFormat


class TextGenerationPort(Protocol):
    """
    Opaque text-generation capability consumed by the retrieval core.

    Implementations raise GenerationError (or any other exception) on
    failure; every caller in the core treats failures as recoverable.
    """

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        response_format: ResponseFormat | str = ResponseFormat.TEXT,
    ) -> str: ...
