from agentic_rag.generation.domain.ports.providers import TextGenerationPort

__all__ = ["TextGenerationPort"]
