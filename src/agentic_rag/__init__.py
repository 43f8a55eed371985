"""
Agentic RAG
===========

LLM-driven retrieval orchestrator for codebases: plans sub-queries for a
developer intent, runs them concurrently against an in-memory codebase
index, synthesizes the partial results and scores the outcome.
"""

from agentic_rag.config import Settings, get_settings
from agentic_rag.generation.infrastructure.providers import (
    OpenAITextGenerator,
    build_text_generator,
)
from agentic_rag.observability.logging import configure_logging
from agentic_rag.retrieval.application.agentic_rag_service import AgenticRAGService
from agentic_rag.retrieval.domain import (
    AgenticRAGError,
    AgenticRAGResult,
    IndexedFile,
    QueryOptions,
    QueryPlan,
    QueryResultRecord,
    QueryType,
    SourceFile,
    SubQuery,
    SynthesisStrategy,
)

__all__ = [
    "AgenticRAGError",
    "AgenticRAGResult",
    "AgenticRAGService",
    "IndexedFile",
    "OpenAITextGenerator",
    "QueryOptions",
    "QueryPlan",
    "QueryResultRecord",
    "QueryType",
    "Settings",
    "SourceFile",
    "SubQuery",
    "SynthesisStrategy",
    "build_text_generator",
    "configure_logging",
    "get_settings",
]
