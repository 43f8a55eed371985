"""
Agentic RAG Service
===================

Caller-facing orchestration: plan → parallel execution → synthesis →
confidence.

Unlike single-shot retrieval, the service lets the model decide which
sub-queries to run for an intent, runs them concurrently against the
codebase index, and merges the partial results with a strategy chosen per
intent (concatenation, summary, dependency graph or hierarchy).
"""

import logging
import time
from collections.abc import Iterable, Mapping
from typing import Any

from agentic_rag.cache.result_cache import ResultCache, ResultCacheConfig
from agentic_rag.config import Settings, get_settings
from agentic_rag.generation.domain.ports.providers import TextGenerationPort
from agentic_rag.observability.logging import query_context
from agentic_rag.retrieval.application.indexing import CodebaseIndex
from agentic_rag.retrieval.application.query.executor import QueryExecutor
from agentic_rag.retrieval.application.query.planner import QueryPlanner
from agentic_rag.retrieval.application.synthesis.confidence import score_confidence
from agentic_rag.retrieval.application.synthesis.synthesizer import Synthesizer
from agentic_rag.retrieval.domain.errors import ValidationFailure
from agentic_rag.retrieval.domain.models import AgenticRAGResult, QueryOptions, SourceFile, new_id

logger = logging.getLogger(__name__)


class AgenticRAGService:
    """
    Owns one codebase index and one result cache.

    Usage:
        service = AgenticRAGService(generator)
        service.index_codebase([{"path": "src/a.ts", "content": "..."}])
        result = await service.query("Find authentication patterns", {"language": "typescript"})
    """

    def __init__(
        self,
        generator: TextGenerationPort,
        settings: Settings | None = None,
        index: CodebaseIndex | None = None,
        cache: ResultCache | None = None,
    ):
        self.settings = settings or get_settings()
        retrieval = self.settings.retrieval

        self.generator = generator
        self.index = index or CodebaseIndex(content_max_chars=retrieval.content_max_chars)
        self.cache = cache or ResultCache(
            ResultCacheConfig(
                enabled=self.settings.cache.enabled,
                ttl_seconds=self.settings.cache.ttl_seconds,
                max_entries=self.settings.cache.max_entries,
            )
        )

        self.planner = QueryPlanner(
            generator,
            max_sub_queries=retrieval.max_sub_queries,
            temperature=retrieval.planner_temperature,
        )
        self.executor = QueryExecutor(
            generator,
            cache=self.cache,
            max_concurrency=retrieval.max_concurrency,
            max_results=retrieval.max_results_per_query,
            max_prompt_files=retrieval.max_prompt_files,
            content_max_chars=retrieval.content_max_chars,
            temperature=retrieval.executor_temperature,
        )
        self.synthesizer = Synthesizer(
            generator,
            summarize_temperature=retrieval.summarize_temperature,
            graph_temperature=retrieval.graph_temperature,
            hierarchical_temperature=retrieval.hierarchical_temperature,
        )

    async def query(
        self,
        intent: str,
        options: QueryOptions | Mapping[str, Any] | None = None,
    ) -> AgenticRAGResult:
        """
        Run the full agentic retrieval workflow for an intent.

        Never raises for model or parsing failures; they show up as fewer
        results, a shorter context and a lower confidence score. A blank
        intent goes through planning like any other and usually ends with
        the fallback plan.
        """
        intent = intent or ""
        with query_context(new_id()):
            options = self._coerce_options(options)
            start = time.perf_counter()
            logger.info(f"Processing intent: {intent[:80]}")

            plan = self.cache.get_plan(intent, options)
            if plan is not None:
                # The cache key is normalized; keep this caller's wording
                plan = plan.model_copy(update={"original_intent": intent})
            else:
                plan = await self.planner.plan(intent, options)
                if not plan.is_fallback:
                    self.cache.set_plan(intent, options, plan)

            query_results = await self.executor.execute_all(plan, self.index)
            synthesized_context = await self.synthesizer.synthesize(plan, query_results)
            confidence = score_confidence(query_results, synthesized_context, self.settings.confidence)

            logger.info(
                f"Query complete in {(time.perf_counter() - start) * 1000:.0f}ms. "
                f"Sub-queries: {len(plan.sub_queries)}, confidence: {confidence:.2f}"
            )
        return AgenticRAGResult(
            plan=plan,
            query_results=query_results,
            synthesized_context=synthesized_context,
            confidence_score=confidence,
        )

    def index_codebase(self, files: Iterable[SourceFile | Mapping[str, str]]) -> int:
        """Index files for retrieval. Returns the number of files indexed."""
        return self.index.index_files(files)

    def index_size(self) -> int:
        return self.index.size

    def clear_cache(self) -> None:
        self.cache.clear()

    @property
    def cache_stats(self) -> dict[str, Any]:
        return self.cache.stats

    @staticmethod
    def _coerce_options(options: QueryOptions | Mapping[str, Any] | None) -> QueryOptions:
        if options is None:
            return QueryOptions()
        if isinstance(options, QueryOptions):
            return options
        # Unknown keys (e.g. max_depth) are ignored
        try:
            return QueryOptions.model_validate(dict(options))
        except (TypeError, ValueError) as e:
            failure = ValidationFailure(f"Malformed query options {options!r}: {e}")
            logger.warning(f"{failure}; querying without filters")
            return QueryOptions()
