"""
Query Executor
==============

Runs sub-queries against the codebase index, using the LLM as the search
engine over the filtered index contents.
"""

import asyncio
import json
import logging
from typing import assert_never

from pydantic import BaseModel

from agentic_rag.cache.result_cache import ResultCache
from agentic_rag.generation.application.prompts.agentic_rag import (
    OPEN_SEARCH_PROMPT,
    SEARCH_FOCUS,
    SEARCH_PROMPT,
)
from agentic_rag.generation.domain.ports.providers import TextGenerationPort
from agentic_rag.generation.domain.provider_models import ResponseFormat
from agentic_rag.retrieval.application.indexing import CodebaseIndex
from agentic_rag.retrieval.application.query.parsing import extract_json, validate_payload
from agentic_rag.retrieval.domain.errors import ExecutionFailure
from agentic_rag.retrieval.domain.models import (
    IndexedFile,
    QueryPlan,
    QueryResultRecord,
    QueryType,
    SubQuery,
)

logger = logging.getLogger(__name__)


class _ResultEnvelope(BaseModel):
    results: list[QueryResultRecord]


class QueryExecutor:
    """
    Executes sub-queries concurrently with per-query failure isolation.

    A failing sub-query yields an empty list for its query_id; siblings
    are unaffected. Concurrency is bounded by a semaphore.
    """

    def __init__(
        self,
        generator: TextGenerationPort,
        cache: ResultCache | None = None,
        max_concurrency: int = 4,
        max_results: int = 10,
        max_prompt_files: int = 40,
        content_max_chars: int = 8000,
        temperature: float = 0.6,
    ):
        self.generator = generator
        self.cache = cache
        self.max_concurrency = max_concurrency
        self.max_results = max_results
        self.max_prompt_files = max_prompt_files
        self.content_max_chars = content_max_chars
        self.temperature = temperature

    async def execute_all(self, plan: QueryPlan, index: CodebaseIndex) -> dict[str, list[QueryResultRecord]]:
        """
        Run every sub-query of a plan concurrently.

        Returns:
            Mapping query_id -> ranked results, in plan order
        """
        sem = asyncio.Semaphore(self.max_concurrency)

        async def _run_one(sub_query: SubQuery) -> list[QueryResultRecord]:
            async with sem:
                return await self.execute(sub_query, index, plan_id=plan.plan_id)

        results = await asyncio.gather(*(_run_one(q) for q in plan.sub_queries))
        return {q.query_id: r for q, r in zip(plan.sub_queries, results)}

    async def execute(
        self,
        sub_query: SubQuery,
        index: CodebaseIndex,
        plan_id: str | None = None,
    ) -> list[QueryResultRecord]:
        """
        Run one sub-query, consulting the cache first.

        Never raises; failures are logged and produce an empty list.
        """
        # Captured before searching; a concurrent re-index leaves the stored entry stale
        index_version = index.version
        if self.cache is not None and plan_id is not None:
            cached = self.cache.get_results(plan_id, sub_query.query_id, index_version)
            if cached is not None:
                logger.info(f"Using cached result for: {sub_query.query_text[:80]}")
                return cached

        try:
            results = await self._search(sub_query, index)
        except Exception as e:
            failure = ExecutionFailure(f"Query execution failed: {e}", query_id=sub_query.query_id)
            logger.warning(f"{failure} ({sub_query.query_text[:80]})")
            return []

        if self.cache is not None and plan_id is not None:
            self.cache.set_results(plan_id, sub_query.query_id, results, index_version)
        return results

    async def _search(self, sub_query: SubQuery, index: CodebaseIndex) -> list[QueryResultRecord]:
        logger.debug(f"Executing {sub_query.query_type.value}: {sub_query.query_text[:80]}")

        candidates: list[IndexedFile] = []
        if index.size:
            candidates = index.candidates(sub_query.filters)
            if not candidates:
                logger.debug(f"No indexed files pass the filters of {sub_query.query_id}")
                return []
            candidates = index.rank_by_overlap(candidates, sub_query.query_text, self.max_prompt_files)

        prompt = self.build_prompt(sub_query, candidates)
        response = await self.generator.generate(
            prompt,
            temperature=self.temperature,
            response_format=ResponseFormat.JSON,
        )
        return self._rank(self._parse_records(response), sub_query, candidates)

    def build_prompt(self, sub_query: SubQuery, candidates: list[IndexedFile]) -> str:
        query_type = sub_query.query_type
        if query_type in (
            QueryType.CODE_SEARCH,
            QueryType.PATTERN_SEARCH,
            QueryType.API_REFERENCE,
            QueryType.DOCUMENTATION,
        ):
            with_graph = False
        elif query_type == QueryType.DEPENDENCY_GRAPH:
            with_graph = True
        else:
            assert_never(query_type)

        if not candidates:
            filters = sub_query.filters
            scope = json.dumps(
                {
                    "file_extensions": sorted(filters.file_extensions),
                    "directories": sorted(filters.directories),
                }
            )
            return OPEN_SEARCH_PROMPT.format(
                query_text=sub_query.query_text,
                query_type=query_type.value,
                focus=SEARCH_FOCUS[query_type.value],
                scope=scope,
                max_results=self.max_results,
            )

        return SEARCH_PROMPT.format(
            query_text=sub_query.query_text,
            query_type=query_type.value,
            focus=SEARCH_FOCUS[query_type.value],
            corpus=self._render_files(candidates, with_graph=with_graph),
            max_results=self.max_results,
        )

    @staticmethod
    def _render_files(candidates: list[IndexedFile], with_graph: bool) -> str:
        blocks = [f"INDEXED FILES ({len(candidates)}):"]
        for entry in candidates:
            block = f"\nFile: {entry.path}\n"
            if with_graph:
                block += f"Dependencies: {', '.join(entry.dependencies) or '(none)'}\n"
                block += f"Exports: {', '.join(entry.exports) or '(none)'}\n"
            block += f"```\n{entry.content}\n```"
            blocks.append(block)
        return "\n".join(blocks)

    @staticmethod
    def _parse_records(response: str) -> list[QueryResultRecord]:
        data = extract_json(response)
        if isinstance(data, dict):
            return validate_payload(data, _ResultEnvelope).results
        return validate_payload(data, list[QueryResultRecord])

    def _rank(
        self,
        records: list[QueryResultRecord],
        sub_query: SubQuery,
        candidates: list[IndexedFile],
    ) -> list[QueryResultRecord]:
        allowed = {entry.path for entry in candidates}
        kept: list[QueryResultRecord] = []
        for record in records:
            if not sub_query.filters.matches(record.file_path):
                logger.debug(f"Dropping {record.file_path}: outside filters of {sub_query.query_id}")
                continue
            if allowed and record.file_path not in allowed:
                logger.debug(f"Dropping {record.file_path}: not among indexed candidates")
                continue
            if len(record.content) > self.content_max_chars:
                record = record.model_copy(update={"content": record.content[: self.content_max_chars]})
            kept.append(record)

        # sorted() is stable, so equal relevance keeps model order
        return sorted(kept, key=lambda r: -r.relevance)[: self.max_results]
