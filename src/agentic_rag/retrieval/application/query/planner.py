"""
Query Planner
=============

Uses the LLM to decompose a developer intent into typed sub-queries and a
synthesis strategy.
"""

import json
import logging

from pydantic import BaseModel, Field

from agentic_rag.generation.application.prompts.agentic_rag import PLANNING_PROMPT
from agentic_rag.generation.domain.ports.providers import TextGenerationPort
from agentic_rag.generation.domain.provider_models import ResponseFormat
from agentic_rag.retrieval.application.query.parsing import parse_payload
from agentic_rag.retrieval.domain.errors import PayloadError, PlanningFailure
from agentic_rag.retrieval.domain.models import (
    QueryFilters,
    QueryOptions,
    QueryPlan,
    QueryType,
    SubQuery,
    SynthesisStrategy,
    new_id,
)

logger = logging.getLogger(__name__)


class _DraftSubQuery(BaseModel):
    """Sub-query as proposed by the model. Filters are never taken from the model."""

    query_id: str | None = None
    query_text: str = Field(..., min_length=1)
    query_type: QueryType


class _DraftPlan(BaseModel):
    sub_queries: list[_DraftSubQuery] = Field(..., min_length=1)
    synthesis_strategy: SynthesisStrategy


class QueryPlanner:
    """
    Decomposes an intent into a QueryPlan.

    Planning never fails from the caller's point of view: any generation,
    decoding or validation error produces the single-query fallback plan.
    """

    def __init__(
        self,
        generator: TextGenerationPort,
        max_sub_queries: int = 5,
        temperature: float = 0.5,
    ):
        self.generator = generator
        self.max_sub_queries = max_sub_queries
        self.temperature = temperature

    async def plan(self, intent: str, options: QueryOptions | None = None) -> QueryPlan:
        """
        Build a plan for an intent.

        Args:
            intent: Natural-language request, kept verbatim in the plan
            options: Optional language / directory scope

        Returns:
            QueryPlan with at least one sub-query
        """
        options = options or QueryOptions()
        filters = options.to_filters()

        try:
            plan = await self._plan_with_model(intent, options, filters)
        except Exception as e:
            failure = PlanningFailure(f"Plan generation failed: {e}", intent=intent)
            logger.error(f"{failure}; using fallback plan")
            return self.fallback_plan(intent, filters)

        logger.info(
            f"Planned {len(plan.sub_queries)} sub-queries "
            f"({plan.synthesis_strategy.value}) for intent: {intent[:80]}"
        )
        return plan

    async def _plan_with_model(self, intent: str, options: QueryOptions, filters: QueryFilters) -> QueryPlan:
        scope = options.model_dump(exclude_none=True)
        prompt = PLANNING_PROMPT.format(
            intent=intent,
            scope=json.dumps(scope, indent=2) if scope else "None",
            max_sub_queries=self.max_sub_queries,
        )
        response = await self.generator.generate(
            prompt,
            temperature=self.temperature,
            response_format=ResponseFormat.JSON,
        )
        draft = parse_payload(response, _DraftPlan)

        sub_queries: list[SubQuery] = []
        seen: set[str] = set()
        for item in draft.sub_queries:
            if len(sub_queries) == self.max_sub_queries:
                break
            query_text = item.query_text.strip()
            if not query_text:
                logger.debug("Skipping blank sub-query from planner reply")
                continue
            query_id = (item.query_id or "").strip() or new_id()
            if query_id in seen:
                query_id = new_id()
            seen.add(query_id)
            sub_queries.append(
                SubQuery(
                    query_id=query_id,
                    query_text=query_text,
                    query_type=item.query_type,
                    filters=filters,
                )
            )

        if not sub_queries:
            raise PayloadError("Planner reply contains no usable sub-queries")

        return QueryPlan(
            original_intent=intent,
            sub_queries=tuple(sub_queries),
            synthesis_strategy=draft.synthesis_strategy,
        )

    @staticmethod
    def fallback_plan(intent: str, filters: QueryFilters | None = None) -> QueryPlan:
        """Single code search over the raw intent, concatenated. The intent may be blank."""
        return QueryPlan(
            original_intent=intent,
            sub_queries=(
                SubQuery(
                    query_id=new_id(),
                    query_text=intent,
                    query_type=QueryType.CODE_SEARCH,
                    filters=filters or QueryFilters(),
                ),
            ),
            synthesis_strategy=SynthesisStrategy.CONCATENATE,
            is_fallback=True,
        )
