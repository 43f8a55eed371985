import asyncio

import pytest
from conftest import AUTH_FILES, FakeGenerator, record

from agentic_rag.cache.result_cache import ResultCache
from agentic_rag.generation.domain.provider_models import RateLimitError, ResponseFormat
from agentic_rag.retrieval.application.indexing import CodebaseIndex
from agentic_rag.retrieval.application.query.executor import QueryExecutor
from agentic_rag.retrieval.domain.models import QueryFilters, QueryPlan, SubQuery


def _sub_query(query_id="q1", text="login handlers", query_type="code_search", **filters) -> SubQuery:
    return SubQuery(query_id=query_id, query_text=text, query_type=query_type, filters=QueryFilters(**filters))


def _index() -> CodebaseIndex:
    index = CodebaseIndex()
    index.index_files(AUTH_FILES)
    return index


@pytest.mark.asyncio
async def test_results_are_ranked_by_relevance():
    generator = FakeGenerator(
        search=[
            record("src/auth/crypto.ts", 0.4),
            record("src/auth/login.ts", 0.95),
            record("src/auth/middleware.ts", 0.7),
        ]
    )
    executor = QueryExecutor(generator, temperature=0.6)

    results = await executor.execute(_sub_query(), _index())

    assert [r.file_path for r in results] == ["src/auth/login.ts", "src/auth/middleware.ts", "src/auth/crypto.ts"]
    assert generator.calls[0]["response_format"] == ResponseFormat.JSON
    assert generator.calls[0]["temperature"] == 0.6


@pytest.mark.asyncio
async def test_equal_relevance_keeps_model_order_and_results_are_capped():
    generator = FakeGenerator(search=[record(f"src/auth/{name}.ts", 0.5) for name in ("login", "crypto", "middleware")])
    executor = QueryExecutor(generator, max_results=2)

    results = await executor.execute(_sub_query(), _index())

    assert [r.file_path for r in results] == ["src/auth/login.ts", "src/auth/crypto.ts"]


@pytest.mark.asyncio
async def test_prompt_lists_only_files_passing_the_filters():
    generator = FakeGenerator(search=[record("scripts/seed.py", 0.8)])
    executor = QueryExecutor(generator)

    results = await executor.execute(_sub_query(directories={"scripts"}), _index())

    prompt = generator.prompts("search")[0]
    assert "File: scripts/seed.py" in prompt
    assert "src/auth/login.ts" not in prompt
    assert [r.file_path for r in results] == ["scripts/seed.py"]


@pytest.mark.asyncio
async def test_records_outside_filters_or_index_are_dropped():
    generator = FakeGenerator(
        search=[
            record("src/auth/login.ts", 0.9),
            record("scripts/seed.py", 0.9),
            record("src/auth/invented.ts", 0.9),
        ]
    )
    executor = QueryExecutor(generator)

    results = await executor.execute(_sub_query(file_extensions={".ts"}), _index())

    assert [r.file_path for r in results] == ["src/auth/login.ts"]


@pytest.mark.asyncio
async def test_no_matching_files_skips_the_model():
    generator = FakeGenerator(search=[record("src/main.rs", 0.9)])
    executor = QueryExecutor(generator)

    results = await executor.execute(_sub_query(file_extensions={".rs"}), _index())

    assert results == []
    assert generator.count("search") == 0


@pytest.mark.asyncio
async def test_empty_index_uses_open_search():
    generator = FakeGenerator(search=[record("src/auth/jwt.ts", 0.8)])
    executor = QueryExecutor(generator)

    results = await executor.execute(_sub_query(file_extensions={".ts"}), CodebaseIndex())

    prompt = generator.prompts("search")[0]
    assert "No files have been indexed" in prompt
    assert '".ts"' in prompt
    assert [r.file_path for r in results] == ["src/auth/jwt.ts"]


@pytest.mark.asyncio
async def test_dependency_graph_prompt_includes_imports_and_exports():
    generator = FakeGenerator(search=[])
    executor = QueryExecutor(generator)

    await executor.execute(_sub_query(query_type="dependency_graph"), _index())
    await executor.execute(_sub_query(query_type="code_search"), _index())

    graph_prompt, search_prompt = generator.prompts("search")
    assert "Dependencies: ./crypto, jsonwebtoken" in graph_prompt
    assert "Exports: login" in graph_prompt
    assert "Dependencies:" not in search_prompt


@pytest.mark.asyncio
async def test_result_envelope_is_accepted():
    generator = FakeGenerator(search={"results": [record("src/auth/login.ts", 0.9)]})

    results = await QueryExecutor(generator).execute(_sub_query(), _index())

    assert [r.file_path for r in results] == ["src/auth/login.ts"]


@pytest.mark.asyncio
async def test_content_is_truncated():
    generator = FakeGenerator(search=[record("src/auth/login.ts", 0.9, content="y" * 50)])

    results = await QueryExecutor(generator, content_max_chars=10).execute(_sub_query(), _index())

    assert results[0].content == "y" * 10


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "reply",
    [
        "not json at all",
        [{"file_path": "src/auth/login.ts", "relevance": 3.0}],
        [{"content": "no path", "relevance": 0.5}],
        RateLimitError("slow down", provider="fake"),
    ],
)
async def test_failed_sub_query_yields_empty_list(reply):
    executor = QueryExecutor(FakeGenerator(search=reply))

    assert await executor.execute(_sub_query(), _index()) == []


@pytest.mark.asyncio
async def test_one_failing_sub_query_does_not_affect_siblings():
    def search(prompt: str):
        if "broken query" in prompt:
            raise RuntimeError("model crashed")
        return [record("src/auth/login.ts", 0.9)]

    plan = QueryPlan(
        original_intent="auth",
        sub_queries=(_sub_query("q1"), _sub_query("q2", text="broken query"), _sub_query("q3")),
    )
    executor = QueryExecutor(FakeGenerator(search=search))

    results = await executor.execute_all(plan, _index())

    assert list(results) == ["q1", "q2", "q3"]
    assert results["q2"] == []
    assert len(results["q1"]) == 1
    assert len(results["q3"]) == 1


@pytest.mark.asyncio
async def test_concurrency_is_bounded():
    active = 0
    peak = 0

    class _SlowGenerator:
        async def generate(self, prompt, *, temperature=None, response_format="text"):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return "[]"

    plan = QueryPlan(
        original_intent="auth",
        sub_queries=tuple(_sub_query(f"q{i}") for i in range(6)),
    )
    executor = QueryExecutor(_SlowGenerator(), max_concurrency=2)

    results = await executor.execute_all(plan, _index())

    assert len(results) == 6
    assert peak == 2


@pytest.mark.asyncio
async def test_successful_results_are_cached_per_plan():
    generator = FakeGenerator(search=[record("src/auth/login.ts", 0.9)])
    cache = ResultCache()
    executor = QueryExecutor(generator, cache=cache)

    first = await executor.execute(_sub_query(), _index(), plan_id="plan-1")
    second = await executor.execute(_sub_query(), _index(), plan_id="plan-1")
    await executor.execute(_sub_query(), _index(), plan_id="plan-2")

    assert first == second
    assert generator.count("search") == 2
    assert cache.stats["hits"] == 1


@pytest.mark.asyncio
async def test_failures_are_not_cached():
    generator = FakeGenerator(search="nonsense")
    cache = ResultCache()
    executor = QueryExecutor(generator, cache=cache)

    await executor.execute(_sub_query(), _index(), plan_id="plan-1")
    generator.replies["search"] = [record("src/auth/login.ts", 0.9)]
    results = await executor.execute(_sub_query(), _index(), plan_id="plan-1")

    assert len(results) == 1
    assert generator.count("search") == 2
