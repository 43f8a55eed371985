import pytest
from conftest import FakeGenerator

from agentic_rag.retrieval.application.synthesis.synthesizer import (
    Synthesizer,
    build_dependency_graph,
    concatenate,
)
from agentic_rag.retrieval.domain.models import QueryPlan, QueryResultRecord, SubQuery


def _plan(strategy: str = "concatenate", ids=("q1", "q2")) -> QueryPlan:
    return QueryPlan(
        original_intent="Find authentication patterns",
        sub_queries=tuple(SubQuery(query_id=i, query_text=f"text {i}", query_type="code_search") for i in ids),
        synthesis_strategy=strategy,
    )


def _rec(path: str, relevance: float = 0.9, content: str = "code", **extra) -> QueryResultRecord:
    return QueryResultRecord(file_path=path, relevance=relevance, content=content, **extra)


RESULTS = {
    "q1": [_rec("src/auth/login.ts", 0.9, "login()", dependencies=["./crypto"], exports=["login"])],
    "q2": [_rec("src/auth/crypto.ts", 0.75, "hash()", exports=["hash"])],
}


def test_concatenate_format():
    text = concatenate(_plan(), RESULTS)

    assert text == (
        "### Query: q1\n"
        "\n"
        "File: src/auth/login.ts (relevance: 0.90)\n"
        "```\nlogin()\n```"
        "\n\n"
        "### Query: q2\n"
        "\n"
        "File: src/auth/crypto.ts (relevance: 0.75)\n"
        "```\nhash()\n```"
    )


def test_concatenate_follows_plan_order_and_skips_empty_results():
    plan = _plan(ids=("q2", "q3", "q1"))
    text = concatenate(plan, {**RESULTS, "q3": []})

    assert text.index("### Query: q2") < text.index("### Query: q1")
    assert "q3" not in text
    assert concatenate(plan, {}) == ""


def test_dependency_graph_links_importers():
    graph = build_dependency_graph(RESULTS)

    assert graph["src/auth/crypto.ts"]["imported_by"] == ["src/auth/login.ts"]
    assert graph["src/auth/login.ts"]["dependencies"] == ["./crypto"]
    assert graph["src/auth/login.ts"]["imported_by"] == []


def test_dependency_graph_resolves_python_modules():
    results = {
        "q1": [
            _rec("app/views.py", dependencies=["app.models", "os"]),
            _rec("app/models.py"),
        ]
    }

    graph = build_dependency_graph(results)

    assert graph["app/models.py"]["imported_by"] == ["app/views.py"]
    assert "os" not in graph


@pytest.mark.asyncio
async def test_concatenate_strategy_never_calls_the_model():
    generator = FakeGenerator()

    text = await Synthesizer(generator).synthesize(_plan("concatenate"), RESULTS)

    assert text == concatenate(_plan(), RESULTS)
    assert generator.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "strategy,stage,temperature",
    [
        ("summarize", "summarize", 0.4),
        ("graph_based", "graph", 0.3),
        ("hierarchical", "hierarchical", 0.5),
    ],
)
async def test_model_strategies_use_their_prompt(strategy, stage, temperature):
    generator = FakeGenerator(**{stage: f"  {stage} output \n"})
    synthesizer = Synthesizer(generator, summarize_temperature=0.4, graph_temperature=0.3, hierarchical_temperature=0.5)

    text = await synthesizer.synthesize(_plan(strategy), RESULTS)

    assert text == f"{stage} output"
    assert generator.count(stage) == 1
    assert generator.calls[0]["temperature"] == temperature
    assert "Find authentication patterns" in generator.calls[0]["prompt"]


@pytest.mark.asyncio
async def test_graph_prompt_contains_the_dependency_graph():
    generator = FakeGenerator()

    await Synthesizer(generator).synthesize(_plan("graph_based"), RESULTS)

    prompt = generator.prompts("graph")[0]
    assert '"src/auth/login.ts": [\n    "./crypto"\n  ]' in prompt
    assert "Imported by: src/auth/login.ts" in prompt


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["", "   ", RuntimeError("model down")])
async def test_model_failure_falls_back_to_concatenation(reply):
    generator = FakeGenerator(summarize=reply)

    text = await Synthesizer(generator).synthesize(_plan("summarize"), RESULTS)

    assert text == concatenate(_plan(), RESULTS)


@pytest.mark.asyncio
async def test_no_results_skips_the_model():
    generator = FakeGenerator()

    text = await Synthesizer(generator).synthesize(_plan("hierarchical"), {"q1": [], "q2": []})

    assert text == ""
    assert generator.calls == []
