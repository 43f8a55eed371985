import pytest

from agentic_rag.config import ConfidenceSettings
from agentic_rag.retrieval.application.synthesis.confidence import score_confidence
from agentic_rag.retrieval.domain.models import QueryResultRecord


def _record(relevance: float, content: str = "x" * 100) -> QueryResultRecord:
    return QueryResultRecord(file_path="src/a.ts", content=content, relevance=relevance)


def test_no_records_scores_zero():
    assert score_confidence({}, "") == 0.0
    assert score_confidence({"q1": [], "q2": []}, "a long context " * 100) == 0.0


def test_long_context_scores_mean_relevance():
    results = {"q1": [_record(0.9)], "q2": [_record(0.7)]}

    assert score_confidence(results, "c" * 500) == pytest.approx(0.8)


def test_short_context_is_discounted():
    results = {"q1": [_record(0.9)]}

    score = score_confidence(results, "c" * 100)

    # target = max(100 * 0.25, 200) = 200
    assert score == pytest.approx(0.45)
    assert score < 1.0


def test_target_grows_with_source_volume_up_to_cap():
    results = {"q1": [_record(1.0, content="x" * 10_000)]}

    assert score_confidence(results, "c" * 250) == pytest.approx(0.5)
    assert score_confidence(results, "c" * 5000) == pytest.approx(1.0)


def test_score_is_deterministic_and_bounded():
    results = {"q1": [_record(1.0), _record(1.0)]}
    settings = ConfidenceSettings(min_context_chars=1, max_context_chars=1)

    first = score_confidence(results, "context", settings)

    assert first == score_confidence(results, "context", settings)
    assert 0.0 <= first <= 1.0
    assert first == 1.0
