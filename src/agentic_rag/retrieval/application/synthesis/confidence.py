"""
Confidence Estimation
=====================

Heuristic reliability score for a synthesized context: mean relevance of
the gathered records, discounted when the context is short compared with
the material it was built from.
"""

from agentic_rag.config import ConfidenceSettings
from agentic_rag.retrieval.domain.models import QueryResultRecord


def score_confidence(
    results: dict[str, list[QueryResultRecord]],
    synthesized_context: str,
    settings: ConfidenceSettings | None = None,
) -> float:
    """
    Score results in [0, 1]. Pure: same inputs, same output.

    Returns exactly 0.0 when no sub-query produced a record.
    """
    settings = settings or ConfidenceSettings()
    records = [record for result_list in results.values() for record in result_list]
    if not records:
        return 0.0

    mean_relevance = sum(record.relevance for record in records) / len(records)

    source_chars = sum(len(record.content) for record in records)
    target = min(
        max(source_chars * settings.source_ratio, settings.min_context_chars),
        settings.max_context_chars,
    )
    length_factor = min(1.0, len(synthesized_context) / target)

    return max(0.0, min(1.0, mean_relevance * length_factor))
