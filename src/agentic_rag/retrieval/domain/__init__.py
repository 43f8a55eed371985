from agentic_rag.retrieval.domain.errors import (
    AgenticRAGError,
    ExecutionFailure,
    PayloadError,
    PlanningFailure,
    SynthesisFailure,
    ValidationFailure,
)
from agentic_rag.retrieval.domain.models import (
    AgenticRAGResult,
    IndexedFile,
    QueryFilters,
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
    "ExecutionFailure",
    "IndexedFile",
    "PayloadError",
    "PlanningFailure",
    "QueryFilters",
    "QueryOptions",
    "QueryPlan",
    "QueryResultRecord",
    "QueryType",
    "SourceFile",
    "SubQuery",
    "SynthesisFailure",
    "SynthesisStrategy",
    "ValidationFailure",
]
