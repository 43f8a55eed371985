"""
Retrieval Models
================

Plans, sub-queries, index records and results exchanged by the planner,
executor and synthesizer.
"""

import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


class QueryType(str, Enum):
    """Kind of retrieval work a sub-query performs."""

    CODE_SEARCH = "code_search"
    DOCUMENTATION = "documentation"
    API_REFERENCE = "api_reference"
    PATTERN_SEARCH = "pattern_search"
    DEPENDENCY_GRAPH = "dependency_graph"


class SynthesisStrategy(str, Enum):
    """How sub-query results are merged into one context."""

    CONCATENATE = "concatenate"
    SUMMARIZE = "summarize"
    GRAPH_BASED = "graph_based"
    HIERARCHICAL = "hierarchical"


LANGUAGE_EXTENSIONS: dict[str, tuple[str, ...]] = {
    "typescript": (".ts", ".tsx"),
    "javascript": (".js", ".jsx"),
    "python": (".py",),
    "java": (".java",),
    "rust": (".rs",),
    "go": (".go",),
    "cpp": (".cpp", ".hpp", ".h"),
    "csharp": (".cs",),
}


def extensions_for_language(language: str | None) -> set[str]:
    """Map a language name to file extensions. Unknown languages map to an empty set."""
    if not language:
        return set()
    extensions = LANGUAGE_EXTENSIONS.get(language.strip().lower())
    if extensions is None:
        logger.debug(f"No file extensions known for language '{language}'")
        return set()
    return set(extensions)


def normalize_directory(directory: str) -> str:
    directory = directory.strip().replace("\\", "/")
    while directory.startswith("./"):
        directory = directory[2:]
    return directory.strip("/")


def new_id() -> str:
    return str(uuid4())


class QueryFilters(BaseModel):
    """Scope restrictions for a sub-query. Empty sets leave a dimension unrestricted."""

    model_config = ConfigDict(frozen=True)

    file_extensions: frozenset[str] = Field(default_factory=frozenset)
    directories: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("file_extensions", mode="before")
    @classmethod
    def normalize_extensions(cls, v: Iterable[str] | None) -> frozenset[str]:
        if not v:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(ext if ext.startswith(".") else f".{ext}" for ext in (e.strip().lower() for e in v) if ext)

    @field_validator("directories", mode="before")
    @classmethod
    def normalize_directories(cls, v: Iterable[str] | None) -> frozenset[str]:
        if not v:
            return frozenset()
        if isinstance(v, str):
            v = [v]
        return frozenset(d for d in (normalize_directory(d) for d in v) if d)

    def matches(self, path: str) -> bool:
        """True if a file path passes both the extension and the directory filter."""
        normalized = normalize_directory(path)
        if self.file_extensions and not normalized.lower().endswith(tuple(self.file_extensions)):
            return False
        if self.directories and not any(
            normalized == d or normalized.startswith(f"{d}/") for d in self.directories
        ):
            return False
        return True


class QueryOptions(BaseModel):
    """
    Caller-supplied scoping options for a query.

    Malformed values degrade to "no restriction" instead of failing the query.
    """

    language: str | None = None
    directories: list[str] | None = None

    @field_validator("language", mode="before")
    @classmethod
    def lenient_language(cls, v: Any) -> str | None:
        if v is None or isinstance(v, str):
            return v
        logger.warning(f"Ignoring non-string language option: {v!r}")
        return None

    @field_validator("directories", mode="before")
    @classmethod
    def lenient_directories(cls, v: Any) -> list[str] | None:
        if v is None:
            return None
        if isinstance(v, str):
            return [v]
        if not isinstance(v, (list, tuple, set, frozenset)):
            logger.warning(f"Ignoring malformed directories option: {v!r}")
            return None
        kept = [d for d in v if isinstance(d, str)]
        if len(kept) != len(v):
            logger.warning(f"Ignoring non-string entries in directories option: {v!r}")
        return kept

    def to_filters(self) -> QueryFilters:
        return QueryFilters(
            file_extensions=extensions_for_language(self.language),
            directories=self.directories or (),
        )


class SubQuery(BaseModel):
    """One typed unit of retrieval work derived from an intent."""

    model_config = ConfigDict(frozen=True)

    query_id: str
    query_text: str
    query_type: QueryType
    filters: QueryFilters = Field(default_factory=QueryFilters)


class QueryPlan(BaseModel):
    """Decomposition of an intent into sub-queries plus a synthesis strategy."""

    model_config = ConfigDict(frozen=True)

    plan_id: str = Field(default_factory=new_id)
    original_intent: str
    sub_queries: tuple[SubQuery, ...] = Field(..., min_length=1)
    synthesis_strategy: SynthesisStrategy = SynthesisStrategy.CONCATENATE
    # Set on the single-query plan used when planning failed
    is_fallback: bool = False

    @model_validator(mode="after")
    def check_unique_query_ids(self) -> "QueryPlan":
        ids = [q.query_id for q in self.sub_queries]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate query_id in plan: {ids}")
        return self


class SourceFile(BaseModel):
    """A file handed to the indexer."""

    path: str
    content: str = ""


class IndexedFile(BaseModel):
    """Codebase index entry."""

    model_config = ConfigDict(frozen=True)

    path: str
    content: str
    dependencies: tuple[str, ...] = ()
    exports: tuple[str, ...] = ()


class QueryResultRecord(BaseModel):
    """A ranked retrieval hit for one sub-query."""

    file_path: str = Field(..., min_length=1)
    content: str = ""
    relevance: float = Field(..., ge=0.0, le=1.0)
    dependencies: list[str] = Field(default_factory=list)
    exports: list[str] = Field(default_factory=list)

    @field_validator("dependencies", "exports", mode="before")
    @classmethod
    def none_to_empty(cls, v: list[str] | None) -> list[str]:
        return v if v is not None else []


class AgenticRAGResult(BaseModel):
    """Caller-facing outcome of a query."""

    plan: QueryPlan
    query_results: dict[str, list[QueryResultRecord]]
    synthesized_context: str
    confidence_score: float = Field(..., ge=0.0, le=1.0)
