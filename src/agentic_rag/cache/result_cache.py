"""
Result Cache
============

Session cache for query plans and per-sub-query results, so a repeated
intent skips planning and execution.
"""

import hashlib
import json
import logging
import time
from collections import OrderedDict
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from agentic_rag.retrieval.domain.models import QueryOptions, QueryPlan, QueryResultRecord

logger = logging.getLogger(__name__)

V = TypeVar("V")


@dataclass
class ResultCacheConfig:
    """Result cache configuration."""

    enabled: bool = True
    ttl_seconds: float | None = None  # None keeps entries until cleared
    max_entries: int = 1024


@dataclass
class _Entry(Generic[V]):
    value: V
    stored_at: float


class _BoundedStore(Generic[V]):
    """Insertion-ordered map with oldest-first eviction and optional TTL."""

    def __init__(self, config: ResultCacheConfig, clock: Callable[[], float]):
        self._config = config
        self._clock = clock
        self._data: OrderedDict[Any, _Entry[V]] = OrderedDict()

    def get(self, key: Any) -> tuple[V | None, bool]:
        """Returns (value, expired)."""
        entry = self._data.get(key)
        if entry is None:
            return None, False
        ttl = self._config.ttl_seconds
        if ttl is not None and self._clock() - entry.stored_at > ttl:
            del self._data[key]
            return None, True
        return entry.value, False

    def set(self, key: Any, value: V) -> None:
        self._data[key] = _Entry(value=value, stored_at=self._clock())
        self._data.move_to_end(key)
        while len(self._data) > self._config.max_entries:
            self._data.popitem(last=False)

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)


class ResultCache:
    """
    Cache for plans and retrieval results.

    Plans are keyed by a hash of (intent, options); results by
    (plan_id, query_id, index_version), so re-indexing orphans old results.
    Reusing the plan for a repeated intent is what makes its result entries
    reachable again.

    Usage:
        cache = ResultCache()

        plan = cache.get_plan(intent, options)
        if plan is None:
            plan = await planner.plan(intent, options)
            cache.set_plan(intent, options, plan)
    """

    def __init__(
        self,
        config: ResultCacheConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or ResultCacheConfig()
        self._plans: _BoundedStore[QueryPlan] = _BoundedStore(self.config, clock)
        self._results: _BoundedStore[list[QueryResultRecord]] = _BoundedStore(self.config, clock)
        self._stats = {"hits": 0, "misses": 0, "expired": 0}

    @staticmethod
    def hash_request(intent: str, options: QueryOptions | None = None) -> str:
        """Create a hash key for a query request."""
        options = options or QueryOptions()
        data = {
            "intent": " ".join(intent.split()).lower(),
            "language": (options.language or "").strip().lower(),
            "directories": sorted(options.directories or []),
        }
        serialized = json.dumps(data, sort_keys=True)
        return hashlib.sha256(serialized.encode()).hexdigest()[:32]

    def _record(self, found: bool, expired: bool) -> None:
        if found:
            self._stats["hits"] += 1
        elif expired:
            self._stats["expired"] += 1
        else:
            self._stats["misses"] += 1

    def get_plan(self, intent: str, options: QueryOptions | None = None) -> QueryPlan | None:
        if not self.config.enabled:
            return None
        plan, expired = self._plans.get(self.hash_request(intent, options))
        self._record(plan is not None, expired)
        if plan is not None:
            logger.debug(f"Plan cache hit for intent: {intent[:50]}")
        return plan

    def set_plan(self, intent: str, options: QueryOptions | None, plan: QueryPlan) -> None:
        if self.config.enabled:
            self._plans.set(self.hash_request(intent, options), plan)

    def get_results(
        self, plan_id: str, query_id: str, index_version: int = 0
    ) -> list[QueryResultRecord] | None:
        if not self.config.enabled:
            return None
        results, expired = self._results.get((plan_id, query_id, index_version))
        self._record(results is not None, expired)
        if results is None:
            return None
        logger.debug(f"Result cache hit for {query_id}")
        return list(results)

    def set_results(
        self,
        plan_id: str,
        query_id: str,
        results: list[QueryResultRecord],
        index_version: int = 0,
    ) -> None:
        if self.config.enabled:
            self._results.set((plan_id, query_id, index_version), list(results))

    def clear(self) -> None:
        """Drop every cached plan and result."""
        self._plans.clear()
        self._results.clear()
        logger.info("Cleared result cache")

    @property
    def stats(self) -> dict[str, Any]:
        """Get cache statistics."""
        total = self._stats["hits"] + self._stats["misses"] + self._stats["expired"]
        hit_rate = self._stats["hits"] / total if total > 0 else 0

        return {
            "hits": self._stats["hits"],
            "misses": self._stats["misses"],
            "expired": self._stats["expired"],
            "hit_rate": round(hit_rate, 3),
            "plans": len(self._plans),
            "results": len(self._results),
            "enabled": self.config.enabled,
        }
