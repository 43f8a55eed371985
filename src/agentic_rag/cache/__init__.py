"""
Result Cache Package
====================

In-memory caching of query plans and sub-query results.
"""

from agentic_rag.cache.result_cache import ResultCache, ResultCacheConfig

__all__ = ["ResultCache", "ResultCacheConfig"]
