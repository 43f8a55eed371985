from agentic_rag.observability.logging import configure_logging, query_context

__all__ = ["configure_logging", "query_context"]
