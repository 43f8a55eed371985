"""
Retrieval Errors
================

Failures raised inside a pipeline stage and recovered at that stage's
boundary. None of them escapes AgenticRAGService.query().
"""


class AgenticRAGError(Exception):
    """Base exception for the agentic retrieval pipeline."""


class PlanningFailure(AgenticRAGError):
    """Plan generation failed; the planner substitutes a fallback plan."""

    def __init__(self, message: str, intent: str):
        self.intent = intent
        super().__init__(message)


class ExecutionFailure(AgenticRAGError):
    """A sub-query failed; it yields an empty result list."""

    def __init__(self, message: str, query_id: str):
        self.query_id = query_id
        super().__init__(f"[{query_id}] {message}")


class SynthesisFailure(AgenticRAGError):
    """A model-backed synthesis failed; the concatenation baseline is used."""

    def __init__(self, message: str, strategy: str):
        self.strategy = strategy
        super().__init__(f"[{strategy}] {message}")


class ValidationFailure(AgenticRAGError):
    """Input or model output did not have the expected shape."""


class PayloadError(ValidationFailure):
    """Model output was not JSON or did not match the expected schema."""
