"""
Model Payload Parsing
=====================

Extracts JSON from model replies and validates it against pydantic schemas.
"""

import json
import re
from typing import Any, TypeVar

from pydantic import TypeAdapter, ValidationError

from agentic_rag.retrieval.domain.errors import PayloadError

T = TypeVar("T")

_FENCE_PATTERN = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)
_BLOCK_PATTERN = re.compile(r"(\{.*\}|\[.*\])", re.DOTALL)


def extract_json(text: str) -> Any:
    """
    Decode the JSON payload of a model reply.

    Accepts bare JSON, JSON wrapped in a Markdown fence, or JSON surrounded
    by prose.

    Raises:
        PayloadError: no decodable JSON found
    """
    if text is None:
        raise PayloadError("Empty model reply")

    text = text.strip()
    if not text:
        raise PayloadError("Empty model reply")

    fenced = _FENCE_PATTERN.search(text)
    if fenced:
        text = fenced.group(1).strip()

    try:
        return json.loads(text)
    except json.JSONDecodeError:
        match = _BLOCK_PATTERN.search(text)
        if match:
            try:
                return json.loads(match.group(1))
            except json.JSONDecodeError as e:
                raise PayloadError(f"Invalid JSON in model reply: {e}") from e
        raise PayloadError(f"No JSON found in model reply: {text[:80]!r}") from None


def validate_payload(data: Any, schema: type[T] | Any) -> T:
    """
    Validate decoded JSON against `schema`.

    Raises:
        PayloadError: schema mismatch
    """
    try:
        return TypeAdapter(schema).validate_python(data)
    except ValidationError as e:
        raise PayloadError(f"Model reply does not match {getattr(schema, '__name__', schema)}: {e}") from e


def parse_payload(text: str, schema: type[T] | Any) -> T:
    """
    Decode a model reply and validate it against `schema`.

    Raises:
        PayloadError: undecodable JSON or schema mismatch
    """
    return validate_payload(extract_json(text), schema)
