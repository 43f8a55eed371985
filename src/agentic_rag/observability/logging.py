"""
Structured Logging Configuration
================================

Logging setup for the agentic RAG orchestrator using ``structlog``.

- **Dev / human**: Pretty-printed console output.
- **Prod / json**: Machine-readable JSON lines.

Environment variables
~~~~~~~~~~~~~~~~~~~~~
- ``LOG_LEVEL``  – DEBUG | INFO | WARNING | ERROR | CRITICAL  (default: INFO)
- ``LOG_FORMAT`` – ``json`` | ``human``  (default: ``human``)

Modules keep using ``logging.getLogger(__name__)``; their records are routed
through structlog so every line obeys the configured level and format.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager

import structlog

# HTTP client internals used by the OpenAI SDK
_NOISY_LOGGERS: dict[str, int] = {
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "openai": logging.WARNING,
    "openai._base_client": logging.WARNING,
}


@contextmanager
def query_context(request_id: str, **extra: str) -> Iterator[None]:
    """Bind a request id (and any extra fields) to every log line emitted inside the block."""
    with structlog.contextvars.bound_contextvars(request_id=request_id, **extra):
        yield


def configure_logging(
    log_level: str = "INFO",
    json_format: bool | None = None,
) -> None:
    """Configure application-wide structured logging.

    Parameters
    ----------
    log_level:
        Minimum severity.  Overridden by ``LOG_LEVEL`` env var if set.
    json_format:
        ``True`` → JSON lines, ``False`` → console output.
        When *None* the format is read from ``LOG_FORMAT``.
    """

    level_name = os.getenv("LOG_LEVEL", log_level).upper()
    numeric_level = getattr(logging, level_name, logging.INFO)

    if json_format is None:
        json_format = os.getenv("LOG_FORMAT", "human").lower() == "json"

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if json_format:
        shared_processors.append(structlog.processors.format_exc_info)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    root = logging.getLogger()
    root.setLevel(numeric_level)

    # Remove any pre-existing handlers to avoid duplicate lines
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if json_format:
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)

    # Only raise the level, never lower it below the caller's choice
    for logger_name, level in _NOISY_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(max(level, numeric_level))
