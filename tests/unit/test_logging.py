import json
import logging

import pytest

from agentic_rag.observability.logging import configure_logging, query_context


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_json_logging_includes_bound_request_id(monkeypatch, capsys):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    configure_logging(log_level="INFO", json_format=True)

    with query_context("req-123"):
        logging.getLogger("agentic_rag.test").info("Planned 2 sub-queries")

    line = capsys.readouterr().out.strip().splitlines()[-1]
    event = json.loads(line)
    assert event["event"] == "Planned 2 sub-queries"
    assert event["request_id"] == "req-123"
    assert event["level"] == "info"
    assert event["logger"] == "agentic_rag.test"


def test_level_and_format_from_environment(monkeypatch, capsys):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    monkeypatch.setenv("LOG_FORMAT", "json")
    configure_logging()

    logging.getLogger("agentic_rag.test").info("hidden")
    logging.getLogger("agentic_rag.test").warning("shown")

    out = capsys.readouterr().out
    assert "hidden" not in out
    assert json.loads(out.strip().splitlines()[-1])["event"] == "shown"
    assert logging.getLogger().level == logging.WARNING


def test_noisy_http_loggers_are_quieted(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    configure_logging(log_level="DEBUG", json_format=False)

    assert logging.getLogger("httpx").level == logging.WARNING
