import json
import os
from collections.abc import Callable
from typing import Any

import pytest

from agentic_rag.config import Settings
from agentic_rag.generation.domain.provider_models import ResponseFormat

# Phrases identifying which stage a prompt belongs to. Checked in order:
# the hierarchical prompt also contains "code documentation AI".
PROMPT_ROUTES = (
    ("Agentic RAG planner", "plan"),
    ("code search engine", "search"),
    ("hierarchical documentation", "hierarchical"),
    ("code architecture AI", "graph"),
    ("code documentation AI", "summarize"),
)

Reply = str | dict | list | Exception | Callable[[str], Any]


def route_prompt(prompt: str) -> str:
    for phrase, stage in PROMPT_ROUTES:
        if phrase in prompt:
            return stage
    return "unknown"


class FakeGenerator:
    """
    Scripted text generator.

    Replies are configured per stage. A reply may be a string, a JSON-able
    object (dumped to a string), an exception (raised) or a callable taking
    the prompt and returning any of those.
    """

    def __init__(self, **replies: Reply):
        self.replies: dict[str, Reply] = {
            "plan": {"sub_queries": [], "synthesis_strategy": "concatenate"},
            "search": [],
            "summarize": "Summary of the results",
            "graph": "Architecture overview",
            "hierarchical": "# Overview",
            **replies,
        }
        self.calls: list[dict[str, Any]] = []

    async def generate(
        self,
        prompt: str,
        *,
        temperature: float | None = None,
        response_format: ResponseFormat | str = ResponseFormat.TEXT,
    ) -> str:
        stage = route_prompt(prompt)
        self.calls.append(
            {
                "stage": stage,
                "prompt": prompt,
                "temperature": temperature,
                "response_format": ResponseFormat(response_format),
            }
        )

        reply = self.replies.get(stage, "")
        if callable(reply):
            reply = reply(prompt)
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return reply
        return json.dumps(reply)

    def count(self, stage: str) -> int:
        return sum(1 for call in self.calls if call["stage"] == stage)

    def prompts(self, stage: str) -> list[str]:
        return [call["prompt"] for call in self.calls if call["stage"] == stage]


def plan_reply(*sub_queries: tuple[str, str, str], strategy: str = "concatenate") -> dict:
    """Planner reply from (query_id, query_text, query_type) triples."""
    return {
        "sub_queries": [
            {"query_id": query_id, "query_text": text, "query_type": query_type}
            for query_id, text, query_type in sub_queries
        ],
        "synthesis_strategy": strategy,
    }


def record(file_path: str, relevance: float = 0.9, content: str = "code", **extra: Any) -> dict:
    return {"file_path": file_path, "content": content, "relevance": relevance, **extra}


@pytest.fixture
def settings(monkeypatch, tmp_path):
    """Default settings isolated from the host environment and config files."""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.startswith("AGENTIC_RAG_"):
            monkeypatch.delenv(key, raising=False)
    return Settings()


AUTH_FILES = [
    {
        "path": "src/auth/login.ts",
        "content": (
            "import { hash } from './crypto';\n"
            "import jwt from 'jsonwebtoken';\n"
            "export async function login(user: string, password: string) {\n"
            "  return jwt.sign({ user }, hash(password));\n"
            "}\n"
        ),
    },
    {
        "path": "src/auth/crypto.ts",
        "content": "export function hash(value: string) { return value; }\n",
    },
    {
        "path": "src/auth/middleware.ts",
        "content": (
            "import { login } from './login';\n"
            "export const requireAuth = (req, res, next) => next();\n"
        ),
    },
    {
        "path": "scripts/seed.py",
        "content": "from app.models import User\nimport os\n",
    },
]
