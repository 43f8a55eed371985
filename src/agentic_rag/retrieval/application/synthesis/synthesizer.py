"""
Result Synthesizer
==================

Merges per-sub-query results into a single context string according to
the plan's synthesis strategy.
"""

import json
import logging
import posixpath
from typing import Any, assert_never

from agentic_rag.generation.application.prompts.agentic_rag import (
    GRAPH_PROMPT,
    HIERARCHICAL_PROMPT,
    SUMMARIZE_PROMPT,
)
from agentic_rag.generation.domain.ports.providers import TextGenerationPort
from agentic_rag.retrieval.domain.errors import SynthesisFailure
from agentic_rag.retrieval.domain.models import QueryPlan, QueryResultRecord, SynthesisStrategy

logger = logging.getLogger(__name__)

Results = dict[str, list[QueryResultRecord]]


def concatenate(plan: QueryPlan, results: Results) -> str:
    """Deterministic join of every result, grouped by sub-query in plan order."""
    sections: list[str] = []
    ordered_ids = [q.query_id for q in plan.sub_queries]
    planned = set(ordered_ids)
    ordered_ids += [query_id for query_id in results if query_id not in planned]

    for query_id in ordered_ids:
        records = results.get(query_id) or []
        if not records:
            continue
        lines = [f"### Query: {query_id}"]
        for record in records:
            lines.append(f"\nFile: {record.file_path} (relevance: {record.relevance:.2f})")
            lines.append(f"```\n{record.content}\n```")
        sections.append("\n".join(lines))

    return "\n\n".join(sections)


def _module_keys(file_path: str) -> set[str]:
    """Names a dependency specifier may use to refer to a file."""
    stem, _ = posixpath.splitext(file_path.replace("\\", "/"))
    keys = {stem, posixpath.basename(stem), stem.replace("/", ".")}
    if posixpath.basename(stem) == "index":
        keys.add(posixpath.dirname(stem))
        keys.add(posixpath.basename(posixpath.dirname(stem)))
    return {key for key in keys if key}


def _resolve(specifier: str, importer: str) -> set[str]:
    """Candidate module keys for a dependency specifier seen in `importer`."""
    spec = specifier.strip()
    if spec.startswith("."):
        if spec.startswith("./") or spec.startswith("../"):
            joined = posixpath.normpath(posixpath.join(posixpath.dirname(importer), spec))
        else:
            # Python relative import (.models, ..utils)
            joined = spec.lstrip(".").replace(".", "/")
        spec = joined
    stem, ext = posixpath.splitext(spec)
    if ext in {".js", ".jsx", ".ts", ".tsx", ".py"}:
        spec = stem
    return {spec, posixpath.basename(spec), spec.replace("/", ".")}


def build_dependency_graph(results: Results) -> dict[str, dict[str, list[str]]]:
    """
    Dependency-aware view of all results, keyed by file path.

    `imported_by` lists other result files whose dependencies resolve to
    this file. Specifiers that match no result stay external.
    """
    records: dict[str, QueryResultRecord] = {}
    for result_list in results.values():
        for record in result_list:
            records.setdefault(record.file_path, record)

    graph: dict[str, dict[str, list[str]]] = {
        path: {
            "dependencies": list(record.dependencies),
            "exports": list(record.exports),
            "imported_by": [],
        }
        for path, record in records.items()
    }

    keys_by_path = {path: _module_keys(path) for path in records}
    for importer, record in records.items():
        for specifier in record.dependencies:
            targets = _resolve(specifier, importer)
            for path, keys in keys_by_path.items():
                if path != importer and keys & targets and importer not in graph[path]["imported_by"]:
                    graph[path]["imported_by"].append(importer)

    return graph


class Synthesizer:
    """
    Combines sub-query results into one context.

    Model-backed strategies fall back to the concatenation baseline on any
    failure; synthesize() never raises.
    """

    def __init__(
        self,
        generator: TextGenerationPort,
        summarize_temperature: float = 0.4,
        graph_temperature: float = 0.4,
        hierarchical_temperature: float = 0.5,
    ):
        self.generator = generator
        self.summarize_temperature = summarize_temperature
        self.graph_temperature = graph_temperature
        self.hierarchical_temperature = hierarchical_temperature

    async def synthesize(self, plan: QueryPlan, results: Results) -> str:
        strategy = plan.synthesis_strategy
        baseline = concatenate(plan, results)
        logger.info(f"Synthesizing results using strategy: {strategy.value}")

        if strategy == SynthesisStrategy.CONCATENATE:
            return baseline

        if not any(results.values()):
            # Nothing to reason over
            return baseline

        try:
            if strategy == SynthesisStrategy.SUMMARIZE:
                prompt = SUMMARIZE_PROMPT.format(intent=plan.original_intent, results=baseline)
                temperature = self.summarize_temperature
            elif strategy == SynthesisStrategy.GRAPH_BASED:
                prompt = self._graph_prompt(plan, results)
                temperature = self.graph_temperature
            elif strategy == SynthesisStrategy.HIERARCHICAL:
                prompt = HIERARCHICAL_PROMPT.format(intent=plan.original_intent, results=baseline)
                temperature = self.hierarchical_temperature
            else:
                assert_never(strategy)

            text = await self.generator.generate(prompt, temperature=temperature)
            if not text or not text.strip():
                raise SynthesisFailure("Model returned an empty synthesis", strategy=strategy.value)
            return text.strip()

        except Exception as e:
            failure = e if isinstance(e, SynthesisFailure) else SynthesisFailure(str(e), strategy=strategy.value)
            logger.warning(f"{failure}; using concatenation")
            return baseline

    @staticmethod
    def _graph_prompt(plan: QueryPlan, results: Results) -> str:
        graph = build_dependency_graph(results)
        contexts = "\n".join(
            f"File: {path}\n"
            f"Exports: {', '.join(node['exports'])}\n"
            f"Dependencies: {', '.join(node['dependencies'])}\n"
            f"Imported by: {', '.join(node['imported_by'])}\n"
            for path, node in graph.items()
        )
        edges: dict[str, Any] = {path: node["dependencies"] for path, node in graph.items()}
        return GRAPH_PROMPT.format(
            intent=plan.original_intent,
            graph=json.dumps(edges, indent=2),
            contexts=contexts,
        )
