"""
Codebase Index
==============

In-memory collection of indexed files keyed by path. Dependencies and
exports are extracted with regular expressions; this is a heuristic pass,
not a parser, so it may miss symbols but never fails on odd input.
"""

import logging
import re
from collections.abc import Iterable, Iterator, Mapping

from agentic_rag.retrieval.domain.models import IndexedFile, QueryFilters, SourceFile

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_MAX_CHARS = 8000

# import x from 'y' / import {a} from "y" / import 'y' / export * from 'y'
ES_IMPORT_RE = re.compile(r"""(?:^|[\s;])(?:import|export)\s+(?:[\w*{}\s,$]+?\s+from\s+)?['"]([^'"\n]+)['"]""")
# require('y') / import('y')
CALL_IMPORT_RE = re.compile(r"""\b(?:require|import)\s*\(\s*['"]([^'"\n]+)['"]\s*\)""")
# Python: from x import y / import x, z
PY_FROM_IMPORT_RE = re.compile(r"^\s*from\s+([\w.]+)\s+import\s+", re.MULTILINE)
PY_IMPORT_RE = re.compile(
    r"^[ \t]*import[ \t]+([\w.]+(?:[ \t]+as[ \t]+\w+)?(?:[ \t]*,[ \t]*[\w.]+(?:[ \t]+as[ \t]+\w+)?)*)[ \t]*$",
    re.MULTILINE,
)

EXPORT_DECL_RE = re.compile(
    r"\bexport\s+(?:default\s+)?(?:declare\s+)?(?:abstract\s+)?(?:async\s+)?"
    r"(?:class|function\*?|const|let|var|interface|type|enum)\s+([A-Za-z_$][\w$]*)"
)
EXPORT_LIST_RE = re.compile(r"\bexport\s*\{([^}]*)\}")

TOKEN_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]{1,}")


def _unique(items: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(item for item in items if item))


def extract_dependencies(content: str) -> tuple[str, ...]:
    """Import-like targets in order of first appearance."""
    found: list[tuple[int, str]] = []
    for pattern in (ES_IMPORT_RE, CALL_IMPORT_RE, PY_FROM_IMPORT_RE):
        found.extend((m.start(1), m.group(1).strip()) for m in pattern.finditer(content))
    for m in PY_IMPORT_RE.finditer(content):
        for offset, name in enumerate(m.group(1).split(",")):
            found.append((m.start(1) + offset, name.split(" as ")[0].strip()))
    found.sort(key=lambda item: item[0])
    return _unique(name for _, name in found)


def extract_exports(content: str) -> tuple[str, ...]:
    """Exported symbol names in order of first appearance."""
    found: list[tuple[int, str]] = [(m.start(1), m.group(1)) for m in EXPORT_DECL_RE.finditer(content)]
    for m in EXPORT_LIST_RE.finditer(content):
        for offset, spec in enumerate(m.group(1).split(",")):
            # `a as b` exports b
            name = spec.split(" as ")[-1].strip()
            if name and name != "default":
                found.append((m.start(1) + offset, name))
    found.sort(key=lambda item: item[0])
    return _unique(name for _, name in found)


def tokenize(text: str) -> set[str]:
    return {token.lower() for token in TOKEN_RE.findall(text)}


class CodebaseIndex:
    """
    Indexed file records keyed by path.

    Re-indexing a path replaces the whole record (last write wins). Every
    mutation bumps `version`, which result caches use to spot stale entries.
    """

    def __init__(self, content_max_chars: int = DEFAULT_CONTENT_MAX_CHARS):
        self.content_max_chars = content_max_chars
        self._files: dict[str, IndexedFile] = {}
        self.version = 0

    def index_files(self, files: Iterable[SourceFile | Mapping[str, str]]) -> int:
        """
        Index files, replacing existing records with the same path.

        Returns:
            Number of files indexed
        """
        indexed = 0
        for file in files:
            source = file if isinstance(file, SourceFile) else SourceFile.model_validate(file)
            if not source.path.strip():
                logger.warning("Skipping file with empty path")
                continue

            self._files[source.path] = self.build_record(source)
            indexed += 1

        if indexed:
            self.version += 1
        logger.info(f"Indexed {indexed} files ({len(self._files)} total)")
        return indexed

    def build_record(self, source: SourceFile) -> IndexedFile:
        content = source.content or ""
        if len(content) > self.content_max_chars:
            logger.debug(f"Truncating {source.path} from {len(content)} to {self.content_max_chars} chars")
        # Extraction runs on the stored text so records stay self-consistent
        content = content[: self.content_max_chars]
        return IndexedFile(
            path=source.path,
            content=content,
            dependencies=extract_dependencies(content),
            exports=extract_exports(content),
        )

    def get(self, path: str) -> IndexedFile | None:
        return self._files.get(path)

    def remove(self, path: str) -> bool:
        removed = self._files.pop(path, None) is not None
        if removed:
            self.version += 1
        return removed

    def clear(self) -> None:
        self._files.clear()
        self.version += 1

    def entries(self) -> list[IndexedFile]:
        return list(self._files.values())

    def candidates(self, filters: QueryFilters) -> list[IndexedFile]:
        """Entries passing the filters, in indexing order."""
        return [entry for entry in self._files.values() if filters.matches(entry.path)]

    def rank_by_overlap(self, entries: list[IndexedFile], text: str, limit: int) -> list[IndexedFile]:
        """Keep the `limit` entries sharing the most tokens with `text`; ties keep indexing order."""
        if len(entries) <= limit:
            return entries
        query_tokens = tokenize(text)
        scored = [
            (len(query_tokens & tokenize(f"{entry.path} {' '.join(entry.exports)} {entry.content}")), position)
            for position, entry in enumerate(entries)
        ]
        keep = sorted(scored, key=lambda item: (-item[0], item[1]))[:limit]
        return [entries[position] for _, position in sorted(keep, key=lambda item: item[1])]

    @property
    def size(self) -> int:
        return len(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def __contains__(self, path: object) -> bool:
        return path in self._files

    def __iter__(self) -> Iterator[IndexedFile]:
        return iter(list(self._files.values()))
