"""
Knowledge-to-code matching.

Three tiers, cheapest first, stopping at the first that cites anything:
  1. tag     : an entry tag equals the element name (case-insensitive)
  2. content : enough of the element name's tokens occur in the entry
  3. vector  : the element summary's embedding is close to the entry's

Only functions, classes and class methods are citeable.  Variable and
interface names are too generic and would flood the index with false
positives.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from .store import CitationRecord, KnowledgeEntry, generate_id

if TYPE_CHECKING:
    from .parser import ClassRecord, FileRecord, FunctionRecord
    from .vector_store import KnowledgeVectorStore

logger = logging.getLogger(__name__)

CONTENT_THRESHOLD = 0.30
VECTOR_MIN_SCORE = 0.45
VECTOR_LIMIT = 3
MIN_TOKEN_LENGTH = 4

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def tokenize(text: str) -> set[str]:
    """Lowercase, split on non-alphanumerics, keep tokens longer than three characters."""
    return {t for t in _NON_ALNUM.split(text.lower()) if len(t) >= MIN_TOKEN_LENGTH}


def build_element_summary(
    file: "FileRecord",
    element: Union["FunctionRecord", "ClassRecord"],
) -> str:
    """
    Describe a code element in one line for embedding.

    ``function computeTotal(a, b) in src/billing.ts`` or
    ``class Invoice in src/billing.ts``.
    """
    if hasattr(element, "methods"):
        return f"class {element.name} in {file.relative_path}"
    params = ", ".join(element.params)
    return f"{element.kind} {element.name}({params}) in {file.relative_path}"


@dataclass
class _Element:
    name: str
    line: int
    end_line: int
    source: object


def _citeable_elements(file: "FileRecord") -> list[_Element]:
    elements = [_Element(f.name, f.line, f.end_line, f) for f in file.functions]
    for cls in file.classes:
        elements.append(_Element(cls.name, cls.line, cls.end_line, cls))
        elements.extend(_Element(m.name, m.line, m.end_line, m) for m in cls.methods)
    return elements


class Matcher:
    """
    Produces citations for scanned files against a knowledge snapshot.

    Parameters
    ----------
    embedder:
        Object with ``embed(text) -> list[float]``; the vector tier is
        skipped when None.
    vector_store:
        Knowledge vector store searched by the vector tier.
    content_threshold:
        Minimum fraction of element-name tokens found in an entry.
    vector_min_score / vector_limit:
        Vector tier cut-off and top-K.
    """

    def __init__(
        self,
        embedder=None,
        vector_store: Optional["KnowledgeVectorStore"] = None,
        content_threshold: float = CONTENT_THRESHOLD,
        vector_min_score: float = VECTOR_MIN_SCORE,
        vector_limit: int = VECTOR_LIMIT,
    ) -> None:
        self.embedder = embedder
        self.vector_store = vector_store
        self.content_threshold = content_threshold
        self.vector_min_score = vector_min_score
        self.vector_limit = vector_limit

    @property
    def vector_enabled(self) -> bool:
        return self.embedder is not None and self.vector_store is not None

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    @staticmethod
    def tag_match(name: str, entries: list[KnowledgeEntry]) -> list[KnowledgeEntry]:
        lowered = name.lower()
        return [e for e in entries if any(t.lower() == lowered for t in e.tags)]

    def content_match(
        self,
        name: str,
        entries: list[KnowledgeEntry],
        token_cache: dict[str, set[str]],
    ) -> list[KnowledgeEntry]:
        name_tokens = tokenize(name)
        if not name_tokens:
            return []
        matches = []
        for entry in entries:
            tokens = token_cache.get(entry.id)
            if tokens is None:
                tokens = tokenize(f"{entry.title} {entry.content}")
                token_cache[entry.id] = tokens
            overlap = len(name_tokens & tokens)
            if overlap / len(name_tokens) >= self.content_threshold:
                matches.append(entry)
        return matches

    def vector_match(self, summary: str, active_ids: set[str]) -> list[str]:
        """Return knowledge ids close to *summary*; raises on collaborator failure."""
        vector = self.embedder.embed(summary)
        results = self.vector_store.search(
            vector,
            limit=self.vector_limit,
            min_score=self.vector_min_score,
            ids=active_ids,
        )
        return [r["id"] for r in results if r["score"] >= self.vector_min_score]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def match_file(
        self,
        file: "FileRecord",
        page_id: str,
        entries: list[KnowledgeEntry],
        token_cache: Optional[dict[str, set[str]]] = None,
        use_vector: bool = True,
    ) -> list[CitationRecord]:
        """Cite every citeable element of *file* against *entries*."""
        token_cache = token_cache if token_cache is not None else {}
        citations: list[CitationRecord] = []
        if not entries:
            return citations
        active_ids = {e.id for e in entries}

        def cite(element: _Element, knowledge_id: str, match_type: str) -> None:
            citations.append(CitationRecord(
                id=generate_id("WCITE"),
                page_id=page_id,
                knowledge_id=knowledge_id,
                element_name=element.name,
                start_line=element.line,
                end_line=element.end_line,
                match_type=match_type,
            ))

        for element in _citeable_elements(file):
            tagged = self.tag_match(element.name, entries)
            if tagged:
                for entry in tagged:
                    cite(element, entry.id, "tag")
                continue

            related = self.content_match(element.name, entries, token_cache)
            if related:
                for entry in related:
                    cite(element, entry.id, "content")
                continue

            if not (use_vector and self.vector_enabled):
                continue
            summary = build_element_summary(file, element.source)
            try:
                knowledge_ids = self.vector_match(summary, active_ids)
            except Exception as exc:
                logger.debug("Vector match failed for %r: %s", summary, exc)
                continue
            for knowledge_id in knowledge_ids:
                cite(element, knowledge_id, "vector")

        return citations

    def match(
        self,
        files: list["FileRecord"],
        entries: list[KnowledgeEntry],
        page_ids: dict[str, str],
        use_vector: bool = True,
    ) -> list[CitationRecord]:
        """
        Cite every file in *files* that has a page id.

        Parameters
        ----------
        files:
            Scanned files to match.
        entries:
            Active mainline knowledge entries.
        page_ids:
            Relative path → page id.
        use_vector:
            False skips the vector tier for this call.
        """
        if not entries:
            return []
        token_cache: dict[str, set[str]] = {}
        citations: list[CitationRecord] = []
        for file in files:
            page_id = page_ids.get(file.relative_path)
            if page_id is None:
                continue
            citations.extend(self.match_file(file, page_id, entries, token_cache, use_vector))
        return citations
