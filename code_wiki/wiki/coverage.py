"""
Coverage over persisted pages and citations.

An element counts as covered when at least one citation names it.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .store import CitationWithKnowledge, WikiStore

logger = logging.getLogger(__name__)


@dataclass
class CoverageStats:
    total_files: int
    covered_files: int
    total_elements: int
    covered_elements: int
    coverage_percent: int


def get_coverage_stats(store: "WikiStore") -> CoverageStats:
    """
    Aggregate file and element coverage.

    ``total_elements`` counts top-level functions plus classes; methods are
    part of their class here.  Pages whose payload does not parse contribute
    to ``total_files`` but no elements.
    """
    pages = store.load_pages()
    total_elements = 0
    for page in pages:
        try:
            data = json.loads(page.data)
            total_elements += len(data.get("functions", [])) + len(data.get("classes", []))
        except (json.JSONDecodeError, TypeError, AttributeError) as exc:
            logger.debug("Skipping malformed page data for %s: %s", page.path, exc)

    cited = set(store.cited_elements())
    covered_files = len({page_id for page_id, _ in cited})
    covered_elements = len(cited)
    percent = round(covered_elements / total_elements * 100) if total_elements else 0

    return CoverageStats(
        total_files=len(pages),
        covered_files=covered_files,
        total_elements=total_elements,
        covered_elements=covered_elements,
        coverage_percent=percent,
    )


def get_citations_for_file(store: "WikiStore", path: str) -> list["CitationWithKnowledge"]:
    """Citations on the page at relative *path*, with knowledge metadata, by start line."""
    return store.citations_for_path(path)
