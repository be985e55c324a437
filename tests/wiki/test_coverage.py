"""
Unit tests for code_wiki.wiki.coverage
"""

from __future__ import annotations

import pytest


@pytest.fixture()
def store(tmp_path):
    from code_wiki.wiki.store import WikiStore
    return WikiStore(str(tmp_path / "wiki.db"))


def _page(store, path, n_functions, n_classes, methods_per_class=0):
    from code_wiki.wiki.parser import ClassRecord, FileRecord, FunctionRecord
    record = FileRecord(
        path="/p/" + path, relative_path=path, language="typescript", lines=10,
        functions=[FunctionRecord(f"f{i}", i + 1, i + 1) for i in range(n_functions)],
        classes=[
            ClassRecord(f"C{i}", 1, 5, methods=[
                FunctionRecord(f"m{j}", 2, 3, kind="method") for j in range(methods_per_class)
            ])
            for i in range(n_classes)
        ],
    )
    return store.upsert_page(path, record.to_json(), 1.0)


def _cite(store, page_id, name, knowledge_id="K1", line=1):
    from code_wiki.wiki.store import CitationRecord, generate_id
    store.insert_citations([CitationRecord(
        generate_id("WCITE"), page_id, knowledge_id, name, line, line, "tag",
    )])


class TestCoverageStats:
    def test_empty(self, store):
        from code_wiki.wiki.coverage import CoverageStats, get_coverage_stats
        assert get_coverage_stats(store) == CoverageStats(0, 0, 0, 0, 0)

    def test_counts_functions_and_classes_not_methods(self, store):
        from code_wiki.wiki.coverage import get_coverage_stats
        _page(store, "a.ts", 3, 1, methods_per_class=4)
        stats = get_coverage_stats(store)
        assert stats.total_elements == 4
        assert stats.coverage_percent == 0

    def test_distinct_pairs_and_rounding(self, store):
        from code_wiki.wiki.coverage import get_coverage_stats
        a = _page(store, "a.ts", 2, 1)
        _page(store, "b.ts", 3, 0)
        _cite(store, a, "f0", "K1")
        _cite(store, a, "f0", "K2")
        _cite(store, a, "C0", "K1")
        stats = get_coverage_stats(store)
        assert stats.total_files == 2
        assert stats.covered_files == 1
        assert stats.total_elements == 6
        assert stats.covered_elements == 2
        assert stats.coverage_percent == 33

    def test_malformed_payload_skipped(self, store):
        from code_wiki.wiki.coverage import get_coverage_stats
        _page(store, "a.ts", 2, 0)
        store.upsert_page("bad.ts", "{oops", 1.0)
        stats = get_coverage_stats(store)
        assert stats.total_files == 2
        assert stats.total_elements == 2


class TestCitationsForFile:
    def test_ordered_with_metadata(self, store):
        from code_wiki.wiki.coverage import get_citations_for_file
        store.upsert_knowledge("K1", "Totals", "...", category="pattern", confidence=0.9)
        a = _page(store, "a.ts", 3, 0)
        _cite(store, a, "f2", line=30)
        _cite(store, a, "f0", line=3)
        rows = get_citations_for_file(store, "a.ts")
        assert [r.element_name for r in rows] == ["f0", "f2"]
        assert rows[0].knowledge_title == "Totals"
        assert rows[0].knowledge_category == "pattern"

    def test_unknown_path(self, store):
        from code_wiki.wiki.coverage import get_citations_for_file
        assert get_citations_for_file(store, "nope.ts") == []
