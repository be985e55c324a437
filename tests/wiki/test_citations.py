"""
Unit tests for code_wiki.wiki.citations
"""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest


@pytest.fixture()
def root(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "billing.ts").write_text(
        "\n  export function computeTotal() {}\n\n", encoding="utf-8"
    )
    return tmp_path


class TestContentHash:
    def test_trimmed_sha256_prefix(self):
        from code_wiki.wiki.citations import compute_content_hash
        # sha256("abc")
        assert compute_content_hash("  abc\n") == "ba7816bf8f01cfea"

    def test_whitespace_only_differences_ignored(self):
        from code_wiki.wiki.citations import compute_content_hash
        assert compute_content_hash("x = 1\n") == compute_content_hash("\n\nx = 1")
        assert len(compute_content_hash("")) == 16


class TestValidateCitation:
    def _hash(self):
        from code_wiki.wiki.citations import compute_content_hash
        return compute_content_hash("export function computeTotal() {}")

    def test_valid(self, root):
        from code_wiki.wiki.citations import Citation, validate_citation
        result = validate_citation(Citation("src/billing.ts", self._hash()), str(root), {})
        assert result.status == "valid"
        assert result.current_file_hash == self._hash()

    def test_line_suffix_is_stripped(self, root):
        from code_wiki.wiki.citations import Citation, validate_citation
        result = validate_citation(Citation("src/billing.ts:2", self._hash()), str(root), {})
        assert result.status == "valid"
        assert result.path == "src/billing.ts:2"

    def test_changed(self, root):
        from code_wiki.wiki.citations import Citation, validate_citation
        result = validate_citation(Citation("src/billing.ts", "0000000000000000"), str(root), {})
        assert result.status == "changed"
        assert result.current_file_hash == self._hash()

    def test_missing(self, root):
        from code_wiki.wiki.citations import Citation, validate_citation
        cache: dict = {}
        result = validate_citation(Citation("src/gone.ts:10", "abc"), str(root), cache)
        assert result.status == "missing"
        assert result.current_file_hash is None
        assert cache == {"src/gone.ts": None}

    def test_non_utf8_file_is_changed_not_missing(self, root):
        from code_wiki.wiki.citations import Citation, compute_content_hash, validate_citation
        raw = b"# caf\xe9\ndef f():\n    pass\n"
        (root / "legacy.py").write_bytes(raw)
        expected = compute_content_hash(raw.decode("utf-8", errors="replace"))

        result = validate_citation(Citation("legacy.py:2", "0000000000000000"), str(root), {})
        assert result.status == "changed"
        assert result.current_file_hash == expected

        result = validate_citation(Citation("legacy.py", expected), str(root), {})
        assert result.status == "valid"

    def test_cache_avoids_rereading(self, root):
        from code_wiki.wiki import citations as mod
        cache: dict = {}
        with patch.object(mod, "_file_hash", wraps=mod._file_hash) as spy:
            mod.validate_citation(mod.Citation("src/billing.ts:1", "x"), str(root), cache)
            mod.validate_citation(mod.Citation("src/billing.ts:9", "x"), str(root), cache)
        assert spy.call_count == 1

    def test_from_dict_accepts_both_spellings(self):
        from code_wiki.wiki.citations import Citation
        assert Citation.from_dict({"path": "a", "fileHash": "h"}).file_hash == "h"
        assert Citation.from_dict({"path": "a", "file_hash": "h"}).file_hash == "h"


class TestKnowledgeHealth:
    def test_groups_entries(self, root):
        from code_wiki.wiki.citations import check_knowledge_health, compute_content_hash
        good = compute_content_hash("export function computeTotal() {}")
        rows = [
            {"id": "K1", "title": "ok", "citations": json.dumps([
                {"path": "src/billing.ts", "file_hash": good}])},
            {"id": "K2", "title": "stale", "citations": json.dumps([
                {"path": "src/billing.ts:1", "file_hash": "deadbeefdeadbeef"}])},
            {"id": "K3", "title": "gone", "citations": json.dumps([
                {"path": "src/billing.ts", "file_hash": "deadbeefdeadbeef"},
                {"path": "src/removed.ts", "file_hash": good}])},
            {"id": "K4", "title": "broken", "citations": "{not json"},
            {"id": "K5", "title": "wrong shape", "citations": json.dumps([{"nopath": 1}])},
        ]
        health = check_knowledge_health(rows, str(root))
        assert health.checked == 3
        assert [e.id for e in health.changed] == ["K2"]
        assert [e.id for e in health.missing] == ["K3"]
        assert health.healthy is False

    def test_reads_from_store(self, root, tmp_path):
        from code_wiki.wiki.citations import check_knowledge_health, compute_content_hash
        from code_wiki.wiki.store import WikiStore
        store = WikiStore(str(tmp_path / "wiki.db"))
        store.upsert_knowledge("K1", "Totals", "...", citations=[
            {"path": "src/billing.ts:2",
             "fileHash": compute_content_hash("export function computeTotal() {}")},
        ])
        health = check_knowledge_health(store.load_knowledge_citations(), str(root))
        assert health.checked == 1
        assert health.healthy is True
