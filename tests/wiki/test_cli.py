"""
Tests for the `code-wiki` command line, run in-process against a temporary
project.  Vector matching is switched off through the environment.
"""

from __future__ import annotations

import json
import os
import sqlite3
from unittest.mock import patch

import pytest


@pytest.fixture()
def project(tmp_path, monkeypatch):
    monkeypatch.setenv("CODEWIKI_VECTOR_ENABLED", "false")
    monkeypatch.delenv("CODEWIKI_DB_PATH", raising=False)
    (tmp_path / "billing.py").write_text("def compute_total(a, b):\n    return a + b\n",
                                         encoding="utf-8")
    return tmp_path


def _seed(project):
    from code_wiki.wiki.citations import compute_content_hash
    from code_wiki.wiki.store import WikiStore
    store = WikiStore(str(project / ".codewiki" / "wiki.db"))
    store.upsert_knowledge(
        "K1", "Totals", "How totals are computed", tags=["compute_total"], category="pattern",
        citations=[{"path": "billing.py:1", "file_hash": compute_content_hash(
            (project / "billing.py").read_text(encoding="utf-8"))}],
    )
    return store


def _run(project, *argv):
    from code_wiki.wiki.cli import main
    main(["--root", str(project), *argv])


class TestParser:
    def test_command_required(self):
        from code_wiki.wiki.cli import _build_parser
        with pytest.raises(SystemExit):
            _build_parser().parse_args([])

    def test_index_flags(self):
        from code_wiki.wiki.cli import _build_parser
        args = _build_parser().parse_args(["index", "--full"])
        assert args.full is True
        assert _build_parser().parse_args(["index"]).full is False


class TestCommands:
    def test_index_then_coverage_and_citations(self, project, capsys):
        pytest.importorskip("tree_sitter_python")
        pytest.importorskip("tqdm")
        _seed(project)

        _run(project, "index", "--full")
        out = capsys.readouterr().out
        assert "Files:     1" in out
        assert "Citations: 1" in out

        _run(project, "coverage", "--json")
        stats = json.loads(capsys.readouterr().out)
        assert stats == {"total_files": 1, "covered_files": 1, "total_elements": 1,
                         "covered_elements": 1, "coverage_percent": 100}

        _run(project, "citations", "billing.py")
        out = capsys.readouterr().out
        assert "compute_total" in out
        assert "Totals" in out

        _run(project, "index")
        assert "Skipped:   1" in capsys.readouterr().out

    def test_validate_ok(self, project, capsys):
        _seed(project)
        _run(project, "validate")
        assert "All citations valid." in capsys.readouterr().out

    def test_validate_missing_exits_nonzero(self, project, capsys):
        _seed(project)
        (project / "billing.py").unlink()
        with pytest.raises(SystemExit) as exc:
            _run(project, "validate", "--json")
        assert exc.value.code == 1
        report = json.loads(capsys.readouterr().out)
        assert [e["id"] for e in report["missing"]] == ["K1"]

    def test_validate_skips_other_branches(self, project, capsys):
        store = _seed(project)
        store.upsert_knowledge("K2", "Draft", "...", branch="feature-x",
                               citations=[{"path": "gone.py", "file_hash": "abc"}])
        _run(project, "validate", "--json")
        report = json.loads(capsys.readouterr().out)
        assert report["checked"] == 1
        assert report["missing"] == []

    def test_validate_non_utf8_file_is_not_missing(self, project, capsys):
        store = _seed(project)
        (project / "legacy.py").write_bytes(b"# caf\xe9\ndef f():\n    pass\n")
        store.upsert_knowledge("K2", "Legacy", "...",
                               citations=[{"path": "legacy.py:2", "file_hash": "0000000000000000"}])
        _run(project, "validate", "--json")
        report = json.loads(capsys.readouterr().out)
        assert [e["id"] for e in report["changed"]] == ["K2"]
        assert report["missing"] == []

    def test_status(self, project, capsys):
        _seed(project)
        _run(project, "status")
        assert "knowledge_count" in capsys.readouterr().out

    def test_index_store_failure_exits_nonzero(self, project, capsys):
        pytest.importorskip("tqdm")
        with patch("code_wiki.wiki.indexer.WikiIndexer.reindex_incremental",
                   side_effect=sqlite3.OperationalError("database is locked")):
            with pytest.raises(SystemExit) as exc:
                _run(project, "index")
        assert exc.value.code == 1
        assert "database is locked" in capsys.readouterr().err
