"""
Indexer: orchestrates full and incremental wiki indexing.

Full index:
  1. Drop the scan cache, walk the project, scan every supported file
  2. Upsert one page per file; delete pages whose files are gone
  3. Match every file against active knowledge, replace all citations

Incremental index:
  1. Diff current mtimes against stored pages (unchanged / changed / deleted)
  2. Delete pages and citations of deleted files
  3. Re-scan and upsert only changed files, re-match only their citations
  4. Refresh the scan cache with the merged result

Neither run is transactional: a store error aborts the run and leaves the
writes already made in place.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from .parser import FileEntry, FileRecord, ScanResult

if TYPE_CHECKING:
    from .cache import ScanCache
    from .matcher import Matcher
    from .parser import Scanner
    from .store import KnowledgeEntry, PageRecord, WikiStore

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]


@dataclass
class IndexStats:
    """Summary of one indexing run."""
    total_citations: int
    total_files: int
    duration_ms: int


@dataclass
class IncrementalIndexStats(IndexStats):
    skipped_files: int = 0


@dataclass
class _Diff:
    unchanged: list[FileRecord]
    changed: list[FileEntry]
    deleted: list["PageRecord"]


class WikiIndexer:
    """
    Keeps persisted pages and citations in step with the project on disk.

    Parameters
    ----------
    project_root:
        Directory to index.
    store:
        Page, citation and knowledge persistence.
    scanner:
        Scanner used for every file; its cache (if any) is refreshed.
    matcher:
        Citation matcher.
    knowledge_branch:
        Branch whose active entries are matched.
    """

    def __init__(
        self,
        project_root: str,
        store: "WikiStore",
        scanner: "Scanner",
        matcher: "Matcher",
        knowledge_branch: str = "main",
    ) -> None:
        self.project_root = os.path.abspath(project_root)
        self.store = store
        self.scanner = scanner
        self.matcher = matcher
        self.knowledge_branch = knowledge_branch

    @property
    def cache(self) -> Optional["ScanCache"]:
        return self.scanner.cache

    # ------------------------------------------------------------------
    # Full index
    # ------------------------------------------------------------------

    def reindex_full(
        self,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> IndexStats:
        """
        Re-scan and re-match every file unconditionally.

        Parameters
        ----------
        progress_callback:
            Optional callable called with (current, total, relative_path) for
            each file.
        """
        start = time.monotonic()
        if self.cache is not None:
            self.cache.invalidate_all()

        entries = self.scanner.collect_files(self.project_root)
        stored = {page.path: page.id for page in self.store.load_pages()}

        files: list[FileRecord] = []
        page_ids: dict[str, str] = {}
        total = len(entries)
        for idx, entry in enumerate(entries):
            if progress_callback:
                progress_callback(idx + 1, total, entry.relative_path)
            record = self.scanner.scan(entry.absolute_path, self.project_root)
            if record is None:
                continue
            files.append(record)
            page_ids[record.relative_path] = self.store.upsert_page(
                record.relative_path, record.to_json(), entry.mtime,
                stored.get(record.relative_path),
            )

        for path, page_id in stored.items():
            if path not in page_ids:
                logger.debug("Removing page for vanished file %s", path)
                self.store.delete_page(page_id)

        entries, use_vector = self._load_knowledge()
        citations = self.matcher.match(files, entries, page_ids, use_vector=use_vector)
        self.store.delete_all_citations()
        self.store.insert_citations(citations)

        self._refresh_cache(files, entries)
        stats = IndexStats(
            total_citations=len(citations),
            total_files=len(files),
            duration_ms=int((time.monotonic() - start) * 1000),
        )
        logger.info(
            "Full wiki index complete: %d files, %d citations in %dms",
            stats.total_files, stats.total_citations, stats.duration_ms,
        )
        return stats

    # ------------------------------------------------------------------
    # Incremental index
    # ------------------------------------------------------------------

    def reindex_incremental(
        self,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> IncrementalIndexStats:
        """
        Re-scan and re-match only files whose mtime changed since the last run.

        ``skipped_files`` counts the files loaded from their stored pages.
        """
        start = time.monotonic()

        current = self.scanner.collect_files(self.project_root)
        stored = {page.path: page for page in self.store.load_pages()}
        diff = self._diff(current, stored)

        for page in diff.deleted:
            logger.debug("Removing page for deleted file %s", page.path)
            self.store.delete_page(page.id)

        page_ids = {f.relative_path: stored[f.relative_path].id for f in diff.unchanged}
        fresh: list[FileRecord] = []
        total = len(diff.changed)
        for idx, entry in enumerate(diff.changed):
            if progress_callback:
                progress_callback(idx + 1, total, entry.relative_path)
            existing = stored.get(entry.relative_path)
            record = self.scanner.scan(entry.absolute_path, self.project_root)
            if record is None:
                if existing is not None:
                    self.store.delete_page(existing.id)
                continue
            fresh.append(record)
            page_ids[record.relative_path] = self.store.upsert_page(
                record.relative_path, record.to_json(), entry.mtime,
                existing.id if existing is not None else None,
            )

        new_citations = []
        if fresh:
            for record in fresh:
                self.store.delete_citations_for_page(page_ids[record.relative_path])
            entries, use_vector = self._load_knowledge()
            new_citations = self.matcher.match(fresh, entries, page_ids, use_vector=use_vector)
            self.store.insert_citations(new_citations)

        merged = diff.unchanged + fresh
        self._refresh_cache(merged, current)
        stats = IncrementalIndexStats(
            total_citations=len(new_citations),
            total_files=len(merged),
            duration_ms=int((time.monotonic() - start) * 1000),
            skipped_files=len(diff.unchanged),
        )
        logger.info(
            "Incremental wiki index complete: %d files (%d skipped, %d rescanned, "
            "%d deleted), %d new citations in %dms",
            stats.total_files, stats.skipped_files, len(fresh), len(diff.deleted),
            stats.total_citations, stats.duration_ms,
        )
        return stats

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _diff(current: list[FileEntry], stored: dict[str, "PageRecord"]) -> _Diff:
        unchanged: list[FileRecord] = []
        changed: list[FileEntry] = []
        for entry in current:
            page = stored.get(entry.relative_path)
            if page is None or page.mtime is None or page.mtime != entry.mtime:
                changed.append(entry)
                continue
            try:
                unchanged.append(FileRecord.from_json(page.data))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as exc:
                logger.debug("Malformed page data for %s, rescanning: %s", page.path, exc)
                changed.append(entry)

        present = {entry.relative_path for entry in current}
        deleted = [page for path, page in stored.items() if path not in present]
        return _Diff(unchanged=unchanged, changed=changed, deleted=deleted)

    def _load_knowledge(self) -> tuple[list["KnowledgeEntry"], bool]:
        """
        Load active entries and sync their vectors.

        The flag is False when the sync failed: the embedding service is
        then assumed down and the vector tier is skipped for the run.
        """
        entries = self.store.load_active_knowledge(self.knowledge_branch)
        if entries and self.matcher.vector_enabled:
            try:
                result = self.matcher.vector_store.sync(entries, self.matcher.embedder)
                logger.debug("Knowledge vectors synced: %s", result)
            except RuntimeError as exc:
                logger.warning("Knowledge vector sync failed, skipping vector matching: %s", exc)
                return entries, False
        return entries, True

    def _refresh_cache(self, files: list[FileRecord], entries: list[FileEntry]) -> None:
        if self.cache is None:
            return
        self.cache.set(
            self.project_root,
            ScanResult.build(self.project_root, files),
            {entry.absolute_path: entry.mtime for entry in entries},
        )
