"""
SQLite-backed persistence for wiki pages, citations and knowledge entries.

Pages hold one serialized FileRecord per scanned source file, keyed by
relative path.  Citations reference a page and are deleted with it.  The
knowledge table is read by the matcher; its own CRUD surface lives
elsewhere, so only a minimal upsert is provided here.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterable, Optional

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS wiki_pages (
    id          TEXT    PRIMARY KEY,
    path        TEXT    UNIQUE NOT NULL,
    type        TEXT    NOT NULL DEFAULT 'file',
    data        TEXT    NOT NULL,
    mtime       REAL,
    updated_at  TEXT    DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS wiki_citations (
    id            TEXT    PRIMARY KEY,
    page_id       TEXT    NOT NULL REFERENCES wiki_pages(id) ON DELETE CASCADE,
    knowledge_id  TEXT    NOT NULL,
    element_name  TEXT    NOT NULL,
    start_line    INTEGER NOT NULL DEFAULT 0,
    end_line      INTEGER NOT NULL DEFAULT 0,
    match_type    TEXT    NOT NULL,
    created_at    TEXT    DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS knowledge (
    id          TEXT    PRIMARY KEY,
    title       TEXT    NOT NULL,
    content     TEXT    NOT NULL,
    category    TEXT,
    tags        TEXT,
    citations   TEXT,
    confidence  REAL    DEFAULT 1.0,
    active      INTEGER DEFAULT 1,
    branch      TEXT    DEFAULT 'main',
    created_at  TEXT    DEFAULT (datetime('now')),
    updated_at  TEXT    DEFAULT (datetime('now'))
);

CREATE INDEX IF NOT EXISTS idx_citations_page   ON wiki_citations(page_id);
CREATE INDEX IF NOT EXISTS idx_pages_path       ON wiki_pages(path);
CREATE INDEX IF NOT EXISTS idx_knowledge_active ON knowledge(active, branch);
"""

# ---------------------------------------------------------------------------
# Ids
# ---------------------------------------------------------------------------

_id_lock = threading.Lock()
_last_ms = 0
_counter = 0


def generate_id(prefix: str) -> str:
    """
    Return a timestamp id ``PREFIX-YYYYMMDD-HHMMSSmmm``.

    Ids generated within the same millisecond get a ``-n`` counter suffix.
    """
    global _last_ms, _counter
    with _id_lock:
        now_ms = int(time.time() * 1000)
        if now_ms == _last_ms:
            _counter += 1
        else:
            _last_ms = now_ms
            _counter = 0
        counter = _counter
    stamp = time.strftime("%Y%m%d-%H%M%S", time.localtime(now_ms / 1000))
    suffix = f"-{counter}" if counter else ""
    return f"{prefix}-{stamp}{now_ms % 1000:03d}{suffix}"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

@dataclass
class PageRecord:
    """A stored page row."""
    id: str
    path: str
    data: str
    mtime: Optional[float]
    type: str = "file"


@dataclass
class CitationRecord:
    """A link from one knowledge entry to one code element in a page."""
    id: str
    page_id: str
    knowledge_id: str
    element_name: str
    start_line: int
    end_line: int
    match_type: str   # "tag" | "content" | "vector"


@dataclass
class CitationWithKnowledge(CitationRecord):
    """A citation joined with the cited entry's display metadata."""
    knowledge_title: str = ""
    knowledge_category: Optional[str] = None
    knowledge_confidence: Optional[float] = None


@dataclass
class KnowledgeEntry:
    """A knowledge entry as seen by the matcher."""
    id: str
    title: str
    content: str
    tags: list[str] = field(default_factory=list)


def _split_tags(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


class WikiStore:
    """
    Wiki persistence over a single SQLite database.

    Every public method opens its own connection; errors from SQLite
    propagate to the caller unchanged.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file.  Will be created if absent.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
        self._init_db()

    @property
    def db_path(self) -> str:
        return self._db_path

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _connect(self):
        """Yield a connected SQLite connection with WAL mode and foreign keys."""
        conn = sqlite3.connect(self._db_path, timeout=10)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.executescript(_SCHEMA)

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def load_pages(self) -> list[PageRecord]:
        """Return every file page."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, path, type, data, mtime FROM wiki_pages WHERE type = ?",
                ("file",),
            ).fetchall()
        return [
            PageRecord(id=r["id"], path=r["path"], data=r["data"], mtime=r["mtime"], type=r["type"])
            for r in rows
        ]

    def get_page_id(self, path: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT id FROM wiki_pages WHERE path = ?", (path,)).fetchone()
        return row["id"] if row is not None else None

    def upsert_page(
        self,
        path: str,
        data: str,
        mtime: float,
        page_id: Optional[str] = None,
    ) -> str:
        """
        Insert or update the page for *path* and return its id.

        Parameters
        ----------
        path:
            Relative file path (unique key).
        data:
            Serialized FileRecord.
        mtime:
            File modification time observed before the scan.
        page_id:
            Known id of an existing row; looked up by *path* when omitted.
        """
        with self._connect() as conn:
            if page_id is None:
                row = conn.execute("SELECT id FROM wiki_pages WHERE path = ?", (path,)).fetchone()
                page_id = row["id"] if row is not None else None
            if page_id is not None:
                conn.execute(
                    "UPDATE wiki_pages SET data = ?, mtime = ?, updated_at = datetime('now') "
                    "WHERE id = ?",
                    (data, mtime, page_id),
                )
                return page_id
            page_id = generate_id("WPAGE")
            conn.execute(
                "INSERT INTO wiki_pages (id, path, type, data, mtime, updated_at) "
                "VALUES (?, ?, 'file', ?, ?, datetime('now'))",
                (page_id, path, data, mtime),
            )
        return page_id

    def delete_page(self, page_id: str) -> None:
        """Delete a page and all of its citations."""
        with self._connect() as conn:
            conn.execute("DELETE FROM wiki_citations WHERE page_id = ?", (page_id,))
            conn.execute("DELETE FROM wiki_pages WHERE id = ?", (page_id,))

    # ------------------------------------------------------------------
    # Citations
    # ------------------------------------------------------------------

    def delete_citations_for_page(self, page_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM wiki_citations WHERE page_id = ?", (page_id,))

    def delete_all_citations(self) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM wiki_citations")

    def insert_citations(self, citations: Iterable[CitationRecord]) -> int:
        """Insert *citations* in one transaction and return how many were written."""
        rows = [
            (c.id, c.page_id, c.knowledge_id, c.element_name,
             c.start_line, c.end_line, c.match_type)
            for c in citations
        ]
        if not rows:
            return 0
        with self._connect() as conn:
            conn.executemany(
                "INSERT INTO wiki_citations "
                "(id, page_id, knowledge_id, element_name, start_line, end_line, match_type) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                rows,
            )
        return len(rows)

    def load_citations(self, page_id: Optional[str] = None) -> list[CitationRecord]:
        """Return stored citations, optionally only those of one page."""
        sql = (
            "SELECT id, page_id, knowledge_id, element_name, start_line, end_line, match_type "
            "FROM wiki_citations"
        )
        args: tuple = ()
        if page_id is not None:
            sql += " WHERE page_id = ?"
            args = (page_id,)
        with self._connect() as conn:
            rows = conn.execute(sql + " ORDER BY page_id, start_line, id", args).fetchall()
        return [
            CitationRecord(
                id=r["id"],
                page_id=r["page_id"],
                knowledge_id=r["knowledge_id"],
                element_name=r["element_name"],
                start_line=r["start_line"],
                end_line=r["end_line"],
                match_type=r["match_type"],
            )
            for r in rows
        ]

    def cited_elements(self) -> list[tuple[str, str]]:
        """Return the distinct ``(page_id, element_name)`` pairs that have citations."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT DISTINCT page_id, element_name FROM wiki_citations"
            ).fetchall()
        return [(r["page_id"], r["element_name"]) for r in rows]

    def citations_for_path(self, path: str) -> list[CitationWithKnowledge]:
        """Return the citations of the page at *path*, ordered by start line."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT wc.id, wc.page_id, wc.knowledge_id, wc.element_name,
                       wc.start_line, wc.end_line, wc.match_type,
                       k.title AS knowledge_title,
                       k.category AS knowledge_category,
                       k.confidence AS knowledge_confidence
                FROM wiki_citations wc
                JOIN wiki_pages wp ON wp.id = wc.page_id
                JOIN knowledge k ON k.id = wc.knowledge_id
                WHERE wp.path = ?
                ORDER BY wc.start_line ASC, wc.id ASC
                """,
                (path,),
            ).fetchall()
        return [
            CitationWithKnowledge(
                id=r["id"],
                page_id=r["page_id"],
                knowledge_id=r["knowledge_id"],
                element_name=r["element_name"],
                start_line=r["start_line"],
                end_line=r["end_line"],
                match_type=r["match_type"],
                knowledge_title=r["knowledge_title"],
                knowledge_category=r["knowledge_category"],
                knowledge_confidence=r["knowledge_confidence"],
            )
            for r in rows
        ]

    # ------------------------------------------------------------------
    # Knowledge
    # ------------------------------------------------------------------

    def load_active_knowledge(self, branch: str = "main") -> list[KnowledgeEntry]:
        """Return every active entry on *branch*."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, title, content, tags FROM knowledge "
                "WHERE active = 1 AND branch = ? ORDER BY id",
                (branch,),
            ).fetchall()
        return [
            KnowledgeEntry(
                id=r["id"],
                title=r["title"],
                content=r["content"],
                tags=_split_tags(r["tags"]),
            )
            for r in rows
        ]

    def load_knowledge_citations(self, branch: str = "main") -> list[dict]:
        """
        Return active entries on *branch* that carry authored citations.

        Each dict has ``id``, ``title``, ``category``, ``confidence`` and the
        raw ``citations`` JSON string.
        """
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id, title, category, confidence, citations FROM knowledge "
                "WHERE active = 1 AND branch = ? AND citations IS NOT NULL AND citations != '' "
                "ORDER BY id",
                (branch,),
            ).fetchall()
        return [dict(r) for r in rows]

    def upsert_knowledge(
        self,
        id: str,
        title: str,
        content: str,
        tags: Optional[list[str]] = None,
        category: Optional[str] = None,
        confidence: float = 1.0,
        active: bool = True,
        branch: str = "main",
        citations: Optional[list[dict]] = None,
    ) -> None:
        """Insert or replace one knowledge entry."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO knowledge
                    (id, title, content, category, tags, citations, confidence, active, branch)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    title      = excluded.title,
                    content    = excluded.content,
                    category   = excluded.category,
                    tags       = excluded.tags,
                    citations  = excluded.citations,
                    confidence = excluded.confidence,
                    active     = excluded.active,
                    branch     = excluded.branch,
                    updated_at = datetime('now')
                """,
                (
                    id, title, content, category,
                    ",".join(tags or []),
                    json.dumps(citations) if citations is not None else None,
                    confidence, 1 if active else 0, branch,
                ),
            )

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def stats(self) -> dict:
        """
        Return row counts.

        Returns
        -------
        dict
            Keys: page_count, citation_count, knowledge_count, last_indexed.
        """
        with self._connect() as conn:
            page_count = conn.execute("SELECT COUNT(*) FROM wiki_pages").fetchone()[0]
            citation_count = conn.execute("SELECT COUNT(*) FROM wiki_citations").fetchone()[0]
            knowledge_count = conn.execute(
                "SELECT COUNT(*) FROM knowledge WHERE active = 1"
            ).fetchone()[0]
            last_indexed = conn.execute("SELECT MAX(updated_at) FROM wiki_pages").fetchone()[0]
        return {
            "page_count": page_count,
            "citation_count": citation_count,
            "knowledge_count": knowledge_count,
            "last_indexed": last_indexed,
        }
