"""
SQLite-backed vector store for knowledge-entry embeddings.

Stores one vector per knowledge entry in SQLite and computes cosine
similarity with numpy.  Zero-config: no external vector service.
"""

from __future__ import annotations

import hashlib
import json
import logging
import sqlite3
import threading
from typing import TYPE_CHECKING, Iterable, Optional

import numpy as np

if TYPE_CHECKING:
    from .store import KnowledgeEntry

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS knowledge_vectors (
    knowledge_id  TEXT PRIMARY KEY,
    content_hash  TEXT NOT NULL,
    vector        BLOB NOT NULL,
    payload       TEXT NOT NULL DEFAULT '{}'
);
"""


def _vec_to_bytes(vec: list[float]) -> bytes:
    return np.asarray(vec, dtype=np.float32).tobytes()


def _cosine_similarity_batch(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Compute cosine similarity between *query* (1-D) and each row of *matrix*."""
    query_norm = np.linalg.norm(query)
    if query_norm == 0:
        return np.zeros(matrix.shape[0])
    row_norms = np.linalg.norm(matrix, axis=1)
    row_norms[row_norms == 0] = 1.0
    return (matrix @ query) / (row_norms * query_norm)


def _entry_hash(entry: "KnowledgeEntry") -> str:
    return hashlib.sha256(f"{entry.title}\n{entry.content}".encode("utf-8")).hexdigest()[:16]


class KnowledgeVectorStore:
    """
    Knowledge embeddings in SQLite, searched by cosine similarity.

    Parameters
    ----------
    db_path:
        SQLite database path; may be the same file as the wiki store.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._lock = threading.Lock()
        self._conn: Optional[sqlite3.Connection] = None
        conn = self._get_conn()
        conn.executescript(_CREATE_TABLE)
        conn.commit()

    def _get_conn(self) -> sqlite3.Connection:
        if self._conn is None:
            self._conn = sqlite3.connect(self._db_path, check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
        return self._conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def upsert(self, points: list[tuple[str, str, list[float], dict]]) -> None:
        """Upsert ``(knowledge_id, content_hash, vector, payload)`` points."""
        if not points:
            return
        with self._lock:
            conn = self._get_conn()
            conn.executemany(
                "INSERT OR REPLACE INTO knowledge_vectors "
                "(knowledge_id, content_hash, vector, payload) VALUES (?, ?, ?, ?)",
                [
                    (kid, chash, _vec_to_bytes(vec), json.dumps(payload, default=str))
                    for kid, chash, vec, payload in points
                ],
            )
            conn.commit()
        logger.debug("[KnowledgeVectorStore] Upserted %d points", len(points))

    def delete(self, knowledge_ids: Iterable[str]) -> None:
        ids = list(knowledge_ids)
        if not ids:
            return
        placeholders = ",".join("?" for _ in ids)
        with self._lock:
            conn = self._get_conn()
            conn.execute(
                f"DELETE FROM knowledge_vectors WHERE knowledge_id IN ({placeholders})", ids
            )
            conn.commit()

    def sync(self, entries: list["KnowledgeEntry"], embedder) -> dict:
        """
        Embed entries that are new or whose title/content changed, and drop
        vectors for entries no longer present.

        Returns
        -------
        dict
            Keys: embedded, skipped, removed.
        """
        with self._lock:
            rows = self._get_conn().execute(
                "SELECT knowledge_id, content_hash FROM knowledge_vectors"
            ).fetchall()
        stored = {kid: chash for kid, chash in rows}

        pending = [e for e in entries if stored.get(e.id) != _entry_hash(e)]
        if pending:
            vectors = embedder.embed_many([f"{e.title}\n{e.content}" for e in pending])
            self.upsert([
                (e.id, _entry_hash(e), vec, {"title": e.title, "tags": e.tags})
                for e, vec in zip(pending, vectors)
            ])

        live = {e.id for e in entries}
        removed = [kid for kid in stored if kid not in live]
        self.delete(removed)
        return {
            "embedded": len(pending),
            "skipped": len(entries) - len(pending),
            "removed": len(removed),
        }

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(
        self,
        query_vector: list[float],
        limit: int = 3,
        min_score: float = 0.0,
        ids: Optional[set[str]] = None,
    ) -> list[dict]:
        """
        Cosine-similarity search over stored knowledge vectors.

        Parameters
        ----------
        query_vector:
            The query embedding.
        limit:
            Maximum number of results.
        min_score:
            Results scoring below this are dropped.
        ids:
            When given, only these knowledge ids are considered.

        Returns
        -------
        list[dict]
            Best first; each dict has ``id``, ``score`` and the stored payload
            fields (``title``, ``tags``).
        """
        with self._lock:
            rows = self._get_conn().execute(
                "SELECT knowledge_id, vector, payload FROM knowledge_vectors"
            ).fetchall()

        candidates = [r for r in rows if ids is None or r[0] in ids]
        query = np.asarray(query_vector, dtype=np.float32)
        candidates = [
            r for r in candidates
            if len(r[1]) // 4 == query.shape[0]
        ]
        if not candidates:
            return []

        matrix = np.stack([np.frombuffer(r[1], dtype=np.float32) for r in candidates])
        scores = _cosine_similarity_batch(query, matrix)
        order = np.argsort(-scores, kind="stable")

        results: list[dict] = []
        for idx in order[:limit]:
            score = float(scores[idx])
            if score < min_score:
                break
            try:
                payload = json.loads(candidates[idx][2])
            except (json.JSONDecodeError, TypeError):
                payload = {}
            results.append({**payload, "id": candidates[idx][0], "score": score})
        return results

    def count(self) -> int:
        with self._lock:
            row = self._get_conn().execute("SELECT COUNT(*) FROM knowledge_vectors").fetchone()
        return row[0] if row else 0
