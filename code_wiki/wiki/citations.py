"""
Citation validator: checks authored knowledge citations against the files
they point at.

A citation records the hash of the whole referenced file at authoring time;
line numbers are navigation hints only.  Re-hashing the file tells whether
the code has evolved since the knowledge was written.

Used by the CLI (``code-wiki validate``).
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

VALID = "valid"
CHANGED = "changed"
MISSING = "missing"

_LINE_SUFFIX = re.compile(r":\d+$")


def compute_content_hash(content: str) -> str:
    """SHA-256 of the trimmed text, truncated to 16 hex chars."""
    return hashlib.sha256(content.strip().encode("utf-8")).hexdigest()[:16]


@dataclass
class Citation:
    """A file reference authored inside a knowledge entry."""
    path: str
    file_hash: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict) -> "Citation":
        return cls(path=d["path"], file_hash=d.get("file_hash", d.get("fileHash")))


@dataclass
class CitationValidation:
    path: str
    status: str
    current_file_hash: Optional[str] = None


def _file_hash(file_path: str, project_root: str) -> Optional[str]:
    try:
        with open(os.path.join(project_root, file_path), encoding="utf-8", errors="replace") as fh:
            return compute_content_hash(fh.read())
    except OSError as exc:
        logger.debug("Cannot hash cited file %s: %s", file_path, exc)
        return None


def validate_citation(
    citation: Citation,
    project_root: str,
    file_hash_cache: dict[str, Optional[str]],
) -> CitationValidation:
    """
    Classify *citation* as valid, changed or missing.

    Parameters
    ----------
    citation:
        The authored citation; its path may end in ``:line``.
    project_root:
        Directory relative citation paths resolve against.
    file_hash_cache:
        Path → current hash (None when unreadable), shared across calls so
        each file is read once per validation pass.
    """
    file_path = _LINE_SUFFIX.sub("", citation.path)
    if file_path not in file_hash_cache:
        file_hash_cache[file_path] = _file_hash(file_path, project_root)
    current = file_hash_cache[file_path]

    if current is None:
        return CitationValidation(path=citation.path, status=MISSING)
    status = VALID if citation.file_hash == current else CHANGED
    return CitationValidation(path=citation.path, status=status, current_file_hash=current)


@dataclass
class EntryHealth:
    """Citation health of one knowledge entry."""
    id: str
    title: str
    category: Optional[str] = None
    confidence: Optional[float] = None
    results: list[CitationValidation] = field(default_factory=list)

    @property
    def has_missing(self) -> bool:
        return any(r.status == MISSING for r in self.results)

    @property
    def has_changed(self) -> bool:
        return any(r.status == CHANGED for r in self.results)


@dataclass
class KnowledgeHealth:
    """Outcome of one validation pass over many entries."""
    checked: int = 0
    missing: list[EntryHealth] = field(default_factory=list)
    changed: list[EntryHealth] = field(default_factory=list)

    @property
    def healthy(self) -> bool:
        return not self.missing and not self.changed


def check_knowledge_health(entries: list[dict], project_root: str) -> KnowledgeHealth:
    """
    Validate the authored citations of many knowledge entries.

    Parameters
    ----------
    entries:
        Dicts with ``id``, ``title`` and a ``citations`` JSON string, as
        returned by ``WikiStore.load_knowledge_citations``.  Entries whose
        citations do not parse are skipped.
    project_root:
        Directory citation paths resolve against.

    Returns
    -------
    KnowledgeHealth
        An entry with any missing citation is reported under ``missing``
        only; otherwise any changed citation reports it under ``changed``.
    """
    file_hash_cache: dict[str, Optional[str]] = {}
    health = KnowledgeHealth()

    for row in entries:
        try:
            citations = [Citation.from_dict(c) for c in json.loads(row["citations"])]
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as exc:
            logger.debug("Skipping malformed citations on %s: %s", row.get("id"), exc)
            continue

        entry = EntryHealth(
            id=row["id"],
            title=row.get("title") or "",
            category=row.get("category"),
            confidence=row.get("confidence"),
            results=[validate_citation(c, project_root, file_hash_cache) for c in citations],
        )
        health.checked += 1
        if entry.has_missing:
            health.missing.append(entry)
        elif entry.has_changed:
            health.changed.append(entry)

    logger.info(
        "Checked %d knowledge entries: %d with missing citations, %d with changed",
        health.checked, len(health.missing), len(health.changed),
    )
    return health
