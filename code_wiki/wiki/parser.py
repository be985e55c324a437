"""
Tree-sitter scanner producing a normalized element list per source file.

Supports: TypeScript, TSX, JavaScript, JSX, Python, Go, Java, Rust

Per-language extraction rules live in :mod:`.extractors`; this module owns
the record types, the project walker and the :class:`Scanner` service.
"""

from __future__ import annotations

import fnmatch
import json
import logging
import os
import time
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Optional

from .extractors import get_extractor
from .grammars import EXTENSION_TO_LANGUAGE, GrammarRegistry, detect_language

if TYPE_CHECKING:
    from .cache import ScanCache

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Records returned by the scanner
# ---------------------------------------------------------------------------

@dataclass
class FunctionRecord:
    """A function, arrow function or method."""
    name: str
    line: int
    end_line: int
    params: list[str] = field(default_factory=list)
    is_async: bool = False
    is_exported: bool = False
    kind: str = "function"      # "function" | "arrow" | "method"

    @classmethod
    def from_dict(cls, data: dict) -> "FunctionRecord":
        return cls(
            name=data["name"],
            line=data["line"],
            end_line=data["end_line"],
            params=list(data.get("params", [])),
            is_async=bool(data.get("is_async", False)),
            is_exported=bool(data.get("is_exported", False)),
            kind=data.get("kind", "function"),
        )


@dataclass
class ClassRecord:
    """A class (or struct-like type) and its methods."""
    name: str
    line: int
    end_line: int
    is_exported: bool = False
    methods: list[FunctionRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ClassRecord":
        return cls(
            name=data["name"],
            line=data["line"],
            end_line=data["end_line"],
            is_exported=bool(data.get("is_exported", False)),
            methods=[FunctionRecord.from_dict(m) for m in data.get("methods", [])],
        )


@dataclass
class VariableRecord:
    """A top-level variable or constant. Never cited."""
    name: str
    line: int
    is_exported: bool = False
    kind: str = "variable"

    @classmethod
    def from_dict(cls, data: dict) -> "VariableRecord":
        return cls(
            name=data["name"],
            line=data["line"],
            is_exported=bool(data.get("is_exported", False)),
            kind=data.get("kind", "variable"),
        )


@dataclass
class InterfaceRecord:
    """An interface, type alias, trait or protocol. Never cited."""
    name: str
    line: int
    end_line: int
    is_exported: bool = False
    kind: str = "interface"
    properties: list[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "InterfaceRecord":
        return cls(
            name=data["name"],
            line=data["line"],
            end_line=data["end_line"],
            is_exported=bool(data.get("is_exported", False)),
            kind=data.get("kind", "interface"),
            properties=list(data.get("properties", [])),
        )


@dataclass
class ImportRecord:
    """An import, include or reference declaration."""
    source: str
    specifiers: list[str] = field(default_factory=list)
    line: int = 0
    is_type_only: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> "ImportRecord":
        return cls(
            source=data["source"],
            specifiers=list(data.get("specifiers", [])),
            line=data.get("line", 0),
            is_type_only=bool(data.get("is_type_only", False)),
        )


@dataclass
class FileRecord:
    """Everything the scanner extracted from one source file."""
    path: str
    relative_path: str
    language: str
    lines: int
    functions: list[FunctionRecord] = field(default_factory=list)
    classes: list[ClassRecord] = field(default_factory=list)
    variables: list[VariableRecord] = field(default_factory=list)
    interfaces: list[InterfaceRecord] = field(default_factory=list)
    imports: list[ImportRecord] = field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_dict(cls, data: dict) -> "FileRecord":
        """
        Rebuild a record from its serialized form.

        Raises
        ------
        KeyError, TypeError, ValueError
            If *data* is not a complete serialized FileRecord.
        """
        if not isinstance(data, dict):
            raise TypeError(f"expected a dict, got {type(data).__name__}")
        return cls(
            path=data["path"],
            relative_path=data["relative_path"],
            language=data["language"],
            lines=int(data["lines"]),
            functions=[FunctionRecord.from_dict(f) for f in data.get("functions", [])],
            classes=[ClassRecord.from_dict(c) for c in data.get("classes", [])],
            variables=[VariableRecord.from_dict(v) for v in data.get("variables", [])],
            interfaces=[InterfaceRecord.from_dict(i) for i in data.get("interfaces", [])],
            imports=[ImportRecord.from_dict(i) for i in data.get("imports", [])],
        )

    @classmethod
    def from_json(cls, payload: str) -> "FileRecord":
        return cls.from_dict(json.loads(payload))


@dataclass
class FileEntry:
    """A source file found on disk, with its modification time."""
    absolute_path: str
    relative_path: str
    mtime: float


@dataclass
class ScanResult:
    """A whole-project scan."""
    root_path: str
    files: list[FileRecord]
    scanned_at: str
    total_files: int
    total_functions: int
    total_classes: int

    @classmethod
    def build(cls, root_path: str, files: list[FileRecord]) -> "ScanResult":
        """Sort *files* by relative path and compute the totals."""
        ordered = sorted(files, key=lambda f: f.relative_path)
        total_functions = sum(
            len(f.functions) + sum(len(c.methods) for c in f.classes)
            for f in ordered
        )
        return cls(
            root_path=root_path,
            files=ordered,
            scanned_at=time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            total_files=len(ordered),
            total_functions=total_functions,
            total_classes=sum(len(f.classes) for f in ordered),
        )


# ---------------------------------------------------------------------------
# Directory / file exclusion rules
# ---------------------------------------------------------------------------

_SKIP_DIRS: frozenset[str] = frozenset({
    "node_modules", "dist", "build", "__pycache__",
    ".git", ".codewiki",
    ".venv", "venv", "env",
    ".tox", ".mypy_cache", ".pytest_cache",
    "target",           # Rust/Java build output
    "coverage",
    ".next", ".nuxt", ".svelte-kit", ".turbo",
    "out", ".output",
    ".cache",
})


def _load_gitignore_patterns(project_root: str) -> list[str]:
    """Read .gitignore from *project_root* and return glob patterns."""
    gi_path = os.path.join(project_root, ".gitignore")
    patterns: list[str] = []
    if not os.path.exists(gi_path):
        return patterns
    with open(gi_path, encoding="utf-8", errors="replace") as fh:
        for line in fh:
            line = line.strip()
            if line and not line.startswith(("#", "!")):
                patterns.append(line.rstrip("/"))
    return patterns


def _is_ignored(path: str, gitignore_patterns: list[str]) -> bool:
    """Return True if *path* matches any gitignore pattern."""
    name = os.path.basename(path)
    for pattern in gitignore_patterns:
        if fnmatch.fnmatch(name, pattern):
            return True
        if fnmatch.fnmatch(path, pattern):
            return True
    return False


# ---------------------------------------------------------------------------
# Scanner service
# ---------------------------------------------------------------------------

class Scanner:
    """
    Parses source files into :class:`FileRecord` objects.

    Parameters
    ----------
    grammars:
        Registry providing one tree-sitter parser per language.
    cache:
        Optional scan cache used by :meth:`scan_project`.
    """

    def __init__(
        self,
        grammars: GrammarRegistry,
        cache: Optional["ScanCache"] = None,
    ) -> None:
        self.grammars = grammars
        self.cache = cache

    def scan(self, file_path: str, root_path: str) -> Optional[FileRecord]:
        """
        Scan one file.

        Returns None when the extension is unsupported, no grammar is
        installed for the language, or the file cannot be read.
        """
        language = detect_language(file_path)
        if language is None:
            return None
        extractor = get_extractor(language)
        parser = self.grammars.parser(language)
        if extractor is None or parser is None:
            logger.debug("No grammar available for %s (%s)", file_path, language)
            return None

        try:
            with open(file_path, "rb") as fh:
                source = fh.read()
        except OSError as exc:
            logger.debug("Cannot read %s: %s", file_path, exc)
            return None

        tree = parser.parse(source)
        extraction = extractor.extract(tree.root_node)
        del tree

        return FileRecord(
            path=file_path,
            relative_path=os.path.relpath(file_path, root_path),
            language=language,
            lines=source.count(b"\n") + 1,
            functions=extraction.functions,
            classes=extraction.classes,
            variables=extraction.variables,
            interfaces=extraction.interfaces,
            imports=extraction.imports,
        )

    def scan_files(self, file_paths: list[str], root_path: str) -> list[FileRecord]:
        """Scan each of *file_paths*, dropping the ones that yield nothing."""
        results: list[FileRecord] = []
        for path in file_paths:
            record = self.scan(path, root_path)
            if record is not None:
                results.append(record)
        return results

    def collect_files(self, root_path: str) -> list[FileEntry]:
        """
        Walk *root_path* and return every file with a supported extension.

        Skips excluded and hidden directories and gitignore-matched paths.
        Files that vanish between listing and stat are left out.
        """
        gi_patterns = _load_gitignore_patterns(root_path)
        results: list[FileEntry] = []

        for dirpath, dirnames, filenames in os.walk(root_path, topdown=True):
            dirnames[:] = sorted(
                d for d in dirnames
                if d not in _SKIP_DIRS
                and not d.startswith(".")
                and not _is_ignored(os.path.relpath(os.path.join(dirpath, d), root_path), gi_patterns)
            )
            for fname in filenames:
                ext = os.path.splitext(fname)[1].lower()
                if ext not in EXTENSION_TO_LANGUAGE:
                    continue
                abs_path = os.path.join(dirpath, fname)
                rel_path = os.path.relpath(abs_path, root_path)
                if _is_ignored(rel_path, gi_patterns):
                    continue
                try:
                    mtime = os.stat(abs_path).st_mtime
                except OSError:
                    continue
                results.append(FileEntry(abs_path, rel_path, mtime))

        results.sort(key=lambda e: e.relative_path)
        return results

    def scan_project(self, root_path: str) -> ScanResult:
        """
        Scan every supported file under *root_path*, reading through the cache.

        The cached entry records each file's mtime so that later lookups can
        detect edits made since the scan.
        """
        root_path = os.path.abspath(root_path)
        if self.cache is not None:
            cached = self.cache.get(root_path)
            if cached is not None:
                return cached

        entries = self.collect_files(root_path)
        files = self.scan_files([e.absolute_path for e in entries], root_path)
        result = ScanResult.build(root_path, files)

        if self.cache is not None:
            self.cache.set(
                root_path,
                result,
                {e.absolute_path: e.mtime for e in entries},
            )
        return result
