"""
Grammar registry: owns the tree-sitter Language and Parser objects.

Uses the tree-sitter >= 0.22 API with individual language packages.
A registry is created once by whoever wires the indexer together and is
passed to the scanner; nothing here is module-level state.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Language mapping
# ---------------------------------------------------------------------------

EXTENSION_TO_LANGUAGE: dict[str, str] = {
    ".ts": "typescript",
    ".tsx": "tsx",
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "jsx",
    ".py": "python",
    ".go": "go",
    ".java": "java",
    ".rs": "rust",
}

SUPPORTED_LANGUAGES: set[str] = set(EXTENSION_TO_LANGUAGE.values())

# language -> (module name, attribute returning the raw language pointer)
_LANGUAGE_MODULES: dict[str, tuple[str, str]] = {
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "tsx": ("tree_sitter_typescript", "language_tsx"),
    "javascript": ("tree_sitter_javascript", "language"),
    "jsx": ("tree_sitter_javascript", "language"),
    "python": ("tree_sitter_python", "language"),
    "go": ("tree_sitter_go", "language"),
    "java": ("tree_sitter_java", "language"),
    "rust": ("tree_sitter_rust", "language"),
}


def detect_language(file_path: str) -> Optional[str]:
    """
    Return the language name for *file_path*, or None if unsupported.

    Only the extension is examined; the comparison is case-insensitive.
    """
    ext = os.path.splitext(file_path)[1].lower()
    return EXTENSION_TO_LANGUAGE.get(ext)


def _get_lang_func(language: str):
    """Return the grammar package's language() function, or None."""
    entry = _LANGUAGE_MODULES.get(language)
    if entry is None:
        return None
    module_name, attr = entry
    try:
        import importlib
        module = importlib.import_module(module_name)
    except ImportError:
        return None
    return getattr(module, attr, None)


class GrammarRegistry:
    """
    Lazily builds and caches one tree-sitter Parser per language.

    Call :meth:`dispose` to drop every cached object; the registry can be
    reused afterwards and will rebuild on demand.
    """

    def __init__(self) -> None:
        self._languages: dict[str, object] = {}
        self._parsers: dict[str, object] = {}

    def language(self, language: str):
        """Return the tree_sitter.Language for *language*, or None."""
        if language in self._languages:
            return self._languages[language]
        try:
            import tree_sitter as ts  # type: ignore
            func = _get_lang_func(language)
            if func is None:
                return None
            lang_obj = ts.Language(func())
        except Exception as exc:
            logger.debug("Cannot load tree-sitter language %s: %s", language, exc)
            return None
        self._languages[language] = lang_obj
        return lang_obj

    def parser(self, language: str):
        """Return a tree_sitter.Parser configured for *language*, or None."""
        if language in self._parsers:
            return self._parsers[language]
        lang_obj = self.language(language)
        if lang_obj is None:
            return None
        try:
            import tree_sitter as ts  # type: ignore
            parser = ts.Parser(lang_obj)
        except Exception as exc:
            logger.warning("Cannot create tree-sitter parser for %s: %s", language, exc)
            return None
        self._parsers[language] = parser
        return parser

    def is_available(self, language: str) -> bool:
        return self.parser(language) is not None

    def dispose(self) -> None:
        """Release all cached parsers and languages."""
        self._parsers.clear()
        self._languages.clear()
