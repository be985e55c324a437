"""
code_wiki: links free-text knowledge entries to the code elements they describe.

Provides:
  - a tree-sitter scanner producing normalized per-file element records
  - full and incremental indexers persisting pages and citations to SQLite
  - a tag → content → vector matcher, a citation validator and coverage stats
"""

__version__ = "0.1.0"
