"""
`code-wiki` command-line interface.

Commands
--------
code-wiki index                 -- incremental re-index of the current project
code-wiki index --full          -- full re-index (re-scan and re-match everything)
code-wiki status                -- show page / citation / knowledge counts
code-wiki coverage [--json]     -- element and file coverage
code-wiki citations <path>      -- citations on one file, by start line
code-wiki validate [--json]     -- check authored knowledge citations
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sqlite3
import sys
from dataclasses import asdict
from typing import Optional

from ..config import Config

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _project_root(args: argparse.Namespace) -> str:
    return os.path.abspath(args.root or os.getcwd())


def _load_config(args: argparse.Namespace) -> Config:
    return Config.load(args.config, project_root=_project_root(args))


def _open_store(args: argparse.Namespace):
    from .store import WikiStore
    config = _load_config(args)
    return WikiStore(config.db_path_for(_project_root(args)))


def _build_indexer(project_root: str, config: Config):
    """Wire store, scanner, cache and matcher for *project_root*."""
    from .cache import ScanCache
    from .embedder import create_embedder
    from .grammars import GrammarRegistry
    from .indexer import WikiIndexer
    from .matcher import Matcher
    from .parser import Scanner
    from .store import WikiStore

    db_path = config.db_path_for(project_root)
    store = WikiStore(db_path)
    cache = ScanCache(ttl_seconds=config.CACHE_TTL_SECONDS,
                      sample_size=config.CACHE_SAMPLE_SIZE)
    scanner = Scanner(GrammarRegistry(), cache=cache)

    embedder = create_embedder(config) if config.VECTOR_ENABLED else None
    vector_store = None
    if embedder is not None:
        from .vector_store import KnowledgeVectorStore
        vector_store = KnowledgeVectorStore(db_path)

    matcher = Matcher(
        embedder=embedder,
        vector_store=vector_store,
        content_threshold=config.CONTENT_THRESHOLD,
        vector_min_score=config.VECTOR_MIN_SCORE,
        vector_limit=config.VECTOR_LIMIT,
    )
    return WikiIndexer(project_root, store, scanner, matcher,
                       knowledge_branch=config.KNOWLEDGE_BRANCH)


# ---------------------------------------------------------------------------
# Sub-command handlers
# ---------------------------------------------------------------------------

def _cmd_index(args: argparse.Namespace) -> None:
    """Run an incremental (default) or full index of the project."""
    from tqdm import tqdm

    project_root = _project_root(args)
    config = _load_config(args)
    mode = "full" if args.full else "incremental"
    print(f"Indexing project ({mode}): {project_root}")

    indexer = _build_indexer(project_root, config)
    pbar = tqdm(total=None, unit="file", desc="Scanning")

    def _progress(current: int, total: int, filename: str) -> None:
        if pbar.total != total:
            pbar.total = total
            pbar.refresh()
        pbar.set_postfix_str(os.path.basename(filename), refresh=False)
        pbar.update(1)

    try:
        if args.full:
            stats = indexer.reindex_full(progress_callback=_progress)
        else:
            stats = indexer.reindex_incremental(progress_callback=_progress)
    except sqlite3.Error as exc:
        pbar.close()
        print(f"Indexing failed: {exc}", file=sys.stderr)
        sys.exit(1)
    finally:
        indexer.scanner.grammars.dispose()
    pbar.close()

    lines = [
        "\nIndex complete:",
        f"  Files:     {stats.total_files}",
    ]
    if not args.full:
        lines.append(f"  Skipped:   {stats.skipped_files}")
    lines += [
        f"  Citations: {stats.total_citations}",
        f"  Time:      {stats.duration_ms / 1000:.1f}s",
    ]
    print("\n".join(lines))


def _cmd_status(args: argparse.Namespace) -> None:
    """Print row counts of the wiki database."""
    stats = _open_store(args).stats()
    print("\nCode Wiki Status")
    print("=" * 40)
    for k, v in stats.items():
        print(f"  {k:<20} {v}")
    print()


def _cmd_coverage(args: argparse.Namespace) -> None:
    from .coverage import get_coverage_stats

    stats = get_coverage_stats(_open_store(args))
    if args.json:
        print(json.dumps(asdict(stats), indent=2))
        return
    print(
        f"\nCoverage: {stats.coverage_percent}%\n"
        f"  Files:    {stats.covered_files}/{stats.total_files}\n"
        f"  Elements: {stats.covered_elements}/{stats.total_elements}"
    )


def _cmd_citations(args: argparse.Namespace) -> None:
    from .coverage import get_citations_for_file

    path = os.path.normpath(args.path)
    citations = get_citations_for_file(_open_store(args), path)
    if not citations:
        print(f"  (no citations for: {path})")
        return
    print(f"\nCitations in {path}  [{len(citations)} citation(s)]")
    print("-" * 70)
    for c in citations:
        location = f"{c.start_line}-{c.end_line}"
        print(f"  {c.element_name:<30} {location:<10} {c.match_type:<8} "
              f"{c.knowledge_title}  [{c.knowledge_category or 'unknown'}]")


def _cmd_validate(args: argparse.Namespace) -> None:
    """Validate authored knowledge citations; exits 1 when any is missing."""
    from .citations import check_knowledge_health
    from .store import WikiStore

    config = _load_config(args)
    store = WikiStore(config.db_path_for(_project_root(args)))
    health = check_knowledge_health(
        store.load_knowledge_citations(config.KNOWLEDGE_BRANCH), _project_root(args)
    )
    if args.json:
        print(json.dumps(asdict(health), indent=2))
    else:
        print(f"\nChecked {health.checked} knowledge entr(y/ies)")
        for label, group in (("Missing", health.missing), ("Changed", health.changed)):
            if not group:
                continue
            print(f"\n{label}  [{len(group)}]")
            print("-" * 60)
            for entry in group:
                print(f"  {entry.id}  {entry.title}")
                for r in entry.results:
                    if r.status != "valid":
                        print(f"      {r.status:<8} {r.path}")
        if health.healthy:
            print("  All citations valid.")
    if health.missing:
        sys.exit(1)


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the `code-wiki` argument parser."""
    parser = argparse.ArgumentParser(
        prog="code-wiki",
        description="Code Wiki: links knowledge entries to the code they describe",
    )
    parser.add_argument("--root", default=None,
                        help="Project root (default: current directory)")
    parser.add_argument("--config", default=None,
                        help="Path to a .codewiki.yaml file")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="cmd", metavar="COMMAND")
    subparsers.required = True

    # --- index ---
    index_p = subparsers.add_parser("index", help="Re-index the current project")
    index_p.add_argument(
        "--full", action="store_true",
        help="Re-scan every file and regenerate all citations",
    )
    index_p.set_defaults(func=_cmd_index)

    # --- status ---
    status_p = subparsers.add_parser("status", help="Show wiki database summary")
    status_p.set_defaults(func=_cmd_status)

    # --- coverage ---
    coverage_p = subparsers.add_parser("coverage", help="Show citation coverage")
    coverage_p.add_argument("--json", action="store_true",
                            help="Machine-readable JSON output")
    coverage_p.set_defaults(func=_cmd_coverage)

    # --- citations ---
    citations_p = subparsers.add_parser("citations", help="List citations on one file")
    citations_p.add_argument("path", help="File path relative to the project root")
    citations_p.set_defaults(func=_cmd_citations)

    # --- validate ---
    validate_p = subparsers.add_parser(
        "validate", help="Check authored knowledge citations against the filesystem"
    )
    validate_p.add_argument("--json", action="store_true",
                            help="Machine-readable JSON output")
    validate_p.set_defaults(func=_cmd_validate)

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[list[str]] = None) -> None:
    """
    Main entry point for `code-wiki`.

    Parameters
    ----------
    argv:
        Argument list without the program name.  Defaults to sys.argv if None.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    # Configure logging if not already configured
    if not logging.root.handlers:
        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.WARNING,
            format="%(levelname)s  %(name)s  %(message)s",
        )

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
