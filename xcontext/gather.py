"""
Gather orchestration: walk once, classify per section, read contents.
"""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import List, NamedTuple, Tuple

from xcontext.config import Config
from xcontext.errors import FileReadError
from xcontext.filters import InclusionEngine
from xcontext.reader import FileInfo, read_files
from xcontext.walker import walk_project

logger = logging.getLogger(__name__)

__all__ = [
    "FileInfo", "GatherResult", "SelectedPaths", "gather", "report_read_errors", "select_paths",
]


class GatherResult(NamedTuple):
    """Selected source files, docs files and tree entries."""
    source_files: List[FileInfo]
    docs_files: List[FileInfo]
    tree_entries: List[Tuple[str, bool]]


class SelectedPaths(NamedTuple):
    """Paths chosen per section, before any content is read."""
    source_paths: List[Path]
    docs_paths: List[Path]
    tree_entries: List[Tuple[str, bool]]


def report_read_errors(errors: List[FileReadError]) -> None:
    """Print read errors to stderr as a single warning block."""
    if not errors:
        return
    print("\n⚠️ Warning: Errors encountered during file reading:", file=sys.stderr)
    for error in errors:
        print(f" - {error}", file=sys.stderr)
    print("---", file=sys.stderr)


def select_paths(project_root: Path, config: Config) -> SelectedPaths:
    """Walk ``project_root`` once and classify every path, without reading files.

    Raises GlobError before any traversal if a pattern is malformed.
    """
    engine = InclusionEngine(config)

    tree_entries: List[Tuple[str, bool]] = []
    source_paths: List[Path] = []
    docs_paths: List[Path] = []

    for entry in walk_project(project_root, use_gitignore=engine.use_gitignore):
        decision = engine.classify(entry)
        if decision.tree:
            tree_entries.append((entry.relative_path.as_posix(), entry.is_dir))
        if decision.docs:
            docs_paths.append(entry.path)
        elif decision.source:
            source_paths.append(entry.path)

    tree_entries.sort(key=lambda item: item[0])
    return SelectedPaths(source_paths, docs_paths, tree_entries)


def gather(project_root: Path, config: Config, quiet: bool = False) -> GatherResult:
    """Walk ``project_root`` and collect everything the enabled sections select.

    Raises GlobError before any traversal if a pattern is malformed.
    """
    logger.debug("Starting file and tree gathering process...")
    source_paths, docs_paths, tree_entries = select_paths(project_root, config)

    logger.info(
        f"Reading content for {len(source_paths)} source files "
        f"and {len(docs_paths)} docs files..."
    )
    source_files, source_errors = read_files(source_paths)
    docs_files, docs_errors = read_files(docs_paths)
    logger.info("File reading complete.")

    if not quiet:
        report_read_errors(source_errors + docs_errors)

    return GatherResult(source_files, docs_files, tree_entries)
