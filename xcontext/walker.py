"""
Parallel, gitignore-aware directory traversal.

A single walk of the project root fans out over a thread pool (one task per
directory) and funnels every discovered path into one queue, which the
:func:`walk_project` generator drains. Emission order is unspecified.
"""

from __future__ import annotations

import logging
import os
import queue
import re
import subprocess
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterator, List, Optional, Tuple

import gitignore_parser

from xcontext.config import DEFAULT_CACHE_DIR

logger = logging.getLogger(__name__)

MAX_WALK_THREADS = 12
GIT_DIR = ".git"
GITIGNORE_FILE = ".gitignore"

_DONE = object()


@dataclass(frozen=True)
class WalkedPath:
    """A path discovered by the walker."""
    path: Path
    relative_path: PurePosixPath
    is_dir: bool


def default_thread_count() -> int:
    return max(1, min(os.cpu_count() or 1, MAX_WALK_THREADS))


# =============================================================================
# GITIGNORE LOADING
# =============================================================================

class IgnoreFile:
    """
    Rules parsed from one ignore file, in file order.

    ``decide`` returns True (ignored), False (re-included by a ``!`` rule) or
    None when no rule matches. Directory-only rules (``build/``) never match
    regular files.
    """

    def __init__(self, source: Path, rules: list):
        self.source = source
        self.rules = rules

    def decide(self, path: Path, is_dir: bool) -> Optional[bool]:
        target = str(path)
        for rule in reversed(self.rules):
            if rule.directory_only and not is_dir:
                continue
            try:
                if rule.match(target):
                    return not rule.negation
            except ValueError:
                # path lies outside the file's base directory
                return None
        return None


def load_gitignore(path: Path, base_dir: Optional[Path] = None) -> Optional[IgnoreFile]:
    """Parse one ignore file, or return None if it is missing or unreadable."""
    if not path.is_file():
        return None
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning(f"Could not read ignore file {path}: {e}")
        return None

    base_path = Path(os.path.abspath(base_dir or path.parent))
    rules = []
    for number, line in enumerate(lines, start=1):
        try:
            rule = gitignore_parser.rule_from_pattern(
                line, base_path=base_path, source=(str(path), number)
            )
            if rule:
                re.compile(rule.regex)
        except Exception as e:
            logger.warning(f"Skipping pattern {line!r} in {path}:{number}: {e}")
            continue
        if rule:
            rules.append(rule)
    return IgnoreFile(path, rules) if rules else None


def find_repository_root(start: Path) -> Optional[Path]:
    """Return the nearest ancestor (or ``start``) containing a ``.git`` entry."""
    for candidate in (start, *start.parents):
        if (candidate / GIT_DIR).exists():
            return candidate
    return None


def global_excludes_file() -> Optional[Path]:
    """Locate the user's global git excludes file."""
    try:
        result = subprocess.run(
            ["git", "config", "--get", "core.excludesFile"],
            capture_output=True,
            text=True,
            check=False,
        )
        configured = result.stdout.strip()
        if result.returncode == 0 and configured:
            return Path(os.path.expanduser(configured))
    except OSError as e:
        logger.debug(f"Could not query git for core.excludesFile: {e}")

    xdg = os.environ.get("XDG_CONFIG_HOME")
    base = Path(xdg) if xdg else Path.home() / ".config"
    return base / "git" / "ignore"


def initial_matchers(root: Path) -> Tuple[IgnoreFile, ...]:
    """Ignore files that apply to the whole root: global, repo exclude, parents."""
    matchers: List[IgnoreFile] = []
    repo_root = find_repository_root(root)
    base = repo_root or root

    excludes = global_excludes_file()
    if excludes is not None:
        matcher = load_gitignore(excludes, base)
        if matcher:
            logger.debug(f"Using global git excludes: {excludes}")
            matchers.append(matcher)

    if repo_root is not None:
        matcher = load_gitignore(repo_root / GIT_DIR / "info" / "exclude", repo_root)
        if matcher:
            matchers.append(matcher)
        if root != repo_root:
            # .gitignore files between the repository top and the root, outermost first
            ancestors = [repo_root]
            for part in root.relative_to(repo_root).parts[:-1]:
                ancestors.append(ancestors[-1] / part)
            for directory in ancestors:
                matcher = load_gitignore(directory / GITIGNORE_FILE)
                if matcher:
                    matchers.append(matcher)

    return tuple(matchers)


# =============================================================================
# WALKER
# =============================================================================

class DirectoryWalker:
    """Walks a directory tree in parallel, emitting every path once."""

    def __init__(
        self,
        root: Path,
        use_gitignore: bool = True,
        threads: Optional[int] = None,
        cache_dir: str = DEFAULT_CACHE_DIR,
    ):
        self.root = Path(os.path.abspath(root))
        self.use_gitignore = use_gitignore
        self.threads = threads or default_thread_count()
        self.cache_parts = PurePosixPath(cache_dir).parts
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._pending = 0
        self._executor: Optional[ThreadPoolExecutor] = None

    def walk(self) -> Iterator[WalkedPath]:
        """Yield walked paths. Stopping iteration stops the workers."""
        logger.info(f"Walking project directory: {self.root}")
        matchers = initial_matchers(self.root) if self.use_gitignore else ()
        self._executor = ThreadPoolExecutor(
            max_workers=self.threads, thread_name_prefix="xcontext-walk"
        )
        count = 0
        try:
            self._schedule(self.root, matchers)
            while True:
                item = self._queue.get()
                if item is _DONE:
                    break
                count += 1
                yield item
        finally:
            with self._lock:
                self._stop.set()
            self._executor.shutdown(wait=True, cancel_futures=True)
        logger.info(f"Directory walk complete. Found {count} potential paths.")

    def _schedule(self, directory: Path, matchers: Tuple[IgnoreFile, ...]) -> None:
        with self._lock:
            if self._stop.is_set():
                return
            self._pending += 1
            self._executor.submit(self._run_task, directory, matchers)

    def _run_task(self, directory: Path, matchers: Tuple[IgnoreFile, ...]) -> None:
        try:
            if not self._stop.is_set():
                self._scan_directory(directory, matchers)
        except Exception as e:
            logger.warning(f"Error walking directory {directory}: {e}")
        finally:
            with self._lock:
                self._pending -= 1
                finished = self._pending == 0
            if finished:
                self._queue.put(_DONE)

    def _scan_directory(self, directory: Path, matchers: Tuple[IgnoreFile, ...]) -> None:
        if self.use_gitignore:
            local = load_gitignore(directory / GITIGNORE_FILE)
            if local:
                matchers = matchers + (local,)

        try:
            with os.scandir(directory) as entries:
                entry_list = list(entries)
        except OSError as e:
            logger.warning(f"Error walking directory {directory}: {e}")
            return

        for entry in entry_list:
            if self._stop.is_set():
                return
            if entry.name == GIT_DIR:
                continue
            path = Path(entry.path)
            relative = PurePosixPath(path.relative_to(self.root).as_posix())
            if relative.parts[:len(self.cache_parts)] == self.cache_parts:
                logger.debug(f"Skipping cache directory: {relative}")
                continue
            try:
                is_dir = entry.is_dir(follow_symlinks=False)
            except OSError as e:
                logger.warning(f"Error reading entry {path}: {e}")
                continue
            if matchers and self._is_ignored(path, is_dir, matchers):
                logger.debug(f"Ignored by gitignore: {relative}")
                continue

            self._queue.put(WalkedPath(path=path, relative_path=relative, is_dir=is_dir))
            if is_dir:
                self._schedule(path, matchers)

    @staticmethod
    def _is_ignored(path: Path, is_dir: bool, matchers: Tuple[IgnoreFile, ...]) -> bool:
        # deeper ignore files come later and override outer ones
        for ignore_file in reversed(matchers):
            decision = ignore_file.decide(path, is_dir)
            if decision is not None:
                return decision
        return False


def walk_project(
    root: Path,
    use_gitignore: bool = True,
    threads: Optional[int] = None,
) -> Iterator[WalkedPath]:
    """Walk ``root`` once and yield every path beneath it."""
    return DirectoryWalker(root, use_gitignore=use_gitignore, threads=threads).walk()
