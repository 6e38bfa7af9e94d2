"""
Poll-based watch mode.

Each poll re-walks the project (without reading contents) and hashes the stat
metadata of every selected file, imported rule and prompt file and the config
file. When the digest changes the config is reloaded and the context regenerated.
"""

from __future__ import annotations

import hashlib
import logging
import sys
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from xcontext.config import Config
from xcontext.errors import XContextError
from xcontext.gather import select_paths
from xcontext.rules import resolve_import_path

logger = logging.getLogger(__name__)

ConfigLoader = Callable[[], Tuple[Config, Optional[Path]]]
Regenerator = Callable[[Config], None]


def _update_digest(digest, token: str) -> None:
    digest.update(token.encode("utf-8", errors="surrogateescape"))
    digest.update(b"\0")


def _path_stat_signature(path: Path) -> Tuple[str, int, int]:
    try:
        st = path.stat()
    except FileNotFoundError:
        return ("missing", 0, 0)
    except OSError:
        return ("error", 0, 0)
    return ("ok", st.st_mtime_ns, st.st_size)


def build_watch_signature(paths: Iterable[Path]) -> str:
    """Digest over the existence, mtime and size of ``paths``."""
    digest = hashlib.sha256()
    for path in sorted(set(paths)):
        state, mtime, size = _path_stat_signature(path)
        _update_digest(digest, f"{path}|{state}|{mtime}|{size}")
    return digest.hexdigest()


def collect_watch_paths(
    project_root: Path,
    config: Config,
    config_path: Optional[Path],
) -> List[Path]:
    """Files whose change should trigger regeneration."""
    selected = select_paths(project_root, config)
    paths: List[Path] = []
    if config.source.enabled:
        paths.extend(selected.source_paths)
    if config.is_docs_section_active():
        paths.extend(selected.docs_paths)
    if config.tree.enabled:
        paths.extend(project_root / rel for rel, _ in selected.tree_entries)

    for label, imports in (("rule", config.rules.imports), ("prompt", config.prompts.imports)):
        for import_rel in imports:
            resolved = resolve_import_path(import_rel, project_root)
            if resolved is None:
                logger.warning(f"Could not find imported {label} file to watch: {import_rel}")
                continue
            paths.append(resolved)

    if config_path is not None:
        paths.append(config_path)
    return paths


class ContextWatcher:
    """Regenerates context whenever watched files change."""

    def __init__(
        self,
        project_root: Path,
        load_config: ConfigLoader,
        regenerate: Regenerator,
        quiet: bool = False,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.project_root = project_root
        self.load_config = load_config
        self.regenerate = regenerate
        self.quiet = quiet
        self.sleep = sleep
        self.config, self.config_path = load_config()
        self.signature = ""

    def _status(self, message: str) -> None:
        if not self.quiet:
            print(message, file=sys.stderr)

    def _snapshot(self) -> str:
        return build_watch_signature(
            collect_watch_paths(self.project_root, self.config, self.config_path)
        )

    def _run_once(self) -> None:
        try:
            self.regenerate(self.config)
        except XContextError as e:
            self._status(f"❌ Error during regeneration: {e}")

    def poll(self) -> bool:
        """Check for changes once. Returns True if regeneration ran."""
        signature = self._snapshot()
        if signature == self.signature:
            return False

        logger.info("Change detected, regenerating context...")
        self._status("🔄 Change detected. Regenerating context...")
        try:
            self.config, self.config_path = self.load_config()
        except XContextError as e:
            self._status(f"⚠️ Failed to reload config, keeping previous config: {e}")
        self._run_once()
        self.signature = self._snapshot()
        return True

    def run(self, max_polls: Optional[int] = None) -> None:
        """Generate once, then poll until interrupted (or ``max_polls``)."""
        self._run_once()
        self.signature = self._snapshot()
        delay = self.config.get_watch_delay()
        self._status(
            f"👀 Watching {self.project_root} for changes (every {self.config.watch.delay}). "
            "Press Ctrl+C to stop."
        )

        polls = 0
        while max_polls is None or polls < max_polls:
            self.sleep(delay)
            polls += 1
            if self.poll():
                delay = self.config.get_watch_delay()
