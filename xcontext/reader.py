"""
Parallel UTF-8 content reading.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from xcontext.errors import FileReadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileInfo:
    """A successfully read text file."""
    path: Path
    content: str
    size: int


def read_file(path: Path) -> Optional[FileInfo]:
    """Read one file.

    Returns None for content that is not valid UTF-8 (logged at debug level).
    Raises FileReadError when the file cannot be read at all.
    """
    try:
        data = path.read_bytes()
    except OSError as e:
        raise FileReadError(path, e) from e
    try:
        content = data.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.debug(f"Skipping non-UTF-8 file: {path} ({e})")
        return None
    return FileInfo(path=path, content=content, size=len(data))


def _read_collecting(path: Path) -> Tuple[Optional[FileInfo], Optional[FileReadError]]:
    try:
        return read_file(path), None
    except FileReadError as e:
        return None, e


def read_files(
    paths: Iterable[Path],
    max_workers: Optional[int] = None,
) -> Tuple[List[FileInfo], List[FileReadError]]:
    """Read files in parallel.

    Returns the readable files sorted by path and the read errors
    encountered. Non-UTF-8 files are dropped silently.
    """
    paths = list(paths)
    if not paths:
        return [], []

    files: List[FileInfo] = []
    errors: List[FileReadError] = []
    workers = max_workers or min(32, (os.cpu_count() or 1) + 4)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="xcontext-read") as pool:
        for info, error in pool.map(_read_collecting, paths):
            if info is not None:
                files.append(info)
            elif error is not None:
                errors.append(error)

    files.sort(key=lambda f: f.path)
    return files, errors
