"""
Splitting source contents into size-bounded chunk files.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Sequence

from xcontext.errors import ChunkingError
from xcontext.reader import FileInfo

logger = logging.getLogger(__name__)

_SIZE_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-z]*)\s*$", re.IGNORECASE)
_SIZE_UNITS = {
    "": 1, "b": 1,
    "k": 1000, "kb": 1000, "kib": 1024,
    "m": 1000 ** 2, "mb": 1000 ** 2, "mib": 1024 ** 2,
    "g": 1000 ** 3, "gb": 1000 ** 3, "gib": 1024 ** 3,
    "t": 1000 ** 4, "tb": 1000 ** 4, "tib": 1024 ** 4,
}


@dataclass(frozen=True)
class FileContext:
    """Project-relative path and content of one file."""
    path: str
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "content": self.content}


@dataclass(frozen=True)
class ChunkFile:
    """One chunk: its files and its position in the sequence."""
    files: List[FileContext]
    current_part: int
    total_parts: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "files": [f.to_dict() for f in self.files],
            "chunkInfo": {"currentPart": self.current_part, "totalParts": self.total_parts},
        }


def parse_byte_size(size_str: str) -> int:
    """Parse '5MB', '1024kb', '2MiB' into bytes. KB is 1000, KiB is 1024."""
    match = _SIZE_RE.match(size_str or "")
    unit = match.group(2).lower() if match else None
    if not match or unit not in _SIZE_UNITS:
        raise ChunkingError(f"Invalid chunk size format '{size_str}'. Use KB, MB, etc.")
    return int(float(match.group(1)) * _SIZE_UNITS[unit])


def relative_display_path(path: Path, base: Path) -> str:
    """Path relative to ``base`` in posix form, or the path itself."""
    try:
        return Path(os.path.relpath(path, base)).as_posix()
    except ValueError:
        return path.as_posix()


def to_file_contexts(files: Sequence[FileInfo], project_root: Path) -> List[FileContext]:
    return [
        FileContext(path=relative_display_path(f.path, project_root), content=f.content)
        for f in files
    ]


def split_files_into_chunks(
    source_files: Sequence[FileInfo],
    chunk_size: str,
    project_root: Path,
) -> List[ChunkFile]:
    """Group files into chunks of at most ``chunk_size`` bytes of content.

    Empty files are skipped; a file larger than the limit gets a chunk of
    its own. Chunks are numbered from 1.
    """
    limit = parse_byte_size(chunk_size)
    if limit <= 0:
        raise ChunkingError("Chunk size must be greater than 0 bytes")

    groups: List[List[FileContext]] = []
    current: List[FileContext] = []
    current_size = 0

    for file_context in to_file_contexts(source_files, project_root):
        size = len(file_context.content.encode("utf-8"))
        if size == 0:
            logger.debug(f"Skipping empty file: {file_context.path}")
            continue

        if size > limit:
            logger.debug(
                f"File {file_context.path} ({size}) exceeds chunk size ({limit}), "
                f"putting in its own chunk."
            )
            if current:
                groups.append(current)
                current, current_size = [], 0
            groups.append([file_context])
            continue

        if current and current_size + size > limit:
            groups.append(current)
            current, current_size = [file_context], size
        else:
            current.append(file_context)
            current_size += size

    if current:
        groups.append(current)

    if not groups:
        logger.debug("No non-empty files to chunk.")
        return []

    logger.info(f"Split content into {len(groups)} chunks.")
    return [
        ChunkFile(files=group, current_part=i, total_parts=len(groups))
        for i, group in enumerate(groups, start=1)
    ]
