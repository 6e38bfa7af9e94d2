"""
File, line, byte and token counts for the gathered files.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence

import tiktoken

from xcontext.chunking import relative_display_path
from xcontext.errors import TokenizerError
from xcontext.reader import FileInfo

logger = logging.getLogger(__name__)

TOKEN_ENCODING = "cl100k_base"

_BINARY_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB")


def format_bytes(size: int) -> str:
    """Human-readable size in binary units (``1.50 KiB``)."""
    value = float(size)
    for unit in _BINARY_UNITS:
        if value < 1024 or unit == _BINARY_UNITS[-1]:
            if unit == "B":
                return f"{int(value)} B"
            return f"{value:.2f} {unit}"
        value /= 1024
    return f"{size} B"


@lru_cache(maxsize=1)
def _encoding():
    try:
        return tiktoken.get_encoding(TOKEN_ENCODING)
    except Exception as e:  # tiktoken raises a mix of ValueError and network errors
        raise TokenizerError(f"Failed to load tokenizer '{TOKEN_ENCODING}': {e}") from e


def count_tokens(text: str) -> int:
    """Estimated token count using the cl100k_base encoding."""
    return len(_encoding().encode_ordinary(text))


@dataclass
class FileMetrics:
    path: str
    lines: int
    bytes: int
    estimated_tokens: int

    @property
    def bytes_readable(self) -> str:
        return format_bytes(self.bytes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "lines": self.lines,
            "bytes": self.bytes,
            "bytes_readable": self.bytes_readable,
            "estimated_tokens": self.estimated_tokens,
        }


@dataclass
class ProjectMetrics:
    total_files: int = 0
    total_lines: int = 0
    total_bytes: int = 0
    estimated_tokens: int = 0
    files_details: List[FileMetrics] = field(default_factory=list)

    @property
    def total_bytes_readable(self) -> str:
        return format_bytes(self.total_bytes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_files": self.total_files,
            "total_lines": self.total_lines,
            "total_bytes": self.total_bytes,
            "total_bytes_readable": self.total_bytes_readable,
            "estimated_tokens": self.estimated_tokens,
            "files_details": [f.to_dict() for f in self.files_details],
        }


def calculate_metrics(
    files: Sequence[FileInfo],
    project_root: Path,
    token_counter: Optional[Callable[[str], int]] = None,
) -> ProjectMetrics:
    """Aggregate metrics over non-empty files, sorted by relative path."""
    counter = token_counter or count_tokens
    metrics = ProjectMetrics()
    for info in files:
        if info.size == 0:
            continue
        detail = FileMetrics(
            path=relative_display_path(info.path, project_root),
            lines=len(info.content.splitlines()),
            bytes=info.size,
            estimated_tokens=counter(info.content),
        )
        metrics.total_files += 1
        metrics.total_lines += detail.lines
        metrics.total_bytes += detail.bytes
        metrics.estimated_tokens += detail.estimated_tokens
        metrics.files_details.append(detail)

    metrics.files_details.sort(key=lambda f: f.path)
    return metrics


def format_metrics_table(metrics: ProjectMetrics) -> str:
    """Plain-text summary and per-file table."""
    lines = [
        "",
        "📊 Project Metrics Summary",
        f"{'Total Files:':<20} {metrics.total_files:,}",
        f"{'Total Lines:':<20} {metrics.total_lines:,}",
        f"{'Total Size:':<20} {metrics.total_bytes_readable}",
        f"{'Est. Tokens:':<20} {metrics.estimated_tokens:,}",
    ]
    if not metrics.files_details:
        lines.append("\n(No files included in metrics)")
        return "\n".join(lines)

    width = max(len("Path"), *(len(f.path) for f in metrics.files_details))
    lines.append("")
    lines.append(f"{'Path':<{width}}  {'Lines':>8}  {'Size':>12}  {'Tokens':>10}")
    lines.append(f"{'-' * width}  {'-' * 8}  {'-' * 12}  {'-' * 10}")
    for f in metrics.files_details:
        lines.append(
            f"{f.path:<{width}}  {f.lines:>8,}  {f.bytes_readable:>12}  {f.estimated_tokens:>10,}"
        )
    return "\n".join(lines)
