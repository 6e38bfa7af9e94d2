"""
Exception hierarchy for xcontext.

Configuration-shape errors (bad TOML, bad globs, bad arguments) propagate to
the CLI and abort the run. Per-item errors (unreadable files, tree conflicts)
are raised locally, caught by the component that produced them, and
aggregated for reporting.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class XContextError(Exception):
    """Base class for all application-specific errors."""
    pass


class ConfigError(XContextError):
    """Raised for invalid or missing configuration."""
    pass


class TreeConflictError(ConfigError):
    """Raised when a path would descend through an existing file node."""

    def __init__(self, component: str, path: Optional[str] = None):
        self.component = component
        self.path = path
        message = f"Tree conflict: Trying to create children within file component {component}"
        if path:
            message += f" (while inserting '{path}')"
        super().__init__(message)


class TomlParseError(ConfigError):
    """Raised when a config file is not valid TOML or has an unknown shape."""
    pass


class GlobError(XContextError):
    """Raised when a glob pattern cannot be compiled."""

    def __init__(self, pattern: str, processed: str, reason: str):
        self.pattern = pattern
        self.processed = processed
        self.reason = reason
        super().__init__(
            f'Invalid glob pattern "{pattern}" (processed as "{processed}"): {reason}'
        )


class FileReadError(XContextError):
    """Raised when a selected file cannot be read."""

    def __init__(self, path: Path, source: OSError):
        self.path = path
        self.source = source
        super().__init__(f"File Read Error: Path '{path}', Error: {source}")


class FileWriteError(XContextError):
    """Raised when output cannot be written to disk."""

    def __init__(self, path: Path, source: OSError):
        self.path = path
        self.source = source
        super().__init__(f"File Write Error: Path '{path}', Error: {source}")


class ChunkingError(XContextError):
    """Raised for invalid chunk sizes or chunking requests."""
    pass


class InvalidArgumentError(XContextError):
    """Raised for invalid command-line argument combinations."""
    pass


class RuleLoadingError(XContextError):
    """Raised when a static rule asset cannot be found or decoded."""
    pass


class DataLoadingError(XContextError):
    """Raised when packaged data cannot be decoded."""
    pass


class SerializationError(XContextError):
    """Raised when context cannot be rendered to the requested format."""
    pass


class TokenizerError(XContextError):
    """Raised when the token encoder cannot be loaded."""
    pass
