"""
xcontext - Project Context Generator for LLMs

Scans a project directory and assembles a structured context document
(metadata, directory tree, source and docs contents, rules, prompts).

Architecture:
    Config → Glob Filters → Directory Walk → Section Classification →
    Content Reading → Tree Assembly → Context → Serialization → Output
"""

from __future__ import annotations

__version__ = "0.4.0"


def get_version() -> str:
    """Get version from package metadata or fallback to hardcoded."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("xcontext")
    except PackageNotFoundError:
        return __version__


from xcontext.errors import XContextError  # noqa: E402
from xcontext.gather import FileInfo, GatherResult, gather  # noqa: E402
from xcontext.tree import DirectoryNode, FileNode, NodeType, TreeNode, build_tree  # noqa: E402

__all__ = [
    "DirectoryNode",
    "FileInfo",
    "FileNode",
    "GatherResult",
    "NodeType",
    "TreeNode",
    "XContextError",
    "build_tree",
    "gather",
    "get_version",
]
