"""
Reassembly of a nested directory tree from flat relative paths.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import Any, Dict, Iterable, List, Sequence, Tuple, Union

from xcontext.errors import TreeConflictError

logger = logging.getLogger(__name__)


class NodeType(Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass
class FileNode:
    """Leaf node for a file (or any non-directory entry)."""
    name: str

    @property
    def node_type(self) -> NodeType:
        return NodeType.FILE

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": NodeType.FILE.value}


@dataclass
class DirectoryNode:
    """Directory node; children are unique by name and sorted."""
    name: str
    children: List["TreeNode"] = field(default_factory=list)

    @property
    def node_type(self) -> NodeType:
        return NodeType.DIRECTORY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": NodeType.DIRECTORY.value,
            "children": [child.to_dict() for child in self.children],
        }


TreeNode = Union[FileNode, DirectoryNode]


def path_components(relative_path: str) -> Tuple[str, ...]:
    """Normal components of a relative path (no root, ``.`` or ``..``)."""
    parts = PurePosixPath(relative_path.replace("\\", "/")).parts
    return tuple(p for p in parts if p not in ("/", ".", ".."))


def _find(nodes: List[TreeNode], name: str) -> int:
    """Index of ``name`` among sorted siblings, or -1."""
    index = bisect.bisect_left([n.name for n in nodes], name)
    if index < len(nodes) and nodes[index].name == name:
        return index
    return -1


def _insert_sorted(nodes: List[TreeNode], node: TreeNode) -> None:
    index = bisect.bisect_left([n.name for n in nodes], node.name)
    nodes.insert(index, node)


def insert_node(nodes: List[TreeNode], components: Sequence[str], is_dir: bool) -> None:
    """Insert one path's components into ``nodes``.

    Raises TreeConflictError when a component would descend through a file.
    """
    level = nodes
    for depth, name in enumerate(components):
        is_last = depth == len(components) - 1
        index = _find(level, name)

        if index >= 0:
            existing = level[index]
            if not is_last:
                if isinstance(existing, FileNode):
                    raise TreeConflictError(name, "/".join(components))
                level = existing.children
            elif is_dir and isinstance(existing, FileNode):
                level[index] = DirectoryNode(name)
            continue

        if is_last and not is_dir:
            _insert_sorted(level, FileNode(name))
        else:
            directory = DirectoryNode(name)
            _insert_sorted(level, directory)
            level = directory.children


def _sort_recursive(nodes: List[TreeNode]) -> None:
    nodes.sort(key=lambda n: n.name)
    for node in nodes:
        if isinstance(node, DirectoryNode):
            _sort_recursive(node.children)


def build_tree(entries: Iterable[Tuple[str, bool]]) -> List[TreeNode]:
    """Build the nested tree from ``(relative_path, is_dir)`` pairs.

    Entries are put in canonical order first, so the result does not depend
    on the order they arrive in. Conflicting entries are logged and skipped.
    """
    canonical = sorted(
        ((path_components(str(path)), bool(is_dir), str(path)) for path, is_dir in entries),
        key=lambda item: (item[0], item[1]),
    )
    logger.debug(f"Building tree structure from {len(canonical)} paths...")

    roots: List[TreeNode] = []
    for components, is_dir, raw in canonical:
        if not components:
            continue
        try:
            insert_node(roots, components, is_dir)
        except TreeConflictError as e:
            logger.error(f'Error inserting node into tree for path "{raw}": {e}')

    _sort_recursive(roots)
    logger.debug("Tree structure built successfully.")
    return roots


def tree_to_list(nodes: Iterable[TreeNode]) -> List[Dict[str, Any]]:
    """Plain-data form of a tree for serialization."""
    return [node.to_dict() for node in nodes]


def render_tree(nodes: Sequence[TreeNode], prefix: str = "") -> List[str]:
    """Render the tree as indented text lines."""
    lines: List[str] = []
    for i, node in enumerate(nodes):
        is_last = i == len(nodes) - 1
        connector = "└── " if is_last else "├── "
        suffix = "/" if isinstance(node, DirectoryNode) else ""
        lines.append(f"{prefix}{connector}{node.name}{suffix}")
        if isinstance(node, DirectoryNode):
            extension = "    " if is_last else "│   "
            lines.extend(render_tree(node.children, prefix + extension))
    return lines
