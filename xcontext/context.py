"""
ProjectContext: the document assembled from gathered files, the tree,
rules, prompts and metadata.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from xcontext.assets import get_ai_readme_text
from xcontext.chunking import FileContext, relative_display_path, to_file_contexts
from xcontext.config import Config
from xcontext.prompts import resolve_prompts
from xcontext.reader import FileInfo
from xcontext.rules import ResolvedRules, resolve_rules
from xcontext.system import SystemInfo, gather_system_info
from xcontext.tree import TreeNode, tree_to_list

logger = logging.getLogger(__name__)


@dataclass
class SourceRepresentation:
    """Inline source files or references to chunk files, never both."""
    files: Optional[List[FileContext]] = None
    chunks: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.files is not None:
            data["files"] = [f.to_dict() for f in self.files]
        if self.chunks is not None:
            data["chunks"] = list(self.chunks)
        return data


def utc_timestamp(moment: Optional[datetime] = None) -> str:
    moment = moment or datetime.now(timezone.utc)
    return moment.isoformat().replace("+00:00", "Z")


@dataclass
class ProjectContext:
    """The generated context document."""
    ai_readme: Optional[str] = None
    project_name: Optional[str] = None
    project_root: Optional[str] = None
    system_info: Optional[SystemInfo] = None
    meta: Optional[Dict[str, str]] = None
    docs: Optional[List[FileContext]] = None
    tree: Optional[List[TreeNode]] = None
    source: Optional[SourceRepresentation] = None
    rules: Dict[str, List[str]] = field(default_factory=dict)
    prompts: Optional[Dict[str, str]] = None
    generation_timestamp: Optional[str] = None
    resolved_rules: Optional[ResolvedRules] = None

    @classmethod
    def build(
        cls,
        project_root: Path,
        config: Config,
        tree: Optional[List[TreeNode]],
        characteristics: Iterable[str],
    ) -> "ProjectContext":
        """Build the context skeleton (everything except docs and source)."""
        logger.debug("Building project context skeleton...")
        output = config.output

        meta = None
        if config.meta.enabled and config.meta.custom_meta:
            meta = dict(config.meta.custom_meta)

        resolved = resolve_rules(config.rules, project_root, characteristics)
        prompts = resolve_prompts(config.prompts, project_root)

        context = cls(
            project_name=(
                config.get_effective_project_name(project_root)
                if output.include_project_name else None
            ),
            project_root=str(project_root) if output.include_project_root else None,
            system_info=gather_system_info() if output.include_system_info else None,
            meta=meta,
            tree=tree if config.tree.enabled else None,
            rules=dict(resolved.rulesets),
            prompts=prompts or None,
            generation_timestamp=utc_timestamp() if output.include_timestamp else None,
            resolved_rules=resolved,
        )
        context.populate_ai_readme(config)
        logger.debug("Context skeleton built successfully.")
        return context

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    def add_docs(
        self, docs_files: Sequence[FileInfo], project_root: Path, config: Config
    ) -> "ProjectContext":
        if config.docs.enabled and docs_files:
            logger.debug(f"Adding {len(docs_files)} documentation files to context.")
            self.docs = to_file_contexts(docs_files, project_root)
        else:
            self.docs = None
        self.populate_ai_readme(config)
        return self

    def add_files(
        self, source_files: Sequence[FileInfo], project_root: Path, config: Config
    ) -> "ProjectContext":
        if config.source.enabled and source_files:
            logger.debug(f"Adding {len(source_files)} source files inline to context.")
            self.source = SourceRepresentation(files=to_file_contexts(source_files, project_root))
        else:
            self.source = None
        self.populate_ai_readme(config)
        return self

    def add_chunk_paths(
        self, chunk_paths: Sequence[Path], save_dir: Path, config: Config
    ) -> "ProjectContext":
        if config.source.enabled and chunk_paths:
            logger.debug(f"Adding {len(chunk_paths)} chunk file references to context.")
            self.source = SourceRepresentation(
                chunks=[relative_display_path(p, save_dir) for p in chunk_paths]
            )
        else:
            self.source = None
        self.populate_ai_readme(config)
        return self

    def populate_ai_readme(self, config: Config) -> None:
        """Regenerate the readme so it describes the sections present."""
        text = get_ai_readme_text()
        details: List[str] = []
        if self.project_name is not None:
            details.append(text.project_name_desc)
        if self.project_root is not None:
            details.append(text.project_root_desc)
        if self.system_info is not None:
            details.append(text.system_info_desc)
        if self.meta is not None:
            details.append(text.meta_desc)
        if self.docs is not None:
            details.append(text.docs_desc)
        if self.tree is not None:
            details.append(text.tree_desc)

        if self.source is not None and self.source.files is not None:
            details.append(text.source_files_desc)
        elif self.source is not None and self.source.chunks is not None:
            details.append(text.source_chunks_desc)
        elif self.source is not None or config.source.enabled:
            details.append(text.source_missing_desc)

        if self.rules:
            details.append(text.rules_desc)
        elif config.rules.enabled:
            details.append(text.rules_missing_desc)

        if self.generation_timestamp is not None:
            details.append(text.timestamp_desc)

        if details:
            self.ai_readme = "\n".join([text.intro, text.key_sections_header, *details])
        else:
            self.ai_readme = text.intro

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """camelCase mapping, omitting absent sections."""
        data: Dict[str, Any] = {}
        if self.ai_readme is not None:
            data["aiReadme"] = self.ai_readme
        if self.project_name is not None:
            data["projectName"] = self.project_name
        if self.project_root is not None:
            data["projectRoot"] = self.project_root
        if self.system_info is not None:
            data["systemInfo"] = self.system_info.to_dict()
        if self.meta is not None:
            data["meta"] = dict(self.meta)
        if self.docs is not None:
            data["docs"] = [d.to_dict() for d in self.docs]
        if self.tree is not None:
            data["tree"] = tree_to_list(self.tree)
        if self.source is not None:
            data["source"] = self.source.to_dict()
        if self.rules:
            data["rules"] = {k: list(v) for k, v in self.rules.items()}
        if self.prompts is not None:
            data["prompts"] = dict(self.prompts)
        if self.generation_timestamp is not None:
            data["generationTimestamp"] = self.generation_timestamp
        return data
