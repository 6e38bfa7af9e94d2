"""
The context generation pipeline: gather, build the tree, assemble the
context, chunk if requested, and write the result.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from xcontext.chunking import split_files_into_chunks
from xcontext.config import Config
from xcontext.context import ProjectContext
from xcontext.errors import ChunkingError, InvalidArgumentError
from xcontext.gather import gather
from xcontext.output import OutputWriter, normalize_format, serialize, to_json
from xcontext.rules import detect_project_characteristics
from xcontext.tree import build_tree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OutputTarget:
    """Where generated output goes.

    ``save`` is None when saving was not requested, an empty string for
    "save to the configured directory", or an explicit directory.
    """
    save: Optional[str] = None
    chunks: Optional[str] = None
    stdout: bool = False
    copy: bool = False

    @property
    def wants_save(self) -> bool:
        return self.save is not None


def get_save_details(
    config: Config, save: Optional[str], project_root: Path
) -> Tuple[Path, str, str]:
    """Resolve (save_dir, filename_base, extension)."""
    save_dir = Path(save) if save else config.save.output_dir
    if not save_dir.is_absolute():
        save_dir = project_root / save_dir

    filename_base = next(
        (name for name in (config.save.filename_base, config.general.project_name,
                           project_root.name) if name),
        "context",
    )
    extension = config.save.extension or normalize_format(config.output.format)
    return save_dir, filename_base, extension


def validate_output_target(config: Config, target: OutputTarget) -> None:
    """Reject chunking requests that cannot be honored."""
    if target.chunks is None:
        return
    if not config.source.enabled:
        raise InvalidArgumentError(
            "Chunking (-c) cannot be used when source file inclusion "
            "([source].enabled=false) is disabled"
        )
    if normalize_format(config.output.format) != "json":
        raise ChunkingError("Chunking requires the output format to be 'json'. Use '-f json'.")
    if target.stdout and not target.wants_save:
        raise InvalidArgumentError(
            "--stdout cannot be used with --chunks unless --save is also specified "
            "to define the main context output location."
        )


def render_context(context: ProjectContext, config: Config) -> str:
    return serialize(
        context.to_dict(),
        config.output.format,
        pretty_json=not config.output.json_minify,
        pretty_xml=config.output.xml_pretty_print,
    )


def emit(content: str, path: Optional[Path], target: OutputTarget, quiet: bool,
         announce: bool = True) -> None:
    """Write rendered content to a file, the clipboard or stdout."""
    if path is not None:
        OutputWriter.write_file(path, content)
        if announce and not quiet:
            print(f"✅ Context saved to: {path}", file=sys.stderr)
    elif target.copy:
        OutputWriter.copy_to_clipboard(content, quiet=quiet)
    else:
        OutputWriter.write_stdout(content)


def generate_context(
    project_root: Path,
    config: Config,
    target: OutputTarget,
    quiet: bool = False,
    verbose: int = 0,
) -> Optional[Path]:
    """Run the whole pipeline. Returns the saved main context path, if any."""
    logger.info(f"Starting context generation for: {project_root}")
    validate_output_target(config, target)

    source_files, docs_files, tree_entries = gather(project_root, config, quiet)
    logger.debug(
        f"Gathering complete. Found {len(source_files)} source, {len(docs_files)} docs, "
        f"{len(tree_entries)} tree elements."
    )

    tree = build_tree(tree_entries) if config.tree.enabled else None
    characteristics = detect_project_characteristics(project_root)
    context = ProjectContext.build(project_root, config, tree, characteristics)
    context.add_docs(docs_files, project_root, config)

    main_path: Optional[Path] = None
    if target.wants_save:
        save_dir, base, extension = get_save_details(config, target.save, project_root)
        main_path = save_dir / f"{base}.{extension}"

    if not config.source.enabled:
        if source_files and not quiet and verbose > 0:
            print("⚠️ Source section disabled, but source files were found and ignored.",
                  file=sys.stderr)
        emit(render_context(context, config), main_path, target, quiet)
        return main_path

    if target.chunks is None:
        context.add_files(source_files, project_root, config)
        emit(render_context(context, config), main_path, target, quiet)
        return main_path

    logger.info(f"Chunking source files with size: {target.chunks}")
    save_dir, base, _ = get_save_details(config, target.save, project_root)
    chunks = split_files_into_chunks(source_files, target.chunks, project_root)
    chunk_paths: List[Path] = []
    for chunk in chunks:
        chunk_path = save_dir / f"{base}_chunk_{chunk.current_part}.json"
        OutputWriter.write_file(
            chunk_path, to_json(chunk.to_dict(), pretty=not config.output.json_minify)
        )
        if not quiet:
            print(f"📦 Chunk saved to: {chunk_path}", file=sys.stderr)
        chunk_paths.append(chunk_path)
    context.add_chunk_paths(chunk_paths, save_dir, config)

    if target.wants_save or target.stdout:
        emit(render_context(context, config), main_path, target, quiet, announce=False)
    elif not quiet:
        print(f"✅ Source content chunked and saved in: {save_dir}", file=sys.stderr)
    return main_path
