"""
Packaged static data: built-in ignore patterns, predefined prompts, AI readme
text, default config template and static rule files.

Each asset is parsed once on first use and cached for the process lifetime.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from functools import lru_cache
from importlib import resources
from typing import Dict, Tuple

import yaml

from xcontext.errors import DataLoadingError, RuleLoadingError

logger = logging.getLogger(__name__)

DATA_PACKAGE = "xcontext"
DATA_DIR = "data"


@dataclass(frozen=True)
class BuiltinIgnores:
    """Built-in ignore pattern lists, one per section plus a shared list."""
    common: Tuple[str, ...] = ()
    tree: Tuple[str, ...] = ()
    source: Tuple[str, ...] = ()
    docs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AiReadmeText:
    """Sentences used to describe the sections of a generated context."""
    intro: str
    key_sections_header: str
    project_name_desc: str
    project_root_desc: str
    system_info_desc: str
    meta_desc: str
    docs_desc: str
    tree_desc: str
    source_files_desc: str
    source_chunks_desc: str
    source_missing_desc: str
    rules_desc: str
    rules_missing_desc: str
    timestamp_desc: str


def _read_text(*parts: str) -> str:
    resource = resources.files(DATA_PACKAGE).joinpath(DATA_DIR, *parts)
    return resource.read_text(encoding="utf-8")


def _load_yaml(name: str) -> dict:
    try:
        data = yaml.safe_load(_read_text(name))
    except (OSError, yaml.YAMLError) as e:
        raise DataLoadingError(f"Failed to parse embedded data/{name}: {e}") from e
    if not isinstance(data, dict):
        raise DataLoadingError(f"Embedded data/{name} must be a mapping")
    return data


@lru_cache(maxsize=None)
def get_builtin_ignore_patterns() -> BuiltinIgnores:
    """Return the built-in ignore lists (loaded once)."""
    data = _load_yaml("builtin_ignores.yaml")
    return BuiltinIgnores(**{
        f.name: tuple(str(p) for p in (data.get(f.name) or []))
        for f in fields(BuiltinIgnores)
    })


@lru_cache(maxsize=None)
def get_predefined_prompts() -> Dict[str, str]:
    """Return the predefined prompts keyed by name (loaded once)."""
    data = _load_yaml("prompts.yaml")
    return {str(k): str(v) for k, v in data.items()}


@lru_cache(maxsize=None)
def get_ai_readme_text() -> AiReadmeText:
    """Return the AI readme sentences (loaded once)."""
    data = _load_yaml("ai_readme.yaml")
    try:
        return AiReadmeText(**{f.name: str(data[f.name]) for f in fields(AiReadmeText)})
    except KeyError as e:
        raise DataLoadingError(f"Embedded data/ai_readme.yaml is missing key {e}") from e


@lru_cache(maxsize=None)
def get_default_config_template() -> str:
    """Return the commented default config file."""
    return _read_text("default_config.toml")


def get_static_rule_content(rule_stem: str) -> str:
    """Return the text of a packaged static rule file."""
    file_path = f"rules/{rule_stem}.org"
    logger.debug(f"Attempting to get embedded static rule: {file_path}")
    try:
        return _read_text("rules", f"{rule_stem}.org")
    except FileNotFoundError:
        raise RuleLoadingError(f"Static rule file not found in embed: {file_path}") from None
    except UnicodeDecodeError as e:
        raise RuleLoadingError(f"UTF-8 error in embedded rule {file_path}: {e}") from e
