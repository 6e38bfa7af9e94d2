"""
Rule resolution: packaged static rules picked by project characteristics,
plus imported rule files and custom rule lists from the config.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from xcontext.assets import get_static_rule_content
from xcontext.config import DEFAULT_CONFIG_DIR, RulesConfig
from xcontext.errors import RuleLoadingError

logger = logging.getLogger(__name__)


# =============================================================================
# CHARACTERISTIC MAPPING
# =============================================================================

DEFAULT_RULE_STEMS: FrozenSet[str] = frozenset({"general", "guidelines", "documentation"})

MARKER_FILENAMES: FrozenSet[str] = frozenset({
    "Rakefile", "Gemfile", "Cargo.toml", "package.json",
    "composer.json", "go.mod", "Makefile",
})

CHARACTERISTIC_RULES: Dict[str, str] = {
    "rs": "rust",
    "rb": "ruby",
    "py": "python",
    "c": "c",
    "h": "c",
    "cpp": "cpp",
    "hpp": "cpp",
    "go": "go",
    "js": "javascript",
    "cjs": "javascript",
    "mjs": "javascript",
    "jsx": "javascript",
    "ts": "typescript",
    "tsx": "typescript",
    "php": "php",
    "org": "documentation",
    "md": "documentation",
    "json": "config_file",
    "yaml": "config_file",
    "yml": "config_file",
    "toml": "config_file",
    "xml": "config_file",
    "rake": "rakefile",
    "Rakefile": "rakefile",
    "Gemfile": "ruby",
}


def map_characteristic_to_rule_stem(characteristic: str) -> Optional[str]:
    """Map an extension or marker filename to a static rule stem."""
    return CHARACTERISTIC_RULES.get(characteristic)


def get_default_rule_stems() -> Set[str]:
    return set(DEFAULT_RULE_STEMS)


def detect_project_characteristics(project_root: Path) -> Set[str]:
    """Collect lowercase file extensions and known marker filenames."""
    characteristics: Set[str] = set()
    logger.debug(f"Detecting project characteristics in: {project_root}")

    def on_error(error: OSError) -> None:
        logger.warning(f"Error accessing path during characteristic detection: {error}")

    for dirpath, dirnames, filenames in os.walk(project_root, onerror=on_error):
        dirnames[:] = [d for d in dirnames if d != ".git"]
        for filename in filenames:
            if filename in MARKER_FILENAMES:
                characteristics.add(filename)
            suffix = Path(filename).suffix
            if len(suffix) > 1:
                characteristics.add(suffix[1:].lower())

    logger.debug(f"Detected characteristics: {sorted(characteristics)}")
    return characteristics


# =============================================================================
# RESOLUTION
# =============================================================================

@dataclass
class ResolvedRules:
    """Rule sets keyed by ``static:``/``imported:``/``custom:`` name."""
    rulesets: Dict[str, List[str]] = field(default_factory=dict)
    origins: Dict[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.rulesets)

    def __bool__(self) -> bool:
        return bool(self.rulesets)

    def add(self, key: str, lines: Iterable[str], origin: str) -> None:
        self.rulesets[key] = _clean_lines(lines)
        self.origins[key] = origin


def _clean_lines(lines: Iterable[str]) -> List[str]:
    return [line.strip() for line in lines if line.strip()]


def resolve_import_path(import_path: Path, project_root: Path) -> Optional[Path]:
    """Find an imported file relative to the project root, then the config dir."""
    candidate = project_root / import_path
    if candidate.exists():
        return candidate
    candidate = project_root / DEFAULT_CONFIG_DIR / import_path
    if candidate.exists():
        logger.debug(f"Found import {import_path} relative to config dir")
        return candidate
    return None


def _static_origin(stem: str, included: Set[str]) -> str:
    is_default = stem in DEFAULT_RULE_STEMS
    if is_default and stem in included:
        return "default+include"
    if is_default:
        return "default"
    if stem in included:
        return "include"
    return "dynamic"


def resolve_rules(
    rules_config: RulesConfig,
    project_root: Path,
    characteristics: Iterable[str],
) -> ResolvedRules:
    """Resolve the rule sets that go into the context.

    Static stems are the defaults plus those implied by the project's
    characteristics, minus ``exclude``, plus ``include``. Imported files and
    custom lists follow. Missing rules are logged and skipped.
    """
    resolved = ResolvedRules()
    if not rules_config.enabled:
        logger.debug("Rules generation is disabled in configuration.")
        return resolved
    logger.info("Resolving rules...")

    stems = get_default_rule_stems()
    for characteristic in characteristics:
        stem = (map_characteristic_to_rule_stem(characteristic.lower())
                or map_characteristic_to_rule_stem(characteristic))
        if stem and stem not in stems:
            logger.debug(f"Dynamically detected rule stem '{stem}' from '{characteristic}'")
            stems.add(stem)

    excluded = set(rules_config.exclude)
    included = set(rules_config.include)
    stems = (stems - excluded) | included
    logger.debug(f"Final static stems to load: {sorted(stems)}")

    for stem in sorted(stems):
        try:
            content = get_static_rule_content(stem)
        except RuleLoadingError as e:
            logger.warning(f"Skipping static rule stem '{stem}': {e}")
            continue
        resolved.add(f"static:{stem}", content.splitlines(), _static_origin(stem, included))

    for import_rel in rules_config.imports:
        import_path = resolve_import_path(import_rel, project_root)
        if import_path is None:
            logger.warning(
                f"Could not find imported rule file '{import_rel}' relative to "
                f"project root or config dir. Skipping."
            )
            continue
        try:
            content = import_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read imported rule file '{import_path}': {e}")
            continue
        stem = import_path.stem or "imported_rule"
        resolved.add(f"imported:{stem}", content.splitlines(), "import")

    for name, lines in rules_config.custom.items():
        if not lines:
            logger.debug(f"Skipping empty custom rule list: {name}")
            continue
        resolved.add(f"custom:{name}", lines, "custom")

    logger.info(f"Resolved {len(resolved)} rulesets.")
    return resolved
