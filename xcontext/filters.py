"""
Per-section inclusion decisions.

Every walked path is classified independently for the tree, source and docs
sections. Within a section the rules run in order and the first failing rule
decides:

1. explicit exclude patterns
2. explicit include patterns (only when the include list is non-empty)
3. built-in ignores (common list plus the section's own list)

Docs take priority over source, and directories are never source or docs.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from xcontext.assets import BuiltinIgnores, get_builtin_ignore_patterns
from xcontext.config import Config, SectionConfig
from xcontext.globs import EMPTY_PATTERN_SET, PatternSet, build_pattern_set, matches_path
from xcontext.walker import WalkedPath

logger = logging.getLogger(__name__)


class Section(Enum):
    """Output sections a path can be selected for."""
    TREE = "tree"
    SOURCE = "source"
    DOCS = "docs"


# =============================================================================
# FILTER RULES (Strategy Pattern)
# =============================================================================

class FilterRule(ABC):
    """Abstract base for section filter rules."""

    @abstractmethod
    def check(self, entry: WalkedPath) -> Tuple[bool, str]:
        """Check if the entry passes this rule. Returns (passes, reason)."""
        pass


class FilesOnlyRule(FilterRule):
    """Reject directories (source and docs hold file contents only)."""

    def check(self, entry: WalkedPath) -> Tuple[bool, str]:
        if entry.is_dir:
            return False, "Directory"
        return True, ""


class ExcludeRule(FilterRule):
    """Reject paths matching an explicit exclude pattern."""

    def __init__(self, patterns: PatternSet):
        self.patterns = patterns

    def check(self, entry: WalkedPath) -> Tuple[bool, str]:
        if self.patterns and matches_path(self.patterns, entry.relative_path, entry.is_dir):
            return False, "Matched exclude pattern"
        return True, ""


class IncludeRule(FilterRule):
    """Reject paths not matching any include pattern (if there are any)."""

    def __init__(self, patterns: PatternSet):
        self.patterns = patterns

    def check(self, entry: WalkedPath) -> Tuple[bool, str]:
        if not self.patterns:
            return True, ""
        if matches_path(self.patterns, entry.relative_path, entry.is_dir):
            return True, ""
        return False, "Not matched by include patterns"


class BuiltinIgnoreRule(FilterRule):
    """Reject paths matching the packaged ignore lists."""

    def __init__(self, common: PatternSet, section: PatternSet):
        self.common = common
        self.section = section

    def check(self, entry: WalkedPath) -> Tuple[bool, str]:
        if matches_path(self.common, entry.relative_path, entry.is_dir):
            return False, "Matched common built-in ignore"
        if matches_path(self.section, entry.relative_path, entry.is_dir):
            return False, "Matched section built-in ignore"
        return True, ""


# =============================================================================
# SECTION FILTER COMPOSITE
# =============================================================================

class SectionFilter:
    """Composite filter deciding inclusion for one section."""

    def __init__(self, section: Section, rules: List[FilterRule], use_gitignore: bool = True):
        self.section = section
        self.rules = rules
        # Gitignore is applied by the single walk; this value is informational.
        self.use_gitignore = use_gitignore

    @classmethod
    def from_config(
        cls,
        section: Section,
        config: Config,
        builtin: Optional[BuiltinIgnores] = None,
        common_builtin: Optional[PatternSet] = None,
    ) -> "SectionFilter":
        """Compile the section's patterns. Raises GlobError on bad patterns."""
        section_config: SectionConfig = getattr(config, section.value)
        include = config.get_effective_include(section_config.include)
        exclude = config.get_effective_exclude(section_config.exclude)

        rules: List[FilterRule] = []
        if section is not Section.TREE:
            rules.append(FilesOnlyRule())
        rules.append(ExcludeRule(build_pattern_set(exclude)))
        rules.append(IncludeRule(build_pattern_set(include)))

        if config.get_effective_builtin_ignore():
            builtin = builtin or get_builtin_ignore_patterns()
            if common_builtin is None:
                common_builtin = build_pattern_set(builtin.common)
            rules.append(BuiltinIgnoreRule(
                common_builtin, build_pattern_set(getattr(builtin, section.value))
            ))

        use_gitignore = config.get_effective_gitignore(section_config.use_gitignore)
        if use_gitignore != config.general.use_gitignore:
            logger.debug(
                f"Section '{section.value}' gitignore setting differs from the global "
                f"setting; the directory walk uses the global setting."
            )
        return cls(section, rules, use_gitignore)

    def should_include(self, entry: WalkedPath) -> Tuple[bool, str]:
        """Check if the entry belongs in this section."""
        for rule in self.rules:
            passes, reason = rule.check(entry)
            if not passes:
                return False, reason
        return True, "Passed all filters"


# =============================================================================
# INCLUSION ENGINE
# =============================================================================

@dataclass(frozen=True)
class Classification:
    """Sections a single walked path was selected for."""
    tree: bool = False
    source: bool = False
    docs: bool = False


class InclusionEngine:
    """Classifies walked paths into the enabled sections."""

    def __init__(self, config: Config, builtin: Optional[BuiltinIgnores] = None):
        self.config = config
        self.filters: Dict[Section, SectionFilter] = {}

        enabled = {
            Section.TREE: config.tree.enabled,
            Section.SOURCE: config.source.enabled,
            Section.DOCS: config.is_docs_section_active(),
        }
        common_builtin = EMPTY_PATTERN_SET
        if config.get_effective_builtin_ignore() and any(enabled.values()):
            builtin = builtin or get_builtin_ignore_patterns()
            common_builtin = build_pattern_set(builtin.common)

        logger.debug("Building glob sets for filtering...")
        for section, is_enabled in enabled.items():
            if is_enabled:
                self.filters[section] = SectionFilter.from_config(
                    section, config, builtin, common_builtin
                )

    @property
    def use_gitignore(self) -> bool:
        """Gitignore toggle for the single shared walk."""
        return self.config.general.use_gitignore

    def _decide(self, section: Section, entry: WalkedPath) -> bool:
        section_filter = self.filters.get(section)
        if section_filter is None:
            return False
        included, reason = section_filter.should_include(entry)
        if not included:
            logger.debug(f"Excluded from {section.value}: {entry.relative_path} ({reason})")
        return included

    def classify(self, entry: WalkedPath) -> Classification:
        """Decide tree, source and docs membership for one path."""
        tree = self._decide(Section.TREE, entry)
        docs = self._decide(Section.DOCS, entry)
        source = not docs and self._decide(Section.SOURCE, entry)
        return Classification(tree=tree, source=source, docs=docs)
