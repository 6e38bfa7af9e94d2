"""
Glob pattern compilation for section filters.

Patterns are shell-style globs relative to the project root. ``*`` and ``?``
may cross ``/`` (so ``*.log`` matches ``logs/app.log``), ``**`` matches any
run of characters, and a leading ``**/`` or an inner ``/**/`` also matches
zero directories. ``{a,b}`` alternation and ``\\`` escapes are supported on
top of what :mod:`fnmatch` understands.
"""

from __future__ import annotations

import fnmatch
import logging
import re
from dataclasses import dataclass
from pathlib import PurePath, PurePosixPath
from typing import Iterable, List, Optional, Pattern, Tuple, Union

from xcontext.errors import GlobError

logger = logging.getLogger(__name__)

# Synthetic child used to test directories against file-oriented patterns.
DIR_MATCH_SENTINEL = "dummy_file_for_dir_match"


@dataclass(frozen=True)
class CompiledGlob:
    """A single compiled pattern and the text it came from."""
    pattern: str
    processed: str
    regex: Pattern[str]

    def matches(self, path: str) -> bool:
        return self.regex.match(path) is not None


@dataclass(frozen=True)
class PatternSet:
    """Immutable set of compiled globs."""
    globs: Tuple[CompiledGlob, ...] = ()

    def __len__(self) -> int:
        return len(self.globs)

    def __bool__(self) -> bool:
        return bool(self.globs)

    def is_match(self, path: Union[str, PurePath]) -> bool:
        """Check whether any pattern matches the relative path."""
        return self.first_match(path) is not None

    def first_match(self, path: Union[str, PurePath]) -> Optional[str]:
        """Return the source text of the first matching pattern, if any."""
        candidate = _normalize(path)
        for glob in self.globs:
            if glob.matches(candidate):
                return glob.pattern
        return None


EMPTY_PATTERN_SET = PatternSet()


def _normalize(path: Union[str, PurePath]) -> str:
    if isinstance(path, PurePath):
        return path.as_posix()
    return path.replace("\\", "/")


def matches_path(patterns: PatternSet, relative_path: Union[str, PurePath], is_dir: bool) -> bool:
    """Test a relative path, treating directories as "anything beneath them".

    Directory entries are additionally tested with a synthetic child
    appended, so ``docs/`` (compiled to ``docs/**``) matches the directory
    ``docs`` itself.
    """
    if patterns.is_match(relative_path):
        return True
    if is_dir:
        return patterns.is_match(PurePosixPath(_normalize(relative_path)) / DIR_MATCH_SENTINEL)
    return False


# =============================================================================
# PATTERN PROCESSING
# =============================================================================

def preprocess_pattern(pattern: str) -> str:
    """Trim the pattern and expand a trailing separator to ``/**``."""
    processed = pattern.strip()
    if processed.endswith("/") and len(processed) > 1:
        processed += "**"
    return processed


def _validate(processed: str) -> Optional[str]:
    """Return a reason string if the pattern is malformed."""
    i = 0
    depth = 0
    n = len(processed)
    while i < n:
        ch = processed[i]
        if ch == "\\":
            if i + 1 >= n:
                return "dangling '\\'"
            i += 2
            continue
        if ch == "[":
            j = i + 1
            if j < n and processed[j] in "!^":
                j += 1
            if j < n and processed[j] == "]":
                j += 1
            while j < n and processed[j] != "]":
                j += 1
            if j >= n:
                return "unclosed character class; missing ']'"
            i = j + 1
            continue
        if ch == "{":
            if depth:
                return "nested alternate groups are not allowed"
            depth += 1
        elif ch == "}":
            if not depth:
                return "unopened alternate group; missing '{'"
            depth -= 1
        i += 1
    if depth:
        return "unclosed alternate group; missing '}'"
    return None


def _expand_braces(pattern: str) -> List[str]:
    """Expand a single (non-nested) ``{a,b}`` group into alternatives."""
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\":
            i += 2
            continue
        if ch == "[":
            j = i + 1
            if j < len(pattern) and pattern[j] in "!^":
                j += 1
            if j < len(pattern) and pattern[j] == "]":
                j += 1
            while pattern[j] != "]":
                j += 1
            i = j + 1
            continue
        if ch == "{":
            end = pattern.index("}", i)
            head, body, tail = pattern[:i], pattern[i + 1:end], pattern[end + 1:]
            expanded: List[str] = []
            for option in body.split(","):
                expanded.extend(_expand_braces(head + option + tail))
            return expanded
        i += 1
    return [pattern]


def _expand_globstars(pattern: str) -> List[str]:
    """Add variants where ``**/`` segments match zero directories."""
    variants = {pattern}
    changed = True
    while changed:
        changed = False
        for variant in list(variants):
            candidates = []
            if variant.startswith("**/"):
                candidates.append(variant[3:])
            idx = variant.find("/**/")
            while idx != -1:
                candidates.append(variant[:idx] + "/" + variant[idx + 4:])
                idx = variant.find("/**/", idx + 1)
            for candidate in candidates:
                if candidate not in variants:
                    variants.add(candidate)
                    changed = True
    return sorted(variants)


def _escape_literals(pattern: str) -> str:
    """Turn ``\\x`` escapes into single-character classes fnmatch understands."""
    out = []
    i = 0
    while i < len(pattern):
        ch = pattern[i]
        if ch == "\\" and i + 1 < len(pattern):
            nxt = pattern[i + 1]
            out.append(nxt if nxt == "!" else "[" + nxt + "]")
            i += 2
            continue
        if ch == "[" and i + 1 < len(pattern) and pattern[i + 1] == "^":
            out.append("[!")
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def compile_pattern(pattern: str) -> CompiledGlob:
    """Compile one user pattern. Raises GlobError on malformed input."""
    processed = preprocess_pattern(pattern)
    reason = _validate(processed)
    if reason:
        logger.error(f'Invalid glob pattern "{pattern}": {reason}')
        raise GlobError(pattern, processed, reason)

    alternatives: List[str] = []
    for option in _expand_braces(processed):
        for variant in _expand_globstars(option):
            alternatives.append(fnmatch.translate(_escape_literals(variant)))

    try:
        regex = re.compile("|".join(f"(?:{alt})" for alt in alternatives))
    except re.error as e:
        logger.error(f'Invalid glob pattern "{pattern}": {e}')
        raise GlobError(pattern, processed, str(e)) from e

    logger.debug(f"Adding glob pattern: {pattern} (processed as {processed})")
    return CompiledGlob(pattern=pattern, processed=processed, regex=regex)


def build_pattern_set(patterns: Iterable[str]) -> PatternSet:
    """Compile a batch of patterns; any bad pattern fails the whole batch."""
    return PatternSet(tuple(compile_pattern(p) for p in patterns))
