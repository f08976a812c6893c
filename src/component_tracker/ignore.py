# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Ignore rules applied to candidate paths of an add invocation.

An IgnoreSet compiles every source of ignore patterns into one gitignore-style
matcher (pathspec "gitwildmatch"):
- the project ignore file and configured ignore patterns
- files resolved from exclude patterns
- generated dist directories of imported components
- config files and directories of tracked components

Matching is done on paths relative to the workspace root. An empty pattern list
yields a matcher that ignores nothing.
"""

import logging
import os
import re
from pathlib import Path
from typing import Iterable, List, Sequence

from pathspec import PathSpec

from component_tracker.models import normalize_to_linux

logger = logging.getLogger(__name__)

_MAX_PATTERN_LENGTH = 1000
ANY_DEPTH_PREFIX = "**/"
_GLOB_CHARS = re.compile(r"[*?\[\]\\!#]")


def load_ignore_file(ignore_path: Path) -> List[str]:
    """Load patterns from a gitignore-style file.

    Empty lines and comments are skipped, as are pathological patterns longer
    than 1000 characters. A missing or unreadable file yields no patterns.
    """
    patterns: List[str] = []

    if not ignore_path.exists():
        logger.debug(f"No ignore file found at {ignore_path}")
        return patterns

    try:
        with open(ignore_path, encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                if len(line) > _MAX_PATTERN_LENGTH:
                    logger.warning(
                        f"{ignore_path.name} line {line_num}: Pattern too long "
                        f"(>{_MAX_PATTERN_LENGTH} chars), skipping"
                    )
                    continue
                patterns.append(line)
        logger.debug(f"Loaded {len(patterns)} patterns from {ignore_path}")
    except UnicodeDecodeError as e:
        logger.error(f"Failed to decode {ignore_path} (encoding error): {e}")
    except OSError as e:
        logger.error(f"Failed to read {ignore_path}: {e}")

    return patterns


def match_at_any_depth(pattern: str) -> str:
    """Rewrite a pattern so it matches below any directory.

    Used when paths are given relative to a configured (non-default) root.
    """
    negated = pattern.startswith("!")
    body = pattern[1:] if negated else pattern
    if not body.startswith(ANY_DEPTH_PREFIX):
        body = ANY_DEPTH_PREFIX + body.lstrip("/")
    return f"!{body}" if negated else body


def escape_path(path: str) -> str:
    """Escape a literal path so it is matched verbatim, anchored at the root."""
    escaped = _GLOB_CHARS.sub(r"\\\g<0>", normalize_to_linux(path))
    return "/" + escaped.lstrip("/")


class IgnoreSet:
    """Compiled ignore matcher for one add invocation.

    Usage:
        ignore_set = IgnoreSet.build(root, base_patterns=[...], excluded_paths=[...])
        kept = ignore_set.filter(candidates)
    """

    def __init__(
        self,
        root: Path,
        patterns: Sequence[str] = (),
        any_depth: bool = False,
        exact_paths: Sequence[str] = (),
    ):
        """Initialize IgnoreSet.

        Args:
            root: Workspace root; absolute candidates are matched relative to it
            patterns: gitignore-style patterns
            any_depth: Rewrite patterns to match at any depth (configured root)
            exact_paths: Root-relative paths ignored verbatim, never rewritten
        """
        self.root = Path(root).resolve()
        self.any_depth = any_depth
        self.patterns: List[str] = [
            match_at_any_depth(pattern) if any_depth else pattern
            for pattern in patterns
            if pattern and pattern.strip()
        ]
        self.exact_paths: List[str] = [normalize_to_linux(path) for path in exact_paths if path]
        self._spec = PathSpec.from_lines(
            "gitwildmatch", self.patterns + [escape_path(path) for path in self.exact_paths]
        )

    @classmethod
    def build(
        cls,
        root: Path,
        base_patterns: Iterable[str] = (),
        excluded_paths: Iterable[str] = (),
        generated_dist_dirs: Iterable[str] = (),
        config_dirs: Iterable[str] = (),
        config_files: Iterable[str] = (),
        any_depth: bool = False,
    ) -> "IgnoreSet":
        """Compile every ignore source into one matcher.

        Directory entries (dist and config dirs) ignore everything below them.
        """
        patterns: List[str] = list(base_patterns)
        patterns.extend(_below(directory) for directory in generated_dist_dirs)
        patterns.extend(normalize_to_linux(path) for path in config_files)
        patterns.extend(_below(directory) for directory in config_dirs)
        return cls(root, patterns, any_depth=any_depth, exact_paths=list(excluded_paths))

    def with_excluded(self, excluded_paths: Iterable[str]) -> "IgnoreSet":
        """Return a new matcher that also ignores the given root-relative paths."""
        return IgnoreSet(
            self.root,
            self.patterns,
            any_depth=self.any_depth,
            exact_paths=self.exact_paths + list(excluded_paths),
        )

    def is_empty(self) -> bool:
        return not self.patterns and not self.exact_paths

    def _relative(self, path: str) -> str:
        if not os.path.isabs(path):
            return normalize_to_linux(os.path.normpath(path))
        for candidate in (Path(os.path.abspath(path)), Path(path).resolve()):
            try:
                return candidate.relative_to(self.root).as_posix()
            except ValueError:
                continue
        # Outside the workspace: match the path as given
        return normalize_to_linux(path).lstrip("/")

    def is_ignored(self, path: str) -> bool:
        """Return True when a path matches the ignore rules."""
        if self.is_empty():
            return False
        relative = self._relative(path)
        if relative in ("", "."):
            return False
        if self._spec.match_file(relative):
            return True
        absolute = path if os.path.isabs(path) else str(self.root / relative)
        if os.path.isdir(absolute):
            return self._spec.match_file(relative + "/")
        return False

    def filter(self, paths: Iterable[str]) -> List[str]:
        """Return the paths that are not ignored, preserving order."""
        return [path for path in paths if not self.is_ignored(path)]


def _below(directory: str) -> str:
    return f"{normalize_to_linux(directory).rstrip('/')}/**"
