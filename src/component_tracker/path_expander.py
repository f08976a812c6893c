# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Expansion of user-supplied paths into concrete, ignore-filtered files."""

import glob
import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Iterator, List

from component_tracker.dsl import is_dsl
from component_tracker.errors import FileSystemAccessError, PathsNotExist
from component_tracker.ignore import IgnoreSet
from component_tracker.workspace import Workspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PathStat:
    """Classification of an input path."""

    is_dir: bool


@dataclass
class Expansion:
    """Outcome of glob-expanding the input paths.

    ignored holds the paths that existed but were dropped by the ignore rules;
    it explains an empty `resolved` list.
    """

    unfiltered: List[str] = field(default_factory=list)
    resolved: List[str] = field(default_factory=list)
    ignored: List[str] = field(default_factory=list)


def has_glob_magic(path: str) -> bool:
    return glob.has_magic(path)


class PathExpander:
    """Turns input paths into absolute, ignore-filtered path lists."""

    def __init__(self, workspace: Workspace, ignore_set: IgnoreSet):
        self.workspace = workspace
        self.ignore_set = ignore_set

    def validate(self, paths: List[str]) -> Dict[str, PathStat]:
        """Classify every path as file or directory.

        Raises:
            PathsNotExist: Listing every missing path, not just the first.
        """
        stats: Dict[str, PathStat] = {}
        missing: List[str] = []
        for path in paths:
            if not os.path.exists(path):
                missing.append(path)
                continue
            stats[path] = PathStat(is_dir=os.path.isdir(path))
        if missing:
            raise PathsNotExist(missing)
        return stats

    def missing_test_files(self, tests: List[str]) -> List[str]:
        """Literal test paths (no glob, no template) that don't exist."""
        missing = []
        for test in tests:
            if is_dsl(test) or has_glob_magic(test):
                continue
            if not os.path.exists(self.workspace.to_absolute_path(test)):
                missing.append(test)
        return missing

    def glob_paths(self, paths: List[str]) -> List[str]:
        """Glob-expand every path, flattened and deduplicated in input order."""
        found: Dict[str, None] = {}
        for path in paths:
            if has_glob_magic(path):
                matches = sorted(glob.glob(path, recursive=True))
            else:
                matches = [path] if os.path.exists(path) else []
            for match in matches:
                found[os.path.normpath(match)] = None
        return list(found)

    def expand(self, paths: List[str]) -> Expansion:
        """Glob-expand paths and apply the ignore rules."""
        unfiltered = self.glob_paths(paths)
        resolved = self.ignore_set.filter(unfiltered)
        kept = set(resolved)
        ignored = [path for path in unfiltered if path not in kept]
        if ignored:
            logger.debug(f"Ignored {len(ignored)} of {len(unfiltered)} candidate paths")
        return Expansion(unfiltered=unfiltered, resolved=resolved, ignored=ignored)

    def _walk_files(self, directory: str) -> Iterator[str]:
        def on_error(error: OSError) -> None:
            raise FileSystemAccessError(error.filename or directory, error)

        for current, dirs, files in os.walk(directory, onerror=on_error):
            dirs[:] = sorted(
                name
                for name in dirs
                if not name.startswith(".")
                and not self.ignore_set.is_ignored(os.path.join(current, name))
            )
            for name in sorted(files):
                if not name.startswith("."):
                    yield os.path.join(current, name)

    def directory_files(self, directory: str) -> List[str]:
        """Non-ignored files below a directory, as root-relative forward-slash paths."""
        absolute = self.workspace.to_absolute_path(directory)
        matches = self.ignore_set.filter(self._walk_files(absolute))
        return [self.workspace.to_linux_relative_path(match) for match in matches]
