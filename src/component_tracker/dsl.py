# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Template ("DSL") patterns describing files relative to other files.

A template is a path or glob containing placeholders computed per file:
- {PARENT}: name of the file's parent directory
- {FILE_NAME}: file name without its last extension
- {FULL_FILE_NAME}: file name including extensions
- {EXT}: last extension without the dot

Example: for src/foo/foo.js, "{PARENT}/{FILE_NAME}.test.{EXT}" expands to
"foo/foo.test.js". Unknown placeholders are left untouched.

Expanded templates are anchored as follows:
- absolute expansions are used as-is
- templates starting with {PARENT} are anchored at the directory holding the
  parent directory, so the example above resolves to src/foo/foo.test.js
- every other relative expansion is anchored at the workspace root
"""

import glob
import logging
import os
import re
from typing import Dict, Iterable, List

from component_tracker.ignore import IgnoreSet
from component_tracker.models import normalize_to_linux
from component_tracker.workspace import Workspace

logger = logging.getLogger(__name__)

REGEX_DSL_PATTERN = re.compile(r"{([^}]+)}")
PARENT_PLACEHOLDER = "{PARENT}"


def is_dsl(pattern: str) -> bool:
    """Return True when the pattern contains placeholders."""
    return bool(REGEX_DSL_PATTERN.search(pattern))


def calculate_file_info(file_path: str) -> Dict[str, str]:
    """Compute placeholder values for one file."""
    linux_path = normalize_to_linux(file_path).rstrip("/")
    directory, _, full_name = linux_path.rpartition("/")
    last_dot = full_name.rfind(".")
    if last_dot <= 0:
        file_name, extension = full_name, ""
    else:
        file_name, extension = full_name[:last_dot], full_name[last_dot + 1 :]
    return {
        "PARENT": directory.rsplit("/", 1)[-1] if directory else "",
        "FILE_NAME": file_name,
        "FULL_FILE_NAME": full_name,
        "EXT": extension,
    }


def expand(template: str, file_path: str) -> str:
    """Substitute the placeholders of template with values from file_path."""
    file_info = calculate_file_info(file_path)

    def substitute(match: "re.Match[str]") -> str:
        return file_info.get(match.group(1), match.group(0))

    return REGEX_DSL_PATTERN.sub(substitute, template)


class DslMatcher:
    """Resolves templates against candidate files and the filesystem."""

    def __init__(self, workspace: Workspace, ignore_set: IgnoreSet):
        self.workspace = workspace
        self.ignore_set = ignore_set

    def anchor(self, template: str, expanded: str, file_path: str, escape: bool = True) -> str:
        """Turn an expanded template into an absolute path or glob pattern."""
        parent_template = template.startswith(PARENT_PLACEHOLDER)
        if parent_template and not calculate_file_info(file_path)["PARENT"]:
            # Files at the root have no parent name; "{PARENT}/x" means "x" beside them
            expanded = expanded.lstrip("/")
            base_dir = self.workspace.root_path()
        elif os.path.isabs(expanded):
            return os.path.normpath(expanded)
        elif parent_template:
            absolute_file = self.workspace.to_absolute_path(file_path)
            base_dir = os.path.dirname(os.path.dirname(absolute_file))
        else:
            base_dir = self.workspace.root_path()
        if escape:
            base_dir = glob.escape(base_dir)
        return os.path.join(base_dir, os.path.normpath(expanded))

    def expand_for_file(self, template: str, file_path: str, escape: bool = True) -> str:
        """Expand and anchor template for one file."""
        return self.anchor(template, expand(template, file_path), file_path, escape)

    def resolve_against_files(self, templates: Iterable[str], files: Iterable[str]) -> List[str]:
        """Resolve templates against every candidate file.

        Every template is expanded per file and glob-resolved; matches that are
        ignored or missing on disk are dropped.

        Returns:
            Unique root-relative forward-slash paths, in discovery order.
        """
        template_list = list(templates)
        candidate_files = list(files)
        found: Dict[str, None] = {}
        for template in template_list:
            for file_path in candidate_files:
                pattern = self.expand_for_file(template, file_path)
                matches = sorted(glob.glob(pattern, recursive=True))
                for match in self.ignore_set.filter(matches):
                    if os.path.exists(match):
                        found[self.workspace.to_linux_relative_path(match)] = None
        if found:
            logger.debug(f"Templates {template_list} matched {len(found)} files")
        return list(found)
