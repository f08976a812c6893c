# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""AddComponents - resolves user paths into components and records them.

One AddComponents instance serves one add request:
1. Build the ignore rules (project ignore file, dist dirs of imported
   components, config files, resolved exclude patterns)
2. Glob-expand the component paths and classify each as file or directory
3. Multiple paths without an id become one component per path; otherwise
   all paths form a single component
4. Resolve every component: enumerate files, attach test files, resolve the
   main file, derive the id
5. Drop excluded files and empty components, reject duplicate ids
6. Reconcile every component with the tracking index and record it

Resolution (step 4) runs on a worker pool. Reconciliation (step 6) runs
afterwards, one component at a time, holding the index lock.
"""

import logging
import os
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from component_tracker.concurrency import run_tasks_fail_fast
from component_tracker.dsl import DslMatcher, is_dsl
from component_tracker.errors import (
    DuplicateIds,
    EmptyDirectory,
    ExcludedMainFile,
    FileSystemAccessError,
    IncorrectIdForImportedComponent,
    MainFileIsDir,
    MissingComponentIdForImportedComponent,
    NoFiles,
    PathsNotExist,
    TestIsDirectory,
)
from component_tracker.identity import ComponentIdResolver, candidate_id_from_path
from component_tracker.ignore import IgnoreSet, load_ignore_file
from component_tracker.models import (
    AddActionResults,
    AddRequest,
    AddResult,
    ComponentIdentity,
    ComponentOrigin,
    ComponentRecord,
    FileEntry,
    ResolvedComponent,
    merge_files,
)
from component_tracker.path_expander import PathExpander, PathStat, has_glob_magic
from component_tracker.workspace import Workspace

logger = logging.getLogger(__name__)

Warnings = Dict[str, List[str]]


def is_auto_generated_file(path: str, stamp: str) -> bool:
    """Return True when the first line of a file carries the generated-file stamp."""
    if not os.path.isfile(path):
        return False
    try:
        with open(path, encoding="utf-8", errors="ignore") as f:
            first_line = f.readline()
    except OSError as e:
        raise FileSystemAccessError(path, e) from e
    return stamp in first_line


def validate_no_duplicate_ids(components: List[ResolvedComponent]) -> None:
    """Reject an invocation where two components resolved to the same id.

    Raises:
        DuplicateIds: With every offending id and the files of its components.
    """
    grouped: Dict[str, List[List[str]]] = defaultdict(list)
    for component in components:
        key = component.identity.to_string_without_scope_and_version()
        grouped[key].append(component.file_paths())
    duplicates = {key: groups for key, groups in grouped.items() if len(groups) > 1}
    if duplicates:
        raise DuplicateIds(duplicates)


class AddComponents:
    """Runs one add request against a workspace."""

    def __init__(self, workspace: Workspace, request: AddRequest):
        """Initialize the add operation.

        Args:
            workspace: Open workspace (root, config and tracking index)
            request: Validated add request
        """
        self.workspace = workspace
        self.request = request
        self.config = workspace.config
        self.tracking_index = workspace.tracking_index
        self.configured_consumer = request.configured_consumer
        self.component_paths = [self._absolute_input(path) for path in request.component_paths]
        self.id = request.id
        self.main = request.main
        self.namespace = request.namespace
        self.tests = list(request.tests)
        self.exclude = list(request.exclude)
        self.override = request.override
        self.track_dir_feature = (
            request.track_dir_feature
            if request.track_dir_feature is not None
            else self.config.track_dir_feature
        )
        self.origin = request.origin
        self.id_resolver = ComponentIdResolver(self.tracking_index)
        self.ignore_set = IgnoreSet(self.workspace.root_path())
        self._set_ignore_set(self.ignore_set)

    def _absolute_input(self, path: str) -> str:
        """Paths of a configured workspace are relative to its root, others to cwd."""
        if os.path.isabs(path):
            return os.path.normpath(path)
        if self.configured_consumer:
            return self.workspace.to_absolute_path(path)
        return os.path.abspath(path)

    def _set_ignore_set(self, ignore_set: IgnoreSet) -> None:
        self.ignore_set = ignore_set
        self.dsl = DslMatcher(self.workspace, ignore_set)
        self.expander = PathExpander(self.workspace, ignore_set)

    def get_ignore_list(self) -> Tuple[List[str], List[str], List[str], List[str]]:
        """Collect ignore sources: (patterns, dist dirs, config dirs, config files)."""
        root = self.workspace.root_path()
        patterns = load_ignore_file(Path(root) / self.config.ignore_file)
        patterns.extend(self.config.ignore_patterns)
        imported = self.tracking_index.list_components(ComponentOrigin.IMPORTED)
        dist_dirs = [
            f"{record.root_dir.rstrip('/')}/{self.config.dist_dirname}"
            for record in imported.values()
            if record.root_dir
        ]
        configs = self.tracking_index.list_ignored_dirs_and_files(root)
        return patterns, dist_dirs, configs["dirs"], configs["files"]

    def _build_ignore_set(self) -> None:
        patterns, dist_dirs, config_dirs, config_files = self.get_ignore_list()
        self._set_ignore_set(
            IgnoreSet.build(
                self.workspace.root_path(),
                base_patterns=patterns,
                generated_dist_dirs=dist_dirs,
                config_dirs=config_dirs,
                config_files=config_files,
                any_depth=self.configured_consumer,
            )
        )

    def get_files_according_to_dsl(self, files: List[str], patterns: List[str]) -> List[str]:
        """Files matched by patterns (paths or templates), root-relative."""
        if not patterns:
            return []
        return self.dsl.resolve_against_files(patterns, files)

    def _merge_test_files_with_files(self, files: List[FileEntry]) -> List[FileEntry]:
        if not self.tests:
            return files
        test_paths = self.get_files_according_to_dsl(
            [entry.relative_path for entry in files], self.tests
        )
        test_entries = []
        for test_path in test_paths:
            if os.path.isdir(self.workspace.to_absolute_path(test_path)):
                raise TestIsDirectory(test_path)
            test_entries.append(FileEntry(relative_path=test_path, test=True))
        return merge_files(files, test_entries)

    def _add_main_file_to_files(self, files: List[FileEntry]) -> Optional[str]:
        """Resolve the main file and make sure it is part of files.

        A template main file is expanded against every file; the last match wins.

        Returns:
            Root-relative path of the main file, or None when none was given.
        """
        if not self.main:
            return None

        if is_dsl(self.main):
            main_file: Optional[str] = None
            for entry in list(files):
                generated = self.dsl.expand_for_file(self.main, entry.relative_path, escape=False)
                generated_relative = self.workspace.to_linux_relative_path(generated)
                if any(f.relative_path == generated_relative for f in files):
                    main_file = generated_relative
                elif os.path.exists(generated):
                    if self.ignore_set.is_ignored(generated):
                        raise ExcludedMainFile(generated_relative)
                    files.append(FileEntry(relative_path=generated_relative))
                    main_file = generated_relative
            if main_file is None:
                logger.debug(f"Main file template {self.main} matched no file")
                return None
            main_path = self.workspace.to_absolute_path(main_file)
        else:
            main_path = self._absolute_input(self.main)

        main_relative = self.workspace.to_linux_relative_path(main_path)
        if not os.path.exists(main_path):
            raise PathsNotExist([self.main])
        if self.ignore_set.is_ignored(main_path):
            raise ExcludedMainFile(main_relative)
        if os.path.isdir(main_path):
            raise MainFileIsDir(main_relative)
        if not any(entry.relative_path == main_relative for entry in files):
            files.append(FileEntry(relative_path=main_relative))
        return main_relative

    def _resolve_path(
        self, identity: ComponentIdentity, path: str, stat: PathStat, path_count: int
    ) -> ResolvedComponent:
        """Resolve one path of a component into files, main file and track dir."""
        relative_path = self.workspace.to_linux_relative_path(path)
        track_dir: Optional[str] = None
        if stat.is_dir:
            matches = self.expander.directory_files(path)
            if not matches:
                raise EmptyDirectory(relative_path)
            files = [FileEntry(relative_path=match) for match in matches]
            if path_count == 1 and not self.exclude and self.origin == ComponentOrigin.AUTHORED:
                track_dir = relative_path
        else:
            files = [FileEntry(relative_path=relative_path)]

        files = self._merge_test_files_with_files(files)
        main_file = self._add_main_file_to_files(files)
        return ResolvedComponent(
            identity=identity,
            files=files,
            main_file=main_file,
            track_dir=track_dir,
        )

    def _component_identity(self, paths_stats: Dict[str, PathStat]) -> ComponentIdentity:
        """The id typed by the user, or one derived from the first path."""
        if self.id:
            return self.id_resolver.reconcile(self.id, self.id)
        first_path, stat = next(iter(paths_stats.items()))
        candidate = candidate_id_from_path(first_path, stat.is_dir, self.namespace)
        return self.id_resolver.reconcile(candidate, self.id)

    def remove_excluded_files(self, parts: List[ResolvedComponent]) -> None:
        """Drop excluded files; a component whose main file is excluded loses every file."""
        files = [path for part in parts for path in part.file_paths()]
        excluded = set(self.get_files_according_to_dsl(files, self.exclude))
        if not excluded:
            return
        for part in parts:
            if part.main_file and part.main_file in excluded:
                part.files = []
            else:
                part.files = [entry for entry in part.files if entry.relative_path not in excluded]

    def add_one_component(self, paths_stats: Dict[str, PathStat]) -> ResolvedComponent:
        """Resolve all paths of one component and merge them."""
        identity = self._component_identity(paths_stats)
        path_count = len(paths_stats)
        tasks = [
            (lambda p=path, s=stat: self._resolve_path(identity, p, s, path_count))
            for path, stat in paths_stats.items()
        ]
        parts = run_tasks_fail_fast(tasks, max_workers=self.config.max_workers)

        if self.exclude:
            self.remove_excluded_files(parts)

        parts = [part for part in parts if part.files]
        if not parts:
            return ResolvedComponent(identity=identity, files=[])
        if len(parts) == 1:
            return parts[0]
        return ResolvedComponent(
            identity=identity,
            files=merge_files(*(part.files for part in parts)),
            main_file=parts[0].main_file,
            track_dir=None,
        )

    def _is_generated_for_unsupported_files(
        self, relative_path: str, record: Optional[ComponentRecord]
    ) -> bool:
        """Whether a file is a symlink placeholder for a non-source dependency file.

        Non-source files (binaries, images) of dependencies get a symlink inside
        the imported component instead of a link file.
        """
        extension = os.path.splitext(relative_path)[1]
        if extension in self.config.supported_extensions or record is None:
            return False
        root_dir = (record.root_dir or "").rstrip("/")
        source_paths = [
            f"{root_dir}/{source}" if root_dir else source for source in record.dependency_sources
        ]
        return relative_path in source_paths

    def add_or_update_component_in_index(
        self, component: ResolvedComponent
    ) -> Tuple[Optional[AddResult], Warnings]:
        """Reconcile a component with the index and record it.

        Three cases:
        1. a new component, not yet in the index
        2. an existing component gets more files
        3. some files already belong to another component

        Returns:
            The recorded result (None when no file survived) and the warnings
            of files left with their current owner.
        """
        warnings: Warnings = defaultdict(list)
        identity = component.identity
        found_record = self.tracking_index.get_record(identity)
        track_dir = component.track_dir
        kept: List[FileEntry] = []

        for entry in component.files:
            file_path = self.workspace.to_absolute_path(entry.relative_path)
            if is_auto_generated_file(file_path, self.config.auto_generated_stamp):
                continue
            owner = self.tracking_index.get_owner_of_path(
                entry.relative_path, self.config.case_sensitive_paths
            )
            other_owner = (
                owner if owner is not None and owner.to_string() != identity.to_string() else None
            )
            owner_record = self.tracking_index.get_record(owner) if owner is not None else None
            is_imported = (
                found_record is not None and found_record.origin == ComponentOrigin.IMPORTED
            ) or (owner_record is not None and owner_record.origin == ComponentOrigin.IMPORTED)

            if is_imported:
                if not self.id:
                    raise MissingComponentIdForImportedComponent(
                        identity.to_string_without_version()
                    )
                if self._is_generated_for_unsupported_files(entry.relative_path, found_record):
                    continue
                if other_owner is not None:
                    raise IncorrectIdForImportedComponent(
                        other_owner.to_string_without_version(), self.id, entry.relative_path
                    )
                track_dir = None
            elif other_owner is not None:
                warnings[other_owner.to_string()].append(entry.relative_path)
                continue
            kept.append(entry)

        if not kept:
            return None, dict(warnings)
        component.files = kept
        component.track_dir = track_dir
        return self.add_to_index(component), dict(warnings)

    def add_to_index(self, component: ResolvedComponent) -> AddResult:
        if self.track_dir_feature:
            record = self.tracking_index.insert_files_only(component.identity, component.files)
        else:
            record = self.tracking_index.insert_or_merge_component(
                component.identity,
                component.files,
                main_file=component.main_file,
                track_dir=component.track_dir,
                origin=ComponentOrigin.AUTHORED,
                override=self.override,
            )
        return AddResult(id=record.identity.to_string(), files=list(record.files))

    def _expand_component_paths(self) -> Dict[str, PathStat]:
        """Glob-expand the input paths and classify what survives the ignore rules."""
        missing_tests = self.expander.missing_test_files(self.tests)
        if missing_tests:
            raise PathsNotExist(missing_tests)

        unfiltered = self.expander.glob_paths(self.component_paths)

        excluded = self.get_files_according_to_dsl(unfiltered, self.exclude)
        if excluded:
            self._set_ignore_set(self.ignore_set.with_excluded(excluded))

        if self.tests and self.id and not unfiltered:
            test_paths = self.expander.glob_paths(
                [self.workspace.to_absolute_path(test) for test in self.tests if not is_dsl(test)]
            )
            return self.expander.validate(test_paths)

        missing = [
            user_path
            for user_path, path in zip(self.request.component_paths, self.component_paths)
            if not has_glob_magic(path) and not os.path.exists(path)
        ]
        if missing:
            raise PathsNotExist(missing)
        if not unfiltered:
            raise PathsNotExist(list(self.request.component_paths))

        expansion = self.expander.expand(unfiltered)
        if not expansion.resolved:
            raise NoFiles([self.workspace.to_linux_relative_path(p) for p in expansion.ignored])
        return self.expander.validate(expansion.resolved)

    def add(self) -> AddActionResults:
        """Run the add request.

        Returns:
            The recorded components and the warnings of files kept by other ids.
        """
        self._build_ignore_set()
        paths_stats = self._expand_component_paths()

        # Several paths without an id mean one component per path;
        # with an id, all paths form a single component
        is_multiple_components = len(paths_stats) > 1 and not self.id
        if is_multiple_components:
            logger.debug("add - multiple components")
            tests_to_remove = set(self.get_files_according_to_dsl(list(paths_stats), self.tests))
            paths_stats = {
                path: stat
                for path, stat in paths_stats.items()
                if self.workspace.to_linux_relative_path(path) not in tests_to_remove
            }
            tasks = [
                (lambda p=path, s=stat: self.add_one_component({p: s}))
                for path, stat in paths_stats.items()
            ]
            resolved = run_tasks_fail_fast(tasks, max_workers=self.config.max_workers)
        else:
            logger.debug("add - one component")
            resolved = [self.add_one_component(paths_stats)]

        resolved = [component for component in resolved if component.files]
        validate_no_duplicate_ids(resolved)

        added_components: List[AddResult] = []
        warnings: Warnings = {}
        with self.tracking_index.lock:
            for component in resolved:
                added, component_warnings = self.add_or_update_component_in_index(component)
                for owner, files in component_warnings.items():
                    warnings.setdefault(owner, []).extend(files)
                if added is not None:
                    added_components.append(added)

        logger.info(
            f"Added {len(added_components)} components",
            extra={"extra_fields": {"num_components": len(added_components)}},
        )
        return AddActionResults(added_components=added_components, warnings=warnings)
