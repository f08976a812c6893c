# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for PathExpander."""

import pytest

from component_tracker.config import Config
from component_tracker.errors import PathsNotExist
from component_tracker.ignore import IgnoreSet
from component_tracker.path_expander import PathExpander, PathStat, has_glob_magic
from component_tracker.storage import InMemoryTrackingIndex
from component_tracker.workspace import Workspace


@pytest.fixture
def workspace(tmp_path):
    for relative in ("src/a/a.js", "src/a/nested/deep.js", "src/a/.hidden.js", "src/b/b.js"):
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("// source\n")
    (tmp_path / "src" / "a" / "dist").mkdir()
    (tmp_path / "src" / "a" / "dist" / "bundle.js").write_text("// built\n")
    config = Config(config_path=tmp_path / "missing.yml")
    return Workspace(tmp_path, config, InMemoryTrackingIndex())


def make_expander(workspace, patterns=()):
    return PathExpander(workspace, IgnoreSet(workspace.root_path(), patterns))


def test_has_glob_magic():
    assert has_glob_magic("src/*")
    assert has_glob_magic("src/**/a.js")
    assert not has_glob_magic("src/a")


class TestValidate:
    """Tests for PathExpander.validate."""

    def test_classifies_files_and_directories(self, workspace):
        expander = make_expander(workspace)
        directory = workspace.to_absolute_path("src/a")
        file_path = workspace.to_absolute_path("src/b/b.js")

        stats = expander.validate([directory, file_path])

        assert stats == {directory: PathStat(is_dir=True), file_path: PathStat(is_dir=False)}

    def test_collects_every_missing_path(self, workspace):
        expander = make_expander(workspace)
        missing = [workspace.to_absolute_path("nope.js"), workspace.to_absolute_path("gone")]

        with pytest.raises(PathsNotExist) as exc_info:
            expander.validate([workspace.to_absolute_path("src/a")] + missing)

        assert exc_info.value.paths == missing


def test_missing_test_files_skips_templates_and_globs(workspace):
    expander = make_expander(workspace)
    missing = expander.missing_test_files(
        ["src/a/a.js", "src/a/missing.test.js", "{PARENT}/{FILE_NAME}.test.{EXT}", "src/**/*.test.js"]
    )
    assert missing == ["src/a/missing.test.js"]


class TestExpand:
    """Tests for glob expansion and ignore filtering."""

    def test_glob_paths_are_sorted_and_deduplicated(self, workspace):
        expander = make_expander(workspace)
        pattern = workspace.to_absolute_path("src/*")
        literal = workspace.to_absolute_path("src/a")

        paths = expander.glob_paths([pattern, literal])

        assert paths == [workspace.to_absolute_path("src/a"), workspace.to_absolute_path("src/b")]

    def test_missing_literal_paths_are_dropped(self, workspace):
        expander = make_expander(workspace)
        assert expander.glob_paths([workspace.to_absolute_path("nope")]) == []

    def test_expand_keeps_ignored_diff(self, workspace):
        expander = make_expander(workspace, ["src/b"])

        expansion = expander.expand([workspace.to_absolute_path("src/*")])

        assert expansion.resolved == [workspace.to_absolute_path("src/a")]
        assert expansion.ignored == [workspace.to_absolute_path("src/b")]
        assert len(expansion.unfiltered) == 2


class TestDirectoryFiles:
    """Tests for directory enumeration."""

    def test_lists_files_recursively_skipping_dotfiles(self, workspace):
        expander = make_expander(workspace)
        files = expander.directory_files(workspace.to_absolute_path("src/a"))
        assert files == ["src/a/a.js", "src/a/dist/bundle.js", "src/a/nested/deep.js"]

    def test_prunes_ignored_directories(self, workspace):
        expander = make_expander(workspace, ["dist/"])
        files = expander.directory_files(workspace.to_absolute_path("src/a"))
        assert files == ["src/a/a.js", "src/a/nested/deep.js"]

    def test_accepts_root_relative_directory(self, workspace):
        expander = make_expander(workspace)
        assert expander.directory_files("src/b") == ["src/b/b.js"]
