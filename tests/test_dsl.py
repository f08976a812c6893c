# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for template (DSL) expansion and matching."""

import os
from pathlib import Path

import pytest

from component_tracker.config import Config
from component_tracker.dsl import DslMatcher, calculate_file_info, expand, is_dsl
from component_tracker.ignore import IgnoreSet
from component_tracker.storage import InMemoryTrackingIndex
from component_tracker.workspace import Workspace


@pytest.fixture
def workspace(tmp_path):
    foo = tmp_path / "src" / "foo"
    foo.mkdir(parents=True)
    (foo / "foo.js").write_text("export default 1;\n")
    (foo / "foo.test.js").write_text("test('foo');\n")
    (foo / "bar.js").write_text("export default 2;\n")
    (tmp_path / "test").mkdir()
    (tmp_path / "test" / "foo.spec.js").write_text("test('spec');\n")
    config = Config(config_path=tmp_path / "missing.yml")
    return Workspace(tmp_path, config, InMemoryTrackingIndex())


def test_is_dsl():
    assert is_dsl("{PARENT}/{FILE_NAME}.test.{EXT}")
    assert not is_dsl("src/foo/foo.test.js")
    assert not is_dsl("src/**/*.js")


class TestCalculateFileInfo:
    """Tests for placeholder values."""

    def test_regular_file(self):
        assert calculate_file_info("src/foo/foo.test.js") == {
            "PARENT": "foo",
            "FILE_NAME": "foo.test",
            "FULL_FILE_NAME": "foo.test.js",
            "EXT": "js",
        }

    def test_file_without_extension(self):
        info = calculate_file_info("Makefile")
        assert info["PARENT"] == ""
        assert info["FILE_NAME"] == "Makefile"
        assert info["EXT"] == ""

    def test_dotfile_has_no_extension(self):
        info = calculate_file_info("config/.babelrc")
        assert info["FILE_NAME"] == ".babelrc"
        assert info["EXT"] == ""

    def test_windows_separators(self):
        assert calculate_file_info("src\\foo\\foo.js")["PARENT"] == "foo"


def test_expand_leaves_unknown_placeholders():
    assert expand("{PARENT}/{FILE_NAME}.test.{EXT}", "src/foo/foo.js") == "foo/foo.test.js"
    assert expand("{PARENT}/{UNKNOWN}.js", "src/foo/foo.js") == "foo/{UNKNOWN}.js"


class TestDslMatcher:
    """Tests for DslMatcher.resolve_against_files."""

    def test_parent_template_resolves_next_to_file(self, workspace):
        matcher = DslMatcher(workspace, IgnoreSet(workspace.root_path()))
        matches = matcher.resolve_against_files(
            ["{PARENT}/{FILE_NAME}.test.{EXT}"], ["src/foo/foo.js", "src/foo/bar.js"]
        )
        assert matches == ["src/foo/foo.test.js"]

    def test_other_templates_resolve_from_root(self, workspace):
        matcher = DslMatcher(workspace, IgnoreSet(workspace.root_path()))
        matches = matcher.resolve_against_files(["test/{FILE_NAME}.spec.{EXT}"], ["src/foo/foo.js"])
        assert matches == ["test/foo.spec.js"]

    def test_glob_templates(self, workspace):
        matcher = DslMatcher(workspace, IgnoreSet(workspace.root_path()))
        matches = matcher.resolve_against_files(["{PARENT}/*.test.{EXT}"], ["src/foo/foo.js"])
        assert matches == ["src/foo/foo.test.js"]

    def test_literal_paths_resolve_once(self, workspace):
        matcher = DslMatcher(workspace, IgnoreSet(workspace.root_path()))
        matches = matcher.resolve_against_files(
            ["src/foo/foo.test.js"], ["src/foo/foo.js", "src/foo/bar.js"]
        )
        assert matches == ["src/foo/foo.test.js"]

    def test_ignored_matches_are_dropped(self, workspace):
        matcher = DslMatcher(workspace, IgnoreSet(workspace.root_path(), ["*.test.js"]))
        matches = matcher.resolve_against_files(
            ["{PARENT}/{FILE_NAME}.test.{EXT}"], ["src/foo/foo.js"]
        )
        assert matches == []

    def test_missing_matches_contribute_nothing(self, workspace):
        matcher = DslMatcher(workspace, IgnoreSet(workspace.root_path()))
        assert matcher.resolve_against_files(["{PARENT}/{FILE_NAME}.spec.{EXT}"], ["src/foo/bar.js"]) == []
        assert matcher.resolve_against_files([], ["src/foo/bar.js"]) == []

    def test_parent_template_for_root_level_file(self, workspace):
        root = workspace.root_path()
        (Path(root) / "index.js").write_text("export default 0;\n")
        (Path(root) / "index.test.js").write_text("test('index');\n")
        matcher = DslMatcher(workspace, IgnoreSet(root))

        matches = matcher.resolve_against_files(["{PARENT}/{FILE_NAME}.test.{EXT}"], ["index.js"])

        assert matches == ["index.test.js"]
        assert matcher.expand_for_file("{PARENT}/{FILE_NAME}.test.{EXT}", "index.js") == os.path.join(
            root, "index.test.js"
        )
