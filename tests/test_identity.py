# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for component id derivation and reconciliation."""

import pytest

from component_tracker.errors import NamespaceCollisionWithDependency, VersionShouldBeRemoved
from component_tracker.identity import (
    ComponentIdResolver,
    candidate_id_from_path,
    derive_candidate_identity,
)
from component_tracker.models import ComponentIdentity, ComponentOrigin, ComponentRecord, FileEntry
from component_tracker.storage import InMemoryTrackingIndex


def make_index(*records):
    return InMemoryTrackingIndex(records)


def record(id_str, origin=ComponentOrigin.AUTHORED, files=("x.js",)):
    return ComponentRecord(
        identity=ComponentIdentity.parse(id_str, has_scope=True),
        files=[FileEntry(path) for path in files],
        origin=origin,
    )


class TestDerivation:
    """Tests for deriving ids from paths."""

    def test_directory(self):
        assert derive_candidate_identity("/work/src/utils/button", True) == ("utils", "button")

    def test_file_drops_extension(self):
        assert derive_candidate_identity("/work/src/utils/button.js", False) == ("utils", "button")

    def test_namespace_override(self):
        assert derive_candidate_identity("/work/src/foo", True, "ui") == ("ui", "foo")

    def test_candidate_id_is_normalized(self):
        assert candidate_id_from_path("/work/MyLib/DatePicker.tsx", False) == "my-lib/date-picker"


class TestReconcile:
    """Tests for ComponentIdResolver.reconcile."""

    def test_new_id_is_parsed(self):
        resolver = ComponentIdResolver(make_index())
        identity = resolver.reconcile("src/foo")
        assert identity == ComponentIdentity(name="foo", namespace="src")

    def test_recorded_identity_wins(self):
        index = make_index(record("my-scope/ui/button@0.0.1", ComponentOrigin.IMPORTED))
        resolver = ComponentIdResolver(index)

        identity = resolver.reconcile("ui/button")

        assert identity.scope == "my-scope"
        assert identity.version == "0.0.1"

    def test_version_on_new_id_is_rejected(self):
        resolver = ComponentIdResolver(make_index())
        with pytest.raises(VersionShouldBeRemoved) as exc_info:
            resolver.reconcile("ui/button@1.0.0", "ui/button@1.0.0")
        assert exc_info.value.component_id == "ui/button@1.0.0"

    def test_version_must_match_recorded_version(self):
        index = make_index(record("my-scope/ui/button@0.0.1", ComponentOrigin.IMPORTED))
        resolver = ComponentIdResolver(index)

        assert resolver.reconcile("ui/button@0.0.1", "ui/button@0.0.1").version == "0.0.1"
        with pytest.raises(VersionShouldBeRemoved):
            resolver.reconcile("ui/button@0.0.2", "ui/button@0.0.2")

    def test_nested_dependency_collision(self):
        index = make_index(record("my-scope/utils/is-string@1.0.0", ComponentOrigin.NESTED))
        resolver = ComponentIdResolver(index)

        with pytest.raises(NamespaceCollisionWithDependency):
            resolver.reconcile("utils/is-string")
