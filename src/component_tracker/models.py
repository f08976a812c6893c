# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Core data models for component tracking.

This module defines the data structures passed through the add pipeline:
- ComponentOrigin: Provenance tags of tracked components
- FileEntry: One file of a component, keyed by its root-relative path
- ComponentIdentity: Structured component id (scope/namespace/name@version)
- AddRequest: Input of a single add invocation
- ResolvedComponent: A component after path expansion and id resolution
- AddResult / AddActionResults: Output handed back to callers
- ComponentRecord: A record of the tracking index

All models serialize to JSON-compatible primitives.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from component_tracker.errors import InvalidAddRequest

logger = logging.getLogger(__name__)

VERSION_DELIMITER = "@"
ID_DELIMITER = "/"

_VALID_CHUNK = re.compile(r"^[$\-_!a-z0-9]+$")
_CAMEL_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_INVALID_CHUNK_CHARS = re.compile(r"[^$\-_!a-z0-9]+")


class ComponentOrigin:
    """Provenance of a tracked component.

    Design: Using class constants (not Enum) for JSON-compatible strings.
    """

    AUTHORED = "authored"  # created in this workspace
    IMPORTED = "imported"  # brought in from a remote scope
    NESTED = "nested"  # transitive dependency, not directly addressable

    ALL = (AUTHORED, IMPORTED, NESTED)


def normalize_to_linux(path: str) -> str:
    """Convert a host path into forward-slash form."""
    return path.replace("\\", "/")


def get_valid_id_chunk(chunk: str) -> str:
    """Turn an arbitrary path segment into a valid id chunk.

    Examples: "MyButton" -> "my-button", "utils.v2" -> "utilsv2".
    """
    if _VALID_CHUNK.match(chunk):
        return chunk
    chunk = chunk.replace(".", "")
    chunk = _CAMEL_BOUNDARY.sub(r"\1-\2", chunk).lower()
    chunk = _INVALID_CHUNK_CHARS.sub("-", chunk)
    return chunk


@dataclass(frozen=True)
class FileEntry:
    """A file tracked as part of a component.

    relative_path is relative to the workspace root and always uses forward slashes.
    """

    relative_path: str
    test: bool = False
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "relative_path", normalize_to_linux(self.relative_path))
        if not self.name:
            object.__setattr__(self, "name", self.relative_path.rsplit("/", 1)[-1])

    def as_test(self) -> "FileEntry":
        return FileEntry(relative_path=self.relative_path, test=True, name=self.name)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        return {"relativePath": self.relative_path, "test": self.test, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileEntry":
        """Deserialize from JSON-compatible dict."""
        return cls(
            relative_path=data["relativePath"],
            test=bool(data.get("test", False)),
            name=data.get("name", ""),
        )


def merge_files(*file_lists: List[FileEntry]) -> List[FileEntry]:
    """Union file lists keyed by relative path.

    First occurrence keeps its position; the test flag is OR-ed across duplicates.
    """
    merged: Dict[str, FileEntry] = {}
    for files in file_lists:
        for entry in files:
            existing = merged.get(entry.relative_path)
            if existing is None:
                merged[entry.relative_path] = entry
            elif entry.test and not existing.test:
                merged[entry.relative_path] = existing.as_test()
    return list(merged.values())


@dataclass(frozen=True)
class ComponentIdentity:
    """Stable identity of a component.

    String form: [scope/]namespace/name[@version]. Two identities are "bare equal"
    when namespace and name match, regardless of scope and version.
    """

    name: str
    namespace: Optional[str] = None
    scope: Optional[str] = None
    version: Optional[str] = None

    @classmethod
    def parse(cls, id_str: str, has_scope: bool = False) -> "ComponentIdentity":
        """Parse an id string.

        Args:
            id_str: String such as "ui/button" or "my-scope/ui/button@0.0.1"
            has_scope: Whether the first segment is a scope

        Raises:
            ValueError: If the id string has no name
        """
        version: Optional[str] = None
        bare = id_str.strip()
        if VERSION_DELIMITER in bare:
            bare, version = bare.rsplit(VERSION_DELIMITER, 1)
            version = version or None
        parts = [part for part in bare.split(ID_DELIMITER) if part]
        if not parts:
            raise ValueError(f"Invalid component id: {id_str!r}")
        scope: Optional[str] = None
        if has_scope and len(parts) > 2:
            scope = parts.pop(0)
        name = parts[-1]
        namespace = ID_DELIMITER.join(parts[:-1]) or None
        return cls(name=name, namespace=namespace, scope=scope, version=version)

    @classmethod
    def from_path_chunks(cls, namespace: Optional[str], name: str) -> "ComponentIdentity":
        """Build an identity from path segments, normalizing each chunk."""
        valid_namespace = get_valid_id_chunk(namespace) if namespace else None
        return cls(name=get_valid_id_chunk(name), namespace=valid_namespace or None)

    @staticmethod
    def version_from_string(id_str: str) -> Optional[str]:
        if VERSION_DELIMITER not in id_str:
            return None
        return id_str.rsplit(VERSION_DELIMITER, 1)[1] or None

    def has_version(self) -> bool:
        return bool(self.version)

    def with_version(self, version: Optional[str]) -> "ComponentIdentity":
        return ComponentIdentity(
            name=self.name, namespace=self.namespace, scope=self.scope, version=version
        )

    def to_string_without_scope_and_version(self) -> str:
        if self.namespace:
            return f"{self.namespace}{ID_DELIMITER}{self.name}"
        return self.name

    def to_string_without_version(self) -> str:
        bare = self.to_string_without_scope_and_version()
        if self.scope:
            return f"{self.scope}{ID_DELIMITER}{bare}"
        return bare

    def to_string(self) -> str:
        without_version = self.to_string_without_version()
        if self.version:
            return f"{without_version}{VERSION_DELIMITER}{self.version}"
        return without_version

    def bare_equals(self, other: Optional["ComponentIdentity"]) -> bool:
        if other is None:
            return False
        return self.namespace == other.namespace and self.name == other.name

    def __str__(self) -> str:
        return self.to_string()


@dataclass
class AddRequest:
    """Input of a single add invocation.

    Combinations are validated at construction time so the pipeline never
    sees an inconsistent request.
    """

    component_paths: List[str] = field(default_factory=list)
    id: Optional[str] = None
    main: Optional[str] = None
    namespace: Optional[str] = None
    tests: List[str] = field(default_factory=list)
    exclude: List[str] = field(default_factory=list)
    override: bool = False
    track_dir_feature: Optional[bool] = None
    origin: str = ComponentOrigin.AUTHORED
    configured_consumer: bool = False

    def __post_init__(self) -> None:
        self.component_paths = list(dict.fromkeys(self.component_paths))
        self.tests = [test for test in self.tests if test]
        self.exclude = [pattern for pattern in self.exclude if pattern]
        if self.origin not in ComponentOrigin.ALL:
            raise InvalidAddRequest(f"unknown origin '{self.origin}'")
        if self.origin == ComponentOrigin.NESTED:
            raise InvalidAddRequest("nested components cannot be added directly")
        if self.origin == ComponentOrigin.IMPORTED and not self.id:
            raise InvalidAddRequest("an id is required when adding imported components")
        if not self.component_paths and not (self.tests and self.id):
            raise InvalidAddRequest("at least one component path is required")
        if self.id:
            try:
                ComponentIdentity.parse(self.id)
            except ValueError as e:
                raise InvalidAddRequest(str(e)) from e

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AddRequest":
        """Build a request from camelCase or snake_case keys."""

        def pick(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data and data[key] is not None:
                    return data[key]
            return default

        return cls(
            component_paths=list(pick("componentPaths", "component_paths", "paths", default=[])),
            id=pick("id"),
            main=pick("main"),
            namespace=pick("namespace"),
            tests=list(pick("tests", default=[])),
            exclude=list(pick("exclude", default=[])),
            override=bool(pick("override", default=False)),
            track_dir_feature=pick("trackDirFeature", "track_dir_feature"),
            origin=pick("origin", default=ComponentOrigin.AUTHORED),
            configured_consumer=bool(pick("configuredConsumer", "configured_consumer", default=False)),
        )


@dataclass
class ResolvedComponent:
    """A component resolved from one or more paths, ready for the index.

    track_dir is only set when exactly one directory was added by its author
    with no exclusions.
    """

    identity: ComponentIdentity
    files: List[FileEntry] = field(default_factory=list)
    main_file: Optional[str] = None
    track_dir: Optional[str] = None

    def file_paths(self) -> List[str]:
        return [entry.relative_path for entry in self.files]


@dataclass
class AddResult:
    """A component written to the index by an add invocation."""

    id: str
    files: List[FileEntry]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "files": [entry.to_dict() for entry in self.files]}


@dataclass
class AddActionResults:
    """Output of one add invocation.

    warnings maps an owning id to the files that stayed with it instead of
    moving to the newly added component.
    """

    added_components: List[AddResult] = field(default_factory=list)
    warnings: Dict[str, List[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "addedComponents": [added.to_dict() for added in self.added_components],
            "warnings": {owner: list(files) for owner, files in self.warnings.items()},
        }


@dataclass
class ComponentRecord:
    """A component as recorded in the tracking index."""

    identity: ComponentIdentity
    files: List[FileEntry] = field(default_factory=list)
    origin: str = ComponentOrigin.AUTHORED
    main_file: Optional[str] = None
    root_dir: Optional[str] = None
    track_dir: Optional[str] = None
    config_dir: Optional[str] = None
    # Source paths of dependencies, relative to root_dir
    dependency_sources: List[str] = field(default_factory=list)

    def file_paths(self) -> List[str]:
        return [entry.relative_path for entry in self.files]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict."""
        result: Dict[str, Any] = {
            "files": [entry.to_dict() for entry in self.files],
            "origin": self.origin,
        }
        if self.main_file is not None:
            result["mainFile"] = self.main_file
        if self.root_dir is not None:
            result["rootDir"] = self.root_dir
        if self.track_dir is not None:
            result["trackDir"] = self.track_dir
        if self.config_dir is not None:
            result["configDir"] = self.config_dir
        if self.dependency_sources:
            result["dependencySources"] = list(self.dependency_sources)
        return result

    @classmethod
    def from_dict(cls, id_str: str, data: Dict[str, Any]) -> "ComponentRecord":
        """Deserialize from JSON-compatible dict keyed by its id string."""
        return cls(
            identity=ComponentIdentity.parse(id_str, has_scope=True),
            files=[FileEntry.from_dict(item) for item in data.get("files", [])],
            origin=data.get("origin", ComponentOrigin.AUTHORED),
            main_file=data.get("mainFile"),
            root_dir=data.get("rootDir"),
            track_dir=data.get("trackDir"),
            config_dir=data.get("configDir"),
            dependency_sources=list(data.get("dependencySources", [])),
        )
