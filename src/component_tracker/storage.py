# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Storage abstraction for the tracking index ("bit-map").

The tracking index maps component ids to their files and metadata. The add
pipeline only talks to the TrackingIndex interface, so the backend can change
without touching business logic.

Components:
- TrackingIndex: Abstract interface for index backends
- InMemoryTrackingIndex: dict-backed implementation with an owner-by-path lookup
- BitMapFile: InMemoryTrackingIndex persisted as JSON at the workspace root
- IndexExport: Type definition for the export format
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from component_tracker.models import (
    ComponentIdentity,
    ComponentOrigin,
    ComponentRecord,
    FileEntry,
    merge_files,
    normalize_to_linux,
)

logger = logging.getLogger(__name__)

IndexExport = Dict[str, Any]

BITMAP_SCHEMA_VERSION = 1

# Files and environment directories written into a component's config dir
CONFIG_FILES = ("bit.json", "package.json")
ENV_DIR_NAMES = ("compiler", "tester")


class TrackingIndex(ABC):
    """Abstract interface of the tracking index.

    Lookups and writes are guarded by `lock`, a re-entrant lock callers can
    hold to run a read-check-write sequence against a consistent snapshot.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()

    @abstractmethod
    def get_by_identity(self, id_str: str, bare_match: bool = True) -> Optional[ComponentIdentity]:
        """Find the recorded identity matching an id string.

        Args:
            id_str: Id as typed by a user, with or without scope and version
            bare_match: Also match on namespace and name alone

        Returns:
            The recorded identity (with its scope and version) or None.
        """

    @abstractmethod
    def get_owner_of_path(
        self, relative_path: str, case_sensitive: bool = False
    ) -> Optional[ComponentIdentity]:
        """Return the identity owning a root-relative file path, if any."""

    @abstractmethod
    def get_record(self, identity: ComponentIdentity) -> Optional[ComponentRecord]:
        """Return the record of a recorded identity, if any."""

    @abstractmethod
    def insert_or_merge_component(
        self,
        identity: ComponentIdentity,
        files: List[FileEntry],
        main_file: Optional[str] = None,
        track_dir: Optional[str] = None,
        origin: str = ComponentOrigin.AUTHORED,
        override: bool = False,
    ) -> ComponentRecord:
        """Insert a new component or merge files into an existing one.

        With override=True the file list of an existing record is replaced.
        """

    @abstractmethod
    def insert_files_only(self, identity: ComponentIdentity, files: List[FileEntry]) -> ComponentRecord:
        """Add files to a component without touching its other metadata."""

    @abstractmethod
    def list_components(self, origin: Optional[str] = None) -> Dict[str, ComponentRecord]:
        """Map id strings to records, optionally filtered by origin."""

    @abstractmethod
    def list_ignored_dirs_and_files(self, root_path: str) -> Dict[str, List[str]]:
        """Config dirs and files of tracked components, relative to root_path."""

    @abstractmethod
    def add_record(self, record: ComponentRecord) -> None:
        """Store a complete record as-is (used when importing components)."""

    @abstractmethod
    def export(self) -> IndexExport:
        """Export the index to a JSON-compatible dict."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every record."""


def infer_main_file(identity: ComponentIdentity, files: List[FileEntry]) -> Optional[str]:
    """Pick a main file when none was given.

    Order: the only non-test file, then the shallowest index.*, then a file
    named after the component.
    """
    sources = [entry for entry in files if not entry.test] or files
    if len(sources) == 1:
        return sources[0].relative_path
    by_depth = sorted(sources, key=lambda entry: (entry.relative_path.count("/"), entry.relative_path))
    for entry in by_depth:
        if entry.name.split(".", 1)[0] == "index":
            return entry.relative_path
    for entry in by_depth:
        if entry.name.split(".", 1)[0] == identity.name:
            return entry.relative_path
    return None


def _is_under(path: str, directory: str) -> bool:
    directory = directory.rstrip("/")
    return path == directory or path.startswith(directory + "/")


class InMemoryTrackingIndex(TrackingIndex):
    """In-memory tracking index.

    Data Structure:
    - _records: id string -> ComponentRecord
    - _by_path: relative file path -> id string, for O(1) owner lookups
    """

    def __init__(self, records: Optional[Iterable[ComponentRecord]] = None) -> None:
        super().__init__()
        self._records: Dict[str, ComponentRecord] = {}
        self._by_path: Dict[str, str] = {}
        self.dirty = False
        for record in records or []:
            self.add_record(record)
        self.dirty = False

    def _key_of(self, identity: ComponentIdentity) -> Optional[str]:
        key = identity.to_string()
        if key in self._records:
            return key
        for stored_key, record in self._records.items():
            if record.identity.bare_equals(identity):
                return stored_key
        return None

    def _index_files(self, key: str, files: List[FileEntry]) -> None:
        for entry in files:
            self._by_path[entry.relative_path] = key

    def _unindex_files(self, key: str, files: List[FileEntry]) -> None:
        for entry in files:
            if self._by_path.get(entry.relative_path) == key:
                del self._by_path[entry.relative_path]

    def get_by_identity(self, id_str: str, bare_match: bool = True) -> Optional[ComponentIdentity]:
        with self.lock:
            records = list(self._records.values())
            for record in records:
                if record.identity.to_string() == id_str:
                    return record.identity
            if not bare_match:
                return None
            for record in records:
                identity = record.identity
                without_scope = identity.to_string_without_scope_and_version()
                forms = {
                    identity.to_string_without_version(),
                    without_scope,
                    f"{without_scope}@{identity.version}" if identity.version else without_scope,
                }
                if id_str in forms:
                    return identity
            try:
                wanted = ComponentIdentity.parse(id_str)
            except ValueError:
                return None
            for record in records:
                if record.identity.bare_equals(wanted):
                    return record.identity
            return None

    def get_owner_of_path(
        self, relative_path: str, case_sensitive: bool = False
    ) -> Optional[ComponentIdentity]:
        relative_path = normalize_to_linux(relative_path)
        with self.lock:
            key = self._by_path.get(relative_path)
            if key is None and not case_sensitive:
                lowered = relative_path.lower()
                for stored_path, stored_key in self._by_path.items():
                    if stored_path.lower() == lowered:
                        key = stored_key
                        break
            if key is None:
                return None
            return self._records[key].identity

    def get_record(self, identity: ComponentIdentity) -> Optional[ComponentRecord]:
        with self.lock:
            key = self._key_of(identity)
            return self._records[key] if key is not None else None

    def _claim_files(self, key: str, files: List[FileEntry]) -> None:
        """Move files away from any other component that owns them."""
        for entry in files:
            owner_key = self._by_path.get(entry.relative_path)
            if owner_key is None or owner_key == key:
                continue
            owner = self._records[owner_key]
            owner.files = [f for f in owner.files if f.relative_path != entry.relative_path]
            del self._by_path[entry.relative_path]
            logger.debug(f"File {entry.relative_path} moved from {owner_key} to {key}")
            if not owner.files:
                logger.info(f"Component {owner_key} has no files left, removing it")
                del self._records[owner_key]

    def insert_or_merge_component(
        self,
        identity: ComponentIdentity,
        files: List[FileEntry],
        main_file: Optional[str] = None,
        track_dir: Optional[str] = None,
        origin: str = ComponentOrigin.AUTHORED,
        override: bool = False,
    ) -> ComponentRecord:
        main_file = normalize_to_linux(main_file) if main_file else None
        track_dir = normalize_to_linux(track_dir) if track_dir else None
        with self.lock:
            key = self._key_of(identity)
            existing = self._records.get(key) if key is not None else None
            if existing is None:
                record = ComponentRecord(identity=identity, files=merge_files(files), origin=origin)
                key = identity.to_string()
                self._records[key] = record
            else:
                record = existing
                self._unindex_files(key, record.files)
                record.files = merge_files(files) if override else merge_files(record.files, files)
            self._claim_files(key, record.files)
            self._index_files(key, record.files)

            paths = record.file_paths()
            if main_file and main_file in paths:
                record.main_file = main_file
            elif record.main_file not in paths:
                record.main_file = infer_main_file(record.identity, record.files)

            candidate_dir = track_dir or record.track_dir
            if candidate_dir and all(_is_under(path, candidate_dir) for path in paths):
                record.track_dir = candidate_dir
            else:
                record.track_dir = None

            self.dirty = True
            logger.debug(f"Recorded {key} with {len(record.files)} files")
            return record

    def insert_files_only(self, identity: ComponentIdentity, files: List[FileEntry]) -> ComponentRecord:
        with self.lock:
            key = self._key_of(identity)
            if key is None:
                return self.insert_or_merge_component(identity, files)
            record = self._records[key]
            record.files = merge_files(record.files, files)
            self._claim_files(key, record.files)
            self._index_files(key, record.files)
            self.dirty = True
            return record

    def list_components(self, origin: Optional[str] = None) -> Dict[str, ComponentRecord]:
        with self.lock:
            return {
                key: record
                for key, record in self._records.items()
                if origin is None or record.origin == origin
            }

    def list_ignored_dirs_and_files(self, root_path: str) -> Dict[str, List[str]]:
        ignore_list: Dict[str, List[str]] = {"dirs": [], "files": []}
        with self.lock:
            for record in self._records.values():
                if not record.config_dir:
                    continue
                config_dir = normalize_to_linux(record.config_dir).rstrip("/")
                for name in CONFIG_FILES:
                    ignore_list["files"].append(f"{config_dir}/{name}")
                for env in ENV_DIR_NAMES:
                    env_dir = f"{config_dir}/{env}"
                    if os.path.isdir(os.path.join(root_path, env_dir)):
                        ignore_list["dirs"].append(env_dir)
        return ignore_list

    def add_record(self, record: ComponentRecord) -> None:
        with self.lock:
            key = record.identity.to_string()
            previous = self._records.get(key)
            if previous is not None:
                self._unindex_files(key, previous.files)
            self._records[key] = record
            self._index_files(key, record.files)
            self.dirty = True

    def export(self) -> IndexExport:
        with self.lock:
            return {
                "version": BITMAP_SCHEMA_VERSION,
                "components": {
                    key: record.to_dict() for key, record in sorted(self._records.items())
                },
            }

    def clear(self) -> None:
        with self.lock:
            self._records.clear()
            self._by_path.clear()
            self.dirty = True


class BitMapFile(InMemoryTrackingIndex):
    """Tracking index persisted as JSON.

    The file is read once on construction and written by write() only when the
    index changed.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            logger.debug(f"No tracking index at {self.path}, starting empty")
            return
        with open(self.path, encoding="utf-8") as f:
            payload = json.load(f)
        if not isinstance(payload, dict) or not isinstance(payload.get("components"), dict):
            raise ValueError(f"Tracking index {self.path} is malformed")
        version = payload.get("version", BITMAP_SCHEMA_VERSION)
        if version != BITMAP_SCHEMA_VERSION:
            raise ValueError(f"Unsupported tracking index version {version} in {self.path}")
        for id_str, data in payload["components"].items():
            self.add_record(ComponentRecord.from_dict(id_str, data))
        self.dirty = False
        logger.info(f"Loaded {len(self._records)} components from {self.path}")

    def write(self) -> bool:
        """Persist the index if it changed. Returns True when written."""
        with self.lock:
            if not self.dirty:
                return False
            tmp_path = self.path.with_name(self.path.name + ".tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(self.export(), f, indent=2, sort_keys=True)
                f.write("\n")
            os.replace(tmp_path, self.path)
            self.dirty = False
            logger.info(f"Wrote {len(self._records)} components to {self.path}")
            return True
