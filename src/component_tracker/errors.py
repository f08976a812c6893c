# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Error taxonomy for the add pipeline.

Every failure carries a stable error_type tag plus structured attributes so
callers can branch on the class (or the tag) and render the payload without
parsing messages. All errors are terminal for the affected operation and are
never retried.
"""

from typing import Any, Dict, List, Optional


class TrackingError(Exception):
    """Base class for all add-pipeline failures."""

    error_type = "tracking_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def payload(self) -> Dict[str, Any]:
        """Structured data describing the failure."""
        return {}

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"error_type": self.error_type, "message": self.message}
        result.update(self.payload())
        return result


class InvalidAddRequest(TrackingError):
    """Raised when an add request combines options inconsistently."""

    error_type = "invalid_request"

    def __init__(self, reason: str):
        super().__init__(f"invalid add request: {reason}")
        self.reason = reason

    def payload(self) -> Dict[str, Any]:
        return {"reason": self.reason}


class PathsNotExist(TrackingError):
    """One or more literal input paths are absent."""

    error_type = "paths_not_exist"

    def __init__(self, paths: List[str]):
        super().__init__(f"error: file or directory {', '.join(paths)} was not found.")
        self.paths = list(paths)

    def payload(self) -> Dict[str, Any]:
        return {"paths": self.paths}


class NoFiles(TrackingError):
    """Candidate paths were found but every one of them was ignored."""

    error_type = "no_files"

    def __init__(self, ignored_files: List[str]):
        super().__init__(
            "warning: no files to add, the following files were ignored: "
            + ", ".join(ignored_files)
        )
        self.ignored_files = list(ignored_files)

    def payload(self) -> Dict[str, Any]:
        return {"ignored_files": self.ignored_files}


class EmptyDirectory(TrackingError):
    """A supplied directory holds no files that survive the ignore rules."""

    error_type = "empty_directory"

    def __init__(self, directory: Optional[str] = None):
        location = f" {directory}" if directory else ""
        super().__init__(f"error: the directory{location} is empty, nothing to add")
        self.directory = directory

    def payload(self) -> Dict[str, Any]:
        return {"directory": self.directory}


class DuplicateIds(TrackingError):
    """Two or more components of one invocation resolved to the same id.

    duplicates maps each offending id to the file lists of its components.
    """

    error_type = "duplicate_ids"

    def __init__(self, duplicates: Dict[str, List[List[str]]]):
        details = "; ".join(
            f"{component_id}: {', '.join(sorted(path for files in groups for path in files))}"
            for component_id, groups in sorted(duplicates.items())
        )
        super().__init__(f"unable to add components with the same id ({details})")
        self.duplicates = {key: [list(files) for files in groups] for key, groups in duplicates.items()}

    def payload(self) -> Dict[str, Any]:
        return {"duplicates": self.duplicates}


class MissingComponentIdForImportedComponent(TrackingError):
    """A file owned by an imported component is re-added without an explicit id."""

    error_type = "missing_id_for_imported_file"

    def __init__(self, component_id: str):
        super().__init__(
            f"error: unable to add new files to the component '{component_id}' "
            "without specifying the component id, please use the --id flag"
        )
        self.component_id = component_id

    def payload(self) -> Dict[str, Any]:
        return {"component_id": self.component_id}


class IncorrectIdForImportedComponent(TrackingError):
    """An explicit id does not match the imported owner of a file."""

    error_type = "incorrect_id_for_imported_file"

    def __init__(self, existing_id: str, new_id: str, file_path: str):
        super().__init__(
            f"error: trying to add a file {file_path} to a component-id '{new_id}', "
            f"however, this file already belongs to '{existing_id}'"
        )
        self.existing_id = existing_id
        self.new_id = new_id
        self.file_path = file_path

    def payload(self) -> Dict[str, Any]:
        return {
            "existing_id": self.existing_id,
            "new_id": self.new_id,
            "file_path": self.file_path,
        }


class VersionShouldBeRemoved(TrackingError):
    """A version was given on an id that cannot carry one yet."""

    error_type = "version_must_not_be_specified"

    def __init__(self, component_id: str):
        super().__init__(
            f"please remove the version part from the specified id '{component_id}' and try again"
        )
        self.component_id = component_id

    def payload(self) -> Dict[str, Any]:
        return {"component_id": self.component_id}


class NamespaceCollisionWithDependency(TrackingError):
    """The candidate id collides with a nested (transitively tracked) dependency."""

    error_type = "namespace_collision_with_dependency"

    def __init__(self, component_id: str):
        super().__init__(
            f"one of your dependencies ({component_id}) has already the same namespace and name. "
            "If you're trying to add a new component, please choose a new namespace or name. "
            "If you're trying to update a dependency component, please re-import it individually"
        )
        self.component_id = component_id

    def payload(self) -> Dict[str, Any]:
        return {"component_id": self.component_id}


class ExcludedMainFile(TrackingError):
    """The resolved main file is matched by an ignore or exclude pattern."""

    error_type = "excluded_main_file"

    def __init__(self, main_file: str):
        super().__init__(f"error: main file {main_file} was excluded from the file list")
        self.main_file = main_file

    def payload(self) -> Dict[str, Any]:
        return {"main_file": self.main_file}


class MainFileIsDir(TrackingError):
    """The resolved main file is a directory."""

    error_type = "main_file_is_directory"

    def __init__(self, main_file: str):
        super().__init__(f"error: the main file {main_file} is a directory, please specify a file")
        self.main_file = main_file

    def payload(self) -> Dict[str, Any]:
        return {"main_file": self.main_file}


class TestIsDirectory(TrackingError):
    """A resolved test path is a directory."""

    error_type = "test_file_is_directory"
    # Keep pytest from collecting this class
    __test__ = False

    def __init__(self, test_file: str):
        super().__init__(f"error: the test file {test_file} is a directory, please specify a file")
        self.test_file = test_file

    def payload(self) -> Dict[str, Any]:
        return {"test_file": self.test_file}


class FileSystemAccessError(TrackingError):
    """An unexpected filesystem failure while reading a path."""

    error_type = "filesystem_error"

    def __init__(self, path: str, cause: OSError):
        super().__init__(f"error: failed to access {path}: {cause}")
        self.path = path
        self.cause = cause

    def payload(self) -> Dict[str, Any]:
        return {"path": self.path}
