# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Component id derivation and reconciliation against the tracking index.

An id is either typed by the user or derived from the last path segments:
- directory src/utils/button -> utils/button
- file src/utils/button.js -> utils/button

Reconciliation replaces the candidate with the recorded identity when one
exists, so scope and version already recorded in the index are preserved.
"""

import logging
import os
from typing import Optional, Tuple

from component_tracker.errors import NamespaceCollisionWithDependency, VersionShouldBeRemoved
from component_tracker.models import VERSION_DELIMITER, ComponentIdentity, ComponentOrigin
from component_tracker.storage import TrackingIndex

logger = logging.getLogger(__name__)


def derive_candidate_identity(
    path: str, is_directory: bool, namespace_override: Optional[str] = None
) -> Tuple[Optional[str], str]:
    """Derive (namespace, name) from a path.

    Args:
        path: File or directory path (relative paths resolve against cwd)
        is_directory: Whether path is a directory
        namespace_override: Namespace given by the user, wins over the path

    Returns:
        For a directory: (parent directory name, directory name).
        For a file: (parent directory name, file name without extension).
    """
    absolute = os.path.abspath(path)
    parent, leaf = os.path.split(absolute)
    parent_name = os.path.basename(parent) or None
    if is_directory:
        name = leaf
    else:
        name = os.path.splitext(leaf)[0] or leaf
    return namespace_override or parent_name, name


def candidate_id_from_path(
    path: str, is_directory: bool, namespace_override: Optional[str] = None
) -> str:
    """Candidate id string for a path, with chunks normalized."""
    namespace, name = derive_candidate_identity(path, is_directory, namespace_override)
    return ComponentIdentity.from_path_chunks(namespace, name).to_string()


class ComponentIdResolver:
    """Reconciles candidate ids with identities recorded in the index."""

    def __init__(self, tracking_index: TrackingIndex):
        self.tracking_index = tracking_index

    def reconcile(self, candidate_id: str, explicit_id: Optional[str] = None) -> ComponentIdentity:
        """Resolve the identity to use for a candidate id string.

        Args:
            candidate_id: Derived or user-typed id string
            explicit_id: The id typed by the user, if any

        Raises:
            NamespaceCollisionWithDependency: The id belongs to a nested dependency
            VersionShouldBeRemoved: A version was given that the index can't vouch for
        """
        existing = self.tracking_index.get_by_identity(candidate_id, bare_match=True)
        if existing is not None:
            record = self.tracking_index.get_record(existing)
            if record is not None and record.origin == ComponentOrigin.NESTED:
                raise NamespaceCollisionWithDependency(existing.to_string())

        if VERSION_DELIMITER in candidate_id:
            requested_version = ComponentIdentity.version_from_string(explicit_id or candidate_id)
            if (
                existing is None
                or not existing.has_version()
                or existing.version != requested_version
            ):
                raise VersionShouldBeRemoved(explicit_id or candidate_id)

        if existing is not None:
            logger.debug(f"Using recorded id {existing} for {candidate_id}")
            return existing
        return ComponentIdentity.parse(candidate_id, has_scope=False).with_version(None)
