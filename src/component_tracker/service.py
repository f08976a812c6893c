# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""ComponentTrackingService - entry points for adding components.

The service owns the workspace lifecycle around AddComponents:
- add_one: open the workspace, run one request, close (persist) it
- add_many: open one shared workspace, normalize every request, run all
  requests concurrently, close the workspace once

A failing request aborts the invocation; the workspace is then released
without persisting the index.
"""

import dataclasses
import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from component_tracker.add_components import AddComponents
from component_tracker.concurrency import run_tasks_fail_fast
from component_tracker.config import Config
from component_tracker.models import AddActionResults, AddRequest
from component_tracker.storage import IndexExport, TrackingIndex
from component_tracker.workspace import Workspace

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    return os.path.normpath(path.strip())


def normalize_request(request: AddRequest) -> AddRequest:
    """Normalize the paths, tests and excludes of a batch request."""
    return dataclasses.replace(
        request,
        component_paths=[os.path.normpath(path) for path in request.component_paths],
        tests=[normalize_path(test) for test in request.tests],
        exclude=[normalize_path(pattern) for pattern in request.exclude],
    )


class ComponentTrackingService:
    """Runs add requests against workspaces.

    Args:
        config: Configuration used for every workspace. If None, each
            workspace loads the configuration file at its root.
        index_factory: Builds the tracking index for a workspace root. If
            None, the index persisted at the root is used.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        index_factory: Optional[Callable[[Path], TrackingIndex]] = None,
    ):
        self.config = config
        self.index_factory = index_factory

    def open_workspace(self, root: Optional[Path] = None) -> Workspace:
        """Open the workspace at root (default: current directory)."""
        tracking_index = None
        if self.index_factory is not None:
            tracking_index = self.index_factory(Path(root) if root is not None else Path.cwd())
        return Workspace.open(root, config=self.config, tracking_index=tracking_index)

    def add_one(self, request: AddRequest, root: Optional[Path] = None) -> AddActionResults:
        """Add the components of a single request."""
        with self.open_workspace(root) as workspace:
            return AddComponents(workspace, request).add()

    def add_many(
        self, requests: List[AddRequest], root: Optional[Path] = None
    ) -> List[AddActionResults]:
        """Add the components of several requests in one shared workspace.

        Returns:
            One result per request, in request order.
        """
        with self.open_workspace(root) as workspace:
            logger.debug(
                f"Adding {len(requests)} requests "
                f"({'overridden' if workspace.overridden else 'default'} root)"
            )
            tasks = [
                (lambda r=normalize_request(request): AddComponents(workspace, r).add())
                for request in requests
            ]
            return run_tasks_fail_fast(tasks, max_workers=workspace.config.max_workers)

    def get_tracked_components(self, root: Optional[Path] = None) -> IndexExport:
        """Export the tracking index of a workspace."""
        workspace = self.open_workspace(root)
        try:
            return workspace.tracking_index.export()
        finally:
            workspace.discard()

    def add_one_dict(self, data: Dict[str, Any], root: Optional[Path] = None) -> Dict[str, Any]:
        """Dict-in, dict-out variant of add_one."""
        return self.add_one(AddRequest.from_dict(data), root).to_dict()
