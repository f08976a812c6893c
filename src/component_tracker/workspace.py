# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Workspace context shared by add invocations.

A Workspace binds a root directory, its configuration and its tracking index.
The index is persisted on close(); leaving a `with` block through an exception
discards pending index changes so a failed invocation leaves nothing behind.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from component_tracker.config import Config
from component_tracker.models import normalize_to_linux
from component_tracker.storage import BitMapFile, TrackingIndex

logger = logging.getLogger(__name__)


class Workspace:
    """Root directory, configuration and tracking index of one project."""

    def __init__(
        self,
        root: Path,
        config: Config,
        tracking_index: TrackingIndex,
        overridden: bool = False,
    ):
        """Initialize a workspace.

        Args:
            root: Workspace root directory
            config: Loaded configuration
            tracking_index: Index backend
            overridden: True when the root differs from the current directory
        """
        self._root = Path(root).resolve()
        self.config = config
        self.tracking_index = tracking_index
        self.overridden = overridden
        self.closed = False

    @classmethod
    def open(
        cls,
        root: Optional[Path] = None,
        config: Optional[Config] = None,
        tracking_index: Optional[TrackingIndex] = None,
    ) -> "Workspace":
        """Open the workspace at root (default: current directory)."""
        cwd = Path.cwd().resolve()
        resolved_root = Path(root).resolve() if root is not None else cwd
        if not resolved_root.is_dir():
            raise NotADirectoryError(f"Workspace root {resolved_root} is not a directory")
        if config is None:
            config = Config.for_workspace(resolved_root)
        if tracking_index is None:
            tracking_index = BitMapFile(resolved_root / config.bitmap_filename)
        logger.debug(f"Opened workspace at {resolved_root}")
        return cls(resolved_root, config, tracking_index, overridden=resolved_root != cwd)

    def root_path(self) -> str:
        return str(self._root)

    def to_absolute_path(self, relative_path: str) -> str:
        """Join a root-relative path onto the workspace root."""
        if os.path.isabs(relative_path):
            return relative_path
        return os.path.normpath(os.path.join(self.root_path(), relative_path))

    def to_relative_path(self, path: str) -> str:
        """Path relative to the workspace root, in host form.

        Relative input is resolved against the current directory first.
        """
        absolute = path if os.path.isabs(path) else os.path.abspath(path)
        relative = os.path.relpath(absolute, self.root_path())
        if relative.startswith(".."):
            resolved = os.path.relpath(os.path.realpath(absolute), self.root_path())
            if not resolved.startswith(".."):
                return resolved
        return relative

    def to_linux_relative_path(self, path: str) -> str:
        return normalize_to_linux(self.to_relative_path(path))

    def close(self) -> None:
        """Persist the tracking index and release the workspace."""
        if self.closed:
            return
        write = getattr(self.tracking_index, "write", None)
        if callable(write):
            write()
        self.closed = True
        logger.debug(f"Closed workspace at {self._root}")

    def discard(self) -> None:
        """Release the workspace without persisting pending changes."""
        self.closed = True
        logger.debug(f"Discarded pending changes of workspace at {self._root}")

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
        else:
            self.discard()
