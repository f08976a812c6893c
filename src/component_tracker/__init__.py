# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Component tracker: resolves files and directories into tracked components."""

from .add_components import AddComponents
from .config import Config
from .errors import TrackingError
from .models import (
    AddActionResults,
    AddRequest,
    AddResult,
    ComponentIdentity,
    ComponentOrigin,
    FileEntry,
    ResolvedComponent,
)
from .service import ComponentTrackingService
from .storage import BitMapFile, InMemoryTrackingIndex, IndexExport, TrackingIndex
from .workspace import Workspace

__version__ = "0.1.0"

__all__ = [
    "AddComponents",
    "AddActionResults",
    "AddRequest",
    "AddResult",
    "BitMapFile",
    "ComponentIdentity",
    "ComponentOrigin",
    "ComponentTrackingService",
    "Config",
    "FileEntry",
    "InMemoryTrackingIndex",
    "IndexExport",
    "ResolvedComponent",
    "TrackingError",
    "TrackingIndex",
    "Workspace",
]
