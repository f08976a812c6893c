# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""MCP Server Protocol Layer for the component tracker.

This module implements the MCP protocol layer with ZERO business logic.
All business logic is delegated to ComponentTrackingService.
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from mcp.server.fastmcp import Context, FastMCP
from mcp.server.session import ServerSession

from component_tracker.config import Config
from component_tracker.errors import TrackingError
from component_tracker.logging_setup import setup_logging
from component_tracker.models import AddRequest
from component_tracker.service import ComponentTrackingService

logger = logging.getLogger(__name__)


class ComponentTrackerMCPServer:
    """MCP Protocol Layer for the component tracker.

    Responsibilities:
    - Initialize MCP server and register tools
    - Translate MCP requests to service calls
    - Format service results, and tracking errors, as MCP tool results

    Design Constraint: This layer contains ZERO business logic.
    Path expansion, id resolution and index updates reside in the service.
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        config: Optional[Config] = None,
        service: Optional[ComponentTrackingService] = None,
    ):
        """Initialize MCP server.

        Args:
            root: Workspace root. If None, the current directory is used.
            config: Configuration object. If None, each workspace loads its own.
            service: Service layer instance. If None, creates default service.
        """
        self.root = Path(root) if root is not None else None
        self.config = config
        self.service = service or ComponentTrackingService(config=config)

        self.mcp = FastMCP(name="component-tracker")
        self._register_tools()

        logger.info("ComponentTrackerMCPServer initialized")

    def _register_tools(self) -> None:
        """Register MCP tools with the server.

        Registers:
        - add_components: Track files and directories as components
        - add_components_batch: Run several add requests in one workspace
        - get_tracked_components: Export the tracking index
        """

        @self.mcp.tool()
        async def add_components(
            paths: List[str],
            ctx: Context[ServerSession, None],
            id: Optional[str] = None,
            main: Optional[str] = None,
            namespace: Optional[str] = None,
            tests: Optional[List[str]] = None,
            exclude: Optional[List[str]] = None,
            override: bool = False,
            origin: str = "authored",
            configured_consumer: bool = False,
            track_dir_feature: Optional[bool] = None,
        ) -> Dict[str, Any]:
            """Track files or directories as components.

            Args:
                paths: Files, directories or glob patterns
                ctx: MCP context for logging
                id: Component id; all paths form a single component when given
                main: Main file, a path or a template such as "{PARENT}/index.js"
                namespace: Namespace for ids derived from paths
                tests: Test files, paths or templates such as "{PARENT}/{FILE_NAME}.test.{EXT}"
                exclude: Files to leave out, paths or templates
                override: Replace the recorded file list instead of merging
                origin: "authored" or "imported"
                configured_consumer: Paths are relative to the workspace root
                track_dir_feature: Only add files to the recorded component (defaults to config)

            Returns:
                Dictionary with:
                - addedComponents: List of {id, files}
                - warnings: Files kept by their current owner, keyed by owner id
                On failure, a dictionary with error_type, message and details.
            """
            await ctx.info(f"Adding components: {paths}")
            try:
                request = AddRequest(
                    component_paths=paths,
                    id=id,
                    main=main,
                    namespace=namespace,
                    tests=tests or [],
                    exclude=exclude or [],
                    override=override,
                    origin=origin,
                    configured_consumer=configured_consumer,
                    track_dir_feature=track_dir_feature,
                )
                # Delegate to service layer (ZERO business logic here)
                result = self.service.add_one(request, self.root)
            except TrackingError as e:
                await ctx.error(f"Failed to add {paths}: {e.message}")
                return e.to_dict()

            response = result.to_dict()
            await ctx.info(f"Added {len(response['addedComponents'])} components")
            return response

        @self.mcp.tool()
        async def add_components_batch(
            requests: List[Dict[str, Any]],
            ctx: Context[ServerSession, None],
            root: Optional[str] = None,
        ) -> Dict[str, Any]:
            """Run several add requests against one workspace.

            Args:
                requests: Add requests with the arguments of add_components
                    (camelCase keys such as componentPaths are accepted)
                ctx: MCP context for logging
                root: Workspace root overriding the server root

            Returns:
                Dictionary with results: one add result per request.
                On failure, a dictionary with error_type, message and details.
            """
            await ctx.info(f"Adding {len(requests)} component requests")
            workspace_root = Path(root) if root else self.root
            try:
                add_requests = [AddRequest.from_dict(data) for data in requests]
                results = self.service.add_many(add_requests, workspace_root)
            except TrackingError as e:
                await ctx.error(f"Batch add failed: {e.message}")
                return e.to_dict()
            return {"results": [result.to_dict() for result in results]}

        @self.mcp.tool()
        async def get_tracked_components(
            ctx: Context[ServerSession, None],
        ) -> Dict[str, Any]:
            """Export every tracked component with its files.

            Returns:
                Dictionary with:
                - version: Index schema version
                - components: Component records keyed by id
            """
            export = self.service.get_tracked_components(self.root)
            await ctx.info(f"Exported {len(export['components'])} components")
            return export

        logger.info(
            "MCP tools registered: add_components, add_components_batch, get_tracked_components"
        )

    def run(self, transport: str = "stdio") -> None:
        """Run the MCP server.

        Args:
            transport: Transport type to use. Options:
                - "stdio": Standard input/output
                - "streamable-http": HTTP transport
                - "sse": Server-sent events transport
        """
        logger.info(f"Starting MCP server with {transport} transport")
        self.mcp.run(transport=transport)  # type: ignore[arg-type]


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Component Tracker MCP Server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Workspace root holding the tracking index. Default: current directory",
    )
    parser.add_argument(
        "--transport",
        type=str,
        choices=["stdio", "streamable-http", "sse"],
        default="stdio",
        help="Transport type for MCP server. Default: stdio",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for structured log files. Default: .component_tracker_logs/",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for MCP server."""
    args = parse_args(argv)
    setup_logging(log_dir=args.log_dir)

    server = ComponentTrackerMCPServer(root=args.root)
    logger.info(f"Starting MCP server with root={args.root or Path.cwd()}")
    server.run(transport=args.transport)
