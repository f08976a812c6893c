# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Tests for the MCP Server Protocol Layer."""

from unittest.mock import AsyncMock, Mock

import pytest

# Skip tests if mcp package not available (requires Python 3.10+)
pytest.importorskip("mcp", reason="MCP package requires Python 3.10+")

from component_tracker.errors import PathsNotExist  # noqa: E402
from component_tracker.mcp_server import ComponentTrackerMCPServer, parse_args  # noqa: E402
from component_tracker.models import AddActionResults, AddRequest  # noqa: E402
from component_tracker.service import ComponentTrackingService  # noqa: E402


def get_tool(server, name):
    # FastMCP stores tools in _tool_manager._tools
    return server.mcp._tool_manager._tools[name]


def mock_context():
    ctx = AsyncMock()
    ctx.info = AsyncMock()
    ctx.error = AsyncMock()
    return ctx


class TestComponentTrackerMCPServer:
    """Tests for ComponentTrackerMCPServer."""

    def test_server_initialization(self):
        server = ComponentTrackerMCPServer()

        assert server.mcp is not None
        assert isinstance(server.service, ComponentTrackingService)
        assert server.root is None

    def test_tools_registered(self):
        server = ComponentTrackerMCPServer()

        tools = server.mcp._tool_manager._tools
        assert {"add_components", "add_components_batch", "get_tracked_components"} <= set(tools)

    def test_server_name(self):
        server = ComponentTrackerMCPServer()
        assert server.mcp.name == "component-tracker"

    @pytest.mark.asyncio
    async def test_add_components_delegates_to_service(self, tmp_path):
        service = Mock(spec=ComponentTrackingService)
        service.add_one.return_value = AddActionResults()
        server = ComponentTrackerMCPServer(root=tmp_path, service=service)
        ctx = mock_context()

        result = await get_tool(server, "add_components").fn(
            paths=["src/foo"], ctx=ctx, tests=["{PARENT}/{FILE_NAME}.test.{EXT}"]
        )

        assert result == {"addedComponents": [], "warnings": {}}
        request, root = service.add_one.call_args.args
        assert isinstance(request, AddRequest)
        assert request.component_paths == ["src/foo"]
        assert request.tests == ["{PARENT}/{FILE_NAME}.test.{EXT}"]
        assert root == tmp_path
        ctx.info.assert_called()

    @pytest.mark.asyncio
    async def test_add_components_returns_error_dict(self):
        service = Mock(spec=ComponentTrackingService)
        service.add_one.side_effect = PathsNotExist(["nope"])
        server = ComponentTrackerMCPServer(service=service)
        ctx = mock_context()

        result = await get_tool(server, "add_components").fn(paths=["nope"], ctx=ctx)

        assert result["error_type"] == "paths_not_exist"
        assert result["paths"] == ["nope"]
        ctx.error.assert_called()

    @pytest.mark.asyncio
    async def test_invalid_request_returns_error_dict(self):
        server = ComponentTrackerMCPServer(service=Mock(spec=ComponentTrackingService))

        result = await get_tool(server, "add_components").fn(
            paths=["a"], ctx=mock_context(), origin="imported"
        )

        assert result["error_type"] == "invalid_request"

    @pytest.mark.asyncio
    async def test_malformed_id_returns_error_dict(self):
        service = Mock(spec=ComponentTrackingService)
        server = ComponentTrackerMCPServer(service=service)

        result = await get_tool(server, "add_components").fn(
            paths=["a"], ctx=mock_context(), id="//"
        )

        assert result["error_type"] == "invalid_request"
        service.add_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_track_dir_feature_is_forwarded(self):
        service = Mock(spec=ComponentTrackingService)
        service.add_one.return_value = AddActionResults()
        server = ComponentTrackerMCPServer(service=service)

        await get_tool(server, "add_components").fn(
            paths=["src/foo"], ctx=mock_context(), track_dir_feature=True
        )

        request, _ = service.add_one.call_args.args
        assert request.track_dir_feature is True

    @pytest.mark.asyncio
    async def test_unexpected_errors_propagate(self):
        service = Mock(spec=ComponentTrackingService)
        service.add_one.side_effect = RuntimeError("disk on fire")
        server = ComponentTrackerMCPServer(service=service)

        with pytest.raises(RuntimeError):
            await get_tool(server, "add_components").fn(paths=["a"], ctx=mock_context())

    @pytest.mark.asyncio
    async def test_add_components_batch(self, tmp_path):
        service = Mock(spec=ComponentTrackingService)
        service.add_many.return_value = [AddActionResults(), AddActionResults()]
        server = ComponentTrackerMCPServer(service=service)

        result = await get_tool(server, "add_components_batch").fn(
            requests=[{"componentPaths": ["a"]}, {"paths": ["b"], "id": "b"}],
            ctx=mock_context(),
            root=str(tmp_path),
        )

        assert len(result["results"]) == 2
        requests, root = service.add_many.call_args.args
        assert [request.component_paths for request in requests] == [["a"], ["b"]]
        assert root == tmp_path

    @pytest.mark.asyncio
    async def test_get_tracked_components(self):
        service = Mock(spec=ComponentTrackingService)
        service.get_tracked_components.return_value = {"version": 1, "components": {}}
        server = ComponentTrackerMCPServer(service=service)

        result = await get_tool(server, "get_tracked_components").fn(ctx=mock_context())

        assert result == {"version": 1, "components": {}}


def test_parse_args(tmp_path):
    args = parse_args(["--root", str(tmp_path), "--transport", "sse"])
    assert args.root == tmp_path
    assert args.transport == "sse"

    defaults = parse_args([])
    assert defaults.root is None
    assert defaults.transport == "stdio"
    assert defaults.log_dir is None
