"""Tests for the tool registry and the FastMCP adapter."""

import inspect
from typing import get_args

import pytest
from unittest.mock import AsyncMock, patch

from mcp.server.fastmcp import Context

from tableau_agent import agent
from tableau_agent.fastmcp_server import (
    _build_signature,
    _map_json_type,
    build_fastmcp_server,
)
from tableau_agent.runtime import get_request_id


class TestExecuteTool:
    """Tests for execute_tool."""

    @pytest.mark.asyncio
    async def test_unknown_tool(self):
        result = await agent.execute_tool("drop_everything", {})

        assert result["status"] == "error"
        assert "Unknown tool" in result["error"]

    @pytest.mark.asyncio
    async def test_dispatches_with_request_id(self):
        handler = AsyncMock(return_value={"status": "success", "data": []})
        handler.__signature__ = inspect.signature(agent.TOOL_HANDLERS["list_datasources"])
        with patch.dict(agent.TOOL_HANDLERS, {"list_datasources": handler}):
            result = await agent.execute_tool("list_datasources", {"limit": 5}, request_id="req-1")

        assert result == {"status": "success", "data": []}
        handler.assert_awaited_once_with(limit=5, request_id="req-1")

    @pytest.mark.asyncio
    async def test_generates_request_id(self):
        handler = AsyncMock(return_value={"status": "success"})
        handler.__signature__ = inspect.signature(agent.TOOL_HANDLERS["list_datasources"])
        with patch.dict(agent.TOOL_HANDLERS, {"list_datasources": handler}):
            await agent.execute_tool("list_datasources", {})

        assert handler.await_args.kwargs["request_id"]

    @pytest.mark.asyncio
    async def test_unexpected_argument_rejected(self):
        handler = AsyncMock()
        handler.__signature__ = inspect.signature(agent.TOOL_HANDLERS["query_datasource"])
        with patch.dict(agent.TOOL_HANDLERS, {"query_datasource": handler}):
            result = await agent.execute_tool("query_datasource", {"datasource_luid": "ds1", "sql": "SELECT 1"})

        assert result["status"] == "error"
        assert result["type"] == "validation"
        handler.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_argument_rejected(self):
        result = await agent.execute_tool("query_datasource", {"datasource_luid": "ds1"})

        assert result["status"] == "error"
        assert result["type"] == "validation"

    @pytest.mark.asyncio
    async def test_handler_exception_captured(self):
        handler = AsyncMock(side_effect=RuntimeError("connection reset"))
        handler.__signature__ = inspect.signature(agent.TOOL_HANDLERS["list_datasources"])
        with patch.dict(agent.TOOL_HANDLERS, {"list_datasources": handler}):
            result = await agent.execute_tool("list_datasources", {})

        assert result == {"status": "error", "error": "connection reset"}


class TestToolDefinitions:
    """Tests for the registered tool definitions."""

    def test_every_definition_has_a_handler(self):
        names = [tool["name"] for tool in agent.get_tool_definitions()]
        assert sorted(names) == sorted(agent.TOOL_HANDLERS)

    def test_definitions_are_read_only(self):
        for tool in agent.get_tool_definitions():
            assert tool["annotations"]["readOnlyHint"] is True


class TestInitializeAgent:
    """Tests for initialize_agent."""

    @pytest.mark.asyncio
    async def test_without_server(self):
        from tableau_agent.config import TableauConfig
        from tableau_agent.tools import list_datasources, query_datasource

        status = await agent.initialize_agent(TableauConfig(server=None))

        assert "not configured" in status
        assert list_datasources._client is agent.get_client()
        assert query_datasource._client is agent.get_client()
        await agent.close_agent()


class TestFastmcpSignature:
    """Tests for the signature built from a tool's input schema."""

    def test_required_before_optional(self):
        schema = {
            "properties": {
                "limit": {"type": "integer", "default": 20},
                "question": {"type": "string"},
                "datasource_name": {"type": "string"},
            },
            "required": ["question", "datasource_name"],
        }

        signature = _build_signature(schema)

        assert list(signature.parameters) == ["ctx", "question", "datasource_name", "limit"]
        assert signature.parameters["ctx"].annotation is Context
        assert signature.parameters["question"].default is inspect.Parameter.empty
        assert signature.parameters["limit"].default == 20

    def test_optional_without_default_is_nullable(self):
        signature = _build_signature({"properties": {"filter": {"type": "string"}}})

        annotation = signature.parameters["filter"].annotation
        assert signature.parameters["filter"].default is None
        assert type(None) in get_args(get_args(annotation)[0])

    def test_map_json_type(self):
        assert _map_json_type("string") is str
        assert _map_json_type("integer") is int
        assert _map_json_type("number") is float
        assert _map_json_type("boolean") is bool
        assert _map_json_type("array") is list
        assert _map_json_type("object") is dict
        assert _map_json_type("mystery") is str


class TestBuildFastmcpServer:
    """Tests for build_fastmcp_server."""

    @pytest.mark.asyncio
    async def test_registers_all_tools(self):
        server = build_fastmcp_server()

        tools = await server.list_tools()

        assert sorted(tool.name for tool in tools) == [
            "list_datasources",
            "query_datasource",
            "simple_query_datasource",
        ]
        by_name = {tool.name: tool for tool in tools}
        assert by_name["query_datasource"].annotations.readOnlyHint is True
        assert "ctx" not in by_name["query_datasource"].inputSchema["properties"]
        assert by_name["query_datasource"].inputSchema["required"] == ["datasource_luid", "query"]


class TestGetRequestId:
    """Tests for get_request_id."""

    def test_uses_context_request_id(self):
        ctx = type("Ctx", (), {"request_id": "42"})()
        assert get_request_id(ctx) == "42"

    def test_generates_without_context(self):
        assert get_request_id(None)
