"""
Unit tests for the gateway's impact MCP client helper.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from src.gateway.clients import ImpactToolError, call_impact_tool


def _mcp_client(*tools):
    client = MagicMock()
    client.get_tools = AsyncMock(return_value=list(tools))
    return client


def _tool(name: str, result=None, error=None):
    tool = MagicMock()
    tool.name = name
    tool.ainvoke = AsyncMock(return_value=result, side_effect=error)
    return tool


class TestCallImpactTool:
    async def test_parses_json_text(self):
        tool = _tool("get_level_nodes", result='{"FILE": [], "METHOD": []}')

        with patch("src.gateway.clients.get_impact_client", return_value=_mcp_client(tool)):
            result = await call_impact_tool("get_level_nodes", version="v1", depth=1)

        assert result == {"FILE": [], "METHOD": []}
        tool.ainvoke.assert_awaited_once_with({"version": "v1", "depth": 1})

    async def test_parses_content_blocks(self):
        tool = _tool("get_level_nodes", result=[{"type": "text", "text": '{"FILE": []}'}])

        with patch("src.gateway.clients.get_impact_client", return_value=_mcp_client(tool)):
            result = await call_impact_tool("get_level_nodes", version="v1", depth=1)

        assert result == {"FILE": []}

    async def test_missing_tool(self):
        with patch("src.gateway.clients.get_impact_client", return_value=_mcp_client()):
            with pytest.raises(ImpactToolError, match="not found"):
                await call_impact_tool("get_level_nodes")

    async def test_invalid_json(self):
        tool = _tool("get_level_nodes", result="not json")

        with patch("src.gateway.clients.get_impact_client", return_value=_mcp_client(tool)):
            with pytest.raises(ImpactToolError, match="Invalid JSON"):
                await call_impact_tool("get_level_nodes")

    async def test_tool_failure_wrapped(self):
        tool = _tool("get_level_nodes", error=RuntimeError("boom"))

        with patch("src.gateway.clients.get_impact_client", return_value=_mcp_client(tool)):
            with pytest.raises(ImpactToolError, match="boom"):
                await call_impact_tool("get_level_nodes")
