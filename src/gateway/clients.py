"""
MCP client for the impact agent, shared by the gateway routes.
"""

import json
from typing import Any

from langchain_mcp_adapters.client import MultiServerMCPClient
from langfuse import observe

from src.gateway.config import GatewaySettings
from src.shared.logging import setup_logging
from src.shared.observability import MCPTraceContextInterceptor, is_langfuse_enabled

logger = setup_logging("gateway.clients", level="INFO")

_impact_client: MultiServerMCPClient | None = None


class ImpactToolError(Exception):
    """The impact MCP server could not be reached or answered garbage."""


def get_impact_client() -> MultiServerMCPClient:
    """Lazy initialization of the impact MCP client."""
    global _impact_client

    if _impact_client is None:
        impact_url = GatewaySettings().impact_url
        logger.info("Initializing impact MCP client at %s", impact_url)
        _impact_client = MultiServerMCPClient(
            {"impact": {"url": impact_url, "transport": "sse"}},
            tool_interceptors=[MCPTraceContextInterceptor()] if is_langfuse_enabled() else [],
        )
    return _impact_client


def reset_impact_client() -> None:
    """Drop the cached client (used on shutdown)."""
    global _impact_client
    _impact_client = None


@observe(name="call_impact_tool", as_type="span")
async def call_impact_tool(tool_name: str, **kwargs: Any) -> dict:
    """Call an impact tool and return its parsed JSON result.

    Raises:
        ImpactToolError: If the tool is missing, the call fails, or the
            reply is not JSON.
    """
    try:
        tools = await get_impact_client().get_tools()
    except Exception as e:
        raise ImpactToolError(f"Impact agent unreachable: {e}") from e

    tool = next((t for t in tools if t.name == tool_name), None)
    if tool is None:
        raise ImpactToolError(f"Impact tool '{tool_name}' not found")

    try:
        result = await tool.ainvoke(kwargs)
    except Exception as e:
        raise ImpactToolError(f"Impact tool '{tool_name}' failed: {e}") from e

    if isinstance(result, dict):
        return result
    if isinstance(result, list):
        # Content blocks from newer adapters: [{"type": "text", "text": "..."}]
        result = "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in result
        )
    try:
        return json.loads(result)
    except (TypeError, json.JSONDecodeError) as e:
        raise ImpactToolError(f"Invalid JSON response from impact agent: {e}") from e
