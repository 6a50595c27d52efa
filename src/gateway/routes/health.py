"""
Health routes — GET /api/health and GET /api/agents/health.
"""

from fastapi import APIRouter
from langfuse import observe
from pydantic import BaseModel, Field

from src.gateway.clients import get_impact_client
from src.shared.logging import setup_logging

logger = setup_logging("gateway.routes.health", level="INFO")

router = APIRouter()


class AgentHealth(BaseModel):
    """Health status of the impact agent."""

    agent_name: str = Field(..., description="Name of the agent")
    status: str = Field(..., description="Health status: healthy or unhealthy")
    tools: list[str] = Field(default_factory=list, description="List of tool names")
    error: str | None = Field(None, description="Error message if unhealthy")


@router.get("/agents/health", response_model=AgentHealth)
@observe(name="get_agents_health", as_type="span")
async def get_agents_health() -> AgentHealth:
    """Check that the impact MCP server answers and lists its tools."""
    try:
        tools = await get_impact_client().get_tools()
    except Exception as e:
        logger.error("Health check failed for impact: %s", e)
        return AgentHealth(agent_name="impact", status="unhealthy", error=str(e))

    return AgentHealth(
        agent_name="impact",
        status="healthy",
        tools=[t.name for t in tools],
    )


@router.get("/health")
async def simple_health() -> dict:
    """Simple health check endpoint for load balancers and uptime monitors."""
    return {
        "status": "healthy",
        "service": "Impact Gateway",
        "version": "0.1.0",
    }
