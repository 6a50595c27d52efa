"""
Impact routes — change-impact frontiers for a code version.

GET /api/impact/{version}/levels       every node at ``depth`` hops
GET /api/impact/{version}/shell        outer shell at ``depth`` hops
GET /api/impact/{version}/diff-types   per-diff-type results and failures
"""

from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from src.gateway.clients import ImpactToolError, call_impact_tool
from src.shared.logging import setup_logging

logger = setup_logging("gateway.routes.impact", level="INFO")

router = APIRouter()

# Agent error kind -> HTTP status
_ERROR_STATUS = {
    "configuration": 422,
    "classification": 400,
    "graph_query": 502,
    "database": 503,
}


# ─── Response Models ────────────────────────────────────────


class ImpactNodesResponse(BaseModel):
    """Categorised impact nodes for one version."""

    version: str = Field(..., description="Code version whose changes were analysed")
    depth: int = Field(..., description="Number of hops from the changed nodes")
    files: list[dict[str, Any]] = Field(default_factory=list, description="FILE nodes")
    methods: list[dict[str, Any]] = Field(default_factory=list, description="METHOD nodes")


class DiffTypeImpactResponse(BaseModel):
    """Per-diff-type impact, with any failed diff types listed separately."""

    version: str
    depth: int
    results: dict[str, dict[str, list[dict[str, Any]]]] = Field(default_factory=dict)
    failures: list[dict[str, Any]] = Field(default_factory=list)


# ─── Helpers ────────────────────────────────────────────────


async def _invoke(tool_name: str, version: str, depth: int) -> dict:
    try:
        result = await call_impact_tool(tool_name, version=version, depth=depth)
    except ImpactToolError as e:
        logger.error("Error calling impact tool '%s': %s", tool_name, e)
        raise HTTPException(status_code=500, detail=str(e))

    if "error" in result:
        status = _ERROR_STATUS.get(result.get("kind", ""), 500)
        logger.warning("Impact analysis rejected (%d): %s", status, result["error"])
        raise HTTPException(
            status_code=status,
            detail={"error": result["error"], "failures": result.get("failures", [])},
        )
    return result


async def _nodes(tool_name: str, version: str, depth: int) -> ImpactNodesResponse:
    logger.info("Impact request: tool=%s version=%s depth=%d", tool_name, version, depth)
    result = await _invoke(tool_name, version, depth)
    return ImpactNodesResponse(
        version=version,
        depth=depth,
        files=result.get("FILE", []),
        methods=result.get("METHOD", []),
    )


# ─── Routes ─────────────────────────────────────────────────


@router.get("/impact/{version}/levels", response_model=ImpactNodesResponse)
async def get_level_nodes(
    version: str,
    depth: int = Query(1, ge=0, description="Number of hops from the changed nodes"),
) -> ImpactNodesResponse:
    """Every file and method ``depth`` hops away from the version's changes."""
    return await _nodes("get_level_nodes", version, depth)


@router.get("/impact/{version}/shell", response_model=ImpactNodesResponse)
async def get_part_nodes(
    version: str,
    depth: int = Query(1, ge=0, description="Number of hops from the changed nodes"),
) -> ImpactNodesResponse:
    """Only the outer shell at ``depth`` hops."""
    return await _nodes("get_part_nodes", version, depth)


@router.get("/impact/{version}/diff-types", response_model=DiffTypeImpactResponse)
async def get_diff_type_impact(
    version: str,
    depth: int = Query(1, ge=0, description="Number of hops from the changed nodes"),
) -> DiffTypeImpactResponse:
    """Impact split by diff type (added / removed / modified).

    Failed diff types are reported under ``failures`` instead of failing
    the whole request.
    """
    logger.info("Per-diff-type impact request: version=%s depth=%d", version, depth)
    result = await _invoke("get_diff_type_impact", version, depth)
    return DiffTypeImpactResponse(**result)
