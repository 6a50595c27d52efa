"""
Impact Analysis Agent — MCP Server

Exposes three read-only tools over the change-impact facade. Each tool
returns a JSON string; errors come back as ``{"error", "kind", "failures"}``
objects so the gateway can map them onto HTTP status codes.

Run as:  python -m src.agents.impact.server        (SSE transport)
"""

import json
from typing import ContextManager

from langfuse import observe
from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from src.agents.impact.aggregator import serialise
from src.agents.impact.classifier import DiffClassifier
from src.agents.impact.config import ImpactSettings
from src.agents.impact.frontier import FrontierExpander
from src.agents.impact.graph_store import ImpactGraphStore
from src.agents.impact.hydrator import GraphHydrator
from src.agents.impact.service import ImpactService
from src.shared.database import Neo4jHandler
from src.shared.exceptions import AgentError, ImpactAnalysisError
from src.shared.logging import setup_logging
from src.shared.observability import attached_trace_context, init_langfuse

logger = setup_logging("impact.server", level="INFO")

# ─── Shared resources (lazy init) ─────────────────────────

transport_security = TransportSecuritySettings(
    enable_dns_rebinding_protection=False,
    allowed_hosts=["impact", "impact:8005", "localhost", "127.0.0.1", "0.0.0.0"],
    allowed_origins=["*"],
)

mcp = FastMCP("ImpactAnalysis", transport_security=transport_security)

_settings: ImpactSettings | None = None
_handler: Neo4jHandler | None = None
_service: ImpactService | None = None
_langfuse_initialized: bool = False


def _get_settings() -> ImpactSettings:
    """Lazy-initialise settings from environment variables."""
    global _settings
    if _settings is None:
        _settings = ImpactSettings()
    return _settings


async def _get_service() -> ImpactService:
    """Connect to Neo4j and wire the facade on first tool call."""
    global _handler, _service
    if _service is None:
        settings = _get_settings()
        if _handler is None:
            _handler = Neo4jHandler.from_settings(settings)
        await _handler.connect()
        store = ImpactGraphStore(_handler, settings)
        _service = ImpactService(
            classifier=DiffClassifier(),
            hydrator=GraphHydrator(store),
            expander=FrontierExpander(store),
            diff_path=settings.diff_path,
            max_depth=settings.max_depth,
        )
        logger.info("ImpactService ready (diff report: %s)", settings.diff_path)
    return _service


def _prepare(mcp_meta: dict | None) -> ContextManager[None]:
    """Initialise Langfuse once and return the caller's trace context to enter."""
    global _langfuse_initialized
    if not _langfuse_initialized:
        init_langfuse()
        _langfuse_initialized = True
    return attached_trace_context((mcp_meta or {}).get("trace_context"))


def _error_payload(exc: AgentError) -> str:
    failures = exc.failures if isinstance(exc, ImpactAnalysisError) else []
    return json.dumps({
        "error": exc.message,
        "kind": exc.kind,
        "failures": [f.to_dict() for f in failures],
    })


# ─── Tool 1: get_level_nodes ──────────────────────────────


@observe(name="impact_get_level_nodes", as_type="span")
@mcp.tool()
async def get_level_nodes(version: str, depth: int = 1, mcp_meta: dict | None = None) -> str:
    """Return every file and method at ``depth`` hops from the changes of a version.

    Expansion follows two edges per hop: a changed file contributes the
    methods it contains; a method contributes the methods that call it.
    Results from added, removed and modified changes are concatenated.

    Args:
        version: Code version whose changes seed the analysis (e.g. "1.3.2").
        depth: Number of hops (0 = the changed nodes themselves).
        mcp_meta: MCP metadata field (internal, contains trace context)

    Returns:
        JSON ``{"FILE": [...], "METHOD": [...]}``.
    """
    with _prepare(mcp_meta):
        logger.info("[get_level_nodes] INPUT version=%s depth=%d", version, depth)
        try:
            service = await _get_service()
            result = serialise(await service.get_level_nodes(version, depth))
        except AgentError as exc:
            logger.warning("[get_level_nodes] %s", exc)
            return _error_payload(exc)
        logger.info(
            "[get_level_nodes] OUTPUT files=%d methods=%d",
            len(result["FILE"]), len(result["METHOD"]),
        )
        return json.dumps(result, default=str)


# ─── Tool 2: get_part_nodes ───────────────────────────────


@observe(name="impact_get_part_nodes", as_type="span")
@mcp.tool()
async def get_part_nodes(version: str, depth: int = 1, mcp_meta: dict | None = None) -> str:
    """Return only the outer shell reached at exactly ``depth`` hops.

    Each hop replaces the previous frontier, so this matches
    get_level_nodes for the same arguments.

    Args:
        version: Code version whose changes seed the analysis.
        depth: Number of hops.
        mcp_meta: MCP metadata field (internal, contains trace context)
    """
    with _prepare(mcp_meta):
        logger.info("[get_part_nodes] INPUT version=%s depth=%d", version, depth)
        try:
            service = await _get_service()
            result = serialise(await service.get_part_nodes(version, depth))
        except AgentError as exc:
            logger.warning("[get_part_nodes] %s", exc)
            return _error_payload(exc)
        return json.dumps(result, default=str)


# ─── Tool 3: get_diff_type_impact ─────────────────────────


@observe(name="impact_get_diff_type_impact", as_type="span")
@mcp.tool()
async def get_diff_type_impact(version: str, depth: int = 1, mcp_meta: dict | None = None) -> str:
    """Return the impact shell separately for each diff type.

    Unlike the aggregated tools, a failing diff type does not fail the
    call: its failure is listed under ``failures`` while the others are
    returned under ``results``.

    Args:
        version: Code version whose changes seed the analysis.
        depth: Number of hops.
        mcp_meta: MCP metadata field (internal, contains trace context)
    """
    with _prepare(mcp_meta):
        logger.info("[get_diff_type_impact] INPUT version=%s depth=%d", version, depth)
        try:
            service = await _get_service()
            analysis = await service.analyse(version, depth)
        except AgentError as exc:
            logger.warning("[get_diff_type_impact] %s", exc)
            return _error_payload(exc)
        return json.dumps(analysis.to_dict(), default=str)


# ─── Entry point ──────────────────────────────────────────

app = mcp.sse_app()

if __name__ == "__main__":
    import uvicorn

    settings = _get_settings()
    logger.info(
        "Starting Impact MCP server (SSE transport on %s:%d)", settings.host, settings.port,
    )
    uvicorn.run(
        "src.agents.impact.server:app",
        host=settings.host,
        port=settings.port,
        log_level="info",
    )
