"""
FastAPI Gateway — HTTP API layer.

External interface for the change-impact service.
Forwards requests to the Impact MCP server via HTTP (SSE transport).
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.gateway.clients import reset_impact_client
from src.gateway.config import GatewaySettings
from src.gateway.routes import health, impact
from src.shared.logging import setup_logging
from src.shared.observability import (
    LangfuseMiddleware,
    init_langfuse,
    is_langfuse_enabled,
    shutdown_langfuse,
)

settings = GatewaySettings()

logger = setup_logging("gateway.app", level=settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise observability on startup, flush it on shutdown."""
    logger.info("Starting Impact Gateway (impact agent at %s)", settings.impact_url)

    init_langfuse()
    if is_langfuse_enabled():
        logger.info("Langfuse observability enabled")
    else:
        logger.info("Langfuse observability disabled")

    yield

    logger.info("Shutting down Impact Gateway")
    shutdown_langfuse()
    reset_impact_client()


app = FastAPI(
    title="Change Impact Frontier Service",
    description="Blast radius of a code change over the versioned code graph",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(LangfuseMiddleware)

app.include_router(impact.router, prefix="/api", tags=["Impact"])
app.include_router(health.router, prefix="/api", tags=["Health"])


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with basic info."""
    return {
        "name": "Change Impact Frontier Service",
        "version": "0.1.0",
        "status": "operational",
        "endpoints": {
            "levels": "/api/impact/{version}/levels?depth=N",
            "shell": "/api/impact/{version}/shell?depth=N",
            "diff_types": "/api/impact/{version}/diff-types?depth=N",
            "health": "/api/health",
        },
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.gateway.app:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
    )
