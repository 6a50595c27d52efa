"""
Entry point — runs one impact analysis directly against Neo4j.

This bypasses the MCP server and prints the aggregated impact for a
version as JSON. Useful for checking a diff report before serving it.

Usage:
    python main.py <version> [depth]

For MCP server mode (SSE transport):
    python -m src.agents.impact.server
"""

import asyncio
import json
import sys

from src.agents.impact.aggregator import serialise
from src.agents.impact.classifier import DiffClassifier
from src.agents.impact.config import ImpactSettings
from src.agents.impact.frontier import FrontierExpander
from src.agents.impact.graph_store import ImpactGraphStore
from src.agents.impact.hydrator import GraphHydrator
from src.agents.impact.service import ImpactService
from src.shared.database import Neo4jHandler
from src.shared.exceptions import AgentError
from src.shared.logging import setup_logging


async def main(version: str, depth: int) -> None:
    settings = ImpactSettings()
    setup_logging("impact.main", level=settings.log_level)

    try:
        async with Neo4jHandler.from_settings(settings) as handler:
            store = ImpactGraphStore(handler, settings)
            service = ImpactService(
                classifier=DiffClassifier(),
                hydrator=GraphHydrator(store),
                expander=FrontierExpander(store),
                diff_path=settings.diff_path,
                max_depth=settings.max_depth,
            )
            result = await service.get_level_nodes(version, depth)
    except AgentError as exc:
        print(f"Impact analysis failed: {exc}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(serialise(result), indent=2))


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(2)
    asyncio.run(main(sys.argv[1], int(sys.argv[2]) if len(sys.argv) > 2 else 1))
