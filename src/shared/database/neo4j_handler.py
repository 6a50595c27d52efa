"""
Neo4j Connection Handler

Centralised, read-only Neo4j driver management.
Reads credentials from explicit arguments, agent settings or environment
variables and exposes an async driver shared by the impact graph store.
"""

import os
import logging
from typing import Any

from dotenv import load_dotenv
from neo4j import AsyncGraphDatabase, AsyncDriver, READ_ACCESS

from src.shared.config import BaseAgentSettings
from src.shared.exceptions import DatabaseConnectionError

load_dotenv()

logger = logging.getLogger("shared.neo4j_handler")


class Neo4jHandler:
    """
    Manages a single async Neo4j driver backed by .env configuration.

    Usage
    -----
    handler = Neo4jHandler()          # reads from .env
    await handler.connect()
    rows = await handler.run("MATCH (m:Method) RETURN m LIMIT 5")
    await handler.close()

    The handler can also be used as an async context-manager:

        async with Neo4jHandler.from_settings(settings) as handler:
            await handler.run(...)

    Every session is opened in READ mode; the impact analysis never
    writes to the graph.
    """

    def __init__(
        self,
        uri: str | None = None,
        username: str | None = None,
        password: str | None = None,
        database: str | None = None,
    ):
        self._uri = uri or os.getenv("NEO4J_URI")
        self._username = username or os.getenv("NEO4J_USERNAME")
        self._password = password or os.getenv("NEO4J_PASSWORD")
        self._database = database or os.getenv("NEO4J_DATABASE", "neo4j")
        self._driver: AsyncDriver | None = None

        if not self._uri:
            raise DatabaseConnectionError("NEO4J_URI is not set (env or argument)")
        if not self._username:
            raise DatabaseConnectionError("NEO4J_USERNAME is not set (env or argument)")
        if not self._password:
            raise DatabaseConnectionError("NEO4J_PASSWORD is not set (env or argument)")

    @classmethod
    def from_settings(cls, settings: BaseAgentSettings) -> "Neo4jHandler":
        """Build a handler from agent settings, falling back to the environment."""
        return cls(
            uri=settings.neo4j_uri or None,
            username=settings.neo4j_username or None,
            password=settings.neo4j_password or None,
            database=settings.neo4j_database or None,
        )

    # ─── Lifecycle ──────────────────────────────────────────

    async def connect(self) -> "Neo4jHandler":
        """Create the async driver and verify connectivity.

        Returns:
            Self for method chaining.

        Raises:
            DatabaseConnectionError: If Neo4j cannot be reached.
        """
        if self._driver is not None:
            return self

        self._driver = AsyncGraphDatabase.driver(
            self._uri, auth=(self._username, self._password)
        )
        try:
            await self._driver.verify_connectivity()
        except Exception as exc:
            logger.error("Failed to connect to Neo4j at %s", self._uri)
            await self._driver.close()
            self._driver = None
            raise DatabaseConnectionError(
                f"Cannot reach Neo4j at {self._uri}: {exc}"
            ) from exc
        logger.info("Connected to Neo4j at %s (db=%s)", self._uri, self._database)
        return self

    async def close(self) -> None:
        """Close the underlying driver."""
        if self._driver:
            await self._driver.close()
            self._driver = None
            logger.info("Neo4j connection closed")

    async def __aenter__(self) -> "Neo4jHandler":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    # ─── Properties ─────────────────────────────────────────

    @property
    def driver(self) -> AsyncDriver:
        """Return the raw async driver.

        Raises:
            RuntimeError: If handler is not connected (call connect() first).
        """
        if self._driver is None:
            raise RuntimeError("Neo4jHandler is not connected — call connect() first")
        return self._driver

    @property
    def database(self) -> str:
        """Return the configured database name."""
        return self._database

    @property
    def uri(self) -> str:
        """Return the configured Neo4j URI."""
        return self._uri

    # ─── Query Helpers ──────────────────────────────────────

    async def run(self, query: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Execute a read-only Cypher query and return all results as dicts.

        Args:
            query: Cypher query string.
            params: Optional query parameters.

        Returns:
            List of result records as dictionaries.

        Raises:
            RuntimeError: If handler is not connected (call connect() first).
            neo4j.exceptions.Neo4jError: If query execution fails.
        """
        async with self.driver.session(
            database=self._database, default_access_mode=READ_ACCESS,
        ) as session:
            result = await session.run(query, params or {})
            return [record.data() async for record in result]

