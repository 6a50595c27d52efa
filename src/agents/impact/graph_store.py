"""
Impact Graph Store — read-only Neo4j query layer for the Impact agent.

Uses the shared async ``Neo4jHandler``. Every public method is one query
against the versioned File/Method graph:

    (:File {version, path})-[:CONTAINS]->(:Method {version, file_method_name})
    (:Method)-[:CALLS]->(:Method)

Relationship names are injected into f-string Cypher, so they are checked
against a whitelist first.
"""

import logging
from typing import Any

from src.agents.impact.config import ImpactSettings
from src.agents.impact.models import File, Method
from src.shared.database import Neo4jHandler
from src.shared.exceptions import ConfigurationError, GraphQueryFailure

logger = logging.getLogger("impact.graph_store")

# ── Security guards ───────────────────────────────────────

VALID_RELATIONSHIPS: set[str] = {
    "CALLS", "CONTAINS", "HAS_METHOD", "CALL", "INVOKES",
}

VALID_DIRECTIONS: set[str] = {"incoming", "outgoing"}


def _safe_relationship(raw: str) -> str:
    """Validate a single relationship type against the whitelist.

    Raises:
        ConfigurationError: If the type is not in VALID_RELATIONSHIPS.
    """
    rel = raw.strip().upper()
    if rel not in VALID_RELATIONSHIPS:
        raise ConfigurationError(
            f"Invalid relationship type: {raw!r}. "
            f"Valid: {sorted(VALID_RELATIONSHIPS)}"
        )
    return rel


class ImpactGraphStore:
    """Read-only access to the versioned code graph."""

    def __init__(self, handler: Neo4jHandler, settings: ImpactSettings | None = None):
        settings = settings or ImpactSettings()
        if settings.call_direction not in VALID_DIRECTIONS:
            raise ConfigurationError(
                f"Invalid call_direction: {settings.call_direction!r}. "
                f"Valid: {sorted(VALID_DIRECTIONS)}"
            )
        self._handler = handler
        self._contains = _safe_relationship(settings.containment_relationship)
        self._calls = _safe_relationship(settings.call_relationship)
        self._direction = settings.call_direction

    # ─── Core helpers ─────────────────────────────────────

    async def _query(
        self,
        cypher: str,
        params: dict[str, Any],
        version: str,
        identity: str | None = None,
    ) -> list[dict[str, Any]]:
        try:
            return await self._handler.run(cypher, params)
        except Exception as exc:
            raise GraphQueryFailure(
                f"Graph query failed for {identity or 'batch'}@{version}: {exc}",
                version=version,
                identity=identity,
            ) from exc

    def _caller_pattern(self) -> str:
        if self._direction == "incoming":
            return f"(caller:Method)-[:{self._calls}]->(m:Method)"
        return f"(m:Method)-[:{self._calls}]->(caller:Method)"

    # ─── Call edges ───────────────────────────────────────

    async def find_callers(self, version: str, file_method_name: str) -> list[Method]:
        """Return the methods that directly call ``file_method_name`` at ``version``.

        Raises:
            GraphQueryFailure: If the store is unreachable or the query fails.
        """
        rows = await self._query(
            f"MATCH {self._caller_pattern()} "
            "WHERE m.version = $version AND m.file_method_name = $name "
            "  AND caller.version = $version "
            "RETURN DISTINCT caller.file_method_name AS file_method_name",
            {"version": version, "name": file_method_name},
            version,
            file_method_name,
        )
        callers = [
            Method(version=version, file_method_name=row["file_method_name"])
            for row in rows
            if row.get("file_method_name")
        ]
        logger.debug("%s@%s has %d caller(s)", file_method_name, version, len(callers))
        return callers

    # ─── Hydration lookups ────────────────────────────────

    async def load_files(self, version: str, paths: list[str]) -> list[File]:
        """Resolve file paths to File nodes with their containment edges.

        Paths with no matching node are absent from the result.
        """
        if not paths:
            return []
        rows = await self._query(
            "MATCH (f:File) "
            "WHERE f.version = $version AND f.path IN $paths "
            f"OPTIONAL MATCH (f)-[:{self._contains}]->(m:Method {{version: $version}}) "
            "RETURN f.path AS path, "
            "       [name IN collect(m.file_method_name) WHERE name IS NOT NULL] AS methods",
            {"version": version, "paths": list(paths)},
            version,
        )
        files: list[File] = []
        for row in rows:
            file = File(version=version, path=row["path"])
            for name in row.get("methods") or []:
                method = Method(version=version, file_method_name=name)
                try:
                    file.add_method(method)
                except ValueError:
                    logger.warning(
                        "Ignoring containment edge %s -> %s (different file)",
                        file.path, name,
                    )
            files.append(file)
        return files

    async def load_methods(self, version: str, names: list[str]) -> list[Method]:
        """Resolve method identities to Method nodes.

        Identities with no matching node are absent from the result.
        """
        if not names:
            return []
        rows = await self._query(
            "MATCH (m:Method) "
            "WHERE m.version = $version AND m.file_method_name IN $names "
            "RETURN DISTINCT m.file_method_name AS file_method_name",
            {"version": version, "names": list(names)},
            version,
        )
        return [
            Method(version=version, file_method_name=row["file_method_name"])
            for row in rows
        ]
