"""
Hydrator — resolves changed identifiers into seed graph nodes.

Identifiers that do not resolve at the requested version (a file deleted
before that version, a renamed method) are left out of the seed and logged;
a missing node is never an error.
"""

import logging
from typing import Protocol

from src.agents.impact.models import ChangedIdentifiers, File, Method

logger = logging.getLogger("impact.hydrator")


class NodeLoader(Protocol):
    async def load_files(self, version: str, paths: list[str]) -> list[File]: ...

    async def load_methods(self, version: str, names: list[str]) -> list[Method]: ...


class GraphHydrator:
    """Turns ChangedIdentifiers into File/Method seed sets."""

    def __init__(self, loader: NodeLoader):
        self._loader = loader

    async def hydrate(
        self, version: str, identifiers: ChangedIdentifiers,
    ) -> tuple[set[File], set[Method]]:
        """Resolve one version's changed identifiers.

        Returns:
            (files, methods) found in the graph at ``version``.

        Raises:
            GraphQueryFailure: If the graph store query fails.
        """
        files = set(await self._loader.load_files(version, identifiers.files))
        methods = set(await self._loader.load_methods(version, identifiers.methods))

        missing_files = set(identifiers.files) - {f.path for f in files}
        missing_methods = set(identifiers.methods) - {m.file_method_name for m in methods}
        for path in sorted(missing_files):
            logger.info("Hydration gap: file %s not found at version %s", path, version)
        for name in sorted(missing_methods):
            logger.info("Hydration gap: method %s not found at version %s", name, version)

        logger.info(
            "Hydrated %d/%d file(s), %d/%d method(s) at version %s",
            len(files), len(set(identifiers.files)),
            len(methods), len(set(identifiers.methods)),
            version,
        )
        return files, methods
