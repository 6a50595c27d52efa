"""
Frontier Expansion Engine — level-bounded File/Method graph expansion.

Starting from the changed nodes, every step follows two edge relations:

  - containment: a File in the frontier contributes all of its Methods;
  - call: a Method in the frontier contributes every Method calling it.

The next frontier *replaces* the current one; after ``depth`` steps the
result is the shell reached by exactly ``depth`` hops, not the union of
all intermediate levels.
"""

import logging
from typing import Iterable, Protocol

from src.agents.impact.models import File, Frontier, Method, Node
from src.shared.exceptions import ConfigurationError

logger = logging.getLogger("impact.frontier")


class CallerSource(Protocol):
    async def find_callers(self, version: str, file_method_name: str) -> list[Method]: ...


def assign_level(nodes: Iterable[Node], level: int) -> None:
    """Record ``level`` on every node that has not been leveled yet.

    Nodes whose level is already non-zero keep it (first assignment wins).
    """
    for node in nodes:
        if node.level == 0:
            node.level = level


def validate_depth(depth: int, max_depth: int | None = None) -> int:
    """Reject negative (or above ``max_depth``) traversal depths.

    Raises:
        ConfigurationError: If ``depth`` is out of range.
    """
    if isinstance(depth, bool) or not isinstance(depth, int):
        raise ConfigurationError(f"depth must be an integer, got {depth!r}")
    if depth < 0:
        raise ConfigurationError(f"depth must be >= 0, got {depth}")
    if max_depth is not None and depth > max_depth:
        raise ConfigurationError(f"depth {depth} exceeds the configured maximum {max_depth}")
    return depth


class FrontierExpander:
    """Expands seed File/Method sets along containment and call edges."""

    def __init__(self, callers: CallerSource):
        self._callers = callers

    async def expand(
        self,
        seed_files: Iterable[File],
        seed_methods: Iterable[Method],
        depth: int,
    ) -> Frontier:
        """Return the frontier reached after exactly ``depth`` steps.

        The given nodes are annotated in place: every expanded method gets
        its callers appended to ``callers``, and a seed reached again by a
        later step takes that step as its level (0 means unassigned).

        Args:
            seed_files: Changed files (may be empty).
            seed_methods: Changed methods (may be empty).
            depth: Number of expansion steps; 0 returns the seed unchanged.

        Raises:
            ConfigurationError: If ``depth`` is negative.
            GraphQueryFailure: If a caller lookup fails (no retry, no skip).
        """
        validate_depth(depth)
        frontier = Frontier.of(seed_files, seed_methods)

        # One object per identity for the whole expansion, so a node reached
        # again at a later step keeps its first-discovery level.
        registry: dict[tuple[str, str], Method] = {m.key: m for m in frontier.methods}

        for step in range(1, depth + 1):
            frontier = await self._step(frontier, registry)
            assign_level(frontier.files, step)
            assign_level(frontier.methods, step)
            logger.debug(
                "Step %d/%d: %d file(s), %d method(s)",
                step, depth, len(frontier.files), len(frontier.methods),
            )
            if frontier.is_empty():
                logger.debug("Frontier exhausted after step %d", step)
                return frontier

        return frontier

    async def _step(
        self,
        frontier: Frontier,
        registry: dict[tuple[str, str], Method],
    ) -> Frontier:
        next_methods: dict[tuple[str, str], Method] = {}

        def _collect(method: Method) -> Method:
            canonical = registry.setdefault(method.key, method)
            next_methods.setdefault(canonical.key, canonical)
            return canonical

        for file in frontier.files:
            for method in file.methods:
                _collect(method)

        for method in frontier.methods:
            for caller in await self._callers.find_callers(
                method.version, method.file_method_name,
            ):
                canonical = _collect(caller)
                if canonical not in method.callers:
                    method.callers.append(canonical)

        # Containment only yields methods, so the next frontier holds no files.
        return Frontier.of((), next_methods.values())
