"""
Impact Service — query facade over classification, hydration and expansion.

Runs one request end to end:

    diff report → DiffClassifier → per diff type: GraphHydrator → FrontierExpander
                → aggregate → caller

Diff types are expanded concurrently and independently. A graph query
failure only fails its own diff type; the facade reports which one.
"""

import asyncio
import logging
from pathlib import Path

from src.agents.impact.aggregator import aggregate
from src.agents.impact.classifier import DiffClassifier
from src.agents.impact.frontier import FrontierExpander, validate_depth
from src.agents.impact.hydrator import GraphHydrator
from src.agents.impact.models import (
    ChangedIdentifiers,
    DiffType,
    DiffTypeFailure,
    Frontier,
    ImpactAnalysis,
    Node,
    NodeCategory,
)
from src.shared.exceptions import GraphQueryFailure, ImpactAnalysisError
from src.shared.logging import generate_correlation_id, with_correlation

logger = logging.getLogger("impact.service")


class ImpactService:
    """Read-only change-impact queries for the presentation layer.

    All collaborators are passed in at construction time.
    """

    def __init__(
        self,
        classifier: DiffClassifier,
        hydrator: GraphHydrator,
        expander: FrontierExpander,
        diff_path: str | Path,
        max_depth: int | None = None,
    ):
        self._classifier = classifier
        self._hydrator = hydrator
        self._expander = expander
        self._diff_path = Path(diff_path)
        self._max_depth = max_depth

    # ─── Per-diff-type view ───────────────────────────────

    async def analyse(self, version: str, depth: int) -> ImpactAnalysis:
        """Expand every diff type that has changes at ``version``.

        Raises:
            ConfigurationError: If ``depth`` is invalid (before any work).
            ClassificationError: If the diff report is malformed.
        """
        validate_depth(depth, self._max_depth)
        log = with_correlation(logger, generate_correlation_id())

        classification = await asyncio.to_thread(
            self._classifier.classify_file, self._diff_path,
        )

        seeds: dict[DiffType, ChangedIdentifiers] = {}
        for diff_type, per_version in classification.items():
            identifiers = per_version.get(version)
            if identifiers is not None and not identifiers.is_empty():
                seeds[diff_type] = identifiers

        log.info(
            "Analysing version %s at depth %d — diff types: %s",
            version, depth, [dt.value for dt in seeds] or "none",
        )

        tasks = [
            asyncio.ensure_future(self._expand_diff_type(diff_type, version, identifiers, depth))
            for diff_type, identifiers in seeds.items()
        ]
        try:
            outcomes = await asyncio.gather(*tasks)
        except BaseException:
            # Unexpected errors and cancellation stop every diff type.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        analysis = ImpactAnalysis(version=version, depth=depth)
        for diff_type, outcome in zip(seeds, outcomes):
            if isinstance(outcome, DiffTypeFailure):
                log.error(
                    "Diff type %s failed at version %s (%s): %s",
                    diff_type.value, version, outcome.identity, outcome.message,
                )
                analysis.failures[diff_type] = outcome
            else:
                log.info(
                    "Diff type %s: %d file(s), %d method(s) at depth %d",
                    diff_type.value, len(outcome.files), len(outcome.methods), depth,
                )
                analysis.results[diff_type] = outcome
        return analysis

    async def _expand_diff_type(
        self,
        diff_type: DiffType,
        version: str,
        identifiers: ChangedIdentifiers,
        depth: int,
    ) -> Frontier | DiffTypeFailure:
        try:
            files, methods = await self._hydrator.hydrate(version, identifiers)
            return await self._expander.expand(files, methods, depth)
        except GraphQueryFailure as exc:
            exc.diff_type = diff_type.value
            return DiffTypeFailure(
                diff_type=diff_type,
                version=exc.version or version,
                identity=exc.identity,
                message=exc.message,
            )

    # ─── Aggregated views ─────────────────────────────────

    async def get_level_nodes(self, version: str, depth: int) -> dict[NodeCategory, list[Node]]:
        """Full impact: every node at ``depth`` hops, across all diff types.

        Raises:
            ConfigurationError, ClassificationError: Before any expansion.
            ImpactAnalysisError: If one or more diff types failed.
        """
        return self._aggregated(await self.analyse(version, depth))

    async def get_part_nodes(self, version: str, depth: int) -> dict[NodeCategory, list[Node]]:
        """Outer shell only.

        Frontiers are replaced at each step, so the shell and the full
        expansion are the same node set.
        """
        return self._aggregated(await self.analyse(version, depth))

    @staticmethod
    def _aggregated(analysis: ImpactAnalysis) -> dict[NodeCategory, list[Node]]:
        if not analysis.ok:
            failed = ", ".join(
                f"{f.diff_type.value}@{f.version}" for f in analysis.failures.values()
            )
            raise ImpactAnalysisError(
                f"Impact analysis failed for {failed}",
                failures=list(analysis.failures.values()),
            )
        return aggregate(analysis.results)
