"""
Result Aggregator — merges per-diff-type frontiers into one categorised view.

The merge concatenates: a node reported under two diff types appears twice.
Callers that need exact per-diff-type sets use ImpactAnalysis.results.
"""

from typing import Any, Mapping

from src.agents.impact.models import DiffType, File, Frontier, Method, Node, NodeCategory


def aggregate(
    per_diff_type: Mapping[DiffType, Frontier],
) -> dict[NodeCategory, list[Node]]:
    """Concatenate every diff type's files and methods, in mapping order.

    Within a single diff type nodes are ordered by identity.
    """
    merged: dict[NodeCategory, list[Node]] = {
        NodeCategory.FILE: [],
        NodeCategory.METHOD: [],
    }
    for frontier in per_diff_type.values():
        merged[NodeCategory.FILE].extend(sorted(frontier.files, key=_identity))
        merged[NodeCategory.METHOD].extend(sorted(frontier.methods, key=_identity))
    return merged


def serialise(aggregated: Mapping[NodeCategory, list[Node]]) -> dict[str, list[dict[str, Any]]]:
    """JSON-ready form of an aggregated view, keyed by category name."""
    return {
        category.value: [node.to_dict() for node in nodes]
        for category, nodes in aggregated.items()
    }


def _identity(node: File | Method) -> tuple[str, str]:
    return node.key
