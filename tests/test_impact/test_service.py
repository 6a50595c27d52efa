"""
Unit tests for the ImpactService facade and the Result Aggregator.

The diff report lives in tmp_path; the graph is the in-memory store.
"""

import asyncio
import json
import threading

import pytest

from src.agents.impact.aggregator import aggregate, serialise
from src.agents.impact.classifier import DiffClassifier
from src.agents.impact.frontier import FrontierExpander
from src.agents.impact.hydrator import GraphHydrator
from src.agents.impact.models import DiffType, Frontier, Method, NodeCategory
from src.agents.impact.service import ImpactService
from src.shared.exceptions import (
    ClassificationError,
    ConfigurationError,
    ImpactAnalysisError,
)


def _write_report(tmp_path, report: dict):
    path = tmp_path / "diff.json"
    path.write_text(json.dumps(report), encoding="utf-8")
    return path


def _service(store, diff_path, max_depth=None) -> ImpactService:
    return ImpactService(
        classifier=DiffClassifier(),
        hydrator=GraphHydrator(store),
        expander=FrontierExpander(store),
        diff_path=diff_path,
        max_depth=max_depth,
    )


@pytest.fixture
def two_type_store(chain_store):
    """Adds X.java#x <- Y.java#y next to the A/B/C chain."""
    chain_store.add_call("v1", "Y.java#y", "X.java#x")
    return chain_store


@pytest.fixture
def two_type_report(tmp_path):
    return _write_report(tmp_path, {
        "added": {"v1": {"methods": ["A.java#foo"]}},
        "modified": {"v1": {"methods": ["X.java#x"]}},
        "removed": {"v0": {"files": ["Old.java"]}},
    })


# ──────────────────────────────────────────────────
# Result Aggregator
# ──────────────────────────────────────────────────


class TestAggregate:
    def test_concatenates_in_mapping_order(self):
        shared = Method(version="v1", file_method_name="S.java#s")
        per_type = {
            DiffType.MODIFIED: Frontier.of((), [Method(version="v1", file_method_name="M.java#m"), shared]),
            DiffType.ADDED: Frontier.of((), [shared]),
        }

        result = aggregate(per_type)

        assert [m.file_method_name for m in result[NodeCategory.METHOD]] == [
            "M.java#m", "S.java#s", "S.java#s",
        ]
        assert result[NodeCategory.FILE] == []

    def test_empty_input_has_both_buckets(self):
        assert aggregate({}) == {NodeCategory.FILE: [], NodeCategory.METHOD: []}

    def test_serialise_uses_category_names(self):
        per_type = {DiffType.ADDED: Frontier.of((), [Method(version="v1", file_method_name="A.java#a")])}

        data = serialise(aggregate(per_type))

        assert set(data) == {"FILE", "METHOD"}
        assert data["METHOD"][0]["file_method_name"] == "A.java#a"


# ──────────────────────────────────────────────────
# Facade
# ──────────────────────────────────────────────────


class TestAnalyse:
    async def test_only_diff_types_with_changes_at_version(self, two_type_store, two_type_report):
        analysis = await _service(two_type_store, two_type_report).analyse("v1", 1)

        assert set(analysis.results) == {DiffType.ADDED, DiffType.MODIFIED}
        assert analysis.results[DiffType.ADDED].method_keys() == {("v1", "B.java#bar")}
        assert analysis.results[DiffType.MODIFIED].method_keys() == {("v1", "Y.java#y")}
        assert analysis.ok

    async def test_unresolved_seed_is_not_fatal(self, store, tmp_path):
        path = _write_report(tmp_path, {"removed": {"v1": {"files": ["Deleted.java"]}}})

        analysis = await _service(store, path).analyse("v1", 2)

        assert analysis.results[DiffType.REMOVED].is_empty()
        assert analysis.ok

    async def test_one_failed_diff_type_leaves_the_other_intact(
        self, two_type_store, two_type_report,
    ):
        two_type_store.fail_on("v1", "X.java#x")

        analysis = await _service(two_type_store, two_type_report).analyse("v1", 1)

        assert analysis.results[DiffType.ADDED].method_keys() == {("v1", "B.java#bar")}
        assert DiffType.MODIFIED not in analysis.results
        failure = analysis.failures[DiffType.MODIFIED]
        assert failure.version == "v1"
        assert failure.identity == "X.java#x"

    async def test_negative_depth_rejected_before_classification(self, store, tmp_path):
        service = _service(store, tmp_path / "does-not-exist.json")

        with pytest.raises(ConfigurationError):
            await service.analyse("v1", -1)

    async def test_depth_above_maximum_rejected(self, store, two_type_report):
        with pytest.raises(ConfigurationError):
            await _service(store, two_type_report, max_depth=3).analyse("v1", 4)

    async def test_malformed_report_aborts_before_expansion(self, chain_store, tmp_path):
        path = tmp_path / "diff.json"
        path.write_text("{\"added\": 42}", encoding="utf-8")

        with pytest.raises(ClassificationError):
            await _service(chain_store, path).analyse("v1", 1)

        assert chain_store.caller_queries == []


class TestAggregatedViews:
    async def test_level_nodes_concatenate_diff_types(self, two_type_store, two_type_report):
        result = await _service(two_type_store, two_type_report).get_level_nodes("v1", 2)

        names = [m.file_method_name for m in result[NodeCategory.METHOD]]
        assert sorted(names) == ["C.java#baz"]
        assert result[NodeCategory.FILE] == []

    async def test_same_node_under_two_diff_types_appears_twice(self, chain_store, tmp_path):
        path = _write_report(tmp_path, {
            "added": {"v1": {"methods": ["A.java#foo"]}},
            "modified": {"v1": {"files": ["B.java"]}},
        })

        result = await _service(chain_store, path).get_level_nodes("v1", 1)

        assert [m.file_method_name for m in result[NodeCategory.METHOD]] == [
            "B.java#bar", "B.java#bar",
        ]

    async def test_part_nodes_match_level_nodes(self, two_type_store, two_type_report):
        service = _service(two_type_store, two_type_report)

        full = await service.get_level_nodes("v1", 1)
        shell = await service.get_part_nodes("v1", 1)

        assert {m.key for m in full[NodeCategory.METHOD]} == {
            m.key for m in shell[NodeCategory.METHOD]
        }

    async def test_failure_raises_structured_error(self, two_type_store, two_type_report):
        two_type_store.fail_on("v1", "X.java#x")

        with pytest.raises(ImpactAnalysisError) as exc_info:
            await _service(two_type_store, two_type_report).get_level_nodes("v1", 1)

        (failure,) = exc_info.value.failures
        assert failure.diff_type is DiffType.MODIFIED
        assert "modified@v1" in str(exc_info.value)

    async def test_depth_zero_returns_seed_nodes(self, chain_store, tmp_path):
        path = _write_report(tmp_path, {"added": {"v1": {"files": ["A.java"]}}})

        result = await _service(chain_store, path).get_level_nodes("v1", 0)

        assert [f.path for f in result[NodeCategory.FILE]] == ["A.java"]
        assert result[NodeCategory.METHOD] == []


# ──────────────────────────────────────────────────
# Concurrency
# ──────────────────────────────────────────────────


class _RecordingClassifier(DiffClassifier):
    def __init__(self):
        self.threads: list[int] = []

    def classify_file(self, path):
        self.threads.append(threading.get_ident())
        return super().classify_file(path)


class _StallingHydrator:
    """Hangs on modified seeds and breaks on added ones."""

    def __init__(self):
        self.cancelled = asyncio.Event()

    async def hydrate(self, version, identifiers):
        if "X.java#x" in identifiers.methods:
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                self.cancelled.set()
                raise
        await asyncio.sleep(0)
        raise RuntimeError("driver crashed")


class TestConcurrency:
    async def test_report_is_read_off_the_event_loop(self, chain_store, two_type_report):
        classifier = _RecordingClassifier()
        service = ImpactService(
            classifier=classifier,
            hydrator=GraphHydrator(chain_store),
            expander=FrontierExpander(chain_store),
            diff_path=two_type_report,
        )

        await service.analyse("v1", 1)

        assert len(classifier.threads) == 1
        assert classifier.threads[0] != threading.get_ident()

    async def test_unexpected_error_cancels_other_diff_types(self, chain_store, two_type_report):
        hydrator = _StallingHydrator()
        service = ImpactService(
            classifier=DiffClassifier(),
            hydrator=hydrator,
            expander=FrontierExpander(chain_store),
            diff_path=two_type_report,
        )

        with pytest.raises(RuntimeError, match="driver crashed"):
            await service.analyse("v1", 1)

        assert hydrator.cancelled.is_set()
