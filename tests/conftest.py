"""
Shared fixtures: an in-memory stand-in for the Neo4j impact graph store.

Returns fresh node objects on every query, like the real store does.
"""

from collections import defaultdict

import pytest

from src.agents.impact.models import File, Method, method_identity
from src.shared.exceptions import GraphQueryFailure


class InMemoryGraphStore:
    """Versioned File/Method graph with caller edges, held in dicts."""

    def __init__(self):
        self._files: dict[tuple[str, str], list[str]] = {}
        self._methods: set[tuple[str, str]] = set()
        self._callers: dict[tuple[str, str], list[str]] = defaultdict(list)
        self.failing: set[tuple[str, str]] = set()
        self.caller_queries: list[tuple[str, str]] = []

    # ─── Graph building ───────────────────────────────────

    def add_file(self, version: str, path: str, *signatures: str) -> None:
        names = [method_identity(path, sig) for sig in signatures]
        self._files[(version, path)] = names
        for name in names:
            self._methods.add((version, name))

    def add_method(self, version: str, name: str) -> None:
        self._methods.add((version, name))

    def add_call(self, version: str, caller: str, callee: str) -> None:
        self.add_method(version, caller)
        self.add_method(version, callee)
        self._callers[(version, callee)].append(caller)

    def fail_on(self, version: str, name: str) -> None:
        self.failing.add((version, name))

    def file(self, version: str, path: str) -> File:
        node = File(version=version, path=path)
        for name in self._files[(version, path)]:
            node.add_method(Method(version=version, file_method_name=name))
        return node

    # ─── Store protocol ───────────────────────────────────

    async def find_callers(self, version: str, file_method_name: str) -> list[Method]:
        self.caller_queries.append((version, file_method_name))
        if (version, file_method_name) in self.failing:
            raise GraphQueryFailure(
                f"store unreachable for {file_method_name}",
                version=version,
                identity=file_method_name,
            )
        return [
            Method(version=version, file_method_name=name)
            for name in self._callers.get((version, file_method_name), [])
        ]

    async def load_files(self, version: str, paths: list[str]) -> list[File]:
        return [self.file(version, p) for p in paths if (version, p) in self._files]

    async def load_methods(self, version: str, names: list[str]) -> list[Method]:
        return [
            Method(version=version, file_method_name=n)
            for n in names
            if (version, n) in self._methods
        ]


@pytest.fixture
def store() -> InMemoryGraphStore:
    return InMemoryGraphStore()


@pytest.fixture
def chain_store(store) -> InMemoryGraphStore:
    """A.java#foo <- B.java#bar <- C.java#baz at version v1."""
    store.add_file("v1", "A.java", "foo")
    store.add_file("v1", "B.java", "bar")
    store.add_file("v1", "C.java", "baz")
    store.add_call("v1", "B.java#bar", "A.java#foo")
    store.add_call("v1", "C.java#baz", "B.java#bar")
    return store
