"""
Impact Graph Models

Data classes for the File/Method graph nodes, the diff classification
they are seeded from, and the per-step Frontier the expansion engine
threads through its loop.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

from pydantic import BaseModel, Field

METHOD_SEPARATOR = "#"


class DiffType(str, Enum):
    """Classification of a change between two code versions."""

    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


class NodeCategory(str, Enum):
    """Bucket a node is reported under."""

    FILE = "FILE"
    METHOD = "METHOD"


def method_identity(file_path: str, signature: str) -> str:
    """
    Build a method's composite identity.
    e.g., ('A.java', 'foo()') -> 'A.java#foo()'
    """
    return f"{file_path}{METHOD_SEPARATOR}{signature}"


# ─── Graph Nodes ────────────────────────────────────────────


@dataclass(unsafe_hash=True)
class Method:
    """A function/method at a specific code version.

    Equality and hashing use ``(version, file_method_name)`` only, so a
    set of methods is deduplicated by identity.
    """

    version: str
    file_method_name: str
    level: int = field(default=0, compare=False)
    # Methods that call this one (the graph's "endMethod" targets)
    callers: list["Method"] = field(default_factory=list, compare=False, repr=False)

    @property
    def key(self) -> tuple[str, str]:
        return (self.version, self.file_method_name)

    @property
    def file_path(self) -> str:
        return self.file_method_name.split(METHOD_SEPARATOR, 1)[0]

    @property
    def signature(self) -> str:
        _, _, signature = self.file_method_name.partition(METHOD_SEPARATOR)
        return signature

    def to_dict(self) -> dict:
        return {
            "category": NodeCategory.METHOD.value,
            "version": self.version,
            "file_method_name": self.file_method_name,
            "file_path": self.file_path,
            "signature": self.signature,
            "level": self.level,
        }


@dataclass(unsafe_hash=True)
class File:
    """A source file at a specific code version, with the methods it contains."""

    version: str
    path: str
    level: int = field(default=0, compare=False)
    methods: set[Method] = field(default_factory=set, compare=False, repr=False)

    @property
    def key(self) -> tuple[str, str]:
        return (self.version, self.path)

    def add_method(self, method: Method) -> None:
        """Attach a containment edge.

        Raises:
            ValueError: If the method belongs to another file or version.
        """
        if method.version != self.version or method.file_path != self.path:
            raise ValueError(
                f"Method {method.file_method_name}@{method.version} "
                f"does not belong to {self.path}@{self.version}"
            )
        self.methods.add(method)

    def to_dict(self) -> dict:
        return {
            "category": NodeCategory.FILE.value,
            "version": self.version,
            "path": self.path,
            "level": self.level,
            "methods": sorted(m.file_method_name for m in self.methods),
        }


Node = Union[File, Method]


@dataclass(frozen=True)
class Frontier:
    """The node set at the current traversal boundary.

    A new Frontier is produced for every expansion step.
    """

    files: frozenset[File] = frozenset()
    methods: frozenset[Method] = frozenset()

    @classmethod
    def of(cls, files=(), methods=()) -> "Frontier":
        return cls(files=frozenset(files), methods=frozenset(methods))

    def is_empty(self) -> bool:
        return not self.files and not self.methods

    def file_keys(self) -> set[tuple[str, str]]:
        return {f.key for f in self.files}

    def method_keys(self) -> set[tuple[str, str]]:
        return {m.key for m in self.methods}


# ─── Diff Classification ────────────────────────────────────


class ChangedIdentifiers(BaseModel):
    """Changed file paths and method identities for one version."""

    files: list[str] = Field(default_factory=list)
    methods: list[str] = Field(default_factory=list)

    model_config = {"frozen": True, "extra": "forbid"}

    def is_empty(self) -> bool:
        return not self.files and not self.methods


DiffClassification = Mapping[DiffType, Mapping[str, ChangedIdentifiers]]


def freeze_classification(
    raw: dict[DiffType, dict[str, ChangedIdentifiers]],
) -> DiffClassification:
    """Wrap a parsed classification in read-only mapping proxies."""
    return MappingProxyType({
        diff_type: MappingProxyType(dict(per_version))
        for diff_type, per_version in raw.items()
    })


# ─── Analysis Results ───────────────────────────────────────


@dataclass(frozen=True)
class DiffTypeFailure:
    """Why one diff type's expansion did not complete."""

    diff_type: DiffType
    version: str
    message: str
    identity: str | None = None

    def to_dict(self) -> dict:
        return {
            "diff_type": self.diff_type.value,
            "version": self.version,
            "identity": self.identity,
            "message": self.message,
        }


@dataclass
class ImpactAnalysis:
    """Per-diff-type outcome of one analysis request."""

    version: str
    depth: int
    results: dict[DiffType, Frontier] = field(default_factory=dict)
    failures: dict[DiffType, DiffTypeFailure] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "depth": self.depth,
            "results": {
                diff_type.value: {
                    NodeCategory.FILE.value: [
                        f.to_dict() for f in sorted(frontier.files, key=lambda n: n.key)
                    ],
                    NodeCategory.METHOD.value: [
                        m.to_dict() for m in sorted(frontier.methods, key=lambda n: n.key)
                    ],
                }
                for diff_type, frontier in self.results.items()
            },
            "failures": [f.to_dict() for f in self.failures.values()],
        }
