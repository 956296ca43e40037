"""Data models for proctree."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Flag
from itertools import zip_longest


class ProcessDataFlag(Flag):
    """Optional fields a process snapshot should include."""

    NONE = 0
    MEMORY = 1
    COMMAND_LINE = 2


@dataclass(slots=True, frozen=True)
class ProcessInfo:
    """Immutable record of one process in a snapshot."""

    pid: int
    ppid: int | None  # None only for a placeholder root
    name: str
    memory: int | None = None  # Resident bytes, only with ProcessDataFlag.MEMORY
    command_line: str | None = None  # Only with ProcessDataFlag.COMMAND_LINE
    cpu: float | None = None  # 0.0 - 100.0, only after CPU annotation

    @classmethod
    def placeholder(cls, pid: int) -> "ProcessInfo":
        """Record for a pid that has no entry in the snapshot."""
        return cls(pid=pid, ppid=None, name="")

    def with_cpu(self, cpu: float) -> "ProcessInfo":
        """Return the identifying fields of this record annotated with cpu."""
        return ProcessInfo(pid=self.pid, ppid=self.ppid, name=self.name, cpu=cpu)


@dataclass(slots=True, frozen=True, eq=False)
class ProcessTreeNode:
    """
    A process record plus its child nodes.

    Children keep the order in which they were found in the flat list.
    A childless node has an empty tuple, never None. Equality, hashing and
    repr walk the tree iteratively, so depth is not bounded by the
    interpreter's recursion limit.
    """

    pid: int
    ppid: int | None
    name: str
    memory: int | None = None
    command_line: str | None = None
    cpu: float | None = None
    children: tuple["ProcessTreeNode", ...] = field(default=(), repr=False)

    @classmethod
    def from_info(
        cls,
        info: ProcessInfo,
        children: tuple["ProcessTreeNode", ...] = (),
    ) -> "ProcessTreeNode":
        """Create a node from a record and its already built children."""
        return cls(
            pid=info.pid,
            ppid=info.ppid,
            name=info.name,
            memory=info.memory,
            command_line=info.command_line,
            cpu=info.cpu,
            children=children,
        )

    @property
    def info(self) -> ProcessInfo:
        """The record of this node without its children."""
        return ProcessInfo(
            pid=self.pid,
            ppid=self.ppid,
            name=self.name,
            memory=self.memory,
            command_line=self.command_line,
            cpu=self.cpu,
        )

    def walk(self) -> Iterator["ProcessTreeNode"]:
        """Iterate over this node and its descendants in depth-first pre-order."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def _shape(self) -> Iterator[tuple[ProcessInfo, int]]:
        # Pre-order records with child counts determine the tree exactly
        for node in self.walk():
            yield node.info, len(node.children)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProcessTreeNode):
            return NotImplemented
        missing = object()
        return all(a == b for a, b in zip_longest(self._shape(), other._shape(), fillvalue=missing))

    def __hash__(self) -> int:
        return hash(tuple(self._shape()))

    def __len__(self) -> int:
        return sum(1 for _ in self.walk())
