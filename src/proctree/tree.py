"""Tree building and subtree filtering over a flat process snapshot."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from typing import NamedTuple

from proctree.config import DEFAULT_MAX_DEPTH
from proctree.exceptions import InvalidMaxDepthError
from proctree.models import ProcessInfo, ProcessTreeNode

logger = logging.getLogger(__name__)


class _Visit(NamedTuple):
    process: ProcessInfo
    depth: int
    parent: int | None  # Index of the parent visit, None for the root


def _check_max_depth(max_depth: object) -> None:
    # bool is an int subclass but never a meaningful depth
    if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 0:
        raise InvalidMaxDepthError(max_depth)


def _walk(root_pid: int, processes: Iterable[ProcessInfo], max_depth: int) -> list[_Visit]:
    """
    Visit the root and its descendants in depth-first pre-order.

    Children of a process are all records whose ppid equals its pid, in list
    order. There is no visited set: a ppid cycle is followed again on every
    level until max_depth, so the same pid may appear several times.
    """
    _check_max_depth(max_depth)
    processes = list(processes)

    root: ProcessInfo | None = None
    children_of: defaultdict[int | None, list[ProcessInfo]] = defaultdict(list)
    for process in processes:
        if root is None and process.pid == root_pid:
            root = process
        children_of[process.ppid].append(process)

    if root is None:
        logger.debug("Root pid %d not in snapshot of %d processes", root_pid, len(processes))
        root = ProcessInfo.placeholder(root_pid)

    visits: list[_Visit] = []
    stack = [_Visit(root, 0, None)]
    while stack:
        visit = stack.pop()
        index = len(visits)
        visits.append(visit)
        if visit.depth >= max_depth:
            continue
        # Reversed so the first child in list order is popped first
        for child in reversed(children_of.get(visit.process.pid, ())):
            stack.append(_Visit(child, visit.depth + 1, index))

    return visits


def build_process_tree(
    root_pid: int,
    processes: Iterable[ProcessInfo],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> ProcessTreeNode:
    """
    Build the tree of processes rooted at root_pid.

    Args:
        root_pid: Pid of the root node. If no record has this pid, the root is
            a placeholder carrying only the pid.
        processes: Flat snapshot to search. The first record with a given pid
            is used as the root.
        max_depth: Nodes at this depth are returned without children.

    Raises:
        InvalidMaxDepthError: If max_depth is not a non-negative integer.
    """
    visits = _walk(root_pid, processes, max_depth)

    # Post-order assembly: every node is built after all of its descendants.
    pending: list[list[ProcessTreeNode]] = [[] for _ in visits]
    for index in range(len(visits) - 1, 0, -1):
        visit = visits[index]
        children = pending[index]
        children.reverse()
        pending[visit.parent].append(ProcessTreeNode.from_info(visit.process, tuple(children)))
        pending[index] = []

    # visits[0] is always the root
    root_children = pending[0]
    root_children.reverse()
    return ProcessTreeNode.from_info(visits[0].process, tuple(root_children))


def filter_process_list(
    root_pid: int,
    processes: Iterable[ProcessInfo],
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[ProcessInfo]:
    """
    Return root_pid and its descendants as a flat list.

    The order is the depth-first pre-order of the tree build_process_tree
    returns for the same arguments, duplicates included.
    """
    return [visit.process for visit in _walk(root_pid, processes, max_depth)]
