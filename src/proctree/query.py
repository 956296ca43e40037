"""Public queries over the processes of this machine."""

from collections.abc import Iterable

from proctree.config import DEFAULT_MAX_DEPTH
from proctree.cpu import CpuUsageCalculator
from proctree.models import ProcessDataFlag, ProcessInfo, ProcessTreeNode
from proctree.snapshot import SnapshotProvider, collect_processes, get_creation_time
from proctree.tree import build_process_tree, filter_process_list


def _coerce_flags(flags: ProcessDataFlag | int) -> ProcessDataFlag:
    if isinstance(flags, ProcessDataFlag):
        return flags
    if isinstance(flags, int) and not isinstance(flags, bool):
        try:
            return ProcessDataFlag(flags)
        except ValueError:
            raise ValueError(f"flags {flags} is not a combination of ProcessDataFlag values") from None
    raise TypeError(f"flags must be a ProcessDataFlag, got {type(flags).__name__}")


def get_process_list(
    root_pid: int,
    flags: ProcessDataFlag | int = ProcessDataFlag.NONE,
    *,
    provider: SnapshotProvider = collect_processes,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> list[ProcessInfo]:
    """Return root_pid and its descendants, parents before their children."""
    return filter_process_list(root_pid, provider(_coerce_flags(flags)), max_depth)


def get_process_tree(
    root_pid: int,
    flags: ProcessDataFlag | int = ProcessDataFlag.NONE,
    *,
    provider: SnapshotProvider = collect_processes,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> ProcessTreeNode:
    """Return the process tree rooted at root_pid."""
    return build_process_tree(root_pid, provider(_coerce_flags(flags)), max_depth)


async def get_process_cpu_usage(
    processes: Iterable[ProcessInfo],
    *,
    calculator: CpuUsageCalculator | None = None,
) -> list[ProcessInfo]:
    """Return the given processes annotated with their current CPU usage."""
    if calculator is None:
        calculator = CpuUsageCalculator()
    return await calculator.annotate(processes)


def get_process_creation_time(pid: int) -> int | None:
    """Creation time of pid in milliseconds since the epoch, None if it is gone."""
    return get_creation_time(pid)
