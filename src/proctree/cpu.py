"""CPU utilization of processes from two time-separated samples."""

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import psutil

from proctree.models import ProcessInfo

logger = logging.getLogger(__name__)

# Seconds between the two samples of one measurement.
SAMPLE_INTERVAL = 0.5


@dataclass(slots=True, frozen=True)
class CpuSample:
    """CPU time consumed by a process up to the moment it was sampled."""

    cpu_time: float  # User + system seconds
    create_time: float | None  # Distinguishes a reused pid


def read_cpu_sample(pid: int) -> CpuSample | None:
    """
    Sample the CPU time of a process with psutil.

    Returns None if the process no longer exists or cannot be inspected.
    """
    try:
        process = psutil.Process(pid)
        with process.oneshot():
            times = process.cpu_times()
            create_time = process.create_time()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return None
    return CpuSample(cpu_time=times.user + times.system, create_time=create_time)


def compute_cpu_percent(
    before: CpuSample | None,
    after: CpuSample | None,
    elapsed: float,
    cpu_count: int,
) -> float:
    """
    Percentage of total machine CPU used between two samples, in [0, 100].

    A process missing from either sample, or whose pid was reused in
    between, reports 0.0.
    """
    if before is None or after is None or elapsed <= 0 or cpu_count <= 0:
        return 0.0
    if before.create_time != after.create_time:
        return 0.0
    percent = 100.0 * (after.cpu_time - before.cpu_time) / elapsed / cpu_count
    return min(100.0, max(0.0, percent))


class CpuUsageCalculator:
    """
    Annotates process records with their CPU usage.

    Every call to annotate() takes its own pair of samples, so overlapping
    calls do not share any state.
    """

    def __init__(
        self,
        sampler: Callable[[int], CpuSample | None] = read_cpu_sample,
        cpu_count: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """
        Initialize the CpuUsageCalculator.

        Args:
            sampler: Returns the CPU time of a pid, or None if it is gone.
            cpu_count: Number of logical cores. Defaults to psutil.cpu_count().
            clock: Monotonic wall clock in seconds.
        """
        self._sampler = sampler
        self._cpu_count = cpu_count if cpu_count is not None else psutil.cpu_count(logical=True) or 1
        self._clock = clock

    @property
    def cpu_count(self) -> int:
        """Number of logical cores usage is divided over."""
        return self._cpu_count

    def _sample(self, pids: list[int]) -> tuple[float, dict[int, CpuSample | None]]:
        samples: dict[int, CpuSample | None] = {}
        for pid in pids:
            if pid not in samples:
                samples[pid] = self._sampler(pid)
        return self._clock(), samples

    async def annotate(self, processes: Iterable[ProcessInfo]) -> list[ProcessInfo]:
        """
        Measure CPU usage of the given processes over SAMPLE_INTERVAL.

        Only pid, ppid and name of the input records are kept. The result has
        the same order as the input. Cancelling the call discards the
        measurement.
        """
        processes = list(processes)
        pids = [process.pid for process in processes]

        # Sampling blocks on the OS, keep it off the event loop
        started, first = await asyncio.to_thread(self._sample, pids)
        await asyncio.sleep(SAMPLE_INTERVAL)
        finished, second = await asyncio.to_thread(self._sample, pids)

        elapsed = finished - started
        annotated = []
        for process in processes:
            before = first[process.pid]
            after = second[process.pid]
            if before is None or after is None:
                logger.debug("Process %d exited during CPU sampling", process.pid)
            cpu = compute_cpu_percent(before, after, elapsed, self._cpu_count)
            annotated.append(process.with_cpu(cpu))
        return annotated
