"""psutil-backed process snapshots."""

import logging
from typing import Protocol

import psutil

from proctree.models import ProcessDataFlag, ProcessInfo

logger = logging.getLogger(__name__)


class SnapshotProvider(Protocol):
    """Callable returning a flat list of all processes on the machine."""

    def __call__(self, flags: ProcessDataFlag = ProcessDataFlag.NONE) -> list[ProcessInfo]: ...


def collect_processes(flags: ProcessDataFlag = ProcessDataFlag.NONE) -> list[ProcessInfo]:
    """
    Collect records of all running processes.

    Memory and command line are only read when requested in flags.
    Processes that die mid-iteration or deny access are skipped.
    """
    attrs = ["pid", "ppid", "name"]
    if ProcessDataFlag.MEMORY in flags:
        attrs.append("memory_info")
    if ProcessDataFlag.COMMAND_LINE in flags:
        attrs.append("cmdline")

    processes: list[ProcessInfo] = []
    for proc in psutil.process_iter(attrs=attrs):
        try:
            info = proc.info

            memory = None
            if ProcessDataFlag.MEMORY in flags:
                mem_info = info.get("memory_info")
                memory = mem_info.rss if mem_info else 0

            command_line = None
            if ProcessDataFlag.COMMAND_LINE in flags:
                cmdline = info.get("cmdline") or []
                command_line = " ".join(cmdline)

            processes.append(
                ProcessInfo(
                    pid=info["pid"],
                    ppid=info.get("ppid") or 0,
                    name=info.get("name") or "",
                    memory=memory,
                    command_line=command_line,
                )
            )
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            logger.debug("Skipping process %d during snapshot", proc.pid)
            continue

    return processes


def get_creation_time(pid: int) -> int | None:
    """Creation time of a process in milliseconds since the epoch, or None."""
    try:
        return int(psutil.Process(pid).create_time() * 1000)
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return None
