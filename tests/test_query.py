"""Tests for the public query functions."""

import os
import subprocess
import sys
import time

import pytest

from proctree.cpu import CpuSample, CpuUsageCalculator
from proctree.models import ProcessDataFlag, ProcessInfo, ProcessTreeNode
from proctree.query import (
    get_process_cpu_usage,
    get_process_creation_time,
    get_process_list,
    get_process_tree,
)

SLEEPER = [sys.executable, "-c", "import time; time.sleep(30)"]


class FakeProvider:
    """Snapshot provider returning a fixed list and recording requested flags."""

    def __init__(self, processes: list[ProcessInfo]) -> None:
        self.processes = processes
        self.requested: list[ProcessDataFlag] = []

    def __call__(self, flags: ProcessDataFlag = ProcessDataFlag.NONE) -> list[ProcessInfo]:
        self.requested.append(flags)
        return list(self.processes)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(
        [
            ProcessInfo(pid=1, ppid=0, name="init"),
            ProcessInfo(pid=20, ppid=1, name="shell"),
            ProcessInfo(pid=30, ppid=20, name="editor"),
            ProcessInfo(pid=40, ppid=1, name="daemon"),
        ]
    )


@pytest.fixture
def children():
    """Spawn two sleeping child processes of the test process."""
    procs = [subprocess.Popen(SLEEPER) for _ in range(2)]
    try:
        yield procs
    finally:
        for proc in procs:
            proc.kill()
        for proc in procs:
            proc.wait(timeout=5.0)


def poll_until(predicate, timeout: float = 5.0, interval: float = 0.05) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return False


class TestWithFakeProvider:
    """Query functions over a fixed snapshot."""

    def test_process_list(self, provider):
        """Test the list is the root and its descendants in pre-order."""
        result = get_process_list(20, provider=provider)

        assert [p.name for p in result] == ["shell", "editor"]

    def test_process_tree(self, provider):
        """Test the tree is rooted at the requested pid."""
        tree = get_process_tree(1, provider=provider)

        assert tree.name == "init"
        assert [child.name for child in tree.children] == ["shell", "daemon"]
        assert [child.name for child in tree.children[0].children] == ["editor"]

    def test_flags_passed_to_provider(self, provider):
        """Test requested flags reach the snapshot provider."""
        flags = ProcessDataFlag.MEMORY | ProcessDataFlag.COMMAND_LINE

        get_process_tree(1, flags, provider=provider)
        get_process_list(1, ProcessDataFlag.MEMORY, provider=provider)

        assert provider.requested == [flags, ProcessDataFlag.MEMORY]

    def test_integer_flags_are_coerced(self, provider):
        """Test a plain bitmask is accepted as flags."""
        get_process_list(1, 3, provider=provider)

        assert provider.requested == [ProcessDataFlag.MEMORY | ProcessDataFlag.COMMAND_LINE]

    def test_invalid_flags_raise(self, provider):
        """Test flags of the wrong type are rejected."""
        with pytest.raises(TypeError):
            get_process_list(1, "memory", provider=provider)

    def test_out_of_range_flags_raise(self, provider):
        """Test an integer that is no combination of flags is rejected."""
        with pytest.raises(ValueError, match="not a combination of ProcessDataFlag values"):
            get_process_list(1, 4, provider=provider)

        assert provider.requested == []

    def test_max_depth_is_forwarded(self, provider):
        """Test max_depth limits the query result."""
        tree = get_process_tree(1, provider=provider, max_depth=1)

        assert all(child.children == () for child in tree.children)

    def test_missing_root(self, provider):
        """Test a pid that is not running yields a placeholder."""
        tree = get_process_tree(12345, provider=provider)

        assert tree.pid == 12345
        assert tree.children == ()

    @pytest.mark.asyncio
    async def test_cpu_usage_with_calculator(self):
        """Test a supplied calculator is used for CPU usage."""
        calculator = CpuUsageCalculator(
            sampler=lambda pid: CpuSample(cpu_time=0.0, create_time=1.0),
            cpu_count=1,
        )

        result = await get_process_cpu_usage(
            [ProcessInfo(pid=5, ppid=1, name="idle")], calculator=calculator
        )

        assert result == [ProcessInfo(pid=5, ppid=1, name="idle", cpu=0.0)]


class TestLiveQueries:
    """Query functions against this machine."""

    def test_list_contains_this_process(self):
        """Test the list rooted at this process starts with it."""
        result = get_process_list(os.getpid())

        assert result[0].pid == os.getpid()
        assert result[0].memory is None
        assert result[0].command_line is None

    def test_list_with_memory(self):
        """Test memory is reported when requested."""
        result = get_process_list(os.getpid(), ProcessDataFlag.MEMORY)

        assert isinstance(result[0].memory, int)
        assert result[0].memory > 0

    def test_tree_with_command_line(self):
        """Test command line is reported when requested."""
        tree = get_process_tree(os.getpid(), ProcessDataFlag.COMMAND_LINE)

        assert tree.pid == os.getpid()
        assert isinstance(tree.command_line, str)
        assert tree.memory is None

    def test_list_contains_child_processes(self, children):
        """Test spawned children follow this process in the list."""
        child_pids = {proc.pid for proc in children}

        def found() -> bool:
            pids = [p.pid for p in get_process_list(os.getpid())]
            return pids[0] == os.getpid() and child_pids <= set(pids[1:])

        assert poll_until(found)

    def test_tree_contains_child_processes(self, children):
        """Test spawned children are direct children in the tree."""
        child_pids = {proc.pid for proc in children}

        def found() -> bool:
            tree = get_process_tree(os.getpid())
            return child_pids <= {child.pid for child in tree.children}

        assert poll_until(found)
        assert isinstance(get_process_tree(os.getpid()), ProcessTreeNode)

    @pytest.mark.asyncio
    async def test_cpu_usage_of_self(self):
        """Test CPU usage of this process is a percentage."""
        me = ProcessInfo(pid=os.getpid(), ppid=os.getppid(), name="python")

        (record,) = await get_process_cpu_usage([me])

        assert record.pid == os.getpid()
        assert 0.0 <= record.cpu <= 100.0

    def test_creation_time_of_self(self):
        """Test the creation time of this process is known."""
        assert isinstance(get_process_creation_time(os.getpid()), int)
