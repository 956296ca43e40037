"""Background polling of a process tree."""

import logging
import threading
from queue import Queue

from proctree.config import DEFAULT_MAX_DEPTH, DEFAULT_POLL_RATE
from proctree.models import ProcessDataFlag, ProcessTreeNode
from proctree.query import get_process_tree
from proctree.snapshot import SnapshotProvider, collect_processes

logger = logging.getLogger(__name__)


class ProcessTreeMonitor:
    """
    Polls the process tree rooted at a pid.

    Runs in a separate daemon thread and pushes every tree to a thread-safe
    Queue. A failing poll is logged and the loop keeps running.
    """

    def __init__(
        self,
        update_queue: Queue[ProcessTreeNode],
        root_pid: int,
        flags: ProcessDataFlag = ProcessDataFlag.NONE,
        poll_rate: float = DEFAULT_POLL_RATE,
        provider: SnapshotProvider = collect_processes,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        """
        Initialize the ProcessTreeMonitor.

        Args:
            update_queue: Thread-safe queue to push trees to.
            root_pid: Pid the polled tree is rooted at.
            flags: Optional fields to include in every tree.
            poll_rate: How often to poll (in seconds).
            provider: Source of process snapshots.
            max_depth: Depth ceiling of every tree.
        """
        self._queue = update_queue
        self._root_pid = root_pid
        self._flags = flags
        self._provider = provider
        self._max_depth = max_depth
        self._poll_rate = max(0.1, poll_rate)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def root_pid(self) -> int:
        return self._root_pid

    @property
    def poll_rate(self) -> float:
        """Get the current poll rate."""
        return self._poll_rate

    @poll_rate.setter
    def poll_rate(self, value: float) -> None:
        """Set the poll rate."""
        self._poll_rate = max(0.1, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if the monitor thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the monitoring thread."""
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._poll_loop,
            daemon=True,
            name="ProcessTreeMonitor",
        )
        self._thread.start()

    def stop(self, timeout: float | None = 5.0) -> None:
        """
        Stop the monitoring thread.

        Args:
            timeout: How long to wait for thread to stop (seconds).
        """
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None

    def poll(self) -> ProcessTreeNode:
        """Build the tree once in the calling thread."""
        return get_process_tree(
            self._root_pid,
            self._flags,
            provider=self._provider,
            max_depth=self._max_depth,
        )

    def _poll_loop(self) -> None:
        """Main polling loop running in the background thread."""
        while not self._stop_event.is_set():
            try:
                self._queue.put(self.poll())
            except Exception:
                logger.exception("Polling process tree of %d failed", self._root_pid)

            # Wait for poll_rate seconds or until stop is requested
            self._stop_event.wait(timeout=self._poll_rate)
