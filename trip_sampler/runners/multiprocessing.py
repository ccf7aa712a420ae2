"""
Pooled runners for the Trip Sampler.

- MultiprocessingRunner fans partitions out to worker processes created from a
  local `spawn` context, so each task gets its own interpreter, file handles,
  and memory. The global start method is never touched.
- ThreadPoolRunner uses the same pool API with threads; it is cheaper to start
  and useful for comparing against process isolation.

Both pools hand out work with `imap_unordered` and collect outcomes as tasks
finish. On the first failed outcome under `fail_fast`:

- the process pool is terminated, killing its workers; partitions without a
  collected outcome are reported as cancelled, even if a worker finished its
  sample just before being killed.
- the thread pool cannot interrupt running threads, so it raises a cancel
  flag instead: queued partitions return as cancelled without running, and
  in-flight tasks run to completion and keep their real outcome.
"""

from __future__ import annotations

import abc
import multiprocessing as mp
import threading
from functools import partial
from multiprocessing.pool import ThreadPool
from typing import Any, Dict, Optional, Sequence, Tuple

from trip_sampler.domain.partitions import Partition
from trip_sampler.runners.abstract import (
    AbstractJobRunner,
    PartitionTask,
    TaskOutcome,
    cancelled_outcome,
    execute_task,
)
from trip_sampler.utils.logging import configure_logging, get_logger

log = get_logger(__name__)


class _PoolRunner(AbstractJobRunner):
    def __init__(self, worker_count: Optional[int] = None) -> None:
        count = worker_count if worker_count is not None else max(mp.cpu_count() - 1, 1)
        if count < 1:
            raise ValueError(f"worker_count must be positive, got {count}")
        self.worker_count = count

    @abc.abstractmethod
    def _make_pool(self, processes: int) -> Any:
        """Return a pool object usable as a context manager."""

    def run(
        self,
        partitions: Sequence[Partition],
        task: PartitionTask,
        fail_fast: bool = False,
    ) -> Dict[str, TaskOutcome]:
        processes = min(self.worker_count, len(partitions))
        worker = partial(execute_task, task)
        outcomes: Dict[str, TaskOutcome] = {}

        with self._make_pool(processes) as pool:
            for partition, outcome in pool.imap_unordered(worker, partitions):
                outcomes[partition.key] = outcome
                if fail_fast and outcome["status"] == "failed":
                    log.warning(
                        f"[RUN ABORT] {partition.key} failed; terminating pool",
                        extra={"partition": partition.key, "runner": self.name},
                    )
                    pool.terminate()
                    break

        return self._fill_cancelled(partitions, outcomes)


class MultiprocessingRunner(_PoolRunner):
    """
    Process pool over a local spawn context.
    """

    name: str = "process"

    def __init__(
        self,
        worker_count: Optional[int] = None,
        log_level: str = "INFO",
        json_logs: bool = False,
    ) -> None:
        super().__init__(worker_count)
        self.log_level = log_level
        self.json_logs = json_logs

    def _make_pool(self, processes: int) -> Any:
        context = mp.get_context("spawn")
        return context.Pool(
            processes=processes,
            initializer=configure_logging,
            initargs=(self.log_level, self.json_logs),
        )


def _run_unless_cancelled(
    cancel: threading.Event, task: PartitionTask, partition: Partition
) -> Tuple[Partition, TaskOutcome]:
    if cancel.is_set():
        return partition, cancelled_outcome(partition)
    return execute_task(task, partition)


class ThreadPoolRunner(_PoolRunner):
    """
    Thread pool sharing the calling interpreter.
    """

    name: str = "thread"

    def _make_pool(self, processes: int) -> Any:
        return ThreadPool(processes=processes)

    def run(
        self,
        partitions: Sequence[Partition],
        task: PartitionTask,
        fail_fast: bool = False,
    ) -> Dict[str, TaskOutcome]:
        processes = min(self.worker_count, len(partitions))
        cancel = threading.Event()
        worker = partial(_run_unless_cancelled, cancel, task)
        outcomes: Dict[str, TaskOutcome] = {}

        with self._make_pool(processes) as pool:
            for partition, outcome in pool.imap_unordered(worker, partitions):
                if outcome["status"] == "cancelled":
                    outcomes.setdefault(partition.key, outcome)
                    continue
                outcomes[partition.key] = outcome
                if fail_fast and outcome["status"] == "failed" and not cancel.is_set():
                    log.warning(
                        f"[RUN ABORT] {partition.key} failed; cancelling queued partitions",
                        extra={"partition": partition.key, "runner": self.name},
                    )
                    cancel.set()

        return self._fill_cancelled(partitions, outcomes)


__all__ = ["MultiprocessingRunner", "ThreadPoolRunner"]
