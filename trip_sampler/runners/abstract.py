"""
Job runner interfaces and the per-task outcome contract for the Trip Sampler.

Concrete runners (sequential, process pool, thread pool) implement the
JobRunner protocol and return one TaskOutcome per partition. Task failures
are captured as outcomes inside the worker, so exceptions never cross a
worker boundary and a failing partition cannot take its siblings down.
"""

from __future__ import annotations

import abc
import time
from typing import Callable, Dict, Literal, Optional, Protocol, Sequence, Tuple, TypedDict
from typing import runtime_checkable

from trip_sampler.domain.errors import SamplerError
from trip_sampler.domain.partitions import Partition
from trip_sampler.sampler import SampleSummary
from trip_sampler.utils.logging import get_logger

log = get_logger(__name__)

TaskStatus = Literal["ok", "failed", "cancelled"]
PartitionTask = Callable[[Partition], SampleSummary]


class TaskOutcome(TypedDict, total=False):
    """
    Result of one partition task.

    `output_path` is set on success; `error_type` and `error` on failure.
    """

    partition: str
    status: TaskStatus
    output_path: Optional[str]
    records_read: int
    rows_rejected: int
    sample_size: int
    duration_seconds: float
    error_type: Optional[str]
    error: Optional[str]


def execute_task(task: PartitionTask, partition: Partition) -> Tuple[Partition, TaskOutcome]:
    """
    Worker entry point: run `task` for one partition and capture the outcome.
    """
    start = time.perf_counter()
    try:
        summary = task(partition)
    except SamplerError as exc:
        log.error(
            f"[PARTITION FAILED] {partition.key}: {exc.kind}",
            extra={"partition": partition.key, "error_type": exc.kind, "error": str(exc)},
        )
        return partition, _failed(partition, exc.kind, exc, start)
    except Exception as exc:  # noqa: BLE001 - intentional broad catch to record failures
        log.exception(
            f"[PARTITION FAILED] {partition.key}",
            extra={"partition": partition.key, "error_type": type(exc).__name__},
        )
        return partition, _failed(partition, type(exc).__name__, exc, start)

    return partition, TaskOutcome(
        partition=partition.key,
        status="ok",
        output_path=summary.output_path,
        records_read=summary.records_read,
        rows_rejected=summary.rows_rejected,
        sample_size=summary.sample_size,
        duration_seconds=summary.duration_seconds,
        error_type=None,
        error=None,
    )


def _failed(partition: Partition, kind: str, exc: BaseException, start: float) -> TaskOutcome:
    return TaskOutcome(
        partition=partition.key,
        status="failed",
        output_path=None,
        duration_seconds=time.perf_counter() - start,
        error_type=kind,
        error=str(exc),
    )


def cancelled_outcome(partition: Partition) -> TaskOutcome:
    return TaskOutcome(
        partition=partition.key,
        status="cancelled",
        output_path=None,
        error_type="Cancelled",
        error="Run aborted before this partition completed.",
    )


@runtime_checkable
class JobRunner(Protocol):
    """
    Common interface all job runners implement.

    Attributes
    ----------
    name : str
        Short machine-friendly identifier.
    worker_count : int
        Upper bound on concurrently running tasks.
    """

    name: str
    worker_count: int

    def run(
        self,
        partitions: Sequence[Partition],
        task: PartitionTask,
        fail_fast: bool = False,
    ) -> Dict[str, TaskOutcome]:
        """
        Run `task` once per partition and block until all have terminated.

        Parameters
        ----------
        partitions : Sequence[Partition]
            Partitions to process; duplicates are run again, not removed.
        task : PartitionTask
            Picklable callable bound with read-only configuration.
        fail_fast : bool
            Stop dispatching after the first failure; unfinished partitions
            are reported as cancelled.

        Returns
        -------
        Dict[str, TaskOutcome]
            Outcome per partition key.
        """
        ...


class AbstractJobRunner(abc.ABC):
    """
    ABC helper for class-based runners.
    """

    name: str
    worker_count: int

    @abc.abstractmethod
    def run(
        self,
        partitions: Sequence[Partition],
        task: PartitionTask,
        fail_fast: bool = False,
    ) -> Dict[str, TaskOutcome]:  # pragma: no cover - interface only
        raise NotImplementedError

    @staticmethod
    def _fill_cancelled(
        partitions: Sequence[Partition], outcomes: Dict[str, TaskOutcome]
    ) -> Dict[str, TaskOutcome]:
        for partition in partitions:
            outcomes.setdefault(partition.key, cancelled_outcome(partition))
        return outcomes


__all__ = [
    "AbstractJobRunner",
    "JobRunner",
    "PartitionTask",
    "TaskOutcome",
    "TaskStatus",
    "cancelled_outcome",
    "execute_task",
]
