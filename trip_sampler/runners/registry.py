"""
Runner registry and the `run_all` entry point.

`run_all` picks a runner for the requested worker count, runs every partition
under the profiler, and returns a RunReport with one outcome per partition and
the wall-clock duration of the whole run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from trip_sampler.domain.partitions import Partition
from trip_sampler.runners.abstract import JobRunner, PartitionTask, TaskOutcome
from trip_sampler.runners.multiprocessing import MultiprocessingRunner, ThreadPoolRunner
from trip_sampler.runners.sequential import SequentialRunner
from trip_sampler.utils.logging import get_logger
from trip_sampler.utils.profiler import profile_block

log = get_logger(__name__)


@dataclass
class RunReport:
    """
    Outcome of one run over a list of partitions.
    """

    outcomes: Dict[str, TaskOutcome]
    duration_seconds: float
    worker_count: int
    runner: str
    peak_rss_bytes: Optional[int] = None
    cpu_percent: Optional[float] = None
    extra: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> List[str]:
        return [key for key, o in self.outcomes.items() if o["status"] == "ok"]

    @property
    def failed(self) -> List[str]:
        return [key for key, o in self.outcomes.items() if o["status"] == "failed"]

    @property
    def cancelled(self) -> List[str]:
        return [key for key, o in self.outcomes.items() if o["status"] == "cancelled"]

    @property
    def ok(self) -> bool:
        return not self.failed and not self.cancelled

    def to_dict(self) -> dict:
        return {
            "runner": self.runner,
            "worker_count": self.worker_count,
            "duration_seconds": round(self.duration_seconds, 2),
            "peak_rss_bytes": self.peak_rss_bytes,
            "cpu_percent": round(self.cpu_percent, 1) if self.cpu_percent is not None else None,
            "succeeded": len(self.succeeded),
            "failed": len(self.failed),
            "cancelled": len(self.cancelled),
            "outcomes": self.outcomes,
        }


def _runner_factories(
    log_level: str = "INFO", json_logs: bool = False
) -> Dict[str, Callable[[int], JobRunner]]:
    """Registry of pooled runners by name."""
    return {
        "process": lambda n: MultiprocessingRunner(n, log_level=log_level, json_logs=json_logs),
        "thread": lambda n: ThreadPoolRunner(n),
    }


def available_runners() -> List[str]:
    """List available runner names."""
    return sorted(_runner_factories().keys())


def resolve_runner(
    name: str, worker_count: int, log_level: str = "INFO", json_logs: bool = False
) -> JobRunner:
    """
    Build a runner. A single worker always runs sequentially in-process.
    """
    if isinstance(worker_count, bool) or not isinstance(worker_count, int) or worker_count < 1:
        raise ValueError(f"worker_count must be a positive integer, got {worker_count!r}")
    factories = _runner_factories(log_level=log_level, json_logs=json_logs)
    if name not in factories:
        raise ValueError(f"Unknown runner '{name}'. Available: {', '.join(factories)}")
    if worker_count == 1:
        return SequentialRunner()
    return factories[name](worker_count)


def run_all(
    partitions: Sequence[Partition],
    worker_count: int = 1,
    *,
    task: PartitionTask,
    runner: str = "process",
    fail_fast: bool = False,
    log_level: str = "INFO",
    json_logs: bool = False,
) -> RunReport:
    """
    Run `task` once per partition across a bounded worker pool.

    Parameters
    ----------
    partitions : Sequence[Partition]
        Non-empty list of partitions. Duplicates are run, not removed.
    worker_count : int
        Maximum concurrent tasks; 1 (the default) runs sequentially.
    task : PartitionTask
        Sampling entry point bound with shared read-only configuration.
    runner : str
        Pool flavour for worker_count > 1 ("process" or "thread").
    fail_fast : bool
        Cancel unfinished partitions after the first failure.

    Returns
    -------
    RunReport
        Per-partition outcomes plus wall-clock duration and resource stats.
    """
    if not partitions:
        raise ValueError("run_all needs at least one partition")

    job_runner = resolve_runner(runner, worker_count, log_level=log_level, json_logs=json_logs)
    label = f"{job_runner.name}-{job_runner.worker_count}"
    log.info(
        f"[RUN START] {len(partitions)} partition(s) on {label}",
        extra={
            "runner": job_runner.name,
            "worker_count": job_runner.worker_count,
            "partitions": [p.key for p in partitions],
        },
    )

    with profile_block(label) as stats:
        outcomes = job_runner.run(partitions, task, fail_fast=fail_fast)

    report = RunReport(
        outcomes=outcomes,
        duration_seconds=stats.duration_seconds,
        worker_count=job_runner.worker_count,
        runner=job_runner.name,
        peak_rss_bytes=stats.peak_rss_bytes,
        cpu_percent=stats.cpu_percent,
    )
    log.info(
        f"[RUN COMPLETE] {label} in {report.duration_seconds:.2f}s",
        extra={
            "runner": report.runner,
            "worker_count": report.worker_count,
            "duration": round(report.duration_seconds, 2),
            "succeeded": len(report.succeeded),
            "failed": len(report.failed),
            "cancelled": len(report.cancelled),
        },
    )
    return report


__all__ = ["RunReport", "available_runners", "resolve_runner", "run_all"]
