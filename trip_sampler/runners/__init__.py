"""
Runners package for the Trip Sampler.

Re-exports the runner interfaces, the concrete runners, and `run_all` so
downstream code can import from `trip_sampler.runners` directly.
"""

from trip_sampler.runners.abstract import (
    AbstractJobRunner,
    JobRunner,
    PartitionTask,
    TaskOutcome,
    execute_task,
)
from trip_sampler.runners.multiprocessing import MultiprocessingRunner, ThreadPoolRunner
from trip_sampler.runners.registry import RunReport, available_runners, resolve_runner, run_all
from trip_sampler.runners.sequential import SequentialRunner

__all__ = [
    # Abstracts
    "AbstractJobRunner",
    "JobRunner",
    "PartitionTask",
    "TaskOutcome",
    "execute_task",
    # Concrete runners
    "MultiprocessingRunner",
    "SequentialRunner",
    "ThreadPoolRunner",
    # Entry points
    "RunReport",
    "available_runners",
    "resolve_runner",
    "run_all",
]
