"""
Sequential (baseline) runner: one partition at a time, in the calling process.

Used whenever a run asks for a single worker, and as the baseline when
benchmarking pooled runners.
"""

from __future__ import annotations

from typing import Dict, Sequence

from trip_sampler.domain.partitions import Partition
from trip_sampler.runners.abstract import (
    AbstractJobRunner,
    PartitionTask,
    TaskOutcome,
    execute_task,
)


class SequentialRunner(AbstractJobRunner):
    name: str = "sequential"
    worker_count: int = 1

    def run(
        self,
        partitions: Sequence[Partition],
        task: PartitionTask,
        fail_fast: bool = False,
    ) -> Dict[str, TaskOutcome]:
        outcomes: Dict[str, TaskOutcome] = {}
        for partition in partitions:
            _, outcome = execute_task(task, partition)
            outcomes[partition.key] = outcome
            if fail_fast and outcome["status"] == "failed":
                return self._fill_cancelled(partitions, outcomes)
        return outcomes


__all__ = ["SequentialRunner"]
