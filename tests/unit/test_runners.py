from __future__ import annotations

import threading
import time
from datetime import date
from typing import Any, Callable, List

import pytest

from trip_sampler.domain.errors import InsufficientRecords, SourceNotFound
from trip_sampler.domain.partitions import Partition, enumerate_partitions
from trip_sampler.runners import registry
from trip_sampler.runners.abstract import JobRunner, execute_task
from trip_sampler.runners.multiprocessing import (
    MultiprocessingRunner,
    ThreadPoolRunner,
    _PoolRunner,
)
from trip_sampler.runners.registry import resolve_runner, run_all
from trip_sampler.runners.sequential import SequentialRunner
from trip_sampler.sampler import SampleSummary

EXPECTED_PROCESSES = 2
PARTITIONS = enumerate_partitions(date(2016, 7, 1), 6)


def _ok_task(partition: Partition) -> SampleSummary:
    return SampleSummary(
        partition=partition.key,
        output_path=f"/tmp/sample_{partition.key}.csv",
        records_read=100,
        rows_rejected=0,
        sample_size=10,
        duration_seconds=0.0,
    )


def _failing_task(bad: set[str], error: type[Exception] = SourceNotFound) -> Callable:
    def task(partition: Partition) -> SampleSummary:
        if partition.key in bad:
            raise error(f"no data for {partition.key}")
        return _ok_task(partition)

    return task


def test_execute_task_captures_sampler_errors():
    partition = PARTITIONS[0]
    returned, outcome = execute_task(_failing_task({partition.key}), partition)
    assert returned == partition
    assert outcome["status"] == "failed"
    assert outcome["error_type"] == "SourceNotFound"
    assert outcome["output_path"] is None
    assert partition.key in outcome["error"]


def test_execute_task_captures_unexpected_errors():
    _, outcome = execute_task(_failing_task({PARTITIONS[0].key}, KeyError), PARTITIONS[0])
    assert outcome["status"] == "failed"
    assert outcome["error_type"] == "KeyError"


def test_execute_task_success_outcome():
    _, outcome = execute_task(_ok_task, PARTITIONS[0])
    assert outcome["status"] == "ok"
    assert outcome["output_path"] == "/tmp/sample_2016-06.csv"
    assert outcome["records_read"] == 100
    assert outcome["error"] is None


def test_resolve_runner_single_worker_is_sequential():
    assert isinstance(resolve_runner("process", 1), SequentialRunner)
    assert isinstance(resolve_runner("thread", 1), SequentialRunner)


def test_resolve_runner_by_name():
    process = resolve_runner("process", 4)
    thread = resolve_runner("thread", 3)
    assert isinstance(process, MultiprocessingRunner) and process.worker_count == 4
    assert isinstance(thread, ThreadPoolRunner) and thread.worker_count == 3
    assert isinstance(process, JobRunner)


@pytest.mark.parametrize("count", [0, -1, 1.5, True])
def test_resolve_runner_rejects_bad_worker_count(count: Any):
    with pytest.raises(ValueError, match="worker_count"):
        resolve_runner("thread", count)


def test_resolve_runner_rejects_unknown_name():
    with pytest.raises(ValueError, match="Unknown runner"):
        resolve_runner("gpu", 2)


def test_run_all_rejects_empty_partitions():
    with pytest.raises(ValueError, match="at least one partition"):
        run_all([], 1, task=_ok_task)


@pytest.mark.parametrize("workers", [1, 3, 8])
def test_run_all_reports_every_partition(workers: int):
    report = run_all(PARTITIONS, workers, task=_ok_task, runner="thread")
    assert set(report.outcomes) == {p.key for p in PARTITIONS}
    assert report.ok
    assert report.duration_seconds > 0
    assert report.worker_count == workers


def test_run_all_contains_failures_to_their_partition():
    bad = {PARTITIONS[1].key, PARTITIONS[4].key}
    report = run_all(PARTITIONS, 3, task=_failing_task(bad), runner="thread")
    assert set(report.failed) == bad
    assert len(report.succeeded) == len(PARTITIONS) - len(bad)
    assert report.cancelled == []
    assert not report.ok


def test_run_all_duplicates_are_not_removed():
    calls: List[str] = []
    lock = threading.Lock()

    def task(partition: Partition) -> SampleSummary:
        with lock:
            calls.append(partition.key)
        return _ok_task(partition)

    duplicated = [PARTITIONS[0], PARTITIONS[0], PARTITIONS[1]]
    report = run_all(duplicated, 2, task=task, runner="thread")
    assert sorted(calls) == sorted(p.key for p in duplicated)
    assert set(report.outcomes) == {PARTITIONS[0].key, PARTITIONS[1].key}


def test_thread_pool_bounds_concurrency():
    active = 0
    peak = 0
    lock = threading.Lock()

    def task(partition: Partition) -> SampleSummary:
        nonlocal active, peak
        with lock:
            active += 1
            peak = max(peak, active)
        time.sleep(0.02)
        with lock:
            active -= 1
        return _ok_task(partition)

    run_all(PARTITIONS, 2, task=task, runner="thread")
    assert peak <= 2


def test_sequential_fail_fast_cancels_remaining():
    bad = {PARTITIONS[2].key}
    outcomes = SequentialRunner().run(PARTITIONS, _failing_task(bad), fail_fast=True)
    statuses = [outcomes[p.key]["status"] for p in PARTITIONS]
    assert statuses == ["ok", "ok", "failed", "cancelled", "cancelled", "cancelled"]


def test_sequential_without_fail_fast_runs_everything():
    bad = {PARTITIONS[0].key}
    outcomes = SequentialRunner().run(PARTITIONS, _failing_task(bad, InsufficientRecords))
    assert outcomes[PARTITIONS[0].key]["error_type"] == "InsufficientRecords"
    assert all(outcomes[p.key]["status"] == "ok" for p in PARTITIONS[1:])


class _FakePool:
    def __init__(self) -> None:
        self.terminate_calls = 0

    def imap_unordered(self, worker, items):
        for item in items:
            yield worker(item)

    def terminate(self) -> None:
        self.terminate_calls += 1

    def __enter__(self) -> _FakePool:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        del exc_type, exc, tb
        self.terminate()
        return False


class _FakeContext:
    def __init__(self) -> None:
        self.pool_kwargs: list[dict[str, Any]] = []
        self.pools: list[_FakePool] = []

    def Pool(self, **kwargs: Any) -> _FakePool:  # noqa: N802
        self.pool_kwargs.append(kwargs)
        pool = _FakePool()
        self.pools.append(pool)
        return pool


def test_multiprocessing_uses_local_spawn_context(monkeypatch) -> None:
    contexts: list[_FakeContext] = []

    def fake_get_context(method: str) -> _FakeContext:
        assert method == "spawn"
        context = _FakeContext()
        contexts.append(context)
        return context

    def fail_if_called(method: str, force: bool = False) -> None:
        raise AssertionError("set_start_method must not be called by the runner")

    monkeypatch.setattr("trip_sampler.runners.multiprocessing.mp.get_context", fake_get_context)
    monkeypatch.setattr(
        "trip_sampler.runners.multiprocessing.mp.set_start_method", fail_if_called
    )

    runner = MultiprocessingRunner(worker_count=EXPECTED_PROCESSES, log_level="DEBUG")
    first = runner.run(PARTITIONS, _ok_task)
    second = runner.run(PARTITIONS[:1], _ok_task)

    assert len(first) == len(PARTITIONS)
    assert len(second) == 1
    assert len(contexts) == 2
    assert contexts[0].pool_kwargs[0]["processes"] == EXPECTED_PROCESSES
    # pool never larger than the partition list
    assert contexts[1].pool_kwargs[0]["processes"] == 1
    assert contexts[0].pool_kwargs[0]["initargs"] == ("DEBUG", False)


def test_multiprocessing_fail_fast_terminates_pool(monkeypatch) -> None:
    context = _FakeContext()
    monkeypatch.setattr(
        "trip_sampler.runners.multiprocessing.mp.get_context", lambda method: context
    )

    bad = {PARTITIONS[1].key}
    outcomes = MultiprocessingRunner(worker_count=4).run(
        PARTITIONS, _failing_task(bad), fail_fast=True
    )

    assert outcomes[PARTITIONS[0].key]["status"] == "ok"
    assert outcomes[PARTITIONS[1].key]["status"] == "failed"
    assert all(outcomes[p.key]["status"] == "cancelled" for p in PARTITIONS[2:])
    assert context.pools[0].terminate_calls >= 1


def test_run_all_wraps_runner_in_profiler(monkeypatch) -> None:
    labels: list[str] = []
    real_profile_block = registry.profile_block

    def spy(label: str, *args, **kwargs):
        labels.append(label)
        return real_profile_block(label, *args, **kwargs)

    monkeypatch.setattr(registry, "profile_block", spy)
    report = run_all(PARTITIONS[:2], 2, task=_ok_task, runner="thread")
    assert labels == ["thread-2"]
    assert report.to_dict()["succeeded"] == 2


def test_pool_runner_base_cannot_be_instantiated() -> None:
    with pytest.raises(TypeError, match="_make_pool"):
        _PoolRunner(2)


def test_thread_fail_fast_keeps_outcomes_of_in_flight_tasks() -> None:
    started: List[str] = []
    lock = threading.Lock()
    bad = PARTITIONS[0].key

    def task(partition: Partition) -> SampleSummary:
        with lock:
            started.append(partition.key)
        if partition.key == bad:
            raise SourceNotFound(f"no data for {partition.key}")
        time.sleep(0.1)
        return _ok_task(partition)

    outcomes = ThreadPoolRunner(worker_count=2).run(PARTITIONS, task, fail_fast=True)

    assert set(outcomes) == {p.key for p in PARTITIONS}
    assert outcomes[bad]["status"] == "failed"
    for key in started:
        if key != bad:
            assert outcomes[key]["status"] == "ok"
    for partition in PARTITIONS:
        if partition.key not in started:
            assert outcomes[partition.key]["status"] == "cancelled"
    assert outcomes[PARTITIONS[-1].key]["status"] == "cancelled"


def test_thread_without_fail_fast_runs_after_failure() -> None:
    bad = {PARTITIONS[0].key}
    outcomes = ThreadPoolRunner(worker_count=2).run(PARTITIONS, _failing_task(bad))
    assert outcomes[PARTITIONS[0].key]["status"] == "failed"
    assert all(outcomes[p.key]["status"] == "ok" for p in PARTITIONS[1:])
