"""
Orchestrator for sampling runs: builds the partition list and task from a
RunConfig, runs it, applies the failure policy, combines outputs, and persists
a JSON report.

Usage (example from CLI):
    from trip_sampler.orchestrator import RunConfig, run_pipeline

    payload = run_pipeline(RunConfig(worker_count=4, sample_size=100_000))
    print(payload["duration_seconds"])

Outputs are saved to `results/` by default:
- `results/latest.json` (last run)
- `results/run-<timestamp>.json` (timestamped archive)
- `results/benchmark-latest.json` and `results/benchmark-<timestamp>.json`
"""

from __future__ import annotations

import json
import statistics
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from functools import partial
from pathlib import Path
from typing import Iterable, List, Literal, Optional

from trip_sampler.config import Settings, get_settings
from trip_sampler.domain.errors import RunFailed
from trip_sampler.domain.partitions import Partition, enumerate_partitions
from trip_sampler.domain.schema import TAXI_SCHEMA, TableSchema
from trip_sampler.infrastructure.csv_io import concatenate_samples, discard_partial_outputs
from trip_sampler.runners.abstract import PartitionTask
from trip_sampler.runners.registry import RunReport, run_all
from trip_sampler.sampler import sample_partition, validate_sample_size
from trip_sampler.utils.logging import get_logger

log = get_logger(__name__)

FailurePolicy = Literal["tolerant", "strict"]


@dataclass(frozen=True)
class RunConfig:
    """
    Everything one run needs, fixed before any task starts.
    """

    reference_date: date = date(2016, 7, 1)
    partition_count: int = 6
    partitions: Optional[List[Partition]] = None
    sample_size: int = 1_000_000
    worker_count: int = 1
    runner: str = "process"
    seed: Optional[int] = None
    row_policy: Literal["reject", "strict"] = "reject"
    schema: TableSchema = TAXI_SCHEMA
    source_dir: Path = Path("data")
    output_dir: Path = Path("samples")
    source_prefix: str = "yellow_tripdata"
    sample_prefix: str = "sample"
    source_has_header: bool = True
    combine: bool = True
    combined_filename: str = "sample_combined.csv"
    persist: bool = True
    results_dir: Path = Path("results")
    failure_policy: FailurePolicy = "tolerant"
    runs: int = 1
    log_level: str = "INFO"
    json_logs: bool = False
    extra: dict = field(default_factory=dict)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **overrides) -> "RunConfig":
        """Build a config from Settings; keyword overrides win (None means keep)."""
        settings = settings or get_settings()
        values = dict(
            reference_date=settings.reference_date,
            partition_count=settings.partition_count,
            sample_size=settings.sample_size,
            worker_count=settings.worker_count,
            runner=settings.runner,
            seed=settings.sample_seed,
            row_policy=settings.row_policy,
            source_dir=settings.source_dir,
            output_dir=settings.output_dir,
            source_prefix=settings.source_prefix,
            sample_prefix=settings.sample_prefix,
            source_has_header=settings.source_has_header,
            combined_filename=settings.combined_filename,
            results_dir=settings.results_dir,
            failure_policy=settings.failure_policy,
            log_level=settings.log_level,
            json_logs=settings.log_json,
        )
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def resolve_partitions(self) -> List[Partition]:
        if self.partitions:
            return list(self.partitions)
        return enumerate_partitions(self.reference_date, self.partition_count)

    def output_path(self, partition: Partition) -> Path:
        return Path(self.output_dir) / partition.sample_filename(self.sample_prefix)

    @property
    def combined_path(self) -> Path:
        return Path(self.output_dir) / self.combined_filename


def build_task(config: RunConfig) -> PartitionTask:
    """Bind the sampler with the run's shared, read-only configuration."""
    return partial(
        sample_partition,
        schema=config.schema,
        sample_size=config.sample_size,
        source_dir=Path(config.source_dir),
        output_dir=Path(config.output_dir),
        source_prefix=config.source_prefix,
        sample_prefix=config.sample_prefix,
        seed=config.seed,
        row_policy=config.row_policy,
        has_header=config.source_has_header,
    )


def _persist_results(payload: dict, results_dir: Path, stem: str = "run") -> None:
    results_dir.mkdir(parents=True, exist_ok=True)
    latest_name = "latest.json" if stem == "run" else f"{stem}-latest.json"
    latest_path = results_dir / latest_name
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    archive_path = results_dir / f"{stem}-{timestamp}.json"

    for path in (latest_path, archive_path):
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, sort_keys=True, default=str)

    log.info("Results persisted", extra={"latest": str(latest_path), "archive": str(archive_path)})


def _ordered_unique(partitions: Iterable[Partition]) -> List[Partition]:
    seen = set()
    ordered: List[Partition] = []
    for partition in partitions:
        if partition.key not in seen:
            seen.add(partition.key)
            ordered.append(partition)
    return ordered


def combine_outputs(config: RunConfig, partitions: Optional[Iterable[Partition]] = None) -> Path:
    """
    Concatenate per-partition sample files in partition order.
    """
    if partitions is None:
        partitions = config.resolve_partitions()
    sources = [config.output_path(p) for p in _ordered_unique(partitions)]
    return concatenate_samples(sources, config.combined_path)


def _execute(config: RunConfig, partitions: List[Partition]) -> RunReport:
    strict = config.failure_policy == "strict"
    report = run_all(
        partitions,
        config.worker_count,
        task=build_task(config),
        runner=config.runner,
        fail_fast=strict,
        log_level=config.log_level,
        json_logs=config.json_logs,
    )
    for key in report.failed + report.cancelled:
        discard_partial_outputs(config.output_path(Partition.parse(key)))
    return report


def run_pipeline(config: Optional[RunConfig] = None) -> dict:
    """
    Run one sampling pass and return the run payload.

    Parameters
    ----------
    config : RunConfig | None
        Run parameters. Defaults to RunConfig.from_settings().

    Returns
    -------
    dict
        Run metadata, per-partition outcomes, duration, and the combined path
        (None when combining was skipped).

    Raises
    ------
    InvalidSampleSize
        Before any I/O, if the sample size is not a positive integer.
    RunFailed
        Under the strict failure policy, if any partition failed.
    """
    config = config or RunConfig.from_settings()
    validate_sample_size(config.sample_size)
    partitions = config.resolve_partitions()

    report = _execute(config, partitions)
    for key, outcome in report.outcomes.items():
        if outcome["status"] == "ok":
            log.info(
                f"[PARTITION OK] {key}",
                extra={"partition": key, "output": outcome.get("output_path")},
            )

    combined_path: Optional[str] = None
    if config.combine and report.succeeded and (report.ok or config.failure_policy == "tolerant"):
        succeeded = set(report.succeeded)
        ok_partitions = [p for p in partitions if p.key in succeeded]
        combined_path = str(combine_outputs(config, ok_partitions))

    payload = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "partitions": [p.key for p in partitions],
        "sample_size": config.sample_size,
        "seed": config.seed,
        "row_policy": config.row_policy,
        "failure_policy": config.failure_policy,
        "combined_path": combined_path,
        **report.to_dict(),
    }

    if config.persist:
        _persist_results(payload, Path(config.results_dir))

    if config.failure_policy == "strict" and not report.ok:
        raise RunFailed(
            f"{len(report.failed)} partition(s) failed: {', '.join(report.failed)}",
            failed=report.failed,
        )
    return payload


def _round_stats(stats: dict, decimals: int = 2) -> dict:
    return {k: round(v, decimals) if isinstance(v, float) else v for k, v in stats.items()}


def _aggregate_runs(run_results: List[dict]) -> dict:
    """
    Aggregate repeated runs at one worker count into median/mean/stddev/min/max.
    """
    durations = [r["duration_seconds"] for r in run_results]
    aggregated = {
        "duration_seconds": _round_stats(
            {
                "median": statistics.median(durations),
                "mean": statistics.mean(durations),
                "stddev": statistics.stdev(durations) if len(durations) > 1 else 0.0,
                "min": min(durations),
                "max": max(durations),
            }
        ),
        "succeeded": min(r["succeeded"] for r in run_results),
        "failed": max(r["failed"] for r in run_results),
    }
    peaks = [r["peak_rss_bytes"] for r in run_results if r.get("peak_rss_bytes")]
    if peaks:
        aggregated["peak_rss_bytes"] = int(statistics.median(peaks))
    return aggregated


def run_benchmark(config: RunConfig, worker_counts: Iterable[int]) -> List[dict]:
    """
    Time the same run at several worker counts.

    Each worker count runs `config.runs` times. Combining and per-run
    persistence are skipped; one benchmark payload is persisted at the end when
    `config.persist` is set.
    """
    counts = list(worker_counts)
    if not counts:
        raise ValueError("run_benchmark needs at least one worker count")
    if config.runs < 1:
        raise ValueError(f"runs must be positive, got {config.runs}")

    results: List[dict] = []
    for count in counts:
        log.info(f"{'=' * 60}")
        log.info(f"[BENCHMARK] workers={count}", extra={"worker_count": count, "runs": config.runs})
        log.info(f"{'=' * 60}")
        run_config = replace(
            config, worker_count=count, combine=False, persist=False, failure_policy="tolerant"
        )
        runs: List[dict] = []
        for run_num in range(1, config.runs + 1):
            payload = run_pipeline(run_config)
            payload["run"] = run_num
            runs.append(payload)
        aggregated = _aggregate_runs(runs)
        aggregated["worker_count"] = count
        aggregated["runner"] = runs[0]["runner"]
        aggregated["runs"] = config.runs
        aggregated["individual_runs"] = [
            {k: v for k, v in r.items() if k != "outcomes"} for r in runs
        ]
        results.append(aggregated)

    if config.persist:
        _persist_results(
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "sample_size": config.sample_size,
                "worker_counts": counts,
                "results": results,
            },
            Path(config.results_dir),
            stem="benchmark",
        )
    return results


__all__ = [
    "RunConfig",
    "build_task",
    "combine_outputs",
    "run_benchmark",
    "run_pipeline",
]
