from __future__ import annotations

import json
import sys
from datetime import date, datetime
from typing import List, Optional

import typer

from trip_sampler.config import get_settings
from trip_sampler.domain.errors import RunFailed, SamplerError
from trip_sampler.orchestrator import RunConfig, combine_outputs, run_benchmark, run_pipeline
from trip_sampler.reporter import print_benchmark, print_run_report
from trip_sampler.runners.registry import available_runners
from trip_sampler.utils.logging import configure_logging

app = typer.Typer(help="Trip Sampler CLI: fixed-size monthly samples of taxi trip CSVs.")


def _parse_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise typer.BadParameter(f"expected YYYY-MM-DD, got '{value}'") from None


def _check_runner(runner: Optional[str]) -> None:
    if runner is not None and runner not in available_runners():
        raise typer.BadParameter(
            f"unknown runner '{runner}'. Available: {', '.join(available_runners())}"
        )


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"source={settings.source_dir}/{settings.source_prefix}_YYYY-MM.csv | "
        f"output={settings.output_dir}/{settings.sample_prefix}_YYYY-MM.csv | "
        f"reference={settings.reference_date} months={settings.partition_count} "
        f"sample_size={settings.sample_size} workers={settings.worker_count} "
        f"runner={settings.runner} policy={settings.failure_policy}"
    )


@app.command()
def partitions(
    reference_date: Optional[str] = typer.Option(
        None, "--reference-date", help="Reference date (YYYY-MM-DD)."
    ),
    months: Optional[int] = typer.Option(
        None, "--months", "-m", min=1, help="Number of months."
    ),
) -> None:
    """
    List partitions and the file names derived from them.
    """
    config = RunConfig.from_settings(
        reference_date=_parse_date(reference_date), partition_count=months
    )
    for partition in config.resolve_partitions():
        typer.echo(
            f"{partition.key}  {partition.source_filename(config.source_prefix)}  ->  "
            f"{partition.sample_filename(config.sample_prefix)}"
        )


@app.command()
def run(
    workers: Optional[int] = typer.Option(None, "--workers", "-w", min=1, help="Worker count."),
    runner: Optional[str] = typer.Option(None, "--runner", help="Pool type: process or thread."),
    sample_size: Optional[int] = typer.Option(
        None, "--sample-size", "-k", help="Records per partition sample."
    ),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for reproducible samples."),
    reference_date: Optional[str] = typer.Option(
        None, "--reference-date", help="Reference date (YYYY-MM-DD)."
    ),
    months: Optional[int] = typer.Option(
        None, "--months", "-m", min=1, help="Number of months."
    ),
    strict: bool = typer.Option(
        False, "--strict", help="Abort on the first failed partition and exit non-zero."
    ),
    no_combine: bool = typer.Option(False, "--no-combine", help="Skip the combined file."),
    no_persist: bool = typer.Option(False, "--no-persist", help="Do not write JSON results."),
    as_json: bool = typer.Option(False, "--json", help="Print the run payload as JSON."),
) -> None:
    """
    Sample every partition and combine the outputs.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    _check_runner(runner)

    config = RunConfig.from_settings(
        settings,
        worker_count=workers,
        runner=runner,
        sample_size=sample_size,
        seed=seed,
        reference_date=_parse_date(reference_date),
        partition_count=months,
        failure_policy="strict" if strict else None,
        combine=False if no_combine else None,
        persist=False if no_persist else None,
    )
    try:
        payload = run_pipeline(config)
    except RunFailed as exc:
        typer.echo(f"Run failed: {exc}", err=True)
        raise typer.Exit(code=1)
    except SamplerError as exc:
        typer.echo(f"{exc.kind}: {exc}", err=True)
        raise typer.Exit(code=2)

    if as_json:
        typer.echo(json.dumps(payload, indent=2, default=str))
    else:
        print_run_report(payload)


@app.command()
def benchmark(
    workers: List[int] = typer.Option(
        [1, 2, 4], "--workers", "-w", min=1, help="Worker counts to compare (repeatable)."
    ),
    runs: int = typer.Option(1, "--runs", min=1, help="Measurement runs per worker count."),
    runner: Optional[str] = typer.Option(None, "--runner", help="Pool type: process or thread."),
    sample_size: Optional[int] = typer.Option(
        None, "--sample-size", "-k", help="Records per partition sample."
    ),
    no_persist: bool = typer.Option(False, "--no-persist", help="Do not write JSON results."),
) -> None:
    """
    Compare wall-clock duration across worker counts.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    _check_runner(runner)

    config = RunConfig.from_settings(
        settings,
        runner=runner,
        sample_size=sample_size,
        runs=runs,
        persist=False if no_persist else None,
    )
    try:
        results = run_benchmark(config, workers)
    except (SamplerError, ValueError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    print_benchmark(results)


@app.command()
def combine(
    reference_date: Optional[str] = typer.Option(
        None, "--reference-date", help="Reference date (YYYY-MM-DD)."
    ),
    months: Optional[int] = typer.Option(
        None, "--months", "-m", min=1, help="Number of months."
    ),
) -> None:
    """
    Concatenate existing per-month samples into the combined file.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    config = RunConfig.from_settings(
        settings, reference_date=_parse_date(reference_date), partition_count=months
    )
    try:
        path = combine_outputs(config)
    except SamplerError as exc:
        typer.echo(f"{exc.kind}: {exc}", err=True)
        raise typer.Exit(code=2)
    typer.echo(f"Combined sample written to {path}")


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
