from __future__ import annotations

from typing import Any, Dict, List, Optional

import psutil
from rich import box
from rich.console import Console
from rich.table import Table

_STATUS_STYLES = {"ok": "green", "failed": "bold red", "cancelled": "yellow"}


def get_cpu_budget() -> Optional[str]:
    """
    CPUs available to this process: the cgroup v2 quota when one is set,
    otherwise the logical core count.
    """
    try:
        with open("/sys/fs/cgroup/cpu.max", "r") as f:
            parts = f.read().strip().split()
        if len(parts) == 2 and parts[0] != "max":
            return f"{int(parts[0]) / int(parts[1]):.1f}"
    except (FileNotFoundError, PermissionError, ValueError):
        pass
    count = psutil.cpu_count(logical=True)
    return str(count) if count else None


def _format_mb(value: Optional[int]) -> str:
    if not value:
        return "N/A"
    return f"{value / (1024 * 1024):.2f}"


def print_run_report(payload: Dict[str, Any], console: Optional[Console] = None) -> None:
    """
    Render one run's per-partition outcomes as a rich table.
    """
    console = console or Console()
    outcomes: Dict[str, Dict[str, Any]] = payload.get("outcomes") or {}
    if not outcomes:
        console.print("[yellow]No partitions were run.[/yellow]")
        return

    title = (
        f"Trip Sampler Run │ runner={payload.get('runner')} "
        f"workers={payload.get('worker_count')}"
    )
    caption = (
        f"{payload.get('succeeded', 0)} ok, {payload.get('failed', 0)} failed, "
        f"{payload.get('cancelled', 0)} cancelled │ "
        f"wall-clock {payload.get('duration_seconds', 0.0):.2f}s │ "
        f"peak RSS {_format_mb(payload.get('peak_rss_bytes'))} MB"
    )
    table = Table(title=title, caption=caption, box=box.ROUNDED)
    table.add_column("Partition", style="cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Records Read", justify="right", style="magenta")
    table.add_column("Rejected", justify="right", style="yellow")
    table.add_column("Sampled", justify="right", style="green")
    table.add_column("Duration (s)", justify="right")
    table.add_column("Output / Error", overflow="fold")

    order = payload.get("partitions") or sorted(outcomes)
    for key in dict.fromkeys(order):
        outcome = outcomes.get(key)
        if outcome is None:
            continue
        status = outcome.get("status", "unknown")
        style = _STATUS_STYLES.get(status, "white")
        if status == "ok":
            detail = outcome.get("output_path") or ""
        else:
            detail = f"{outcome.get('error_type')}: {outcome.get('error')}"
        table.add_row(
            key,
            f"[{style}]{status}[/{style}]",
            f"{outcome['records_read']:,}" if "records_read" in outcome else "-",
            f"{outcome['rows_rejected']:,}" if "rows_rejected" in outcome else "-",
            f"{outcome['sample_size']:,}" if "sample_size" in outcome else "-",
            f"{outcome.get('duration_seconds', 0.0):.2f}",
            detail,
        )

    console.print(table)
    if payload.get("combined_path"):
        console.print(f"Combined sample: [bold]{payload['combined_path']}[/bold]")


def print_benchmark(results: List[Dict[str, Any]], console: Optional[Console] = None) -> None:
    """
    Render benchmark results: median duration per worker count and speedup
    relative to the slowest configuration.
    """
    console = console or Console()
    if not results:
        console.print("[yellow]No results to display.[/yellow]")
        return

    title = "Trip Sampler Benchmark"
    cpus = get_cpu_budget()
    if cpus:
        title = f"{title}\n[dim]CPUs available: {cpus}[/dim]"

    table = Table(title=title, box=box.ROUNDED, caption="Sorted by worker count")
    table.add_column("Workers", justify="right", style="cyan")
    table.add_column("Runner")
    table.add_column("Runs", justify="right", style="blue")
    table.add_column("Duration (s)\n[dim](Median ± StdDev)[/dim]", justify="right", style="green")
    table.add_column("Speedup", justify="right", style="bold green")
    table.add_column("Peak Memory (MB)", justify="right", style="yellow")
    table.add_column("Failed", justify="right", style="red")

    baseline = max(r["duration_seconds"]["median"] for r in results)
    for res in sorted(results, key=lambda r: r["worker_count"]):
        median = res["duration_seconds"]["median"]
        speedup = f"{baseline / median:.2f}x" if median else "N/A"
        table.add_row(
            str(res["worker_count"]),
            str(res.get("runner", "")),
            str(res.get("runs", 1)),
            f"{median:.2f} ± {res['duration_seconds']['stddev']:.2f}",
            speedup,
            _format_mb(res.get("peak_rss_bytes")),
            str(res.get("failed", 0)),
        )

    console.print(table)
