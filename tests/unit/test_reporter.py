from __future__ import annotations

from rich.console import Console

from trip_sampler.reporter import _format_mb, print_benchmark, print_run_report


def _console() -> Console:
    return Console(record=True, width=200)


def test_run_report_lists_partitions_in_order():
    payload = {
        "runner": "thread",
        "worker_count": 2,
        "partitions": ["2016-06", "2016-05"],
        "succeeded": 1,
        "failed": 1,
        "cancelled": 0,
        "duration_seconds": 1.5,
        "peak_rss_bytes": 3 * 1024 * 1024,
        "combined_path": "samples/sample_combined.csv",
        "outcomes": {
            "2016-05": {
                "status": "failed",
                "error_type": "SourceNotFound",
                "error": "missing",
                "duration_seconds": 0.0,
            },
            "2016-06": {
                "status": "ok",
                "output_path": "samples/sample_2016-06.csv",
                "records_read": 1200,
                "rows_rejected": 3,
                "sample_size": 100,
                "duration_seconds": 0.4,
            },
        },
    }
    console = _console()
    print_run_report(payload, console=console)
    text = console.export_text()

    assert text.index("2016-06") < text.index("2016-05")
    assert "1,200" in text
    assert "SourceNotFound: missing" in text
    assert "3.00 MB" in text
    assert "samples/sample_combined.csv" in text


def test_run_report_without_outcomes():
    console = _console()
    print_run_report({"outcomes": {}}, console=console)
    assert "No partitions were run." in console.export_text()


def test_benchmark_speedup_is_relative_to_slowest():
    results = [
        {
            "worker_count": 4,
            "runner": "process",
            "runs": 2,
            "failed": 0,
            "duration_seconds": {"median": 1.0, "stddev": 0.1},
        },
        {
            "worker_count": 1,
            "runner": "sequential",
            "runs": 2,
            "failed": 0,
            "duration_seconds": {"median": 4.0, "stddev": 0.2},
        },
    ]
    console = _console()
    print_benchmark(results, console=console)
    text = console.export_text()

    assert "4.00x" in text
    assert "1.00x" in text
    assert text.index("sequential") < text.index("process")


def test_format_mb():
    assert _format_mb(None) == "N/A"
    assert _format_mb(0) == "N/A"
    assert _format_mb(1024 * 1024) == "1.00"
