"""
Trip Sampler - fixed-size random samples of monthly taxi trip CSV files.

Each month's source file is reduced to a uniform random sample of K records,
one sample file per month, and the samples are concatenated into a single
combined file. Months are independent tasks fanned out over a bounded pool:

- Sequential baseline (one worker)
- Process pool (spawn context, default for parallel runs)
- Thread pool

Wall-clock duration is reported for every run so worker counts can be
compared.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from trip_sampler.config import Settings, get_settings
from trip_sampler.domain import TAXI_SCHEMA, ColumnType, Partition, TableSchema
from trip_sampler.orchestrator import RunConfig, run_benchmark, run_pipeline
from trip_sampler.runners import RunReport, TaskOutcome, run_all
from trip_sampler.sampler import SampleSummary, sample_partition
from trip_sampler.utils.logging import configure_logging, get_logger
from trip_sampler.utils.profiler import ProfileStats, profile_block

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "ColumnType",
    "Partition",
    "TableSchema",
    "TAXI_SCHEMA",
    # Sampling
    "SampleSummary",
    "sample_partition",
    # Running
    "RunConfig",
    "RunReport",
    "TaskOutcome",
    "run_all",
    "run_benchmark",
    "run_pipeline",
    # Logging
    "configure_logging",
    "get_logger",
    # Profiling
    "ProfileStats",
    "profile_block",
]
