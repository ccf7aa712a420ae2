"""
Pytest configuration for the Trip Sampler.

Provides fixtures for:
- Temporary source/output/results directories
- Synthetic monthly source files in the taxi layout
- A small schema and RunConfig wired to the temporary directories
"""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Callable, List

import pytest

from scripts.generate_data import _generate_month_csv, _generate_months
from trip_sampler.domain.partitions import Partition, enumerate_partitions
from trip_sampler.domain.schema import ColumnType, TableSchema
from trip_sampler.orchestrator import RunConfig

REFERENCE_DATE = date(2016, 7, 1)
ROWS_PER_MONTH = 60
SOURCE_PREFIX = "yellow_tripdata"
SAMPLE_PREFIX = "sample"
GENERATOR_SEED = 42


@pytest.fixture
def source_dir(tmp_path: Path) -> Path:
    path = tmp_path / "data"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "samples"


@pytest.fixture
def results_dir(tmp_path: Path) -> Path:
    return tmp_path / "results"


@pytest.fixture
def partitions() -> List[Partition]:
    return enumerate_partitions(REFERENCE_DATE, 6)


@pytest.fixture
def seeded_months(source_dir: Path, partitions: List[Partition]) -> List[Path]:
    """
    Six well-formed synthetic months with ROWS_PER_MONTH rows each.
    """
    return _generate_months(source_dir, partitions, SOURCE_PREFIX, ROWS_PER_MONTH, GENERATOR_SEED)


@pytest.fixture
def make_month(source_dir: Path) -> Callable[..., Path]:
    """
    Factory for a single synthetic month, optionally with malformed rows.
    """

    def _make(partition: Partition, rows: int = ROWS_PER_MONTH, malformed_rows: int = 0) -> Path:
        path = source_dir / partition.source_filename(SOURCE_PREFIX)
        _generate_month_csv(path, partition, rows, GENERATOR_SEED, malformed_rows)
        return path

    return _make


@pytest.fixture
def tiny_schema() -> TableSchema:
    """Four physical columns, one skipped."""
    return TableSchema.from_pairs(
        [
            ("id", ColumnType.SKIP),
            ("name", ColumnType.TEXT),
            ("count", ColumnType.INTEGER),
            ("amount", ColumnType.NUMBER),
        ]
    )


@pytest.fixture
def run_config(source_dir: Path, output_dir: Path, results_dir: Path) -> RunConfig:
    """
    RunConfig pointed at the temporary directories with a small sample size.
    """
    return RunConfig(
        reference_date=REFERENCE_DATE,
        partition_count=6,
        sample_size=25,
        worker_count=1,
        seed=7,
        source_dir=source_dir,
        output_dir=output_dir,
        results_dir=results_dir,
        source_prefix=SOURCE_PREFIX,
        sample_prefix=SAMPLE_PREFIX,
        persist=False,
    )
