"""
Partition sampler: one month's source file in, one fixed-size sample file out.

The sampler streams the source through the column schema, keeps a uniform
random reservoir of `sample_size` decoded records, and publishes the reservoir
atomically. Memory use is bounded by the sample size, not by the source size.

Usage:
    from trip_sampler.sampler import sample_partition

    summary = sample_partition(
        Partition.parse("2016-06"),
        TAXI_SCHEMA,
        sample_size=1_000_000,
        source_dir=Path("data"),
        output_dir=Path("samples"),
    )
    print(summary.output_path, summary.records_read)
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Literal, Optional, Sequence, Tuple, TypeVar, Union

from trip_sampler.domain.errors import (
    FieldDecodeError,
    InsufficientRecords,
    InvalidSampleSize,
    SchemaMismatch,
)
from trip_sampler.domain.partitions import Partition
from trip_sampler.domain.schema import Record, TableSchema
from trip_sampler.infrastructure.csv_io import MalformedRow, iter_source_rows, write_sample
from trip_sampler.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")
RowPolicy = Literal["reject", "strict"]

DEFAULT_SOURCE_PREFIX = "yellow_tripdata"
DEFAULT_SAMPLE_PREFIX = "sample"


@dataclass(frozen=True)
class SampleSummary:
    """
    What one sampling task produced.
    """

    partition: str
    output_path: str
    records_read: int
    rows_rejected: int
    sample_size: int
    duration_seconds: float


@dataclass
class DecodeStats:
    rows_seen: int = 0
    rows_rejected: int = 0

    @property
    def records_read(self) -> int:
        return self.rows_seen - self.rows_rejected


def validate_sample_size(sample_size: object) -> int:
    """Return `sample_size` if it is a positive int, else raise InvalidSampleSize."""
    if isinstance(sample_size, bool) or not isinstance(sample_size, int):
        raise InvalidSampleSize(f"sample size must be an integer, got {sample_size!r}")
    if sample_size <= 0:
        raise InvalidSampleSize(f"sample size must be positive, got {sample_size}")
    return sample_size


def task_random(partition: Partition, seed: Optional[int] = None) -> random.Random:
    """
    Build the private random source for one task.

    Without a seed every call draws fresh OS entropy. With a seed the stream is
    derived from both the seed and the partition key, so partitions sharing a
    seed still sample independently.
    """
    if seed is None:
        return random.Random()
    return random.Random(f"{seed}:{partition.key}")


def reservoir_sample(items: Iterable[T], k: int, rng: random.Random) -> Tuple[List[T], int]:
    """
    Uniformly sample `k` items without replacement in a single pass.

    Returns the sample and the total number of items seen. When fewer than `k`
    items exist the sample holds all of them.
    """
    if k < 0:
        raise ValueError(f"k must be non-negative, got {k}")
    reservoir: List[T] = []
    seen = 0
    for item in items:
        if seen < k:
            reservoir.append(item)
        else:
            slot = rng.randrange(seen + 1)
            if slot < k:
                reservoir[slot] = item
        seen += 1
    return reservoir, seen


def decode_records(
    rows: Iterable[Union[Sequence[str], MalformedRow]],
    schema: TableSchema,
    stats: DecodeStats,
    row_policy: RowPolicy = "reject",
) -> Iterator[Record]:
    """
    Decode raw rows through `schema`, applying the row policy to bad rows.

    `reject` drops and counts rows that the parser could not split, that have
    the wrong width, or that hold an undecodable field. `strict` raises
    SchemaMismatch on the first such row.
    """
    for row in rows:
        stats.rows_seen += 1
        try:
            if isinstance(row, MalformedRow):
                raise SchemaMismatch(f"line {row.line}: {row.reason}")
            yield schema.decode_row(row)
        except (SchemaMismatch, FieldDecodeError) as exc:
            if row_policy == "strict":
                raise SchemaMismatch(f"row {stats.rows_seen}: {exc}") from exc
            stats.rows_rejected += 1
            log.debug("Rejected row", extra={"row": stats.rows_seen, "reason": str(exc)})


def sample_partition(
    partition: Partition,
    schema: TableSchema,
    sample_size: int,
    *,
    source_dir: Path,
    output_dir: Path,
    source_prefix: str = DEFAULT_SOURCE_PREFIX,
    sample_prefix: str = DEFAULT_SAMPLE_PREFIX,
    seed: Optional[int] = None,
    row_policy: RowPolicy = "reject",
    has_header: bool = True,
) -> SampleSummary:
    """
    Sample one partition and write its artifact.

    Parameters
    ----------
    partition : Partition
        Month to sample; resolves the source and output file names.
    schema : TableSchema
        Physical column layout of the source file.
    sample_size : int
        Number of records to keep (K).
    source_dir, output_dir : Path
        Where source files live and where sample files are written.
    seed : int | None
        Optional seed for reproducible sampling.
    row_policy : "reject" | "strict"
        How rows that do not fit the schema are handled.
    has_header : bool
        Whether the source's first row is a header to discard.

    Raises
    ------
    InvalidSampleSize, SourceNotFound, SchemaMismatch, InsufficientRecords, WriteFailure
    """
    k = validate_sample_size(sample_size)
    source = Path(source_dir) / partition.source_filename(source_prefix)
    target = Path(output_dir) / partition.sample_filename(sample_prefix)
    rng = task_random(partition, seed)

    log.info(
        f"[PARTITION START] {partition.key}",
        extra={"partition": partition.key, "source": str(source), "sample_size": k},
    )
    start = time.perf_counter()

    stats = DecodeStats()
    rows = iter_source_rows(source, has_header=has_header)
    sample, seen = reservoir_sample(decode_records(rows, schema, stats, row_policy), k, rng)

    if seen < k:
        raise InsufficientRecords(
            f"{partition.key}: {seen} decoded records, cannot sample {k} without replacement"
        )
    if stats.rows_rejected:
        log.warning(
            f"[PARTITION] {partition.key} rejected {stats.rows_rejected} rows",
            extra={"partition": partition.key, "rows_rejected": stats.rows_rejected},
        )

    written = write_sample(target, schema.retained_names, sample)
    duration = time.perf_counter() - start

    log.info(
        f"[PARTITION DONE] {partition.key}",
        extra={
            "partition": partition.key,
            "output": str(target),
            "records_read": seen,
            "rows_written": written,
            "duration": round(duration, 2),
        },
    )
    return SampleSummary(
        partition=partition.key,
        output_path=str(target),
        records_read=seen,
        rows_rejected=stats.rows_rejected,
        sample_size=written,
        duration_seconds=duration,
    )


__all__ = [
    "DecodeStats",
    "SampleSummary",
    "decode_records",
    "reservoir_sample",
    "sample_partition",
    "task_random",
    "validate_sample_size",
]
