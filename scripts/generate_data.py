"""
Synthetic source data for the Trip Sampler.

Writes deterministic pseudo-random monthly files in the 19-column yellow taxi
layout (`<prefix>_YYYY-MM.csv`), optionally salted with malformed rows, so the
pipeline can be exercised locally without the real multi-gigabyte files.
"""

from __future__ import annotations

import csv
import random
import sys
import time
from datetime import datetime, timedelta
from pathlib import Path
from typing import List, Optional

import typer

from trip_sampler.config import get_settings
from trip_sampler.domain.partitions import Partition, enumerate_partitions

app = typer.Typer(help="Generate synthetic monthly taxi trip CSV files.")

HEADER = [
    "VendorID",
    "tpep_pickup_datetime",
    "tpep_dropoff_datetime",
    "passenger_count",
    "trip_distance",
    "pickup_longitude",
    "pickup_latitude",
    "RatecodeID",
    "store_and_fwd_flag",
    "dropoff_longitude",
    "dropoff_latitude",
    "payment_type",
    "fare_amount",
    "extra",
    "mta_tax",
    "tip_amount",
    "tolls_amount",
    "improvement_surcharge",
    "total_amount",
]


def _trip_row(rng: random.Random, partition: Partition) -> List[str]:
    pickup = datetime(partition.year, partition.month, 1) + timedelta(
        seconds=rng.randrange(27 * 24 * 3600)
    )
    dropoff = pickup + timedelta(seconds=rng.randint(60, 3600))
    distance = round(rng.uniform(0.1, 20.0), 2)
    fare = round(2.5 + distance * 2.5, 2)
    extra = rng.choice([0.0, 0.5, 1.0])
    tip = round(rng.uniform(0, fare * 0.3), 2)
    tolls = rng.choice([0.0, 0.0, 0.0, 5.54])
    total = round(fare + extra + 0.5 + tip + tolls + 0.3, 2)
    return [
        str(rng.choice([1, 2])),
        pickup.strftime("%Y-%m-%d %H:%M:%S"),
        dropoff.strftime("%Y-%m-%d %H:%M:%S"),
        # Passenger count is occasionally missing in the real files.
        "" if rng.random() < 0.01 else str(rng.randint(1, 6)),
        f"{distance:.2f}",
        f"{rng.uniform(-74.05, -73.75):.6f}",
        f"{rng.uniform(40.60, 40.90):.6f}",
        str(rng.choice([1, 1, 1, 2, 3, 4, 5, 6])),
        rng.choice(["N", "N", "N", "Y"]),
        f"{rng.uniform(-74.05, -73.75):.6f}",
        f"{rng.uniform(40.60, 40.90):.6f}",
        str(rng.choice([1, 1, 2, 3, 4])),
        f"{fare:.2f}",
        f"{extra:.1f}",
        "0.5",
        f"{tip:.2f}",
        f"{tolls:.2f}",
        "0.3",
        f"{total:.2f}",
    ]


def _generate_month_csv(
    csv_path: Path,
    partition: Partition,
    rows: int,
    seed: int,
    malformed_rows: int = 0,
) -> None:
    """
    Write `rows` well-formed trips plus `malformed_rows` short rows at random
    positions. The same arguments always produce the same file.
    """
    rng = random.Random(f"{seed}:{partition.key}")
    bad_positions = set(rng.sample(range(rows + malformed_rows), malformed_rows))

    csv_path.parent.mkdir(parents=True, exist_ok=True)
    with csv_path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(HEADER)
        for position in range(rows + malformed_rows):
            row = _trip_row(rng, partition)
            if position in bad_positions:
                row = row[: len(row) // 2]
            writer.writerow(row)


def _generate_months(
    source_dir: Path,
    partitions: List[Partition],
    prefix: str,
    rows: int,
    seed: int,
    malformed_rows: int = 0,
) -> List[Path]:
    paths: List[Path] = []
    for partition in partitions:
        path = source_dir / partition.source_filename(prefix)
        _generate_month_csv(path, partition, rows, seed, malformed_rows)
        paths.append(path)
    return paths


@app.command()
def main(
    rows: int = typer.Option(10_000, "--rows", "-r", help="Well-formed rows per month."),
    malformed: int = typer.Option(0, "--malformed", help="Malformed rows per month."),
    seed: int = typer.Option(42, "--seed", help="Deterministic RNG seed."),
    months: Optional[int] = typer.Option(None, "--months", "-m", help="Number of months."),
    output: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Target directory (defaults to SOURCE_DIR)."
    ),
) -> None:
    """
    Generate one synthetic source file per configured month.
    """
    settings = get_settings()
    source_dir = output or settings.source_dir
    partitions = enumerate_partitions(
        settings.reference_date, months or settings.partition_count
    )

    start = time.perf_counter()
    typer.echo(f"Generating {len(partitions)} month(s) x {rows:,} rows -> {source_dir}")
    paths = _generate_months(
        source_dir, partitions, settings.source_prefix, rows, seed, malformed
    )
    duration = time.perf_counter() - start
    total = rows * len(paths)
    typer.echo(
        f"Generated {len(paths)} file(s) in {duration:.2f}s ({total / duration:,.0f} rows/s)"
    )


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
