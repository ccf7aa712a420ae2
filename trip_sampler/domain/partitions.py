"""
Monthly partition identifiers and the file names derived from them.
"""

from __future__ import annotations

import re
from datetime import date
from typing import List

from pydantic import BaseModel, Field

_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


class Partition(BaseModel):
    """
    One calendar month of trip data.

    Instances are immutable and hashable, so they can key outcome mappings.
    """

    year: int = Field(..., ge=1, le=9999)
    month: int = Field(..., ge=1, le=12)

    model_config = {"frozen": True}

    @classmethod
    def parse(cls, key: str) -> "Partition":
        """Parse a `YYYY-MM` key."""
        match = _KEY_PATTERN.match(key.strip())
        if not match:
            raise ValueError(f"Invalid partition key '{key}', expected YYYY-MM")
        return cls(year=int(match.group(1)), month=int(match.group(2)))

    @property
    def key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"

    def previous(self) -> "Partition":
        if self.month == 1:
            return Partition(year=self.year - 1, month=12)
        return Partition(year=self.year, month=self.month - 1)

    def source_filename(self, prefix: str) -> str:
        return f"{prefix}_{self.key}.csv"

    def sample_filename(self, prefix: str) -> str:
        return f"{prefix}_{self.key}.csv"

    def __str__(self) -> str:
        return self.key


def enumerate_partitions(reference_date: date, count: int = 6) -> List[Partition]:
    """
    List `count` consecutive months, newest first, ending one month before
    `reference_date`.

    >>> [p.key for p in enumerate_partitions(date(2016, 7, 1), 3)]
    ['2016-06', '2016-05', '2016-04']
    """
    if count <= 0:
        raise ValueError(f"count must be positive, got {count}")
    current = Partition(year=reference_date.year, month=reference_date.month).previous()
    partitions: List[Partition] = []
    for _ in range(count):
        partitions.append(current)
        current = current.previous()
    return partitions


__all__ = ["Partition", "enumerate_partitions"]
