"""
Infrastructure package for the Trip Sampler.

Centralizes filesystem concerns (streaming CSV reads, atomic sample writes,
concatenation). Keep this layer focused on I/O, decoupled from sampling and
orchestration logic.
"""

from trip_sampler.infrastructure.csv_io import (
    MalformedRow,
    atomic_writer,
    concatenate_samples,
    discard_partial_outputs,
    iter_source_rows,
    write_sample,
)

__all__ = [
    "MalformedRow",
    "atomic_writer",
    "concatenate_samples",
    "discard_partial_outputs",
    "iter_source_rows",
    "write_sample",
]
