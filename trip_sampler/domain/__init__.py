"""
Domain package for the Trip Sampler.

Exports the column schema, partition identifiers, and error types shared by
the sampler, runners, and orchestrator. Keep this package free of I/O.
"""

from trip_sampler.domain.errors import (
    FieldDecodeError,
    InsufficientRecords,
    InvalidSampleSize,
    RunFailed,
    SamplerError,
    SchemaMismatch,
    SourceNotFound,
    WriteFailure,
)
from trip_sampler.domain.partitions import Partition, enumerate_partitions
from trip_sampler.domain.schema import (
    TAXI_SCHEMA,
    ColumnSpec,
    ColumnType,
    Record,
    TableSchema,
    format_value,
)

__all__ = [
    # Schema
    "ColumnSpec",
    "ColumnType",
    "Record",
    "TableSchema",
    "TAXI_SCHEMA",
    "format_value",
    # Partitions
    "Partition",
    "enumerate_partitions",
    # Errors
    "SamplerError",
    "SourceNotFound",
    "SchemaMismatch",
    "InvalidSampleSize",
    "InsufficientRecords",
    "WriteFailure",
    "FieldDecodeError",
    "RunFailed",
]
